"""Configuration management for pipespy."""

from .schema import (
    PipespyConfig,
    DecoderConfig,
    LatencyConfig,
    LoggingConfig,
    load_config,
    generate_default_config,
)

__all__ = [
    'PipespyConfig',
    'DecoderConfig',
    'LatencyConfig',
    'LoggingConfig',
    'load_config',
    'generate_default_config',
]
