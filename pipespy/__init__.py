"""
pipespy - Diagnostics for multi-stage asynchronous message pipelines.

This package provides:
- formats: Message kinds, zero-copy frame views, capture file header
- extensions: BEGIN extension codecs (HTTP, TCP) and their registry
- channel: Non-destructive streams layouts (in-memory, capture files)
- decoder: Live decoder turning records into log lines
- latency: Offline per-stage latency reconstruction from log lines
- config: YAML configuration with environment variable support
- cli: Command-line interface
"""

__version__ = "0.4.0"

from .formats import MessageKind, FileHeader
from .extensions import ExtensionRegistry, ExtensionCodec, default_registry
from .channel import StreamsLayout, RecordSpy, MemoryStreamsLayout, CaptureFileLayout
from .decoder import LoggableStream, run_decoder
from .latency import LatencyCorrelator, ParsedTraceEvent, parse_line, run_latency
from .config import PipespyConfig, load_config

__all__ = [
    # Version
    '__version__',
    # Formats
    'MessageKind',
    'FileHeader',
    # Extensions
    'ExtensionRegistry',
    'ExtensionCodec',
    'default_registry',
    # Channel
    'StreamsLayout',
    'RecordSpy',
    'MemoryStreamsLayout',
    'CaptureFileLayout',
    # Decoder
    'LoggableStream',
    'run_decoder',
    # Latency
    'LatencyCorrelator',
    'ParsedTraceEvent',
    'parse_line',
    'run_latency',
    # Config
    'PipespyConfig',
    'load_config',
]
