"""
Configuration schema for pipespy.

Supports:
- YAML file loading
- Environment variable substitution (${VAR_NAME})
- Validation with error messages

Example config (pipespy.yml):
    version: 1

    decoder:
      verbose: true
      batch_limit: 16
      idle_strategy: sleep
      idle_micros: 500

    latency:
      highest_trackable_value: 360000000
      significant_digits: 5

    logging:
      level: ${PIPESPY_LOG_LEVEL}
"""

import os
import re
import logging
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Any

import yaml

from ..core.errors import ErrorCode, PipespyError
from ..decoder.driver import IDLE_STRATEGIES
from ..latency.histogram import HIGHEST_TRACKABLE_VALUE, SIGNIFICANT_DIGITS
from ..latency.report import DEFAULT_PERCENTILES


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

logger = logging.getLogger(__name__)


def _substitute_env_vars(value: Any) -> Any:
    """
    Substitute ${VAR_NAME} with environment variable values.

    Example:
        ${PIPESPY_LOG_LEVEL} → os.environ.get('PIPESPY_LOG_LEVEL')
    """
    if isinstance(value, str):
        pattern = r'\$\{([^}]+)\}'

        def replace(match):
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                error = PipespyError(ErrorCode.E3002_MISSING_ENV_VAR, {'variable': var_name})
                logger.log(error.level, str(error))
                return match.group(0)  # Keep original if not found
            return env_value

        return re.sub(pattern, replace, value)

    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_substitute_env_vars(v) for v in value]

    return value


@dataclass
class DecoderConfig:
    """Live decoder settings."""
    verbose: bool = False
    batch_limit: int = 1
    idle_strategy: str = 'sleep'
    idle_micros: int = 1000


@dataclass
class LatencyConfig:
    """Latency histogram settings."""
    highest_trackable_value: int = HIGHEST_TRACKABLE_VALUE
    significant_digits: int = SIGNIFICANT_DIGITS
    percentiles: List[float] = field(
        default_factory=lambda: list(DEFAULT_PERCENTILES)
    )
    value_unit_scaling: float = 1.0


@dataclass
class LoggingConfig:
    """Diagnostic logging (decoded lines never go through logging)."""
    level: str = 'WARNING'

    @property
    def level_number(self) -> int:
        return getattr(logging, self.level.upper(), logging.WARNING)


@dataclass
class PipespyConfig:
    """Root configuration."""

    version: int = 1
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    latency: LatencyConfig = field(default_factory=LatencyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Path) -> 'PipespyConfig':
        """Load from YAML file with env var substitution."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        data = _substitute_env_vars(data)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'PipespyConfig':
        """Create from dictionary."""
        return cls(
            version=data.get('version', 1),
            decoder=DecoderConfig(**(data.get('decoder') or {})),
            latency=LatencyConfig(**(data.get('latency') or {})),
            logging=LoggingConfig(**(data.get('logging') or {})),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def validate(self) -> List[str]:
        """Validate config. Returns list of errors (empty if valid)."""
        errors = []

        if self.decoder.batch_limit <= 0:
            errors.append(f"Invalid batch_limit: {self.decoder.batch_limit}")

        if self.decoder.idle_strategy not in IDLE_STRATEGIES:
            errors.append(
                f"Unknown idle_strategy: {self.decoder.idle_strategy} "
                f"(expected one of {', '.join(IDLE_STRATEGIES)})"
            )

        if self.decoder.idle_micros < 0:
            errors.append(f"Invalid idle_micros: {self.decoder.idle_micros}")

        if not 1 <= self.latency.significant_digits <= 5:
            errors.append(
                f"significant_digits must be in 1..5, got {self.latency.significant_digits}"
            )

        if self.latency.highest_trackable_value < 2:
            errors.append(
                f"Invalid highest_trackable_value: {self.latency.highest_trackable_value}"
            )

        for p in self.latency.percentiles:
            if not 0 < p <= 1:
                errors.append(f"Percentile out of range (0, 1]: {p}")

        if self.latency.value_unit_scaling <= 0:
            errors.append(f"Invalid value_unit_scaling: {self.latency.value_unit_scaling}")

        if self.logging.level.upper() not in LOG_LEVELS:
            errors.append(f"Unknown logging level: {self.logging.level}")

        return errors


def load_config(path: Optional[Path] = None) -> PipespyConfig:
    """Load config from file or return defaults."""
    if path and Path(path).exists():
        return PipespyConfig.load(path)

    search_paths = [
        Path('./pipespy.yml'),
        Path('./pipespy.yaml'),
        Path.home() / '.pipespy' / 'config.yml',
    ]

    for p in search_paths:
        if p.exists():
            return PipespyConfig.load(p)

    return PipespyConfig()


def generate_default_config() -> str:
    """Generate default config as YAML."""
    return """# pipespy Configuration
version: 1

decoder:
  verbose: false
  batch_limit: 1
  idle_strategy: sleep
  idle_micros: 1000

latency:
  highest_trackable_value: 360000000
  significant_digits: 5
  percentiles: [0.5, 0.75, 0.9, 0.95, 0.99, 0.999, 1.0]
  value_unit_scaling: 1.0

logging:
  level: WARNING
"""
