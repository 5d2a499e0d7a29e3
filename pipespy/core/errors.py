"""
Error codes for pipespy.

Structured error codes for machine-parseable diagnostics.

Format: E{category}{number}
- E1xxx: Frame decode errors
- E2xxx: Latency input errors
- E3xxx: Configuration errors
- E4xxx: Channel errors
"""

import logging
from enum import Enum
from dataclasses import dataclass
from typing import Optional


class ErrorCode(Enum):
    """Structured error codes."""

    # E1xxx: Frame decode errors
    E1001_FRAME_TRUNCATED = "E1001"
    E1002_EXTENSION_TRUNCATED = "E1002"
    E1003_UNKNOWN_ADDRESS_KIND = "E1003"

    # E2xxx: Latency input errors
    E2001_LINE_FORMAT = "E2001"
    E2002_UNRECORDABLE_LATENCY = "E2002"

    # E3xxx: Configuration errors
    E3001_INVALID_CONFIG = "E3001"
    E3002_MISSING_ENV_VAR = "E3002"

    # E4xxx: Channel errors
    E4001_CAPTURE_MISSING = "E4001"
    E4002_CAPTURE_INVALID = "E4002"
    E4003_CAPTURE_DIRECTORY_MISSING = "E4003"


# Error code metadata
ERROR_METADATA = {
    ErrorCode.E1001_FRAME_TRUNCATED: {
        'severity': 'warning',
        'message': 'Frame shorter than its declared layout',
    },
    ErrorCode.E1002_EXTENSION_TRUNCATED: {
        'severity': 'warning',
        'message': 'Begin extension inconsistent with its buffer',
    },
    ErrorCode.E1003_UNKNOWN_ADDRESS_KIND: {
        'severity': 'warning',
        'message': 'Unknown TCP address kind',
    },
    ErrorCode.E2001_LINE_FORMAT: {
        'severity': 'error',
        'message': 'Trace line does not match the grammar',
    },
    ErrorCode.E2002_UNRECORDABLE_LATENCY: {
        'severity': 'warning',
        'message': 'Latency outside the trackable histogram range',
    },
    ErrorCode.E3001_INVALID_CONFIG: {
        'severity': 'error',
        'message': 'Invalid configuration',
    },
    ErrorCode.E3002_MISSING_ENV_VAR: {
        'severity': 'warning',
        'message': 'Environment variable not set',
    },
    ErrorCode.E4001_CAPTURE_MISSING: {
        'severity': 'error',
        'message': 'Capture file not found',
    },
    ErrorCode.E4002_CAPTURE_INVALID: {
        'severity': 'error',
        'message': 'Capture file is invalid',
    },
    ErrorCode.E4003_CAPTURE_DIRECTORY_MISSING: {
        'severity': 'error',
        'message': 'Capture directory not found',
    },
}


@dataclass
class PipespyError:
    """
    Structured error with context.

    Example:
        error = PipespyError(
            code=ErrorCode.E2002_UNRECORDABLE_LATENCY,
            context={'stage': 'proxy', 'value': -3},
        )
        logger.log(error.level, str(error))
        # [E2002] Latency outside the trackable histogram range: stage=proxy, value=-3
    """
    code: ErrorCode
    context: Optional[dict] = None

    @property
    def severity(self) -> str:
        return ERROR_METADATA.get(self.code, {}).get('severity', 'error')

    @property
    def level(self) -> int:
        """logging level matching the severity."""
        return logging.WARNING if self.severity == 'warning' else logging.ERROR

    @property
    def message(self) -> str:
        base_msg = ERROR_METADATA.get(self.code, {}).get('message', 'Unknown error')
        if self.context:
            details = ', '.join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg}: {details}"
        return base_msg

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class FrameDecodeError(ValueError):
    """A read ran past the limit of a frame or extension."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.E1001_FRAME_TRUNCATED):
        super().__init__(message)
        self.code = code

    def to_error(self) -> PipespyError:
        return PipespyError(code=self.code, context={'detail': str(self)})


class LineFormatError(ValueError):
    """
    A log line failed the trace line grammar.

    The latency run stops at the first such line; the CLI exits with
    EXIT_STATUS.
    """

    EXIT_STATUS = 2

    def __init__(self, line: str, line_number: int = 0):
        super().__init__(f"Failed to match input, potential bug: \"{line}\"")
        self.line = line
        self.line_number = line_number

    def to_error(self) -> PipespyError:
        return PipespyError(
            code=ErrorCode.E2001_LINE_FORMAT,
            context={'line_number': self.line_number},
        )


class ChannelError(RuntimeError):
    """
    A streams layout could not be acquired.

    The message is built from the code's metadata and the context, e.g.
    ChannelError(ErrorCode.E4001_CAPTURE_MISSING, path=p).
    """

    def __init__(self, code: ErrorCode, **context):
        self.error = PipespyError(code=code, context=context or None)
        super().__init__(self.error.message)
        self.code = code

    def to_error(self) -> PipespyError:
        return self.error
