# core/errors.py
from enum import Enum


class ErrorKind(Enum):
    """Failure classes reported by probe outcomes."""

    INVALID_INPUT = "invalid_input"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    CANCELLED = "cancelled"
    TRANSPORT = "transport"
    PROTOCOL_VIOLATION = "protocol_violation"
    NOT_FOUND = "not_found"
    TOO_MANY_RECORDS = "too_many_records"
    EXHAUSTED = "exhausted"

    @property
    def fatal(self) -> bool:
        return self not in (
            ErrorKind.NOT_FOUND,
            ErrorKind.TOO_MANY_RECORDS,
            ErrorKind.EXHAUSTED,
        )


class ProbeError(Exception):
    """Base class for failures raised inside the probing engine."""


class GateTimeoutError(ProbeError):
    """No permit became free within the wait timeout."""


class GateClosedError(ProbeError):
    """The gate refused a permit because shutdown was triggered."""


class OperationCancelledError(ProbeError):
    """An in-flight operation was cancelled by shutdown."""
