# core/dns/models.py
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from netkit.core.errors import ErrorKind


class RecordType(Enum):
    """Record types the resolver understands. ALL fans out to the rest."""

    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    MX = "MX"
    TXT = "TXT"
    NS = "NS"
    PTR = "PTR"
    ALL = "ALL"

    @classmethod
    def parse(cls, value: "str | RecordType") -> "RecordType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unsupported record type: {value}") from None


# Merge order for ALL lookups.
ALL_RECORD_TYPES = (
    RecordType.A,
    RecordType.AAAA,
    RecordType.CNAME,
    RecordType.MX,
    RecordType.TXT,
    RecordType.NS,
    RecordType.PTR,
)


@dataclass
class DnsQuery:
    domain: str
    record_type: RecordType


@dataclass
class DnsRecord:
    """A single answer as shown to the user."""

    type: str
    name: str
    value: str
    ttl: int = 0
    priority: int = 0


@dataclass
class DnsOutcome:
    """
    Result of one lookup call.

    `error` holds a hard failure or a not-found message. Truncation is
    reported through `truncated` and `warnings` so the partial record
    set still counts as a success.
    """

    domain: str
    record_type: str
    success: bool = False
    error: str = ""
    error_kind: ErrorKind | None = None
    records: list[DnsRecord] = field(default_factory=list)
    truncated: bool = False
    warnings: list[str] = field(default_factory=list)
    server_used: str = ""
    elapsed: timedelta = field(default_factory=timedelta)

    def fail(self, kind: ErrorKind, message: str) -> "DnsOutcome":
        self.error_kind = kind
        self.error = message
        return self

    def truncate(self, message: str) -> "DnsOutcome":
        self.truncated = True
        self.warnings.append(message)
        if self.error_kind is None:
            self.error_kind = ErrorKind.TOO_MANY_RECORDS
        return self

    def finish(self, elapsed: timedelta) -> "DnsOutcome":
        self.elapsed = elapsed
        self.success = self.error_kind is None or not self.error_kind.fatal
        return self
