from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from netkit.core.errors import ErrorKind

SENTINEL_TARGET = "Maximum redirect limit reached"
SENTINEL_STATUS_TEXT = "ERR_TOO_MANY_REDIRECTS"


class TraceState(Enum):
    """States of the redirect-following loop."""

    FOLLOWING = "following"
    TERMINAL_SUCCESS = "terminal_success"
    TERMINAL_ERROR = "terminal_error"
    EXHAUSTED = "exhausted"


@dataclass
class RedirectHop:
    """One request/response step of a redirect chain."""

    from_url: str
    to_url: str
    status_code: int
    status_text: str
    elapsed: timedelta = field(default_factory=timedelta)
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def is_sentinel(self) -> bool:
        return self.status_code == 0 and self.status_text == SENTINEL_STATUS_TEXT


@dataclass
class RedirectOutcome:
    """Result of tracing one URL."""

    url: str
    success: bool = False
    error: str = ""
    error_kind: ErrorKind | None = None
    state: TraceState = TraceState.FOLLOWING
    hops: list[RedirectHop] = field(default_factory=list)
    final_url: str = ""
    total_hops: int = 0
    elapsed: timedelta = field(default_factory=timedelta)

    @property
    def limit_reached(self) -> bool:
        return self.state is TraceState.EXHAUSTED
