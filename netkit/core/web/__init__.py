from netkit.core.web.models import (
    SENTINEL_STATUS_TEXT,
    SENTINEL_TARGET,
    RedirectHop,
    RedirectOutcome,
    TraceState,
)
from netkit.core.web.redirects import RedirectTracer

__all__ = [
    "SENTINEL_STATUS_TEXT",
    "SENTINEL_TARGET",
    "RedirectHop",
    "RedirectOutcome",
    "RedirectTracer",
    "TraceState",
]
