# core/report/formatter.py

from datetime import timedelta

from netkit.core.dns.models import DnsOutcome
from netkit.core.web.models import RedirectOutcome

# Headers worth showing for every redirect step.
HIGHLIGHT_HEADERS = ("Location", "Server", "Cache-Control")


def _ms(duration: timedelta) -> str:
    return f"{duration.total_seconds() * 1000:.0f}ms"


def format_dns_outcome(outcome: DnsOutcome) -> str:
    """Render a lookup as a short summary followed by a record table."""
    lines = [
        f"=== DNS LOOKUP: {outcome.domain} ({outcome.record_type}) ===",
        f"DNS Server: {outcome.server_used or 'System Default'}",
        f"Query Time: {_ms(outcome.elapsed)}",
    ]

    if outcome.error:
        label = "Error" if not outcome.success else "Note"
        lines.append(f"{label}: {outcome.error}")
    for warning in outcome.warnings:
        lines.append(f"Warning: {warning}")

    if not outcome.records:
        lines.append("No records returned.")
        return "\n".join(lines)

    lines.append(f"Records: {len(outcome.records)}")
    lines.append("")
    type_width = max(len("TYPE"), *(len(r.type) for r in outcome.records))
    lines.append(f"{'TYPE':<{type_width}}  {'TTL':>6}  {'PRIO':>5}  VALUE")
    for record in outcome.records:
        priority = str(record.priority) if record.type == "MX" else "-"
        lines.append(
            f"{record.type:<{type_width}}  {record.ttl:>6}  {priority:>5}  {record.value}"
        )
    return "\n".join(lines)


def format_redirect_outcome(outcome: RedirectOutcome) -> str:
    """Render a redirect chain one step at a time."""
    if not outcome.success:
        lines = [f"=== REDIRECT CHECK FAILED: {outcome.url} ===", f"Error: {outcome.error}"]
        if outcome.hops:
            lines.append(f"Redirects followed before the failure: {len(outcome.hops)}")
            lines.append("")
            lines.extend(_format_hops(outcome))
        return "\n".join(lines)

    lines = [
        "=== REDIRECT CHAIN ANALYSIS ===",
        f"Total Redirects: {outcome.total_hops}",
        f"Total Time: {_ms(outcome.elapsed)}",
        f"Final URL: {outcome.final_url}",
    ]
    if outcome.limit_reached:
        lines.append("Maximum redirect limit reached")
    lines.append("")

    if outcome.total_hops == 0:
        lines.append("No redirects found - URL responded directly.")
        lines.append("")

    lines.extend(_format_hops(outcome))
    return "\n".join(lines).rstrip()


def _format_hops(outcome: RedirectOutcome) -> list[str]:
    lines = []
    for index, hop in enumerate(outcome.hops, start=1):
        lines.append(f"=== STEP {index} ===")
        lines.append(f"From: {hop.from_url}")

        if hop.is_sentinel:
            lines.append(f"Error: {hop.to_url}")
            lines.append(f"Status: {hop.status_text}")
        elif hop.to_url != hop.from_url:
            lines.append(f"To: {hop.to_url}")
            lines.append(f"Status: {hop.status_code} {hop.status_text}")
        else:
            lines.append(f"Status: {hop.status_code} {hop.status_text}")

        if hop.elapsed > timedelta(0):
            lines.append(f"Response Time: {_ms(hop.elapsed)}")

        for name in HIGHLIGHT_HEADERS:
            value = _header(hop.headers, name)
            if value is not None:
                lines.append(f"{name}: {value}")
        lines.append("")
    return lines


def _header(headers: dict[str, str], name: str) -> str | None:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None
