# core/web/redirects.py

import asyncio
import time
from datetime import timedelta
from http import HTTPStatus
from urllib.parse import urljoin

import aiohttp

from netkit.core.errors import ErrorKind
from netkit.core.logging.logger import setup_logger
from netkit.core.settings import ProbeSettings
from netkit.core.validators.sanitizer import InvalidInputError, normalize_url
from netkit.core.web.models import (
    SENTINEL_STATUS_TEXT,
    SENTINEL_TARGET,
    RedirectHop,
    RedirectOutcome,
    TraceState,
)

logger = setup_logger(__name__)


def _elapsed_since(started: float) -> timedelta:
    return timedelta(seconds=time.perf_counter() - started)


def _status_text(status: int, reason: str | None) -> str:
    if reason:
        return reason
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"


def collect_headers(headers) -> dict[str, str]:
    """Flatten response headers, joining repeated names with ', '."""
    collected: dict[str, str] = {}
    for name, value in headers.items():
        if name in collected:
            collected[name] = f"{collected[name]}, {value}"
        else:
            collected[name] = value
    return collected


class RedirectTracer:
    """
    Follows a redirect chain by hand, one request per hop, recording
    every response on the way.
    """

    def __init__(self, settings: ProbeSettings | None = None):
        self.settings = settings or ProbeSettings()

    async def trace(self, url: str, max_hops: int | None = None) -> RedirectOutcome:
        """
        Trace the redirects starting at `url`.

        Args:
            url: Starting URL; https:// is assumed when no scheme is given
            max_hops: Redirects to follow before giving up

        Returns:
            RedirectOutcome with the ordered hops. Reaching the limit is
            reported as a success with a trailing sentinel hop.
        """
        max_hops = self.settings.max_hops if max_hops is None else max_hops
        started = time.perf_counter()
        outcome = RedirectOutcome(url=url or "")

        try:
            current_url = normalize_url(url)
            if max_hops < 1:
                raise InvalidInputError("Maximum hops must be at least 1")
        except InvalidInputError as e:
            logger.warning(f"Rejected redirect trace for {url!r}: {e}")
            self._terminate(outcome, ErrorKind.INVALID_INPUT, str(e))
            outcome.elapsed = _elapsed_since(started)
            return outcome

        outcome.url = current_url

        try:
            timeout_obj = aiohttp.ClientTimeout(total=self.settings.http_timeout)
            async with aiohttp.ClientSession(
                timeout=timeout_obj,
                headers={"User-Agent": self.settings.user_agent},
            ) as session:
                await self._follow(session, current_url, max_hops, outcome)
        except Exception as e:
            logger.error(f"Unexpected error tracing {current_url}: {e}", exc_info=True)
            self._terminate(outcome, ErrorKind.TRANSPORT, f"Unexpected error: {e}")

        outcome.elapsed = _elapsed_since(started)
        logger.info(
            f"Traced {current_url}: {outcome.state.value}, "
            f"{outcome.total_hops} redirect(s) in {outcome.elapsed.total_seconds() * 1000:.0f}ms"
        )
        return outcome

    async def _follow(
        self,
        session: aiohttp.ClientSession,
        current_url: str,
        max_hops: int,
        outcome: RedirectOutcome,
    ) -> RedirectOutcome:
        hop_count = 0

        while hop_count < max_hops:
            step = hop_count + 1
            hop_started = time.perf_counter()

            try:
                logger.debug(f"Step {step}: GET {current_url}")
                async with session.get(
                    current_url, allow_redirects=False, ssl=self.settings.verify_ssl
                ) as response:
                    status = response.status
                    status_text = _status_text(status, response.reason)
                    headers = collect_headers(response.headers)
                    location = response.headers.get("Location")
                hop_elapsed = _elapsed_since(hop_started)
            except asyncio.TimeoutError:
                logger.warning(f"Timeout at step {step} fetching {current_url}")
                return self._terminate(
                    outcome, ErrorKind.TRANSPORT, f"Request timeout at step {step}"
                )
            except aiohttp.ClientError as e:
                logger.warning(f"HTTP error at step {step} fetching {current_url}: {e}")
                return self._terminate(
                    outcome, ErrorKind.TRANSPORT, f"HTTP error at step {step}: {e}"
                )

            logger.debug(f"Step {step}: {status} {status_text}")

            if 300 <= status < 400:
                if not location:
                    return self._terminate(
                        outcome,
                        ErrorKind.PROTOCOL_VIOLATION,
                        f"Redirect response {status} without Location header",
                    )

                next_url = urljoin(current_url, location)
                outcome.hops.append(
                    RedirectHop(
                        from_url=current_url,
                        to_url=next_url,
                        status_code=status,
                        status_text=status_text,
                        elapsed=hop_elapsed,
                        headers=headers,
                    )
                )
                current_url = next_url
                hop_count += 1
                continue

            outcome.hops.append(
                RedirectHop(
                    from_url=current_url,
                    to_url=current_url,
                    status_code=status,
                    status_text=status_text,
                    elapsed=hop_elapsed,
                    headers=headers,
                )
            )
            outcome.state = TraceState.TERMINAL_SUCCESS
            outcome.success = True
            outcome.final_url = current_url
            outcome.total_hops = hop_count
            return outcome

        logger.warning(f"Redirect limit of {max_hops} reached at {current_url}")
        outcome.hops.append(
            RedirectHop(
                from_url=current_url,
                to_url=SENTINEL_TARGET,
                status_code=0,
                status_text=SENTINEL_STATUS_TEXT,
            )
        )
        outcome.state = TraceState.EXHAUSTED
        outcome.error_kind = ErrorKind.EXHAUSTED
        outcome.success = True
        outcome.final_url = current_url
        outcome.total_hops = hop_count
        return outcome

    @staticmethod
    def _terminate(
        outcome: RedirectOutcome, kind: ErrorKind, message: str
    ) -> RedirectOutcome:
        outcome.state = TraceState.TERMINAL_ERROR
        outcome.success = False
        outcome.error_kind = kind
        outcome.error = message
        outcome.total_hops = len(outcome.hops)
        return outcome
