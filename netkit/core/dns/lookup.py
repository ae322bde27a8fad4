# core/dns/lookup.py

import asyncio
import time
from datetime import timedelta

from netkit.core.concurrency.gate import ConcurrencyGate, ShutdownSignal
from netkit.core.dns.models import ALL_RECORD_TYPES, DnsOutcome, DnsQuery, RecordType
from netkit.core.dns.records import RecordResolvers
from netkit.core.dns.resolver import DNSQueryClient
from netkit.core.errors import (
    ErrorKind,
    GateClosedError,
    GateTimeoutError,
    OperationCancelledError,
)
from netkit.core.logging.logger import setup_logger
from netkit.core.network.ip_tools import get_dns_servers
from netkit.core.settings import ProbeSettings
from netkit.core.validators.sanitizer import InvalidInputError, normalize_domain

logger = setup_logger(__name__)


class DnsResolver:
    """
    Entry point for DNS lookups.

    Each call holds one gate permit from dispatch to completion, ALL
    lookups included; the ALL fan-out runs its branches under that
    single permit. The gate and the shutdown signal live as long as the
    resolver.
    """

    def __init__(
        self,
        settings: ProbeSettings | None = None,
        query_client: DNSQueryClient | None = None,
    ):
        self.settings = settings or ProbeSettings()
        self.shutdown_signal = ShutdownSignal()
        self.gate = ConcurrencyGate(self.settings.gate_capacity, self.shutdown_signal)
        self.query_client = query_client or DNSQueryClient(
            self.shutdown_signal,
            timeout=self.settings.dns_timeout,
            retries=self.settings.dns_retries,
        )
        self.resolvers = RecordResolvers(self.query_client)
        self.strategies = self.resolvers.table()
        self.strategies[RecordType.ALL] = self.lookup_all
        self._server_label: str | None = None

    async def __aenter__(self) -> "DnsResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    def shutdown(self) -> None:
        """Refuse new lookups and cancel in-flight typed queries. Idempotent."""
        self.shutdown_signal.trigger()

    async def lookup(
        self, domain: str, record_type: str | RecordType = RecordType.A
    ) -> DnsOutcome:
        """
        Look up `record_type` records for `domain`.

        Never raises for probe failures: the returned outcome carries the
        error message and its ErrorKind.
        """
        started = time.perf_counter()
        outcome = DnsOutcome(
            domain=domain or "",
            record_type=record_type.value
            if isinstance(record_type, RecordType)
            else str(record_type).upper(),
        )

        def elapsed() -> timedelta:
            return timedelta(seconds=time.perf_counter() - started)

        if self.shutdown_signal.is_set:
            outcome.fail(
                ErrorKind.CANCELLED, "DNS lookup cancelled - service is shutting down"
            )
            return outcome.finish(elapsed())

        try:
            query = DnsQuery(
                domain=normalize_domain(domain),
                record_type=RecordType.parse(record_type),
            )
        except (ValueError, InvalidInputError) as e:
            logger.warning(f"Rejected DNS lookup for {domain!r}: {e}")
            outcome.fail(ErrorKind.INVALID_INPUT, str(e))
            return outcome.finish(elapsed())

        rtype, host = query.record_type, query.domain
        outcome.domain = host
        outcome.record_type = rtype.value

        try:
            async with self.gate.slot(self.settings.gate_timeout):
                outcome.server_used = await self._server_used()
                logger.debug(f"Looking up {rtype.value} records for {host}")
                await self.strategies[rtype](host, outcome)
        except GateTimeoutError:
            outcome.fail(
                ErrorKind.RESOURCE_EXHAUSTED,
                "DNS lookup timeout - too many concurrent operations",
            )
        except (GateClosedError, OperationCancelledError):
            outcome.fail(ErrorKind.CANCELLED, "DNS lookup was cancelled")
        except Exception as e:
            logger.error(
                f"Unexpected error looking up {rtype.value} for {host}: {e}",
                exc_info=True,
            )
            outcome.fail(ErrorKind.TRANSPORT, f"DNS lookup failed: {e}")

        return outcome.finish(elapsed())

    async def lookup_all(self, domain: str, outcome: DnsOutcome) -> DnsOutcome:
        """
        Run every record type concurrently and merge in ALL_RECORD_TYPES
        order. A failing branch never voids the others.
        """
        branches = [
            DnsOutcome(domain=domain, record_type=rtype.value)
            for rtype in ALL_RECORD_TYPES
        ]
        await asyncio.gather(
            *(
                self._run_branch(rtype, domain, branch)
                for rtype, branch in zip(ALL_RECORD_TYPES, branches, strict=True)
            )
        )

        for branch in branches:
            outcome.records.extend(branch.records)
            for warning in branch.warnings:
                outcome.truncate(warning)

        if not outcome.records:
            self._fail_empty_merge(outcome, branches)
        return outcome

    @staticmethod
    def _fail_empty_merge(outcome: DnsOutcome, branches: list[DnsOutcome]) -> None:
        """
        An empty merge is a valid answer only if some branch got one.
        Otherwise the first transport failure (or first fatal branch)
        decides the kind.
        """
        kinds = [b.error_kind for b in branches]
        if ErrorKind.CANCELLED in kinds:
            outcome.fail(ErrorKind.CANCELLED, "DNS lookup was cancelled")
            return
        if ErrorKind.NOT_FOUND in kinds:
            outcome.fail(ErrorKind.NOT_FOUND, "No records found for any record type")
            return

        fatal = [b for b in branches if b.error_kind is not None and b.error_kind.fatal]
        transport = [b for b in fatal if b.error_kind is ErrorKind.TRANSPORT]
        if not fatal:
            outcome.fail(ErrorKind.NOT_FOUND, "No records found for any record type")
            return

        cause = (transport or fatal)[0]
        outcome.fail(
            cause.error_kind,
            f"No records found for any record type ({cause.record_type}: {cause.error})",
        )

    async def _run_branch(
        self, rtype: RecordType, domain: str, branch: DnsOutcome
    ) -> DnsOutcome:
        try:
            await self.strategies[rtype](domain, branch)
        except Exception as e:
            logger.debug(f"Ignoring failed {rtype.value} branch for {domain}: {e}")
        if branch.error:
            logger.debug(f"{rtype.value} branch for {domain}: {branch.error}")
        return branch

    async def _server_used(self) -> str:
        """First system resolver, read once off the event loop."""
        if self._server_label is None:
            loop = asyncio.get_running_loop()
            servers = await loop.run_in_executor(None, get_dns_servers)
            self._server_label = servers[0] if servers else "System Default"
        return self._server_label
