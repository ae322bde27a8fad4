# core/dns/resolver.py

import asyncio
from random import random
from typing import Any

import dns.asyncresolver
import dns.exception
import dns.name
import dns.resolver

from netkit.core.concurrency.gate import ShutdownSignal
from netkit.core.logging.logger import setup_logger
from netkit.core.settings import FALLBACK_DNS_SERVERS

logger = setup_logger(__name__)

# Malformed query names (empty or oversized labels, oversized names).
INVALID_NAME = (
    dns.exception.SyntaxError,
    dns.name.NameTooLong,
)

# Answers that will not change on a second attempt.
NON_RETRYABLE = (
    dns.resolver.NXDOMAIN,
    dns.resolver.NoAnswer,
    dns.resolver.NoNameservers,
    *INVALID_NAME,
)


class DNSQueryClient:
    """
    Typed DNS queries (MX, TXT, NS) with retry logic and exponential
    backoff. Every attempt and every backoff sleep runs through the
    shutdown signal so a shutdown cancels the query cooperatively.
    """

    def __init__(
        self,
        shutdown: ShutdownSignal,
        timeout: float = 10.0,
        retries: int = 2,
        backoff_factor: float = 1.5,
    ):
        self.shutdown = shutdown
        self.retries = retries
        self.backoff_factor = backoff_factor
        self.resolver = self._build_resolver()
        self.resolver.timeout = timeout
        self.resolver.lifetime = timeout

    @staticmethod
    def _build_resolver() -> dns.asyncresolver.Resolver:
        try:
            return dns.asyncresolver.Resolver()
        except (dns.resolver.NoResolverConfiguration, OSError, ValueError) as e:
            logger.warning(
                f"No usable system resolver configuration ({e}), "
                f"falling back to {', '.join(FALLBACK_DNS_SERVERS)}"
            )
            resolver = dns.asyncresolver.Resolver(configure=False)
            resolver.nameservers = list(FALLBACK_DNS_SERVERS)
            return resolver

    async def query(self, domain: str, record_type: str) -> Any:
        """
        Resolve `record_type` records for `domain`.

        Args:
            domain: Domain name to resolve
            record_type: DNS record type (e.g., 'MX', 'TXT', 'NS')

        Returns:
            dnspython answer containing the requested records

        Raises:
            OperationCancelledError: shutdown was triggered mid-query
            Various dns.resolver exceptions based on the query outcome
        """
        current_retry = 0

        while True:
            try:
                return await self.shutdown.run_cancellable(
                    self.resolver.resolve(domain, record_type)
                )
            except NON_RETRYABLE:
                raise
            except dns.exception.DNSException as e:
                if current_retry >= self.retries:
                    raise

                wait_time = (self.backoff_factor**current_retry) * (1 + random())
                logger.warning(
                    f"DNS resolution error ({domain}, {record_type}): {e}. "
                    f"Retry {current_retry + 1}/{self.retries} in {wait_time:.2f} seconds..."
                )
                await self.shutdown.run_cancellable(asyncio.sleep(wait_time))
                current_retry += 1
