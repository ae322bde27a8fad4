# core/dns/records.py

import asyncio
import ipaddress
import socket

import dns.exception
import dns.resolver

from netkit.core.dns.models import DnsOutcome, DnsRecord, RecordType
from netkit.core.dns.resolver import INVALID_NAME, DNSQueryClient
from netkit.core.errors import ErrorKind, OperationCancelledError
from netkit.core.logging.logger import setup_logger
from netkit.core.network.ip_tools import is_valid_ip

logger = setup_logger(__name__)

MAX_MX_RECORDS = 50
MAX_TXT_RECORDS = 25
MAX_MX_VALUE_LENGTH = 500
MAX_TXT_VALUE_LENGTH = 2000
MAX_TTL = 2**31 - 1
MAX_PREFERENCE = 65535

_HOST_NOT_FOUND_ERRNOS = {
    code
    for code in (
        getattr(socket, "EAI_NONAME", None),
        getattr(socket, "EAI_NODATA", None),
    )
    if code is not None
}


def clip_value(value: str, limit: int) -> str:
    """Cut `value` to `limit` characters, the last three being an ellipsis."""
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(int(value), upper))


def _strip_root(name: str) -> str:
    return name[:-1] if name.endswith(".") and len(name) > 1 else name


async def resolve_host_addresses(domain: str) -> list[tuple[int, str]]:
    """
    Ask the OS resolver for every address of `domain`.

    Returns (family, address) pairs in resolver order without duplicates.
    Runs in the loop's executor and cannot be interrupted once started.
    """
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(domain, None, type=socket.SOCK_STREAM)

    seen = []
    for family, _, _, _, sockaddr in infos:
        entry = (family, sockaddr[0])
        if entry not in seen:
            seen.append(entry)
    return seen


async def resolve_canonical_name(domain: str) -> str:
    loop = asyncio.get_running_loop()
    hostname, _, _ = await loop.run_in_executor(None, socket.gethostbyname_ex, domain)
    return hostname


async def resolve_reverse_name(ip: str) -> str:
    loop = asyncio.get_running_loop()
    hostname, _, _ = await loop.run_in_executor(None, socket.gethostbyaddr, ip)
    return hostname


def _answer_ttl(answers) -> int:
    rrset = getattr(answers, "rrset", None)
    if rrset is None:
        return 0
    return clamp(rrset.ttl, 0, MAX_TTL)


class RecordResolvers:
    """
    One lookup strategy per record type. Each takes (domain, outcome),
    writes records or an error into the outcome and returns it; none of
    them raises.
    """

    def __init__(self, query_client: DNSQueryClient):
        self.query_client = query_client

    def table(self) -> dict:
        return {
            RecordType.A: self.lookup_a,
            RecordType.AAAA: self.lookup_aaaa,
            RecordType.CNAME: self.lookup_cname,
            RecordType.MX: self.lookup_mx,
            RecordType.TXT: self.lookup_txt,
            RecordType.NS: self.lookup_ns,
            RecordType.PTR: self.lookup_ptr,
        }

    async def lookup_a(self, domain: str, outcome: DnsOutcome) -> DnsOutcome:
        return await self._lookup_addresses(domain, outcome, socket.AF_INET, "A")

    async def lookup_aaaa(self, domain: str, outcome: DnsOutcome) -> DnsOutcome:
        return await self._lookup_addresses(domain, outcome, socket.AF_INET6, "AAAA")

    async def _lookup_addresses(
        self, domain: str, outcome: DnsOutcome, family: int, label: str
    ) -> DnsOutcome:
        try:
            addresses = await resolve_host_addresses(domain)
        except socket.gaierror as e:
            if e.errno in _HOST_NOT_FOUND_ERRNOS:
                logger.info(f"[{label}] Host {domain} not found.")
                return outcome.fail(ErrorKind.NOT_FOUND, f"Host not found: {domain}")
            return outcome.fail(ErrorKind.TRANSPORT, f"{label} lookup failed: {e}")
        except UnicodeError:
            return outcome.fail(ErrorKind.INVALID_INPUT, f"Invalid domain name: {domain}")
        except OSError as e:
            return outcome.fail(ErrorKind.TRANSPORT, f"{label} lookup failed: {e}")

        for addr_family, address in addresses:
            if addr_family == family:
                outcome.records.append(
                    DnsRecord(type=label, name=domain, value=address, ttl=0)
                )
        return outcome

    async def lookup_cname(self, domain: str, outcome: DnsOutcome) -> DnsOutcome:
        try:
            canonical = await resolve_canonical_name(domain)
        except socket.gaierror as e:
            if e.errno in _HOST_NOT_FOUND_ERRNOS:
                return outcome.fail(ErrorKind.NOT_FOUND, f"Host not found: {domain}")
            return outcome.fail(ErrorKind.TRANSPORT, f"CNAME lookup failed: {e}")
        except UnicodeError:
            return outcome.fail(ErrorKind.INVALID_INPUT, f"Invalid domain name: {domain}")
        except OSError as e:
            return outcome.fail(ErrorKind.TRANSPORT, f"CNAME lookup failed: {e}")

        if canonical and _strip_root(canonical).lower() != _strip_root(domain).lower():
            outcome.records.append(
                DnsRecord(type="CNAME", name=domain, value=canonical, ttl=0)
            )
        return outcome

    async def lookup_mx(self, domain: str, outcome: DnsOutcome) -> DnsOutcome:
        answers = await self._typed_query(domain, "MX", outcome)
        if answers is None:
            return outcome

        ttl = _answer_ttl(answers)
        count = 0
        for rdata in answers:
            if count >= MAX_MX_RECORDS:
                logger.warning(f"[MX] {domain} returned more than {MAX_MX_RECORDS} records")
                outcome.truncate(f"Too many MX records (showing first {MAX_MX_RECORDS})")
                break

            exchange = rdata.exchange.to_text() if rdata.exchange else "Invalid Exchange"
            outcome.records.append(
                DnsRecord(
                    type="MX",
                    name=domain,
                    value=clip_value(_strip_root(exchange), MAX_MX_VALUE_LENGTH),
                    ttl=ttl,
                    priority=clamp(rdata.preference, 0, MAX_PREFERENCE),
                )
            )
            count += 1

        if not outcome.records and not outcome.error:
            outcome.fail(ErrorKind.NOT_FOUND, "No MX records found")
        return outcome

    async def lookup_txt(self, domain: str, outcome: DnsOutcome) -> DnsOutcome:
        answers = await self._typed_query(domain, "TXT", outcome)
        if answers is None:
            return outcome

        ttl = _answer_ttl(answers)
        count = 0
        for rdata in answers:
            if count >= MAX_TXT_RECORDS:
                logger.warning(f"[TXT] {domain} returned more than {MAX_TXT_RECORDS} records")
                outcome.truncate(f"Too many TXT records (showing first {MAX_TXT_RECORDS})")
                break

            text = " ".join(
                part.decode("utf-8", errors="replace") for part in rdata.strings
            )
            outcome.records.append(
                DnsRecord(
                    type="TXT",
                    name=domain,
                    value=clip_value(text, MAX_TXT_VALUE_LENGTH),
                    ttl=ttl,
                )
            )
            count += 1

        if not outcome.records and not outcome.error:
            outcome.fail(ErrorKind.NOT_FOUND, "No TXT records found")
        return outcome

    async def lookup_ns(self, domain: str, outcome: DnsOutcome) -> DnsOutcome:
        answers = await self._typed_query(domain, "NS", outcome)
        if answers is None:
            return outcome

        ttl = _answer_ttl(answers)
        for rdata in answers:
            outcome.records.append(
                DnsRecord(
                    type="NS",
                    name=domain,
                    value=_strip_root(rdata.target.to_text()),
                    ttl=ttl,
                )
            )

        if not outcome.records:
            outcome.fail(ErrorKind.NOT_FOUND, "No NS records found")
        return outcome

    async def lookup_ptr(self, domain: str, outcome: DnsOutcome) -> DnsOutcome:
        # Hostnames are rejected rather than resolved first.
        if not is_valid_ip(domain):
            return outcome.fail(
                ErrorKind.INVALID_INPUT, "PTR lookup requires an IP address"
            )

        ip = str(ipaddress.ip_address(domain))
        try:
            hostname = await resolve_reverse_name(ip)
        except socket.herror:
            logger.info(f"[PTR] No reverse entry for {ip}.")
            return outcome.fail(ErrorKind.NOT_FOUND, f"No PTR record found for {ip}")
        except OSError as e:
            return outcome.fail(ErrorKind.TRANSPORT, f"PTR lookup failed: {e}")

        outcome.records.append(DnsRecord(type="PTR", name=domain, value=hostname, ttl=0))
        return outcome

    async def _typed_query(self, domain: str, record_type: str, outcome: DnsOutcome):
        """Run a protocol-level query, converting failures into the outcome."""
        try:
            return await self.query_client.query(domain, record_type)
        except OperationCancelledError:
            outcome.fail(ErrorKind.CANCELLED, f"{record_type} lookup was cancelled")
        except dns.resolver.NoAnswer:
            logger.info(f"No {record_type} records found for domain {domain}.")
            outcome.fail(ErrorKind.NOT_FOUND, f"No {record_type} records found")
        except dns.resolver.NXDOMAIN:
            logger.warning(f"[{record_type}] Domain {domain} does not exist.")
            outcome.fail(ErrorKind.NOT_FOUND, f"Domain {domain} does not exist")
        except INVALID_NAME as e:
            logger.warning(f"[{record_type}] Invalid domain name {domain}: {e}")
            outcome.fail(ErrorKind.INVALID_INPUT, f"Invalid domain name: {domain}")
        except dns.exception.Timeout:
            logger.error(f"DNS query lifetime exceeded for {domain} ({record_type}).")
            outcome.fail(
                ErrorKind.TRANSPORT, f"{record_type} lookup failed: query timed out"
            )
        except dns.exception.DNSException as e:
            logger.error(f"Error retrieving {record_type} records for {domain}: {e}")
            outcome.fail(ErrorKind.TRANSPORT, f"{record_type} lookup failed: {e}")
        return None
