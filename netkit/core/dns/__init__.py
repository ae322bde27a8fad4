from netkit.core.dns.lookup import DnsResolver
from netkit.core.dns.models import (
    ALL_RECORD_TYPES,
    DnsOutcome,
    DnsQuery,
    DnsRecord,
    RecordType,
)
from netkit.core.dns.records import RecordResolvers
from netkit.core.dns.resolver import DNSQueryClient
from netkit.core.errors import ErrorKind

__all__ = [
    "ALL_RECORD_TYPES",
    "DNSQueryClient",
    "DnsOutcome",
    "DnsQuery",
    "DnsRecord",
    "DnsResolver",
    "ErrorKind",
    "RecordResolvers",
    "RecordType",
]
