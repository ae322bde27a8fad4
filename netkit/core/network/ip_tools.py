# core/network/ip_tools.py

import ipaddress

import dns.resolver

from netkit.core.logging.logger import setup_logger
from netkit.core.settings import FALLBACK_DNS_SERVERS

logger = setup_logger(__name__)


def is_valid_ip(ip_string: str) -> bool:
    """
    Check if a string is a valid IP address (IPv4 or IPv6).

    Args:
        ip_string: String to check

    Returns:
        True if string is a valid IP address, False otherwise
    """
    try:
        ipaddress.ip_address(ip_string)
        return True
    except ValueError:
        return False


def get_dns_servers() -> list[str]:
    """
    List the resolvers configured on this machine.

    dnspython reads the same sources the OS stub resolver uses
    (/etc/resolv.conf, or the active interfaces' settings on Windows).
    When they cannot be read, for any reason, the well-known public pair
    is returned. The result is informational only and must never fail a
    lookup.
    """
    try:
        configured = dns.resolver.Resolver(configure=True).nameservers
    except Exception as e:
        logger.debug(f"Could not read system resolver configuration: {e}")
        return list(FALLBACK_DNS_SERVERS)

    servers = []
    for server in configured:
        server = str(server)
        if server not in servers:
            servers.append(server)
    return servers
