# core/settings.py

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from netkit.core.logging.logger import setup_logger

logger = setup_logger(__name__)

USER_AGENT = "NetKit-RedirectChecker/1.0 (+https://github.com/netkit)"

FALLBACK_DNS_SERVERS = ["8.8.8.8", "1.1.1.1"]


@dataclass
class ProbeSettings:
    """Tunables shared by the DNS resolver and the redirect tracer."""

    gate_capacity: int = 5
    gate_timeout: float = 5.0
    dns_timeout: float = 10.0
    dns_retries: int = 2
    http_timeout: float = 30.0
    max_hops: int = 10
    verify_ssl: bool = True
    user_agent: str = USER_AGENT

    @classmethod
    def from_env(cls) -> "ProbeSettings":
        """
        Build settings from NETKIT_* environment variables (a .env file is
        loaded first). Missing or malformed values keep their defaults.
        """
        load_dotenv()
        defaults = cls()

        return cls(
            gate_capacity=_env_int("NETKIT_GATE_CAPACITY", defaults.gate_capacity),
            gate_timeout=_env_float("NETKIT_GATE_TIMEOUT", defaults.gate_timeout),
            dns_timeout=_env_float("NETKIT_DNS_TIMEOUT", defaults.dns_timeout),
            dns_retries=_env_int("NETKIT_DNS_RETRIES", defaults.dns_retries, minimum=0),
            http_timeout=_env_float("NETKIT_HTTP_TIMEOUT", defaults.http_timeout),
            max_hops=_env_int("NETKIT_MAX_HOPS", defaults.max_hops),
            verify_ssl=_env_bool("NETKIT_VERIFY_SSL", defaults.verify_ssl),
            user_agent=os.getenv("NETKIT_USER_AGENT") or defaults.user_agent,
        )


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value < minimum:
        logger.warning(f"{name} must be >= {minimum}, using {default}")
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, using {default}")
        return default
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    lowered = raw.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
    return default
