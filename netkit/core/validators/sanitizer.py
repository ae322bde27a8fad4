# core/validators/sanitizer.py

import re

from netkit.core.logging.logger import setup_logger

logger = setup_logger(__name__)

MAX_DOMAIN_LENGTH = 255

_SCHEME_PREFIX = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


class InvalidInputError(ValueError):
    """Raised when a probe target cannot be used as given."""


def normalize_domain(domain: str | None) -> str:
    """
    Turn user input into a bare host name for DNS lookups.

    The length limit applies to the input as typed. A scheme prefix
    ("https://") and anything from the first "/" on are removed.

    Args:
        domain: Domain, host or URL-ish string entered by the user

    Returns:
        The host part of the input

    Raises:
        InvalidInputError: If the input is empty or too long
    """
    if domain is None or not domain.strip():
        raise InvalidInputError("Domain cannot be empty")

    if len(domain) > MAX_DOMAIN_LENGTH:
        raise InvalidInputError(
            f"Domain name too long (max {MAX_DOMAIN_LENGTH} characters)"
        )

    host = _SCHEME_PREFIX.sub("", domain.strip()).split("/")[0]
    if not host:
        raise InvalidInputError("Domain cannot be empty")

    return host


def normalize_url(url: str | None) -> str:
    """
    Prepare a URL for redirect tracing, defaulting to https when no
    scheme is given.

    Raises:
        InvalidInputError: If the URL is empty
    """
    if url is None or not url.strip():
        raise InvalidInputError("URL cannot be empty")

    url = url.strip()
    if not url.lower().startswith(("http://", "https://")):
        logger.debug(f"No scheme given for {url}, defaulting to https")
        url = "https://" + url
    return url


def sanitize_domain(domain: str) -> str:
    """
    Sanitize a domain taken from the command line.

    Raises:
        ValueError: If domain contains invalid characters
    """
    domain = domain.strip().strip("'\"")
    if not re.match(r"^[a-zA-Z0-9.\-_:/\[\]%]+$", domain):
        raise ValueError(f"Invalid domain format: {domain}")
    return domain
