from netkit.core.validators.sanitizer import (
    InvalidInputError,
    normalize_domain,
    normalize_url,
    sanitize_domain,
)

__all__ = ["InvalidInputError", "normalize_domain", "normalize_url", "sanitize_domain"]
