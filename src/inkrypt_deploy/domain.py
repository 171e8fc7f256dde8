"""Domain normalization.

Turns whatever the operator typed (`notes.example.com`, `https://Notes.Example.com/`,
`notes.example.com.`) into a bare lowercase hostname, or fails with a message
naming the rule that was broken.
"""

import re
from urllib.parse import urlsplit

from inkrypt_deploy.errors import InvalidDomain

MAX_DOMAIN_LENGTH = 253
MAX_LABEL_LENGTH = 63

_DOMAIN_CHARS = re.compile(r"^[a-z0-9.-]+$")
_LABEL_CHARS = re.compile(r"^[a-z0-9-]+$")


def normalize_domain(raw: str | None) -> str:
    """Validate and canonicalize a hostname or bare http(s) origin URL.

    Args:
        raw: Hostname or URL such as ``https://notes.example.com/``.

    Returns:
        Lowercase hostname without trailing dot.

    Raises:
        InvalidDomain: If the input is empty, carries a path, query, fragment or
            port, uses another scheme, or is not a valid multi-label hostname.
    """
    if raw is None:
        raise InvalidDomain("DOMAIN is required")
    value = str(raw).strip()
    if not value:
        raise InvalidDomain("DOMAIN is required")

    if "://" in value:
        return normalize_domain(_hostname_from_url(value))

    if "/" in value or "?" in value or "#" in value:
        raise InvalidDomain("DOMAIN must not include path/query/hash")
    if ":" in value:
        raise InvalidDomain("DOMAIN must not include a port")

    domain = value.rstrip(".").lower()
    if not domain:
        raise InvalidDomain("DOMAIN is required")

    if not _DOMAIN_CHARS.match(domain):
        raise InvalidDomain("DOMAIN must be an ASCII hostname (use punycode for IDN)")
    if "." not in domain:
        raise InvalidDomain("DOMAIN must contain at least one dot, e.g. notes.example.com")
    if len(domain) > MAX_DOMAIN_LENGTH:
        raise InvalidDomain(f"DOMAIN is too long (max {MAX_DOMAIN_LENGTH} characters)")

    for label in domain.split("."):
        if not label:
            raise InvalidDomain("DOMAIN contains an empty label")
        if len(label) > MAX_LABEL_LENGTH:
            raise InvalidDomain(f"DOMAIN label is too long (max {MAX_LABEL_LENGTH} characters)")
        if not _LABEL_CHARS.match(label):
            raise InvalidDomain("DOMAIN label contains invalid characters")
        if label.startswith("-") or label.endswith("-"):
            raise InvalidDomain('DOMAIN label must not start or end with "-"')

    return domain


def _hostname_from_url(value: str) -> str:
    parts = urlsplit(value)
    if parts.scheme.lower() not in ("http", "https"):
        raise InvalidDomain("DOMAIN must be a hostname or a http(s) URL")
    if parts.path not in ("", "/") or parts.query or parts.fragment:
        raise InvalidDomain("DOMAIN URL must not include path/query/hash")
    if "@" in parts.netloc:
        raise InvalidDomain("DOMAIN URL must not include credentials")
    if parts.netloc.startswith("["):
        raise InvalidDomain("DOMAIN must be a hostname, not an IP literal")
    if ":" in parts.netloc:
        raise InvalidDomain("DOMAIN must not include a port")
    if not parts.hostname:
        raise InvalidDomain("DOMAIN URL has no hostname")
    return parts.hostname


def zone_candidates(domain: str) -> list[str]:
    """List every suffix with at least two labels, most specific first.

    ``a.b.example.com`` yields ``a.b.example.com``, ``b.example.com``, ``example.com``.
    """
    labels = domain.split(".")
    return [".".join(labels[i:]) for i in range(len(labels) - 1)]
