"""Deterministic resource names derived from the deployment domain."""

import hashlib
import re

from inkrypt_deploy.domain import normalize_domain

MAX_NAME_LENGTH = 63

WORKER_PREFIX = "inkrypt-api"
D1_PREFIX = "inkrypt"

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9.-]")
_DASH_RUNS = re.compile(r"-+")


def slugify_domain(domain: str) -> str:
    """Map a domain to a dash-separated slug (``notes.example.com`` -> ``notes-example-com``)."""
    slug = _NON_SLUG_CHARS.sub("-", domain.lower())
    slug = slug.replace(".", "-")
    slug = _DASH_RUNS.sub("-", slug).strip("-")
    return slug or "site"


def short_hash(domain: str) -> str:
    """First 8 hex characters of the SHA-256 of the domain."""
    return hashlib.sha256(domain.encode("utf-8")).hexdigest()[:8]


def build_name(prefix: str, slug: str, hash_: str, max_len: int = MAX_NAME_LENGTH) -> str:
    """Compose ``{prefix}-{slug}-{hash}`` within ``max_len`` characters.

    Only the slug is truncated, so the hash suffix always survives intact.

    Raises:
        ValueError: If prefix and hash alone leave no room for a slug character.
    """
    fixed = f"{prefix}--{hash_}"
    available = max_len - len(fixed)
    if available < 1:
        raise ValueError(f"Prefix {prefix!r} is too long for a {max_len}-character name")

    trimmed = slug[:available].rstrip("-")
    return _DASH_RUNS.sub("-", f"{prefix}-{trimmed}-{hash_}")


def derive_names(domain: str) -> dict[str, str]:
    """Worker and D1 database names for a domain."""
    normalized = normalize_domain(domain)
    slug = slugify_domain(normalized)
    hash_ = short_hash(normalized)
    return {
        "worker_name": build_name(WORKER_PREFIX, slug, hash_),
        "d1_name": build_name(D1_PREFIX, slug, hash_),
    }
