"""Runtime configuration derived from the deployment domain."""

from inkrypt_deploy.domain import normalize_domain
from inkrypt_deploy.errors import InvalidSetting
from inkrypt_deploy.naming import derive_names
from inkrypt_deploy.schemas import ResolvedConfig

DEFAULT_RP_NAME = "Inkrypt"
DEFAULT_COOKIE_SAMESITE = "Lax"

_SAMESITE_VALUES = {"lax": "Lax", "strict": "Strict", "none": "None"}


def canonical_samesite(value: str | None) -> str:
    """Canonical spelling of a SameSite value (``strict`` -> ``Strict``)."""
    raw = (value or "").strip()
    if not raw:
        return DEFAULT_COOKIE_SAMESITE
    try:
        return _SAMESITE_VALUES[raw.lower()]
    except KeyError:
        raise InvalidSetting(
            f"Cookie SameSite must be one of Lax, Strict, None (got {raw!r})"
        ) from None


def resolve_deploy_config(
    domain: str | None,
    *,
    rp_name: str | None = None,
    cookie_samesite: str | None = None,
    cors_origin: str | None = None,
    worker_name: str | None = None,
    d1_name: str | None = None,
) -> ResolvedConfig:
    """Build the deployment configuration for a domain.

    Explicit `worker_name` / `d1_name` values are used as-is; otherwise the names
    are derived from the domain. Blank strings count as "not given".
    """
    normalized = normalize_domain(domain)
    origin = f"https://{normalized}"
    names = derive_names(normalized)

    return ResolvedConfig(
        domain=normalized,
        origin=origin,
        rp_id=normalized,
        rp_name=_or_default(rp_name, DEFAULT_RP_NAME),
        cors_origin=_or_default(cors_origin, origin),
        cookie_samesite=canonical_samesite(cookie_samesite),
        worker_name=_or_default(worker_name, names["worker_name"]),
        d1_name=_or_default(d1_name, names["d1_name"]),
    )


def _or_default(value: str | None, default: str) -> str:
    value = (value or "").strip()
    return value or default
