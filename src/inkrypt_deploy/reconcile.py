"""Idempotent convergence of Cloudflare resources.

Each function reads the current remote state, compares it with the desired
state and writes only when they differ. Existing state that does not match is
never overwritten unless the caller passes ``force=True``.
"""

from collections.abc import Iterable

from pydantic import TypeAdapter, ValidationError

from inkrypt_deploy.client import CloudflareClient
from inkrypt_deploy.domain import normalize_domain, zone_candidates
from inkrypt_deploy.errors import (
    AmbiguousRecord,
    ApiTransportError,
    DnsConflict,
    RouteConflict,
    TooManyResults,
    ZoneNotFound,
)
from inkrypt_deploy.logging_config import get_logger
from inkrypt_deploy.schemas import (
    ApiSuccess,
    CloudflareZone,
    DesiredARecord,
    DnsRecord,
    DnsResult,
    RouteResult,
    WorkerRoute,
    Zone,
)

logger = get_logger(__name__)

ZONES_PER_PAGE = 50
DNS_RECORDS_PER_PAGE = 100

_zones = TypeAdapter(list[CloudflareZone])
_records = TypeAdapter(list[DnsRecord])
_routes = TypeAdapter(list[WorkerRoute])


def _check_single_page(envelope: ApiSuccess, what: str) -> None:
    """Raise when the listing has entries beyond the page we fetched."""
    info = envelope.result_info
    if info is None:
        return
    returned = len(envelope.result) if isinstance(envelope.result, list) else 0
    if (info.total_pages or 1) > 1 or (info.total_count or 0) > returned:
        raise TooManyResults(
            f"{what}: {info.total_count} results reported but only {returned} fetched; "
            "refusing to act on a partial listing"
        )


def _parse_list(
    client: CloudflareClient, adapter: TypeAdapter, result: object, path: str
) -> list:
    """Validate a listing's items, treating schema mismatches as a malformed response."""
    try:
        return adapter.validate_python(result if isinstance(result, list) else [])
    except ValidationError as e:
        logger.error("cloudflare_malformed_listing", path=path, error_count=e.error_count())
        raise ApiTransportError(
            f"Cloudflare API returned malformed entries for {path}: {e.errors()[0]['msg']}",
            status=200,
            url=f"{client.base_url}{path}",
        ) from e


async def resolve_zone(client: CloudflareClient, domain: str) -> Zone:
    """Find the active zone that owns `domain` or its closest ancestor.

    Raises:
        InvalidDomain: If the domain does not normalize.
        ZoneNotFound: If no suffix of the domain is an active zone.
    """
    normalized = normalize_domain(domain)

    for name in zone_candidates(normalized):
        envelope = await client.request_page(
            "GET",
            "/zones",
            params={"name": name, "status": "active", "per_page": ZONES_PER_PAGE, "page": 1},
        )
        _check_single_page(envelope, f"Zone lookup for {name}")

        for zone in _parse_list(client, _zones, envelope.result, "/zones"):
            if zone.name == name:
                resolved = Zone(
                    zone_id=zone.id,
                    zone_name=zone.name,
                    account_id=zone.account.id if zone.account else None,
                )
                logger.info(
                    "zone_resolved",
                    domain=normalized,
                    zone_id=resolved.zone_id,
                    zone_name=resolved.zone_name,
                )
                return resolved

        logger.debug("zone_candidate_missing", candidate=name)

    raise ZoneNotFound(
        f"No active Cloudflare zone found for DOMAIN={normalized}. "
        "Is it added to Cloudflare and does the token have Zone:Read?"
    )


async def ensure_dns_a(
    client: CloudflareClient,
    zone_id: str,
    record_name: str,
    ip: str,
    proxied: bool = True,
    force: bool = False,
) -> DnsResult:
    """Make sure exactly one A record `record_name -> ip` exists.

    Returns:
        DnsResult with action ``created``, ``unchanged`` or ``updated``.

    Raises:
        AmbiguousRecord: More than one record exists for the name (even with force).
        DnsConflict: The existing record differs and force is off.
    """
    path = f"/zones/{zone_id}/dns_records"
    envelope = await client.request_page(
        "GET",
        path,
        params={"name": record_name, "per_page": DNS_RECORDS_PER_PAGE, "page": 1},
    )
    _check_single_page(envelope, f"DNS records for {record_name}")
    existing = _parse_list(client, _records, envelope.result, path)

    if len(existing) > 1:
        raise AmbiguousRecord(
            f"Multiple DNS records exist for {record_name} ({len(existing)}). Refusing to continue."
        )

    desired = DesiredARecord(name=record_name, content=ip, proxied=proxied)
    body = desired.model_dump()

    if not existing:
        created = await client.request("POST", path, json=body)
        record_id = created.get("id") if isinstance(created, dict) else None
        logger.info("dns_record_created", name=record_name, ip=ip, record_id=record_id)
        return DnsResult(action="created", record_id=record_id)

    record = existing[0]
    diffs = desired.mismatches(record)
    if not diffs:
        logger.info("dns_record_unchanged", name=record_name, record_id=record.id)
        return DnsResult(action="unchanged", record_id=record.id)

    if not force:
        raise DnsConflict(
            f"DNS record for {record_name} exists but does not match expected A -> {ip} "
            f"({'; '.join(diffs)}). Set FORCE_TAKEOVER_DNS=true to override."
        )

    updated = await client.request("PUT", f"{path}/{record.id}", json=body)
    record_id = updated.get("id") if isinstance(updated, dict) else None
    logger.warning(
        "dns_record_taken_over",
        name=record_name,
        record_id=record.id,
        differences=diffs,
    )
    return DnsResult(action="updated", record_id=record_id or record.id)


async def ensure_worker_routes(
    client: CloudflareClient,
    zone_id: str,
    worker_name: str,
    patterns: Iterable[str],
    force: bool = False,
) -> list[RouteResult]:
    """Bind every route pattern to `worker_name`.

    Patterns are handled one by one. The first conflict aborts the call; routes
    already created or updated before it stay in place, and re-running after the
    conflict is resolved converges the rest.

    Raises:
        RouteConflict: A pattern is bound to another script and force is off.
    """
    path = f"/zones/{zone_id}/workers/routes"
    routes = _parse_list(client, _routes, await client.request("GET", path), path)
    by_pattern: dict[str, WorkerRoute] = {}
    for route in routes:
        by_pattern.setdefault(route.pattern.lower(), route)

    results: list[RouteResult] = []
    seen: set[str] = set()
    for pattern in patterns:
        key = pattern.lower()
        if key in seen:
            continue
        seen.add(key)

        body = {"pattern": pattern, "script": worker_name}
        existing = by_pattern.get(key)

        if existing is None:
            created = await client.request("POST", path, json=body)
            route_id = created.get("id") if isinstance(created, dict) else None
            logger.info("worker_route_created", pattern=pattern, script=worker_name)
            results.append(RouteResult(pattern=pattern, action="created", route_id=route_id))
            continue

        if existing.script == worker_name:
            logger.info("worker_route_unchanged", pattern=pattern, script=worker_name)
            results.append(RouteResult(pattern=pattern, action="unchanged", route_id=existing.id))
            continue

        if not force:
            raise RouteConflict(
                f"Worker route {pattern} is already bound to {existing.script}. "
                "Set FORCE_TAKEOVER_ROUTES=true to override.",
                pattern=pattern,
                owner=existing.script,
            )

        await client.request("PUT", f"{path}/{existing.id}", json=body)
        logger.warning(
            "worker_route_taken_over",
            pattern=pattern,
            previous_script=existing.script,
            script=worker_name,
        )
        results.append(RouteResult(pattern=pattern, action="updated", route_id=existing.id))

    return results
