import asyncio
from collections import Counter

import typer

from inkrypt_deploy.client import CloudflareClient
from inkrypt_deploy.commands._shared import fail, load_settings, report
from inkrypt_deploy.config import DeploySettings, parse_bool, pick
from inkrypt_deploy.domain import normalize_domain
from inkrypt_deploy.errors import DeployError
from inkrypt_deploy.reconcile import ensure_dns_a, ensure_worker_routes
from inkrypt_deploy.schemas import DnsResult, RouteResult

DEFAULT_RECORD_IP = "192.0.2.1"


def _client(settings: DeploySettings, token: str | None) -> CloudflareClient:
    return CloudflareClient(
        pick(token, settings.cloudflare_api_token),
        base_url=settings.cloudflare_api_base_url,
        timeout=settings.http_timeout_seconds,
    )


def split_route_patterns(values: list[str]) -> list[str]:
    """Flatten repeated and comma-separated ``--route`` values."""
    patterns = []
    for value in values:
        patterns.extend(part.strip() for part in value.split(",") if part.strip())
    return patterns


async def _ensure_dns(
    settings: DeploySettings,
    token: str | None,
    zone_id: str,
    name: str,
    ip: str,
    proxied: bool,
    force: bool,
) -> DnsResult:
    async with _client(settings, token) as cf:
        return await ensure_dns_a(cf, zone_id, name, ip, proxied=proxied, force=force)


def ensure_dns_a_command(
    zone_id: str = typer.Option(..., "--zone-id", help="Cloudflare zone ID"),
    name: str | None = typer.Option(
        None, "--name", help="Record FQDN (falls back to --domain, then DOMAIN / INKRYPT_DOMAIN)"
    ),
    domain: str | None = typer.Option(None, "--domain", hidden=True),
    ip: str = typer.Option(DEFAULT_RECORD_IP, "--ip", help="Record content"),
    proxied: str | None = typer.Option(None, "--proxied", help="true|false (default true)"),
    force: bool = typer.Option(
        False, "--force", help="Overwrite a differing record (or FORCE_TAKEOVER_DNS=true)"
    ),
    token: str | None = typer.Option(
        None, "--token", help="Cloudflare API token (falls back to CLOUDFLARE_API_TOKEN)"
    ),
):
    """Create the proxied A record for the site, or verify it is already in place."""
    settings = load_settings("ensure-dns-a")

    zone_id = zone_id.strip()
    if not zone_id:
        raise typer.BadParameter("must not be empty", param_hint="--zone-id")

    ip = ip.strip() or DEFAULT_RECORD_IP
    want_proxied = True if proxied is None else parse_bool(proxied)
    force = force or settings.force_takeover_dns

    try:
        record_name = normalize_domain(pick(name, pick(domain, settings.domain)))
        result = asyncio.run(
            _ensure_dns(settings, token, zone_id, record_name, ip, want_proxied, force)
        )
    except DeployError as e:
        fail(e)

    report(
        settings,
        f"DNS A {record_name} -> {ip}: {result.action}",
        {
            "action": result.action,
            "record_id": result.record_id,
            "name": record_name,
            "ip": ip,
            "proxied": want_proxied,
        },
    )


async def _ensure_routes(
    settings: DeploySettings,
    token: str | None,
    zone_id: str,
    worker_name: str,
    patterns: list[str],
    force: bool,
) -> list[RouteResult]:
    async with _client(settings, token) as cf:
        return await ensure_worker_routes(cf, zone_id, worker_name, patterns, force=force)


def ensure_worker_routes_command(
    zone_id: str = typer.Option(..., "--zone-id", help="Cloudflare zone ID"),
    worker_name: str = typer.Option(..., "--worker-name", help="Worker script to bind"),
    route: list[str] = typer.Option(
        ..., "--route", help="Route pattern, repeatable or comma-separated"
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Rebind routes owned by another Worker (or FORCE_TAKEOVER_ROUTES=true)",
    ),
    token: str | None = typer.Option(
        None, "--token", help="Cloudflare API token (falls back to CLOUDFLARE_API_TOKEN)"
    ),
):
    """Bind every route pattern to the Worker."""
    settings = load_settings("ensure-worker-routes")

    zone_id = zone_id.strip()
    worker_name = worker_name.strip()
    if not zone_id:
        raise typer.BadParameter("must not be empty", param_hint="--zone-id")
    if not worker_name:
        raise typer.BadParameter("must not be empty", param_hint="--worker-name")

    patterns = split_route_patterns(route)
    if not patterns:
        raise typer.BadParameter("at least one route pattern is required", param_hint="--route")

    force = force or settings.force_takeover_routes

    try:
        results = asyncio.run(
            _ensure_routes(settings, token, zone_id, worker_name, patterns, force)
        )
    except DeployError as e:
        fail(e)

    actions = Counter(r.action for r in results)
    report(
        settings,
        f"Worker routes ensured ({len(results)})",
        {
            "count": len(results),
            "created": actions["created"],
            "updated": actions["updated"],
            "unchanged": actions["unchanged"],
        },
    )
