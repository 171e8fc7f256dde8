import asyncio

import typer

from inkrypt_deploy.client import CloudflareClient
from inkrypt_deploy.commands._shared import fail, load_settings, report
from inkrypt_deploy.config import DeploySettings, pick
from inkrypt_deploy.deploy_config import resolve_deploy_config
from inkrypt_deploy.domain import normalize_domain
from inkrypt_deploy.errors import DeployError
from inkrypt_deploy.reconcile import resolve_zone
from inkrypt_deploy.schemas import Zone


def resolve_config(
    domain: str | None = typer.Option(
        None, "--domain", help="Public domain (falls back to DOMAIN / INKRYPT_DOMAIN)"
    ),
    rp_name: str | None = typer.Option(None, "--rp-name", help="WebAuthn relying party name"),
    cookie_samesite: str | None = typer.Option(
        None, "--cookie-samesite", help="Session cookie SameSite: Lax, Strict or None"
    ),
    cors_origin: str | None = typer.Option(
        None, "--cors-origin", help="Allowed CORS origin (defaults to the site origin)"
    ),
    worker_name: str | None = typer.Option(
        None, "--worker-name", help="Use this Worker name instead of the derived one"
    ),
    d1_name: str | None = typer.Option(
        None, "--d1-name", help="Use this D1 database name instead of the derived one"
    ),
):
    """Derive the deployment configuration from the domain."""
    settings = load_settings("resolve-config")
    try:
        config = resolve_deploy_config(
            pick(domain, settings.domain),
            rp_name=pick(rp_name, settings.rp_name),
            cookie_samesite=pick(cookie_samesite, settings.cookie_samesite),
            cors_origin=pick(cors_origin, settings.cors_origin),
            worker_name=pick(worker_name, settings.worker_name),
            d1_name=pick(d1_name, settings.d1_name),
        )
    except DeployError as e:
        fail(e)

    report(settings, f"Resolved deploy config for {config.domain}", config.model_dump())


async def _resolve_zone(settings: DeploySettings, token: str | None, domain: str) -> Zone:
    async with CloudflareClient(
        token,
        base_url=settings.cloudflare_api_base_url,
        timeout=settings.http_timeout_seconds,
    ) as cf:
        return await resolve_zone(cf, domain)


def resolve_zone_command(
    domain: str | None = typer.Option(
        None, "--domain", help="Public domain (falls back to DOMAIN / INKRYPT_DOMAIN)"
    ),
    token: str | None = typer.Option(
        None, "--token", help="Cloudflare API token (falls back to CLOUDFLARE_API_TOKEN)"
    ),
):
    """Find the active Cloudflare zone that owns the domain."""
    settings = load_settings("resolve-zone")
    try:
        normalized = normalize_domain(pick(domain, settings.domain))
        zone = asyncio.run(
            _resolve_zone(settings, pick(token, settings.cloudflare_api_token), normalized)
        )
    except DeployError as e:
        fail(e)

    report(
        settings,
        f"Resolved zone for {normalized}: {zone.zone_name} ({zone.zone_id})",
        zone.model_dump(),
    )
