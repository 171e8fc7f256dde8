"""Cloudflare API v4 client.

Thin async wrapper around httpx that attaches the bearer token, unwraps the
`{success, result, errors}` envelope and turns every failure into an
`ApiError` subclass. One method call performs exactly one HTTP request.
"""

import json
from typing import Any

import httpx
from pydantic import ValidationError

from inkrypt_deploy.errors import ApiLogicError, ApiTransportError, MissingCredential
from inkrypt_deploy.logging_config import get_logger
from inkrypt_deploy.schemas import ApiFailure, ApiSuccess, envelope_adapter

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.cloudflare.com/client/v4"
USER_AGENT = "inkrypt-deploy/1.0"


class CloudflareClient:
    """Client for the Cloudflare control-plane API.

    Usage:
        async with CloudflareClient(token) as cf:
            zones = await cf.request("GET", "/zones", params={"name": "example.com"})
    """

    def __init__(
        self,
        token: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
    ):
        """Initialize Cloudflare client.

        Args:
            token: API token with Zone:Read, DNS:Edit and Workers Routes:Edit.
            base_url: API base URL.
            timeout: Per-request timeout in seconds.

        Raises:
            MissingCredential: If the token is empty.
        """
        token = (token or "").strip()
        if not token:
            raise MissingCredential("Missing CLOUDFLARE_API_TOKEN (or --token)")

        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            },
            timeout=timeout,
        )

    async def __aenter__(self) -> "CloudflareClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Perform a request and return the envelope's `result` payload."""
        envelope = await self.request_page(method, path, params=params, json=json)
        return envelope.result

    async def request_page(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> ApiSuccess:
        """Perform a request and return the whole success envelope.

        Raises:
            ApiTransportError: Network failure, or body is not JSON or not a
                Cloudflare envelope.
            ApiLogicError: Non-2xx status or `success: false`.
        """
        query = {k: _query_value(v) for k, v in (params or {}).items() if v is not None}
        kwargs: dict[str, Any] = {"params": query}
        if json is not None:
            kwargs["json"] = json

        logger.debug("cloudflare_request", method=method, path=path, params=query)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            url = f"{self.base_url}{path}"
            logger.error("cloudflare_transport_failed", method=method, url=url, error=str(e))
            raise ApiTransportError(
                f"Cloudflare API request failed: {type(e).__name__}: {e}",
                status=0,
                url=url,
            ) from e

        envelope = self._unwrap(response)
        logger.debug(
            "cloudflare_response",
            method=method,
            path=path,
            status=response.status_code,
        )
        return envelope

    def _unwrap(self, response: httpx.Response) -> ApiSuccess:
        url = str(response.request.url)
        status = response.status_code
        body_text = response.text

        try:
            data = _json_loads(body_text)
        except ValueError:
            logger.error("cloudflare_non_json_response", url=url, status=status)
            raise ApiTransportError(
                f"Cloudflare API returned non-JSON response ({status})",
                status=status,
                url=url,
                body_text=body_text,
            ) from None

        envelope: ApiSuccess | ApiFailure | None
        try:
            envelope = envelope_adapter.validate_python(data)
        except ValidationError:
            envelope = None

        if not response.is_success or isinstance(envelope, ApiFailure):
            errors = _raw_list(data, "errors")
            message = (
                _first_message(errors)
                or _first_message(_raw_list(data, "messages"))
                or f"Cloudflare API request failed ({status})"
            )
            logger.error(
                "cloudflare_request_failed",
                url=url,
                status=status,
                error=message,
            )
            raise ApiLogicError(
                message,
                status=status,
                url=url,
                errors=errors or None,
                body_text=body_text,
            )

        if envelope is None:
            logger.error("cloudflare_malformed_envelope", url=url, status=status)
            raise ApiTransportError(
                f"Cloudflare API returned a malformed response ({status})",
                status=status,
                url=url,
                body_text=body_text,
            )

        return envelope


def _json_loads(text: str) -> Any:
    if not text:
        return None
    return json.loads(text)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _raw_list(data: Any, key: str) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        return []
    items = data.get(key)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _first_message(items: list[dict[str, Any]]) -> str | None:
    for item in items:
        message = item.get("message")
        if message:
            return str(message)
    return None
