"""Pydantic schemas for Cloudflare API payloads and command results.

Remote entities keep unknown fields (`extra="allow"`) because the API returns
far more than the reconciler looks at.

API Documentation: https://developers.cloudflare.com/api/
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

Action = Literal["created", "unchanged", "updated"]


class ApiMessage(BaseModel):
    """Entry of the `errors` / `messages` arrays."""

    model_config = ConfigDict(extra="allow")

    code: int | None = Field(None, description="Provider error code")
    message: str = Field("", description="Human-readable message")


class ResultInfo(BaseModel):
    """Paging information attached to list responses."""

    model_config = ConfigDict(extra="allow")

    page: int | None = None
    per_page: int | None = None
    count: int | None = None
    total_count: int | None = None
    total_pages: int | None = None


class ApiSuccess(BaseModel):
    """Envelope of a successful call."""

    model_config = ConfigDict(extra="allow")

    success: Literal[True]
    result: Any = None
    result_info: ResultInfo | None = None
    messages: list[ApiMessage] = Field(default_factory=list)


class ApiFailure(BaseModel):
    """Envelope of a call the API rejected."""

    model_config = ConfigDict(extra="allow")

    success: Literal[False]
    errors: list[ApiMessage] = Field(default_factory=list)
    messages: list[ApiMessage] = Field(default_factory=list)


ApiEnvelope = ApiSuccess | ApiFailure
envelope_adapter: TypeAdapter[ApiEnvelope] = TypeAdapter(ApiEnvelope)


class ZoneAccount(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str | None = None


class CloudflareZone(BaseModel):
    """Zone item from GET /zones."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    status: str | None = None
    account: ZoneAccount | None = None


class Zone(BaseModel):
    """Resolved zone as reported to the caller."""

    model_config = ConfigDict(frozen=True)

    zone_id: str
    zone_name: str
    account_id: str | None = None


class DnsRecord(BaseModel):
    """Record from GET /zones/{zone_id}/dns_records."""

    model_config = ConfigDict(extra="allow")

    id: str
    type: str
    name: str
    content: str
    proxied: bool | None = None
    ttl: int | None = None


class DesiredARecord(BaseModel):
    """Body sent when creating or overwriting the managed A record."""

    type: Literal["A"] = "A"
    name: str
    content: str
    ttl: int = Field(1, description="1 means automatic")
    proxied: bool = True

    def mismatches(self, record: DnsRecord) -> list[str]:
        """Names of the fields where `record` differs from this desired state."""
        diffs = []
        if record.type != self.type:
            diffs.append(f"type {record.type} != {self.type}")
        if record.name.lower() != self.name.lower():
            diffs.append(f"name {record.name} != {self.name}")
        if record.content != self.content:
            diffs.append(f"content {record.content} != {self.content}")
        if bool(record.proxied) != self.proxied:
            diffs.append(f"proxied {record.proxied} != {self.proxied}")
        return diffs


class WorkerRoute(BaseModel):
    """Route from GET /zones/{zone_id}/workers/routes."""

    model_config = ConfigDict(extra="allow")

    id: str
    pattern: str
    script: str | None = None


class DnsResult(BaseModel):
    action: Action
    record_id: str | None = None


class RouteResult(BaseModel):
    pattern: str
    action: Action
    route_id: str | None = None


class ResolvedConfig(BaseModel):
    """Runtime configuration derived from the deployment domain."""

    model_config = ConfigDict(frozen=True)

    domain: str
    origin: str
    rp_id: str
    rp_name: str
    cors_origin: str
    cookie_samesite: Literal["Lax", "Strict", "None"]
    worker_name: str
    d1_name: str
