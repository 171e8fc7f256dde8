"""Exception hierarchy for deployment commands.

Every failure a command can report derives from `DeployError`, so the CLI layer
can turn any of them into a one-line message and a non-zero exit code.
"""

from typing import Any


class DeployError(Exception):
    """Base class for all operational failures."""


class InvalidDomain(DeployError):
    """Domain input failed local validation."""


class InvalidSetting(DeployError):
    """An operator-supplied setting has an unsupported value."""


class MissingCredential(DeployError):
    """No API token was supplied."""


class ApiError(DeployError):
    """Cloudflare API call failed."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        url: str,
        errors: list[dict[str, Any]] | None = None,
        body_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.url = url
        self.errors = errors
        self.body_text = body_text


class ApiTransportError(ApiError):
    """No usable response: network failure, or a body that is not a valid API envelope."""


class ApiLogicError(ApiError):
    """Well-formed response reporting failure (non-2xx or success=false)."""


class ZoneNotFound(DeployError):
    """No active zone matches any suffix of the domain."""


class AmbiguousRecord(DeployError):
    """More than one DNS record occupies the target name."""


class DnsConflict(DeployError):
    """Existing DNS record differs from the desired one."""


class RouteConflict(DeployError):
    """Route pattern is already bound to another script."""

    def __init__(self, message: str, *, pattern: str, owner: str | None):
        super().__init__(message)
        self.pattern = pattern
        self.owner = owner


class TooManyResults(DeployError):
    """A listing returned more entries than fit in the single fetched page."""
