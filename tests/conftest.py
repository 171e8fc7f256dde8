import logging

import pytest
import structlog

BASE_URL = "https://api.cloudflare.com/client/v4"

_ENV_VARS = (
    "CLOUDFLARE_API_TOKEN",
    "CLOUDFLARE_API_BASE_URL",
    "CLOUDFLARE_HTTP_TIMEOUT",
    "DOMAIN",
    "INKRYPT_DOMAIN",
    "INKRYPT_RP_NAME",
    "INKRYPT_COOKIE_SAMESITE",
    "INKRYPT_CORS_ORIGIN",
    "INKRYPT_WORKER_NAME",
    "INKRYPT_D1_NAME",
    "FORCE_TAKEOVER_DNS",
    "FORCE_TAKEOVER_ROUTES",
    "GITHUB_OUTPUT",
    "LOG_FORMAT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from CI variables and any local .env file."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def envelope():
    """Build a Cloudflare success envelope."""

    def build(result, result_info=None):
        body = {"success": True, "errors": [], "messages": [], "result": result}
        if result_info is not None:
            body["result_info"] = result_info
        return body

    return build
