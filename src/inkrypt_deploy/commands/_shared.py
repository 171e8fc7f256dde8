"""Helpers shared by all commands: settings loading, reporting, failure handling."""

from typing import Any, NoReturn

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
import typer

from inkrypt_deploy.config import DeploySettings, get_settings
from inkrypt_deploy.errors import DeployError
from inkrypt_deploy.logging_config import get_logger, setup_logging
from inkrypt_deploy.outputs import emit_outputs

console = Console(highlight=False, emoji=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, emoji=False, soft_wrap=True)

logger = get_logger(__name__)


def load_settings(command: str) -> DeploySettings:
    """Read settings from the environment and configure logging for `command`."""
    try:
        settings = get_settings()
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "settings"
        err_console.print(
            f"[bold red]Error:[/bold red] invalid {escape(field)}: {escape(first['msg'])}"
        )
        raise typer.Exit(code=1) from None

    setup_logging(log_format=settings.log_format, log_level=settings.log_level, command=command)
    return settings


def fail(exc: DeployError) -> NoReturn:
    logger.error("command_failed", error=str(exc), error_type=type(exc).__name__)
    err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
    raise typer.Exit(code=1) from exc


def report(settings: DeploySettings, status: str, outputs: dict[str, Any]) -> None:
    """Emit outputs and the human-readable status line.

    Without a step output sink stdout carries the JSON result, so the status
    line moves to stderr.
    """
    emit_outputs(outputs, settings.github_output)
    if settings.github_output is not None:
        console.print(escape(status))
    else:
        err_console.print(escape(status))
