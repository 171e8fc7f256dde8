"""Command result emission.

Inside a CI step (``GITHUB_OUTPUT`` set) each field is appended to the step
output file using a heredoc delimiter that is unique per value, so values with
embedded newlines cannot break out. Outside CI the result is printed as JSON.
"""

import json
from pathlib import Path
from typing import Any
import uuid

import typer


def format_output_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def append_step_output(path: Path, key: str, value: Any) -> None:
    """Append one ``key<<DELIM ... DELIM`` block to the step output file."""
    delimiter = f"EOF_{uuid.uuid4().hex}"
    with path.open("a", encoding="utf-8") as f:
        f.write(f"{key}<<{delimiter}\n{format_output_value(value)}\n{delimiter}\n")


def emit_outputs(outputs: dict[str, Any], sink: Path | None) -> None:
    """Write outputs to the step output sink, or print them as JSON to stdout."""
    if sink is not None:
        for key, value in outputs.items():
            append_step_output(sink, key, value)
        return

    typer.echo(json.dumps(outputs, indent=2))
