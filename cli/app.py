from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import echo_heading, echo_key_values, render_entity, render_page


class Kind(str, Enum):
    sensor_type = "sensor-type"
    sensor = "sensor"
    sensor_reading = "sensor-reading"


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the sensors info service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def parse_assignments(assignments: Optional[List[str]]) -> Dict[str, str]:
    """Turn ``NAME=VALUE`` arguments into request fields."""
    fields: Dict[str, str] = {}
    for assignment in assignments or []:
        name, sep, value = assignment.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(
                f"expected NAME=VALUE, got {assignment!r}", param_hint="NAME=VALUE"
            )
        fields[name.strip()] = value
    return fields


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Sensors API base URL (defaults to API_BASE_URL env or http://localhost:8000/sensors-info).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("add")
def add_command(
    ctx: typer.Context,
    kind: Kind = typer.Argument(..., help="Kind of entity to add."),
    assignments: Optional[List[str]] = typer.Argument(None, metavar="NAME=VALUE...", help="Entity fields."),
) -> None:
    """Add a sensor-type, sensor or sensor-reading."""
    state = _get_state(ctx)
    fields = parse_assignments(assignments)
    entity = state.client.add(kind.value, fields)
    typer.secho(f"Added {kind.value}.", fg=typer.colors.GREEN)
    render_entity(entity)


@app.command("find")
def find_command(
    ctx: typer.Context,
    kind: Kind = typer.Argument(..., help="Kind of entity to find."),
    assignments: Optional[List[str]] = typer.Argument(None, metavar="NAME=VALUE...", help="Search fields."),
) -> None:
    """Find entities matching the given fields, one page at a time."""
    state = _get_state(ctx)
    fields = parse_assignments(assignments)
    render_page(state.client.find(kind.value, fields))


@app.command("clear")
def clear_command(ctx: typer.Context) -> None:
    """Remove every sensor-type, sensor and reading."""
    state = _get_state(ctx)
    state.client.clear()
    typer.secho("Cleared sensors info.", fg=typer.colors.GREEN)


@app.command("load")
def load_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to JSON data file."),
) -> None:
    """Replace all sensors info with the contents of a JSON data file."""
    state = _get_state(ctx)
    typer.echo(f"Loading {file} into {state.config.base_url} ...")
    counts = state.client.load(file)
    echo_heading("Loaded")
    echo_key_values(counts.items(), indent="  ")


if __name__ == "__main__":
    app()
