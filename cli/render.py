from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]], indent: str = "") -> None:
    for key, value in pairs:
        typer.echo(f"{indent}{key}: {value}")


def _flatten(entity: Dict[str, Any]) -> List[tuple[str, Any]]:
    pairs: List[tuple[str, Any]] = []
    for key, value in entity.items():
        if isinstance(value, dict) and {"min", "max"} <= value.keys():
            value = f"[{value['min']}, {value['max']}]"
        pairs.append((key, value))
    return pairs


def render_entity(entity: Dict[str, Any]) -> None:
    echo_key_values(_flatten(entity))


def render_page(envelope: Dict[str, Any]) -> None:
    items = envelope.get("result") or []
    echo_heading(f"Results ({len(items)})")
    if not items:
        typer.echo("No results found.")
    for item in items:
        typer.echo("-")
        echo_key_values(_flatten(item.get("result") or {}), indent="  ")

    links = envelope.get("links") or {}
    for rel in ("prev", "next"):
        link = links.get(rel)
        if link:
            typer.echo(f"{rel}: {link.get('href')}")


def render_errors(errors: Iterable[Dict[str, Any]]) -> None:
    for error in errors:
        field = error.get("field")
        suffix = f" (field {field})" if field else ""
        typer.secho(
            f"  - {error.get('code')}: {error.get('message')}{suffix}",
            fg=typer.colors.RED,
            err=True,
        )
