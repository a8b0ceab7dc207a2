from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import httpx
import typer

from cli.config import CLIConfig
from cli.render import render_errors

RESOURCE_PATHS = {
    "sensor-type": "sensor-types",
    "sensor": "sensors",
    "sensor-reading": "sensor-readings",
}

# Load order matters: sensors reference sensor-types, readings reference sensors.
LOAD_SECTIONS = (
    ("sensorTypes", "sensor-type"),
    ("sensors", "sensor"),
    ("sensorReadings", "sensor-reading"),
)


class ApiClient:
    """Minimal HTTP client for the sensors info service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def add(self, kind: str, fields: Dict[str, str]) -> Dict[str, Any]:
        """Add one entity and return it as stored by the service."""
        response = self._send("PUT", f"/{RESOURCE_PATHS[kind]}", json=fields)
        return response.json()["result"]

    def find(self, kind: str, fields: Dict[str, str]) -> Dict[str, Any]:
        """Return the paged envelope for a search."""
        response = self._send("GET", f"/{RESOURCE_PATHS[kind]}", params=fields)
        return response.json()

    def clear(self) -> None:
        self._send("DELETE", self._config.base_url)

    def load(self, path: Path) -> Dict[str, int]:
        """Clear the service and add every record of a JSON data file."""
        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise typer.BadParameter(f"Cannot read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise typer.BadParameter(f"{path} must hold a JSON object.")

        self.clear()
        counts: Dict[str, int] = {}
        for section, kind in LOAD_SECTIONS:
            records: List[Dict[str, Any]] = data.get(section) or []
            for record in records:
                self.add(kind, record)
            counts[section] = len(records)
        return counts

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            typer.secho(f"Request to {url} failed: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        if response.is_error:
            self._handle_http_error(response)
        return response

    @staticmethod
    def _handle_http_error(response: httpx.Response) -> None:
        errors: List[Dict[str, Any]] = []
        try:
            errors = response.json().get("errors") or []
        except (ValueError, AttributeError):
            errors = []
        if not errors:
            detail = response.text.strip() or "no detail provided."
            errors = [{"code": str(response.status_code), "message": detail}]
        typer.secho(
            f"Request failed with status {response.status_code}:",
            fg=typer.colors.RED,
            err=True,
        )
        render_errors(errors)
        raise typer.Exit(code=1)
