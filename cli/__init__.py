"""Command-line client for the sensors info service.

Entry point: ``cli.app:app`` (installed as ``sensors-cli``).
"""

__all__: list[str] = []
