"""CLI command modules."""

from notify_service.cli.commands import server, worker

__all__ = ["server", "worker"]
