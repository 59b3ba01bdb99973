"""Main CLI entry point for notify-service."""

import click

from notify_service.cli.commands import server, worker
from notify_service.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="1.0.0", prog_name="notify-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Notify Service CLI.

    \b
    Commands:
      serve      Run the HTTP API
      worker     Run a delivery worker

    \b
    Quick Start:
      notify-service serve --reload
      notify-service worker --concurrency 10
    """
    ctx.ensure_object(dict)
    setup_logging()


cli.add_command(server.serve)
cli.add_command(worker.worker)


def main() -> None:
    """Entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
