"""Delivery worker command."""

import click

from notify_service.cli.utils import coro, info, success
from notify_service.core.settings import get_task_settings
from notify_service.infra.cache import start_redis, stop_redis
from notify_service.infra.database import close_database, init_database


@click.command(name="worker")
@click.option(
    "--concurrency",
    "-c",
    default=None,
    type=click.IntRange(min=1),
    help="Deliveries run at once (default: TASK_WORKER_CONCURRENCY, 5)",
)
@coro
async def worker(concurrency: int | None) -> None:
    """Consume delivery jobs until SIGTERM/SIGINT.

    On shutdown no new jobs are taken; running deliveries finish first.
    """
    from notify_service.infra.tasks import broker
    from notify_service.workers.notifications.pool import NotificationWorkerPool

    concurrency = concurrency or get_task_settings().worker_concurrency
    info(f"Starting delivery worker (concurrency: {concurrency})")

    await init_database()
    await start_redis()
    try:
        await NotificationWorkerPool(broker, concurrency=concurrency).run()
    finally:
        await stop_redis()
        await close_database()

    success("Worker stopped")
