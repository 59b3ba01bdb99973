"""Taskiq broker configuration for notification delivery.

Delivery jobs go through RabbitMQ (taskiq-aio-pika) when it is configured.
Messages are persisted, acknowledged only after the task body returns, and
retries are published with a ``delay`` label to the broker's delay queue.

Without RabbitMQ the broker falls back to taskiq's ``InMemoryBroker``, which
runs jobs inside the API process. That is only suitable for local
development and tests: nothing survives a restart.

Middleware Stack
================

1. ExponentialBackoffRetryMiddleware - decides whether a failed job is retried
2. JobHistoryMiddleware - records the final state of each job

Task Discovery
==============

Tasks are registered by importing their modules at the bottom of this file.
The worker process imports this module, so all imports here are executed,
registering tasks with the broker.
"""

from __future__ import annotations

import logging

from taskiq import AsyncBroker, InMemoryBroker
from taskiq_aio_pika import AioPikaBroker

from notify_service.core.settings import get_rabbit_settings, get_task_settings
from notify_service.infra.tasks.middleware import (
    ExponentialBackoffRetryMiddleware,
    JobHistoryMiddleware,
)

logger = logging.getLogger(__name__)

rabbit_settings = get_rabbit_settings()
task_settings = get_task_settings()


class QueueUnavailableError(Exception):
    """The delivery job could not be handed to the queue."""


def create_broker() -> AsyncBroker:
    """Build the broker for the current configuration."""
    middlewares = (
        ExponentialBackoffRetryMiddleware(task_settings),
        JobHistoryMiddleware(task_settings),
    )

    if not rabbit_settings.is_configured:
        logger.warning(
            "RabbitMQ not configured - delivery jobs run on the in-memory broker",
        )
        return InMemoryBroker().with_middlewares(*middlewares)

    queue_name = rabbit_settings.get_prefixed_queue(task_settings.queue_name)
    logger.info(
        "Taskiq delivery broker configured",
        extra={
            "queue": queue_name,
            "max_attempts": task_settings.max_attempts,
            "middlewares": [type(m).__name__ for m in middlewares],
        },
    )
    return AioPikaBroker(
        url=rabbit_settings.get_url(),
        exchange_name=rabbit_settings.exchange_name,
        queue_name=queue_name,
        qos=rabbit_settings.prefetch_count,
        declare_exchange=True,
        declare_queues=True,
    ).with_middlewares(*middlewares)


broker: AsyncBroker = create_broker()


async def start_taskiq() -> None:
    """Start the broker for enqueueing from the API process.

    Executing jobs happens in a separate worker process
    (``notify-service worker``) unless the in-memory broker is in use.

    Raises:
        ConnectionError: If unable to connect to RabbitMQ.
    """
    logger.info("Starting Taskiq broker")

    try:
        await broker.startup()
    except Exception as e:
        logger.exception("Failed to start Taskiq broker", extra={"error": str(e)})
        raise

    logger.info("Taskiq broker started successfully")


async def stop_taskiq() -> None:
    """Close broker connections during application shutdown."""
    logger.info("Stopping Taskiq broker")

    try:
        await broker.shutdown()
    except Exception as e:
        logger.exception("Error stopping Taskiq broker", extra={"error": str(e)})
        return

    logger.info("Taskiq broker stopped successfully")


# =============================================================================
# Task Module Imports
# =============================================================================
# The worker imports this module, so importing the task modules here is what
# registers them with the broker.

import notify_service.workers.notifications.tasks  # noqa: E402, F401
