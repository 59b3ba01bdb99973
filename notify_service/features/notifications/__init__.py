"""Notifications feature: tenant-scoped storage and multi-channel delivery.

Architecture:
    - Models: Notification ORM row and the detached NotificationRecord
    - Repository: tenant-scoped store returning Result values
    - Channels: email (SMTP), webhook (HTTP), in-app, resolved by name
    - Service: NotificationDispatchService, delivery and status transitions
    - Router: REST endpoints; delivery runs on the taskiq worker

Example:
    ```python
    service = NotificationDispatchService(
        NotificationRepository(AsyncSessionLocal),
        build_default_registry(get_settings()),
    )
    created = await service.create_pending(
        user_id="user-1", title="Hi", body="Hello", channel="in-app"
    )
    await service.deliver(created.unwrap())
    ```
"""
