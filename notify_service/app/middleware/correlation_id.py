"""Correlation ID middleware.

Every HTTP request runs inside a correlation scope. The id comes from the
``X-Correlation-ID`` request header, or is generated when the header is
missing or malformed, and is echoed on the response. The same id is stored
on the notification and carried in its delivery job, so the worker's log
lines for that job share it.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from starlette.datastructures import MutableHeaders

from notify_service.infra.tracing.correlation import CORRELATION_HEADER, correlation_scope

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

_VALID_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


class CorrelationIDMiddleware:
    """Pure ASGI middleware binding a correlation id per request.

    Usage:
        app = FastAPI()
        app.add_middleware(CorrelationIDMiddleware)
    """

    def __init__(self, app: ASGIApp, header_name: str = CORRELATION_HEADER) -> None:
        self.app = app
        self.header_name = header_name.lower()
        self._header_bytes = self.header_name.encode("latin-1")

    def _extract(self, scope: Scope) -> str | None:
        for name, value in scope.get("headers", []):
            if name == self._header_bytes:
                candidate = value.decode("latin-1").strip()
                if _VALID_ID.match(candidate):
                    return candidate
                logger.debug("Ignoring malformed correlation id header")
                return None
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        with correlation_scope(self._extract(scope)) as value:
            scope.setdefault("state", {})["correlation_id"] = value

            async def send_with_correlation_id(message: Message) -> None:
                if message["type"] == "http.response.start":
                    headers = MutableHeaders(scope=message)
                    headers[self.header_name] = value
                await send(message)

            await self.app(scope, receive, send_with_correlation_id)


__all__ = ["CorrelationIDMiddleware"]
