"""Caller identity used as the rate limit key."""

from __future__ import annotations

from collections.abc import Collection

from starlette.requests import Request

ANONYMOUS_KEY = "anonymous"


def client_key(request: Request, trusted_proxies: Collection[str] = ()) -> str:
    """Network identity of the caller.

    ``X-Forwarded-For`` is only believed when the direct peer is one of
    ``trusted_proxies``; otherwise any client could pick its own key.
    """
    peer = request.client.host if request.client else None

    if peer and peer in trusted_proxies:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop

    return peer or ANONYMOUS_KEY


__all__ = ["ANONYMOUS_KEY", "client_key"]
