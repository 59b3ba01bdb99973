"""Core database package: declarative base and column mixins."""

from __future__ import annotations

from .base import NAMING_CONVENTION, Base, TimestampMixin, UUIDv7PKMixin, generate_uuid7

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "TimestampMixin",
    "UUIDv7PKMixin",
    "generate_uuid7",
]
