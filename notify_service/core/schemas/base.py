"""Base schema classes for API responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CustomBase(BaseModel):
    """Base model for response bodies.

    Fields are declared in snake_case and serialized in camelCase, which is
    the wire format every client of the API sees.

    Example:
        class NotificationAccepted(CustomBase):
            job_id: str

        NotificationAccepted(job_id="42").model_dump(by_alias=True)
        # {"jobId": "42"}
    """

    model_config = ConfigDict(
        # Allow creation from domain records and ORM rows
        from_attributes=True,
        # camelCase on the wire
        alias_generator=to_camel,
        # Populate models by field name (not alias)
        populate_by_name=True,
        # Use enum values instead of names
        use_enum_values=True,
    )


__all__ = ["CustomBase"]
