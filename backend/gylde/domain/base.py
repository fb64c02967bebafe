"""
Domain Base Models

Shared pydantic configuration for the API-facing DTOs.
Wire format is camelCase; Python attributes stay snake_case.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for DTOs serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ActionResult(CamelModel):
    """Generic acknowledgement returned by mutating endpoints."""
    success: bool = True
    message: str


def ensure_exhaustive(table: dict, enum_cls: type, name: str) -> None:
    """
    Fail at import time when a table keyed by an enum misses a member.

    Adding a tier without configuring it is a programming error, not a
    runtime condition to recover from.
    """
    missing = [member.value for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(f"{name} is missing entries for: {', '.join(missing)}")
