"""Pydantic base model and id/timestamp helpers for Catalyst.

Every artifact and aggregate model inherits from CatalystModel so that
Python code uses snake_case attribute names while the persisted JSON uses
the camelCase keys of the saved state format.

Example:
    >>> class Persona(CatalystModel):
    ...     role: str
    ...     pain_points: list[str] = []
    >>> Persona(role="Coach", pain_points=["time"]).model_dump(by_alias=True)
    {'role': 'Coach', 'painPoints': ['time']}
"""

from __future__ import annotations

import time
import uuid

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CatalystModel(BaseModel):
    """Base class for all Catalyst data models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def generate_id() -> str:
    """Return a short random identifier."""
    return uuid.uuid4().hex[:12]


def now_ms() -> int:
    """Return the current time in milliseconds since the epoch."""
    return int(time.time() * 1000)
