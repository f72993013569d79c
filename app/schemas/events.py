"""
Profile Service — Downstream event payloads.

Each model is serialised with ``model_dump_json(by_alias=True)`` and
published to its own queue.  Field aliases match the keys the matching
engine already consumes.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.user import UserGender


class AnketEvent(BaseModel):
    """Demographic snapshot; both fields are always present."""

    user_id: UUID
    gender: UserGender
    birth_date: date


class TagsEvent(BaseModel):
    """Full current tag set as one space-joined string."""

    user_id: UUID = Field(serialization_alias="UserID")
    tags: str = Field(serialization_alias="Tags")


class PhotoEvent(BaseModel):
    """Current primary photo; ``image_url`` is null when no photo remains."""

    user_id: UUID
    image_url: Optional[str] = None
