"""
Plant Progression Backend — Plant Request/Response Schemas
===========================================================

What:  Pydantic models defining the plant/progress API contract.
Why:   Explicit shapes per endpoint. Bodies that don't match are rejected
       before business logic runs, and responses only expose known fields.
How:   JSON uses camelCase (authorId, heightCm) through an alias generator.
       populate_by_name lets the models be filled straight from ORM rows
       and the snake_case dicts stored in the progress column.

Note on ordering:
    progress is returned in insertion order. Clients that display a
    timeline should sort by `date`.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr
from pydantic.alias_generators import to_camel

_RESPONSE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    from_attributes=True,
)


class ProgressEntryResponse(BaseModel):
    """One dated snapshot in a plant's timeline."""

    model_config = _RESPONSE_CONFIG

    id: str = Field(description="Entry identifier, unique within its plant")
    date: datetime = Field(description="When the entry was created (UTC)")
    height_cm: Optional[float] = Field(default=None, description="Measured height in cm")
    notes: str = Field(default="", description="Free-text notes; the only editable field")
    image: Optional[str] = Field(default=None, description="Public path of the entry photo")


class PlantResponse(BaseModel):
    """
    Full plant record as returned by GET /api/plants, GET /api/plants/{id}
    and POST /api/plants.
    """

    model_config = _RESPONSE_CONFIG

    id: uuid.UUID = Field(description="Plant identifier")
    name: str
    species: str
    description: str = ""
    image: str = Field(description="Public path of the primary image")
    author_id: str = Field(description="Username of the owner")
    progress: List[ProgressEntryResponse] = Field(default_factory=list)


class ProgressCreatedResponse(BaseModel):
    """Returned by PUT /api/plants/{id}/progress."""

    id: str = Field(description="Generated entry identifier")
    image: str = Field(description="Public path of the uploaded photo")


class NotesUpdate(BaseModel):
    """Body of PATCH /api/plants/{plantId}/progress/{progressId}."""

    model_config = ConfigDict(extra="forbid")

    notes: StrictStr = Field(max_length=10_000, description="Replacement notes text")
