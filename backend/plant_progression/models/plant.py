"""
Plant Progression Backend — Plant SQLAlchemy Model
===================================================

What:  ORM model for the `plants` table.
Why:   Each row is one plant "document": its metadata plus the embedded,
       ordered list of progress entries.
How:   `progress` is a JSON array column. Entry mutations rewrite the whole
       list in a single row update (see services/plant_store.py).

Table Design Rationale:
    - UUID primary key: opaque, non-sequential, generated on insert
    - author_id: owning username, set once from the token at creation
    - progress: embedded (not a child table). A ProgressEntry has no life
      outside its plant; deleting the row discards every entry with it.
    - created_at: gives listings a stable order
    - Index on author_id: every listing is scoped to one author

Progress entry shape (one JSON object per entry):
    {
        "id": "k3Jd9...",                 # random, unique within the plant
        "date": "2024-05-01T12:00:00+00:00",
        "height_cm": 12.5 | null,
        "notes": "new growth",
        "image": "/uploads/ab12....png" | null
    }
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from plant_progression.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
ProgressType = JSON().with_variant(JSONB(), "postgresql")


class Plant(Base):
    """
    A user-owned plant with its progress timeline.

    Invariants:
        - id and author_id never change after insert
        - an entry's id and date never change; only notes is edited
        - entries are stored in append order
    """

    __tablename__ = "plants"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    species: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Public path of the primary image, e.g. /uploads/<hex>.jpg
    image: Mapped[str] = mapped_column(String(255), nullable=False)

    # Owning username (FK-free on purpose: users are never deleted in scope)
    author_id: Mapped[str] = mapped_column(String(150), nullable=False)

    progress: Mapped[List[Dict[str, Any]]] = mapped_column(
        ProgressType,
        nullable=False,
        default=list,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_plants_author_id", "author_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Plant(id={self.id}, author_id='{self.author_id}', "
            f"entries={len(self.progress or [])})>"
        )
