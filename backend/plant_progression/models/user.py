"""
Plant Progression Backend — User Credential Model
==================================================

What:  ORM model for the `users` table (username → bcrypt hash).
Why:   Backs registration and login. Usernames are case-sensitive and
       unique by virtue of being the primary key, so a duplicate insert
       fails at the database even under concurrent registrations.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from plant_progression.database import Base


class User(Base):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(150), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        # Never include the hash
        return f"<User(username='{self.username}')>"
