"""
Plant Progression Backend — Plant Store
========================================

What:  Persistence operations on plant rows and their embedded progress list.
Why:   Keeps SQL out of the ownership/HTTP layer. Nothing here checks who
       the caller is; PlantService does that before calling in.
How:   Stateless; every method takes the request's AsyncSession.

Embedded-array mutations:
    append / edit notes / delete entry all follow the same shape:
        1. SELECT the plant row FOR UPDATE (row lock on PostgreSQL)
        2. find the entry by id inside row.progress
        3. build a NEW list with the change applied
        4. assign it back and flush (one UPDATE of one row)

    Assigning a new list (instead of mutating in place) is what makes
    SQLAlchemy notice the JSON column changed. The row lock makes two
    concurrent appends to the same plant serialize rather than one
    overwriting the other; each still succeeds on its own.

Return values mirror "did anything happen" so the service can decide
between 204, 400 and 404 without a second query.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from plant_progression.exceptions import DatabaseError
from plant_progression.models.plant import Plant

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PlantStore:
    async def create_plant(
        self,
        db: AsyncSession,
        author_id: str,
        name: str,
        species: str,
        description: str,
        image: str,
    ) -> Plant:
        """Insert a plant with an empty progress list; returns the new row."""
        plant = Plant(
            name=name,
            species=species,
            description=description,
            image=image,
            author_id=author_id,
            progress=[],
        )
        try:
            db.add(plant)
            await db.flush()  # Assigns the UUID without committing
        except SQLAlchemyError as e:
            logger.error("Database error creating plant: %s", e)
            raise DatabaseError(context={"operation": "create_plant"})

        logger.info("Plant created: %s (author=%s)", plant.id, author_id)
        return plant

    async def list_plants(
        self,
        db: AsyncSession,
        author_id: str,
        name: Optional[str] = None,
    ) -> List[Plant]:
        """
        All plants owned by `author_id`.

        name: optional case-insensitive substring filter. An empty string
              means no filter. LIKE wildcards in it match literally.
        """
        query = select(Plant).where(Plant.author_id == author_id)
        if name:
            query = query.where(Plant.name.ilike(f"%{_escape_like(name)}%", escape="\\"))
        query = query.order_by(Plant.created_at)

        try:
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing plants for %s: %s", author_id, e)
            raise DatabaseError(context={"operation": "list_plants"})

    async def get_plant(
        self,
        db: AsyncSession,
        plant_id: uuid.UUID,
        for_update: bool = False,
    ) -> Optional[Plant]:
        """Fetch one plant or None. Does NOT check ownership."""
        query = select(Plant).where(Plant.id == plant_id)
        if for_update:
            # Re-read the locked row even if the session already holds it
            query = query.with_for_update().execution_options(populate_existing=True)
        try:
            result = await db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching plant %s: %s", plant_id, e)
            raise DatabaseError(context={"operation": "get_plant", "plant_id": str(plant_id)})

    async def update_plant_fields(
        self,
        db: AsyncSession,
        plant_id: uuid.UUID,
        name: Optional[str] = None,
        species: Optional[str] = None,
        image: Optional[str] = None,
    ) -> bool:
        """
        Apply whichever of name/species/image were given.

        Returns:
            True only if at least one value actually changed. author_id
            and progress are never touched.
        """
        plant = await self.get_plant(db, plant_id, for_update=True)
        if plant is None:
            return False

        changes = {"name": name, "species": species, "image": image}
        changed = False
        for field, value in changes.items():
            if value is not None and getattr(plant, field) != value:
                setattr(plant, field, value)
                changed = True

        if changed:
            await self._flush(db, "update_plant_fields", plant_id)
        return changed

    async def delete_plant(self, db: AsyncSession, plant_id: uuid.UUID) -> bool:
        """Remove the row (and with it every progress entry)."""
        try:
            result = await db.execute(delete(Plant).where(Plant.id == plant_id))
        except SQLAlchemyError as e:
            logger.error("Database error deleting plant %s: %s", plant_id, e)
            raise DatabaseError(context={"operation": "delete_plant", "plant_id": str(plant_id)})

        deleted = result.rowcount == 1
        if deleted:
            logger.info("Plant deleted: %s", plant_id)
        return deleted

    async def append_progress_entry(
        self,
        db: AsyncSession,
        plant_id: uuid.UUID,
        entry: Dict[str, Any],
    ) -> bool:
        """
        Append `entry` to the plant's progress list.

        The entry id is generated by the caller. Returns False when the
        plant vanished between the ownership check and this call.
        """
        plant = await self.get_plant(db, plant_id, for_update=True)
        if plant is None:
            return False

        plant.progress = [*(plant.progress or []), entry]
        await self._flush(db, "append_progress_entry", plant_id)
        return True

    async def update_progress_notes(
        self,
        db: AsyncSession,
        plant_id: uuid.UUID,
        progress_id: str,
        notes: str,
    ) -> bool:
        """
        Replace `notes` on one entry; every other field of every entry is
        carried over unchanged.

        Returns:
            True if the entry exists (even when the notes were already equal).
        """
        plant = await self.get_plant(db, plant_id, for_update=True)
        if plant is None:
            return False

        found = False
        updated: List[Dict[str, Any]] = []
        for entry in plant.progress or []:
            if entry.get("id") == progress_id:
                entry = {**entry, "notes": notes}
                found = True
            updated.append(entry)

        if found:
            plant.progress = updated
            await self._flush(db, "update_progress_notes", plant_id)
        return found

    async def delete_progress_entry(
        self,
        db: AsyncSession,
        plant_id: uuid.UUID,
        progress_id: str,
    ) -> bool:
        """Drop the entry with `progress_id`; returns whether one was removed."""
        plant = await self.get_plant(db, plant_id, for_update=True)
        if plant is None:
            return False

        current = plant.progress or []
        remaining = [entry for entry in current if entry.get("id") != progress_id]
        if len(remaining) == len(current):
            return False

        plant.progress = remaining
        await self._flush(db, "delete_progress_entry", plant_id)
        return True

    async def _flush(self, db: AsyncSession, operation: str, plant_id: uuid.UUID) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error in %s for plant %s: %s", operation, plant_id, e)
            raise DatabaseError(context={"operation": operation, "plant_id": str(plant_id)})


plant_store = PlantStore()
