"""
Plant Progression Backend — Plant Service (Ownership-Scoped Operations)
========================================================================

What:  Business logic behind every /api/plants endpoint.
Why:   One place enforces the access contract, so no route can forget it.
How:   Composes PlantStore (persistence) and FileService (image uploads).

Access contract for any operation on one plant:
    1. Parse the id            → malformed   → ValidationError (400)
    2. Load the plant          → missing     → NotFoundError   (404)
    3. Compare author_id       → not caller  → ForbiddenError  (403)
    4. Only now: accept the upload (if any) and run the store operation

    The existence check runs before the ownership check, so a caller can
    learn that an id exists without being able to read or change it.

Check-then-act is not transactional. If the plant disappears between
step 2 and step 4, the store reports "nothing happened" and the request
answers 404.

Uploads:
    Images are validated and written only after step 3, so rejected requests
    never leave files behind. If the store write or commit fails after the
    file was written, the file is removed before the error propagates.
"""

import logging
import secrets
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from plant_progression.exceptions import ForbiddenError, NotFoundError, ValidationError
from plant_progression.models.plant import Plant
from plant_progression.schemas.plant import PlantResponse, ProgressCreatedResponse
from plant_progression.services.file_service import FileService
from plant_progression.services.plant_store import PlantStore, plant_store

logger = logging.getLogger(__name__)


def parse_plant_id(raw: str) -> uuid.UUID:
    """Turn a path segment into a plant UUID, or fail with 400."""
    try:
        return uuid.UUID(raw)
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(message="Invalid plant ID", field="plant_id", context={"plant_id": raw})


def new_progress_id() -> str:
    # ~128 bits of randomness; collisions are accepted as negligible
    return secrets.token_urlsafe(16)


class PlantService:
    def __init__(self, file_service: FileService, store: PlantStore = plant_store):
        self.files = file_service
        self.store = store

    # ── Access Contract ───────────────────────────────────────────────────

    async def resolve_owned_plant(self, db: AsyncSession, plant_id: str, username: str) -> Plant:
        """
        Steps 1-3 of the access contract.

        Returns:
            The plant, guaranteed to exist and belong to `username`.
        Raises:
            ValidationError, NotFoundError, ForbiddenError
        """
        pid = parse_plant_id(plant_id)
        plant = await self.store.get_plant(db, pid)
        if plant is None:
            raise NotFoundError(resource="plant", resource_id=plant_id)
        if plant.author_id != username:
            logger.warning("User %s denied access to plant %s", username, plant_id)
            raise ForbiddenError(context={"plant_id": plant_id, "username": username})
        return plant

    @asynccontextmanager
    async def _stored_upload(self, upload: Optional[UploadFile]) -> AsyncIterator[Optional[str]]:
        """
        Store `upload` (if given) and yield its public path. If the body of
        the `async with` raises, the stored file is removed before the
        exception continues.
        """
        if upload is None:
            yield None
            return

        public_path = await self.files.save_upload(upload)
        try:
            yield public_path
        except BaseException:
            await self.files.cleanup(public_path)
            raise

    # ── Plants ────────────────────────────────────────────────────────────

    async def list_plants(
        self, db: AsyncSession, username: str, name: Optional[str] = None
    ) -> List[PlantResponse]:
        plants = await self.store.list_plants(db, author_id=username, name=name)
        return [PlantResponse.model_validate(p) for p in plants]

    async def get_plant(self, db: AsyncSession, plant_id: str, username: str) -> PlantResponse:
        plant = await self.resolve_owned_plant(db, plant_id, username)
        return PlantResponse.model_validate(plant)

    async def create_plant(
        self,
        db: AsyncSession,
        username: str,
        name: str,
        species: str,
        description: str,
        image: UploadFile,
    ) -> PlantResponse:
        """Store the image, insert the plant, and return it with its new id."""
        async with self._stored_upload(image) as image_path:
            plant = await self.store.create_plant(
                db,
                author_id=username,
                name=name,
                species=species,
                description=description,
                image=image_path,
            )
            await db.commit()
        return PlantResponse.model_validate(plant)

    async def update_plant(
        self,
        db: AsyncSession,
        plant_id: str,
        username: str,
        name: Optional[str] = None,
        species: Optional[str] = None,
        image: Optional[UploadFile] = None,
    ) -> None:
        """
        Partial update of name/species/image.

        Raises:
            ValidationError("No changes were made") when nothing differs.
        """
        plant = await self.resolve_owned_plant(db, plant_id, username)

        async with self._stored_upload(image) as image_path:
            changed = await self.store.update_plant_fields(
                db, plant.id, name=name, species=species, image=image_path
            )
            if not changed:
                raise ValidationError(message="No changes were made")
            await db.commit()

    async def delete_plant(self, db: AsyncSession, plant_id: str, username: str) -> None:
        plant = await self.resolve_owned_plant(db, plant_id, username)
        if not await self.store.delete_plant(db, plant.id):
            raise NotFoundError(resource="plant", resource_id=plant_id)
        await db.commit()

    # ── Progress Entries ──────────────────────────────────────────────────

    async def add_progress(
        self,
        db: AsyncSession,
        plant_id: str,
        username: str,
        image: UploadFile,
        notes: str = "",
        height_cm: Optional[float] = None,
    ) -> ProgressCreatedResponse:
        """Append a dated entry with a photo; returns the entry id and image path."""
        plant = await self.resolve_owned_plant(db, plant_id, username)

        async with self._stored_upload(image) as image_path:
            entry = {
                "id": new_progress_id(),
                "date": datetime.now(timezone.utc).isoformat(),
                "height_cm": height_cm,
                "notes": notes,
                "image": image_path,
            }
            if not await self.store.append_progress_entry(db, plant.id, entry):
                raise NotFoundError(resource="plant", resource_id=plant_id)
            await db.commit()

        logger.info("Progress entry %s added to plant %s", entry["id"], plant_id)
        return ProgressCreatedResponse(id=entry["id"], image=image_path)

    async def update_progress_notes(
        self,
        db: AsyncSession,
        plant_id: str,
        progress_id: str,
        username: str,
        notes: str,
    ) -> None:
        plant = await self.resolve_owned_plant(db, plant_id, username)
        if not await self.store.update_progress_notes(db, plant.id, progress_id, notes):
            raise NotFoundError(resource="progress entry", resource_id=progress_id)
        await db.commit()

    async def delete_progress(
        self,
        db: AsyncSession,
        plant_id: str,
        progress_id: str,
        username: str,
    ) -> None:
        plant = await self.resolve_owned_plant(db, plant_id, username)
        if not await self.store.delete_progress_entry(db, plant.id, progress_id):
            raise NotFoundError(resource="progress entry", resource_id=progress_id)
        await db.commit()
