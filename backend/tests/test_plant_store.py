"""
Plant Progression Backend — Plant Store Tests
==============================================

Runs the store operations against the SQLite test database.

What we test:
    ✅ Listing is scoped to one author; name filter is case-insensitive
       and treats LIKE wildcards literally
    ✅ update_plant_fields reports whether anything changed
    ✅ Progress append / notes edit / delete only touch the targeted entry
    ✅ Missing plants and entries report False instead of raising
    ✅ A plant deleted after the ownership check yields NotFoundError and
       its just-stored upload is removed
"""

import io
import uuid

import pytest
from starlette.datastructures import Headers, UploadFile

from plant_progression.exceptions import NotFoundError
from plant_progression.services.plant_service import PlantService
from plant_progression.services.plant_store import PlantStore


def _entry(entry_id: str, notes: str = "") -> dict:
    return {
        "id": entry_id,
        "date": "2024-05-01T12:00:00+00:00",
        "height_cm": None,
        "notes": notes,
        "image": f"/uploads/{entry_id}.png",
    }


@pytest.fixture
def store() -> PlantStore:
    return PlantStore()


async def _plant(store, db, author="alice", name="Fern"):
    plant = await store.create_plant(
        db,
        author_id=author,
        name=name,
        species="Nephrolepis",
        description="",
        image="/uploads/p.png",
    )
    await db.commit()
    return plant


class TestPlants:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_empty_progress(self, store, db_session):
        plant = await _plant(store, db_session)
        assert isinstance(plant.id, uuid.UUID)
        assert plant.progress == []

    @pytest.mark.asyncio
    async def test_list_scoped_to_author(self, store, db_session):
        await _plant(store, db_session, author="alice", name="Fern")
        await _plant(store, db_session, author="bob", name="Cactus")

        names = [p.name for p in await store.list_plants(db_session, "alice")]
        assert names == ["Fern"]

    @pytest.mark.asyncio
    async def test_name_filter_case_insensitive_substring(self, store, db_session):
        await _plant(store, db_session, name="Boston Fern")
        await _plant(store, db_session, name="Monstera")

        found = await store.list_plants(db_session, "alice", name="fErN")
        assert [p.name for p in found] == ["Boston Fern"]

        assert len(await store.list_plants(db_session, "alice", name="")) == 2

    @pytest.mark.asyncio
    async def test_name_filter_wildcards_are_literal(self, store, db_session):
        await _plant(store, db_session, name="Fern")
        await _plant(store, db_session, name="100% Basil")

        assert [p.name for p in await store.list_plants(db_session, "alice", name="%")] == ["100% Basil"]
        assert await store.list_plants(db_session, "alice", name="F_rn") == []

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store, db_session):
        assert await store.get_plant(db_session, uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_update_fields_reports_change(self, store, db_session):
        plant = await _plant(store, db_session)

        assert await store.update_plant_fields(db_session, plant.id, name="Fern") is False
        assert await store.update_plant_fields(db_session, plant.id) is False
        assert await store.update_plant_fields(db_session, plant.id, species="Pteris") is True
        await db_session.commit()

        reloaded = await store.get_plant(db_session, plant.id, for_update=True)
        assert reloaded.species == "Pteris"
        assert reloaded.author_id == "alice"

    @pytest.mark.asyncio
    async def test_delete_plant(self, store, db_session):
        plant = await _plant(store, db_session)
        assert await store.delete_plant(db_session, plant.id) is True
        await db_session.commit()
        assert await store.delete_plant(db_session, plant.id) is False
        assert await store.get_plant(db_session, plant.id) is None


class TestProgressEntries:
    @pytest.mark.asyncio
    async def test_append_keeps_order(self, store, db_session):
        plant = await _plant(store, db_session)
        for entry_id in ("e1", "e2", "e3"):
            assert await store.append_progress_entry(db_session, plant.id, _entry(entry_id))
        await db_session.commit()

        reloaded = await store.get_plant(db_session, plant.id, for_update=True)
        assert [e["id"] for e in reloaded.progress] == ["e1", "e2", "e3"]

    @pytest.mark.asyncio
    async def test_update_notes_touches_only_target(self, store, db_session):
        plant = await _plant(store, db_session)
        await store.append_progress_entry(db_session, plant.id, _entry("e1", "first"))
        await store.append_progress_entry(db_session, plant.id, _entry("e2", "second"))
        await db_session.commit()

        assert await store.update_progress_notes(db_session, plant.id, "e1", "trimmed") is True
        await db_session.commit()

        reloaded = await store.get_plant(db_session, plant.id, for_update=True)
        first, second = reloaded.progress
        assert first == {**_entry("e1"), "notes": "trimmed"}
        assert second == _entry("e2", "second")

    @pytest.mark.asyncio
    async def test_update_notes_unknown_entry(self, store, db_session):
        plant = await _plant(store, db_session)
        assert await store.update_progress_notes(db_session, plant.id, "nope", "x") is False

    @pytest.mark.asyncio
    async def test_delete_entry(self, store, db_session):
        plant = await _plant(store, db_session)
        await store.append_progress_entry(db_session, plant.id, _entry("e1"))
        await store.append_progress_entry(db_session, plant.id, _entry("e2"))
        await db_session.commit()

        assert await store.delete_progress_entry(db_session, plant.id, "e1") is True
        assert await store.delete_progress_entry(db_session, plant.id, "e1") is False
        await db_session.commit()

        reloaded = await store.get_plant(db_session, plant.id, for_update=True)
        assert [e["id"] for e in reloaded.progress] == ["e2"]

    @pytest.mark.asyncio
    async def test_missing_plant_reports_false(self, store, db_session):
        missing = uuid.uuid4()
        assert await store.append_progress_entry(db_session, missing, _entry("e1")) is False
        assert await store.update_progress_notes(db_session, missing, "e1", "x") is False
        assert await store.delete_progress_entry(db_session, missing, "e1") is False


class _VanishingStore(PlantStore):
    """Deletes the plant right after the ownership check, before the append."""

    async def append_progress_entry(self, db, plant_id, entry):
        await self.delete_plant(db, plant_id)
        return await super().append_progress_entry(db, plant_id, entry)


class TestPlantRemovedMidRequest:
    @pytest.mark.asyncio
    async def test_append_reports_not_found_and_discards_upload(self, app, db_session, png_bytes):
        store = _VanishingStore()
        plant = await _plant(store, db_session)
        service = PlantService(app.state.file_service, store=store)
        upload = UploadFile(
            file=io.BytesIO(png_bytes),
            filename="leaf.png",
            headers=Headers({"content-type": "image/png"}),
        )

        with pytest.raises(NotFoundError, match="Plant not found"):
            await service.add_progress(db_session, str(plant.id), "alice", image=upload)
        await db_session.rollback()

        assert list(app.state.settings.upload_root.iterdir()) == []
