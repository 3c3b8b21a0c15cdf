"""
Plant Progression Backend — Test Configuration (conftest.py)
=============================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Every test gets an isolated app: its own SQLite file, its own
       static/upload directories and its own signing secret.
How:   create_app() takes an explicit Settings object, so no environment
       variables need patching.

Fixture Hierarchy (all function-scoped):
    settings ─► app ─► client
                  └──► db_session
    png_bytes / jpeg_bytes: real images generated with Pillow
    register:  async helper returning an Authorization header for a new user
"""

import io
from typing import AsyncGenerator, Callable, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from plant_progression.config import Settings
from plant_progression.main import create_app

TEST_SECRET = "test-secret-not-real"


# ══════════════════════════════════════════════════════════════════════════
# Application Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def settings(tmp_path) -> Settings:
    """
    Settings for one test, pointing at tmp_path.

    _env_file=None keeps a developer's local .env out of the test run.
    """
    return Settings(
        _env_file=None,
        jwt_secret=TEST_SECRET,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        static_dir=str(tmp_path / "public"),
        upload_dir=str(tmp_path / "uploads"),
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def app(settings):
    """
    A fully wired app with its tables created.

    ASGITransport does not run the lifespan, so tables are created here.
    """
    application = create_app(settings)
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient routed straight into the ASGI app.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(app):
    """A raw AsyncSession against the test database (store-level tests)."""
    async with app.state.database.session() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Image Fixtures
# ══════════════════════════════════════════════════════════════════════════

def _image_bytes(fmt: str, color=(34, 139, 34)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _image_bytes("JPEG", color=(120, 200, 80))


@pytest.fixture
def gif_bytes() -> bytes:
    return _image_bytes("GIF")


# ══════════════════════════════════════════════════════════════════════════
# Auth Helpers
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def register(client) -> Callable:
    """
    Register a user and return headers carrying their token.

    Usage:
        headers = await register("alice")
        await client.get("/api/plants", headers=headers)
    """

    async def _register(username: str, password: str = "pw123") -> Dict[str, str]:
        response = await client.post(
            "/auth/register", json={"username": username, "password": password}
        )
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _register


@pytest.fixture
def create_plant(client, png_bytes) -> Callable:
    """Create a plant through the API and return its JSON body."""

    async def _create(headers: Dict[str, str], name: str = "Fern", species: str = "Nephrolepis"):
        response = await client.post(
            "/api/plants",
            headers=headers,
            data={"name": name, "species": species, "description": "shade plant"},
            files={"image": ("leaf.png", png_bytes, "image/png")},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def add_progress(client, jpeg_bytes) -> Callable:
    """Append a progress entry through the API and return {id, image}."""

    async def _add(headers: Dict[str, str], plant_id: str, notes: str = "new growth"):
        response = await client.put(
            f"/api/plants/{plant_id}/progress",
            headers=headers,
            data={"notes": notes},
            files={"image": ("leaf2.jpg", jpeg_bytes, "image/jpeg")},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _add
