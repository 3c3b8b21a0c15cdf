"""
Plant Progression Backend — Static Frontend Route
==================================================

What:  Serves the built single-page frontend from STATIC_DIR.
How:   GET /<path> returns the matching file when one exists, otherwise
       index.html so client-side routes (/plants/123) load the app.
       Registered last so every API route wins over it.

Uploaded images are NOT served here; main.py mounts them at /uploads.

Security:
    The resolved path must stay inside STATIC_DIR (no ../ escapes).
    /api/* and /auth/* never fall back to index.html; an unknown API path
    is a JSON 404, not an HTML page.
"""

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse

from plant_progression.exceptions import NotFoundError

router = APIRouter(tags=["Frontend"], include_in_schema=False)

_API_PREFIXES = ("api/", "auth/", "uploads/")


@router.get("/{file_path:path}")
async def serve_frontend(file_path: str, request: Request) -> FileResponse:
    if file_path.startswith(_API_PREFIXES) or file_path in {"api", "auth", "uploads"}:
        raise NotFoundError(resource="route", resource_id=f"/{file_path}")

    static_root: Path = request.app.state.settings.static_root

    if file_path:
        candidate = (static_root / file_path).resolve()
        if candidate.is_relative_to(static_root) and candidate.is_file():
            return FileResponse(path=str(candidate))

    index = static_root / "index.html"
    if not index.is_file():
        raise NotFoundError(resource="page", resource_id=f"/{file_path}")
    return FileResponse(path=str(index), headers={"Cache-Control": "no-cache"})
