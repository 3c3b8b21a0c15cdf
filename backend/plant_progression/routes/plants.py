"""
Plant Progression Backend — Plant & Progress Route Handlers
============================================================

What:  Every /api/plants endpoint.
Why:   The frontend's plant grid, plant detail timeline, and edit forms.
How:   Thin handlers: extract path/query/form/body values, call PlantService,
       pick the status code. Ownership, existence and upload rules all live
       in PlantService.

Every handler depends on get_current_username, so:
    no/invalid Authorization scheme → 401, bad or expired token → 403,
    before any other validation or store access.

Route Inventory:
    GET    /api/plants?name=                        → 200 [Plant]
    POST   /api/plants                   multipart  → 201 Plant
    GET    /api/plants/{id}                         → 200 Plant
    PATCH  /api/plants/{id}              multipart  → 204
    DELETE /api/plants/{id}                         → 204
    PUT    /api/plants/{id}/progress     multipart  → 201 {id, image}
    PATCH  /api/plants/{id}/progress/{progressId}   → 204
    DELETE /api/plants/{id}/progress/{progressId}   → 204
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from plant_progression.database import get_db_session
from plant_progression.dependencies import (
    get_current_username,
    get_plant_service,
    single_file_upload,
)
from plant_progression.schemas.common import ErrorResponse
from plant_progression.schemas.plant import (
    NotesUpdate,
    PlantResponse,
    ProgressCreatedResponse,
)
from plant_progression.services.plant_service import PlantService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plants", tags=["Plants"])

_AUTH_ERRORS = {
    401: {"description": "Missing auth token", "model": ErrorResponse},
    403: {"description": "Invalid/expired token or not the owner", "model": ErrorResponse},
}
_PLANT_ERRORS = {
    **_AUTH_ERRORS,
    400: {"description": "Invalid plant ID or request", "model": ErrorResponse},
    404: {"description": "Plant (or entry) not found", "model": ErrorResponse},
}


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


@router.get(
    "",
    response_model=List[PlantResponse],
    responses=_AUTH_ERRORS,
    summary="List the caller's plants",
)
async def list_plants(
    name: Optional[str] = Query(default=None, description="Case-insensitive name substring"),
    username: str = Depends(get_current_username),
    db: AsyncSession = Depends(get_db_session),
    service: PlantService = Depends(get_plant_service),
) -> List[PlantResponse]:
    return await service.list_plants(db, username, name=name)


@router.post(
    "",
    status_code=201,
    response_model=PlantResponse,
    responses={**_AUTH_ERRORS, 400: {"description": "Missing fields or bad image", "model": ErrorResponse}},
    summary="Create a plant with its primary image",
)
async def create_plant(
    username: str = Depends(get_current_username),
    _single_file: None = Depends(single_file_upload),
    name: str = Form(..., min_length=1, max_length=200),
    species: str = Form(..., min_length=1, max_length=200),
    description: str = Form(default="", max_length=10_000),
    image: UploadFile = File(..., description="PNG or JPEG, max 5MB"),
    db: AsyncSession = Depends(get_db_session),
    service: PlantService = Depends(get_plant_service),
) -> PlantResponse:
    try:
        return await service.create_plant(
            db,
            username=username,
            name=name,
            species=species,
            description=description,
            image=image,
        )
    finally:
        await image.close()


@router.get(
    "/{plant_id}",
    response_model=PlantResponse,
    responses=_PLANT_ERRORS,
    summary="Get one of the caller's plants, including its progress",
)
async def get_plant(
    plant_id: str,
    username: str = Depends(get_current_username),
    db: AsyncSession = Depends(get_db_session),
    service: PlantService = Depends(get_plant_service),
) -> PlantResponse:
    return await service.get_plant(db, plant_id, username)


@router.patch(
    "/{plant_id}",
    status_code=204,
    response_class=Response,
    responses=_PLANT_ERRORS,
    summary="Update name, species and/or image",
)
async def update_plant(
    plant_id: str,
    username: str = Depends(get_current_username),
    _single_file: None = Depends(single_file_upload),
    name: Optional[str] = Form(default=None, max_length=200),
    species: Optional[str] = Form(default=None, max_length=200),
    image: Optional[UploadFile] = File(default=None),
    db: AsyncSession = Depends(get_db_session),
    service: PlantService = Depends(get_plant_service),
) -> Response:
    # Browsers submit an empty file part when no file was chosen
    if image is not None and not image.filename:
        image = None

    try:
        await service.update_plant(
            db,
            plant_id,
            username,
            name=_blank_to_none(name),
            species=_blank_to_none(species),
            image=image,
        )
    finally:
        if image is not None:
            await image.close()
    return Response(status_code=204)


@router.delete(
    "/{plant_id}",
    status_code=204,
    response_class=Response,
    responses=_PLANT_ERRORS,
    summary="Delete a plant and all of its progress entries",
)
async def delete_plant(
    plant_id: str,
    username: str = Depends(get_current_username),
    db: AsyncSession = Depends(get_db_session),
    service: PlantService = Depends(get_plant_service),
) -> Response:
    await service.delete_plant(db, plant_id, username)
    return Response(status_code=204)


@router.put(
    "/{plant_id}/progress",
    status_code=201,
    response_model=ProgressCreatedResponse,
    responses=_PLANT_ERRORS,
    summary="Append a progress entry (photo + optional notes/height)",
)
async def add_progress(
    plant_id: str,
    username: str = Depends(get_current_username),
    _single_file: None = Depends(single_file_upload),
    image: UploadFile = File(..., description="PNG or JPEG, max 5MB"),
    notes: str = Form(default="", max_length=10_000),
    height_cm: Optional[float] = Form(default=None, alias="heightCm", ge=0, allow_inf_nan=False),
    db: AsyncSession = Depends(get_db_session),
    service: PlantService = Depends(get_plant_service),
) -> ProgressCreatedResponse:
    try:
        return await service.add_progress(
            db,
            plant_id,
            username,
            image=image,
            notes=notes,
            height_cm=height_cm,
        )
    finally:
        await image.close()


@router.patch(
    "/{plant_id}/progress/{progress_id}",
    status_code=204,
    response_class=Response,
    responses=_PLANT_ERRORS,
    summary="Replace the notes of one progress entry",
)
async def update_progress_notes(
    plant_id: str,
    progress_id: str,
    body: NotesUpdate,
    username: str = Depends(get_current_username),
    db: AsyncSession = Depends(get_db_session),
    service: PlantService = Depends(get_plant_service),
) -> Response:
    await service.update_progress_notes(db, plant_id, progress_id, username, body.notes)
    return Response(status_code=204)


@router.delete(
    "/{plant_id}/progress/{progress_id}",
    status_code=204,
    response_class=Response,
    responses=_PLANT_ERRORS,
    summary="Delete one progress entry",
)
async def delete_progress(
    plant_id: str,
    progress_id: str,
    username: str = Depends(get_current_username),
    db: AsyncSession = Depends(get_db_session),
    service: PlantService = Depends(get_plant_service),
) -> Response:
    await service.delete_progress(db, plant_id, progress_id, username)
    return Response(status_code=204)
