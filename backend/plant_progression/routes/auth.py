"""
Plant Progression Backend — Auth Route Handlers
================================================

What:  POST /auth/register and POST /auth/login (both unauthenticated).
How:   Validates the JSON body (Credentials), delegates to CredentialService,
       and issues a bearer token through TokenService.

Status codes:
    register: 201 {token} | 400 missing/wrong-typed fields | 409 username taken
    login:    200 {token} | 400 missing/wrong-typed fields | 401 bad credentials
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from plant_progression.database import get_db_session
from plant_progression.dependencies import get_credential_service, get_token_service
from plant_progression.exceptions import AuthenticationError, ConflictError
from plant_progression.schemas.auth import Credentials, TokenResponse
from plant_progression.schemas.common import ErrorResponse
from plant_progression.services.credential_service import CredentialService
from plant_progression.services.token_service import TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=TokenResponse,
    responses={
        400: {"description": "Missing username or password", "model": ErrorResponse},
        409: {"description": "Username already taken", "model": ErrorResponse},
    },
    summary="Create an account and receive a token",
)
async def register(
    body: Credentials,
    db: AsyncSession = Depends(get_db_session),
    credentials: CredentialService = Depends(get_credential_service),
    tokens: TokenService = Depends(get_token_service),
) -> TokenResponse:
    created = await credentials.register_user(db, body.username, body.password)
    if not created:
        raise ConflictError(
            message="Username already taken. Please choose a different username",
            context={"username": body.username},
        )
    await db.commit()
    return TokenResponse(token=tokens.create_token(body.username))


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"description": "Missing username or password", "model": ErrorResponse},
        401: {"description": "Incorrect username or password", "model": ErrorResponse},
    },
    summary="Exchange username and password for a token",
)
async def login(
    body: Credentials,
    db: AsyncSession = Depends(get_db_session),
    credentials: CredentialService = Depends(get_credential_service),
    tokens: TokenService = Depends(get_token_service),
) -> TokenResponse:
    if not await credentials.verify_password(db, body.username, body.password):
        # Same message whether the user exists or not
        raise AuthenticationError(message="Incorrect username or password")
    logger.info("User %s logged in", body.username)
    return TokenResponse(token=tokens.create_token(body.username))
