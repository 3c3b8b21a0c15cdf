"""
Plant Progression Backend — Request Dependencies
=================================================

What:  FastAPI dependencies shared by the routers: the authorization gate,
       accessors for the services built by the app factory, and the
       one-file-per-request upload guard.
Why:   Routes declare what they need; nothing reads globals or the process
       environment during a request.

Authorization gate:
    Authorization header missing / not "Bearer <token>"  → 401
    token fails signature or expiry check                 → 403
    otherwise                                             → username

    FastAPI resolves these dependencies before it validates body and form
    fields, so an unauthenticated request is rejected before its fields are
    checked. Exception: a JSON body that does not parse at all is rejected
    with 400 by FastAPI before any dependency runs, token or not.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.datastructures import UploadFile as StarletteUploadFile

from plant_progression.exceptions import AuthenticationError, ValidationError
from plant_progression.services.credential_service import CredentialService
from plant_progression.services.plant_service import PlantService
from plant_progression.services.token_service import TokenService

# auto_error=False: we raise our own 401 with the standard error body
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.credential_service


def get_plant_service(request: Request) -> PlantService:
    return request.app.state.plant_service


async def get_current_username(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    token_service: TokenService = Depends(get_token_service),
) -> str:
    """Authenticated username for this request (see module docstring)."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Missing auth token")
    return token_service.decode_token(credentials.credentials)


async def single_file_upload(request: Request) -> None:
    """
    Reject multipart bodies carrying more than one file.

    Starlette caches the parsed form on the request, so FastAPI's own
    form handling reuses it rather than reading the body twice.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        return
    form = await request.form()
    files = [value for _, value in form.multi_items() if isinstance(value, StarletteUploadFile)]
    if len(files) > 1:
        raise ValidationError(message="Only one image may be uploaded per request", field="image")
