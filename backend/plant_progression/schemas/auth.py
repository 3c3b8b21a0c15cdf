"""
Plant Progression Backend — Auth Schemas
=========================================

What:  Request/response models for /auth/register and /auth/login.
Why:   Strict types reject `{"username": 123}` or missing fields with a 400
       before any credential lookup happens.
"""

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class Credentials(BaseModel):
    """Body of both auth endpoints. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")

    username: StrictStr = Field(min_length=1, max_length=150, description="Case-sensitive username")
    password: StrictStr = Field(min_length=1, max_length=256, description="Plain-text password")


class TokenResponse(BaseModel):
    token: str = Field(description="Bearer token for the Authorization header")
