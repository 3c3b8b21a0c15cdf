"""
Plant Progression Backend — Bearer Token Service
=================================================

What:  Issues and verifies the signed, time-limited tokens clients present
       as `Authorization: Bearer <token>`.
How:   HS256 JWT via python-jose. The payload carries only the username and
       the standard iat/exp claims.

Expiry policy:
    Registration and login issue identical tokens with one configured
    lifetime (token_expire_minutes, default one day). There is no refresh
    flow; an expired token means logging in again.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from plant_progression.config import Settings
from plant_progression.exceptions import ForbiddenError

logger = logging.getLogger(__name__)


class TokenService:
    def __init__(self, settings: Settings):
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm
        self._lifetime = timedelta(minutes=settings.token_expire_minutes)

    def create_token(self, username: str, expires_delta: Optional[timedelta] = None) -> str:
        """Sign a token for `username` valid for the configured lifetime."""
        now = datetime.now(timezone.utc)
        payload = {
            "username": username,
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self._lifetime),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode_token(self, token: str) -> str:
        """
        Verify signature and expiry and return the embedded username.

        Raises:
            ForbiddenError: bad signature, expired, malformed, or no usable
                            username claim. The reason is logged, not returned.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as e:
            logger.info("Rejected bearer token: %s", e)
            raise ForbiddenError(message="Invalid or expired token")

        username = payload.get("username")
        if not isinstance(username, str) or not username:
            logger.info("Rejected bearer token: missing username claim")
            raise ForbiddenError(message="Invalid or expired token")

        return username
