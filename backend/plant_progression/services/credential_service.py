"""
Plant Progression Backend — Credential Service
===============================================

What:  Registers users and verifies passwords against stored bcrypt hashes.
Who:   Called by the /auth routes only.

Security Model:
    - passlib CryptContext with bcrypt (salted, adaptive cost)
    - verify_password returns False for both "unknown user" and "wrong
      password". For an unknown user it still spends one dummy bcrypt
      verification, so response timing does not reveal which case it was.
    - bcrypt is deliberately slow (~100ms+). Hashing runs in Starlette's
      threadpool so it never stalls the event loop.
"""

import logging

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from plant_progression.exceptions import DatabaseError
from plant_progression.models.user import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class CredentialService:
    async def register_user(self, db: AsyncSession, username: str, password: str) -> bool:
        """
        Create a user with a salted hash of `password`.

        Returns:
            True when created, False when the username already exists
            (including when a concurrent registration wins the insert race).
        """
        try:
            existing = await db.get(User, username)
            if existing is not None:
                return False

            password_hash = await run_in_threadpool(pwd_context.hash, password)

            db.add(User(username=username, password_hash=password_hash))
            await db.flush()
            logger.info("Registered user %s", username)
            return True

        except IntegrityError:
            # The transaction holds nothing but this insert
            await db.rollback()
            logger.info("Registration race lost for username %s", username)
            return False
        except SQLAlchemyError as e:
            logger.error("Database error registering %s: %s", username, e)
            raise DatabaseError(context={"operation": "register_user"})

    async def verify_password(self, db: AsyncSession, username: str, password: str) -> bool:
        """Return whether `password` matches the stored hash for `username`."""
        try:
            result = await db.execute(select(User.password_hash).where(User.username == username))
            password_hash = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login lookup: %s", e)
            raise DatabaseError(context={"operation": "verify_password"})

        if password_hash is None:
            await run_in_threadpool(pwd_context.dummy_verify)
            return False

        return await run_in_threadpool(pwd_context.verify, password, password_hash)
