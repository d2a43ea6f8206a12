"""
SmartQuery Backend: Auth Service (Identity Store access)
========================================================

What:  Registration and login against the `users` table.
Who:   Called by the /api/register and /api/login route handlers.

Status mapping:
    blank username/password   → ValidationError (400)
    password over 72 bytes    → ValidationError (400)
    username already taken    → ConflictError   (409)
    unknown username at login → ValidationError (400)
    wrong password            → AuthError       (403)
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from smartquery.exceptions import AuthError, ConflictError, StoreUnavailableError, ValidationError
from smartquery.models.user import User
from smartquery.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes; newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


def _require_credentials(username: str, password: str) -> str:
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError(
            message="Username and password are required.",
            field="username" if not username else "password",
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            message=f"Password must be at most {MAX_PASSWORD_BYTES} bytes.",
            field="password",
        )
    return username


class AuthService:
    """Stateless; the session is passed in for each call."""

    async def register(self, db: AsyncSession, username: str, password: str) -> User:
        """
        Create a user with a bcrypt-hashed password.

        The existence check gives the common case a clean 409; the unique
        constraint catches the race where two registrations interleave.
        """
        username = _require_credentials(username, password)

        try:
            result = await db.execute(select(User.id).where(User.username == username))
            if result.scalar_one_or_none() is not None:
                raise ConflictError(message="Username already exists.")

            user = User(username=username, password_hash=hash_password(password))
            db.add(user)
            await db.flush()
        except ConflictError:
            raise
        except IntegrityError:
            await db.rollback()
            raise ConflictError(message="Username already exists.")
        except SQLAlchemyError as e:
            logger.error("Database error registering user: %s", e)
            raise StoreUnavailableError(context={"operation": "register"})

        logger.info("User registered: %s", user.id)
        return user

    async def login(self, db: AsyncSession, username: str, password: str) -> str:
        """
        Verify credentials and issue an access token.

        Returns:
            Signed JWT carrying {sub: user id, username, exp}.
        """
        username = _require_credentials(username, password)

        try:
            result = await db.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", e)
            raise StoreUnavailableError(context={"operation": "login"})

        if user is None:
            raise ValidationError(message="Cannot find user.", field="username")
        if not verify_password(password, user.password_hash):
            raise AuthError(message="Not allowed. Incorrect password.", status_code=403)

        logger.info("User logged in: %s", user.id)
        return create_access_token(user.id, user.username)


auth_service = AuthService()
