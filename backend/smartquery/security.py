"""
SmartQuery Backend: Password Hashing & Access Tokens
====================================================

What:  bcrypt password hashing and HS256 JWT issuance/verification.
Who:   AuthService (hash, verify, issue) and the Auth Gate (decode).

Token claims:
    sub       user id (UUID string)
    username  login name, for display only
    exp       expiry, now + access_token_expire_minutes (default 1 hour)
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from smartquery.config import settings
from smartquery.exceptions import AuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    """Identity extracted from a verified access token."""
    user_id: uuid.UUID
    username: str


# ── Passwords ─────────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    """Salted bcrypt hash; cost factor from settings.bcrypt_rounds."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Constant-time comparison against a stored hash.

    Returns False (never raises) for malformed hashes and for passwords
    longer than bcrypt's 72-byte input limit.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


# ── Tokens ────────────────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    username: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {"sub": str(user_id), "username": username, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenClaims:
    """
    Verify signature and expiry, then extract the caller's identity.

    Raises:
        AuthError (403): expired, forged, malformed, or missing claims.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthError(message="Access token has expired")
    except JWTError as e:
        logger.debug("Rejected access token: %s", e)
        raise AuthError(message="Invalid access token")

    subject = payload.get("sub")
    username = payload.get("username")
    if not subject or not isinstance(username, str):
        raise AuthError(message="Invalid access token")
    try:
        user_id = uuid.UUID(str(subject))
    except ValueError:
        raise AuthError(message="Invalid access token")

    return TokenClaims(user_id=user_id, username=username)
