"""
SmartQuery Backend: Auth Gate
=============================

What:  FastAPI dependency that turns `Authorization: Bearer <token>` into
       the caller's identity.
How:   HTTPBearer(auto_error=False) hands us the raw credentials so the
       absent and invalid cases can be told apart:

           no / blank bearer token  → AuthError 401
           token fails verification → AuthError 403

       The returned owner id comes only from the verified token. Routes pass
       it to services; nothing in a request body or path can override it.
"""

import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from smartquery.exceptions import AuthError, NotFoundError
from smartquery.security import TokenClaims, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False, description="Access token from POST /api/login")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenClaims:
    if credentials is None or not credentials.credentials.strip():
        raise AuthError(message="Authentication required", status_code=401)
    return decode_access_token(credentials.credentials.strip())


def parse_resource_id(value: str, resource: str) -> uuid.UUID:
    """
    Path id → UUID. Malformed ids answer 404 like unknown ones, so the shape
    of an id reveals nothing either.
    """
    try:
        return uuid.UUID(value)
    except ValueError:
        raise NotFoundError(resource=resource, resource_id=value[:64])
