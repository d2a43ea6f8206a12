"""
SmartQuery Backend: Auth Route Handlers
=======================================

What:  POST /api/register and POST /api/login. Both are public.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from smartquery.database import get_db_session
from smartquery.schemas.auth import CredentialsRequest, TokenResponse
from smartquery.schemas.common import ErrorResponse, MessageResponse
from smartquery.services.auth_service import auth_service

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=MessageResponse,
    responses={
        400: {"description": "Blank username or password, or password over 72 bytes", "model": ErrorResponse},
        409: {"description": "Username already exists", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def register(
    body: CredentialsRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.register(db, body.username, body.password)
    return MessageResponse(message="User registered successfully.")


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"description": "Blank fields or unknown user", "model": ErrorResponse},
        403: {"description": "Incorrect password", "model": ErrorResponse},
    },
    summary="Log in and receive a bearer token",
    description="Returns an access token valid for one hour by default.",
)
async def login(
    body: CredentialsRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    token = await auth_service.login(db, body.username, body.password)
    return TokenResponse(access_token=token)
