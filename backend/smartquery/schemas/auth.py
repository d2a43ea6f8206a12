"""
SmartQuery Backend: Authentication Schemas
==========================================

What:  Request/response bodies for /api/register and /api/login.

Fields default to empty strings so that a missing field reaches the service
and is reported as a 400 validation error, like a blank one.
"""

from pydantic import BaseModel, ConfigDict, Field


class CredentialsRequest(BaseModel):
    """Body of POST /api/register and POST /api/login."""
    username: str = Field(default="", max_length=150, description="Login name")
    password: str = Field(default="", max_length=256, description="Plain-text password (never logged)")


class TokenResponse(BaseModel):
    """Body returned by a successful login."""
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken", description="Bearer token (JWT, HS256)")
