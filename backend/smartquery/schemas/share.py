"""
SmartQuery Backend: Share Schemas
=================================

What:  Responses for creating and reading public share snapshots.

The public snapshot payload deliberately leaves out the originating owner id;
attribution stays server-side.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ShareLinkResponse(BaseModel):
    """Returned by POST /api/queries/share/{id}."""
    model_config = ConfigDict(populate_by_name=True)

    share_link: str = Field(alias="shareLink", description="Public URL of the snapshot page")
    share_token: str = Field(alias="shareToken", description="Opaque token inside the link")


class SharedSnapshotResponse(BaseModel):
    """Returned by GET /api/share/{token}; readable without authentication."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    share_token: str = Field(alias="shareToken")
    title: str
    query_text: str = Field(alias="query")
    created_at: datetime = Field(alias="createdAt")
