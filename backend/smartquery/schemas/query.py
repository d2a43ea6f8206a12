"""
SmartQuery Backend: Query & History Schemas
===========================================

What:  API contracts for saved queries and their history entries.
How:   Python attributes are snake_case; the wire format keeps the camelCase
       names clients already use (`query`, `createdAt`, `updatedAt`,
       `ownerId`). populate_by_name lets model_validate() read ORM attributes
       by their Python names.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class QueryPayload(BaseModel):
    """
    Body of POST /api/queries and POST /api/queries/update/{id}.

    Blank values are rejected by QueryService with a 400, not here, so that
    missing and blank fields produce the same error.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(default="", max_length=255, description="Display name of the snippet")
    query_text: str = Field(default="", alias="query", description="SQL text")


class QueryResponse(BaseModel):
    """A saved query as returned to its owner."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID = Field(alias="ownerId")
    title: str
    query_text: str = Field(alias="query")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class HistoryEntryResponse(BaseModel):
    """One ledger entry: the title/text a query had at some point."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    title: str
    query_text: str = Field(alias="query")
    created_at: datetime = Field(alias="createdAt")
