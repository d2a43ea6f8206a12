"""
SmartQuery Backend: AI Assistant Schemas
========================================

What:  Body and result of POST /api/ai/{action}.

    explain / fix  → read `query`
    generate       → reads `text` (a plain-language description)
"""

from typing import Optional

from pydantic import BaseModel, Field


class AssistRequest(BaseModel):
    text: Optional[str] = Field(default=None, max_length=10_000, description="Description for `generate`")
    query: Optional[str] = Field(default=None, max_length=50_000, description="SQL for `explain` and `fix`")


class AssistResponse(BaseModel):
    result: str = Field(description="Model answer with Markdown code fences removed")
