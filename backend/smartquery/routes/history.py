"""
SmartQuery Backend: History Route Handlers
==========================================

What:  Read and prune the caller's query history ledger.

Route order matters: /history/all is declared before /history/{entry_id}
so "all" is never parsed as an entry id.
"""

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from smartquery.database import get_db_session
from smartquery.dependencies import get_current_user, parse_resource_id
from smartquery.schemas.common import ErrorResponse
from smartquery.schemas.query import HistoryEntryResponse
from smartquery.security import TokenClaims
from smartquery.services.history_service import history_service

router = APIRouter(
    prefix="/api/history",
    tags=["History"],
    responses={
        401: {"description": "No bearer token", "model": ErrorResponse},
        403: {"description": "Invalid or expired token", "model": ErrorResponse},
    },
)


@router.get(
    "",
    response_model=List[HistoryEntryResponse],
    summary="List my history entries (newest first)",
)
async def list_history(
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[HistoryEntryResponse]:
    entries = await history_service.list(db, user.user_id)
    return [HistoryEntryResponse.model_validate(e) for e in entries]


@router.delete(
    "/all",
    status_code=204,
    response_class=Response,
    summary="Irreversibly delete all of my history",
)
async def clear_history(
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await history_service.clear_all(db, user.user_id)
    return Response(status_code=204)


@router.delete(
    "/{entry_id}",
    status_code=204,
    response_class=Response,
    responses={404: {"description": "History entry not found", "model": ErrorResponse}},
    summary="Delete one of my history entries",
)
async def delete_history_entry(
    entry_id: str,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await history_service.delete_entry(
        db, user.user_id, parse_resource_id(entry_id, "history entry")
    )
    return Response(status_code=204)
