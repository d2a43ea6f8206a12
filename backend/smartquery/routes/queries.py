"""
SmartQuery Backend: Query Route Handlers
========================================

What:  CRUD for the caller's saved queries, plus share-link creation.
Who:   Authenticated callers only; the owner id always comes from the token.

Every 404 here means "no such query for you". Missing, foreign and malformed
ids are answered identically.

Caching:
    Responses are private and uncached; queries change on every edit.
"""

from typing import List

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from smartquery.database import get_db_session
from smartquery.dependencies import get_current_user, parse_resource_id
from smartquery.schemas.common import ErrorResponse
from smartquery.schemas.query import QueryPayload, QueryResponse
from smartquery.schemas.share import ShareLinkResponse
from smartquery.security import TokenClaims
from smartquery.services.query_service import query_service
from smartquery.services.share_service import share_service

router = APIRouter(
    prefix="/api/queries",
    tags=["Queries"],
    responses={
        401: {"description": "No bearer token", "model": ErrorResponse},
        403: {"description": "Invalid or expired token", "model": ErrorResponse},
    },
)

NOT_FOUND = {404: {"description": "Query not found", "model": ErrorResponse}}


@router.get(
    "",
    response_model=List[QueryResponse],
    summary="List my saved queries (most recently updated first)",
)
async def list_queries(
    response: Response,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[QueryResponse]:
    queries = await query_service.list_queries(db, user.user_id)
    response.headers["Cache-Control"] = "private, no-store"
    response.headers["X-Total-Count"] = str(len(queries))
    return [QueryResponse.model_validate(q) for q in queries]


@router.post(
    "",
    status_code=201,
    response_model=QueryResponse,
    responses={400: {"description": "Blank title or query", "model": ErrorResponse}},
    summary="Save a new query",
    description="Also appends the new title/text to the caller's history.",
)
async def create_query(
    body: QueryPayload,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> QueryResponse:
    query = await query_service.create_query(db, user.user_id, body.title, body.query_text)
    return QueryResponse.model_validate(query)


@router.get(
    "/{query_id}",
    response_model=QueryResponse,
    responses=NOT_FOUND,
    summary="Get one of my queries",
)
async def get_query(
    query_id: str,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> QueryResponse:
    query = await query_service.get_query_owned(
        db, user.user_id, parse_resource_id(query_id, "query")
    )
    return QueryResponse.model_validate(query)


# POST rather than PUT/PATCH: existing clients call this path
@router.post(
    "/update/{query_id}",
    response_model=QueryResponse,
    responses={
        **NOT_FOUND,
        400: {"description": "Blank title or query", "model": ErrorResponse},
    },
    summary="Replace the title and SQL of one of my queries",
    description="Always bumps updatedAt and appends the new state to history.",
)
async def update_query(
    query_id: str,
    body: QueryPayload,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> QueryResponse:
    query = await query_service.update_query(
        db,
        user.user_id,
        parse_resource_id(query_id, "query"),
        body.title,
        body.query_text,
    )
    return QueryResponse.model_validate(query)


@router.delete(
    "/{query_id}",
    status_code=204,
    response_class=Response,
    responses=NOT_FOUND,
    summary="Delete one of my queries",
    description="The last title/text is appended to history before the delete.",
)
async def delete_query(
    query_id: str,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await query_service.delete_query(db, user.user_id, parse_resource_id(query_id, "query"))
    return Response(status_code=204)


@router.post(
    "/share/{query_id}",
    response_model=ShareLinkResponse,
    responses=NOT_FOUND,
    summary="Publish a frozen public snapshot of one of my queries",
    description=(
        "Copies the query's current title and SQL into a public snapshot and "
        "returns its link. Later edits to the query do not affect the snapshot."
    ),
)
async def share_query(
    query_id: str,
    request: Request,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ShareLinkResponse:
    snapshot = await share_service.create_share(
        db, user.user_id, parse_resource_id(query_id, "query")
    )
    return ShareLinkResponse(
        share_link=share_service.build_share_link(snapshot.share_token, str(request.base_url)),
        share_token=snapshot.share_token,
    )
