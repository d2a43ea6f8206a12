"""
SmartQuery Backend: Public Share Route Handlers
===============================================

What:  Unauthenticated read access to share snapshots.

    GET /api/share/{token}  → JSON snapshot
    GET /share/{token}      → standalone HTML page (the link handed out)

Security:
    - Tokens are 128+ bit random values; an unknown token is a plain 404.
    - Title and SQL are user-controlled and HTML-escaped before rendering.
    - Snapshots are immutable, so the public cache may keep them.
"""

import html
import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from smartquery.database import get_db_session
from smartquery.exceptions import NotFoundError
from smartquery.models.share import SharedSnapshot
from smartquery.schemas.common import ErrorResponse
from smartquery.schemas.share import SharedSnapshotResponse
from smartquery.services.share_service import share_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Share"])

IMMUTABLE_CACHE = "public, max-age=86400"

NOT_FOUND_PAGE = (
    "<!DOCTYPE html><html lang=\"en\"><head><meta charset=\"UTF-8\">"
    "<title>Not Found</title></head><body><h1>Not Found</h1>"
    "<p>The query you are looking for does not exist.</p></body></html>"
)

SHARE_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Shared Query: {title}</title>
    <style>
        body {{ background: #f8f9fa; color: #212529; padding: 2rem 1rem; font-family: system-ui, sans-serif; }}
        main {{ max-width: 900px; margin: 0 auto; }}
        pre {{ background: #272822; color: #f8f8f2; padding: 1rem; border-radius: .5rem;
               white-space: pre-wrap; word-wrap: break-word; }}
        footer {{ color: #6c757d; font-size: .9rem; }}
    </style>
</head>
<body>
    <main>
        <h1>{title}</h1>
        <pre><code class="language-sql">{query}</code></pre>
        <footer>Shared on {shared_on} &middot; <a href="/">Create your own queries with SmartQuery</a></footer>
    </main>
</body>
</html>
"""


def render_share_page(snapshot: SharedSnapshot) -> str:
    return SHARE_PAGE.format(
        title=html.escape(snapshot.title),
        query=html.escape(snapshot.query_text),
        shared_on=snapshot.created_at.strftime("%Y-%m-%d"),
    )


@router.get(
    "/api/share/{share_token}",
    response_model=SharedSnapshotResponse,
    responses={404: {"description": "Unknown share token", "model": ErrorResponse}},
    summary="Read a shared query snapshot (public)",
)
async def get_shared_query(
    share_token: str,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> SharedSnapshotResponse:
    snapshot = await share_service.get_share(db, share_token)
    response.headers["Cache-Control"] = IMMUTABLE_CACHE
    return SharedSnapshotResponse.model_validate(snapshot)


@router.get(
    "/share/{share_token}",
    response_class=HTMLResponse,
    responses={404: {"description": "Unknown share token (HTML page)"}},
    summary="Shared query page (public)",
    include_in_schema=False,
)
async def shared_query_page(
    share_token: str,
    db: AsyncSession = Depends(get_db_session),
) -> HTMLResponse:
    try:
        snapshot = await share_service.get_share(db, share_token)
    except NotFoundError:
        # Token stays out of the log; it grants read access
        logger.info("Share page requested for an unknown token")
        return HTMLResponse(NOT_FOUND_PAGE, status_code=404)
    return HTMLResponse(render_share_page(snapshot), headers={"Cache-Control": IMMUTABLE_CACHE})
