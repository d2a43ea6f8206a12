"""
SmartQuery Backend: Share Registry Service
==========================================

What:  Creates and serves immutable public snapshots of saved queries.
Who:   create_share() is called by POST /api/queries/share/{id} (authenticated);
       get_share() by GET /api/share/{token} and GET /share/{token} (public).

Share tokens:
    secrets.token_urlsafe(settings.share_token_bytes): at least 128 bits from
    the OS CSPRNG, URL-safe base64. Nothing in a token depends on time or on
    earlier tokens, so tokens cannot be enumerated or predicted.

Snapshot lifecycle:
    One state only: published. Title and SQL are copied at share time and
    never change, whatever happens to the source query afterwards. There is
    no revoke or expiry path.
"""

import logging
import secrets
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from smartquery.config import settings
from smartquery.exceptions import NotFoundError, StoreUnavailableError
from smartquery.models.share import SharedSnapshot
from smartquery.services.query_service import query_service

logger = logging.getLogger(__name__)

# Token collisions at 128+ bits are not expected; the retry bound only keeps
# a misbehaving store from looping forever.
MAX_TOKEN_ATTEMPTS = 3


def generate_share_token() -> str:
    return secrets.token_urlsafe(settings.share_token_bytes)


class ShareService:
    """Stateless; the session is passed in for each call."""

    async def create_share(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        query_id: uuid.UUID,
    ) -> SharedSnapshot:
        """
        Publish a frozen copy of one of the caller's queries.

        Raises:
            NotFoundError: The query is missing or owned by someone else
                (ownership check delegated to QueryService).
            StoreUnavailableError: The snapshot could not be written.
        """
        query = await query_service.get_query_owned(db, owner_id, query_id)

        for attempt in range(1, MAX_TOKEN_ATTEMPTS + 1):
            snapshot = SharedSnapshot(
                share_token=generate_share_token(),
                title=query.title,
                query_text=query.query_text,
                original_owner_id=owner_id,
            )
            try:
                async with db.begin_nested():
                    db.add(snapshot)
                    await db.flush()
            except IntegrityError:
                logger.warning("Share token collision (attempt %d), regenerating", attempt)
                continue
            except SQLAlchemyError as e:
                logger.error("Database error creating share for query %s: %s", query_id, e)
                raise StoreUnavailableError(
                    message="Could not create the share link. Please try again.",
                    context={"query_id": str(query_id)},
                )
            logger.info("Share created for query %s (owner=%s)", query_id, owner_id)
            return snapshot

        raise StoreUnavailableError(
            message="Could not create the share link. Please try again.",
            context={"query_id": str(query_id), "reason": "token collisions"},
        )

    async def get_share(self, db: AsyncSession, share_token: str) -> SharedSnapshot:
        """
        Public lookup by token. No authentication.

        Raises:
            NotFoundError: Unknown token.
        """
        try:
            result = await db.execute(
                select(SharedSnapshot).where(SharedSnapshot.share_token == share_token)
            )
            snapshot = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error reading share: %s", e)
            raise StoreUnavailableError(message="Could not load the shared query.")

        if snapshot is None:
            raise NotFoundError(resource="shared query")
        return snapshot

    @staticmethod
    def build_share_link(share_token: str, base_url: str) -> str:
        """
        Public page URL for a token.

        settings.public_base_url wins over the request's base URL, for
        deployments behind a proxy that rewrites Host.
        """
        origin = (settings.public_base_url or base_url).rstrip("/")
        return f"{origin}/share/{share_token}"


share_service = ShareService()
