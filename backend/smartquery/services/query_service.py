"""
SmartQuery Backend: Query Repository Service
============================================

What:  Owns each user's current saved queries and feeds the History Ledger.
Who:   Called by the /api/queries route handlers and by ShareService.

Mutation → history pairing:
    ┌──────────────┐        ┌─────────────────────────┐
    │ create/update│──────▶ │ history.record(new state)│   primary first
    └──────────────┘        └─────────────────────────┘
    ┌──────────────┐        ┌─────────────────────────┐
    │    delete    │ ◀──────│ history.record(old state)│   history first
    └──────────────┘        └─────────────────────────┘

    The pair is not one atomic unit. A failed history append is logged and
    swallowed; the caller still sees the primary mutation succeed. A crash
    between the two steps can lose the history entry of a create or update.
    Delete records first, so the last living state of a query reaches the
    ledger before the row disappears.

Ownership:
    Every lookup filters on owner_id. A query that exists but belongs to
    someone else raises the same NotFoundError as a missing one.

Concurrency:
    No version tokens. Concurrent updates to the same query are
    last-write-wins on title, query_text and updated_at.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Tuple

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from smartquery.exceptions import NotFoundError, StoreUnavailableError, ValidationError
from smartquery.models.query import Query
from smartquery.services.history_service import history_service

logger = logging.getLogger(__name__)


def _validated(title: str, query_text: str) -> Tuple[str, str]:
    """Returns (trimmed title, query_text); blank values raise ValidationError."""
    title = (title or "").strip()
    if not title:
        raise ValidationError(message="Title and query are required.", field="title")
    if not (query_text or "").strip():
        raise ValidationError(message="Title and query are required.", field="query")
    return title, query_text


class QueryService:
    """
    Business logic for saved queries.

    Error Handling Strategy:
        ValidationError and NotFoundError propagate unchanged. Raw
        SQLAlchemy errors on the primary path become StoreUnavailableError.
        History failures never escape (see _append_history).
    """

    async def list_queries(self, db: AsyncSession, owner_id: uuid.UUID) -> List[Query]:
        """The owner's queries, most recently updated first."""
        try:
            result = await db.execute(
                select(Query)
                .where(Query.owner_id == owner_id)
                .order_by(desc(Query.updated_at))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing queries for %s: %s", owner_id, e)
            raise StoreUnavailableError(
                message="Could not retrieve queries. Please try again.",
                context={"owner_id": str(owner_id)},
            )

    async def get_query_owned(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        query_id: uuid.UUID,
    ) -> Query:
        """
        Fetch one query owned by owner_id.

        Query plan:
            SELECT * FROM queries WHERE id = :id AND owner_id = :owner

        Raises:
            NotFoundError: Missing, or owned by someone else.
        """
        try:
            result = await db.execute(
                select(Query).where(Query.id == query_id, Query.owner_id == owner_id)
            )
            query = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching query %s: %s", query_id, e)
            raise StoreUnavailableError(context={"query_id": str(query_id)})

        if query is None:
            raise NotFoundError(resource="query", resource_id=str(query_id))
        return query

    async def create_query(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        title: str,
        query_text: str,
    ) -> Query:
        """
        Persist a new query, then record its first state in history.

        Raises:
            ValidationError: Blank title or SQL text. Nothing is written.
            StoreUnavailableError: The query row could not be written.
        """
        title, query_text = _validated(title, query_text)

        now = datetime.now(timezone.utc)
        query = Query(
            owner_id=owner_id,
            title=title,
            query_text=query_text,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(query)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating query for %s: %s", owner_id, e)
            raise StoreUnavailableError(
                message="Could not save the query. Please try again.",
                context={"owner_id": str(owner_id)},
            )
        logger.info("Query created: %s (owner=%s)", query.id, owner_id)

        await self._append_history(db, owner_id, title, query_text, operation="create")
        return query

    async def update_query(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        query_id: uuid.UUID,
        title: str,
        query_text: str,
    ) -> Query:
        """
        Overwrite title and SQL text, then record the new state in history.

        updated_at is always bumped, even when the values are unchanged.

        Raises:
            ValidationError: Blank title or SQL text.
            NotFoundError: Missing, or owned by someone else.
        """
        title, query_text = _validated(title, query_text)
        query = await self.get_query_owned(db, owner_id, query_id)

        query.title = title
        query.query_text = query_text
        query.updated_at = datetime.now(timezone.utc)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating query %s: %s", query_id, e)
            raise StoreUnavailableError(
                message="Could not update the query. Please try again.",
                context={"query_id": str(query_id)},
            )
        logger.info("Query updated: %s (owner=%s)", query_id, owner_id)

        await self._append_history(db, owner_id, title, query_text, operation="update")
        return query

    async def delete_query(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        query_id: uuid.UUID,
    ) -> None:
        """
        Record the query's last state in history, then delete it.

        Raises:
            NotFoundError: Missing, or owned by someone else.
        """
        query = await self.get_query_owned(db, owner_id, query_id)

        await self._append_history(
            db, owner_id, query.title, query.query_text, operation="delete"
        )

        try:
            await db.delete(query)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting query %s: %s", query_id, e)
            raise StoreUnavailableError(
                message="Could not delete the query. Please try again.",
                context={"query_id": str(query_id)},
            )
        logger.info("Query deleted: %s (owner=%s)", query_id, owner_id)

    async def _append_history(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        title: str,
        query_text: str,
        operation: str,
    ) -> None:
        """Best-effort ledger append; failures are logged, never raised."""
        try:
            await history_service.record(db, owner_id, title, query_text)
        except StoreUnavailableError as e:
            logger.error(
                "History entry lost for %s by owner %s: %s | Context: %s",
                operation,
                owner_id,
                e.message,
                e.context,
            )


query_service = QueryService()
