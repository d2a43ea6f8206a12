"""
SmartQuery Backend: History Ledger Service
==========================================

What:  Append-only log of every title/text state a user's queries passed through.
Who:   record() is called by QueryService on create, update and delete;
       list/clear/delete are called by the /api/history routes.

Design Decision:
    History is a side log, not the source of truth for current state. Entries
    carry no query id, so they outlive deleted queries. Entries are never
    updated; an owner can only remove them (one at a time or all at once).

Failure model:
    record() raises StoreUnavailableError when the insert fails. Deciding
    whether that failure matters is the caller's job; QueryService swallows
    it because the primary mutation already succeeded.
"""

import logging
import uuid
from typing import List

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from smartquery.exceptions import NotFoundError, StoreUnavailableError
from smartquery.models.history import HistoryEntry

logger = logging.getLogger(__name__)


class HistoryService:
    """Stateless; every operation is scoped by owner_id."""

    async def record(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        title: str,
        query_text: str,
    ) -> HistoryEntry:
        """
        Append one entry.

        Runs inside a SAVEPOINT so that a failed insert rolls back only the
        entry, leaving the surrounding request transaction usable.

        Raises:
            StoreUnavailableError: The insert could not be written.
        """
        entry = HistoryEntry(owner_id=owner_id, title=title, query_text=query_text)
        try:
            async with db.begin_nested():
                db.add(entry)
                await db.flush()
        except SQLAlchemyError as e:
            logger.error("History append failed for owner %s: %s", owner_id, e)
            raise StoreUnavailableError(
                message="Could not record query history.",
                context={"owner_id": str(owner_id), "error_type": type(e).__name__},
            )
        return entry

    async def list(self, db: AsyncSession, owner_id: uuid.UUID) -> List[HistoryEntry]:
        """Every entry for the owner, newest first."""
        try:
            result = await db.execute(
                select(HistoryEntry)
                .where(HistoryEntry.owner_id == owner_id)
                .order_by(desc(HistoryEntry.created_at))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing history for %s: %s", owner_id, e)
            raise StoreUnavailableError(
                message="Could not retrieve history. Please try again.",
                context={"owner_id": str(owner_id)},
            )

    async def clear_all(self, db: AsyncSession, owner_id: uuid.UUID) -> int:
        """
        Irreversibly remove every entry for the owner.

        Returns:
            Number of entries removed (0 is not an error).
        """
        try:
            result = await db.execute(
                delete(HistoryEntry).where(HistoryEntry.owner_id == owner_id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error clearing history for %s: %s", owner_id, e)
            raise StoreUnavailableError(context={"owner_id": str(owner_id)})

        logger.info("History cleared for owner %s (%d entries)", owner_id, result.rowcount)
        return result.rowcount

    async def delete_entry(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        entry_id: uuid.UUID,
    ) -> None:
        """
        Remove a single entry.

        Raises:
            NotFoundError: No entry with that id belongs to the owner.
        """
        try:
            result = await db.execute(
                delete(HistoryEntry).where(
                    HistoryEntry.id == entry_id,
                    HistoryEntry.owner_id == owner_id,
                )
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting history entry %s: %s", entry_id, e)
            raise StoreUnavailableError(context={"entry_id": str(entry_id)})

        if result.rowcount == 0:
            raise NotFoundError(resource="history entry", resource_id=str(entry_id))


history_service = HistoryService()
