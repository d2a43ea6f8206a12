"""
SmartQuery Backend: Query SQLAlchemy Model
==========================================

What:  ORM model for the `queries` table, the mutable "current" SQL snippets.
Who:   Owned by QueryService; read by ShareService through QueryService.

Table Design:
    - owner_id is fixed at creation. Every statement touching this table
      filters on owner_id, so a row is only ever visible to its owner.
    - updated_at is bumped on every update, even when nothing changed.
    - Index on (owner_id, updated_at DESC) serves the list query directly:
        SELECT ... WHERE owner_id = :owner ORDER BY updated_at DESC
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from smartquery.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Query(Base):
    """
    A user's saved SQL snippet.

    Lifecycle:
        1. Created by its owner (history entry appended)
        2. Updated in place by its owner; title, query_text and updated_at
           change (history entry appended with the new state)
        3. Deleted by its owner (history entry with the last state appended
           before the row is removed)
    """

    __tablename__ = "queries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning user; never changes after creation",
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    # TEXT: SQL snippets have no natural length limit
    query_text: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_queries_owner_updated", owner_id, updated_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Query(id={self.id}, owner_id={self.owner_id}, title='{self.title}')>"
