"""
SmartQuery Backend: History Entry SQLAlchemy Model
==================================================

What:  ORM model for `query_history`, the append-only ledger of every
       title/text state a user's queries passed through.

Table Design:
    - No foreign key to `queries`. An entry is a snapshot of title + text,
      so it outlives the query it came from and survives id churn.
    - Rows are inserted and deleted, never updated.
    - Index on (owner_id, created_at DESC) serves the newest-first listing.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from smartquery.database import Base


class HistoryEntry(Base):
    """One recorded state of a query, attributed to the user who produced it."""

    __tablename__ = "query_history"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Acting user at the time of the originating mutation",
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    query_text: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_history_owner_created", owner_id, created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<HistoryEntry(id={self.id}, owner_id={self.owner_id}, title='{self.title}')>"
