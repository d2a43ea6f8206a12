"""
SmartQuery Backend: Shared Snapshot SQLAlchemy Model
====================================================

What:  ORM model for `shared_queries`, immutable public copies of a query.

Table Design:
    - share_token is the primary key: an unguessable URL-safe string.
    - title and query_text are copied at share time and never updated.
    - No reference to `queries`; the snapshot stays readable after the
      source query is edited or deleted.
    - original_owner_id is attribution only. Read access is public.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from smartquery.database import Base


class SharedSnapshot(Base):
    """A frozen, publicly readable copy of a query's title and SQL."""

    __tablename__ = "shared_queries"

    share_token: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Opaque public identifier (secrets.token_urlsafe)",
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    query_text: Mapped[str] = mapped_column(Text, nullable=False)

    original_owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<SharedSnapshot(token='{self.share_token[:6]}...', title='{self.title}')>"
