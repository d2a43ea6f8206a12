"""
SmartQuery Backend: User SQLAlchemy Model
=========================================

What:  ORM model for the `users` table (the Identity Store).
Who:   Written by AuthService.register(), read by AuthService.login().

Lifecycle:
    Created on registration. The username never changes and users are
    never deleted by the API.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from smartquery.database import Base


class User(Base):
    """A registered account. Owns queries, history entries and share snapshots."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Opaque user identifier; carried in the access token `sub` claim",
    )

    # Unique constraint is the final arbiter for concurrent registrations
    username: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        unique=True,
        comment="Login name; unique and immutable",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash of the password",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
