"""Create query library tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  users, queries, query_history and shared_queries, with the two
       owner-scoped listing indexes.

Rollback: downgrade() drops every table. All data is lost.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(150), nullable=False, comment="Login name; unique and immutable"),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="bcrypt hash of the password"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )

    op.create_table(
        "queries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("query_text", sa.Text(), nullable=False),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
    )
    # GET /api/queries: WHERE owner_id = ? ORDER BY updated_at DESC
    op.create_index(
        "idx_queries_owner_updated",
        "queries",
        ["owner_id", sa.text("updated_at DESC")],
    )

    # No FK to queries: entries outlive the query they describe
    op.create_table(
        "query_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("query_text", sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "idx_history_owner_created",
        "query_history",
        ["owner_id", sa.text("created_at DESC")],
    )

    op.create_table(
        "shared_queries",
        sa.Column("share_token", sa.String(128), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("query_text", sa.Text(), nullable=False),
        sa.Column("original_owner_id", sa.Uuid(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("share_token"),
        sa.ForeignKeyConstraint(["original_owner_id"], ["users.id"], ondelete="CASCADE"),
    )


def downgrade() -> None:
    op.drop_table("shared_queries")
    op.drop_index("idx_history_owner_created", table_name="query_history")
    op.drop_table("query_history")
    op.drop_index("idx_queries_owner_updated", table_name="queries")
    op.drop_table("queries")
    op.drop_table("users")
