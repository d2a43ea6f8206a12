"""
ORM models. Importing this package registers every table on Base.metadata,
which create_all() and Alembic's --autogenerate rely on.
"""

from smartquery.models.history import HistoryEntry
from smartquery.models.query import Query
from smartquery.models.share import SharedSnapshot
from smartquery.models.user import User

__all__ = ["HistoryEntry", "Query", "SharedSnapshot", "User"]
