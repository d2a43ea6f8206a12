"""
SmartQuery Backend: Application Package
=======================================

What: Personal SQL query library API. Users save named SQL snippets, browse
      the history of every state a snippet passed through, publish frozen
      public snapshots, and ask an AI assistant to explain, fix or generate SQL.
Who:  Imported by uvicorn (`smartquery.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Auth Gate (dependencies.py)        │  ← caller identity from bearer token
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← queries, history, shares, AI proxy
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services never read ownership from request bodies. Every owner id they
    receive comes from the Auth Gate.
"""

__version__ = "1.0.0"
