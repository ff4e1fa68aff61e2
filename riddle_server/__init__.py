"""
Riddle Server — Application Package Initializer
================================================

What: Marks the `riddle_server` directory as a Python package.
Who:  Imported by uvicorn (`riddle_server.main:app`), Alembic and pytest.

Architecture Note:
    The backend is layered:

    ┌─────────────────────────────────────┐
    │   Routes + Access-Control (HTTP)    │  ← status codes, auth dependencies
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← auth, players/scores, riddles
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services never touch HTTP objects; routes never build SQL.
"""

__version__ = "1.0.0"
