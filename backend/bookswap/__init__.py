"""
BookSwap Backend — Application Package Initializer
===================================================

What: Marks the `bookswap` directory as a Python package.
Why:  Enables module imports like `from bookswap.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend of a peer-to-peer book exchange follows a layered layout:

    ┌─────────────────────────────────────┐
    │     Routes (users, publications,    │  ← HTTP concerns only
    │     reviews, health)                │
    ├─────────────────────────────────────┤
    │  Services (accounts, listings,      │  ← Business rules, ownership checks,
    │  interactions, reviews, mail)       │    notification cooldown
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Authentication is a FastAPI dependency (middleware/auth.py) rather than
    a Starlette middleware, so each route declares whether a user is
    required, optional, or must be an admin.
"""

__version__ = "1.0.0"
