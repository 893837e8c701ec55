"""PostgreSQL connection management (asyncpg + pgvector)."""

from interest_engine.storage.database import Database

__all__ = ["Database"]
