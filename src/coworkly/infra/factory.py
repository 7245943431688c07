"""Storage construction from settings."""

from coworkly.config import Settings
from coworkly.infra.memory_store import MemoryStore
from coworkly.infra.store import Store


def build_store(settings: Settings) -> Store:
    """Create the process-wide store. Caller owns it and must close() it."""
    if settings.store_backend == "memory":
        return MemoryStore()

    from coworkly.infra.db import Database
    from coworkly.infra.postgres_store import PostgresStore

    db = Database(
        settings.database_url or "",
        min_conn=settings.db_pool_min,
        max_conn=settings.db_pool_max,
    )
    return PostgresStore(db)
