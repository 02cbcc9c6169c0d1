from __future__ import annotations

import logging
from typing import Iterable

from .services.base import BaseService, connect

log = logging.getLogger("clanroster.database")


async def initialize_database(sqlite_path: str, stores: Iterable[BaseService]) -> None:
    """Initialize the database with all stores."""
    try:
        async with connect(sqlite_path) as db:
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA synchronous=NORMAL")
            await db.execute("PRAGMA temp_store=MEMORY")
        log.info("Applied SQLite optimizations")

        for store in stores:
            await store.init()
            log.info(f"Initialized {store.__class__.__name__}")

        log.info("Database initialization completed")

    except Exception as e:
        log.error(f"Failed to initialize database: {e}")
        raise
