"""
Storage factory – switch storage backend from settings
======================================================

This module centralizes selection of the storage backend (in-memory, SQLite
or PostgreSQL) so the rest of the app can stay ignorant of where data lives.

- Takes an explicit `Settings`; reads the environment only when none is given.
- Imports the PostgreSQL backend **only if** it is selected.
- Creates the SQLite schema right away; PostgreSQL schema creation is left to
  application startup so constructing the backend never opens a connection.
"""

from typing import Optional
import logging

from shorty_platform.config import Settings
from shorty_platform.storage.base import BaseStorage
from shorty_platform.storage.storage import Storage

logger = logging.getLogger(__name__)


def get_storage(backend: Optional[str] = None, settings: Optional[Settings] = None, **kwargs) -> BaseStorage:
    """
    Return a storage backend based on configuration.

    Parameters
    ----------
    backend : str, optional
        "memory", "sqlite" or "postgres". Defaults to settings.storage_backend.
    settings : Settings, optional
        Defaults to `Settings.from_env()`.
    kwargs : dict
        Overrides: dsn="..." for postgres, path="..." for sqlite.

    Returns
    -------
    BaseStorage-compatible instance
    """
    settings = settings or Settings.from_env()
    be = (backend or settings.storage_backend or "memory").lower()
    logger.info("Selected storage backend: %r", be)

    if be == "memory":
        return Storage()

    if be == "sqlite":
        from shorty_platform.storage.sqlite_storage import SQLiteStorage

        storage = SQLiteStorage(path=kwargs.get("path") or settings.sqlite_path)
        storage.ensure_schema()
        return storage

    if be == "postgres":
        dsn = kwargs.get("dsn") or settings.db_dsn
        if not dsn:
            raise ValueError("DB_DSN is required for postgres backend (env SHORTY_DB_DSN)")
        # Local import to avoid hard dependency when not using postgres
        from shorty_platform.storage.db_storage import DBStorage

        return DBStorage(dsn=dsn)

    raise ValueError(f"Unknown storage backend: {be!r}")
