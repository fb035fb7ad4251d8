"""Database helpers."""

from notification_service.db.session import create_db_engine, init_db, normalize_database_url

__all__ = ["create_db_engine", "init_db", "normalize_database_url"]
