"""Database engine construction."""

from sqlalchemy import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine


def normalize_database_url(url: str) -> str:
    """Use the psycopg v3 driver for plain ``postgresql://`` URLs."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine usable from the worker pool threads.

    SQLite connections are shared across threads; an in-memory database
    is pinned to a single connection so every thread sees the same data.
    """
    url = normalize_database_url(url)

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(url, echo=echo, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    """Create the delivery tables if they do not exist."""
    from notification_service.models.delivery import DeliveryRecord  # noqa: F401

    SQLModel.metadata.create_all(engine)
