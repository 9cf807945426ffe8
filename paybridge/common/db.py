"""Database bootstrap helpers shared by both services."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from paybridge.common.config import settings


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass


def make_engine(url: str) -> Engine:
    """Build an engine; in-memory SQLite shares one connection across sessions."""

    in_memory = url in ("sqlite://", "sqlite+pysqlite://") or (url.startswith("sqlite") and ":memory:" in url)
    if in_memory:
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


def make_session_factory(bind: Engine) -> sessionmaker:
    # `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, expire_on_commit=False)


def create_schema(bind: Engine) -> None:
    """Create tables directly; production schemas go through Alembic."""

    # Models register themselves on Base.metadata at import time.
    import paybridge.services.orders.models  # noqa: F401

    Base.metadata.create_all(bind)


# Single SQLAlchemy engine per process.
engine = make_engine(settings.database_url)
SessionLocal = make_session_factory(engine)
