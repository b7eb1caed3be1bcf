"""Database connection and session management."""
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import Settings, get_settings
from .models import Base, Role, User
from .auth import hash_password

logger = logging.getLogger("contacts-core.database")


def create_store_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine for the record store.

    SQLite URLs are opened with ``check_same_thread=False``; an in-memory
    SQLite database shares one connection so every session sees the same data.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,          # Verify connections before using
        pool_size=3,                 # Single console session needs few connections
        max_overflow=2,
        pool_recycle=3600,           # Recycle connections every hour
    )


def make_session_factory(database_url: Optional[str] = None) -> sessionmaker:
    """
    Build the session factory used as the store handle.

    Args:
        database_url: SQLAlchemy URL; defaults to the configured one

    Returns:
        sessionmaker bound to a new engine
    """
    url = database_url or get_settings().database_url
    engine = create_store_engine(url)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Acquire a database session for one operation.

    Rolls back on any exception and always closes the session.

    Yields:
        Session: SQLAlchemy database session
    """
    db = factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(factory: sessionmaker, settings: Optional[Settings] = None) -> None:
    """
    Create missing tables and the bootstrap manager account.

    The manager is only created when the users table is empty.
    """
    settings = settings or get_settings()
    Base.metadata.create_all(bind=factory.kw["bind"])

    with session_scope(factory) as db:
        if db.query(User).count() > 0:
            return

        db.add(User(
            username=settings.bootstrap_manager_username,
            password_hash=hash_password(settings.bootstrap_manager_password),
            name="System",
            surname="Manager",
            role=Role.MANAGER.value,
        ))
        db.commit()
        logger.info(f"Created bootstrap manager '{settings.bootstrap_manager_username}'")
