"""
Database connection and session management.

Provides SQLAlchemy engine, session factory, and dependency injection
for database sessions in FastAPI endpoints.
"""

from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from .config import settings


# =============================================================================
# SQLAlchemy Base
# =============================================================================

Base = declarative_base()


# =============================================================================
# Engine Configuration
# =============================================================================

def create_db_engine(database_url: str) -> Engine:
    """
    Build an engine for the given URL.

    Pool sizing and the session-level timeouts only apply to PostgreSQL;
    other backends (SQLite in tests and local tooling) use SQLAlchemy defaults.

    Args:
        database_url: SQLAlchemy connection URL

    Returns:
        Configured Engine
    """
    url = make_url(database_url)
    if url.get_backend_name() != "postgresql":
        return create_engine(database_url, echo=settings.debug)

    pg_engine = create_engine(
        database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,  # Enable connection health checks
        pool_recycle=settings.db_pool_recycle,
        pool_timeout=settings.db_pool_timeout,
        echo=settings.debug,  # Log SQL queries in debug mode
    )

    @event.listens_for(pg_engine, "connect")
    def set_connection_settings(dbapi_connection, connection_record):
        """
        Configure connection settings when a new connection is created.

        Sets timezone and statement timeout for safety.
        """
        cursor = dbapi_connection.cursor()
        cursor.execute("SET timezone='UTC'")
        cursor.execute("SET statement_timeout = '30s'")
        cursor.close()

    return pg_engine


engine = create_db_engine(settings.database_url)


# =============================================================================
# Session Factory
# =============================================================================

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


# =============================================================================
# Dependency Injection
# =============================================================================

def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database session injection.

    Creates a new session for each request and ensures proper cleanup.

    Yields:
        SQLAlchemy Session instance
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =============================================================================
# Database Utilities
# =============================================================================

def init_db(bind: Engine = engine) -> None:
    """
    Create all tables defined in models.

    Development and test helper; production schemas are migrated separately.
    """
    from .. import models  # noqa: F401  (registers mappers on Base)

    Base.metadata.create_all(bind=bind)

