"""
Database transaction management utilities.

Multi-row mutations (bulk delete, bulk download increment, audit batches)
run inside ``transaction(db)`` so they either all apply or none do.

Usage:
    with transaction(db):
        audit.record(...)
        leads.delete_many(ids)
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .exceptions import AlreadyExists, ConsoleError, Internal


logger = logging.getLogger(__name__)


@contextmanager
def transaction(db: Session) -> Generator[Session, None, None]:
    """
    Context manager for database transactions with automatic rollback.

    Commits on success. On any error the session is rolled back; store
    failures are re-raised as ``Internal`` (or ``AlreadyExists`` for
    uniqueness violations) while console errors propagate unchanged.

    Args:
        db: SQLAlchemy database session

    Yields:
        The same database session
    """
    try:
        yield db
        db.commit()
        logger.debug("Transaction committed")
    except ConsoleError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Transaction rolled back on integrity error: {e.orig}")
        raise AlreadyExists("A record with the same key already exists.") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction rolled back due to store error: {e}")
        raise Internal("The data store rejected the operation.") from e
    except Exception as e:
        db.rollback()
        logger.error(f"Transaction rolled back due to error: {e}")
        raise
