"""
Core module for the lead console backend.

Contains configuration, database setup, identity and authorization.
"""

from .config import settings
from .database import get_db, engine, SessionLocal

__all__ = ["settings", "get_db", "engine", "SessionLocal"]
