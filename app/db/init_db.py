# app/db/init_db.py
"""Database initialization utilities."""
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from app.core.logging import get_logger
from app.db.base import Base

logger = get_logger(__name__)


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Create any missing tables.

    Suitable for development and tests; production schemas are expected
    to be managed outside the service.
    """
    if bind is None:
        from app.db.session import engine as bind

    existing_tables = inspect(bind).get_table_names()
    Base.metadata.create_all(bind=bind)
    created = set(Base.metadata.tables) - set(existing_tables)
    if created:
        logger.info(f"Database tables created: {', '.join(sorted(created))}")
    else:
        logger.info(f"Database already initialized with {len(existing_tables)} tables")


def drop_db(bind: Optional[Engine] = None) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data! Only for development/testing purposes.
    """
    if bind is None:
        from app.db.session import engine as bind
    Base.metadata.drop_all(bind=bind)
    logger.warning("All database tables dropped")
