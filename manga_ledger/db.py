# manga_ledger/db.py
"""Database session and connection management for snapshot persistence"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from manga_ledger.models.db import Base

logger = logging.getLogger(__name__)


class Database:
    """Database connection and session manager"""

    def __init__(self):
        """Initialize database manager state"""
        self._engine = None
        self._SessionLocal = None

    def init(self, connection_string: str) -> None:
        """
        Initialize database connection and create tables.

        This should be called once at application startup.

        Args:
            connection_string: SQLAlchemy URL, e.g. sqlite:///manga_ledger.db

        Raises:
            SQLAlchemyError: If database initialization fails
        """
        try:
            self._engine = create_engine(connection_string)
            Base.metadata.create_all(self._engine)
            self._SessionLocal = sessionmaker(bind=self._engine)
            logger.info("Database initialized successfully")

        except SQLAlchemyError as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of database operations.

        Usage:
            with db.session() as session:
                StorageService(session).delete_period(202403)

        Yields:
            Session: SQLAlchemy database session

        Raises:
            RuntimeError: If database not initialized
            SQLAlchemyError: If database operations fail
        """
        if not self._SessionLocal:
            raise RuntimeError("Database not initialized. Call init() first.")

        session = self._SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_session(self) -> Session:
        """
        Get a new database session.

        Raises:
            RuntimeError: If database not initialized
        """
        if not self._SessionLocal:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._SessionLocal()

    def dispose(self) -> None:
        """
        Clean up database connections.
        Should be called during application shutdown.
        """
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._SessionLocal = None


# Global database instance
db = Database()
