"""
Scorecard Optimizer - Database Connection Management

Handles SQLite connection, session management, and schema creation.
Without a file path the database lives in memory and disappears with
the process.
"""

import os
from pathlib import Path
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from scorecard_optimizer.data.models import Base

MEMORY_PATH = ":memory:"


class DatabaseManager:
    """
    Manages SQLite database connections and sessions.
    File databases use WAL mode.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        echo: bool = False,
        in_memory: bool = False
    ):
        """
        Initialize the database manager.

        Args:
            db_path: Path to the SQLite database file
            echo: If True, log all SQL statements (useful for debugging)
            in_memory: If True, use an in-memory database
        """
        if in_memory or db_path is None or db_path == MEMORY_PATH:
            self.db_path = MEMORY_PATH
            # One shared connection so every session sees the same data
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool
            )
        else:
            self.db_path = db_path

            # Ensure directory exists
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=echo,
                connect_args={"check_same_thread": False}
            )

            @event.listens_for(self.engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
                cursor.execute("PRAGMA busy_timeout=30000")
                cursor.close()

        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False
        )

        self._initialized = False

    @property
    def is_memory(self) -> bool:
        return self.db_path == MEMORY_PATH

    def initialize(self) -> None:
        """
        Initialize the database schema.
        Creates all tables if they don't exist.
        """
        Base.metadata.create_all(bind=self.engine)
        self._initialized = True

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session using context manager.
        Automatically handles commit/rollback.

        Usage:
            with db.get_session() as session:
                session.add(run)
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_new_session(self) -> Session:
        """
        Get a new session without context manager.
        Caller is responsible for commit/rollback/close.
        """
        return self.SessionLocal()

    def get_stats(self) -> dict:
        """Get database statistics."""
        stats = {'path': self.db_path}

        if not self.is_memory and os.path.exists(self.db_path):
            stats['file_size_mb'] = os.path.getsize(self.db_path) / (1024 * 1024)

        with self.get_session() as session:
            result = session.execute(text("SELECT COUNT(*) FROM optimization_runs"))
            stats['optimization_runs_count'] = result.scalar()

        return stats

    def close(self) -> None:
        """Close all database connections."""
        self.engine.dispose()


def init_database(db_path: Optional[str] = None, echo: bool = False) -> DatabaseManager:
    """
    Create and initialize a database (convenience function).

    Args:
        db_path: Path to database file (None = in-memory)
        echo: Log SQL statements

    Returns:
        Initialized DatabaseManager instance
    """
    db = DatabaseManager(db_path=db_path, echo=echo)
    db.initialize()
    return db
