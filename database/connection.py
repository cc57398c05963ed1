"""
Database connection and session management.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, InterfaceError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager
from typing import Generator, Optional

from database.models import Base
from core.errors import ConnectivityError, ConstraintViolationError, DuplicateRecordError
from core.logger import get_logger

logger = get_logger("database")


def translate_db_error(exc: DBAPIError) -> Exception:
    """
    Map a driver error onto the domain error taxonomy.

    Connectivity problems (dropped connection, timeout, pool exhausted) and
    constraint violations are kept apart so callers can react differently.
    """
    if isinstance(exc, IntegrityError):
        text = str(exc.orig).lower()
        if "unique" in text or "duplicate" in text:
            return DuplicateRecordError(f"Duplicate record: {exc.orig}")
        return ConstraintViolationError(f"Constraint violated: {exc.orig}")
    if isinstance(exc, (OperationalError, InterfaceError)) or exc.connection_invalidated:
        return ConnectivityError(f"Database unavailable: {exc.orig}")
    return exc


class Database:
    """Database connection manager."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        statement_timeout_ms: Optional[int] = None,
        echo: bool = False,
    ):
        """
        Initialize database connection.

        Args:
            database_url: PostgreSQL connection URL (sqlite URLs are accepted for tests)
            pool_size: Number of connections to maintain
            max_overflow: Maximum overflow connections
            pool_timeout: Seconds to wait for a free pooled connection
            statement_timeout_ms: Per-statement timeout applied on PostgreSQL connections
            echo: Log emitted SQL
        """
        self.database_url = database_url
        self.is_sqlite = database_url.startswith("sqlite")

        if self.is_sqlite:
            # One shared connection so in-memory databases survive across sessions
            self.engine = create_engine(
                database_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                echo=echo,
            )
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            connect_args = {}
            if statement_timeout_ms and database_url.startswith("postgresql"):
                connect_args["options"] = f"-c statement_timeout={statement_timeout_ms}"
            self.engine = create_engine(
                database_url,
                poolclass=QueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_pre_ping=True,  # Verify connections before using
                connect_args=connect_args,
                echo=echo,
            )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine)
        logger.info(f"Database engine initialized: {database_url.split('@')[1] if '@' in database_url else 'local'}")

    def create_tables(self):
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created")

    def drop_tables(self):
        """Drop all database tables (use with caution!)."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("All database tables dropped")

    def ping(self) -> bool:
        """Round-trip a trivial statement; raises ConnectivityError when the database is down."""
        try:
            with self.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
            return True
        except (DBAPIError, PoolTimeoutError) as e:
            raise ConnectivityError(f"Database unavailable: {e}") from e

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get database session context manager.

        One session is one transaction: everything done inside the block is
        committed together, or rolled back together on any error.

        Usage:
            with db.get_session() as session:
                # Use session
                pass
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except DBAPIError as e:
            session.rollback()
            translated = translate_db_error(e)
            if translated is e:
                raise
            logger.error(f"Database error: {translated}")
            raise translated from e
        except PoolTimeoutError as e:
            session.rollback()
            raise ConnectivityError("Timed out waiting for a database connection") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self):
        """Close all pooled connections."""
        self.engine.dispose()
        logger.info("Database connections closed")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
