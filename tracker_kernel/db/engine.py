"""
Module: tracker_kernel.db.engine
Responsibility: The explicitly constructed database handle.  Owns the
    SQLAlchemy engine and session factory, defines the open/close lifecycle,
    and provides the transactional ``session_scope()`` used as the unit of
    work for every ledger mutation.
Architecture position: Kernel > DB.  May import from db/base.py and, for
    ``create_tables()``, the ORM model modules.

Invariants enforced:
    - No module-level engine: every component receives a ``Database`` at
      construction time.
    - ``session_scope()`` commits on normal exit and rolls back on any
      exception, so a transaction row is never persisted without its goal
      adjustment (or vice versa).
    - PostgreSQL runs at READ COMMITTED with explicit row locks
      (``SELECT ... FOR UPDATE``) where stronger isolation is needed.
      SQLite is supported for tests and development; it ignores FOR UPDATE,
      so in-process per-goal locks provide the serialization there.

Failure modes:
    - RuntimeError if the handle is used before ``open()`` or after
      ``close()``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tracker_kernel.logging_config import get_logger

logger = get_logger("db.engine")


class Database:
    """
    Database handle with an explicit open-at-startup / close-at-shutdown
    lifecycle.

    Usage:
        db = Database("sqlite:///tracker.db")
        db.open(create_schema=True)
        with db.session_scope() as session:
            ...
        db.close()

    Also usable as a context manager (``with Database(url) as db:``).
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 5,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
    ):
        self._url = url
        self._echo = echo
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._pool_timeout = pool_timeout
        self._pool_recycle = pool_recycle
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open(self, create_schema: bool = False) -> Database:
        """Create the engine and session factory.  Idempotent."""
        if self._engine is not None:
            return self

        url = make_url(self._url)
        kwargs: dict[str, Any] = {"echo": self._echo}

        if url.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
            if url.database in (None, "", ":memory:"):
                # One shared connection, otherwise every checkout sees an
                # empty in-memory database.
                kwargs["poolclass"] = StaticPool
        else:
            kwargs.update(
                pool_size=self._pool_size,
                max_overflow=self._max_overflow,
                pool_pre_ping=True,
                pool_timeout=self._pool_timeout,
                pool_recycle=self._pool_recycle,
                isolation_level="READ COMMITTED",
            )

        self._engine = create_engine(self._url, **kwargs)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

        logger.info(
            "database_opened",
            extra={"dialect": url.get_backend_name(), "echo": self._echo},
        )

        if create_schema:
            self.create_tables()
        return self

    def close(self) -> None:
        """Dispose the engine.  Safe to call more than once."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("database_closed")

    def __enter__(self) -> Database:
        return self.open()

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database not open. Call open() first.")
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def session(self) -> Session:
        """New session; the caller owns commit/rollback/close."""
        if self._session_factory is None:
            raise RuntimeError("Database not open. Call open() first.")
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Postconditions: On normal exit, session is committed and closed.
            On exception, session is rolled back and closed and the
            exception is re-raised to the caller.
        """
        session = self.session()
        logger.debug("transaction_started")
        try:
            yield session
            session.commit()
            logger.debug("transaction_committed")
        except Exception:
            session.rollback()
            logger.debug("transaction_rolled_back", exc_info=True)
            raise
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def create_tables(self) -> None:
        """Create all tables defined by the kernel models."""
        from tracker_kernel.db.base import Base
        import tracker_kernel.models  # noqa: F401  (registers tables)

        Base.metadata.create_all(self.engine)
        logger.info("schema_created", extra={"tables": sorted(Base.metadata.tables)})
