"""Guard against two weekly runs sending the same reports at once."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

LOGGER = logging.getLogger(__name__)

DEFAULT_LOCK_KEY = 7340001


class AdvisoryRunLock:
    """
    Session-level PostgreSQL advisory lock held for the duration of a run.

    Other dialects have no advisory locks; there the lock is always granted.
    """

    def __init__(self, engine: Engine, key: int = DEFAULT_LOCK_KEY) -> None:
        self.engine = engine
        self.key = key

    @contextmanager
    def acquire(self) -> Iterator[bool]:
        if self.engine.dialect.name != "postgresql":
            LOGGER.debug("Dialect %s has no advisory locks; running unguarded.", self.engine.dialect.name)
            yield True
            return

        # Autocommit keeps the lock session from sitting idle in a transaction for the whole run.
        with self.engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            acquired = bool(conn.execute(text("SELECT pg_try_advisory_lock(:key)"), {"key": self.key}).scalar())
            LOGGER.debug("Advisory lock %s acquired=%s", self.key, acquired)
            try:
                yield acquired
            finally:
                if acquired:
                    self._release(conn)

    def _release(self, conn) -> None:
        try:
            conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": self.key})
        except SQLAlchemyError as exc:
            # Session-level locks are dropped by the server when the connection closes.
            LOGGER.warning("Could not release advisory lock %s explicitly: %s", self.key, exc)


class NullRunLock:
    """Lock used when the overlap guard is disabled."""

    @contextmanager
    def acquire(self) -> Iterator[bool]:
        yield True
