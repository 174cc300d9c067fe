"""Serialization of concurrent reference allocations, one strategy per dialect.

    postgresql  pg_advisory_xact_lock on the sequence key, plus FOR UPDATE
                on the current maximum row. The advisory lock also covers an
                empty partition, where FOR UPDATE has no row to lock.
    sqlite      the database write lock taken by BEGIN IMMEDIATE (engines
                built by stockyard.database.create_db_engine). The whole
                transaction is serialized, so nothing is locked per query.
    others      FOR UPDATE on the current maximum row.

Every lock is released when the caller's transaction ends.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from ..database import BEGIN_IMMEDIATE_FLAG
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
CONFLICT_PGCODES = frozenset({"40001", "40P01", "55P03"})

SQLITE_BUSY_MESSAGES = ("database is locked", "database table is locked", "database is busy")


@dataclass(frozen=True)
class SequenceKey:
    """Identity of one reference-number sequence."""
    entity_type: str
    company_id: UUID
    branch_id: Optional[UUID] = None

    @property
    def lock_id(self) -> int:
        """Signed 64-bit advisory lock id derived from the key."""
        raw = f"{self.entity_type}:{self.company_id}:{self.branch_id or '-'}".encode("utf-8")
        digest = hashlib.blake2b(raw, digest_size=8).digest()
        return int.from_bytes(digest, "big", signed=True)


class LockStrategy(ABC):
    """How one dialect keeps two allocators from reading the same maximum."""

    name = "none"

    @abstractmethod
    def acquire(self, session: Session, key: SequenceKey) -> None:
        """Take whatever lock guards ``key`` for the rest of the transaction."""

    def lock_max_row(self, stmt: Select, model: type) -> Select:
        """Turn the find-max query into a locking read when the dialect needs one."""
        return stmt


class PostgresAdvisoryLock(LockStrategy):
    name = "pg_advisory"

    def acquire(self, session: Session, key: SequenceKey) -> None:
        session.execute(select(func.pg_advisory_xact_lock(key.lock_id)))

    def lock_max_row(self, stmt: Select, model: type) -> Select:
        return stmt.with_for_update(of=model)


class SQLiteImmediateLock(LockStrategy):
    name = "sqlite_immediate"

    def acquire(self, session: Session, key: SequenceKey) -> None:
        if not session.connection().info.get(BEGIN_IMMEDIATE_FLAG):
            raise ConfigurationError(
                "SQLite engine does not begin transactions IMMEDIATE; "
                "create it with stockyard.database.create_db_engine()",
                entity_type=key.entity_type,
            )


class RowLock(LockStrategy):
    name = "row_lock"

    def acquire(self, session: Session, key: SequenceKey) -> None:
        pass

    def lock_max_row(self, stmt: Select, model: type) -> Select:
        return stmt.with_for_update(of=model)


def strategy_for(dialect_name: str) -> LockStrategy:
    """Lock strategy for a SQLAlchemy dialect name."""
    if dialect_name == "postgresql":
        return PostgresAdvisoryLock()
    if dialect_name == "sqlite":
        return SQLiteImmediateLock()
    logger.debug("No dedicated lock strategy, using row locks", extra={"dialect": dialect_name})
    return RowLock()


def is_conflict(exc: DBAPIError) -> bool:
    """Whether a driver error is a transient collision with another writer."""
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) in CONFLICT_PGCODES:
        return True
    if isinstance(exc, OperationalError):
        message = str(orig if orig is not None else exc).lower()
        return any(busy in message for busy in SQLITE_BUSY_MESSAGES)
    return False
