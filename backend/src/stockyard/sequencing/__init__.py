"""Per-tenant sequential reference numbers."""

from .allocator import ReferenceAllocator
from .formatting import next_reference_number, parse_reference_number, render_reference_number
from .locking import (
    LockStrategy,
    PostgresAdvisoryLock,
    RowLock,
    SequenceKey,
    SQLiteImmediateLock,
    is_conflict,
    strategy_for,
)

__all__ = [
    "ReferenceAllocator",
    "next_reference_number",
    "parse_reference_number",
    "render_reference_number",
    "LockStrategy",
    "PostgresAdvisoryLock",
    "RowLock",
    "SequenceKey",
    "SQLiteImmediateLock",
    "is_conflict",
    "strategy_for",
]
