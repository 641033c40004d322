"""Exception taxonomy for Taurus analysis runs."""

from __future__ import annotations

from pathlib import Path


class TaurusError(RuntimeError):
    """Base class for errors that abort an analysis or ingest run."""


class StoreUnavailableError(TaurusError):
    """The backing summary store could not be created or opened."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"failed to access consistent storage at {path}: {reason}")
        self.path = path
        self.reason = reason


class CorruptRecordError(TaurusError):
    """A stored record failed to deserialize.

    The run cannot produce a trustworthy report once this happens, so the
    error is never retried or skipped.
    """

    def __init__(self, table: str, key: str, reason: str):
        super().__init__(f"corrupted record {key!r} in {table} store: {reason}")
        self.table = table
        self.key = key
        self.reason = reason


class InvalidRecordError(TaurusError):
    """An ingest input line is malformed or breaks a marking invariant."""

    def __init__(self, source: str, line_no: int, reason: str):
        super().__init__(f"{source}:{line_no}: {reason}")
        self.source = source
        self.line_no = line_no
        self.reason = reason


class NeverRaise(RuntimeError):
    """Sentinel exception for code paths that should be unreachable.

    Reaching one of these means an internal invariant of the engine was
    broken; the env payload carries whatever context the raising site had.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.reason = message
        self.env = dict(env or {})


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""
