from __future__ import annotations

import fcntl
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from taurus.exceptions import StoreUnavailableError

LOCK_FILE_NAME = ".lock"


@contextmanager
def exclusive_depstore_lock(depstore: Path) -> Iterator[Path]:
    """Hold an advisory exclusive lock on the depstore while writing.

    The summary store does not coordinate writers itself; every producer
    takes this lock before opening the store for inserts.
    """
    lock_path = depstore / LOCK_FILE_NAME
    try:
        depstore.mkdir(parents=True, exist_ok=True)
        handle = lock_path.open("w")
    except OSError as exc:
        raise StoreUnavailableError(depstore, str(exc)) from exc
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        try:
            yield lock_path
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    finally:
        handle.close()
