"""Deterministic ordering for carriers whose order reaches the output.

Graph handles, entry points and report entries are produced in whatever order
the store iterates; every boundary that fixes such an order sorts exactly once,
and names itself through `source` so a broken key shows where it came from.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from taurus.invariants import never

T = TypeVar("T")


def sort_once(
    values: Iterable[T],
    *,
    source: str,
    key: Callable[[T], Any] | None = None,
    reverse: bool = False,
) -> list[T]:
    items = list(values)
    try:
        return sorted(items, key=key, reverse=reverse)
    except TypeError as exc:
        never("carrier is not orderable", source=source, error=str(exc))
