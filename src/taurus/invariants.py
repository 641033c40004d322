"""Invariant markers for Taurus analysis."""

from __future__ import annotations

from typing import NoReturn

from taurus.exceptions import NeverThrown


def _normalized_env(env: dict[str, object]) -> dict[str, object]:
    normalized: dict[str, object] = {}
    for key, value in env.items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            normalized[key] = value
        else:
            normalized[key] = repr(value)
    return normalized


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The optional env payload is metadata only; it is attached to the raised
    exception for diagnostics and never evaluated.
    """
    raise NeverThrown(reason or "never() marker reached", env=_normalized_env(env))
