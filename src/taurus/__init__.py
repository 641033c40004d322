"""Taurus package root."""

from taurus.exceptions import NeverRaise, NeverThrown
from taurus.invariants import never

__all__ = ["__version__", "NeverRaise", "NeverThrown", "never"]

__version__ = "0.1.0"
