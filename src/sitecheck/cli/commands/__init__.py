"""CLI command modules."""

from . import check

__all__ = [
    "check",
]
