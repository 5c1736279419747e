"""Domain layer definitions."""

from .state import COLLECTIONS, MockDataState

__all__ = [
    "COLLECTIONS",
    "MockDataState",
]
