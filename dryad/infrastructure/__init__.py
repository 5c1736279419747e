"""Infrastructure layer exports."""

from .fixtures import load_fixtures
from .repository import DataRepository, InMemoryRepository

__all__ = [
    "DataRepository",
    "InMemoryRepository",
    "load_fixtures",
]
