"""Infrastructure layer for mock data persistence."""
from __future__ import annotations

import copy
from typing import Any, Callable, Protocol

from dryad.domain import COLLECTIONS, MockDataState

Record = dict[str, Any]


class DataRepository(Protocol):
    """Persistence contract for the mock collections."""

    def list(self, collection: str, predicate: Callable[[Record], bool] | None = None) -> list[Record]: ...

    def get(self, collection: str, record_id: str) -> Record | None: ...

    def insert(self, collection: str, record: Record, *, prepend: bool = False) -> Record: ...

    def update(self, collection: str, record_id: str, changes: Record) -> Record | None: ...

    def delete(self, collection: str, record_id: str) -> bool: ...

    def count(self, collection: str) -> int: ...

    def next_id(self, prefix: str) -> str: ...

    def reset(self) -> None: ...


class InMemoryRepository:
    """Repository over in-memory copies of the fixtures.

    Every read hands back deep copies. Concurrent writers are not coordinated,
    the last write wins.
    """

    def __init__(self, seed: MockDataState | None = None) -> None:
        self._seed = seed or MockDataState()
        self._state = self._clone_seed()
        self._counters: dict[str, int] = {}

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _clone_seed(self) -> MockDataState:
        return MockDataState(**{name: copy.deepcopy(self._seed.collection(name)) for name in COLLECTIONS})

    def _rows(self, collection: str) -> list[Record]:
        return self._state.collection(collection)

    def _index_of(self, collection: str, record_id: str) -> int | None:
        for index, row in enumerate(self._rows(collection)):
            if row.get("id") == record_id:
                return index
        return None

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------
    def list(self, collection: str, predicate: Callable[[Record], bool] | None = None) -> list[Record]:
        rows = self._rows(collection)
        if predicate is not None:
            rows = [row for row in rows if predicate(row)]
        return copy.deepcopy(rows)

    def get(self, collection: str, record_id: str) -> Record | None:
        index = self._index_of(collection, record_id)
        if index is None:
            return None
        return copy.deepcopy(self._rows(collection)[index])

    def insert(self, collection: str, record: Record, *, prepend: bool = False) -> Record:
        stored = copy.deepcopy(record)
        rows = self._rows(collection)
        if prepend:
            rows.insert(0, stored)
        else:
            rows.append(stored)
        return copy.deepcopy(stored)

    def update(self, collection: str, record_id: str, changes: Record) -> Record | None:
        index = self._index_of(collection, record_id)
        if index is None:
            return None
        rows = self._rows(collection)
        merged = {**rows[index], **copy.deepcopy(changes)}
        rows[index] = merged
        return copy.deepcopy(merged)

    def delete(self, collection: str, record_id: str) -> bool:
        index = self._index_of(collection, record_id)
        if index is None:
            return False
        del self._rows(collection)[index]
        return True

    def count(self, collection: str) -> int:
        return len(self._rows(collection))

    def next_id(self, prefix: str) -> str:
        self._counters[prefix] = self._counters.get(prefix, 0) + 1
        return f"{prefix}-{self._counters[prefix]:05d}"

    def reset(self) -> None:
        self._state = self._clone_seed()
        self._counters.clear()
