"""In-memory collections backing the mock data services."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

COLLECTIONS: tuple[str, ...] = (
    "customers",
    "users",
    "jobs",
    "equipment",
    "quotes",
    "schedule",
    "trucks",
    "labor",
    "logs",
)


@dataclass(slots=True)
class MockDataState:
    """Plain JSON-shaped records, one list per collection."""

    customers: list[dict[str, Any]] = field(default_factory=list)
    users: list[dict[str, Any]] = field(default_factory=list)
    jobs: list[dict[str, Any]] = field(default_factory=list)
    equipment: list[dict[str, Any]] = field(default_factory=list)
    quotes: list[dict[str, Any]] = field(default_factory=list)
    schedule: list[dict[str, Any]] = field(default_factory=list)
    trucks: list[dict[str, Any]] = field(default_factory=list)
    labor: list[dict[str, Any]] = field(default_factory=list)
    logs: list[dict[str, Any]] = field(default_factory=list)

    def collection(self, name: str) -> list[dict[str, Any]]:
        if name not in COLLECTIONS:
            raise KeyError(f"unknown collection: {name}")
        return getattr(self, name)
