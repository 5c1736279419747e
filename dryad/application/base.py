from __future__ import annotations

import asyncio
from typing import Any, Iterable, TypeVar

import structlog
from pydantic import BaseModel

from dryad.infrastructure import DataRepository

ModelT = TypeVar("ModelT", bound=BaseModel)


class RepositoryService:
    """Shared plumbing for the async mock-data services."""

    collection: str = ""

    def __init__(self, repository: DataRepository, *, latency: float = 0.0) -> None:
        self._repository = repository
        self._latency = latency
        self._logger = structlog.get_logger(type(self).__module__).bind(service=type(self).__name__)

    async def _simulate_delay(self) -> None:
        # yields to the loop even with zero latency, like a real network hop
        await asyncio.sleep(self._latency)

    @staticmethod
    def _parse(model: type[ModelT], row: dict[str, Any] | None) -> ModelT | None:
        if row is None:
            return None
        return model.model_validate(row)

    @staticmethod
    def _parse_all(model: type[ModelT], rows: Iterable[dict[str, Any]]) -> list[ModelT]:
        return [model.model_validate(row) for row in rows]

    @staticmethod
    def _dump(model: BaseModel) -> dict[str, Any]:
        return model.model_dump(mode="json")

    @staticmethod
    def _merge(model: type[ModelT], current: ModelT, changes: BaseModel, **extra: Any) -> tuple[ModelT, dict[str, Any]]:
        """Apply the fields set on ``changes`` to ``current``.

        An explicit ``None`` clears a field only where ``model`` allows it; for
        required or non-nullable fields it is ignored.
        """

        updates = {
            name: value
            for name, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or (model.model_fields[name].default is None and not model.model_fields[name].is_required())
        }
        return model.model_validate({**current.model_dump(), **updates, **extra}), updates
