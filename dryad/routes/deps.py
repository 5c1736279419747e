from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from fastapi import Depends, Header, HTTPException, Request
from pydantic import BaseModel

from dryad.application import AppContext
from dryad.core.errors import DuplicateRecordError, InvalidReferenceError, WorkflowError
from dryad.core.schema import User


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def get_current_user(
    context: AppContext = Depends(get_context),
    x_user_id: str | None = Header(default=None),
) -> User | None:
    """Mock user switch: ``X-User-Id`` wins over the configured default user."""

    user_id = x_user_id or context.settings.default_user_id
    if not user_id:
        return None
    return await context.users.get_user_by_id(user_id)


@contextmanager
def service_errors() -> Iterator[None]:
    try:
        yield
    except InvalidReferenceError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except (DuplicateRecordError, WorkflowError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


def require(value: Any, detail: str) -> Any:
    if value is None:
        raise HTTPException(status_code=404, detail=detail)
    return value


def dump(value: BaseModel) -> dict[str, Any]:
    return value.model_dump(mode="json")


def dump_all(values: Iterable[BaseModel]) -> list[dict[str, Any]]:
    return [value.model_dump(mode="json") for value in values]
