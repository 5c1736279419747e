from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from dryad.application import AppContext
from dryad.core.schema import Role
from dryad.routes.deps import dump, dump_all, get_context, require, service_errors

router = APIRouter(tags=["directory"])


class UserIn(BaseModel):
    first_name: str
    last_name: str
    email: str
    role: Role
    phone_number: str | None = None
    is_active: bool = True


@router.get("/customers")
async def list_customers(
    q: str | None = Query(default=None),
    context: AppContext = Depends(get_context),
) -> dict:
    if q is not None:
        customers = await context.customers.search_customers(q)
    else:
        customers = await context.customers.get_customers()
    return {"items": dump_all(customers)}


@router.get("/customers/{customer_id}")
async def get_customer(customer_id: str, context: AppContext = Depends(get_context)) -> dict:
    return dump(require(await context.customers.get_customer_by_id(customer_id), "customer not found"))


@router.get("/customers/{customer_id}/jobs")
async def customer_jobs(customer_id: str, context: AppContext = Depends(get_context)) -> dict:
    require(await context.customers.get_customer_by_id(customer_id), "customer not found")
    return {"items": dump_all(await context.jobs.get_jobs_by_customer(customer_id))}


@router.get("/users")
async def list_users(
    role: Role | None = Query(default=None),
    active: bool | None = Query(default=None),
    context: AppContext = Depends(get_context),
) -> dict:
    users = await context.users.get_users_by_role(role) if role else await context.users.get_users()
    if active is not None:
        users = [user for user in users if user.is_active == active]
    return {"items": dump_all(users)}


@router.post("/users", status_code=201)
async def create_user(payload: UserIn, context: AppContext = Depends(get_context)) -> dict:
    with service_errors():
        user = await context.users.add_user(**payload.model_dump())
    return dump(user)


@router.get("/users/{user_id}")
async def get_user(user_id: str, context: AppContext = Depends(get_context)) -> dict:
    return dump(require(await context.users.get_user_by_id(user_id), "user not found"))
