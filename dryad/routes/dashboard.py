from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from dryad.application import AppContext
from dryad.core.schema import User
from dryad.routes.deps import dump, dump_all, get_context, get_current_user

router = APIRouter(tags=["dashboard"])


class NotificationIn(BaseModel):
    type: str = "info"
    message: str
    duration_ms: int | None = None


@router.get("/dashboard")
async def get_dashboard(
    context: AppContext = Depends(get_context),
    user: User | None = Depends(get_current_user),
) -> dict:
    store = context.job_store
    await store.load_jobs()
    return {
        "user": dump(user) if user else None,
        "jobs": dump_all(store.dashboard_jobs(user)),
        "status_counts": store.job_status_counts(),
        "user_counts": store.user_job_counts(user),
        "error": store.error,
    }


@router.get("/technicians")
async def list_technicians(context: AppContext = Depends(get_context)) -> dict:
    await context.user_store.load_users()
    return {"items": dump_all(context.user_store.technicians), "error": context.user_store.error}


@router.get("/technicians/{technician_id}/jobs")
async def technician_jobs(technician_id: str, context: AppContext = Depends(get_context)) -> dict:
    if await context.users.get_user_by_id(technician_id) is None:
        raise HTTPException(status_code=404, detail="technician not found")
    buckets = await context.jobs.categorize_for_technician(technician_id)
    return {
        "technician_id": technician_id,
        **{name: dump_all(jobs) for name, jobs in buckets.as_dict().items()},
    }


# ----------------------------------------------------------------------
# notifications
# ----------------------------------------------------------------------
@router.get("/notifications")
async def list_notifications(context: AppContext = Depends(get_context)) -> dict:
    return {"items": [item.as_dict() for item in context.notifications.active()]}


@router.post("/notifications", status_code=201)
async def add_notification(payload: NotificationIn, context: AppContext = Depends(get_context)) -> dict:
    try:
        notification = context.notifications.add(payload.type, payload.message, payload.duration_ms)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return notification.as_dict()


@router.delete("/notifications/{notification_id}")
async def remove_notification(notification_id: str, context: AppContext = Depends(get_context)) -> dict:
    if not context.notifications.remove(notification_id):
        raise HTTPException(status_code=404, detail="notification not found")
    return {"id": notification_id, "removed": True}


@router.delete("/notifications")
async def clear_notifications(context: AppContext = Depends(get_context)) -> dict:
    context.notifications.clear()
    return {"items": []}
