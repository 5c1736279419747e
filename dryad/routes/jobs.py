from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from dryad.application import AppContext
from dryad.core.schema import JobCreate, JobStatus, JobUpdate, LaborEntryCreate, LogEntryCreate, Role, User
from dryad.routes.deps import dump, dump_all, get_context, get_current_user, require, service_errors

router = APIRouter(prefix="/jobs", tags=["jobs"])

JOB_NOT_FOUND = "job not found"


class StatusChange(BaseModel):
    status: JobStatus


class TaskCompletion(BaseModel):
    role: Role | None = None


class TechnicianAssignment(BaseModel):
    user_ids: list[str]


class LaborSubmission(BaseModel):
    entries: list[LaborEntryCreate] = Field(default_factory=list)


class EquipmentMove(BaseModel):
    user_id: str
    location: str | None = None
    timestamp: datetime | None = None


@router.get("")
async def list_jobs(
    status: JobStatus | None = Query(default=None),
    customer_id: str | None = Query(default=None),
    technician_id: str | None = Query(default=None),
    context: AppContext = Depends(get_context),
) -> dict:
    if technician_id:
        jobs = await context.jobs.get_jobs_by_technician(technician_id)
    elif customer_id:
        jobs = await context.jobs.get_jobs_by_customer(customer_id)
    elif status is not None:
        jobs = await context.jobs.get_jobs_by_status(status)
    else:
        jobs = await context.jobs.get_jobs()
    if status is not None:
        jobs = [job for job in jobs if job.status == status]
    if customer_id:
        jobs = [job for job in jobs if job.customer_id == customer_id]
    return {"items": dump_all(jobs)}


@router.post("", status_code=201)
async def create_job(payload: JobCreate, context: AppContext = Depends(get_context)) -> dict:
    with service_errors():
        job = await context.jobs.create_job(payload)
    return dump(job)


@router.get("/{job_id}")
async def get_job(job_id: str, context: AppContext = Depends(get_context)) -> dict:
    return dump(require(await context.jobs.get_job_by_id(job_id), JOB_NOT_FOUND))


@router.patch("/{job_id}")
async def update_job(job_id: str, payload: JobUpdate, context: AppContext = Depends(get_context)) -> dict:
    return dump(require(await context.jobs.update_job(job_id, payload), JOB_NOT_FOUND))


@router.post("/{job_id}/status")
async def change_status(job_id: str, payload: StatusChange, context: AppContext = Depends(get_context)) -> dict:
    with service_errors():
        job = await context.jobs.update_job_status(job_id, payload.status)
    return dump(require(job, JOB_NOT_FOUND))


@router.post("/{job_id}/advance")
async def advance_status(job_id: str, context: AppContext = Depends(get_context)) -> dict:
    with service_errors():
        job = await context.jobs.advance_job_status(job_id)
    return dump(require(job, JOB_NOT_FOUND))


@router.put("/{job_id}/completion-tasks")
async def update_completion_tasks(
    job_id: str,
    payload: dict[str, bool],
    context: AppContext = Depends(get_context),
) -> dict:
    try:
        job = await context.jobs.update_completion_tasks(job_id, payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return dump(require(job, JOB_NOT_FOUND))


@router.post("/{job_id}/tasks/{task_id}/complete")
async def complete_task(
    job_id: str,
    task_id: str,
    payload: TaskCompletion | None = None,
    context: AppContext = Depends(get_context),
    user: User | None = Depends(get_current_user),
) -> dict:
    role = payload.role if payload is not None and payload.role is not None else (user.role if user else None)
    if role is None:
        raise HTTPException(status_code=400, detail="role is required")
    with service_errors():
        job = await context.jobs.complete_task(job_id, task_id, role)
    job = require(job, JOB_NOT_FOUND)
    return {"job": dump(job), "workflow": await context.jobs.get_workflow(job_id)}


@router.post("/{job_id}/technicians")
async def assign_technicians(
    job_id: str,
    payload: TechnicianAssignment,
    context: AppContext = Depends(get_context),
) -> dict:
    return dump(require(await context.jobs.assign_technicians(job_id, payload.user_ids), JOB_NOT_FOUND))


@router.get("/{job_id}/workflow")
async def get_workflow(
    job_id: str,
    role: Role | None = Query(default=None),
    context: AppContext = Depends(get_context),
) -> dict:
    return require(await context.jobs.get_workflow(job_id, role), JOB_NOT_FOUND)


# ----------------------------------------------------------------------
# logs & labor
# ----------------------------------------------------------------------
@router.get("/{job_id}/logs")
async def list_logs(job_id: str, context: AppContext = Depends(get_context)) -> dict:
    return {"items": dump_all(await context.logs.get_log_entries_by_job(job_id))}


@router.post("/{job_id}/logs", status_code=201)
async def add_log(job_id: str, payload: LogEntryCreate, context: AppContext = Depends(get_context)) -> dict:
    require(await context.jobs.get_job_by_id(job_id), JOB_NOT_FOUND)
    return dump(await context.logs.add_log_entry(job_id, payload))


@router.get("/{job_id}/labor")
async def list_labor(job_id: str, context: AppContext = Depends(get_context)) -> dict:
    entries = await context.labor.get_labor_entries_by_job(job_id)
    return {"items": dump_all(entries), "total_hours": sum(entry.hours for entry in entries)}


@router.post("/{job_id}/labor", status_code=201)
async def add_labor(job_id: str, payload: LaborSubmission, context: AppContext = Depends(get_context)) -> dict:
    require(await context.jobs.get_job_by_id(job_id), JOB_NOT_FOUND)
    created = await context.labor.add_labor_entries(job_id, payload.entries)
    return {"items": dump_all(created), "total_hours": await context.labor.get_total_labor_hours(job_id)}


# ----------------------------------------------------------------------
# equipment
# ----------------------------------------------------------------------
@router.get("/{job_id}/equipment")
async def list_job_equipment(job_id: str, context: AppContext = Depends(get_context)) -> dict:
    return {"items": dump_all(await context.equipment.get_equipment_by_job(job_id))}


@router.post("/{job_id}/equipment/{equipment_id}/place", status_code=201)
async def place_equipment(
    job_id: str,
    equipment_id: str,
    payload: EquipmentMove,
    context: AppContext = Depends(get_context),
) -> dict:
    with service_errors():
        entry = await context.equipment.place_equipment(
            job_id, equipment_id, payload.user_id, location=payload.location, timestamp=payload.timestamp
        )
    return dump(entry)


@router.post("/{job_id}/equipment/{equipment_id}/remove", status_code=201)
async def remove_equipment(
    job_id: str,
    equipment_id: str,
    payload: EquipmentMove,
    context: AppContext = Depends(get_context),
) -> dict:
    with service_errors():
        entry = await context.equipment.remove_equipment(job_id, equipment_id, payload.user_id, timestamp=payload.timestamp)
    return dump(entry)


@router.get("/{job_id}/billing")
async def equipment_billing(
    job_id: str,
    now: datetime | None = Query(default=None),
    context: AppContext = Depends(get_context),
) -> dict:
    summary = require(await context.equipment.calculate_job_billing(job_id, now=now), JOB_NOT_FOUND)
    return {"job_id": job_id, **summary.as_dict()}
