from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query

from dryad.application import AppContext
from dryad.core.schema import ScheduleEntryCreate, ScheduleEntryUpdate
from dryad.routes.deps import dump, dump_all, get_context, require, service_errors

router = APIRouter(tags=["schedule"])

ENTRY_NOT_FOUND = "schedule entry not found"


@router.get("/schedule")
async def list_schedule(
    date: dt.date | None = Query(default=None),
    context: AppContext = Depends(get_context),
) -> dict:
    return {"items": dump_all(await context.schedule.get_schedule_entries(date))}


@router.get("/schedule/by-technician")
async def schedule_by_technician(context: AppContext = Depends(get_context)) -> dict:
    store = context.schedule_store
    await store.load_entries()
    grouped = store.by_technician_and_date()
    return {
        "items": {
            user_id: {day.isoformat(): dump_all(entries) for day, entries in sorted(days.items())}
            for user_id, days in grouped.items()
        },
        "error": store.error,
    }


@router.post("/schedule", status_code=201)
async def create_entry(payload: ScheduleEntryCreate, context: AppContext = Depends(get_context)) -> dict:
    with service_errors():
        entry = await context.schedule.create_schedule_entry(payload)
    return dump(entry)


@router.patch("/schedule/{entry_id}")
async def update_entry(
    entry_id: str,
    payload: ScheduleEntryUpdate,
    context: AppContext = Depends(get_context),
) -> dict:
    with service_errors():
        entry = await context.schedule.update_schedule_entry(entry_id, payload)
    return dump(require(entry, ENTRY_NOT_FOUND))


@router.delete("/schedule/{entry_id}")
async def delete_entry(entry_id: str, context: AppContext = Depends(get_context)) -> dict:
    if not await context.schedule.delete_schedule_entry(entry_id):
        raise HTTPException(status_code=404, detail=ENTRY_NOT_FOUND)
    return {"id": entry_id, "deleted": True}


@router.get("/trucks")
async def list_trucks(context: AppContext = Depends(get_context)) -> dict:
    return {"items": dump_all(await context.trucks.get_trucks())}


@router.get("/trucks/available")
async def available_trucks(
    date: dt.date = Query(...),
    context: AppContext = Depends(get_context),
) -> dict:
    await context.schedule_store.load_entries()
    await context.truck_store.load_trucks()
    return {"date": date.isoformat(), "items": dump_all(context.truck_store.available_on(date))}


@router.get("/trucks/{truck_id}")
async def get_truck(truck_id: str, context: AppContext = Depends(get_context)) -> dict:
    return dump(require(await context.trucks.get_truck_by_id(truck_id), "truck not found"))
