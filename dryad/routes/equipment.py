from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from dryad.application import AppContext
from dryad.core.equipment_rates import EQUIPMENT_DAILY_RATES, describe_equipment, equipment_category
from dryad.core.schema import EquipmentStatus
from dryad.routes.deps import dump, dump_all, get_context, require

router = APIRouter(prefix="/equipment", tags=["equipment"])


class EquipmentStatusChange(BaseModel):
    status: EquipmentStatus
    job_id: str | None = None


@router.get("")
async def list_equipment(
    available: bool = Query(default=False),
    context: AppContext = Depends(get_context),
) -> dict:
    if available:
        items = await context.equipment.get_available_equipment()
    else:
        items = await context.equipment.get_all_equipment()
    return {"items": dump_all(items)}


@router.get("/rates")
async def list_rates() -> dict:
    return {
        "items": [
            {
                "type": equipment_type,
                "daily_rate": str(rate),
                "description": describe_equipment(equipment_type),
                "category": equipment_category(equipment_type),
            }
            for equipment_type, rate in sorted(EQUIPMENT_DAILY_RATES.items())
        ]
    }


@router.get("/{equipment_id}")
async def get_equipment(equipment_id: str, context: AppContext = Depends(get_context)) -> dict:
    return dump(require(await context.equipment.get_equipment_by_id(equipment_id), "equipment not found"))


@router.post("/{equipment_id}/status")
async def set_status(
    equipment_id: str,
    payload: EquipmentStatusChange,
    context: AppContext = Depends(get_context),
) -> dict:
    item = await context.equipment.set_equipment_status(equipment_id, payload.status, payload.job_id)
    return dump(require(item, "equipment not found"))
