"""Equipment rental billing computed from placement/removal log entries."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable

from dryad.core.equipment_rates import FALLBACK_TYPE, get_daily_rate
from dryad.core.schema import LogEntry, LogEntryType

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class EquipmentUsage:
    equipment_id: str
    equipment_type: str
    model: str
    duration_days: int
    placement_date: datetime
    removal_date: datetime
    serial_number: str | None = None
    open_ended: bool = False


@dataclass
class BillingDetailItem:
    equipment_id: str
    equipment_type: str
    model: str
    duration_days: int
    rate: Decimal
    cost: Decimal
    placement_date: datetime
    removal_date: datetime
    open_ended: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "equipment_id": self.equipment_id,
            "type": self.equipment_type,
            "model": self.model,
            "duration_days": self.duration_days,
            "rate": str(self.rate),
            "cost": str(self.cost),
            "placement_date": self.placement_date.isoformat(),
            "removal_date": self.removal_date.isoformat(),
            "open_ended": self.open_ended,
        }


@dataclass
class BillingSummary:
    details: list[BillingDetailItem] = field(default_factory=list)
    total_cost: Decimal = Decimal("0")

    def as_dict(self) -> dict[str, Any]:
        return {"details": [item.as_dict() for item in self.details], "total_cost": str(self.total_cost)}


def billable_days(start: datetime, end: datetime) -> int:
    """Whole days between ``start`` and ``end``, rounded up, never below one."""

    seconds = (end - start).total_seconds()
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


def _content(entry: LogEntry) -> dict[str, Any]:
    return entry.content if isinstance(entry.content, dict) else {}


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _usage_from(
    equipment_id: str,
    placement: LogEntry,
    end: datetime,
    closing: dict[str, Any] | None = None,
    open_ended: bool = False,
) -> EquipmentUsage:
    placed = _content(placement)
    closing = closing or {}
    start = _as_aware(placement.timestamp)
    return EquipmentUsage(
        equipment_id=equipment_id,
        equipment_type=str(closing.get("equipment_type") or placed.get("equipment_type") or FALLBACK_TYPE),
        model=str(closing.get("equipment_model") or placed.get("equipment_model") or "Unknown"),
        serial_number=closing.get("equipment_serial_number") or placed.get("equipment_serial_number"),
        duration_days=billable_days(start, end),
        placement_date=start,
        removal_date=end,
        open_ended=open_ended,
    )


def calculate_equipment_usage(entries: Iterable[LogEntry], now: datetime | None = None) -> list[EquipmentUsage]:
    """Pair placement and removal entries into usage intervals.

    A second placement of the same equipment before it is removed replaces the
    pending one. Removals with no pending placement are ignored. Anything still
    placed when the log runs out is billed up to ``now``.
    """

    pending: dict[str, LogEntry] = {}
    usage: list[EquipmentUsage] = []

    for entry in sorted(entries, key=lambda item: _as_aware(item.timestamp)):
        equipment_id = _content(entry).get("equipment_id")
        if not equipment_id:
            continue
        if entry.type == LogEntryType.EQUIPMENT_PLACEMENT:
            pending[equipment_id] = entry
        elif entry.type == LogEntryType.EQUIPMENT_REMOVAL:
            placement = pending.pop(equipment_id, None)
            if placement is None:
                continue
            usage.append(_usage_from(equipment_id, placement, _as_aware(entry.timestamp), _content(entry)))

    current = _as_aware(now) if now is not None else datetime.now(timezone.utc)
    for equipment_id, placement in pending.items():
        usage.append(_usage_from(equipment_id, placement, current, open_ended=True))

    return usage


def calculate_total_costs(usage: Iterable[EquipmentUsage], rates: dict[str, Decimal] | None = None) -> BillingSummary:
    details: list[BillingDetailItem] = []
    total = Decimal("0")
    for item in usage:
        rate = get_daily_rate(item.equipment_type, rates)
        cost = rate * item.duration_days
        details.append(
            BillingDetailItem(
                equipment_id=item.equipment_id,
                equipment_type=item.equipment_type,
                model=item.model,
                duration_days=item.duration_days,
                rate=rate,
                cost=cost,
                placement_date=item.placement_date,
                removal_date=item.removal_date,
                open_ended=item.open_ended,
            )
        )
        total += cost

    details.sort(key=lambda detail: detail.cost, reverse=True)
    return BillingSummary(details=details, total_cost=total)


def summarize_equipment_billing(
    entries: Iterable[LogEntry],
    now: datetime | None = None,
    rates: dict[str, Decimal] | None = None,
) -> BillingSummary:
    return calculate_total_costs(calculate_equipment_usage(entries, now=now), rates)
