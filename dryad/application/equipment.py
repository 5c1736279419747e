"""Equipment inventory, deployment and rental billing."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from dryad.application.base import RepositoryService
from dryad.application.jobs import JobService
from dryad.application.logs import LogEntryService
from dryad.core.billing import BillingSummary, summarize_equipment_billing
from dryad.core.errors import InvalidReferenceError, WorkflowError
from dryad.core.schema import Equipment, EquipmentStatus, LogEntry, LogEntryCreate, LogEntryType
from dryad.infrastructure import DataRepository


class EquipmentService(RepositoryService):
    collection = "equipment"

    def __init__(
        self,
        repository: DataRepository,
        jobs: JobService,
        logs: LogEntryService,
        *,
        latency: float = 0.0,
        rates: dict[str, Decimal] | None = None,
    ) -> None:
        super().__init__(repository, latency=latency)
        self._jobs = jobs
        self._logs = logs
        self._rates = rates

    async def get_all_equipment(self) -> list[Equipment]:
        await self._simulate_delay()
        return self._parse_all(Equipment, self._repository.list(self.collection))

    async def get_equipment_by_id(self, equipment_id: str) -> Equipment | None:
        await self._simulate_delay()
        item = self._parse(Equipment, self._repository.get(self.collection, equipment_id))
        if item is None:
            self._logger.warning("equipment_not_found", equipment_id=equipment_id)
        return item

    async def get_available_equipment(self) -> list[Equipment]:
        await self._simulate_delay()
        rows = self._repository.list(self.collection, lambda row: row.get("status") == EquipmentStatus.AVAILABLE.value)
        return self._parse_all(Equipment, rows)

    async def get_equipment_by_ids(self, equipment_ids: Iterable[str]) -> list[Equipment]:
        wanted = set(equipment_ids)
        await self._simulate_delay()
        return self._parse_all(Equipment, self._repository.list(self.collection, lambda row: row.get("id") in wanted))

    async def get_equipment_by_job(self, job_id: str) -> list[Equipment]:
        await self._simulate_delay()
        rows = self._repository.list(self.collection, lambda row: row.get("current_job_id") == job_id)
        return self._parse_all(Equipment, rows)

    async def set_equipment_status(
        self,
        equipment_id: str,
        status: EquipmentStatus | str,
        job_id: str | None = None,
    ) -> Equipment | None:
        item = await self.get_equipment_by_id(equipment_id)
        if item is None:
            return None
        status = EquipmentStatus(status)
        current_job_id = job_id if status == EquipmentStatus.DEPLOYED else None
        updated = item.model_copy(update={"status": status, "current_job_id": current_job_id})
        self._repository.update(self.collection, equipment_id, self._dump(updated))
        self._logger.info("equipment_status_changed", equipment_id=equipment_id, status=status.value, job_id=current_job_id)
        return updated

    # ------------------------------------------------------------------
    # deployment
    # ------------------------------------------------------------------
    async def _require(self, job_id: str, equipment_id: str) -> Equipment:
        if await self._jobs.get_job_by_id(job_id) is None:
            raise InvalidReferenceError(f"Job with ID {job_id} not found")
        item = await self.get_equipment_by_id(equipment_id)
        if item is None:
            raise InvalidReferenceError(f"Equipment with ID {equipment_id} not found")
        return item

    @staticmethod
    def _log_content(item: Equipment, action: str, location: str | None) -> dict[str, str]:
        content = {
            "action": action,
            "equipment_id": item.id,
            "equipment_type": item.type,
            "equipment_model": item.model,
            "equipment_serial_number": item.serial_number,
        }
        if location:
            content["location"] = location
        return content

    async def place_equipment(
        self,
        job_id: str,
        equipment_id: str,
        user_id: str,
        *,
        location: str | None = None,
        timestamp: datetime | None = None,
    ) -> LogEntry:
        item = await self._require(job_id, equipment_id)
        if item.status != EquipmentStatus.AVAILABLE:
            raise WorkflowError(f"equipment {equipment_id} is {item.status.value}, not AVAILABLE")

        entry = await self._logs.add_log_entry(
            job_id,
            LogEntryCreate(
                user_id=user_id,
                type=LogEntryType.EQUIPMENT_PLACEMENT,
                content=self._log_content(item, "placement", location),
                timestamp=timestamp,
            ),
        )
        await self.set_equipment_status(equipment_id, EquipmentStatus.DEPLOYED, job_id)
        job = await self._jobs.get_job_by_id(job_id)
        if job is not None:
            await self._jobs.set_equipment_ids(job_id, [*job.equipment_ids, equipment_id])
        return entry

    async def remove_equipment(
        self,
        job_id: str,
        equipment_id: str,
        user_id: str,
        *,
        timestamp: datetime | None = None,
    ) -> LogEntry:
        item = await self._require(job_id, equipment_id)
        if item.status != EquipmentStatus.DEPLOYED or item.current_job_id != job_id:
            raise WorkflowError(f"equipment {equipment_id} is not deployed on job {job_id}")

        entry = await self._logs.add_log_entry(
            job_id,
            LogEntryCreate(
                user_id=user_id,
                type=LogEntryType.EQUIPMENT_REMOVAL,
                content=self._log_content(item, "removal", None),
                timestamp=timestamp,
            ),
        )
        await self.set_equipment_status(equipment_id, EquipmentStatus.AVAILABLE)
        job = await self._jobs.get_job_by_id(job_id)
        if job is not None:
            await self._jobs.set_equipment_ids(job_id, [eid for eid in job.equipment_ids if eid != equipment_id])
        return entry

    async def calculate_job_billing(self, job_id: str, now: datetime | None = None) -> BillingSummary | None:
        if await self._jobs.get_job_by_id(job_id) is None:
            return None
        entries = await self._logs.get_log_entries_by_job(job_id)
        summary = summarize_equipment_billing(entries, now=now, rates=self._rates)
        self._logger.info("equipment_billing_calculated", job_id=job_id, items=len(summary.details), total=str(summary.total_cost))
        return summary
