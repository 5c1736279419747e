"""Technician schedule entries and the truck fleet."""
from __future__ import annotations

import datetime as dt
from datetime import datetime, timezone

from dryad.application.base import RepositoryService
from dryad.application.directory import UserService
from dryad.application.jobs import JobService
from dryad.core.errors import InvalidReferenceError
from dryad.core.schema import ScheduleEntry, ScheduleEntryCreate, ScheduleEntryUpdate, Truck
from dryad.infrastructure import DataRepository


class ScheduleService(RepositoryService):
    collection = "schedule"

    def __init__(
        self,
        repository: DataRepository,
        jobs: JobService,
        users: UserService,
        *,
        latency: float = 0.0,
    ) -> None:
        super().__init__(repository, latency=latency)
        self._jobs = jobs
        self._users = users

    async def get_schedule_entries(self, on: dt.date | None = None) -> list[ScheduleEntry]:
        await self._simulate_delay()
        entries = self._parse_all(ScheduleEntry, self._repository.list(self.collection))
        if on is not None:
            entries = [entry for entry in entries if entry.date == on]
        return entries

    async def get_schedule_entry(self, entry_id: str) -> ScheduleEntry | None:
        await self._simulate_delay()
        entry = self._parse(ScheduleEntry, self._repository.get(self.collection, entry_id))
        if entry is None:
            self._logger.warning("schedule_entry_not_found", entry_id=entry_id)
        return entry

    async def _check_references(self, job_id: str | None, user_id: str | None) -> None:
        if job_id is not None and await self._jobs.get_job_by_id(job_id) is None:
            raise InvalidReferenceError(f"Job with ID {job_id} not found")
        if user_id is not None and await self._users.get_user_by_id(user_id) is None:
            raise InvalidReferenceError(f"User with ID {user_id} not found")

    async def create_schedule_entry(self, payload: ScheduleEntryCreate) -> ScheduleEntry:
        await self._check_references(payload.job_id, payload.user_id)
        await self._simulate_delay()
        now = datetime.now(timezone.utc)
        entry = ScheduleEntry(
            **payload.model_dump(),
            id=self._repository.next_id("sched"),
            created_at=now,
            updated_at=now,
        )
        self._repository.insert(self.collection, self._dump(entry))
        self._logger.info("schedule_entry_created", entry_id=entry.id, job_id=entry.job_id, user_id=entry.user_id)
        return entry

    async def update_schedule_entry(self, entry_id: str, changes: ScheduleEntryUpdate) -> ScheduleEntry | None:
        entry = await self.get_schedule_entry(entry_id)
        if entry is None:
            return None
        merged, updates = self._merge(ScheduleEntry, entry, changes, updated_at=datetime.now(timezone.utc))
        await self._check_references(updates.get("job_id"), updates.get("user_id"))
        self._repository.update(self.collection, entry_id, self._dump(merged))
        self._logger.info("schedule_entry_updated", entry_id=entry_id, fields=sorted(updates))
        return merged

    async def delete_schedule_entry(self, entry_id: str) -> bool:
        await self._simulate_delay()
        deleted = self._repository.delete(self.collection, entry_id)
        if not deleted:
            self._logger.warning("schedule_entry_not_found", entry_id=entry_id)
        return deleted


class TruckService(RepositoryService):
    collection = "trucks"

    async def get_trucks(self) -> list[Truck]:
        await self._simulate_delay()
        return self._parse_all(Truck, self._repository.list(self.collection))

    async def get_truck_by_id(self, truck_id: str) -> Truck | None:
        await self._simulate_delay()
        truck = self._parse(Truck, self._repository.get(self.collection, truck_id))
        if truck is None:
            self._logger.warning("truck_not_found", truck_id=truck_id)
        return truck
