"""Job log entries and technician labor hours."""
from __future__ import annotations

from datetime import datetime, timezone

from dryad.application.base import RepositoryService
from dryad.core.schema import LaborEntry, LaborEntryCreate, LogEntry, LogEntryCreate


class LogEntryService(RepositoryService):
    collection = "logs"

    async def get_log_entries_by_job(self, job_id: str) -> list[LogEntry]:
        """Entries for ``job_id``, newest first."""

        await self._simulate_delay()
        rows = self._repository.list(self.collection, lambda row: row.get("job_id") == job_id)
        entries = self._parse_all(LogEntry, rows)
        entries.sort(key=lambda entry: entry.timestamp, reverse=True)
        return entries

    async def add_log_entry(self, job_id: str, payload: LogEntryCreate) -> LogEntry:
        await self._simulate_delay()
        entry = LogEntry(
            id=self._repository.next_id("log"),
            job_id=job_id,
            user_id=payload.user_id,
            timestamp=payload.timestamp or datetime.now(timezone.utc),
            type=payload.type,
            content=payload.content,
            synced=False,
        )
        self._repository.insert(self.collection, self._dump(entry), prepend=True)
        self._logger.info("log_entry_added", job_id=job_id, log_id=entry.id, type=entry.type.value)
        return entry


class LaborService(RepositoryService):
    collection = "labor"

    async def add_labor_entries(self, job_id: str, entries: list[LaborEntryCreate]) -> list[LaborEntry]:
        """Record the submitted hours; rows with zero hours are skipped."""

        await self._simulate_delay()
        submitted = datetime.now(timezone.utc)
        created: list[LaborEntry] = []
        for item in entries:
            if item.hours <= 0:
                continue
            entry = LaborEntry(
                id=self._repository.next_id("labor"),
                job_id=job_id,
                user_id=item.user_id,
                user_name=item.user_name,
                hours=item.hours,
                date_submitted=submitted,
            )
            self._repository.insert(self.collection, self._dump(entry))
            created.append(entry)
        self._logger.info("labor_entries_added", job_id=job_id, count=len(created))
        return created

    async def get_labor_entries_by_job(self, job_id: str) -> list[LaborEntry]:
        await self._simulate_delay()
        rows = self._repository.list(self.collection, lambda row: row.get("job_id") == job_id)
        return self._parse_all(LaborEntry, rows)

    async def get_total_labor_hours(self, job_id: str) -> float:
        return sum(entry.hours for entry in await self.get_labor_entries_by_job(job_id))
