"""Client-side state holders refreshed from the services.

Each store keeps the last loaded records plus loading/error flags and exposes
derived views over them. Failures never escape a store: they are logged and
written to ``error``.
"""
from __future__ import annotations

import datetime as dt
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from dryad.application.directory import UserService
from dryad.application.jobs import JobService
from dryad.application.quotes import QuoteService
from dryad.application.scheduling import ScheduleService, TruckService
from dryad.core.schema import (
    Job,
    JobStatus,
    Quote,
    QuoteCreate,
    QuoteUpdate,
    Role,
    ScheduleEntry,
    Truck,
    TruckStatus,
    User,
)

logger = structlog.get_logger(__name__)

ACTIVE_STATUSES = (JobStatus.IN_PROGRESS, JobStatus.SCHEDULED)
HIDDEN_FROM_OFFICE_DASHBOARD = (JobStatus.COMPLETED, JobStatus.CANCELLED)


def _message(exc: Exception, fallback: str) -> str:
    return str(exc) or fallback


@dataclass
class JobFilters:
    status: JobStatus | None = None
    customer_id: str | None = None
    technician_id: str | None = None
    search: str = ""


class JobStore:
    def __init__(self, service: JobService) -> None:
        self._service = service
        self.jobs: list[Job] = []
        self.is_loading = False
        self.error: str | None = None
        self.filters = JobFilters()

    # ------------------------------------------------------------------
    # loading
    # ------------------------------------------------------------------
    async def load_jobs(self) -> bool:
        self.is_loading = True
        self.error = None
        try:
            self.jobs = await self._service.get_jobs()
            logger.info("jobs_loaded", count=len(self.jobs))
            return True
        except Exception as exc:
            logger.exception("jobs_load_failed")
            self.error = _message(exc, "An error occurred loading jobs")
            return False
        finally:
            self.is_loading = False

    async def load_job_by_id(self, job_id: str) -> Job | None:
        """Fetch one job and replace (or append) its copy in ``jobs``."""

        self.is_loading = True
        self.error = None
        try:
            job = await self._service.get_job_by_id(job_id)
        except Exception as exc:
            logger.exception("job_load_failed", job_id=job_id)
            self.error = _message(exc, f"An error occurred loading job {job_id}")
            return None
        finally:
            self.is_loading = False

        if job is not None:
            for index, existing in enumerate(self.jobs):
                if existing.id == job.id:
                    self.jobs[index] = job
                    break
            else:
                self.jobs.append(job)
        return job

    def reset_filters(self) -> None:
        self.filters = JobFilters()

    # ------------------------------------------------------------------
    # views
    # ------------------------------------------------------------------
    def filtered_jobs(self) -> list[Job]:
        result = list(self.jobs)
        filters = self.filters
        if filters.status is not None:
            result = [job for job in result if job.status == filters.status]
        if filters.customer_id:
            result = [job for job in result if job.customer_id == filters.customer_id]
        if filters.technician_id:
            result = [job for job in result if filters.technician_id in job.assigned_user_ids]
        query = filters.search.strip().lower()
        if query:
            result = [
                job
                for job in result
                if query in job.title.lower() or query in job.description.lower() or query in job.job_number.lower()
            ]
        return result

    def dashboard_jobs(self, user: User | None) -> list[Job]:
        """Technicians see their assigned jobs; everyone else sees the open ones. Newest first."""

        if user is None:
            return []
        if user.role == Role.TECH:
            result = [job for job in self.jobs if user.id in job.assigned_user_ids]
        else:
            result = [job for job in self.jobs if job.status not in HIDDEN_FROM_OFFICE_DASHBOARD]
        return sorted(result, key=lambda job: job.created_at, reverse=True)

    def job_status_counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in JobStatus}
        for job in self.jobs:
            counts[job.status.value] += 1
        counts["total"] = len(self.jobs)
        return counts

    def user_job_counts(self, user: User | None) -> dict[str, int]:
        counts = {"assigned": 0, "active": 0, "total": 0}
        if user is None:
            return counts
        if user.role == Role.TECH:
            mine = [job for job in self.jobs if user.id in job.assigned_user_ids]
            counts["assigned"] = len(mine)
            counts["active"] = sum(1 for job in mine if job.status in ACTIVE_STATUSES)
            counts["total"] = len(mine)
        else:
            counts["assigned"] = sum(1 for job in self.jobs if job.assigned_user_ids)
            counts["active"] = sum(1 for job in self.jobs if job.status in ACTIVE_STATUSES)
            counts["total"] = len(self.jobs)
        return counts


class UserStore:
    def __init__(self, service: UserService) -> None:
        self._service = service
        self.users: list[User] = []
        self.is_loading = False
        self.error: str | None = None

    async def load_users(self) -> bool:
        self.is_loading = True
        self.error = None
        try:
            self.users = await self._service.get_users()
            return True
        except Exception as exc:
            logger.exception("users_load_failed")
            self.error = _message(exc, "An error occurred loading users")
            return False
        finally:
            self.is_loading = False

    @property
    def technicians(self) -> list[User]:
        return [user for user in self.users if user.role == Role.TECH and user.is_active]

    def users_by_role(self) -> dict[str, list[User]]:
        grouped: dict[str, list[User]] = {role.value: [] for role in Role}
        for user in self.users:
            grouped[user.role.value].append(user)
        return grouped

    def find(self, user_id: str) -> User | None:
        return next((user for user in self.users if user.id == user_id), None)


class QuoteStore:
    def __init__(self, service: QuoteService) -> None:
        self._service = service
        self.quotes: list[Quote] = []
        self.selected: Quote | None = None
        self.loading = False
        self.error: str | None = None

    def reset(self) -> None:
        self.quotes = []
        self.selected = None
        self.loading = False
        self.error = None

    def clear_error(self) -> None:
        self.error = None

    def select(self, quote_id: str | None) -> Quote | None:
        self.selected = next((quote for quote in self.quotes if quote.id == quote_id), None)
        return self.selected

    async def _run(self, action: str, call: Any, fallback: str) -> Any:
        self.loading = True
        self.error = None
        try:
            return await call
        except Exception as exc:
            logger.exception("quote_store_failed", action=action)
            self.error = _message(exc, fallback)
            return None
        finally:
            self.loading = False

    async def fetch_quotes(self) -> list[Quote]:
        quotes = await self._run("fetch", self._service.get_quotes(), "Failed to fetch quotes")
        if quotes is not None:
            self.quotes = quotes
        return self.quotes

    async def fetch_quote_by_id(self, quote_id: str) -> Quote | None:
        quote = await self._run("fetch_one", self._service.get_quote_by_id(quote_id), f"Failed to fetch quote {quote_id}")
        self.selected = quote
        return quote

    async def add_quote(self, payload: QuoteCreate) -> Quote | None:
        quote = await self._run("add", self._service.create_quote(payload), "Failed to create quote")
        if quote is not None:
            self.quotes.append(quote)
            self.selected = quote
        return quote

    async def update_quote(self, quote_id: str, changes: QuoteUpdate) -> Quote | None:
        quote = await self._run("update", self._service.update_quote(quote_id, changes), "Failed to update quote")
        if quote is not None:
            self.quotes = [quote if existing.id == quote_id else existing for existing in self.quotes]
            if self.selected is not None and self.selected.id == quote_id:
                self.selected = quote
        return quote

    async def delete_quote(self, quote_id: str) -> bool:
        deleted = await self._run("delete", self._service.delete_quote(quote_id), "Failed to delete quote")
        if deleted:
            self.quotes = [quote for quote in self.quotes if quote.id != quote_id]
            if self.selected is not None and self.selected.id == quote_id:
                self.selected = None
        return bool(deleted)


class ScheduleStore:
    def __init__(self, service: ScheduleService) -> None:
        self._service = service
        self.entries: list[ScheduleEntry] = []
        self.is_loading = False
        self.error: str | None = None

    async def load_entries(self) -> bool:
        self.is_loading = True
        self.error = None
        try:
            self.entries = await self._service.get_schedule_entries()
            return True
        except Exception as exc:
            logger.exception("schedule_load_failed")
            self.error = _message(exc, "An error occurred loading the schedule")
            return False
        finally:
            self.is_loading = False

    def by_date(self) -> dict[dt.date, list[ScheduleEntry]]:
        grouped: dict[dt.date, list[ScheduleEntry]] = defaultdict(list)
        for entry in self.entries:
            grouped[entry.date].append(entry)
        return dict(grouped)

    def by_technician_and_date(self) -> dict[str, dict[dt.date, list[ScheduleEntry]]]:
        grouped: dict[str, dict[dt.date, list[ScheduleEntry]]] = defaultdict(lambda: defaultdict(list))
        for entry in self.entries:
            grouped[entry.user_id][entry.date].append(entry)
        return {user_id: dict(days) for user_id, days in grouped.items()}


class TruckStore:
    def __init__(self, service: TruckService, schedule: ScheduleStore) -> None:
        self._service = service
        self._schedule = schedule
        self.trucks: list[Truck] = []
        self.error: str | None = None

    async def load_trucks(self) -> bool:
        self.error = None
        try:
            self.trucks = await self._service.get_trucks()
            return True
        except Exception as exc:
            logger.exception("trucks_load_failed")
            self.error = _message(exc, "An error occurred loading trucks")
            return False

    def available_on(self, day: dt.date | None) -> list[Truck]:
        """AVAILABLE trucks with no schedule entry on ``day``."""

        if day is None:
            return []
        booked = {entry.truck_id for entry in self._schedule.entries if entry.date == day and entry.truck_id}
        return [truck for truck in self.trucks if truck.status == TruckStatus.AVAILABLE and truck.id not in booked]


NOTIFICATION_DURATIONS_MS: dict[str, int] = {
    "success": 5000,
    "error": 7000,
    "info": 5000,
    "warning": 6000,
}


@dataclass
class Notification:
    type: str
    message: str
    duration_ms: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def expired(self, now: datetime) -> bool:
        if self.duration_ms <= 0:
            return False
        return now >= self.created_at + timedelta(milliseconds=self.duration_ms)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "message": self.message,
            "duration_ms": self.duration_ms,
            "created_at": self.created_at.isoformat(),
        }


class NotificationStore:
    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def add(self, type: str, message: str, duration_ms: int | None = None, *, now: datetime | None = None) -> Notification:
        if type not in NOTIFICATION_DURATIONS_MS:
            raise ValueError(f"unknown notification type: {type}")
        notification = Notification(
            type=type,
            message=message,
            duration_ms=NOTIFICATION_DURATIONS_MS[type] if duration_ms is None else duration_ms,
            created_at=now or datetime.now(timezone.utc),
        )
        self.notifications.append(notification)
        return notification

    def remove(self, notification_id: str) -> bool:
        before = len(self.notifications)
        self.notifications = [item for item in self.notifications if item.id != notification_id]
        return len(self.notifications) < before

    def clear(self) -> None:
        self.notifications = []

    def active(self, now: datetime | None = None) -> list[Notification]:
        """Drop expired notifications and return the rest. A zero duration never expires."""

        current = now or datetime.now(timezone.utc)
        self.notifications = [item for item in self.notifications if not item.expired(current)]
        return list(self.notifications)
