"""Wiring of repository, services and stores for one application instance."""
from __future__ import annotations

from dataclasses import dataclass

import structlog

from dryad.application.directory import CustomerService, UserService
from dryad.application.equipment import EquipmentService
from dryad.application.jobs import JobService
from dryad.application.logs import LaborService, LogEntryService
from dryad.application.quotes import QuoteService
from dryad.application.scheduling import ScheduleService, TruckService
from dryad.application.stores import (
    JobStore,
    NotificationStore,
    QuoteStore,
    ScheduleStore,
    TruckStore,
    UserStore,
)
from dryad.core.settings import Settings
from dryad.domain import MockDataState
from dryad.infrastructure import InMemoryRepository, load_fixtures

logger = structlog.get_logger(__name__)


@dataclass
class AppContext:
    settings: Settings
    repository: InMemoryRepository
    customers: CustomerService
    users: UserService
    jobs: JobService
    logs: LogEntryService
    labor: LaborService
    equipment: EquipmentService
    quotes: QuoteService
    schedule: ScheduleService
    trucks: TruckService
    job_store: JobStore
    user_store: UserStore
    quote_store: QuoteStore
    schedule_store: ScheduleStore
    truck_store: TruckStore
    notifications: NotificationStore

    def reset(self) -> None:
        """Restore the repository to its seed data and drop cached store state."""

        self.repository.reset()
        self.job_store.jobs = []
        self.job_store.reset_filters()
        self.user_store.users = []
        self.quote_store.reset()
        self.schedule_store.entries = []
        self.truck_store.trucks = []
        self.notifications.clear()
        logger.info("context_reset")


def build_context(settings: Settings | None = None, seed: MockDataState | None = None) -> AppContext:
    settings = settings or Settings.from_env()
    if seed is None:
        seed = load_fixtures(settings.data_dir)
    repository = InMemoryRepository(seed)
    latency = settings.simulated_latency

    customers = CustomerService(repository, latency=latency)
    users = UserService(repository, latency=latency)
    jobs = JobService(repository, customers, latency=latency)
    logs = LogEntryService(repository, latency=latency)
    labor = LaborService(repository, latency=latency)
    equipment = EquipmentService(repository, jobs, logs, latency=latency)
    quotes = QuoteService(repository, customers, jobs, latency=latency)
    schedule = ScheduleService(repository, jobs, users, latency=latency)
    trucks = TruckService(repository, latency=latency)

    schedule_store = ScheduleStore(schedule)
    return AppContext(
        settings=settings,
        repository=repository,
        customers=customers,
        users=users,
        jobs=jobs,
        logs=logs,
        labor=labor,
        equipment=equipment,
        quotes=quotes,
        schedule=schedule,
        trucks=trucks,
        job_store=JobStore(jobs),
        user_store=UserStore(users),
        quote_store=QuoteStore(quotes),
        schedule_store=schedule_store,
        truck_store=TruckStore(trucks, schedule_store),
        notifications=NotificationStore(),
    )
