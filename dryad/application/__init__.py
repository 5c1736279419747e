"""Application services and stores."""

from .context import AppContext, build_context
from .directory import CustomerService, UserService
from .equipment import EquipmentService
from .jobs import JobService
from .logs import LaborService, LogEntryService
from .quotes import QuoteService
from .scheduling import ScheduleService, TruckService
from .stores import JobStore, NotificationStore, QuoteStore, ScheduleStore, TruckStore, UserStore

__all__ = [
    "AppContext",
    "CustomerService",
    "EquipmentService",
    "JobService",
    "JobStore",
    "LaborService",
    "LogEntryService",
    "NotificationStore",
    "QuoteService",
    "QuoteStore",
    "ScheduleService",
    "ScheduleStore",
    "TruckService",
    "TruckStore",
    "UserService",
    "UserStore",
    "build_context",
]
