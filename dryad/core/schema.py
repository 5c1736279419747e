from __future__ import annotations

import datetime as dt
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _as_utc(value: datetime) -> datetime:
    # naive timestamps are recorded as UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class JobStatus(str, Enum):
    NEW = "NEW"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    PENDING_COMPLETION = "PENDING_COMPLETION"
    COMPLETED = "COMPLETED"
    INVOICE_APPROVAL = "INVOICE_APPROVAL"
    INVOICED = "INVOICED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class JobType(str, Enum):
    WATER = "WATER"
    FIRE = "FIRE"
    MOLD = "MOLD"
    SMOKE = "SMOKE"
    STORM = "STORM"
    OTHER = "OTHER"


class Role(str, Enum):
    ADMIN = "ADMIN"
    OFFICE = "OFFICE"
    TECH = "TECH"
    CUSTOMER = "CUSTOMER"


class EquipmentStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    DEPLOYED = "DEPLOYED"
    MAINTENANCE = "MAINTENANCE"
    DECOMMISSIONED = "DECOMMISSIONED"


class LogEntryType(str, Enum):
    NOTE = "NOTE"
    PHOTO = "PHOTO"
    MOISTURE_READING = "MOISTURE_READING"
    EQUIPMENT_PLACEMENT = "EQUIPMENT_PLACEMENT"
    EQUIPMENT_REMOVAL = "EQUIPMENT_REMOVAL"
    TEMPERATURE_READING = "TEMPERATURE_READING"
    HUMIDITY_READING = "HUMIDITY_READING"
    SIGNATURE = "SIGNATURE"
    CHECKLIST = "CHECKLIST"
    TASK_COMPLETION = "TASK_COMPLETION"
    EXPENSE = "EXPENSE"


class QuoteStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    CONVERTED_TO_JOB = "CONVERTED_TO_JOB"


class QuoteType(str, Enum):
    FIXED_PRICE = "FIXED_PRICE"
    T_AND_E = "T_AND_E"


class TruckStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    ASSIGNED = "ASSIGNED"
    MAINTENANCE = "MAINTENANCE"
    OTHER = "OTHER"


class Address(BaseModel):
    street: str
    city: str
    state: str
    zip: str


class Customer(BaseModel):
    id: str
    name: str
    contact_person: str | None = None
    email: str
    phone: str
    primary_address: Address
    billing_address: Address | None = None
    notes: str | None = None
    created_at: datetime
    is_active: bool = True


class User(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    role: Role
    phone_number: str | None = None
    created_at: datetime
    is_active: bool = True

    @field_validator("role", mode="before")
    @classmethod
    def _normalise_legacy_role(cls, value: Any) -> Any:
        # older fixtures spell the technician role out in full
        if isinstance(value, str) and value.upper() == "TECHNICIAN":
            return Role.TECH
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class CompletionTasks(BaseModel):
    final_readings_logged: bool = False
    after_photos_taken: bool = False
    mark_ready_for_review: bool = False

    def all_done(self) -> bool:
        return self.final_readings_logged and self.after_photos_taken and self.mark_ready_for_review


class JobCosts(BaseModel):
    labor: Decimal | None = None
    materials: Decimal | None = None
    equipment: Decimal | None = None


class InvoiceInfo(BaseModel):
    invoice_number: str | None = None
    invoice_date: datetime | None = None
    amount: Decimal | None = None
    paid_date: datetime | None = None
    payment_method: str | None = None
    payment_reference: str | None = None


class Job(BaseModel):
    id: str
    job_number: str
    status: JobStatus
    job_type: JobType = JobType.OTHER
    title: str
    description: str = ""
    customer_id: str
    site_address: Address
    assigned_user_ids: list[str] = Field(default_factory=list)
    equipment_ids: list[str] = Field(default_factory=list)
    created_at: datetime
    incident_date: datetime | None = None
    scheduled_start_date: datetime | None = None
    estimated_completion_date: datetime | None = None
    completed_date: datetime | None = None
    priority: int = Field(3, ge=1, le=5)
    estimated_cost: Decimal | None = None
    completion_tasks: CompletionTasks | None = None
    costs: JobCosts | None = None
    invoice: InvoiceInfo | None = None
    tags: list[str] = Field(default_factory=list)
    originating_quote_id: str | None = None


class JobCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    job_type: JobType = JobType.OTHER
    customer_id: str
    site_address: Address
    assigned_user_ids: list[str] = Field(default_factory=list)
    priority: int = Field(3, ge=1, le=5)
    incident_date: datetime | None = None
    scheduled_start_date: datetime | None = None
    estimated_completion_date: datetime | None = None
    estimated_cost: Decimal | None = None
    tags: list[str] = Field(default_factory=list)
    originating_quote_id: str | None = None


class JobUpdate(BaseModel):
    title: str | None = Field(None, min_length=1)
    description: str | None = None
    job_type: JobType | None = None
    site_address: Address | None = None
    priority: int | None = Field(None, ge=1, le=5)
    scheduled_start_date: datetime | None = None
    estimated_completion_date: datetime | None = None
    estimated_cost: Decimal | None = None
    costs: JobCosts | None = None
    invoice: InvoiceInfo | None = None
    tags: list[str] | None = None


class LogEntry(BaseModel):
    id: str
    job_id: str
    user_id: str
    timestamp: datetime
    type: LogEntryType
    content: str | dict[str, Any]
    synced: bool = False

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class LogEntryCreate(BaseModel):
    user_id: str
    type: LogEntryType
    content: str | dict[str, Any]
    timestamp: datetime | None = None

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        return None if value is None else _as_utc(value)


class Equipment(BaseModel):
    id: str
    type: str
    model: str
    serial_number: str
    status: EquipmentStatus
    current_job_id: str | None = None
    purchase_date: datetime | None = None
    last_maintenance_date: datetime | None = None
    notes: str | None = None
    storage_location: str | None = None


class LaborEntry(BaseModel):
    id: str
    job_id: str
    user_id: str
    user_name: str
    hours: float
    date_submitted: datetime


class LaborEntryCreate(BaseModel):
    user_id: str
    user_name: str
    hours: float = Field(..., ge=0)


class QuoteLineItem(BaseModel):
    id: str
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal = Decimal("0")
    is_estimate: bool = False
    category: str | None = None


class Quote(BaseModel):
    id: str
    quote_number: str
    status: QuoteStatus
    quote_type: QuoteType
    customer_id: str
    site_address: Address
    scope_of_work: str | dict[str, str]
    line_items: list[QuoteLineItem] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    tax_rate: Decimal | None = None
    tax_amount: Decimal | None = None
    total: Decimal = Decimal("0")
    date_created: datetime
    date_sent: datetime | None = None
    date_expires: datetime | None = None
    notes: str | None = None
    prepared_by_user_id: str
    associated_job_id: str | None = None


class QuoteCreate(BaseModel):
    quote_type: QuoteType = QuoteType.FIXED_PRICE
    customer_id: str
    site_address: Address
    scope_of_work: str | dict[str, str] = ""
    line_items: list[QuoteLineItem] = Field(default_factory=list)
    tax_rate: Decimal | None = None
    notes: str | None = None
    prepared_by_user_id: str
    date_expires: datetime | None = None


class QuoteUpdate(BaseModel):
    status: QuoteStatus | None = None
    quote_type: QuoteType | None = None
    site_address: Address | None = None
    scope_of_work: str | dict[str, str] | None = None
    line_items: list[QuoteLineItem] | None = None
    tax_rate: Decimal | None = None
    notes: str | None = None
    date_sent: datetime | None = None
    date_expires: datetime | None = None


class Truck(BaseModel):
    id: str
    name: str
    status: TruckStatus
    capacity: str | None = None
    notes: str | None = None


class ScheduleEntry(BaseModel):
    id: str
    job_id: str
    user_id: str
    truck_id: str | None = None
    date: dt.date
    notes: str | None = None
    created_by: str
    created_at: datetime
    updated_at: datetime


class ScheduleEntryCreate(BaseModel):
    job_id: str
    user_id: str
    truck_id: str | None = None
    date: dt.date
    notes: str | None = None
    created_by: str


class ScheduleEntryUpdate(BaseModel):
    job_id: str | None = None
    user_id: str | None = None
    truck_id: str | None = None
    date: dt.date | None = None
    notes: str | None = None
