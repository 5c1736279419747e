import asyncio
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from dryad.application import build_context
from dryad.core.errors import DuplicateRecordError, InvalidReferenceError, WorkflowError
from dryad.core.schema import (
    Address,
    EquipmentStatus,
    Job,
    JobCreate,
    JobStatus,
    JobUpdate,
    LaborEntryCreate,
    LogEntryCreate,
    LogEntryType,
    QuoteCreate,
    QuoteLineItem,
    QuoteStatus,
    QuoteUpdate,
    Role,
    ScheduleEntryCreate,
    ScheduleEntryUpdate,
)
from dryad.core.settings import Settings
from dryad.domain import MockDataState
from dryad.infrastructure import InMemoryRepository, load_fixtures

ADDRESS = Address(street="9 Elm St", city="Portland", state="OR", zip="97202")


@pytest.fixture()
def context():
    return build_context(Settings())


def run(coro):
    return asyncio.run(coro)


# ----------------------------------------------------------------------
# repository
# ----------------------------------------------------------------------
def test_repository_returns_copies_and_resets():
    repo = InMemoryRepository(MockDataState(jobs=[{"id": "job-1", "title": "a", "tags": []}]))

    row = repo.get("jobs", "job-1")
    row["tags"].append("mutated")
    assert repo.get("jobs", "job-1")["tags"] == []

    assert repo.update("jobs", "job-1", {"title": "b"})["title"] == "b"
    assert repo.update("jobs", "missing", {"title": "b"}) is None
    repo.insert("jobs", {"id": "job-0"}, prepend=True)
    assert [item["id"] for item in repo.list("jobs")] == ["job-0", "job-1"]
    assert repo.next_id("log") == "log-00001"
    assert repo.next_id("log") == "log-00002"
    assert repo.delete("jobs", "job-0") is True
    assert repo.delete("jobs", "job-0") is False

    repo.reset()
    assert repo.list("jobs") == [{"id": "job-1", "title": "a", "tags": []}]
    assert repo.next_id("log") == "log-00001"


def test_load_fixtures_reads_every_collection(tmp_path):
    state = load_fixtures(Settings().data_dir)
    assert len(state.jobs) == 11
    assert len(state.users) == 7

    (tmp_path / "jobs.json").write_text("[]", encoding="utf-8")
    sparse = load_fixtures(tmp_path)
    assert sparse.jobs == [] and sparse.customers == []

    (tmp_path / "users.json").write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError):
        load_fixtures(tmp_path)


def test_job_json_round_trip_keeps_dates(context):
    job = run(context.jobs.get_job_by_id("job-008"))
    restored = Job.model_validate_json(job.model_dump_json())
    for name in ("created_at", "incident_date", "scheduled_start_date", "estimated_completion_date", "completed_date"):
        assert getattr(restored, name) == getattr(job, name)
    assert restored.model_dump() == job.model_dump()
    assert job.completed_date is not None and job.completed_date.tzinfo is not None


# ----------------------------------------------------------------------
# jobs
# ----------------------------------------------------------------------
def test_job_queries(context):
    jobs = context.jobs
    assert len(run(jobs.get_jobs())) == 11
    assert run(jobs.get_job_by_id("nope")) is None
    assert {job.id for job in run(jobs.get_jobs_by_customer("cust-003"))} == {"job-003", "job-009"}
    assert {job.id for job in run(jobs.get_jobs_by_status("IN_PROGRESS"))} == {"job-003", "job-004"}
    assert len(run(jobs.get_jobs_by_technician("tech-01"))) == 6


def test_fixture_technician_buckets(context):
    buckets = run(context.jobs.categorize_for_technician("tech-01"))
    assert [job.id for job in buckets.unscheduled] == ["job-001"]
    assert [job.id for job in buckets.active] == ["job-002", "job-003"]
    assert [job.id for job in buckets.completed] == ["job-005", "job-008", "job-009"]

    buckets = run(context.jobs.categorize_for_technician("tech-02"))
    assert buckets.unscheduled == []
    assert [job.id for job in buckets.active] == ["job-002", "job-010"]
    assert [job.id for job in buckets.completed] == ["job-004", "job-006"]


def test_create_job_defaults(context):
    payload = JobCreate(title="Sump failure", customer_id="cust-002", site_address=ADDRESS, assigned_user_ids=["tech-02"])
    job = run(context.jobs.create_job(payload))

    assert job.status == JobStatus.NEW
    assert job.equipment_ids == []
    assert job.completion_tasks is not None and not job.completion_tasks.all_done()
    year = datetime.now(timezone.utc).year
    assert job.job_number == f"J-{year}-012"

    jobs = run(context.jobs.get_jobs())
    assert jobs[0].id == job.id
    assert len(jobs) == 12


def test_create_job_rejects_unknown_customer(context):
    payload = JobCreate(title="Ghost", customer_id="cust-999", site_address=ADDRESS)
    with pytest.raises(InvalidReferenceError):
        run(context.jobs.create_job(payload))
    assert len(run(context.jobs.get_jobs())) == 11


def test_update_job_and_status(context):
    job = run(context.jobs.update_job("job-001", JobUpdate(title="Burst pipe, unit 4B", priority=1)))
    assert job.title == "Burst pipe, unit 4B"
    assert job.priority == 1
    assert job.customer_id == "cust-001"
    assert run(context.jobs.update_job("missing", JobUpdate(title="x"))) is None

    completed = run(context.jobs.update_job_status("job-005", JobStatus.COMPLETED))
    assert completed.completed_date is not None
    assert run(context.jobs.get_job_by_id("job-005")).status == JobStatus.COMPLETED

    with pytest.raises(WorkflowError):
        run(context.jobs.update_job_status("job-009", JobStatus.NEW))

    advanced = run(context.jobs.advance_job_status("job-001"))
    assert advanced.status == JobStatus.SCHEDULED


def test_update_job_null_only_clears_nullable_fields(context):
    before = run(context.jobs.get_job_by_id("job-002"))
    changes = JobUpdate.model_validate(
        {"title": None, "description": None, "tags": None, "priority": None, "scheduled_start_date": None}
    )
    job = run(context.jobs.update_job("job-002", changes))

    assert job.title == before.title
    assert job.description == "Visible growth along north wall"
    assert job.tags == before.tags
    assert job.priority == before.priority
    assert before.scheduled_start_date is not None
    assert job.scheduled_start_date is None
    assert run(context.jobs.get_job_by_id("job-002")).scheduled_start_date is None


def test_update_completion_tasks_single_and_mapping(context):
    job = run(context.jobs.update_completion_tasks("job-003", "final_readings_logged", True))
    assert job.completion_tasks.final_readings_logged is True
    assert job.completion_tasks.after_photos_taken is False

    job = run(context.jobs.update_completion_tasks("job-003", {"after_photos_taken": True, "final_readings_logged": False}))
    assert job.completion_tasks.after_photos_taken is True
    assert job.completion_tasks.final_readings_logged is False

    with pytest.raises(ValueError):
        run(context.jobs.update_completion_tasks("job-003", {"bogus": True}))


def test_complete_task_enforces_role_dependencies_and_moves_to_review(context):
    jobs = context.jobs

    with pytest.raises(WorkflowError):
        run(jobs.complete_task("job-003", "log_final_readings", Role.OFFICE))
    with pytest.raises(WorkflowError):
        run(jobs.complete_task("job-003", "mark_ready_for_review", Role.TECH))
    with pytest.raises(WorkflowError):
        run(jobs.complete_task("job-001", "log_final_readings", Role.TECH))

    run(jobs.complete_task("job-003", "log_final_readings", Role.TECH))
    job = run(jobs.complete_task("job-003", "upload_after_photos", "TECH"))
    assert job.status == JobStatus.IN_PROGRESS

    job = run(jobs.complete_task("job-003", "mark_ready_for_review", Role.TECH))
    assert job.status == JobStatus.PENDING_COMPLETION
    assert job.completion_tasks.all_done()

    buckets = run(jobs.categorize_for_technician("tech-01"))
    assert "job-003" in [item.id for item in buckets.completed]


def test_get_workflow_limits_tasks_to_role(context):
    progress = run(context.jobs.get_workflow("job-001", Role.TECH))
    assert progress["status"] == "NEW"
    assert progress["outstanding_tasks"] == []

    progress = run(context.jobs.get_workflow("job-001"))
    assert [task["id"] for task in progress["outstanding_tasks"]] == ["schedule_job", "assign_techs"]
    assert run(context.jobs.get_workflow("missing")) is None


def test_assign_technicians_deduplicates(context):
    job = run(context.jobs.assign_technicians("job-001", ["tech-02", "tech-03", "tech-02"]))
    assert job.assigned_user_ids == ["tech-02", "tech-03"]


# ----------------------------------------------------------------------
# directory
# ----------------------------------------------------------------------
def test_customer_lookup_and_search(context):
    customers = context.customers
    assert len(run(customers.get_customers())) == 4
    assert run(customers.get_customer_by_id("cust-404")) is None
    assert [item.id for item in run(customers.search_customers("dental"))] == ["cust-003"]
    assert [item.id for item in run(customers.search_customers("ELENA"))] == ["cust-001"]
    assert run(customers.search_customers("   ")) == []


def test_user_queries_and_legacy_role(context):
    users = context.users
    tech_03 = run(users.get_user_by_id("tech-03"))
    assert tech_03.role == Role.TECH
    assert tech_03.full_name == "Avery Cole"

    assert {user.id for user in run(users.get_technicians())} == {"tech-01", "tech-02", "tech-03"}
    assert {user.id for user in run(users.get_users_by_role("OFFICE"))} == {"office-01", "office-02"}
    assert "tech-04" not in {user.id for user in run(users.get_active_users())}


def test_add_user_assigns_prefixed_ids(context):
    users = context.users
    tech = run(users.add_user(first_name="Sam", last_name="Ng", email="sam@dryadrestoration.com", role=Role.TECH))
    assert tech.id == "tech-05"

    customer = run(users.add_user(first_name="Al", last_name="Ok", email="al@example.com", role=Role.CUSTOMER))
    assert customer.id == "user-01"

    with pytest.raises(DuplicateRecordError):
        run(users.add_user(first_name="Dup", last_name="Luis", email="LUIS@dryadrestoration.com", role=Role.TECH))


# ----------------------------------------------------------------------
# logs, labor, equipment
# ----------------------------------------------------------------------
def test_log_entries_newest_first_and_added_unsynced(context):
    logs = context.logs
    entries = run(logs.get_log_entries_by_job("job-003"))
    assert entries[0].id == "log-006"
    assert [entry.timestamp for entry in entries] == sorted((entry.timestamp for entry in entries), reverse=True)

    added = run(logs.add_log_entry("job-003", LogEntryCreate(user_id="tech-01", type=LogEntryType.NOTE, content="Dry")))
    assert added.synced is False
    assert run(logs.get_log_entries_by_job("job-003"))[0].id == added.id


def test_naive_log_timestamp_is_stored_as_utc(context):
    naive = datetime(2025, 3, 20, 10, 0)
    added = run(context.logs.add_log_entry(
        "job-003", LogEntryCreate(user_id="tech-01", type=LogEntryType.NOTE, content="Moisture check", timestamp=naive)
    ))
    assert added.timestamp == naive.replace(tzinfo=timezone.utc)

    entries = run(context.logs.get_log_entries_by_job("job-003"))
    assert entries[0].id == added.id
    assert entries[0].timestamp.tzinfo is not None

    summary = run(context.equipment.calculate_job_billing("job-003", now=datetime(2025, 3, 13, 9, 0, tzinfo=timezone.utc)))
    assert summary.total_cost == Decimal("370")


def test_labor_entries_skip_zero_hours(context):
    labor = context.labor
    assert run(labor.get_total_labor_hours("job-005")) == pytest.approx(10.5)

    created = run(
        labor.add_labor_entries(
            "job-005",
            [
                LaborEntryCreate(user_id="tech-01", user_name="Luis Ortega", hours=2.5),
                LaborEntryCreate(user_id="tech-02", user_name="Kim Sato", hours=0),
            ],
        )
    )
    assert len(created) == 1
    assert run(labor.get_total_labor_hours("job-005")) == pytest.approx(13.0)


def test_equipment_queries(context):
    equipment = context.equipment
    assert len(run(equipment.get_all_equipment())) == 7
    assert {item.id for item in run(equipment.get_available_equipment())} == {"eq-001", "eq-004", "eq-005"}
    assert [item.id for item in run(equipment.get_equipment_by_ids(["eq-006", "eq-999"]))] == ["eq-006"]
    assert {item.id for item in run(equipment.get_equipment_by_job("job-003"))} == {"eq-002", "eq-003"}

    item = run(equipment.set_equipment_status("eq-006", EquipmentStatus.AVAILABLE))
    assert item.status == EquipmentStatus.AVAILABLE
    assert item.current_job_id is None
    assert run(equipment.set_equipment_status("eq-999", EquipmentStatus.AVAILABLE)) is None


def test_fixture_job_billing(context):
    now = datetime(2025, 3, 13, 9, 0, tzinfo=timezone.utc)
    summary = run(context.equipment.calculate_job_billing("job-003", now=now))

    assert [(item.equipment_id, item.duration_days) for item in summary.details] == [
        ("eq-002", 4),
        ("eq-003", 1),
        ("eq-001", 2),
    ]
    assert summary.total_cost == Decimal("370")

    heater = run(context.equipment.calculate_job_billing("job-004", now=now))
    assert heater.total_cost == Decimal("120")
    assert run(context.equipment.calculate_job_billing("missing")) is None


def test_place_and_remove_equipment(context):
    equipment = context.equipment
    start = datetime(2025, 3, 20, 8, 0, tzinfo=timezone.utc)

    entry = run(equipment.place_equipment("job-004", "eq-005", "tech-02", location="Kitchen", timestamp=start))
    assert entry.type == LogEntryType.EQUIPMENT_PLACEMENT
    assert entry.content["equipment_type"] == "AIR_MOVER"
    assert run(equipment.get_equipment_by_id("eq-005")).status == EquipmentStatus.DEPLOYED
    assert "eq-005" in run(context.jobs.get_job_by_id("job-004")).equipment_ids

    with pytest.raises(WorkflowError):
        run(equipment.place_equipment("job-003", "eq-005", "tech-01"))
    with pytest.raises(WorkflowError):
        run(equipment.remove_equipment("job-003", "eq-005", "tech-01"))
    with pytest.raises(InvalidReferenceError):
        run(equipment.place_equipment("job-404", "eq-001", "tech-01"))

    run(equipment.remove_equipment("job-004", "eq-005", "tech-02", timestamp=start + timedelta(hours=30)))
    item = run(equipment.get_equipment_by_id("eq-005"))
    assert item.status == EquipmentStatus.AVAILABLE
    assert item.current_job_id is None
    assert "eq-005" not in run(context.jobs.get_job_by_id("job-004")).equipment_ids

    summary = run(equipment.calculate_job_billing("job-004"))
    costs = {item.equipment_id: item.cost for item in summary.details}
    assert costs["eq-005"] == Decimal("50")


# ----------------------------------------------------------------------
# quotes, schedule, trucks
# ----------------------------------------------------------------------
def test_create_quote_computes_totals(context):
    payload = QuoteCreate(
        customer_id="cust-001",
        site_address=ADDRESS,
        scope_of_work="Dry out basement",
        prepared_by_user_id="office-01",
        tax_rate=Decimal("0.08"),
        line_items=[
            QuoteLineItem(id="li-1", description="Air mover days", quantity=Decimal("6"), unit_price=Decimal("25")),
            QuoteLineItem(id="li-2", description="Labor", quantity=Decimal("2.5"), unit_price=Decimal("75")),
        ],
    )
    quote = run(context.quotes.create_quote(payload))

    assert quote.status == QuoteStatus.DRAFT
    assert [item.total for item in quote.line_items] == [Decimal("150.00"), Decimal("187.50")]
    assert quote.subtotal == Decimal("337.50")
    assert quote.tax_amount == Decimal("27.00")
    assert quote.total == Decimal("364.50")
    now = datetime.now(timezone.utc)
    assert quote.quote_number == f"Q-{now.year}-{now.month:02d}-0004"
    assert quote.id == "q004"

    with pytest.raises(InvalidReferenceError):
        run(context.quotes.create_quote(payload.model_copy(update={"customer_id": "cust-999"})))


def test_update_delete_and_convert_quote(context):
    quotes = context.quotes
    updated = run(quotes.update_quote("q003", QuoteUpdate(line_items=[
        QuoteLineItem(id="li-1", description="Drywall", quantity=Decimal("3"), unit_price=Decimal("100")),
    ])))
    assert updated.total == Decimal("300.00")
    assert run(quotes.update_quote("q404", QuoteUpdate(notes="x"))) is None

    converted = run(quotes.convert_to_job("q002"))
    assert converted.status == QuoteStatus.CONVERTED_TO_JOB
    job = run(context.jobs.get_job_by_id(converted.associated_job_id))
    assert job.originating_quote_id == "q002"
    assert job.estimated_cost == Decimal("486.00")
    assert job.status == JobStatus.NEW

    with pytest.raises(WorkflowError):
        run(quotes.convert_to_job("q001"))
    with pytest.raises(InvalidReferenceError):
        run(quotes.convert_to_job("q003", "job-404"))

    assert run(quotes.delete_quote("q003")) is True
    assert run(quotes.delete_quote("q003")) is False
    assert [quote.id for quote in run(quotes.get_quotes_by_customer("cust-001"))] == ["q002"]


def test_quote_numbers_never_repeat_after_delete(context):
    quotes = context.quotes
    assert run(quotes.delete_quote("q001")) is True

    quote = run(quotes.create_quote(
        QuoteCreate(customer_id="cust-001", site_address=ADDRESS, prepared_by_user_id="office-01")
    ))
    assert quote.id == "q004"
    assert quote.quote_number.endswith("-0004")
    numbers = [item.quote_number for item in run(quotes.get_quotes())]
    assert len(numbers) == len(set(numbers))


def test_quote_update_null_keeps_required_fields(context):
    changes = QuoteUpdate.model_validate({"status": None, "site_address": None, "notes": None})
    updated = run(context.quotes.update_quote("q002", changes))
    assert updated.status == QuoteStatus.SENT
    assert updated.site_address.street == "12 Harbor Way"
    assert updated.notes is None


def test_schedule_update_null_clears_truck_only(context):
    changes = ScheduleEntryUpdate.model_validate({"job_id": None, "user_id": None, "date": None, "truck_id": None})
    entry = run(context.schedule.update_schedule_entry("sched-001", changes))
    assert entry.job_id == "job-002"
    assert entry.user_id == "tech-01"
    assert entry.date == datetime(2025, 3, 20).date()
    assert entry.truck_id is None


def test_schedule_entries_validate_references(context):
    schedule = context.schedule
    day = datetime(2025, 3, 20).date()
    assert {entry.id for entry in run(schedule.get_schedule_entries(day))} == {"sched-001", "sched-002"}

    entry = run(schedule.create_schedule_entry(
        ScheduleEntryCreate(job_id="job-004", user_id="tech-02", truck_id="truck-002", date=day, created_by="office-01")
    ))
    assert entry.created_at == entry.updated_at

    with pytest.raises(InvalidReferenceError):
        run(schedule.create_schedule_entry(
            ScheduleEntryCreate(job_id="job-404", user_id="tech-02", date=day, created_by="office-01")
        ))
    with pytest.raises(InvalidReferenceError):
        run(schedule.update_schedule_entry(entry.id, ScheduleEntryUpdate(user_id="tech-404")))

    moved = run(schedule.update_schedule_entry(entry.id, ScheduleEntryUpdate(notes="Bring heaters")))
    assert moved.notes == "Bring heaters"
    assert moved.date == day
    assert run(schedule.delete_schedule_entry(entry.id)) is True
    assert run(schedule.get_schedule_entry(entry.id)) is None


def test_trucks(context):
    assert len(run(context.trucks.get_trucks())) == 3
    assert run(context.trucks.get_truck_by_id("truck-003")).status.value == "MAINTENANCE"
    assert run(context.trucks.get_truck_by_id("truck-404")) is None
