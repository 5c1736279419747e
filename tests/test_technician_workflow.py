import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from dryad.core.errors import WorkflowError
from dryad.core.schema import Address, CompletionTasks, Job, JobStatus, Role
from dryad.core.workflow import (
    apply_status,
    build_workflow_progress,
    categorize_technician_jobs,
    is_job_completed_by_technician,
    outstanding_tasks,
    validate_transition,
)
from dryad.core.workflow_config import (
    TASKS_BY_STATUS,
    WorkflowTask,
    find_task,
    is_status_at_or_past,
    next_status,
    status_index,
    tasks_for_role,
)

ADDRESS = Address(street="1 Main St", city="Portland", state="OR", zip="97201")


def make_job(job_id="job-x", status=JobStatus.IN_PROGRESS, assigned=("tech-01",), tasks=None, created="2025-03-01T10:00:00Z"):
    return Job(
        id=job_id,
        job_number=f"J-2025-{job_id[-3:]}",
        status=status,
        title="Test job",
        customer_id="cust-001",
        site_address=ADDRESS,
        assigned_user_ids=list(assigned),
        created_at=created,
        completion_tasks=tasks,
    )


def all_tasks(value):
    return CompletionTasks(final_readings_logged=value, after_photos_taken=value, mark_ready_for_review=value)


# ----------------------------------------------------------------------
# technician completion predicate
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "status",
    [
        JobStatus.PENDING_COMPLETION,
        JobStatus.COMPLETED,
        JobStatus.INVOICE_APPROVAL,
        JobStatus.INVOICED,
        JobStatus.PAID,
        JobStatus.CANCELLED,
    ],
)
def test_statuses_past_technician_work_count_as_completed(status):
    job = make_job(status=status, assigned=("tech-01", "tech-03"))
    assert is_job_completed_by_technician(job, "tech-01")
    assert is_job_completed_by_technician(job, "tech-03")


def test_in_progress_with_every_flag_set_is_completed():
    assert is_job_completed_by_technician(make_job(tasks=all_tasks(True)), "tech-01")


@pytest.mark.parametrize("flag", ["final_readings_logged", "after_photos_taken", "mark_ready_for_review"])
def test_in_progress_with_any_flag_missing_is_not_completed(flag):
    tasks = all_tasks(True).model_copy(update={flag: False})
    assert not is_job_completed_by_technician(make_job(tasks=tasks), "tech-01")


def test_in_progress_without_checklist_is_not_completed():
    assert not is_job_completed_by_technician(make_job(tasks=None), "tech-01")


@pytest.mark.parametrize("status", [JobStatus.NEW, JobStatus.SCHEDULED, JobStatus.ON_HOLD])
def test_early_statuses_are_not_completed(status):
    assert not is_job_completed_by_technician(make_job(status=status), "tech-01")


def test_unassigned_technician_is_reported_as_done():
    job = make_job(status=JobStatus.SCHEDULED, assigned=("tech-02",))
    assert is_job_completed_by_technician(job, "tech-01")


def test_table_without_technician_tasks_reports_done():
    office_only = {
        JobStatus.SCHEDULED: [WorkflowTask("confirm_dispatch", "Confirm", (Role.OFFICE,))],
    }
    job = make_job(status=JobStatus.SCHEDULED)
    assert is_job_completed_by_technician(job, "tech-01", office_only)


# ----------------------------------------------------------------------
# categorization
# ----------------------------------------------------------------------
def test_every_assigned_job_lands_in_exactly_one_bucket():
    jobs = [
        make_job("job-001", JobStatus.NEW),
        make_job("job-002", JobStatus.SCHEDULED),
        make_job("job-003", JobStatus.IN_PROGRESS, tasks=all_tasks(False)),
        make_job("job-004", JobStatus.IN_PROGRESS, tasks=all_tasks(True)),
        make_job("job-005", JobStatus.ON_HOLD),
        make_job("job-006", JobStatus.PAID),
        make_job("job-007", JobStatus.CANCELLED),
        make_job("job-008", JobStatus.SCHEDULED, assigned=("tech-02",)),
    ]

    buckets = categorize_technician_jobs(jobs, "tech-01")

    assert [job.id for job in buckets.unscheduled] == ["job-001"]
    assert [job.id for job in buckets.active] == ["job-002", "job-003", "job-005"]
    assert [job.id for job in buckets.completed] == ["job-004", "job-006", "job-007"]

    placed = [job.id for bucket in buckets.as_dict().values() for job in bucket]
    assert sorted(placed) == sorted(job.id for job in jobs if "tech-01" in job.assigned_user_ids)


def test_categorize_ignores_jobs_of_other_technicians():
    buckets = categorize_technician_jobs([make_job("job-001", JobStatus.NEW, assigned=("tech-02",))], "tech-01")
    assert buckets.unscheduled == [] and buckets.active == [] and buckets.completed == []


# ----------------------------------------------------------------------
# tasks and progress
# ----------------------------------------------------------------------
def test_outstanding_tasks_block_review_until_checklist_done():
    job = make_job(tasks=all_tasks(False))
    states = {state.task.id: state for state in outstanding_tasks(job, Role.TECH)}

    assert set(states) == {"log_final_readings", "upload_after_photos", "mark_ready_for_review"}
    assert not states["log_final_readings"].blocked
    assert states["mark_ready_for_review"].blocked

    job = make_job(tasks=CompletionTasks(final_readings_logged=True, after_photos_taken=True))
    states = {state.task.id: state for state in outstanding_tasks(job, Role.TECH)}
    assert list(states) == ["mark_ready_for_review"]
    assert not states["mark_ready_for_review"].blocked


def test_outstanding_tasks_filter_by_role():
    job = make_job(status=JobStatus.NEW)
    assert outstanding_tasks(job, Role.TECH) == []
    assert [state.task.id for state in outstanding_tasks(job, Role.OFFICE)] == ["schedule_job", "assign_techs"]


def test_workflow_progress_marks_steps():
    progress = build_workflow_progress(make_job(status=JobStatus.PENDING_COMPLETION))

    states = [step["state"] for step in progress["steps"]]
    assert states[:3] == ["completed", "completed", "completed"]
    assert states[3] == "current"
    assert set(states[4:]) == {"pending"}
    assert progress["next_step"] == "COMPLETED"
    assert progress["side_state"] is None
    assert progress["overall"] == pytest.approx(3 / 8, abs=1e-4)


def test_workflow_progress_for_paid_and_side_states():
    paid = build_workflow_progress(make_job(status=JobStatus.PAID))
    assert paid["overall"] == 1.0
    assert paid["next_step"] is None

    on_hold = build_workflow_progress(make_job(status=JobStatus.ON_HOLD))
    assert on_hold["side_state"] == "ON_HOLD"
    assert {step["state"] for step in on_hold["steps"]} == {"pending"}


def test_status_table_helpers():
    assert status_index(JobStatus.NEW) == 0
    assert status_index(JobStatus.ON_HOLD) is None
    assert next_status(JobStatus.INVOICED) == JobStatus.PAID
    assert next_status(JobStatus.PAID) is None
    assert is_status_at_or_past(JobStatus.INVOICED, JobStatus.COMPLETED)
    assert not is_status_at_or_past(JobStatus.CANCELLED, JobStatus.NEW)

    status, task = find_task("upload_after_photos")
    assert status == JobStatus.IN_PROGRESS
    assert task.checklist_key == "after_photos_taken"
    assert find_task("missing") is None

    tech_tasks = tasks_for_role(Role.TECH)
    assert [task.id for task in tech_tasks] == [task.id for task in TASKS_BY_STATUS[JobStatus.IN_PROGRESS]]


# ----------------------------------------------------------------------
# transitions
# ----------------------------------------------------------------------
@pytest.mark.parametrize("terminal", [JobStatus.PAID, JobStatus.CANCELLED])
def test_terminal_statuses_cannot_change(terminal):
    with pytest.raises(WorkflowError):
        validate_transition(terminal, JobStatus.NEW)
    validate_transition(terminal, terminal)


def test_moving_to_completed_stamps_completed_date():
    now = datetime(2025, 3, 20, 12, 0, tzinfo=timezone.utc)
    job = apply_status(make_job(status=JobStatus.PENDING_COMPLETION), JobStatus.COMPLETED, now=now)
    assert job.status == JobStatus.COMPLETED
    assert job.completed_date == now

    reopened = apply_status(job, JobStatus.ON_HOLD)
    assert reopened.status == JobStatus.ON_HOLD
