"""Static workflow tables: the status progression and the tasks owed at each status."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from dryad.core.schema import JobStatus, Role


@dataclass(frozen=True, slots=True)
class WorkflowTask:
    """A role-scoped unit of work tied to a job status."""

    id: str
    label: str
    required_roles: tuple[Role, ...]
    checklist_key: str | None = None
    description: str | None = None
    depends_on: tuple[str, ...] = field(default_factory=tuple)

    def allows(self, role: Role | str | None) -> bool:
        if role is None:
            return True
        return Role(role) in self.required_roles


JOB_WORKFLOW_STEPS: list[dict[str, object]] = [
    {"status": JobStatus.NEW, "label": "New Job"},
    {"status": JobStatus.SCHEDULED, "label": "Scheduled"},
    {"status": JobStatus.IN_PROGRESS, "label": "Work In Progress"},
    {"status": JobStatus.PENDING_COMPLETION, "label": "Review & Approval"},
    {"status": JobStatus.COMPLETED, "label": "Job Complete"},
    {"status": JobStatus.INVOICE_APPROVAL, "label": "Invoice Approval"},
    {"status": JobStatus.INVOICED, "label": "Invoiced"},
    {"status": JobStatus.PAID, "label": "Paid"},
]

WORKFLOW_ORDER: list[JobStatus] = [step["status"] for step in JOB_WORKFLOW_STEPS]  # type: ignore[misc]
WORKFLOW_LABELS: dict[JobStatus, str] = {
    step["status"]: str(step["label"]) for step in JOB_WORKFLOW_STEPS  # type: ignore[misc]
}

SIDE_STATES: frozenset[JobStatus] = frozenset({JobStatus.ON_HOLD, JobStatus.CANCELLED})
TERMINAL_STATES: frozenset[JobStatus] = frozenset({JobStatus.PAID, JobStatus.CANCELLED})

_OFFICE = (Role.OFFICE, Role.ADMIN)
_TECH = (Role.TECH,)

TASKS_BY_STATUS: dict[JobStatus, list[WorkflowTask]] = {
    JobStatus.NEW: [
        WorkflowTask("schedule_job", "Schedule Job Date", _OFFICE),
        WorkflowTask("assign_techs", "Assign Technician(s)", _OFFICE),
    ],
    JobStatus.SCHEDULED: [
        WorkflowTask("confirm_dispatch", "Confirm Technician Dispatched", _OFFICE),
    ],
    JobStatus.IN_PROGRESS: [
        WorkflowTask(
            "log_final_readings",
            "Log Final Moisture Readings",
            _TECH,
            checklist_key="final_readings_logged",
        ),
        WorkflowTask(
            "upload_after_photos",
            'Upload "After" Photos',
            _TECH,
            checklist_key="after_photos_taken",
        ),
        WorkflowTask(
            "mark_ready_for_review",
            "Submit for Office Review",
            _TECH,
            checklist_key="mark_ready_for_review",
            depends_on=("log_final_readings", "upload_after_photos"),
        ),
    ],
    JobStatus.PENDING_COMPLETION: [
        WorkflowTask("review_checklist", "Review Technician Checklist", _OFFICE),
        WorkflowTask("enter_labor", "Enter/Confirm Labor Hours", _OFFICE),
        WorkflowTask("finalize_job", "Finalize Job & Costs", _OFFICE),
    ],
    JobStatus.COMPLETED: [
        WorkflowTask(
            "create_invoice",
            "Create & Submit Invoice",
            _OFFICE,
            description="Create an invoice and submit it for approval",
        ),
    ],
    JobStatus.INVOICE_APPROVAL: [
        WorkflowTask(
            "review_invoice",
            "Review & Approve Invoice",
            _OFFICE,
            description="Review the invoice before sending it to the customer",
        ),
    ],
    JobStatus.INVOICED: [
        WorkflowTask("record_payment", "Record Payment", _OFFICE),
    ],
}

# workflow task id -> CompletionTasks field a technician ticks off
TECH_TASK_COMPLETION_FIELDS: dict[str, str] = {
    "log_final_readings": "final_readings_logged",
    "upload_after_photos": "after_photos_taken",
    "mark_ready_for_review": "mark_ready_for_review",
}


def status_index(status: JobStatus | str) -> int | None:
    """Position of ``status`` in the workflow, or ``None`` for side states."""

    try:
        return WORKFLOW_ORDER.index(JobStatus(status))
    except ValueError:
        return None


def is_status_at_or_past(status: JobStatus | str, reference: JobStatus | str) -> bool:
    current = status_index(status)
    target = status_index(reference)
    if current is None or target is None:
        return False
    return current >= target


def next_status(status: JobStatus | str) -> JobStatus | None:
    index = status_index(status)
    if index is None or index + 1 >= len(WORKFLOW_ORDER):
        return None
    return WORKFLOW_ORDER[index + 1]


def find_task(task_id: str, tasks_by_status: Mapping[JobStatus, Iterable[WorkflowTask]] | None = None) -> tuple[JobStatus, WorkflowTask] | None:
    table = TASKS_BY_STATUS if tasks_by_status is None else tasks_by_status
    for status, tasks in table.items():
        for task in tasks:
            if task.id == task_id:
                return status, task
    return None


def tasks_for_role(
    role: Role | str,
    statuses: Iterable[JobStatus] | None = None,
    tasks_by_status: Mapping[JobStatus, Iterable[WorkflowTask]] | None = None,
) -> list[WorkflowTask]:
    table = TASKS_BY_STATUS if tasks_by_status is None else tasks_by_status
    wanted = list(statuses) if statuses is not None else list(table.keys())
    collected: list[WorkflowTask] = []
    for status in wanted:
        collected.extend(task for task in table.get(status, []) if task.allows(role))
    return collected
