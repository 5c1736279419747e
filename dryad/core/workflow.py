"""Job workflow predicates: technician completion, job buckets and progress."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping

import structlog

from dryad.core.errors import WorkflowError
from dryad.core.schema import Job, JobStatus, Role
from dryad.core.workflow_config import (
    JOB_WORKFLOW_STEPS,
    TASKS_BY_STATUS,
    TECH_TASK_COMPLETION_FIELDS,
    TERMINAL_STATES,
    WorkflowTask,
    next_status,
    status_index,
)

logger = structlog.get_logger(__name__)

TasksByStatus = Mapping[JobStatus, Iterable[WorkflowTask]]

# once a job reaches one of these the technician has nothing left to do
PAST_TECH_STATUSES: frozenset[JobStatus] = frozenset(
    {
        JobStatus.PENDING_COMPLETION,
        JobStatus.COMPLETED,
        JobStatus.INVOICE_APPROVAL,
        JobStatus.INVOICED,
        JobStatus.PAID,
        JobStatus.CANCELLED,
    }
)

TECH_RELEVANT_STATUSES: tuple[JobStatus, ...] = (
    JobStatus.NEW,
    JobStatus.SCHEDULED,
    JobStatus.IN_PROGRESS,
)


@dataclass
class TechnicianJobBuckets:
    unscheduled: list[Job] = field(default_factory=list)
    active: list[Job] = field(default_factory=list)
    completed: list[Job] = field(default_factory=list)

    def as_dict(self) -> dict[str, list[Job]]:
        return {"unscheduled": self.unscheduled, "active": self.active, "completed": self.completed}


@dataclass
class TaskState:
    task: WorkflowTask
    completed: bool
    blocked: bool

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.task.id,
            "label": self.task.label,
            "required_roles": [role.value for role in self.task.required_roles],
            "checklist_key": self.task.checklist_key,
            "description": self.task.description,
            "depends_on": list(self.task.depends_on),
            "completed": self.completed,
            "blocked": self.blocked,
        }


def _flag(job: Job, key: str | None) -> bool:
    if key is None or job.completion_tasks is None:
        return False
    return bool(getattr(job.completion_tasks, key, False))


def is_job_completed_by_technician(
    job: Job,
    technician_id: str,
    tasks_by_status: TasksByStatus | None = None,
) -> bool:
    """Return True when ``technician_id`` has nothing left to do on ``job``.

    A technician who is not assigned is reported as done. That treats "not
    relevant" the same as "complete"; callers that need to tell the two apart
    must check ``assigned_user_ids`` themselves.
    """

    table = TASKS_BY_STATUS if tasks_by_status is None else tasks_by_status

    if technician_id not in job.assigned_user_ids:
        logger.warning("technician_not_assigned", job_id=job.id, technician_id=technician_id)
        return True

    if job.status in PAST_TECH_STATUSES:
        return True

    if job.status == JobStatus.IN_PROGRESS and job.completion_tasks is not None:
        if job.completion_tasks.all_done():
            return True

    technician_tasks: list[WorkflowTask] = []
    for status in TECH_RELEVANT_STATUSES:
        technician_tasks.extend(task for task in table.get(status, []) if Role.TECH in task.required_roles)

    if not technician_tasks:
        return True

    if job.status == JobStatus.IN_PROGRESS and job.completion_tasks is not None:
        for task in technician_tasks:
            key = TECH_TASK_COMPLETION_FIELDS.get(task.id)
            if key is not None and not _flag(job, key):
                return False
        return True

    return False


def categorize_technician_jobs(
    jobs: Iterable[Job],
    technician_id: str,
    tasks_by_status: TasksByStatus | None = None,
) -> TechnicianJobBuckets:
    """Split the technician's assigned jobs into unscheduled, active and completed.

    Every assigned job lands in exactly one bucket. ON_HOLD jobs still owe
    technician work, so they count as active.
    """

    buckets = TechnicianJobBuckets()
    for job in jobs:
        if technician_id not in job.assigned_user_ids:
            continue
        if job.status == JobStatus.NEW:
            buckets.unscheduled.append(job)
        elif is_job_completed_by_technician(job, technician_id, tasks_by_status):
            buckets.completed.append(job)
        else:
            buckets.active.append(job)
    return buckets


def outstanding_tasks(
    job: Job,
    role: Role | str | None = None,
    tasks_by_status: TasksByStatus | None = None,
) -> list[TaskState]:
    """Tasks still owed at the job's current status, optionally limited to ``role``."""

    table = TASKS_BY_STATUS if tasks_by_status is None else tasks_by_status
    tasks = list(table.get(job.status, []))
    done = {task.id for task in tasks if _flag(job, task.checklist_key)}

    states: list[TaskState] = []
    for task in tasks:
        if task.id in done:
            continue
        if not task.allows(role):
            continue
        blocked = any(dep not in done for dep in task.depends_on)
        states.append(TaskState(task=task, completed=False, blocked=blocked))
    return states


def build_workflow_progress(job: Job, tasks_by_status: TasksByStatus | None = None) -> dict[str, object]:
    current_index = status_index(job.status)
    steps: list[dict[str, object]] = []
    completed_steps = 0

    for index, step in enumerate(JOB_WORKFLOW_STEPS):
        status = step["status"]
        if current_index is None:
            state = "pending"
        elif index < current_index or (index == current_index and status in TERMINAL_STATES):
            state = "completed"
        elif index == current_index:
            state = "current"
        else:
            state = "pending"
        if state == "completed":
            completed_steps += 1
        steps.append({"status": status.value, "label": step["label"], "state": state})  # type: ignore[union-attr]

    upcoming = next_status(job.status)
    return {
        "job_id": job.id,
        "status": job.status.value,
        "side_state": job.status.value if current_index is None else None,
        "overall": round(completed_steps / len(JOB_WORKFLOW_STEPS), 4),
        "steps": steps,
        "next_step": upcoming.value if upcoming else None,
        "outstanding_tasks": [state.as_dict() for state in outstanding_tasks(job, tasks_by_status=tasks_by_status)],
    }


def validate_transition(current: JobStatus, target: JobStatus) -> None:
    if current in TERMINAL_STATES and target != current:
        raise WorkflowError(f"job is {current.value} and can no longer change status")


def apply_status(job: Job, target: JobStatus, now: datetime | None = None) -> Job:
    """Return a copy of ``job`` moved to ``target``."""

    validate_transition(job.status, target)
    changes: dict[str, object] = {"status": target}
    if target == JobStatus.COMPLETED:
        changes["completed_date"] = now or datetime.now(timezone.utc)
    return job.model_copy(update=changes)
