"""Application service for jobs and their workflow."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping

from dryad.application.base import RepositoryService
from dryad.application.directory import CustomerService
from dryad.core.errors import InvalidReferenceError, WorkflowError
from dryad.core.schema import CompletionTasks, Job, JobCreate, JobStatus, JobUpdate, Role
from dryad.core.workflow import (
    TechnicianJobBuckets,
    apply_status,
    build_workflow_progress,
    categorize_technician_jobs,
    outstanding_tasks,
)
from dryad.core.workflow_config import TERMINAL_STATES, find_task, next_status
from dryad.infrastructure import DataRepository


class JobService(RepositoryService):
    """Reads and mutates jobs held in the mock repository."""

    collection = "jobs"

    def __init__(self, repository: DataRepository, customers: CustomerService, *, latency: float = 0.0) -> None:
        super().__init__(repository, latency=latency)
        self._customers = customers

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    async def get_jobs(self) -> list[Job]:
        await self._simulate_delay()
        return self._parse_all(Job, self._repository.list(self.collection))

    async def get_job_by_id(self, job_id: str) -> Job | None:
        await self._simulate_delay()
        job = self._parse(Job, self._repository.get(self.collection, job_id))
        if job is None:
            self._logger.warning("job_not_found", job_id=job_id)
        return job

    async def get_jobs_by_customer(self, customer_id: str) -> list[Job]:
        await self._simulate_delay()
        rows = self._repository.list(self.collection, lambda row: row.get("customer_id") == customer_id)
        return self._parse_all(Job, rows)

    async def get_jobs_by_technician(self, user_id: str) -> list[Job]:
        await self._simulate_delay()
        rows = self._repository.list(self.collection, lambda row: user_id in (row.get("assigned_user_ids") or []))
        return self._parse_all(Job, rows)

    async def get_jobs_by_status(self, status: JobStatus | str) -> list[Job]:
        wanted = JobStatus(status).value
        await self._simulate_delay()
        rows = self._repository.list(self.collection, lambda row: row.get("status") == wanted)
        return self._parse_all(Job, rows)

    async def categorize_for_technician(self, technician_id: str) -> TechnicianJobBuckets:
        jobs = await self.get_jobs_by_technician(technician_id)
        return categorize_technician_jobs(jobs, technician_id)

    async def get_workflow(self, job_id: str, role: Role | str | None = None) -> dict[str, object] | None:
        job = await self.get_job_by_id(job_id)
        if job is None:
            return None
        progress = build_workflow_progress(job)
        if role is not None:
            progress["outstanding_tasks"] = [state.as_dict() for state in outstanding_tasks(job, role)]
        return progress

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------
    def _next_job_number(self) -> str:
        year = datetime.now(timezone.utc).year
        return f"J-{year}-{self._repository.count(self.collection) + 1:03d}"

    def _store(self, job: Job) -> Job:
        self._repository.update(self.collection, job.id, self._dump(job))
        return job

    async def create_job(self, payload: JobCreate) -> Job:
        customer = await self._customers.get_customer_by_id(payload.customer_id)
        if customer is None:
            raise InvalidReferenceError(f"Customer with ID {payload.customer_id} not found")

        await self._simulate_delay()
        job = Job(
            **payload.model_dump(),
            id=self._repository.next_id("job"),
            job_number=self._next_job_number(),
            status=JobStatus.NEW,
            created_at=datetime.now(timezone.utc),
            equipment_ids=[],
            completion_tasks=CompletionTasks(),
        )
        self._repository.insert(self.collection, self._dump(job), prepend=True)
        self._logger.info("job_created", job_id=job.id, job_number=job.job_number, customer_id=job.customer_id)
        return job

    async def update_job(self, job_id: str, changes: JobUpdate) -> Job | None:
        job = await self.get_job_by_id(job_id)
        if job is None:
            return None
        merged, updates = self._merge(Job, job, changes)
        self._logger.info("job_updated", job_id=job_id, fields=sorted(updates))
        return self._store(merged)

    async def update_job_status(self, job_id: str, status: JobStatus | str) -> Job | None:
        job = await self.get_job_by_id(job_id)
        if job is None:
            return None
        updated = apply_status(job, JobStatus(status))
        self._logger.info("job_status_changed", job_id=job_id, previous=job.status.value, status=updated.status.value)
        return self._store(updated)

    async def advance_job_status(self, job_id: str) -> Job | None:
        job = await self.get_job_by_id(job_id)
        if job is None:
            return None
        target = next_status(job.status)
        if target is None:
            raise WorkflowError(f"job {job_id} has no further workflow step from {job.status.value}")
        return await self.update_job_status(job_id, target)

    async def update_completion_tasks(
        self,
        job_id: str,
        tasks: str | Mapping[str, bool],
        value: bool | None = None,
    ) -> Job | None:
        """Set one checklist flag (``tasks`` is a key) or several (``tasks`` is a mapping)."""

        if isinstance(tasks, str):
            if value is None:
                raise ValueError("value is required when updating a single completion task")
            changes = {tasks: value}
        else:
            changes = dict(tasks)

        unknown = set(changes) - set(CompletionTasks.model_fields)
        if unknown:
            raise ValueError(f"unknown completion task(s): {', '.join(sorted(unknown))}")

        job = await self.get_job_by_id(job_id)
        if job is None:
            return None
        current = job.completion_tasks or CompletionTasks()
        job = job.model_copy(update={"completion_tasks": current.model_copy(update=changes)})
        self._logger.info("completion_tasks_updated", job_id=job_id, changes=changes)
        return self._store(job)

    async def complete_task(self, job_id: str, task_id: str, role: Role | str) -> Job | None:
        """Tick off a workflow task on behalf of ``role``.

        Submitting the technician checklist for review moves an in-progress job
        to PENDING_COMPLETION.
        """

        located = find_task(task_id)
        if located is None:
            raise WorkflowError(f"unknown task: {task_id}")
        task_status, task = located

        job = await self.get_job_by_id(job_id)
        if job is None:
            return None
        if job.status in TERMINAL_STATES:
            raise WorkflowError(f"job {job_id} is {job.status.value}")
        if job.status != task_status:
            raise WorkflowError(f"task {task_id} belongs to {task_status.value}, job is {job.status.value}")
        if not task.allows(role):
            raise WorkflowError(f"role {Role(role).value} may not complete {task_id}")

        pending = {state.task.id: state for state in outstanding_tasks(job)}
        state = pending.get(task_id)
        if state is not None and state.blocked:
            raise WorkflowError(f"task {task_id} is waiting on {', '.join(task.depends_on)}")
        if task.checklist_key is None:
            raise WorkflowError(f"task {task_id} is tracked by a status change, not a checklist")

        updated = await self.update_completion_tasks(job_id, task.checklist_key, True)
        if updated is not None and task_id == "mark_ready_for_review" and updated.status == JobStatus.IN_PROGRESS:
            updated = await self.update_job_status(job_id, JobStatus.PENDING_COMPLETION)
        return updated

    async def assign_technicians(self, job_id: str, user_ids: list[str]) -> Job | None:
        job = await self.get_job_by_id(job_id)
        if job is None:
            return None
        assigned = list(dict.fromkeys(user_ids))
        self._logger.info("technicians_assigned", job_id=job_id, user_ids=assigned)
        return self._store(job.model_copy(update={"assigned_user_ids": assigned}))

    async def set_equipment_ids(self, job_id: str, equipment_ids: list[str]) -> Job | None:
        job = await self.get_job_by_id(job_id)
        if job is None:
            return None
        return self._store(job.model_copy(update={"equipment_ids": list(dict.fromkeys(equipment_ids))}))
