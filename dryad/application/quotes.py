"""Quotes and their conversion into jobs."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from dryad.application.base import RepositoryService
from dryad.application.directory import CustomerService
from dryad.application.jobs import JobService
from dryad.core.errors import InvalidReferenceError, WorkflowError
from dryad.core.schema import (
    JobCreate,
    Quote,
    QuoteCreate,
    QuoteLineItem,
    QuoteStatus,
    QuoteUpdate,
)
from dryad.infrastructure import DataRepository

CENT = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_quote_totals(
    line_items: list[QuoteLineItem],
    tax_rate: Decimal | None,
) -> dict[str, Any]:
    """Line totals, subtotal, tax and grand total for a set of line items."""

    priced = [item.model_copy(update={"total": _money(item.quantity * item.unit_price)}) for item in line_items]
    subtotal = _money(sum((item.total for item in priced), Decimal("0")))
    tax_amount = _money(subtotal * tax_rate) if tax_rate is not None else None
    total = subtotal + (tax_amount or Decimal("0"))
    return {"line_items": priced, "subtotal": subtotal, "tax_amount": tax_amount, "total": total}


class QuoteService(RepositoryService):
    collection = "quotes"

    def __init__(
        self,
        repository: DataRepository,
        customers: CustomerService,
        jobs: JobService,
        *,
        latency: float = 0.0,
    ) -> None:
        super().__init__(repository, latency=latency)
        self._customers = customers
        self._jobs = jobs

    async def get_quotes(self) -> list[Quote]:
        await self._simulate_delay()
        return self._parse_all(Quote, self._repository.list(self.collection))

    async def get_quote_by_id(self, quote_id: str) -> Quote | None:
        await self._simulate_delay()
        quote = self._parse(Quote, self._repository.get(self.collection, quote_id))
        if quote is None:
            self._logger.warning("quote_not_found", quote_id=quote_id)
        return quote

    async def get_quotes_by_customer(self, customer_id: str) -> list[Quote]:
        await self._simulate_delay()
        rows = self._repository.list(self.collection, lambda row: row.get("customer_id") == customer_id)
        return self._parse_all(Quote, rows)

    def _next_quote_id(self) -> str:
        number = self._repository.count(self.collection) + 1
        while self._repository.get(self.collection, f"q{number:03d}") is not None:
            number += 1
        return f"q{number:03d}"

    def _next_quote_number(self, now: datetime) -> str:
        numbers = [row["quote_number"] for row in self._repository.list(self.collection) if row.get("quote_number")]
        sequence = max((int(number.rsplit("-", 1)[-1]) for number in numbers), default=0)
        return f"Q-{now.year}-{now.month:02d}-{sequence + 1:04d}"

    async def create_quote(self, payload: QuoteCreate) -> Quote:
        if await self._customers.get_customer_by_id(payload.customer_id) is None:
            raise InvalidReferenceError(f"Customer with ID {payload.customer_id} not found")

        await self._simulate_delay()
        now = datetime.now(timezone.utc)
        data = payload.model_dump(exclude={"line_items"})
        quote = Quote(
            **data,
            **compute_quote_totals(payload.line_items, payload.tax_rate),
            id=self._next_quote_id(),
            quote_number=self._next_quote_number(now),
            status=QuoteStatus.DRAFT,
            date_created=now,
        )
        self._repository.insert(self.collection, self._dump(quote))
        self._logger.info("quote_created", quote_id=quote.id, quote_number=quote.quote_number, total=str(quote.total))
        return quote

    async def update_quote(self, quote_id: str, changes: QuoteUpdate) -> Quote | None:
        quote = await self.get_quote_by_id(quote_id)
        if quote is None:
            return None
        merged, updates = self._merge(Quote, quote, changes)
        if "line_items" in updates or "tax_rate" in updates:
            merged = merged.model_copy(update=compute_quote_totals(merged.line_items, merged.tax_rate))
        self._repository.update(self.collection, quote_id, self._dump(merged))
        self._logger.info("quote_updated", quote_id=quote_id, fields=sorted(updates))
        return merged

    async def delete_quote(self, quote_id: str) -> bool:
        await self._simulate_delay()
        deleted = self._repository.delete(self.collection, quote_id)
        if deleted:
            self._logger.info("quote_deleted", quote_id=quote_id)
        else:
            self._logger.warning("quote_not_found", quote_id=quote_id)
        return deleted

    async def convert_to_job(self, quote_id: str, job_id: str | None = None) -> Quote | None:
        """Mark the quote as converted, creating a job from it unless ``job_id`` is given."""

        quote = await self.get_quote_by_id(quote_id)
        if quote is None:
            return None
        if quote.status == QuoteStatus.CONVERTED_TO_JOB:
            raise WorkflowError(f"quote {quote_id} was already converted to job {quote.associated_job_id}")

        if job_id is None:
            scope = quote.scope_of_work
            title = scope.get("summary") if isinstance(scope, dict) else scope
            job = await self._jobs.create_job(
                JobCreate(
                    title=(title or f"Job from quote {quote.quote_number}")[:120],
                    description=scope if isinstance(scope, str) else "\n".join(scope.values()),
                    customer_id=quote.customer_id,
                    site_address=quote.site_address,
                    estimated_cost=quote.total,
                    originating_quote_id=quote.id,
                )
            )
            job_id = job.id
        elif await self._jobs.get_job_by_id(job_id) is None:
            raise InvalidReferenceError(f"Job with ID {job_id} not found")

        converted = quote.model_copy(update={"status": QuoteStatus.CONVERTED_TO_JOB, "associated_job_id": job_id})
        self._repository.update(self.collection, quote_id, self._dump(converted))
        self._logger.info("quote_converted", quote_id=quote_id, job_id=job_id)
        return converted
