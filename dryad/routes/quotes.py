from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from dryad.application import AppContext
from dryad.core.schema import QuoteCreate, QuoteUpdate
from dryad.routes.deps import dump, dump_all, get_context, require, service_errors

router = APIRouter(prefix="/quotes", tags=["quotes"])

QUOTE_NOT_FOUND = "quote not found"


class QuoteConversion(BaseModel):
    job_id: str | None = None


@router.get("")
async def list_quotes(
    customer_id: str | None = Query(default=None),
    context: AppContext = Depends(get_context),
) -> dict:
    if customer_id:
        quotes = await context.quotes.get_quotes_by_customer(customer_id)
    else:
        quotes = await context.quotes.get_quotes()
    return {"items": dump_all(quotes)}


@router.post("", status_code=201)
async def create_quote(payload: QuoteCreate, context: AppContext = Depends(get_context)) -> dict:
    with service_errors():
        quote = await context.quotes.create_quote(payload)
    return dump(quote)


@router.get("/{quote_id}")
async def get_quote(quote_id: str, context: AppContext = Depends(get_context)) -> dict:
    return dump(require(await context.quotes.get_quote_by_id(quote_id), QUOTE_NOT_FOUND))


@router.patch("/{quote_id}")
async def update_quote(quote_id: str, payload: QuoteUpdate, context: AppContext = Depends(get_context)) -> dict:
    return dump(require(await context.quotes.update_quote(quote_id, payload), QUOTE_NOT_FOUND))


@router.delete("/{quote_id}")
async def delete_quote(quote_id: str, context: AppContext = Depends(get_context)) -> dict:
    if not await context.quotes.delete_quote(quote_id):
        raise HTTPException(status_code=404, detail=QUOTE_NOT_FOUND)
    return {"id": quote_id, "deleted": True}


@router.post("/{quote_id}/convert")
async def convert_quote(
    quote_id: str,
    payload: QuoteConversion | None = None,
    context: AppContext = Depends(get_context),
) -> dict:
    job_id = payload.job_id if payload is not None else None
    with service_errors():
        quote = await context.quotes.convert_to_job(quote_id, job_id)
    return dump(require(quote, QUOTE_NOT_FOUND))
