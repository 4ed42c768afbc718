r"""backend\app\api\v1\data.py

Upload endpoints for sales history, item master and promotion files."""

from __future__ import annotations

import logging
from typing import Sequence

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from ...core.state import get_store
from ...models import schemas
from ...services.parser_service import UploadReadError, decode_upload, parse_records
from ...services.planning_service import with_records

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_KINDS: tuple[str, ...] = ("sales", "items", "promotions")


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def _validate_kind(kind: str) -> schemas.RecordKind:
    normalised = kind.lower()
    if normalised not in _KINDS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=_error_payload(
                "unknown_kind", f"Upload kind must be one of: {', '.join(_KINDS)}."
            ),
        )
    return normalised  # type: ignore[return-value]


def _store_upload(text: str, record_kind: schemas.RecordKind) -> Sequence[object]:
    records = parse_records(text, record_kind)
    get_store().update(lambda state: with_records(state, record_kind, records))
    return records


@router.post("/data/{kind}", response_model=schemas.UploadResponse)
async def upload(kind: str, request: Request) -> schemas.UploadResponse:
    """Replace the records of ``kind`` with the CSV sent as the request body."""

    record_kind = _validate_kind(kind)
    try:
        text = decode_upload(await request.body())
    except UploadReadError as exc:
        LOGGER.warning("Rejected unreadable %s upload: %s", record_kind, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("upload_unreadable", str(exc)),
        ) from exc

    # Parsing and the store swap stay off the event loop.
    records = await run_in_threadpool(_store_upload, text, record_kind)
    return schemas.UploadResponse(kind=record_kind, records=len(records))


@router.delete("/data/{kind}", response_model=schemas.UploadResponse)
def clear(kind: str) -> schemas.UploadResponse:
    """Drop the uploaded records of ``kind``."""

    record_kind = _validate_kind(kind)
    get_store().update(lambda state: with_records(state, record_kind, []))
    return schemas.UploadResponse(kind=record_kind, records=0)


@router.get("/data/summary", response_model=schemas.DataSummary)
def summary() -> schemas.DataSummary:
    """Headline numbers for the dashboard."""

    state = get_store().state
    return schemas.DataSummary(
        total_volume=float(sum(record.quantity for record in state.sales)),
        sales_records=len(state.sales),
        active_skus=len(state.items),
        promotions=len(state.promotions),
        warehouse_enabled=state.warehouse.enabled,
    )
