r"""backend\app\api\v1\segments.py"""

from __future__ import annotations

from fastapi import APIRouter, Query

from ...core.state import get_store
from ...models import schemas
from ...services.segment_service import cascade_filter, segment_options

router = APIRouter()


@router.get("/segments/options")
def get_options(
    category: str = Query(schemas.WILDCARD),
    brand: str = Query(schemas.WILDCARD),
    sku: str = Query(schemas.WILDCARD),
) -> dict:
    """Return the cascading choices and the selection with stale levels reset."""

    items = get_store().state.items
    selection = cascade_filter(items, schemas.SegmentFilter(category=category, brand=brand, sku=sku))
    options = segment_options(items, selection)
    return {"filter": selection.model_dump(), "options": options.model_dump()}
