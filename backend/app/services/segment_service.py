r"""backend/app/services/segment_service.py

Cascading category → brand → SKU filtering of sales history."""

from __future__ import annotations

from typing import Dict, List, Sequence

from ..models.schemas import WILDCARD, ItemRecord, SalesRecord, SegmentFilter, SegmentOptions


def _item_lookup(items: Sequence[ItemRecord]) -> Dict[str, ItemRecord]:
    return {item.sku: item for item in items if item.sku is not None}


def filter_sales(
    sales: Sequence[SalesRecord],
    items: Sequence[ItemRecord],
    segment: SegmentFilter,
) -> List[SalesRecord]:
    """Return the sales records that fall inside ``segment``.

    A record whose SKU is missing from the item master cannot satisfy a
    category or brand constraint, so it only survives when both of those are
    wildcards.  The all-wildcard filter returns the input unchanged.
    """

    if segment.is_identity():
        return list(sales)

    lookup = _item_lookup(items)

    def _matches(record: SalesRecord) -> bool:
        item = lookup.get(record.sku) if record.sku is not None else None
        category = segment.category == WILDCARD or (
            item is not None and item.category == segment.category
        )
        brand = segment.brand == WILDCARD or (item is not None and item.brand == segment.brand)
        sku = segment.sku == WILDCARD or record.sku == segment.sku
        return category and brand and sku

    return [record for record in sales if _matches(record)]


def segment_options(items: Sequence[ItemRecord], segment: SegmentFilter) -> SegmentOptions:
    """List the choices offered at each level of the cascade."""

    in_category = [
        item for item in items if segment.category == WILDCARD or item.category == segment.category
    ]
    in_brand = [
        item for item in in_category if segment.brand == WILDCARD or item.brand == segment.brand
    ]
    return SegmentOptions(
        categories=sorted({item.category for item in items if item.category}),
        brands=sorted({item.brand for item in in_category if item.brand}),
        skus=sorted({item.sku for item in in_brand if item.sku}),
    )


def cascade_filter(items: Sequence[ItemRecord], segment: SegmentFilter) -> SegmentFilter:
    """Reset brand/SKU selections that the chosen parent level no longer offers."""

    options = segment_options(items, segment.model_copy(update={"brand": WILDCARD, "sku": WILDCARD}))
    brand = segment.brand if segment.brand == WILDCARD or segment.brand in options.brands else WILDCARD
    options = segment_options(items, SegmentFilter(category=segment.category, brand=brand))
    sku = segment.sku if segment.sku == WILDCARD or segment.sku in options.skus else WILDCARD
    return SegmentFilter(category=segment.category, brand=brand, sku=sku)
