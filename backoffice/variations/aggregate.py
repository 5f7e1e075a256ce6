# backoffice/variations/aggregate.py
from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence

from backoffice.config import settings
from backoffice.variations.models import VariationSummary


def _num(row: Any, field: str) -> float:
    """Field from a model or a plain dict; missing/None/garbage counts as 0."""
    v = row.get(field) if isinstance(row, dict) else getattr(row, field, None)
    try:
        return float(v if v is not None else 0)
    except (TypeError, ValueError):
        return 0.0


def _sku(row: Any) -> str:
    v = row.get("sku") if isinstance(row, dict) else getattr(row, "sku", None)
    return str(v) if v else ""


def sum_stock(rows: Iterable[Any]) -> int:
    return int(sum(max(0.0, _num(r, "stock")) for r in rows))


def min_selling(rows: Sequence[Any]) -> float:
    if not rows:
        return 0
    return min(_num(r, "selling_price") for r in rows)


def max_discount(rows: Sequence[Any]) -> float:
    if not rows:
        return 0
    return max(_num(r, "discount") for r in rows)


def first_sku(rows: Sequence[Any]) -> str:
    return (_sku(rows[0]) if rows else "") or "-"


def is_low_stock(total_stock: int, threshold: Optional[int] = None) -> bool:
    limit = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    return total_stock <= limit


def summarize(rows: Iterable[Any], threshold: Optional[int] = None) -> VariationSummary:
    """
    Summary metrics for one product's rows (draft matrix rows, persisted variations
    or raw dicts from the API). Recomputed from scratch on every call.
    """
    rows = list(rows or [])
    total = sum_stock(rows)
    price = min_selling(rows)
    discount = max_discount(rows)
    in_stock = sum(1 for r in rows if _num(r, "stock") > 0)
    return VariationSummary(
        total_stock=total,
        min_selling_price=price,
        max_discount=discount,
        low_stock=is_low_stock(total, threshold),
        variant_count=len(rows),
        sale_price=max(0, price - max(0, discount)),
        first_sku=first_sku(rows),
        in_stock_count=in_stock,
        out_of_stock_count=len(rows) - in_stock,
    )


def low_stock_count(products: Iterable[Any], threshold: Optional[int] = None) -> int:
    """How many products (each with a `variations` list) are at or below the threshold."""
    count = 0
    for p in products or []:
        variations: List[Any] = (p.get("variations") if isinstance(p, dict) else getattr(p, "variations", None)) or []
        if is_low_stock(sum_stock(variations), threshold):
            count += 1
    return count
