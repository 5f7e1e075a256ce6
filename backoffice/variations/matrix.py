# backoffice/variations/matrix.py
# --------------------------------------------------------------------------------------
# Variation matrix: selected colors × selected attribute values -> ordered draft rows.
#
# reconcile_matrix() is called explicitly after every selection change. Rows are keyed
# by "<color_id>__<value>"; a row whose key is still selected is reused as-is (same
# object, user edits intact), new keys get a default row, and keys that left the
# selection are dropped together with whatever was typed into them.
#
# Output order is (color selection order, value selection order). The table view
# renders one row-span per color and relies on same-color rows being contiguous.
# --------------------------------------------------------------------------------------
from __future__ import annotations

import math
import random
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from backoffice.variations.models import DefaultPricing, MatrixRow, Value, make_key, unique_values
from backoffice.variations.sku import generate_sku, row_sku_parts

_EDITABLE = {"buying_price", "selling_price", "discount", "stock", "sku", "active"}
_NUMERIC = {"buying_price", "selling_price", "discount", "stock"}


def _unique(seq: Iterable[Any]) -> List[Any]:
    return list(dict.fromkeys(seq))


def safe_number(value: Any, fallback: float) -> float:
    """Number from user input, or `fallback` when it does not parse to a finite number."""
    if isinstance(value, bool):
        return fallback
    try:
        n = float(value)
    except (TypeError, ValueError):
        return fallback
    return n if math.isfinite(n) else fallback


def new_row(color_id: int, value: Value, defaults: DefaultPricing,
            sku_parts: Optional[Sequence[str]] = None,
            rng: Optional[random.Random] = None) -> MatrixRow:
    sku = generate_sku(row_sku_parts(sku_parts, color_id, value), rng=rng) if sku_parts is not None else ""
    return MatrixRow(
        key=make_key(color_id, value),
        color_id=color_id,
        variant_id=value,
        buying_price=defaults.buying_price,
        selling_price=defaults.selling_price,
        discount=defaults.discount,
        stock=0,
        sku=sku,
        active=True,
    )


def reconcile_matrix(
    selected_color_ids: Sequence[int],
    selected_values: Sequence[Value],
    previous_rows: Sequence[MatrixRow],
    defaults: Optional[DefaultPricing] = None,
    sku_parts: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
) -> Sequence[MatrixRow]:
    """
    Next matrix for the current selection.

    Returns `previous_rows` itself when the key sequence is unchanged, so callers can
    skip re-rendering with an identity check.
    """
    defaults = defaults or DefaultPricing()
    by_key: Dict[str, MatrixRow] = {r.key: r for r in previous_rows}

    rows: List[MatrixRow] = []
    for color_id in _unique(selected_color_ids):
        for value in unique_values(selected_values):
            existing = by_key.get(make_key(color_id, value))
            rows.append(existing if existing is not None else new_row(color_id, value, defaults, sku_parts, rng))

    if len(rows) == len(previous_rows) and all(a.key == b.key for a, b in zip(rows, previous_rows)):
        return previous_rows
    return rows


def update_row(rows: Sequence[MatrixRow], key: str, **patch: Any) -> List[MatrixRow]:
    """
    Patch one cell. Numeric fields go through safe_number (unparseable input keeps the
    old value) and are clipped at 0. Other rows are carried over untouched.
    """
    unknown = set(patch) - _EDITABLE
    if unknown:
        raise ValueError(f"Not editable on a matrix row: {', '.join(sorted(unknown))}")

    out: List[MatrixRow] = []
    for r in rows:
        if r.key != key:
            out.append(r)
            continue
        changes: Dict[str, Any] = {}
        for field, value in patch.items():
            if field in _NUMERIC:
                n = max(0.0, safe_number(value, getattr(r, field)))
                changes[field] = int(n) if field == "stock" else n
            elif field == "active":
                changes[field] = bool(value)
            else:
                changes[field] = str(value or "").strip()
        out.append(r.model_copy(update=changes))
    return out


def disable_row(rows: Sequence[MatrixRow], key: str) -> List[MatrixRow]:
    """Zero the stock and mark the row inactive. No confirmation step."""
    return update_row(rows, key, stock=0, active=False)


def group_by_color(rows: Sequence[MatrixRow], selected_color_ids: Sequence[int]) -> List[Tuple[int, List[MatrixRow]]]:
    """[(color_id, rows)] in color selection order; colors without rows are skipped."""
    groups: Dict[int, List[MatrixRow]] = {}
    for r in rows:
        groups.setdefault(r.color_id, []).append(r)
    return [(cid, groups[cid]) for cid in _unique(selected_color_ids) if groups.get(cid)]


def validate_matrix(selected_color_ids: Sequence[int], selected_values: Sequence[Value],
                    rows: Sequence[MatrixRow]) -> Optional[str]:
    """First problem that blocks product submission, or None."""
    if not selected_color_ids:
        return "Select at least 1 color."
    if not selected_values:
        return "Select at least 1 variant value."
    if not rows:
        return "Variation matrix is empty."
    active = [r for r in rows if r.active]
    if not active:
        return "At least one active variation is required."
    if any(r.selling_price <= 0 for r in active):
        return "Selling price must be greater than 0 for all active variations."
    return None


def build_variations_payload(rows: Sequence[MatrixRow]) -> List[Dict[str, Any]]:
    """Active rows as the `variations` array of a product create/update request."""
    return [
        {
            "color_id": r.color_id,
            "variant_id": r.variant_id,
            "buying_price": max(0, r.buying_price),
            "selling_price": max(0, r.selling_price),
            "discount": max(0, r.discount),
            "stock": max(0, r.stock),
            "sku": r.sku,
        }
        for r in rows
        if r.active
    ]


# ----------------- TEST SECTION (copy-paste ready) -----------------
if __name__ == "__main__":
    from pprint import pprint

    base = DefaultPricing(buying_price=300, selling_price=450, discount=0)
    m = reconcile_matrix([1, 2], [10, 11], [], base, sku_parts=["ACME", "basic-tee"])
    m = update_row(m, "1__10", stock=5)
    m = reconcile_matrix([1, 2, 3], [10, 11], m, base, sku_parts=["ACME", "basic-tee"])
    pprint([(r.key, r.stock, r.sku) for r in m])
    pprint([(cid, [r.key for r in g]) for cid, g in group_by_color(m, [1, 2, 3])])
