# backoffice/variations/edit_state.py
# --------------------------------------------------------------------------------------
# Inline edit state for persisted variation rows.
#
#   VIEWING --begin--> EDITING --save ok--> VIEWING
#                         |----cancel-----> VIEWING
#
# Drafts live in a dict keyed by the persisted row id. Any number of rows can be in
# EDITING at once; nothing here reads one row's draft while touching another's.
# Delete has its own single confirmation slot, independent from editing.
# --------------------------------------------------------------------------------------
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from backoffice.variations.matrix import safe_number
from backoffice.variations.models import PersistedVariation, RowEditDraft

_INT_FIELDS = {"color_id", "variant_id", "stock"}
_FLOAT_FIELDS = {"buying_price", "selling_price", "discount"}


class EditMode(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"


def apply_patch(draft: RowEditDraft, **patch: Any) -> RowEditDraft:
    """New draft with `patch` applied; bad numeric input keeps the old value, negatives clip to 0."""
    unknown = set(patch) - _INT_FIELDS - _FLOAT_FIELDS - {"sku"}
    if unknown:
        raise ValueError(f"Not editable on a variation: {', '.join(sorted(unknown))}")
    changes: Dict[str, Any] = {}
    for field, value in patch.items():
        if field == "sku":
            changes[field] = "" if value is None else str(value)
            continue
        n = max(0.0, safe_number(value, getattr(draft, field)))
        changes[field] = int(n) if field in _INT_FIELDS else n
    return draft.model_copy(update=changes)


class RowEditState:
    def __init__(self) -> None:
        self._drafts: Dict[int, RowEditDraft] = {}
        self._pending_delete: Optional[int] = None

    # ---- Editing ----

    def mode(self, row_id: int) -> EditMode:
        return EditMode.EDITING if row_id in self._drafts else EditMode.VIEWING

    def is_editing(self, row_id: int) -> bool:
        return row_id in self._drafts

    def editing_ids(self) -> List[int]:
        return list(self._drafts)

    def draft(self, row_id: int) -> Optional[RowEditDraft]:
        return self._drafts.get(row_id)

    def begin(self, row: PersistedVariation) -> RowEditDraft:
        """Enter EDITING. Re-entering keeps the unsaved draft instead of reloading server values."""
        existing = self._drafts.get(row.id)
        if existing is not None:
            return existing
        draft = RowEditDraft.from_variation(row)
        self._drafts[row.id] = draft
        return draft

    def update(self, row_id: int, **patch: Any) -> RowEditDraft:
        current = self._drafts.get(row_id)
        if current is None:
            raise KeyError(f"Variation {row_id} is not being edited")
        draft = apply_patch(current, **patch)
        self._drafts[row_id] = draft
        return draft

    def cancel(self, row_id: int) -> bool:
        return self._drafts.pop(row_id, None) is not None

    def complete(self, row_id: int, saved: Optional[RowEditDraft] = None) -> bool:
        """
        Saved: drop the draft, back to VIEWING. With `saved`, the row stays in EDITING
        when its draft was changed after that version was sent.
        """
        current = self._drafts.get(row_id)
        if current is None or (saved is not None and current is not saved):
            return False
        del self._drafts[row_id]
        return True

    def prune(self, live_ids: Iterable[int]) -> List[int]:
        """Forget drafts of rows that no longer exist server-side; returns the dropped ids."""
        live = set(live_ids)
        gone = [rid for rid in self._drafts if rid not in live]
        for rid in gone:
            del self._drafts[rid]
        if self._pending_delete is not None and self._pending_delete not in live:
            self._pending_delete = None
        return gone

    # ---- Delete confirmation ----

    @property
    def pending_delete(self) -> Optional[int]:
        return self._pending_delete

    def request_delete(self, row_id: int) -> None:
        self._pending_delete = row_id

    def clear_delete(self, row_id: Optional[int] = None) -> Optional[int]:
        """Clear the pending delete; with `row_id`, only when that row is still the pending one."""
        if row_id is not None and self._pending_delete != row_id:
            return None
        rid, self._pending_delete = self._pending_delete, None
        return rid
