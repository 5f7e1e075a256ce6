# backoffice/variations/selection.py
# --------------------------------------------------------------------------------------
# Ordered, duplicate-free selections that drive the variation matrix.
# Order is selection order (not sort order): the matrix groups rows by color in the
# order colors were picked.
# --------------------------------------------------------------------------------------
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from backoffice.variations.models import ColorOption, Value, value_token

logger = logging.getLogger("uvicorn.error")


class SelectionStore:
    """
    Holds `selected_color_ids` and `selected_values` for the active attribute.

    Every mutator returns True when the selection actually changed, so the caller
    knows when to run `reconcile_matrix` again.
    """

    def __init__(self, color_ids: Iterable[int] = (), values: Iterable[Value] = (),
                 attribute_id: Optional[int] = None):
        self._colors: List[int] = []
        self._values: List[Value] = []
        self.attribute_id = attribute_id
        for c in color_ids:
            self.add_color(c)
        for v in values:
            self.add_value(v)

    @property
    def selected_color_ids(self) -> List[int]:
        return list(self._colors)

    @property
    def selected_values(self) -> List[Value]:
        return list(self._values)

    # ---- Colors ----

    def add_color(self, color_id: int) -> bool:
        if color_id in self._colors:
            return False
        self._colors.append(color_id)
        return True

    def remove_color(self, color_id: int) -> bool:
        if color_id not in self._colors:
            return False
        self._colors.remove(color_id)
        return True

    def remaining_colors(self, colors: Sequence[ColorOption]) -> List[ColorOption]:
        """Colors still available in the picker (not yet selected)."""
        return [c for c in colors if c.id not in self._colors]

    # ---- Values ----

    # values match on value_token, so 1 and "1" are one selection
    def _index_of(self, value: Value) -> Optional[int]:
        token = value_token(value)
        return next((i for i, v in enumerate(self._values) if value_token(v) == token), None)

    def has_value(self, value: Value) -> bool:
        return self._index_of(value) is not None

    def add_value(self, value: Value) -> bool:
        if self.has_value(value):
            return False
        self._values.append(value)
        return True

    def remove_value(self, value: Value) -> bool:
        i = self._index_of(value)
        if i is None:
            return False
        del self._values[i]
        return True

    def toggle_value(self, value: Value) -> bool:
        if self.has_value(value):
            return self.remove_value(value)
        return self.add_value(value)

    def set_active_attribute(self, attribute_id: int, domain: Iterable[Value]) -> bool:
        """
        Switch the active attribute and keep only values that exist in its domain.
        Dropped values are gone for good; switching back does not restore them.
        """
        allowed = {value_token(d) for d in domain}
        kept = [v for v in self._values if value_token(v) in allowed]
        dropped = len(self._values) - len(kept)
        self.attribute_id = attribute_id
        if dropped:
            logger.info("[VAR] attribute -> %s dropped %d selected value(s)", attribute_id, dropped)
        self._values = kept
        return dropped > 0

    def clear(self) -> bool:
        changed = bool(self._colors or self._values)
        self._colors = []
        self._values = []
        return changed

    def __repr__(self) -> str:
        return f"SelectionStore(colors={self._colors!r}, values={self._values!r}, attribute_id={self.attribute_id!r})"
