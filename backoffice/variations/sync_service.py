# backoffice/variations/sync_service.py
# --------------------------------------------------------------------------------------
# Create / update / delete of persisted variation rows for one product.
#
# - One explicit user action -> at most one network mutation.
# - Local validation runs first; a ValidationError never reaches the transport.
# - After any successful mutation the product's full variation list is fetched again
#   and replaces the snapshot (no incremental merge). Overlapping mutations are not
#   sequenced: whichever re-fetch completes last is what `rows` shows.
# - Failures are reported once through the notifier and leave drafts, the add form and
#   the snapshot exactly as they were. No retries.
# --------------------------------------------------------------------------------------
from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol

from pydantic import BaseModel

from backoffice.notify import LogNotifier, Notifier
from backoffice.variations.aggregate import summarize
from backoffice.variations.edit_state import RowEditState, apply_patch
from backoffice.variations.errors import (
    ErrorKind,
    ValidationError,
    classify,
    extract_error_message,
)
from backoffice.variations.models import (
    DefaultPricing,
    PersistedVariation,
    RowEditDraft,
    VariationPayload,
    VariationSummary,
)

logger = logging.getLogger("uvicorn.error")

ADD_FAILED = "Failed to add variation"
UPDATE_FAILED = "Failed to update variation"
DELETE_FAILED = "Failed to delete variation"
LOAD_FAILED = "Failed to load variations"


class VariationTransport(Protocol):
    async def create(self, payload: VariationPayload) -> Any: ...
    async def update(self, variation_id: int, payload: VariationPayload) -> Any: ...
    async def delete(self, variation_id: int) -> None: ...
    async def fetch_variations(self, product_id: int) -> List[PersistedVariation]: ...


class OperationResult(BaseModel):
    ok: bool
    kind: Optional[ErrorKind] = None
    message: str = ""
    data: Any = None


def validate_draft(draft: RowEditDraft) -> None:
    if not draft.color_id:
        raise ValidationError("Color required", field="color_id")
    if not draft.variant_id:
        raise ValidationError("Variant required", field="variant_id")
    if draft.selling_price <= 0:
        raise ValidationError("Selling price must be greater than 0", field="selling_price")


class VariationSyncService:
    def __init__(
        self,
        product_id: int,
        transport: Optional[VariationTransport] = None,
        notifier: Optional[Notifier] = None,
        defaults: Optional[DefaultPricing] = None,
        low_stock_threshold: Optional[int] = None,
    ):
        if transport is None:
            from backoffice.api.variations import HttpVariationTransport
            transport = HttpVariationTransport()
        self.product_id = product_id
        self.transport = transport
        self.notifier = notifier or LogNotifier()
        self.defaults = defaults or DefaultPricing()
        self.low_stock_threshold = low_stock_threshold
        self.rows: List[PersistedVariation] = []
        self.edits = RowEditState()
        self.add_form = RowEditDraft.from_defaults(self.defaults)

    # ---- Snapshot ----

    @property
    def summary(self) -> VariationSummary:
        return summarize(self.rows, self.low_stock_threshold)

    def row(self, row_id: int) -> Optional[PersistedVariation]:
        return next((r for r in self.rows if r.id == row_id), None)

    async def refresh(self) -> OperationResult:
        try:
            rows = await self.transport.fetch_variations(self.product_id)
        except Exception as e:
            return self._fail(e, LOAD_FAILED)
        self.rows = list(rows)
        dropped = self.edits.prune(r.id for r in self.rows)
        if dropped:
            logger.info("[VAR] product %s: dropped drafts for vanished rows %s", self.product_id, dropped)
        return OperationResult(ok=True, data=self.rows)

    # ---- Add form ----

    def edit_add_form(self, **patch: Any) -> RowEditDraft:
        self.add_form = apply_patch(self.add_form, **patch)
        return self.add_form

    def reset_add_form(self) -> None:
        self.add_form = RowEditDraft.from_defaults(self.defaults)

    async def add_variation(self) -> OperationResult:
        draft = self.add_form
        try:
            validate_draft(draft)
        except ValidationError as e:
            return self._fail(e, ADD_FAILED)

        payload = VariationPayload.from_draft(self.product_id, draft)
        try:
            data = await self.transport.create(payload)
        except Exception as e:
            return self._fail(e, ADD_FAILED)

        logger.info("[VAR] product %s: created variation color=%s variant=%s",
                    self.product_id, payload.color_id, payload.variant_id)
        self.reset_add_form()
        self.notifier.success("Variation added")
        await self.refresh()
        return OperationResult(ok=True, data=data)

    # ---- Inline edit ----

    def begin_edit(self, row_id: int) -> RowEditDraft:
        row = self.row(row_id)
        if row is None:
            raise KeyError(f"Variation {row_id} is not part of product {self.product_id}")
        return self.edits.begin(row)

    def edit_draft(self, row_id: int, **patch: Any) -> RowEditDraft:
        return self.edits.update(row_id, **patch)

    def cancel_edit(self, row_id: int) -> bool:
        return self.edits.cancel(row_id)

    async def save_row(self, row_id: int) -> OperationResult:
        draft = self.edits.draft(row_id)
        try:
            if draft is None:
                raise ValidationError(f"Variation {row_id} is not being edited")
            validate_draft(draft)
        except ValidationError as e:
            return self._fail(e, UPDATE_FAILED)

        payload = VariationPayload.from_draft(self.product_id, draft)
        try:
            data = await self.transport.update(row_id, payload)
        except Exception as e:
            return self._fail(e, UPDATE_FAILED)

        logger.info("[VAR] product %s: updated variation %s", self.product_id, row_id)
        if not self.edits.complete(row_id, saved=draft):
            logger.info("[VAR] product %s: variation %s edited during save, draft kept", self.product_id, row_id)
        self.notifier.success("Variation updated")
        await self.refresh()
        return OperationResult(ok=True, data=data)

    # ---- Delete (two-step) ----

    def request_delete(self, row_id: int) -> None:
        self.edits.request_delete(row_id)

    def cancel_delete(self) -> None:
        self.edits.clear_delete()

    async def confirm_delete(self) -> OperationResult:
        row_id = self.edits.pending_delete
        if row_id is None:
            return self._fail(ValidationError("No variation selected for deletion"), DELETE_FAILED)

        try:
            await self.transport.delete(row_id)
        except Exception as e:
            return self._fail(e, DELETE_FAILED)

        logger.info("[VAR] product %s: deleted variation %s", self.product_id, row_id)
        self.edits.clear_delete(row_id)
        self.edits.cancel(row_id)
        self.notifier.success("Variation deleted")
        await self.refresh()
        return OperationResult(ok=True, data={"id": row_id})

    # ---- Failure boundary ----

    def _fail(self, err: Exception, fallback: str) -> OperationResult:
        kind = classify(err)
        if kind is ErrorKind.VALIDATION:
            message = err.message  # type: ignore[attr-defined]
        elif kind is ErrorKind.API:
            message = extract_error_message(err, fallback)
            logger.warning("[VAR] product %s: %s (%s)", self.product_id, message, fallback)
        else:
            message = fallback
            logger.error("[VAR] product %s: %s", self.product_id, fallback, exc_info=err)
        self.notifier.error(message)
        return OperationResult(ok=False, kind=kind, message=message)
