#=======================================================================================
# backoffice/routes.py
# FastAPI routes for the variation matrix engine.
#
# ✅ Pure engine operations (matrix, row edits, SKU, summary) under /api/variations/*
# ✅ Read-through of backend data (product summary, lookups) under the same prefix
#
# IMPORTANT: In main_app.py, include with NO extra prefix to avoid /api/api duplication:
#   from backoffice.routes import router as variations_router
#   app.include_router(variations_router)
#=======================================================================================

import logging
from typing import Any, Dict, List, Optional

import requests
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from backoffice.api.lookups import load_lookups
from backoffice.api.variations import HttpVariationTransport
from backoffice.variations.aggregate import summarize
from backoffice.variations.matrix import (
    build_variations_payload,
    disable_row,
    group_by_color,
    reconcile_matrix,
    update_row,
    validate_matrix,
)
from backoffice.variations.models import DefaultPricing, MatrixRow, Value
from backoffice.variations.selection import SelectionStore
from backoffice.variations.sku import generate_sku, slugify

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/variations", tags=["Variation Matrix"])


# ---------------------------
# Request bodies
# ---------------------------
class MatrixRequest(BaseModel):
    selected_color_ids: List[int] = Field(default_factory=list)
    selected_values: List[Value] = Field(default_factory=list)
    previous_rows: List[MatrixRow] = Field(default_factory=list)
    defaults: DefaultPricing = Field(default_factory=DefaultPricing)
    sku_parts: Optional[List[str]] = None
    # switching attribute: values outside this domain are dropped from the selection
    attribute_id: Optional[int] = None
    attribute_domain: Optional[List[Value]] = None


class RowPatchRequest(BaseModel):
    rows: List[MatrixRow]
    key: str
    patch: Dict[str, Any] = Field(default_factory=dict)


class RowKeyRequest(BaseModel):
    rows: List[MatrixRow]
    key: str


class SkuRequest(BaseModel):
    parts: List[str] = Field(default_factory=list)


class SummaryRequest(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    low_stock_threshold: Optional[int] = None


# ---------------------------
# Helpers
# ---------------------------
def _matrix_response(store: SelectionStore, rows, unchanged: bool) -> Dict[str, Any]:
    return {
        "selected_color_ids": store.selected_color_ids,
        "selected_values": store.selected_values,
        "unchanged": unchanged,
        "rows": [r.model_dump() for r in rows],
        "groups": [{"color_id": cid, "keys": [r.key for r in g]} for cid, g in group_by_color(rows, store.selected_color_ids)],
        "summary": summarize(rows).model_dump(),
        "validation_error": validate_matrix(store.selected_color_ids, store.selected_values, rows),
        "variations": build_variations_payload(rows),
    }


# ---------------------------
# Matrix
# ---------------------------
@router.post("/matrix")
async def post_matrix(body: MatrixRequest):
    """Reconcile the draft matrix for the given selection against the previous rows."""
    store = SelectionStore(body.selected_color_ids, body.selected_values)
    if body.attribute_id is not None and body.attribute_domain is not None:
        store.set_active_attribute(body.attribute_id, body.attribute_domain)
    rows = reconcile_matrix(
        store.selected_color_ids,
        store.selected_values,
        body.previous_rows,
        body.defaults,
        sku_parts=body.sku_parts,
    )
    return _matrix_response(store, rows, unchanged=rows is body.previous_rows)


@router.post("/matrix/update")
async def post_matrix_update(body: RowPatchRequest):
    try:
        rows = update_row(body.rows, body.key, **body.patch)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"rows": [r.model_dump() for r in rows], "summary": summarize(rows).model_dump()}


@router.post("/matrix/disable")
async def post_matrix_disable(body: RowKeyRequest):
    rows = disable_row(body.rows, body.key)
    return {"rows": [r.model_dump() for r in rows], "summary": summarize(rows).model_dump()}


# ---------------------------
# SKU / summary
# ---------------------------
@router.post("/sku")
async def post_sku(body: SkuRequest):
    return {"sku": generate_sku(body.parts)}


@router.get("/slug")
async def get_slug(text: str = ""):
    return {"slug": slugify(text)}


@router.post("/summary")
async def post_summary(body: SummaryRequest):
    return summarize(body.rows, body.low_stock_threshold).model_dump()


# ---------------------------
# Backend read-through
# ---------------------------
@router.get("/products/{product_id}/summary")
async def get_product_summary(product_id: int):
    rows = await HttpVariationTransport().fetch_variations(product_id)
    return {
        "product_id": product_id,
        "summary": summarize(rows).model_dump(),
        "variations": [r.model_dump() for r in rows],
    }


@router.get("/lookups")
def get_lookups(refresh: bool = False):
    try:
        return load_lookups(refresh=refresh).as_dict()
    except requests.RequestException as e:
        logger.error("[LOOKUP] load failed: %s", e)
        raise HTTPException(status_code=502, detail=f"Lookup load failed: {e}")
