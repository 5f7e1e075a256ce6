#==========================================================================================
# backoffice/api/variations.py
# Product variation endpoints of the back-office API.
# Functions to create / update / delete a variation and to (re)load a product's rows.
#==========================================================================================
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from backoffice.api.client import api_delete, api_get, api_post, api_put
from backoffice.variations.models import PersistedVariation, VariationPayload

logger = logging.getLogger("uvicorn.error")


def unwrap_variations(payload: Any) -> List[Dict[str, Any]]:
    """Accepts {variations:[...]} | {product:{variations:[...]}} | [...]."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        if isinstance(payload.get("variations"), list):
            return payload["variations"]
        product = payload.get("product")
        if isinstance(product, dict) and isinstance(product.get("variations"), list):
            return product["variations"]
    return []


def unwrap_product(payload: Any) -> Dict[str, Any]:
    """GET /product/:id answers {success, product:{...}} or the bare product."""
    if isinstance(payload, dict) and isinstance(payload.get("product"), dict):
        return payload["product"]
    return payload if isinstance(payload, dict) else {}


def to_variations(raw: List[Dict[str, Any]], product_id: Optional[int] = None) -> List[PersistedVariation]:
    out = []
    for r in raw:
        if not isinstance(r, dict) or r.get("id") is None:
            continue
        v = PersistedVariation.model_validate(r)
        if v.product_id is None and product_id is not None:
            v.product_id = product_id
        out.append(v)
    return out


# ---- Mutations ----

async def create_product_variation(payload: VariationPayload, client: Optional[httpx.AsyncClient] = None) -> Any:
    """POST /product/variation -> {success, skuId}"""
    return await api_post("/product/variation", payload.model_dump(), client=client)


async def update_product_variation(variation_id: int, payload: VariationPayload,
                                   client: Optional[httpx.AsyncClient] = None) -> Any:
    """PUT /product/variation/:id (full replace of the business fields)."""
    return await api_put(f"/product/variation/{variation_id}", payload.model_dump(), client=client)


async def delete_product_variation(variation_id: int, client: Optional[httpx.AsyncClient] = None) -> None:
    await api_delete(f"/product/variation/{variation_id}", client=client)


# ---- Reads ----

async def get_product(product_id: int, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    return unwrap_product(await api_get(f"/product/{product_id}", client=client))


async def get_product_variations(product_id: int, limit: int = 500, offset: int = 0,
                                 client: Optional[httpx.AsyncClient] = None) -> List[PersistedVariation]:
    data = await api_get(f"/product/getvariations/{product_id}",
                         params={"limit": limit, "offset": offset}, client=client)
    return to_variations(unwrap_variations(data), product_id)


async def get_product_variation(variation_id: int, client: Optional[httpx.AsyncClient] = None) -> PersistedVariation:
    return PersistedVariation.model_validate(await api_get(f"/product/variation/{variation_id}", client=client))


class HttpVariationTransport:
    """Variation transport backed by the REST API; the parent product is the source of truth."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client

    async def create(self, payload: VariationPayload) -> Any:
        return await create_product_variation(payload, client=self.client)

    async def update(self, variation_id: int, payload: VariationPayload) -> Any:
        return await update_product_variation(variation_id, payload, client=self.client)

    async def delete(self, variation_id: int) -> None:
        await delete_product_variation(variation_id, client=self.client)

    async def fetch_variations(self, product_id: int) -> List[PersistedVariation]:
        product = await get_product(product_id, client=self.client)
        rows = to_variations(unwrap_variations(product), product_id)
        logger.info("[API] product %s -> %d variation(s)", product_id, len(rows))
        return rows
