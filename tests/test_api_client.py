import asyncio
import json

import httpx
import pytest

from backoffice.api import client as api_client
from backoffice.api.variations import (
    HttpVariationTransport,
    create_product_variation,
    delete_product_variation,
    get_product_variation,
    get_product_variations,
    unwrap_variations,
    update_product_variation,
)
from backoffice.config import settings
from backoffice.variations.errors import ApiError, extract_error_message
from backoffice.variations.models import VariationPayload
from backoffice.variations.sync_service import VariationSyncService

PAYLOAD = VariationPayload(product_id=9, color_id=2, variant_id=5, buying_price=300,
                           selling_price=450, discount=0, stock=3, sku="TEE-C2-V5-1234")


def _call(handler, fn, *args, **kwargs):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as c:
            return await fn(*args, client=c, **kwargs)
    return asyncio.run(go())


def _recorder(response):
    seen = []

    def handler(request):
        seen.append(request)
        return response
    return seen, handler


def test_create_posts_full_payload():
    seen, handler = _recorder(httpx.Response(201, json={"success": True, "skuId": 12}))
    data = _call(handler, create_product_variation, PAYLOAD)

    assert data == {"success": True, "skuId": 12}
    req = seen[0]
    assert req.method == "POST"
    assert req.url.path.endswith("/product/variation")
    assert json.loads(req.content) == PAYLOAD.model_dump()


def test_update_puts_to_variation_id():
    seen, handler = _recorder(httpx.Response(200, json={"success": True}))
    _call(handler, update_product_variation, 5, PAYLOAD)
    assert seen[0].method == "PUT"
    assert seen[0].url.path.endswith("/product/variation/5")


def test_delete_sends_no_body():
    seen, handler = _recorder(httpx.Response(204))
    assert _call(handler, delete_product_variation, 7) is None
    assert seen[0].method == "DELETE"
    assert seen[0].url.path.endswith("/product/variation/7")
    assert seen[0].content == b""


def test_bearer_token_header(monkeypatch):
    monkeypatch.setattr(settings, "BACKOFFICE_API_TOKEN", "tok-123")
    seen, handler = _recorder(httpx.Response(200, json={}))
    _call(handler, delete_product_variation, 1)
    assert seen[0].headers["Authorization"] == "Bearer tok-123"


def test_error_status_raises_api_error_with_body():
    _, handler = _recorder(httpx.Response(409, json={"success": False, "message": "SKU already exists"}))
    with pytest.raises(ApiError) as exc:
        _call(handler, create_product_variation, PAYLOAD)
    assert exc.value.status_code == 409
    assert exc.value.method == "POST"
    assert extract_error_message(exc.value, "Failed to add variation") == "SKU already exists"


def test_html_error_page_is_summarized():
    html = "<html><head><title>504 Gateway Time-out</title></head><body>" + "." * 400 + "</body></html>"
    _, handler = _recorder(httpx.Response(504, text=html))
    with pytest.raises(ApiError) as exc:
        _call(handler, update_product_variation, 5, PAYLOAD)
    assert extract_error_message(exc.value).startswith("504 Gateway Time-out")


def test_transport_error_becomes_api_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ApiError) as exc:
        _call(handler, delete_product_variation, 7)
    assert exc.value.status_code is None
    assert "connection refused" in extract_error_message(exc.value)


def test_url_joins_base_and_path():
    assert api_client._url("product/1") == f"{settings.BACKOFFICE_API_URL}/product/1"
    assert api_client._url("https://other.host/x") == "https://other.host/x"


def test_unwrap_variations_shapes():
    rows = [{"id": 1}]
    assert unwrap_variations(rows) == rows
    assert unwrap_variations({"variations": rows}) == rows
    assert unwrap_variations({"product": {"variations": rows}}) == rows
    assert unwrap_variations({"success": True}) == []


def test_get_product_variations_fills_product_id_and_skips_rows_without_id():
    body = {"variations": [{"id": 1, "color_id": 2, "variant_id": 5, "stock": 4}, {"color_id": 3}]}
    seen, handler = _recorder(httpx.Response(200, json=body))
    rows = _call(handler, get_product_variations, 9, limit=50)

    assert [r.id for r in rows] == [1]
    assert rows[0].product_id == 9
    assert seen[0].url.params["limit"] == "50"
    assert seen[0].url.path.endswith("/product/getvariations/9")


def test_get_single_variation():
    seen, handler = _recorder(httpx.Response(200, json={"id": 7, "color_id": 1, "variant_id": 5, "stock": "2"}))
    row = _call(handler, get_product_variation, 7)
    assert seen[0].url.path.endswith("/product/variation/7")
    assert row.id == 7
    assert row.stock == 2


def test_transport_reads_nested_product_variations():
    body = {"success": True, "product": {"id": 9, "variations": [
        {"id": 1, "color": {"id": 2, "name": "Red"}, "variant": {"id": 5, "name": "M"},
         "selling_price": "450.00", "stock": 3, "sku": None},
    ]}}
    _, handler = _recorder(httpx.Response(200, json=body))

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as c:
            return await HttpVariationTransport(c).fetch_variations(9)

    rows = asyncio.run(go())
    assert rows[0].color_id == 2
    assert rows[0].variant_id == 5
    assert rows[0].product_id == 9
    assert rows[0].selling_price == 450
    assert rows[0].sku == ""


def test_service_over_http_deletes_then_refetches():
    store = {6: {"id": 6, "color_id": 1, "variant_id": 5, "selling_price": 100},
             7: {"id": 7, "color_id": 1, "variant_id": 6, "selling_price": 100}}
    log = []

    def handler(request):
        log.append((request.method, request.url.path.rsplit("/api/v1", 1)[-1]))
        if request.method == "DELETE":
            store.pop(int(request.url.path.rsplit("/", 1)[-1]))
            return httpx.Response(200, json={"success": True})
        return httpx.Response(200, json={"success": True, "product": {"id": 9, "variations": list(store.values())}})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as c:
            svc = VariationSyncService(9, transport=HttpVariationTransport(c))
            await svc.refresh()
            svc.request_delete(7)
            result = await svc.confirm_delete()
            return svc, result

    svc, result = asyncio.run(go())

    assert result.ok is True
    assert [m for m, _ in log] == ["GET", "DELETE", "GET"]
    assert log[1][1].endswith("/product/variation/7")
    assert [r.id for r in svc.rows] == [6]
