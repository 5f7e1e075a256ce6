import re

from fastapi.testclient import TestClient

from backoffice.api.variations import HttpVariationTransport
from backoffice.config import settings
from backoffice.main_app import app
from backoffice.variations.errors import ApiError
from backoffice.variations.models import PersistedVariation

client = TestClient(app)
AUTH = (settings.ADMIN_USER, settings.ADMIN_PASS)
DEFAULTS = {"buying_price": 300, "selling_price": 450, "discount": 20}


def _matrix(**body):
    return client.post("/api/variations/matrix", json=body, auth=AUTH)


def test_home():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_requires_admin_credentials():
    response = client.post("/api/variations/sku", json={"parts": ["tee"]})
    assert response.status_code == 401
    response = client.post("/api/variations/sku", json={"parts": ["tee"]}, auth=("admin", "wrong-password-x"))
    assert response.status_code == 401


def test_matrix_for_two_colors_and_two_sizes():
    response = _matrix(selected_color_ids=[1, 2], selected_values=["S", "M"], defaults=DEFAULTS)
    assert response.status_code == 200
    data = response.json()
    assert [r["key"] for r in data["rows"]] == ["1__S", "1__M", "2__S", "2__M"]
    assert data["groups"] == [{"color_id": 1, "keys": ["1__S", "1__M"]}, {"color_id": 2, "keys": ["2__S", "2__M"]}]
    assert data["validation_error"] is None
    assert data["summary"]["variant_count"] == 4
    assert len(data["variations"]) == 4


def test_matrix_keeps_edited_rows_across_selection_change():
    rows = _matrix(selected_color_ids=[1, 2], selected_values=[10, 11], defaults=DEFAULTS).json()["rows"]
    rows = client.post("/api/variations/matrix/update", json={"rows": rows, "key": "1__10", "patch": {"stock": 5}},
                       auth=AUTH).json()["rows"]

    data = _matrix(selected_color_ids=[1, 2, 3], selected_values=[10, 11], previous_rows=rows, defaults=DEFAULTS).json()

    by_key = {r["key"]: r for r in data["rows"]}
    assert len(by_key) == 6
    assert by_key["1__10"]["stock"] == 5
    assert by_key["3__10"]["stock"] == 0
    assert data["summary"]["total_stock"] == 5
    assert data["unchanged"] is False


def test_matrix_reports_unchanged_selection():
    rows = _matrix(selected_color_ids=[1], selected_values=[10], defaults=DEFAULTS).json()["rows"]
    data = _matrix(selected_color_ids=[1], selected_values=[10], previous_rows=rows, defaults=DEFAULTS).json()
    assert data["unchanged"] is True


def test_matrix_attribute_switch_drops_foreign_values():
    data = _matrix(selected_color_ids=[1], selected_values=[10, 11, 20], defaults=DEFAULTS,
                   attribute_id=2, attribute_domain=[20, 21]).json()
    assert data["selected_values"] == [20]
    assert [r["key"] for r in data["rows"]] == ["1__20"]


def test_matrix_validation_message():
    data = _matrix(selected_color_ids=[1], selected_values=[10]).json()
    assert data["validation_error"] == "Selling price must be greater than 0 for all active variations."


def test_matrix_update_rejects_unknown_field():
    rows = _matrix(selected_color_ids=[1], selected_values=[10], defaults=DEFAULTS).json()["rows"]
    response = client.post("/api/variations/matrix/update",
                           json={"rows": rows, "key": "1__10", "patch": {"color_id": 4}}, auth=AUTH)
    assert response.status_code == 422


def test_matrix_disable():
    rows = _matrix(selected_color_ids=[1], selected_values=[10, 11], defaults=DEFAULTS).json()["rows"]
    data = client.post("/api/variations/matrix/disable", json={"rows": rows, "key": "1__11"}, auth=AUTH).json()
    assert [r["active"] for r in data["rows"]] == [True, False]


def test_sku_and_slug():
    sku = client.post("/api/variations/sku", json={"parts": ["Acme", "basic tee"]}, auth=AUTH).json()["sku"]
    assert re.match(r"^ACME-BASIC-TEE-\d{4}$", sku)
    slug = client.get("/api/variations/slug", params={"text": "Basic Tee!"}, auth=AUTH).json()["slug"]
    assert slug == "basic-tee"


def test_summary():
    rows = [{"stock": 5, "selling_price": 450, "discount": 20}, {"stock": -2, "selling_price": 300, "discount": 0}]
    data = client.post("/api/variations/summary", json={"rows": rows, "low_stock_threshold": 4}, auth=AUTH).json()
    assert data["total_stock"] == 5
    assert data["min_selling_price"] == 300
    assert data["max_discount"] == 20
    assert data["low_stock"] is False


def test_product_summary_reads_backend(monkeypatch):
    async def fake_fetch(self, product_id):
        return [PersistedVariation(id=1, product_id=product_id, stock=3, selling_price=99)]

    monkeypatch.setattr(HttpVariationTransport, "fetch_variations", fake_fetch)
    data = client.get("/api/variations/products/9/summary", auth=AUTH).json()
    assert data["product_id"] == 9
    assert data["summary"]["total_stock"] == 3
    assert data["variations"][0]["id"] == 1


def test_product_summary_backend_error_maps_to_502(monkeypatch):
    async def fake_fetch(self, product_id):
        raise ApiError(status_code=404, body={"error": "Product not found"})

    monkeypatch.setattr(HttpVariationTransport, "fetch_variations", fake_fetch)
    response = client.get("/api/variations/products/9/summary", auth=AUTH)
    assert response.status_code == 502
    assert response.json() == {"detail": "Product not found", "upstream_status": 404, "kind": "api"}


def test_matrix_keys_stay_unique_for_mixed_value_forms():
    data = _matrix(selected_color_ids=[1], selected_values=[1, "1", 2], defaults=DEFAULTS).json()
    keys = [r["key"] for r in data["rows"]]
    assert keys == ["1__1", "1__2"]
    assert data["selected_values"] == [1, 2]


def test_sku_without_parts_still_matches_format():
    sku = client.post("/api/variations/sku", json={}, auth=AUTH).json()["sku"]
    assert re.match(r"^ITEM-\d{4}$", sku)
