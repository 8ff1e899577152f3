from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

import main
from errors import OrderSubmissionError


@pytest.fixture
def client(store, per_unit_product, bundle_product):
    store.create_document("product", per_unit_product)
    store.create_document("product", bundle_product)
    return TestClient(main.app)


def _items(*entries):
    return [{"color": c, "size": s, "quantity": q} for c, s, q in entries]


def test_root(client):
    assert client.get("/").json() == {"message": "Workwear Size Grid Backend"}


def test_unknown_product_is_404(client):
    assert client.get("/api/products/nope").status_code == 404


def test_create_product_keeps_known_positions(client, store, per_unit_product):
    payload = per_unit_product.model_dump(mode="json")
    payload["slug"] = "polo"
    payload["logo"]["allowed_positions"] = ["left-chest", "hood"]
    payload["pricing"]["tiers"] = [
        {"min": 10, "max": 0, "discount_per_unit": "1.00"},
        {"min": 0, "max": 0, "discount_per_unit": "9.00"},
        {"min": 5, "max": 9, "discount_per_unit": "0.50"},
    ]
    res = client.post("/api/products", json=payload)
    assert res.status_code == 201

    saved = client.get("/api/products/polo").json()
    assert saved["logo"]["allowed_positions"] == ["left-chest"]
    assert [t["min"] for t in saved["pricing"]["tiers"]] == [5, 10]

    assert client.post("/api/products", json=payload).status_code == 400


def test_variants_endpoint(client):
    data = client.get("/api/products/hoodie/variants").json()
    assert data["is_single_variant"] is False
    assert data["colors"]["navy"]["swatch_color"] == "#1e3a5f"
    assert data["colors"]["navy"]["is_light"] is False


def test_quote_scenario(client):
    res = client.post("/api/products/hoodie/quote", json={"items": _items(("navy", "s", 6))})
    assert res.status_code == 200
    quote = res.json()
    assert quote["total_quantity"] == 6
    assert Decimal(quote["matched_discount"]) == Decimal("0.50")
    assert Decimal(quote["subtotal"]) == Decimal("72.00")
    assert quote["committable"] is True


def test_quote_with_unknown_variant_is_400(client):
    res = client.post("/api/products/hoodie/quote", json={"items": _items(("red", "s", 1))})
    assert res.status_code == 400
    assert res.json()["error"] == "InvalidSelectionError"


def test_bundle_mismatch_reports_counts(client):
    body = {"customer_name": "Sam", "customer_email": "sam@example.com", "items": _items(("navy", "l", 15))}
    res = client.post("/api/products/bundle-tee/orders", json=body)
    assert res.status_code == 400
    assert res.json()["required"] == 16
    assert res.json()["selected"] == 15


def test_order_lifecycle(client, store):
    body = {
        "customer_name": "Sam",
        "customer_email": "sam@example.com",
        "items": _items(("navy", "s", 6), ("black", "l", 10)),
    }
    res = client.post("/api/products/bundle-tee/orders", json=body)
    assert res.status_code == 201
    order_id = res.json()["id"]
    assert res.json()["grand_total"] == "99.99"

    first = client.post(f"/api/orders/{order_id}/recalculate").json()
    second = client.post(f"/api/orders/{order_id}/recalculate").json()
    assert first == second
    assert Decimal(first["grand_total"]) == Decimal("99.99")

    group_id = res.json()["group_id"]
    removed = client.delete(f"/api/orders/{order_id}/lines/{group_id}")
    assert removed.status_code == 200
    assert removed.json()["removed"] == 2
    assert client.get(f"/api/orders/{order_id}").json()["lines"] == []
    assert client.delete(f"/api/orders/{order_id}/lines/{group_id}").status_code == 404


def test_logo_incomplete_order_routes_back_to_upload(client):
    body = {
        "customer_name": "Sam",
        "customer_email": "sam@example.com",
        "items": _items(("navy", "s", 2)),
        "logo": {"positions": ["left-chest"], "method": "print"},
    }
    res = client.post("/api/products/hoodie/orders", json=body)
    assert res.status_code == 400
    assert res.json()["step"] == "upload"


def test_out_of_stock_at_submission_writes_nothing(client, store, monkeypatch):
    def sold_out(slug, lines):
        raise OrderSubmissionError("Navy S is no longer available")

    monkeypatch.setattr(main, "check_stock", sold_out)
    body = {"customer_name": "Sam", "customer_email": "sam@example.com", "items": _items(("navy", "s", 2))}
    res = client.post("/api/products/hoodie/orders", json=body)
    assert res.status_code == 409
    assert store.collections.get("order") is None


def test_database_failure_is_submission_error(client, store):
    store.fail_inserts = True
    body = {"customer_name": "Sam", "customer_email": "sam@example.com", "items": _items(("navy", "s", 2))}
    res = client.post("/api/products/hoodie/orders", json=body)
    assert res.status_code == 409
    assert res.json()["error"] == "OrderSubmissionError"


def test_recompute_line_endpoint(client):
    entry = {
        "variant_ref": "navy-s", "color_slug": "navy", "size_slug": "s", "quantity": 4, "mode": "product",
        "unit_price_override": "12.50", "group_id": "grp_x", "discount_per_unit": "1.00",
    }
    assert client.post("/api/recompute-line", json=entry).json() == {"unit_price": "11.50"}
    assert client.post("/api/recompute-line", json=entry).json() == {"unit_price": "11.50"}
