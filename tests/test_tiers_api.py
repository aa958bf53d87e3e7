"""
HTTP tests for tier administration and price quotes.
"""
import pytest
from fastapi.testclient import TestClient

from tier_pricing.api.main import app
from tier_pricing.api.state import get_engine, get_tier_service
from tier_pricing.engine import PricingEngine


@pytest.fixture
def client(settings, tier_service):
    engine = PricingEngine(settings, tier_service)
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_tier_service] = lambda: tier_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def post_tier(client, product_id, **payload):
    return client.post(f"/api/products/{product_id}/pricing-tiers", json=payload)


def test_root(client):
    assert client.get("/").json()["status"] == "online"


def test_create_tier(client):
    response = post_tier(client, "COFFEE", min_quantity="10", max_quantity="49", unit_price="8.50")

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["min_quantity"] == 10
    assert body["max_quantity"] == 49
    assert body["unit_price"] == "8.50"
    assert body["label"] == "10-49"
    assert body["active"] is True
    assert "Quantities 1-9 are not covered by any tier and use the base price" in body["warnings"]


def test_create_tier_accepts_dashboard_field_names(client):
    response = post_tier(client, "COFFEE", minQuantity="50", maxQuantity="", price="7.00")

    assert response.status_code == 201, response.text
    assert response.json()["max_quantity"] is None
    assert response.json()["label"] == "50+"


def test_overlap_is_a_conflict(client):
    post_tier(client, "COFFEE", min_quantity=10, max_quantity=50, unit_price="9.99")

    response = post_tier(client, "COFFEE", min_quantity=40, max_quantity=60, unit_price="9.00")

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "OVERLAPPING_RANGE"
    assert "overlaps existing tier 10-50" in detail["message"]


@pytest.mark.parametrize("payload, expected_error", [
    ({"min_quantity": 0, "unit_price": "1.00"}, "INVALID_BOUND"),
    ({"min_quantity": 10, "max_quantity": 5, "unit_price": "1.00"}, "INVALID_BOUND"),
    ({"min_quantity": 10, "unit_price": "-2"}, "INVALID_PRICE"),
    ({"min_quantity": 10, "unit_price": "free"}, "INVALID_PRICE"),
    ({"max_quantity": 10, "unit_price": "1.00"}, "MISSING_REQUIRED_FIELD"),
    ({"min_quantity": 10}, "MISSING_REQUIRED_FIELD"),
])
def test_invalid_tiers_are_bad_requests(client, payload, expected_error):
    response = post_tier(client, "COFFEE", **payload)

    assert response.status_code == 400, response.text
    assert response.json()["detail"]["error"] == expected_error


def test_unknown_product(client):
    assert post_tier(client, "NOPE", min_quantity=1, unit_price="1").status_code == 404
    assert client.get("/api/products/NOPE/pricing-tiers").status_code == 404


def test_list_tiers_sorted(client):
    post_tier(client, "COFFEE", min_quantity=50, unit_price="7.00")
    post_tier(client, "COFFEE", min_quantity=1, max_quantity=9, unit_price="10.00")

    tiers = client.get("/api/products/COFFEE/pricing-tiers").json()

    assert [t["label"] for t in tiers] == ["1-9", "50+"]


def test_validate_does_not_save(client):
    response = client.post(
        "/api/products/COFFEE/pricing-tiers/validate",
        json={"min_quantity": 10, "max_quantity": 10, "unit_price": "1"},
    )

    assert response.status_code == 200
    assert response.json()["valid"] is False
    assert response.json()["error"] == "INVALID_BOUND"

    ok = client.post(
        "/api/products/COFFEE/pricing-tiers/validate",
        json={"min_quantity": 1, "max_quantity": 10, "unit_price": "1"},
    )
    assert ok.json()["valid"] is True
    assert client.get("/api/products/COFFEE/pricing-tiers").json() == []


def test_replace_and_delete(client):
    created = post_tier(client, "COFFEE", min_quantity=10, max_quantity=49, unit_price="8.50").json()

    replaced = client.put(
        f"/api/products/COFFEE/pricing-tiers/{created['tier_id']}",
        json={"min_quantity": 10, "max_quantity": 99, "unit_price": "8.00"},
    )
    assert replaced.status_code == 200, replaced.text
    new_id = replaced.json()["tier_id"]

    assert client.delete(f"/api/products/COFFEE/pricing-tiers/{created['tier_id']}").status_code == 404
    assert client.delete(f"/api/products/COFFEE/pricing-tiers/{new_id}").status_code == 200
    assert client.get("/api/products/COFFEE/pricing-tiers").json() == []


def test_toggle_active(client):
    created = post_tier(client, "COFFEE", min_quantity=10, max_quantity=49, unit_price="8.50").json()
    url = f"/api/products/COFFEE/pricing-tiers/{created['tier_id']}/active"

    assert client.patch(url, json={"active": False}).json()["active"] is False
    post_tier(client, "COFFEE", min_quantity=20, max_quantity=30, unit_price="8.00")

    response = client.patch(url, json={"active": True})
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "OVERLAPPING_RANGE"


def test_price_endpoint(client):
    post_tier(client, "COFFEE", min_quantity=10, max_quantity=49, unit_price="8.50")

    tiered = client.get("/products/COFFEE/price", params={"quantity": 10}).json()
    assert tiered["unit_price"] == "8.50"
    assert tiered["total"] == "85.00"
    assert tiered["source"] == "Tier"

    base = client.get("/products/COFFEE/price", params={"quantity": 9}).json()
    assert base["unit_price"] == "12.00"
    assert base["source"] == "Base"

    assert client.get("/products/COFFEE/price", params={"quantity": 0}).status_code == 422
    assert client.get("/products/NOPE/price", params={"quantity": 1}).status_code == 404


def test_calculate(client):
    post_tier(client, "COFFEE", min_quantity=10, max_quantity=49, unit_price="8.50")

    response = client.post("/calculate", json={"items": {"COFFEE": 10, "TEA": 2}})

    assert response.status_code == 200, response.text
    assert response.json()["total"] == "98.00"

    bad = client.post("/calculate", json={"items": {"COFFEE": 0}})
    assert bad.status_code == 400


def test_stats_and_status(client):
    post_tier(client, "COFFEE", min_quantity=10, unit_price="8.50")

    stats = client.get("/api/pricing-tiers/stats").json()
    assert stats["total"] == 1
    assert stats["unbounded"] == 1

    status = client.get("/system/status").json()
    assert status["products_loaded"] == 3
    assert status["tiers_active"] == 1


@pytest.mark.parametrize("payload, expected_error", [
    ({"min_quantity": True, "unit_price": "1"}, "INVALID_BOUND"),
    ({"min_quantity": 10, "max_quantity": False, "unit_price": "1"}, "INVALID_BOUND"),
    ({"min_quantity": 10, "unit_price": True}, "INVALID_PRICE"),
])
def test_json_booleans_are_not_numbers(client, payload, expected_error):
    response = post_tier(client, "COFFEE", **payload)

    assert response.status_code == 400, response.text
    assert response.json()["detail"]["error"] == expected_error
    assert client.get("/api/products/COFFEE/pricing-tiers").json() == []


def test_delete_requires_known_product(client, tier_service):
    response = client.delete("/api/products/NOPE/pricing-tiers/anything")

    assert response.status_code == 404
    assert "NOPE" not in tier_service._locks


def test_dotted_product_id_over_http(client, settings, tier_service):
    with open(settings.products_csv, "a", encoding="utf-8") as f:
        f.write("SKU.1,Dotted Sku,5.00,USD,1,,true\n")
    engine = PricingEngine(settings, tier_service)
    app.dependency_overrides[get_engine] = lambda: engine

    created = post_tier(client, "SKU.1", min_quantity=10, unit_price="4.00")
    assert created.status_code == 201, created.text

    price = client.get("/products/SKU.1/price", params={"quantity": 10})
    assert price.status_code == 200, price.text
    assert price.json()["unit_price"] == "4.00"

    quote = client.post("/calculate", json={"items": {"SKU.1": 1, "COFFEE": 1}})
    assert quote.status_code == 200, quote.text
    assert quote.json()["total"] == "17.00"
