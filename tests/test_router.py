"""Test the bundles HTTP API with in-memory dependencies."""
import httpx
import pytest
import pytest_asyncio

from api.main import app
from core.database import get_session
from verticals.bundles.cart import InMemoryCart
from verticals.bundles.service import get_cart, get_catalog


@pytest_asyncio.fixture
async def client(session, catalog):
    cart = InMemoryCart()

    async def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_cart] = lambda: cart

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        http.cart = cart
        yield http
    app.dependency_overrides.clear()


def gift_box_payload(**overrides):
    payload = {
        "product_id": 900,
        "title": "Birthday Box",
        "bundle_type": "birthday",
        "shipping_policy": "free",
        "is_enabled": True,
        "pricing": {"mode": "box_plus_products", "box_price": 5000},
        "slots": [
            {
                "id": "candles",
                "title": "Pick your candles",
                "rule": {"categories": [5]},
                "display": {"quantity_min": 1, "quantity_max": 2, "discount_value": "10"},
            },
        ],
    }
    payload.update(overrides)
    return payload


async def create_gift_box(client, **overrides):
    resp = await client.post("/api/bundles/configurations", json=gift_box_payload(**overrides))
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert "X-Request-ID" in resp.headers


@pytest.mark.asyncio
async def test_create_and_read_configuration(client):
    created = await create_gift_box(client)
    assert created["pricing"]["mode"] == "box_plus_products"

    resp = await client.get(f"/api/bundles/configurations/{created['id']}")
    assert resp.status_code == 200
    assert resp.json()["slots"][0]["id"] == "candles"

    resp = await client.get("/api/bundles/products/900/configuration")
    assert resp.json()["id"] == created["id"]


@pytest.mark.asyncio
async def test_unknown_pricing_mode_is_rejected(client):
    payload = gift_box_payload(pricing={"mode": "pay_what_you_want"})
    resp = await client.post("/api/bundles/configurations", json=payload)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_invalid_enabled_configuration_is_conflict(client):
    resp = await client.post("/api/bundles/configurations", json=gift_box_payload(slots=[]))
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "configuration_invalid"


@pytest.mark.asyncio
async def test_replace_and_delete(client):
    created = await create_gift_box(client)
    url = f"/api/bundles/configurations/{created['id']}"

    resp = await client.put(url, json=gift_box_payload(title="Anniversary Box", is_enabled=False))
    assert resp.status_code == 200
    assert resp.json()["title"] == "Anniversary Box"

    resp = await client.get("/api/bundles/products/900/configuration")
    assert resp.status_code == 404

    resp = await client.delete(url)
    assert resp.status_code == 204
    assert (await client.get(url)).status_code == 404


@pytest.mark.asyncio
async def test_list_configurations(client):
    await create_gift_box(client)
    await create_gift_box(client, product_id=901, is_enabled=False)

    resp = await client.get("/api/bundles/configurations", params={"enabled_only": "true"})
    body = resp.json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["product_id"] == 900


@pytest.mark.asyncio
async def test_slots_and_shipping_policy(client):
    created = await create_gift_box(client)
    base = f"/api/bundles/configurations/{created['id']}"

    resp = await client.get(f"{base}/slots")
    assert resp.status_code == 200
    [slot] = resp.json()
    assert slot["status"] == "ok"
    assert [i["id"] for i in slot["items"]] == [102, 101]
    assert slot["default"] is None

    resp = await client.get(f"{base}/shipping-policy")
    assert resp.json()["shipping_policy"] == "free"


@pytest.mark.asyncio
async def test_price_selection(client):
    created = await create_gift_box(client)
    resp = await client.post(
        f"/api/bundles/configurations/{created['id']}/price",
        json={"selections": {"candles": [{"item_id": 101, "quantity": 1}]}},
    )
    assert resp.status_code == 200
    assert resp.json()["total"] == 6800


@pytest.mark.asyncio
async def test_price_selection_violations_are_422(client):
    created = await create_gift_box(client)
    resp = await client.post(
        f"/api/bundles/configurations/{created['id']}/price",
        json={"selections": {"candles": [{"item_id": 104, "quantity": 3}]}},
    )
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["code"] == "validation_violation"
    assert {v["reason"] for v in detail["violations"]} == {"above_maximum", "item_not_eligible"}


@pytest.mark.asyncio
async def test_add_to_cart(client):
    created = await create_gift_box(client)
    resp = await client.post(
        f"/api/bundles/configurations/{created['id']}/cart",
        json={"selections": {"candles": [{"item_id": 102, "quantity": 2}]}},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["breakdown"]["total"] == 6800
    assert client.cart.lines[body["line_id"]]["total_override"] == 6800


@pytest.mark.asyncio
async def test_disabled_bundle_is_not_sellable(client):
    created = await create_gift_box(client, is_enabled=False)
    resp = await client.post(
        f"/api/bundles/configurations/{created['id']}/price",
        json={"selections": {}},
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "configuration_not_found"
