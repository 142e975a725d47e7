"""Tests for the public and admin HTTP endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from storefront.main import app
from storefront.stores.postgres import Database

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
CUSTOMER = {"X-User-Id": "user-7", "X-User-Role": "customer"}

TEE = {
    "name": "Red T-Shirt!!",
    "base_price": 100.0,
    "sku_prefix": "TEE",
    "brand": "Northwind",
    "variants": [
        {"color": "red", "size": "S", "stock": 5},
        {"color": "red", "size": "M", "stock": 0},
    ],
}


@pytest.fixture
async def client(db: Database):
    """Test client bound to the per-test database."""
    app.state.db = db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.state.db = None


async def _create(client: AsyncClient, body: dict = TEE) -> dict:
    response = await client.post("/v1/admin/products", json=body, headers=ADMIN)
    assert response.status_code == 201, response.text
    return response.json()["product"]


@pytest.mark.asyncio
async def test_admin_requires_principal(client: AsyncClient):
    response = await client.post("/v1/admin/products", json=TEE)
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_admin_requires_admin_role(client: AsyncClient):
    response = await client.post("/v1/admin/products", json=TEE, headers=CUSTOMER)
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_create_and_get_product(client: AsyncClient):
    created = await _create(client)
    assert created["slug"] == "red-t-shirt"
    assert created["available_stock"] == 5

    response = await client.get(f"/v1/products/{created['id']}")
    assert response.status_code == 200
    product = response.json()["product"]
    assert [v["sku"] for v in product["variants"]] == ["TEE-RED-S", "TEE-RED-M"]
    assert product["available_colors"] == ["red"]
    assert product["price_range"] == {"min": 100.0, "max": 100.0}
    assert product["is_in_stock"] is True

    by_slug = await client.get("/v1/products/slug/red-t-shirt")
    assert by_slug.json()["product"]["id"] == created["id"]


@pytest.mark.asyncio
async def test_duplicate_slug_is_conflict(client: AsyncClient):
    await _create(client)
    response = await client.post("/v1/admin/products", json={**TEE, "sku_prefix": "TEE2"}, headers=ADMIN)
    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_SLUG"


@pytest.mark.asyncio
async def test_invalid_body_is_validation_error(client: AsyncClient):
    response = await client.post(
        "/v1/admin/products",
        json={**TEE, "base_price": -1},
        headers=ADMIN,
    )
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert "base_price" in body["detail"]


@pytest.mark.asyncio
async def test_missing_product_is_not_found(client: AsyncClient):
    response = await client.get("/v1/products/999")
    assert response.status_code == 404
    assert response.json()["code"] == "PRODUCT_NOT_FOUND"


@pytest.mark.asyncio
async def test_listing_shape(client: AsyncClient):
    await _create(client)
    response = await client.get("/v1/products", params={"color": "red", "inStock": "true", "limit": 10})
    assert response.status_code == 200
    data = response.json()
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 1, "total_pages": 1}
    assert data["filters"]["brands"] == ["Northwind"]
    assert len(data["products"]) == 1


@pytest.mark.asyncio
async def test_search_requires_query(client: AsyncClient):
    response = await client.get("/v1/products/search")
    assert response.status_code == 422

    await _create(client)
    response = await client.get("/v1/products/search", params={"q": "shirt"})
    assert response.json()["query"] == "shirt"
    assert response.json()["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_availability_and_options(client: AsyncClient):
    created = await _create(client)

    response = await client.get(f"/v1/products/{created['id']}/availability", params={"color": "red", "size": "M"})
    assert response.json()["available"] is False
    assert response.json()["stock"] == 0

    response = await client.get(f"/v1/products/{created['id']}/options")
    options = response.json()["options"]
    assert options["colors"] == [{"color": "red", "available_sizes": ["S"], "stock": 5}]

    response = await client.get(f"/v1/products/{created['id']}/colors/red/sizes")
    assert response.json() == [{"value": "S", "stock": 5, "price": 100.0}]


@pytest.mark.asyncio
async def test_stock_operations(client: AsyncClient):
    created = await _create(client)
    variant_id = created["variants"][0]["id"]
    url = f"/v1/admin/variants/{variant_id}/stock"

    response = await client.post(url, json={"operation": "reserve", "quantity": 5, "reason": "order 1"}, headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["variant"]["reserved_stock"] == 5

    response = await client.post(url, json={"operation": "reserve", "quantity": 1}, headers=ADMIN)
    assert response.status_code == 409
    assert response.json()["code"] == "INSUFFICIENT_STOCK"

    response = await client.post(url, json={"operation": "fulfill", "quantity": 3}, headers=ADMIN)
    variant = response.json()["variant"]
    assert (variant["stock"], variant["reserved_stock"]) == (2, 2)

    response = await client.post(url, json={"operation": "explode", "quantity": 1}, headers=ADMIN)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_and_delete_product(client: AsyncClient):
    created = await _create(client)
    url = f"/v1/admin/products/{created['id']}"

    response = await client.patch(url, json={"name": "Renamed", "status": "inactive"}, headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["product"]["name"] == "Renamed"

    response = await client.patch(url, json={"slug": "other"}, headers=ADMIN)
    assert response.status_code == 422
    assert response.json()["code"] == "SLUG_IMMUTABLE"

    response = await client.delete(url, headers=ADMIN)
    assert response.json() == {"message": "Product deleted", "success": True}

    response = await client.get(f"/v1/products/{created['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_variant_admin_endpoints(client: AsyncClient):
    created = await _create(client)

    response = await client.post(
        f"/v1/admin/products/{created['id']}/variants",
        json={"color": "blue", "size": "S", "stock": 2},
        headers=ADMIN,
    )
    assert response.status_code == 201
    variant = response.json()["variant"]
    assert variant["sku"] == "TEE-BLUE-S"

    response = await client.patch(f"/v1/admin/variants/{variant['id']}", json={"price": 90}, headers=ADMIN)
    assert response.json()["variant"]["price"] == 90.0

    response = await client.delete(f"/v1/admin/variants/{variant['id']}", headers=ADMIN)
    assert response.status_code == 200

    response = await client.patch(f"/v1/admin/variants/{variant['id']}", json={"is_active": True}, headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["variant"]["is_active"] is True

    response = await client.patch("/v1/admin/variants/999", json={"price": 1}, headers=ADMIN)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_low_stock_endpoint(client: AsyncClient):
    await _create(client)
    response = await client.get("/v1/admin/low-stock", headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["count"] == 2
