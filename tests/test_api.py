"""Tests for API endpoints"""
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from storefront import main
from storefront.api_client import StorefrontApiClient, get_api_client
from storefront.exceptions import ApiUnavailableError, NotFoundError
from storefront.main import app
from storefront.models import Product, User, UserProfile, UserUpdateRequest
from storefront.storage import MemoryStorage


@pytest.fixture
def api(sample_product):
    api = Mock(spec=StorefrontApiClient)
    api.get_product.return_value = Product.model_validate(sample_product)
    api.list_products.return_value = [Product.model_validate(sample_product)]
    return api


@pytest.fixture
def client(api, monkeypatch):
    """Test client with in-memory storage and a mocked remote API"""
    storage = MemoryStorage()
    monkeypatch.setattr(main, "get_storage", lambda: storage)
    app.dependency_overrides[get_api_client] = lambda: api
    yield TestClient(app)
    app.dependency_overrides.clear()


CART = {"X-Cart-ID": "cart-123"}


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["storage"]["status"] == "healthy"
    assert "X-Response-Time-Ms" in response.headers


def test_empty_cart(client):
    response = client.get("/cart", headers=CART)
    assert response.status_code == 200
    assert response.json()["lines"] == []
    assert response.json()["item_count"] == 0


def test_cart_requires_cart_id(client):
    response = client.get("/cart")
    assert response.status_code == 422


def test_add_item(client):
    response = client.post("/cart/items", json={"product_id": "prod-1", "quantity": 2}, headers=CART)

    assert response.status_code == 200
    body = response.json()
    assert body["item_count"] == 2
    assert body["lines"][0]["product_id"] == "prod-1"
    assert body["advisories"] == []


def test_add_item_clamped_with_advisory(client):
    client.post("/cart/items", json={"product_id": "prod-1", "quantity": 3}, headers=CART)
    response = client.post("/cart/items", json={"product_id": "prod-1", "quantity": 4}, headers=CART)

    body = response.json()
    assert response.status_code == 200
    assert body["item_count"] == 5
    assert body["advisories"][0]["allowed"] == 2


def test_add_rejects_zero_quantity(client):
    response = client.post("/cart/items", json={"product_id": "prod-1", "quantity": 0}, headers=CART)
    assert response.status_code == 422


def test_add_unknown_product(client, api):
    api.get_product.side_effect = NotFoundError("Product not found")

    response = client.post("/cart/items", json={"product_id": "nope"}, headers=CART)

    assert response.status_code == 404


def test_catalog_unavailable(client, api):
    api.get_product.side_effect = ApiUnavailableError("down")

    response = client.post("/cart/items", json={"product_id": "prod-1"}, headers=CART)

    assert response.status_code == 503


def test_update_and_remove_line(client):
    added = client.post("/cart/items", json={"product_id": "prod-1"}, headers=CART).json()
    line_id = added["lines"][0]["id"]

    updated = client.patch(f"/cart/items/{line_id}", json={"quantity": 9}, headers=CART).json()
    assert updated["item_count"] == 5
    assert len(updated["advisories"]) == 1

    unchanged = client.patch(f"/cart/items/{line_id}", json={"quantity": 0}, headers=CART).json()
    assert unchanged["item_count"] == 5

    removed = client.delete(f"/cart/items/{line_id}", headers=CART)
    assert removed.status_code == 200
    assert removed.json()["lines"] == []


def test_update_unknown_line(client):
    response = client.patch("/cart/items/missing", json={"quantity": 2}, headers=CART)
    assert response.status_code == 404


def test_remove_unknown_line(client):
    response = client.delete("/cart/items/missing", headers=CART)
    assert response.status_code == 404


def test_clear_cart(client):
    client.post("/cart/items", json={"product_id": "prod-1", "quantity": 2}, headers=CART)

    response = client.delete("/cart", headers=CART)

    assert response.json()["item_count"] == 0
    assert response.json()["total_price"] in ("0", 0)


def test_checkout(client, api):
    client.post("/cart/items", json={"product_id": "prod-1", "quantity": 2}, headers=CART)
    api.get_profile.return_value = UserProfile(user_id="user-1", shipping_address="1 Main St")
    api.create_order.return_value = {"message": "Order created", "order": {"order_id": "order-1"}}

    response = client.post(
        "/checkout", json={}, headers={**CART, "Authorization": "Bearer user-token"}
    )

    assert response.status_code == 200
    assert response.json()["order_id"] == "order-1"
    assert api.create_order.call_args[0][1] == "user-token"
    assert client.get("/cart", headers=CART).json()["item_count"] == 0


def test_checkout_empty_cart(client):
    response = client.post("/checkout", json={"shipping_address": "1 Main St"}, headers=CART)
    assert response.status_code == 400


def test_list_products(client):
    response = client.get("/products")
    assert response.status_code == 200
    assert response.json()[0]["product_id"] == "prod-1"


def test_update_profile_requires_fields(client):
    response = client.put("/profile", json={}, headers={"Authorization": "Bearer t"})
    assert response.status_code == 400


def test_admin_routes_require_login(client):
    response = client.put("/admin/products/prod-1/stock", json={"quantity_change": 3})
    assert response.status_code == 401


def test_admin_login_and_stock_update(client, api, sample_product):
    api.admin_login.return_value = {"admin_id": "admin-1"}
    api.update_product_stock.return_value = Product.model_validate({**sample_product, "quantity": 8})

    login = client.post("/admin/login", json={"username": "admin", "password": "secret"})
    assert login.status_code == 200
    headers = {"X-Admin-Token": login.json()["token"]}

    response = client.put("/admin/products/prod-1/stock", json={"quantity_change": 3}, headers=headers)

    assert response.status_code == 200
    assert response.json()["quantity"] == 8
    api.update_product_stock.assert_called_once_with("prod-1", 3)

    client.post("/admin/logout", headers=headers)
    assert client.get("/admin/orders", headers=headers).status_code == 401


def test_admin_zero_stock_change_rejected(client, api):
    api.admin_login.return_value = {"admin_id": "admin-1"}
    token = client.post("/admin/login", json={"username": "admin", "password": "secret"}).json()["token"]

    response = client.put(
        "/admin/products/prod-1/stock", json={"quantity_change": 0}, headers={"X-Admin-Token": token}
    )

    assert response.status_code == 400


@pytest.fixture
def admin_headers(client, api):
    api.admin_login.return_value = {"admin_id": "admin-1"}
    token = client.post("/admin/login", json={"username": "admin", "password": "secret"}).json()["token"]
    return {"X-Admin-Token": token}


def test_admin_user_routes_require_login(client):
    assert client.get("/admin/users").status_code == 401
    assert client.get("/admin/users/user-1").status_code == 401
    assert client.put("/admin/users/user-1", json={"name": "Ada"}).status_code == 401
    assert client.delete("/admin/users/user-1").status_code == 401
    assert client.delete("/admin/orders/order-1").status_code == 401


def test_admin_list_and_get_users(client, api, admin_headers):
    user = User(user_id="user-1", email="ada@example.com", name="Ada", orders_count=2)
    api.list_users.return_value = [user]
    api.get_user.return_value = user

    listed = client.get("/admin/users", headers=admin_headers)
    fetched = client.get("/admin/users/user-1", headers=admin_headers)

    assert listed.status_code == 200
    assert listed.json()[0]["email"] == "ada@example.com"
    assert fetched.json()["orders_count"] == 2
    api.get_user.assert_called_once_with("user-1")


def test_admin_update_user(client, api, admin_headers):
    api.update_user.return_value = User(user_id="user-1", name="Ada L")

    response = client.put("/admin/users/user-1", json={"name": "Ada L"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["name"] == "Ada L"
    api.update_user.assert_called_once_with("user-1", UserUpdateRequest(name="Ada L"))


def test_admin_update_user_requires_fields(client, api, admin_headers):
    response = client.put("/admin/users/user-1", json={}, headers=admin_headers)

    assert response.status_code == 400
    api.update_user.assert_not_called()


def test_admin_delete_user_and_order(client, api, admin_headers):
    api.delete_user.return_value = {"message": "User deleted"}
    api.delete_order.return_value = {"message": "Order deleted"}

    assert client.delete("/admin/users/user-1", headers=admin_headers).status_code == 200
    assert client.delete("/admin/orders/order-1", headers=admin_headers).status_code == 200
    api.delete_user.assert_called_once_with("user-1")
    api.delete_order.assert_called_once_with("order-1")


def test_admin_delete_unknown_user(client, api, admin_headers):
    api.delete_user.side_effect = NotFoundError("User not found")

    response = client.delete("/admin/users/missing", headers=admin_headers)

    assert response.status_code == 404


def test_advisory_count_header(client):
    first = client.post("/cart/items", json={"product_id": "prod-1", "quantity": 2}, headers=CART)
    clamped = client.post("/cart/items", json={"product_id": "prod-1", "quantity": 9}, headers=CART)

    assert "X-Stock-Advisories" not in first.headers
    assert clamped.headers["X-Stock-Advisories"] == "1"


def test_cart_audit_is_logged(client, caplog):
    with caplog.at_level("INFO", logger="storefront.middleware"):
        client.post("/cart/items", json={"product_id": "prod-1", "quantity": 2}, headers=CART)

    record = next(r for r in caplog.records if r.name == "storefront.middleware")
    assert record.item_count == 2
    assert record.hashed_cart_id != "cart-123"
    assert "cart-123" not in record.getMessage()


def test_oversold_product_adds_nothing(client, api, sample_product):
    api.get_product.return_value = Product.model_validate({**sample_product, "quantity": -1})

    response = client.post("/cart/items", json={"product_id": "prod-1", "quantity": 1}, headers=CART)

    body = response.json()
    assert response.status_code == 200
    assert body["lines"] == []
    assert body["advisories"][0]["allowed"] == 0
    assert body["advisories"][0]["stock_ceiling"] == 0


def test_health_reports_misconfigured_storage(client, monkeypatch):
    def unknown_backend():
        raise ValueError("Unknown STORAGE_BACKEND: dynamo")

    monkeypatch.setattr(main, "get_storage", unknown_backend)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["storage"]["status"] == "unhealthy"


def test_shutdown_closes_connections(monkeypatch):
    closed = []
    monkeypatch.setattr(main, "close_api_client", lambda: closed.append("api"))
    monkeypatch.setattr(main, "close_storage", lambda: closed.append("storage"))

    with TestClient(app):
        assert closed == []

    assert closed == ["api", "storage"]
