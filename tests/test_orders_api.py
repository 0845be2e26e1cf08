import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pocketshop import main
from pocketshop.application.store_registry import OrderStoreRegistry
from pocketshop.core.config import settings
from pocketshop.domain.errors import OrderConflictError
from pocketshop.interfaces import orders_api
from pocketshop.main import app

BASE = "/vendors/vendor-demo"


@pytest.fixture
def client():
    # Entering the context runs the lifespan: demo repository, RAM feed
    with TestClient(app) as client:
        yield client


@pytest.fixture
def fake_client(fake_repo):
    fake_app = FastAPI()
    fake_app.include_router(orders_api.router)
    fake_app.state.stores = OrderStoreRegistry(fake_repo)
    with TestClient(fake_app) as client:
        yield client


def test_health_check(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "active"


def test_database_startup_runs_off_the_event_loop(monkeypatch):
    ran = []

    def fake_init_database():
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            ran.append("worker thread")
        else:
            ran.append("event loop")
        return True

    monkeypatch.setattr(settings, "ORDER_REPOSITORY", "postgres")
    monkeypatch.setattr(main, "init_database", fake_init_database)

    with TestClient(app):
        pass

    assert ran == ["worker thread"]


def test_list_orders(client):
    body = client.get(f"{BASE}/orders").json()

    assert body["vendorId"] == "vendor-demo"
    assert [o["id"] for o in body["orders"]] == ["order-1", "order-2", "order-3"]
    assert body["loading"] is False
    assert body["error"] is None
    assert body["selectedOrder"] is None


def test_change_status(client):
    response = client.post(f"{BASE}/orders/order-1/status", json={"status": "IN_PROGRESS"})

    assert response.status_code == 200
    assert response.json()["status"] == "IN_PROGRESS"
    assert response.json()["version"] == 2

    listed = {o["id"]: o for o in client.get(f"{BASE}/orders").json()["orders"]}
    assert listed["order-1"]["status"] == "IN_PROGRESS"
    assert listed["order-2"]["version"] == 1


def test_change_status_of_unknown_order(client):
    response = client.post(f"{BASE}/orders/order-404/status", json={"status": "READY"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Order not found: order-404"


def test_change_status_rejects_unknown_status(client):
    response = client.post(f"{BASE}/orders/order-1/status", json={"status": "SHIPPED"})

    assert response.status_code == 422


def test_select_order(client):
    body = client.post(f"{BASE}/orders/select", json={"orderId": "order-2"}).json()
    assert body["selectedOrder"]["id"] == "order-2"

    body = client.post(f"{BASE}/orders/select", json={"orderId": None}).json()
    assert body["selectedOrder"] is None


def test_select_unknown_order(client):
    response = client.post(f"{BASE}/orders/select", json={"orderId": "nope"})

    assert response.status_code == 404


def test_refresh(client):
    response = client.post(f"{BASE}/orders/refresh")

    assert response.status_code == 200
    assert len(response.json()["orders"]) == 3


def test_create_order_shows_up_in_store(client):
    payload = {"items": [{"itemId": "menu-1", "qty": 1}], "total": 50, "idempotencyKey": "pos-1"}

    first = client.post(f"{BASE}/orders", json=payload)
    second = client.post(f"{BASE}/orders", json=payload)

    assert first.status_code == 201
    assert first.json()["id"] == second.json()["id"]
    ids = [o["id"] for o in client.get(f"{BASE}/orders").json()["orders"]]
    assert ids.count(first.json()["id"]) == 1


def test_create_order_requires_items(client):
    response = client.post(f"{BASE}/orders", json={"items": [], "total": 0})

    assert response.status_code == 422


def test_menu_and_stock(client):
    menu = client.get(f"{BASE}/menu").json()
    stock = client.get(f"{BASE}/stock").json()

    assert [item["name"] for item in menu][:2] == ["Maggi", "Chai"]
    assert stock["menu-1"]["inStock"] is True


def test_toggle_stock(client):
    response = client.post(f"{BASE}/stock/menu-3", json={"inStock": False})

    assert response.status_code == 200
    assert response.json()["menu-3"]["inStock"] is False


def test_toggle_stock_of_unknown_item(client):
    response = client.post(f"{BASE}/stock/menu-99", json={"inStock": False})

    assert response.status_code == 404


def test_conflict_maps_to_409(fake_client, fake_repo):
    fake_repo.change_error = OrderConflictError("o1", 3)

    response = fake_client.post(f"{BASE}/orders/o1/status", json={"status": "READY"})

    assert response.status_code == 409
    # Rolled back
    listed = {o["id"]: o for o in fake_client.get(f"{BASE}/orders").json()["orders"]}
    assert listed["o1"]["status"] == "NEW"
    assert listed["o1"]["version"] == 3


def test_backend_failure_maps_to_502(fake_client, fake_repo):
    fake_repo.change_error = RuntimeError("gateway timeout")

    response = fake_client.post(f"{BASE}/orders/o1/status", json={"status": "READY"})

    assert response.status_code == 502
    assert response.json()["detail"] == "gateway timeout"
    assert fake_client.get(f"{BASE}/orders").json()["error"] == "gateway timeout"


def test_unsupported_capabilities_map_to_501(fake_client):
    stock = fake_client.post(f"{BASE}/stock/menu-1", json={"inStock": False})
    created = fake_client.post(f"{BASE}/orders", json={"items": [{"itemId": "menu-1"}], "total": 50})

    assert stock.status_code == 501
    assert created.status_code == 501
    assert fake_client.get(f"{BASE}/stock").json() == {}
