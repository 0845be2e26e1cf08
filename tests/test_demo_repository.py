import pytest

from pocketshop.application.order_store import OrderStore
from pocketshop.domain.errors import OrderMutationError, OrderNotFoundError
from pocketshop.domain.models import OrderStatus
from pocketshop.infrastructure.realtime import OrderFeed
from pocketshop.infrastructure.repositories.demo_data import DEMO_VENDOR_ID
from pocketshop.infrastructure.repositories.demo_order_repository import DemoOrderRepository


@pytest.fixture
def feed():
    return OrderFeed()


@pytest.fixture
def repo(feed):
    return DemoOrderRepository(feed=feed, latency=0)


async def test_seeded_orders_menu_and_stock(repo):
    orders = await repo.fetch_orders(DEMO_VENDOR_ID)
    menu = await repo.fetch_menu_items(DEMO_VENDOR_ID)
    stock = await repo.fetch_item_stock(DEMO_VENDOR_ID)

    assert [o.id for o in orders] == ["order-1", "order-2", "order-3"]
    assert all(o.status == OrderStatus.NEW and o.version == 1 for o in orders)
    assert orders[0].items_count == 5
    assert len(menu) == 5
    assert all(s.in_stock for s in stock.values())


async def test_other_vendor_sees_nothing(repo):
    assert await repo.fetch_orders("someone-else") == []
    assert await repo.fetch_item_stock("someone-else") == {}


async def test_fetched_rows_are_copies(repo):
    first = await repo.fetch_orders(DEMO_VENDOR_ID)
    first[0].items[0].qty = 99

    again = await repo.fetch_orders(DEMO_VENDOR_ID)
    assert again[0].items[0].qty == 2


async def test_status_change_bumps_version_and_pushes(repo):
    pushed = []
    repo.subscribe_to_orders(DEMO_VENDOR_ID, pushed.append)

    updated = await repo.change_order_status(DEMO_VENDOR_ID, "order-2", OrderStatus.READY)

    assert updated.status == OrderStatus.READY
    assert updated.version == 2
    assert len(pushed) == 1
    row = next(o for o in pushed[0] if o.id == "order-2")
    assert row.version == 2


async def test_status_change_unknown_order(repo):
    with pytest.raises(OrderNotFoundError):
        await repo.change_order_status(DEMO_VENDOR_ID, "order-404", OrderStatus.READY)


async def test_status_change_for_wrong_vendor(repo):
    with pytest.raises(OrderNotFoundError):
        await repo.change_order_status("someone-else", "order-1", OrderStatus.READY)


async def test_create_order_fills_line_items_from_menu(repo):
    order = await repo.create_order(DEMO_VENDOR_ID, [{"itemId": "menu-3", "qty": 2}], total=120)

    assert order.status == OrderStatus.NEW
    assert order.version == 1
    assert order.order_number == "234"
    assert order.items[0].name == "Dosa"
    assert order.items[0].price == 60


async def test_create_order_is_idempotent_by_key(repo):
    first = await repo.create_order(DEMO_VENDOR_ID, [{"itemId": "menu-2"}], 20, idempotency_key="k-1")
    second = await repo.create_order(DEMO_VENDOR_ID, [{"itemId": "menu-2"}], 20, idempotency_key="k-1")

    assert first.id == second.id
    assert len(await repo.fetch_orders(DEMO_VENDOR_ID)) == 4


async def test_create_order_rejects_unknown_item(repo):
    with pytest.raises(OrderMutationError):
        await repo.create_order(DEMO_VENDOR_ID, [{"itemId": "menu-99"}], 10)


async def test_create_order_rejects_empty_items(repo):
    with pytest.raises(OrderMutationError):
        await repo.create_order(DEMO_VENDOR_ID, [], 0)


async def test_toggle_item_stock(repo):
    await repo.toggle_item_stock("menu-1", False)

    stock = await repo.fetch_item_stock(DEMO_VENDOR_ID)
    assert stock["menu-1"].in_stock is False
    assert stock["menu-2"].in_stock is True


async def test_toggle_unknown_item(repo):
    with pytest.raises(LookupError):
        await repo.toggle_item_stock("menu-99", False)


async def test_store_on_demo_backend_converges_with_its_own_push(repo):
    store = OrderStore(repo, DEMO_VENDOR_ID)
    await store.initialize()

    # The push for this change arrives before the response resolves
    await store.change_order_status("order-1", "IN_PROGRESS")

    order = store.get_order("order-1")
    assert order.status == OrderStatus.IN_PROGRESS
    assert order.version == 2
    assert [o.id for o in store.orders] == ["order-1", "order-2", "order-3"]
    assert store.menu_items and store.stock


async def test_store_sees_orders_created_elsewhere(repo):
    store = OrderStore(repo, DEMO_VENDOR_ID)
    await store.initialize()

    created = await repo.create_order(DEMO_VENDOR_ID, [{"itemId": "menu-4", "qty": 3}], 45)

    assert store.get_order(created.id) is not None
    assert len(store.orders) == 4


async def test_store_shutdown_unsubscribes_from_feed(repo, feed):
    store = OrderStore(repo, DEMO_VENDOR_ID)
    await store.initialize()
    assert feed.listener_count(DEMO_VENDOR_ID) == 1

    store.shutdown()

    assert feed.listener_count(DEMO_VENDOR_ID) == 0
