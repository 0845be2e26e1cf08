import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pocketshop.application.order_store import OrderStore
from pocketshop.domain.errors import OrderConflictError, OrderNotFoundError
from pocketshop.domain.models import OrderStatus
from pocketshop.domain.reconciliation import extract_error_message

router = APIRouter(prefix="/vendors/{vendor_id}")
logger = logging.getLogger(__name__)


class _CamelPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatusChangePayload(_CamelPayload):
    status: OrderStatus


class SelectOrderPayload(_CamelPayload):
    order_id: Optional[str] = None


class StockTogglePayload(_CamelPayload):
    in_stock: bool
    until: Optional[datetime] = None


class CreateOrderPayload(_CamelPayload):
    items: List[Dict] = Field(min_length=1)
    total: float
    idempotency_key: Optional[str] = None


async def _store(request: Request, vendor_id: str) -> OrderStore:
    """Stores live in app.state (see main.py)."""
    return await request.app.state.stores.get(vendor_id)


@router.get("/orders")
async def list_orders(request: Request, vendor_id: str):
    store = await _store(request, vendor_id)
    return store.status()


@router.post("/orders/refresh")
async def refresh_orders(request: Request, vendor_id: str):
    store = await _store(request, vendor_id)
    await store.refresh()
    return store.status()


@router.post("/orders/select")
async def select_order(request: Request, vendor_id: str, payload: SelectOrderPayload):
    store = await _store(request, vendor_id)
    order = store.select_order(payload.order_id)
    if payload.order_id and order is None:
        raise HTTPException(status_code=404, detail=f"Order not found: {payload.order_id}")
    return store.status()


@router.post("/orders/{order_id}/status")
async def change_order_status(request: Request, vendor_id: str, order_id: str, payload: StatusChangePayload):
    store = await _store(request, vendor_id)
    try:
        order = await store.change_order_status(order_id, payload.status)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=extract_error_message(e))
    except OrderConflictError as e:
        raise HTTPException(status_code=409, detail=extract_error_message(e))
    except Exception as e:
        logger.error(f"❌ Status change failed for {order_id}: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=extract_error_message(e))
    return order.to_json_dict()


@router.post("/orders", status_code=201)
async def create_order(request: Request, vendor_id: str, payload: CreateOrderPayload):
    store = await _store(request, vendor_id)
    try:
        order = await store.repository.create_order(
            vendor_id, payload.items, payload.total, payload.idempotency_key
        )
    except NotImplementedError as e:
        raise HTTPException(status_code=501, detail=str(e))
    except Exception as e:
        logger.error(f"❌ Order creation failed for vendor {vendor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=extract_error_message(e))
    return order.to_json_dict()


@router.get("/menu")
async def list_menu_items(request: Request, vendor_id: str):
    store = await _store(request, vendor_id)
    return [item.to_json_dict() for item in store.menu_items]


@router.get("/stock")
async def list_stock(request: Request, vendor_id: str):
    store = await _store(request, vendor_id)
    if store.stock is None:
        return {}
    return {item_id: stock.to_json_dict() for item_id, stock in store.stock.items()}


@router.post("/stock/{item_id}")
async def toggle_item_stock(request: Request, vendor_id: str, item_id: str, payload: StockTogglePayload):
    store = await _store(request, vendor_id)
    try:
        await store.toggle_item_stock(item_id, payload.in_stock, payload.until)
    except NotImplementedError as e:
        raise HTTPException(status_code=501, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=extract_error_message(e))
    except Exception as e:
        logger.error(f"❌ Stock toggle failed for {item_id}: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=extract_error_message(e))
    return {item_id: stock.to_json_dict() for item_id, stock in (store.stock or {}).items()}
