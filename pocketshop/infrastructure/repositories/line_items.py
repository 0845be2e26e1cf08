from typing import Dict, List

from pocketshop.domain.errors import OrderMutationError
from pocketshop.domain.models import MenuItem, OrderItem


def resolve_line_items(items: List[Dict], menu: Dict[str, MenuItem]) -> List[OrderItem]:
    """
    Turn POS payload lines ({"itemId": ..., "qty": ...}) into order items,
    filling name and unit price from the vendor's menu when not supplied.
    """
    if not items:
        raise OrderMutationError("Order must have at least one item")

    resolved = []
    for line in items:
        item_id = line.get("itemId") or line.get("item_id")
        menu_item = menu.get(item_id)
        price = line.get("price", menu_item.price if menu_item else None)
        if price is None:
            raise OrderMutationError(f"Product {item_id} not found")

        resolved.append(OrderItem(
            item_id=item_id,
            name=line.get("name") or (menu_item.name if menu_item else None),
            qty=int(line.get("qty", line.get("quantity", 1))),
            price=float(price),
        ))
    return resolved
