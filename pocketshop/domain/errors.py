class PocketShopError(Exception):
    """Base class for failures surfaced by the order core."""


class OrderFetchError(PocketShopError):
    """Orders, menu items or stock could not be loaded."""


class OrderMutationError(PocketShopError):
    """A change could not be persisted by the backend."""


class OrderNotFoundError(OrderMutationError, LookupError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class OrderConflictError(OrderMutationError):
    def __init__(self, order_id: str, expected_version: int):
        self.order_id = order_id
        self.expected_version = expected_version
        super().__init__(
            f"Order {order_id} was modified concurrently (expected version {expected_version})"
        )
