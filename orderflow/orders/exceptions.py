"""Order domain errors."""

from typing import Optional


class OrderError(Exception):
    """Base class for order errors."""

    pass


class OrderValidationError(OrderError):
    """A create-order request is missing required fields or is malformed."""

    pass


class OrderNotFoundError(OrderError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class OrderTransitionError(OrderError):
    """A callback payload asked for a different transition than the wait expects."""

    def __init__(self, order_id: str, expected: str, received: Optional[str]) -> None:
        super().__init__(
            f"Order {order_id} expected status '{expected}' but callback reported '{received}'"
        )
        self.order_id = order_id
        self.expected = expected
        self.received = received


class PublisherClosedError(OrderError):
    def __init__(self, bus_name: str) -> None:
        super().__init__(f"Event bus '{bus_name}' is closed")
        self.bus_name = bus_name
