"""Request and response schemas of the HTTP API."""

from orderflow.api.schemas.callback import CallbackRequest, CallbackResponse
from orderflow.api.schemas.execution import (
    CallbackWaitResponse,
    EventListResponse,
    EventResponse,
    ExecutionDetailResponse,
)
from orderflow.api.schemas.order import CreateOrderResponse, OrderResponse

__all__ = [
    "CreateOrderResponse",
    "OrderResponse",
    "CallbackRequest",
    "CallbackResponse",
    "ExecutionDetailResponse",
    "CallbackWaitResponse",
    "EventResponse",
    "EventListResponse",
]
