"""Order request/response schemas (camelCase on the wire)."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class CreateOrderResponse(BaseModel):
    """Returned as soon as the order workflow is scheduled."""

    orderId: str
    status: str = "pending"


class OrderResponse(BaseModel):
    """An order as stored."""

    id: str
    customerId: str
    status: str
    item: Dict[str, Any]
    createdAt: str
    updatedAt: str
    bartenderId: Optional[str] = None
