"""
Order domain models.

Wire format is camelCase JSON (``customerId``, ``bartenderId``,
``createdAt``) with ISO-8601 UTC timestamps; absent optional fields are
omitted rather than sent as null.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REJECTED)


# Statuses listed by the open-orders query.
OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.ACCEPTED, OrderStatus.READY)


class OrderEventType(str, Enum):
    """Detail types of published order events."""

    CREATED = "OrderCreated"
    ACCEPTED = "OrderAccepted"
    READY_FOR_PICKUP = "OrderReadyForPickup"
    COMPLETED = "OrderCompleted"
    REJECTED = "OrderRejected"
    CANCELLED = "OrderCancelled"


class MenuItem(BaseModel):
    """A menu entry, also snapshotted into every order."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    description: Optional[str] = None
    category: Optional[str] = None
    available: bool = True

    def snapshot(self) -> Dict[str, Any]:
        """The item as stored on an order (availability is not part of it)."""
        return self.model_dump(exclude_none=True, exclude={"available"})


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass
class Order:
    id: str
    customer_id: str
    item: MenuItem
    status: OrderStatus = OrderStatus.PENDING
    created_at: str = ""
    updated_at: str = ""
    bartender_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utc_now_iso()
        if not self.updated_at:
            self.updated_at = self.created_at

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "customerId": self.customer_id,
            "status": self.status.value,
            "item": self.item.snapshot(),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.bartender_id:
            data["bartenderId"] = self.bartender_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        return cls(
            id=data["id"],
            customer_id=data["customerId"],
            item=MenuItem.model_validate(data["item"]),
            status=OrderStatus(data["status"]),
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
            bartender_id=data.get("bartenderId"),
        )


@dataclass
class OrderEvent:
    """Detail of a published order event."""

    order_id: str
    customer_id: Optional[str]
    status: OrderStatus
    item: Optional[Dict[str, Any]] = None
    bartender_id: Optional[str] = None
    task_token: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def for_order(cls, order: Order, status: OrderStatus, **extra: Any) -> "OrderEvent":
        return cls(
            order_id=order.id,
            customer_id=order.customer_id,
            status=status,
            item=order.item.snapshot(),
            bartender_id=order.bartender_id,
            **extra,
        )

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"orderId": self.order_id}
        if self.customer_id is not None:
            detail["customerId"] = self.customer_id
        detail["status"] = self.status.value
        optional = {
            "item": self.item,
            "bartenderId": self.bartender_id,
            "taskToken": self.task_token,
            "reason": self.reason,
        }
        detail.update({k: v for k, v in optional.items() if v is not None})
        return detail
