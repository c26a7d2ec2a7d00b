"""
Order store: orders keyed by id, a status index, and the menu catalogue.

The orchestrator is the only writer of an order. Reads from the API and
CLI may see a slightly stale snapshot.
"""

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from orderflow.orders.exceptions import OrderNotFoundError
from orderflow.orders.models import MenuItem, Order, OrderStatus, utc_now_iso
from orderflow.storage.file import atomic_write_json, safe_key


class OrderStore(ABC):
    """Abstract base class for order stores."""

    @abstractmethod
    async def put(self, order: Order) -> None:
        """Insert or replace an order (idempotent upsert keyed by order id)."""
        pass

    @abstractmethod
    async def get(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        bartender_id: Optional[str] = None,
    ) -> Order:
        """
        Partially update an order.

        Refreshes updatedAt; bartender_id is written only when given.

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        pass

    @abstractmethod
    async def count_by_status(self, status: OrderStatus) -> int:
        pass

    @abstractmethod
    async def list_by_status(self, statuses: Iterable[OrderStatus]) -> List[Order]:
        """Orders in any of the given statuses, oldest first."""
        pass

    @abstractmethod
    async def put_menu_item(self, item: MenuItem) -> None:
        pass

    @abstractmethod
    async def list_menu(self) -> List[MenuItem]:
        pass


def _apply_update(order: Order, status: OrderStatus, bartender_id: Optional[str]) -> Order:
    order.status = status
    order.updated_at = utc_now_iso()
    if bartender_id:
        order.bartender_id = bartender_id
    return order


class InMemoryOrderStore(OrderStore):
    """Thread-safe in-memory order store."""

    def __init__(self) -> None:
        self._orders: Dict[str, Order] = {}
        self._status_index: Dict[OrderStatus, Set[str]] = {s: set() for s in OrderStatus}
        self._menu: Dict[str, MenuItem] = {}
        self._lock = threading.RLock()

    def _index(self, order_id: str, old: Optional[OrderStatus], new: OrderStatus) -> None:
        if old is not None:
            self._status_index[old].discard(order_id)
        self._status_index[new].add(order_id)

    async def put(self, order: Order) -> None:
        with self._lock:
            existing = self._orders.get(order.id)
            stored = Order.from_dict(order.to_dict())
            self._orders[order.id] = stored
            self._index(order.id, existing.status if existing else None, stored.status)

    async def get(self, order_id: str) -> Optional[Order]:
        with self._lock:
            order = self._orders.get(order_id)
            return Order.from_dict(order.to_dict()) if order else None

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        bartender_id: Optional[str] = None,
    ) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            old_status = order.status
            _apply_update(order, status, bartender_id)
            self._index(order_id, old_status, status)
            return Order.from_dict(order.to_dict())

    async def count_by_status(self, status: OrderStatus) -> int:
        with self._lock:
            return len(self._status_index[status])

    async def list_by_status(self, statuses: Iterable[OrderStatus]) -> List[Order]:
        with self._lock:
            ids = set().union(*(self._status_index[s] for s in statuses))
            orders = [Order.from_dict(self._orders[i].to_dict()) for i in ids]
        orders.sort(key=lambda o: o.created_at)
        return orders

    async def put_menu_item(self, item: MenuItem) -> None:
        with self._lock:
            self._menu[item.id] = item.model_copy()

    async def list_menu(self) -> List[MenuItem]:
        with self._lock:
            return sorted(self._menu.values(), key=lambda m: (m.category or "", m.name))

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)


class FileOrderStore(OrderStore):
    """
    Order store persisting to JSON files.

    Layout:
        <base_path>/orders/<order_id>.json
        <base_path>/menu/<item_id>.json
        <base_path>/status_index.json
    """

    def __init__(self, base_path: str = "./orderflow_data/orders") -> None:
        self.base_path = Path(base_path)
        self._orders_dir = self.base_path / "orders"
        self._menu_dir = self.base_path / "menu"
        self._index_path = self.base_path / "status_index.json"
        self._orders_dir.mkdir(parents=True, exist_ok=True)
        self._menu_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _order_path(self, order_id: str) -> Path:
        return self._orders_dir / f"{safe_key(order_id)}.json"

    def _read_index(self) -> Dict[str, List[str]]:
        if not self._index_path.exists():
            return {}
        with open(self._index_path) as f:
            return json.load(f)

    def _write_index(
        self, order_id: str, old: Optional[OrderStatus], new: OrderStatus
    ) -> None:
        index = self._read_index()
        if old is not None and order_id in index.get(old.value, []):
            index[old.value].remove(order_id)
        ids = index.setdefault(new.value, [])
        if order_id not in ids:
            ids.append(order_id)
        atomic_write_json(self._index_path, index)

    def _read_order(self, order_id: str) -> Optional[Order]:
        path = self._order_path(order_id)
        if not path.exists():
            return None
        with open(path) as f:
            return Order.from_dict(json.load(f))

    async def put(self, order: Order) -> None:
        with self._lock:
            existing = self._read_order(order.id)
            atomic_write_json(self._order_path(order.id), order.to_dict())
            self._write_index(order.id, existing.status if existing else None, order.status)

    async def get(self, order_id: str) -> Optional[Order]:
        # An id that cannot be a file name cannot be stored either.
        try:
            safe_key(order_id)
        except ValueError:
            return None
        with self._lock:
            return self._read_order(order_id)

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        bartender_id: Optional[str] = None,
    ) -> Order:
        with self._lock:
            order = self._read_order(order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            old_status = order.status
            _apply_update(order, status, bartender_id)
            atomic_write_json(self._order_path(order_id), order.to_dict())
            self._write_index(order_id, old_status, status)
            return order

    async def count_by_status(self, status: OrderStatus) -> int:
        with self._lock:
            return len(self._read_index().get(status.value, []))

    async def list_by_status(self, statuses: Iterable[OrderStatus]) -> List[Order]:
        with self._lock:
            index = self._read_index()
            orders = []
            for status in statuses:
                for order_id in index.get(status.value, []):
                    order = self._read_order(order_id)
                    if order is not None:
                        orders.append(order)
        orders.sort(key=lambda o: o.created_at)
        return orders

    async def put_menu_item(self, item: MenuItem) -> None:
        with self._lock:
            atomic_write_json(
                self._menu_dir / f"{safe_key(item.id)}.json",
                item.model_dump(mode="json"),
            )

    async def list_menu(self) -> List[MenuItem]:
        with self._lock:
            items = []
            for path in self._menu_dir.glob("*.json"):
                with open(path) as f:
                    items.append(MenuItem.model_validate(json.load(f)))
        return sorted(items, key=lambda m: (m.category or "", m.name))


def create_order_store(backend: str = "memory", path: str = "./orderflow_data/orders") -> OrderStore:
    if backend == "file":
        return FileOrderStore(base_path=path)
    if backend == "memory":
        return InMemoryOrderStore()
    raise ValueError(f"Unknown order store backend: {backend!r} (expected 'memory' or 'file')")
