"""Service layer for order operations."""

import json
import uuid
from typing import Any, Dict, List, Optional

from loguru import logger

from orderflow.engine.callbacks import SubmitResult, submit_callback
from orderflow.orders.models import OPEN_STATUSES, MenuItem, Order
from orderflow.orders.orchestrator import start_order
from orderflow.orders.resources import OrderResources
from orderflow.storage.base import JournalStore


class CallbackRequestError(ValueError):
    """A callback request is missing something the bartender must send."""

    pass


class OrderService:
    """Order use cases shared by the HTTP routes and the CLI."""

    def __init__(self, resources: OrderResources, journal: Optional[JournalStore] = None):
        """Initialize with the order resources.

        Args:
            resources: Store, publisher and config.
            journal: Journal store (defaults to the configured one).
        """
        self.resources = resources
        self.journal = journal if journal is not None else resources.config.get_journal()

    @staticmethod
    def new_order_id() -> str:
        return str(uuid.uuid4())

    async def run_order(self, body: Any, order_id: str) -> None:
        """Start the orchestrator for one order.

        Scheduled after the 202 response, so failures can only be logged.
        """
        try:
            await start_order(body, request_id=order_id, storage=self.journal)
        except Exception as e:
            logger.exception("Order workflow failed to start", order_id=order_id, error=str(e))

    async def get_order(self, order_id: str) -> Optional[Order]:
        return await self.resources.store.get(order_id)

    async def list_open_orders(self) -> List[Order]:
        return await self.resources.store.list_by_status(OPEN_STATUSES)

    async def list_menu(self) -> List[MenuItem]:
        return await self.resources.store.list_menu()

    async def add_menu_item(self, item: MenuItem) -> MenuItem:
        await self.resources.store.put_menu_item(item)
        return item

    async def submit(self, task_token: Optional[str], output: Any) -> SubmitResult:
        """Validate a bartender callback and hand it to the engine.

        Raises:
            CallbackRequestError: Missing token, output, status or bartenderId.
            InvalidTokenError, CallbackAlreadyReceivedError, CallbackExpiredError:
                From the engine.
        """
        if not task_token or not output:
            raise CallbackRequestError("Missing taskToken or output")

        if isinstance(output, str):
            try:
                output = json.loads(output)
            except json.JSONDecodeError:
                raise CallbackRequestError("Output must be a JSON object") from None

        if not isinstance(output, dict) or not output.get("status") or not output.get("bartenderId"):
            raise CallbackRequestError("Missing status or bartenderId in output")

        payload: Dict[str, Any] = {"status": output["status"], "bartenderId": output["bartenderId"]}
        return await submit_callback(task_token, payload, storage=self.journal)
