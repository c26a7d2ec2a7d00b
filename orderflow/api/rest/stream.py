"""WebSocket push of order status notifications."""

import asyncio
from typing import Optional

from fastapi import APIRouter, WebSocket
from loguru import logger

from orderflow.orders.notifications import build_notification
from orderflow.orders.publisher import InMemoryEventBus, Subscription
from orderflow.orders.resources import get_resources

router = APIRouter()


async def _forward(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        event = await subscription.get()
        notification = build_notification(event)
        await websocket.send_json({"topic": notification.topic, "payload": notification.payload})


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _stream(websocket: WebSocket, order_id: Optional[str]) -> None:
    publisher = get_resources().publisher
    if not isinstance(publisher, InMemoryEventBus):
        await websocket.close(code=1011, reason="Event bus does not support subscriptions")
        return

    # Subscribe before accepting so nothing published after the handshake is missed.
    subscription = publisher.subscribe(order_id=order_id)
    await websocket.accept()
    logger.debug(
        "Notification subscriber connected",
        order_id=order_id,
        subscription_id=subscription.subscription_id,
    )

    tasks = [
        asyncio.create_task(_forward(websocket, subscription)),
        asyncio.create_task(_wait_for_disconnect(websocket)),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            # A send to a closed socket ends the stream like a disconnect.
            if not task.cancelled() and task.exception() is not None:
                logger.debug("Notification stream ended", order_id=order_id, error=str(task.exception()))
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        publisher.unsubscribe(subscription)
        logger.debug("Notification subscriber disconnected", order_id=order_id)


@router.websocket("/ws/orders")
async def all_orders(websocket: WebSocket) -> None:
    """Notifications for every order (kiosk board)."""
    await _stream(websocket, None)


@router.websocket("/ws/orders/{order_id}")
async def one_order(websocket: WebSocket, order_id: str) -> None:
    """Notifications for one order (customer's phone)."""
    await _stream(websocket, order_id)
