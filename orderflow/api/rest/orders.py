"""Order endpoints used by customers and bartenders."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException

from orderflow.api.dependencies import get_order_resources
from orderflow.api.schemas.callback import CallbackRequest, CallbackResponse
from orderflow.api.schemas.order import CreateOrderResponse, OrderResponse
from orderflow.api.services.order_service import CallbackRequestError, OrderService
from orderflow.core.exceptions import (
    CallbackAlreadyReceivedError,
    CallbackExpiredError,
    InvalidTokenError,
)
from orderflow.orders.resources import OrderResources

router = APIRouter()


@router.post("", response_model=CreateOrderResponse, status_code=202)
async def create_order(
    background_tasks: BackgroundTasks,
    body: Optional[Dict[str, Any]] = Body(None),
    resources: OrderResources = Depends(get_order_resources),
) -> CreateOrderResponse:
    """Accept an order and start its workflow after responding.

    The order id is returned immediately so the customer can subscribe to
    status notifications before processing begins. Validation happens in
    the workflow; an invalid request ends as a cancelled order.
    """
    service = OrderService(resources)
    order_id = service.new_order_id()
    background_tasks.add_task(service.run_order, body, order_id)
    return CreateOrderResponse(orderId=order_id)


@router.get("", response_model=List[OrderResponse], response_model_exclude_none=True)
async def list_open_orders(
    resources: OrderResources = Depends(get_order_resources),
) -> List[Dict[str, Any]]:
    """Orders a bartender can still act on (pending, accepted, ready)."""
    orders = await OrderService(resources).list_open_orders()
    return [order.to_dict() for order in orders]


@router.post("/callback", response_model=CallbackResponse)
async def submit_callback(
    request: Optional[CallbackRequest] = Body(None),
    resources: OrderResources = Depends(get_order_resources),
) -> CallbackResponse:
    """Resolve the wait identified by taskToken with the bartender's output.

    Raises:
        HTTPException: 400 for a malformed request, 404 for an unknown
            token, 409 when the wait is no longer pending.
    """
    if request is None:
        raise HTTPException(status_code=400, detail="Missing request body")

    service = OrderService(resources)
    try:
        await service.submit(request.taskToken, request.output)
    except CallbackRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidTokenError:
        raise HTTPException(status_code=404, detail="Unknown task token")
    except (CallbackAlreadyReceivedError, CallbackExpiredError) as e:
        raise HTTPException(status_code=409, detail=str(e))

    return CallbackResponse()


@router.get("/{order_id}", response_model=OrderResponse, response_model_exclude_none=True)
async def get_order(
    order_id: str,
    resources: OrderResources = Depends(get_order_resources),
) -> Dict[str, Any]:
    """Get one order.

    Raises:
        HTTPException: 404 if the order does not exist.
    """
    order = await OrderService(resources).get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order.to_dict()
