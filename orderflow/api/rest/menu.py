"""Menu endpoints."""

from typing import List

from fastapi import APIRouter, Depends

from orderflow.api.dependencies import get_order_resources
from orderflow.api.services.order_service import OrderService
from orderflow.orders.models import MenuItem
from orderflow.orders.resources import OrderResources

router = APIRouter()


@router.get("", response_model=List[MenuItem])
async def list_menu(
    resources: OrderResources = Depends(get_order_resources),
) -> List[MenuItem]:
    return await OrderService(resources).list_menu()


@router.post("", response_model=MenuItem, status_code=201)
async def add_menu_item(
    item: MenuItem,
    resources: OrderResources = Depends(get_order_resources),
) -> MenuItem:
    """Add or replace a menu item."""
    return await OrderService(resources).add_menu_item(item)
