"""REST and WebSocket routes."""

from fastapi import APIRouter

from orderflow.api.rest import executions, menu, orders, stream

router = APIRouter()
router.include_router(orders.router, prefix="/orders", tags=["orders"])
router.include_router(menu.router, prefix="/menu", tags=["menu"])
router.include_router(executions.router, prefix="/executions", tags=["executions"])
router.include_router(stream.router, tags=["stream"])

__all__ = ["router"]
