"""Service layer between the REST routes and the engine."""

from orderflow.api.services.execution_service import ExecutionService
from orderflow.api.services.order_service import OrderService

__all__ = ["ExecutionService", "OrderService"]
