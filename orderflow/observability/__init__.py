"""
Observability for orderflow.

Logging:
    - configure_logging(): Configure loguru-based logging
    - configure_logging_from_env(): Configure from ORDERFLOW_LOG_* variables
    - bind_order_context(): Logger bound to an order
    - workflow_logging_context(): Context manager for execution logging
    - step_logging_context(): Context manager for step logging
"""

from orderflow.observability.logging import (
    bind_order_context,
    configure_logging,
    configure_logging_from_env,
    step_logging_context,
    workflow_logging_context,
)

__all__ = [
    "configure_logging",
    "configure_logging_from_env",
    "bind_order_context",
    "workflow_logging_context",
    "step_logging_context",
]
