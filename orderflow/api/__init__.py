"""HTTP API for orders, callbacks, the menu and execution debugging."""

from orderflow.api.server import create_app
from orderflow.api.settings import ApiSettings

__all__ = ["create_app", "ApiSettings"]
