"""Callback submission schemas."""

from typing import Any, Optional

from pydantic import BaseModel


class CallbackRequest(BaseModel):
    """
    A bartender's answer to a callback wait.

    Both fields are optional here so the route can report exactly what is
    missing.
    """

    taskToken: Optional[str] = None
    output: Optional[Any] = None


class CallbackResponse(BaseModel):
    success: bool = True
    message: str = "Callback processed"
