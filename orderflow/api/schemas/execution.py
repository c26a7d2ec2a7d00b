"""Execution debugging schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class CallbackWaitResponse(BaseModel):
    """Response model for a callback wait of an execution."""

    callback_id: str
    name: str
    status: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    has_payload: bool = False


class ExecutionDetailResponse(BaseModel):
    """Detailed response model for an execution."""

    run_id: str
    workflow_name: str
    status: str
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    input_args: Optional[Any] = None
    input_kwargs: Optional[Any] = None
    result: Optional[Any] = None
    callbacks: List[CallbackWaitResponse] = []


class EventResponse(BaseModel):
    """Response model for a journal event."""

    event_id: str
    run_id: str
    type: str
    timestamp: datetime
    sequence: Optional[int] = None
    data: Dict[str, Any] = {}


class EventListResponse(BaseModel):
    """Response model for listing events."""

    items: List[EventResponse]
    count: int
