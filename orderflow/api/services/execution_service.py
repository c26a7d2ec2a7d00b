"""Service layer for execution debugging views."""

import json
from typing import Any, Optional

from orderflow.api.schemas.execution import (
    CallbackWaitResponse,
    EventListResponse,
    EventResponse,
    ExecutionDetailResponse,
)
from orderflow.storage.base import JournalStore


class ExecutionService:
    """Service for execution-related queries."""

    def __init__(self, journal: JournalStore):
        self.journal = journal

    async def get_execution(self, run_id: str) -> Optional[ExecutionDetailResponse]:
        """Get detailed information about an execution.

        Args:
            run_id: The run ID.

        Returns:
            ExecutionDetailResponse if found, None otherwise.
        """
        execution = await self.journal.get_execution(run_id)
        if execution is None:
            return None

        callbacks = await self.journal.list_callbacks(run_id=run_id)

        return ExecutionDetailResponse(
            run_id=execution.run_id,
            workflow_name=execution.workflow_name,
            status=execution.status.value,
            created_at=execution.created_at,
            updated_at=execution.updated_at,
            completed_at=execution.completed_at,
            error=execution.error,
            input_args=self._safe_json_parse(execution.input_args),
            input_kwargs=self._safe_json_parse(execution.input_kwargs),
            result=self._safe_json_parse(execution.result),
            callbacks=[
                CallbackWaitResponse(
                    callback_id=cb.callback_id,
                    name=cb.name,
                    status=cb.status.value,
                    created_at=cb.created_at,
                    expires_at=cb.expires_at,
                    received_at=cb.received_at,
                    has_payload=cb.payload is not None,
                )
                for cb in callbacks
            ],
        )

    async def get_events(self, run_id: str) -> EventListResponse:
        events = await self.journal.get_events(run_id)

        items = [
            EventResponse(
                event_id=event.event_id,
                run_id=event.run_id,
                type=event.type.value,
                timestamp=event.timestamp,
                sequence=event.sequence,
                data=event.data,
            )
            for event in events
        ]

        return EventListResponse(items=items, count=len(items))

    def _safe_json_parse(self, value: Optional[str]) -> Any:
        """Parse a JSON string, returning the original string if it is not JSON."""
        if value is None:
            return None

        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value
