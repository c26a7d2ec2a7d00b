"""Execution debugging endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from orderflow.api.dependencies import get_journal_store
from orderflow.api.schemas.execution import EventListResponse, ExecutionDetailResponse
from orderflow.api.services.execution_service import ExecutionService
from orderflow.storage.base import JournalStore

router = APIRouter()


@router.get("/{run_id}", response_model=ExecutionDetailResponse)
async def get_execution(
    run_id: str,
    journal: JournalStore = Depends(get_journal_store),
) -> ExecutionDetailResponse:
    """Get an execution with its callback waits.

    Raises:
        HTTPException: 404 if the execution does not exist.
    """
    execution = await ExecutionService(journal).get_execution(run_id)
    if execution is None:
        raise HTTPException(status_code=404, detail=f"Execution '{run_id}' not found")
    return execution


@router.get("/{run_id}/events", response_model=EventListResponse)
async def get_execution_events(
    run_id: str,
    journal: JournalStore = Depends(get_journal_store),
) -> EventListResponse:
    """Get the journal of an execution."""
    service = ExecutionService(journal)

    # Verify execution exists
    if await journal.get_execution(run_id) is None:
        raise HTTPException(status_code=404, detail=f"Execution '{run_id}' not found")

    return await service.get_events(run_id)
