"""
Funnel run API routes.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from funnel_audit.exceptions import InvalidStoreUrlError
from funnel_audit.models import RunStatus

from ..models.run_models import RunReport, RunStartRequest, RunStartResponse
from ..services.run_service import RunService

router = APIRouter()


def get_run_service(request: Request) -> RunService:
    return request.app.state.run_service


# Health check endpoint (must be before parameterized routes)
@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "runs"}


@router.post("/start", response_model=RunStartResponse)
async def start_run(
    request: Optional[RunStartRequest] = None,
    service: RunService = Depends(get_run_service),
):
    """Start a funnel audit; returns immediately while the run continues in the background"""
    try:
        state = await service.start_run(request.store_url if request else None)
    except InvalidStoreUrlError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return state


@router.get("/{run_id}")
async def get_run(run_id: str, service: RunService = Depends(get_run_service)) -> Dict[str, Any]:
    """Poll a run: running marker, or the full report once terminal"""
    state = service.get_run(run_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Run not found")
    if state["status"] == RunStatus.RUNNING.value:
        return state
    return RunReport.model_validate(state).model_dump(mode="json", exclude_unset=True)
