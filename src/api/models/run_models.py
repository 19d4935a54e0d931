"""
Pydantic models for the funnel run API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from funnel_audit.models import RunStatus


class RunStartRequest(BaseModel):
    """Request to start a funnel audit"""
    store_url: Optional[str] = None


class RunStartResponse(BaseModel):
    """Response from starting a run"""
    run_id: str
    store_url: str
    status: RunStatus


class FindingOut(BaseModel):
    id: str
    category: str
    title: str
    description: str
    evidence: str
    recommendation: str


class TimelineEventOut(BaseModel):
    timestamp: str
    action: str
    url: str
    success: bool
    screenshot: Optional[str] = None


class RunReport(BaseModel):
    """Terminal report of a run, as stored and served"""
    run_id: str
    store_url: str
    status: RunStatus
    score: int
    metrics: Dict[str, Any]
    findings: List[FindingOut]
    timeline: List[TimelineEventOut]
    session_url: Optional[str] = None
    error: Optional[str] = None
