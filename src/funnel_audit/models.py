"""
Data model for a funnel run and its terminal report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class FindingCategory(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    SUGGESTION = "suggestion"
    POSITIVE = "positive"


class DropOffStep(str, Enum):
    """First funnel stage at which the store failed the shopper."""
    INITIALIZATION = "initialization"
    PRODUCT_DISCOVERY = "product_discovery"
    ADD_TO_CART = "add_to_cart"
    CHECKOUT_NAVIGATION = "checkout_navigation"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Finding:
    id: str
    category: FindingCategory
    title: str
    description: str
    evidence: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category.value,
            "title": self.title,
            "description": self.description,
            "evidence": self.evidence,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class TimelineEvent:
    timestamp: str  # ISO-8601, UTC
    action: str
    url: str
    success: bool
    screenshot: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timestamp": self.timestamp,
            "action": self.action,
            "url": self.url,
            "success": self.success,
        }
        if self.screenshot:
            data["screenshot"] = self.screenshot
        return data


@dataclass
class FunnelRun:
    """Mutable progress of one funnel run. Owned by the orchestrator."""
    run_id: str
    store_url: str
    add_to_cart_success: bool = False
    checkout_reached: bool = False
    checkout_form_filled: bool = False
    drop_off_step: Optional[DropOffStep] = None
    time_to_add_to_cart_seconds: Optional[int] = None
    session_url: Optional[str] = None

    @property
    def dropped_off(self) -> bool:
        return self.drop_off_step is not None

    def metrics(self) -> Dict[str, Any]:
        return {
            "add_to_cart_success": self.add_to_cart_success,
            "time_to_add_to_cart_seconds": self.time_to_add_to_cart_seconds,
            "checkout_reached": self.checkout_reached,
            "checkout_form_filled": self.checkout_form_filled,
            "drop_off_step": self.drop_off_step.value if self.drop_off_step else None,
        }


@dataclass(frozen=True)
class AnalysisResult:
    run_id: str
    store_url: str
    status: RunStatus  # completed | failed
    score: int
    metrics: Dict[str, Any]
    findings: List[Finding] = field(default_factory=list)
    timeline: List[TimelineEvent] = field(default_factory=list)
    session_url: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Externally visible report shape."""
        data: Dict[str, Any] = {
            "run_id": self.run_id,
            "store_url": self.store_url,
            "status": self.status.value,
            "score": self.score,
            "metrics": dict(self.metrics),
            "findings": [f.to_dict() for f in self.findings],
            "timeline": [e.to_dict() for e in self.timeline],
            "session_url": self.session_url,
        }
        if self.error is not None:
            data["error"] = self.error
        return data
