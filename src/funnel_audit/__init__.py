"""Automated mystery-shopper audit of an online store's purchase funnel."""

from funnel_audit.models import AnalysisResult, DropOffStep, Finding, FindingCategory, RunStatus, TimelineEvent
from funnel_audit.orchestrator import CheckoutProfile, FunnelOrchestrator, OrchestratorConfig

__version__ = "0.1.0"

__all__ = [
    "AnalysisResult",
    "CheckoutProfile",
    "DropOffStep",
    "Finding",
    "FindingCategory",
    "FunnelOrchestrator",
    "OrchestratorConfig",
    "RunStatus",
    "TimelineEvent",
]
