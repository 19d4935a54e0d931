"""
Conversion-readiness score.

score = funnel component (max 60) + UX-quality component (max 40), clamped to [0, 100].
Funnel: +20 each for add-to-cart, checkout reached and checkout form filled.
UX quality: 40 minus 15 per critical, 8 per warning and 5 per suggestion finding,
floored at 0. Positive findings do not move the score.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from funnel_audit.models import Finding, FindingCategory


@dataclass(frozen=True)
class ScoringWeights:
    add_to_cart: int = 20
    checkout_reached: int = 20
    form_filled: int = 20
    ux_base: int = 40
    critical: int = 15
    warning: int = 8
    suggestion: int = 5

    def penalty(self, category: FindingCategory) -> int:
        return {
            FindingCategory.CRITICAL: self.critical,
            FindingCategory.WARNING: self.warning,
            FindingCategory.SUGGESTION: self.suggestion,
        }.get(category, 0)


DEFAULT_WEIGHTS = ScoringWeights()


def clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def funnel_points(metrics: Mapping[str, Any], weights: ScoringWeights = DEFAULT_WEIGHTS) -> int:
    points = 0
    if metrics.get("add_to_cart_success"):
        points += weights.add_to_cart
    if metrics.get("checkout_reached"):
        points += weights.checkout_reached
    if metrics.get("checkout_form_filled"):
        points += weights.form_filled
    return points


def ux_points(findings: Iterable[Finding], weights: ScoringWeights = DEFAULT_WEIGHTS) -> int:
    penalty = sum(weights.penalty(f.category) for f in findings)
    return max(0, weights.ux_base - penalty)


def score(metrics: Mapping[str, Any], findings: Iterable[Finding], weights: ScoringWeights = DEFAULT_WEIGHTS) -> int:
    """Integer score in [0, 100] for a run's metrics snapshot and findings."""
    return clamp(funnel_points(metrics, weights) + ux_points(findings, weights))
