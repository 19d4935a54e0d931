"""
Escalating retry ladders.

A ladder is an ordered list of strategies, each more specific than the last. ``run_ladder``
walks it with one uniform loop: attempt the strategy's instruction, probe the page, stop
when the probe reports the goal reached, otherwise move to the next strategy. The loop is
bounded by ``max_attempts`` whatever the length of the list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from funnel_audit import prompts
from funnel_audit.classifier import Lexicon
from funnel_audit.rules import VARIANT_ERROR, VARIANT_STILL_REQUIRED

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Strategy:
    label: str
    instruction: str
    # lexicon flagging that the next strategy is still needed after this one
    retry_when: Optional[Lexicon] = None


@dataclass
class LadderOutcome:
    reached: bool = False
    attempts: int = 0
    strategy: Optional[Strategy] = None
    errors: List[str] = field(default_factory=list)

    @property
    def last_error(self) -> Optional[str]:
        return self.errors[-1] if self.errors else None


PRODUCT_CLICK_LADDER = (
    Strategy("Clicked on product", prompts.CLICK_PRODUCT),
    Strategy("Clicked on specific product", prompts.CLICK_SPECIFIC_PRODUCT),
)

ADD_TO_CART_LADDER = (
    Strategy("Clicked add to cart", prompts.ADD_TO_CART, retry_when=VARIANT_ERROR),
    Strategy("Selected variant and re-clicked add to cart", prompts.ADD_TO_CART_EXPLICIT_VARIANT, retry_when=VARIANT_STILL_REQUIRED),
    Strategy("Selected variant from dropdown and clicked add to cart", prompts.ADD_TO_CART_DROPDOWN_VARIANT),
)


async def run_ladder(
    strategies: Sequence[Strategy],
    attempt: Callable[[Strategy], Awaitable[Any]],
    probe: Callable[[Strategy], Awaitable[bool]],
    max_attempts: int,
) -> LadderOutcome:
    """Run strategies in order until ``probe`` returns True or attempts run out.

    An exception from ``attempt`` counts as a failed attempt and escalates to the next
    strategy without probing. Exceptions from ``probe`` propagate to the caller.
    """
    outcome = LadderOutcome()
    for strategy in list(strategies)[: max(0, max_attempts)]:
        outcome.attempts += 1
        outcome.strategy = strategy
        try:
            await attempt(strategy)
        except Exception as e:
            logger.warning("Strategy '%s' failed: %s", strategy.label, e)
            outcome.errors.append(str(e))
            continue
        if await probe(strategy):
            outcome.reached = True
            return outcome
        logger.info("Strategy '%s' did not reach its goal; escalating", strategy.label)
    return outcome
