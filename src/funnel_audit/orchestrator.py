"""
Funnel orchestrator.

Drives one page-agent session through the purchase funnel:

    init -> navigate -> product discovery -> product page UX -> add to cart
         -> checkout navigation -> checkout form fill (+ checkout UX) -> score

Each gated stage runs only while no drop-off has been recorded. Stage-local failures
become findings (and, for gated stages, a drop-off step) and the run still completes;
only session initialization, navigation to the store or an exception escaping the
pipeline produce a failed result. ``run`` never raises and closes the session exactly
once on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from funnel_audit import prompts
from funnel_audit.classifier import FindingLog, classify, evidence_snippet, is_affirmative, observation_text
from funnel_audit.exceptions import SessionInitError
from funnel_audit.logging_utils import log_event
from funnel_audit.models import AnalysisResult, DropOffStep, FunnelRun, RunStatus
from funnel_audit.page_agent import PageAgent
from funnel_audit.rules import (
    ADD_TO_CART_SUCCESS,
    ANALYSIS_FAILED,
    CART_PAGE,
    CART_RULES,
    CHECKOUT_FAILED,
    CHECKOUT_FORM_ISSUES,
    CHECKOUT_NAV_UNCLEAR,
    CHECKOUT_RULES,
    CHECKOUT_SURFACE,
    FAST_ADD_TO_CART,
    HOMEPAGE_RULES,
    LANDING_PAGE,
    NO_PRODUCTS,
    PRODUCT_PAGE_RULES,
    UX_ANALYSIS_INCOMPLETE,
    cart_has_items,
    diagnose_add_to_cart,
)
from funnel_audit.scoring import DEFAULT_WEIGHTS, ScoringWeights, score
from funnel_audit.strategies import ADD_TO_CART_LADDER, PRODUCT_CLICK_LADDER, Strategy, run_ladder
from funnel_audit.timeline import TimelineRecorder

logger = logging.getLogger(__name__)

FORM_FILLED_ACTION = "Filled checkout form"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CheckoutProfile:
    """Synthetic shopper identity typed into checkout forms."""
    email: str = "mystery.shopper@example.com"
    phone: str = "5551234567"
    first_name: str = "Test"
    last_name: str = "Shopper"
    address: str = "123 Main Street"
    city: str = "Istanbul"
    postal_code: str = "34000"
    country: str = "Turkey"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "CheckoutProfile":
        data = data or {}
        known = {k: str(v) for k, v in data.items() if k in cls.__dataclass_fields__ and v not in (None, "")}
        return cls(**known)


@dataclass(frozen=True)
class OrchestratorConfig:
    settle_delay_sec: float = 2.0
    max_product_attempts: int = 2
    max_add_to_cart_attempts: int = 3
    fast_add_to_cart_sec: float = 30.0
    checkout_profile: CheckoutProfile = field(default_factory=CheckoutProfile)
    weights: ScoringWeights = DEFAULT_WEIGHTS

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "OrchestratorConfig":
        orch = settings.get("orchestrator") or {}
        return cls(
            settle_delay_sec=max(0.0, float(orch.get("settle_delay_sec", cls.settle_delay_sec))),
            max_product_attempts=max(1, int(orch.get("max_product_attempts", cls.max_product_attempts))),
            max_add_to_cart_attempts=max(1, int(orch.get("max_add_to_cart_attempts", cls.max_add_to_cart_attempts))),
            fast_add_to_cart_sec=float(orch.get("fast_add_to_cart_sec", cls.fast_add_to_cart_sec)),
            checkout_profile=CheckoutProfile.from_mapping(settings.get("checkout_profile")),
        )


@dataclass
class _RunContext:
    run: FunnelRun
    findings: FindingLog
    timeline: TimelineRecorder
    started: float


class FunnelOrchestrator:
    def __init__(
        self,
        agent: PageAgent,
        config: Optional[OrchestratorConfig] = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.agent = agent
        self.config = config or OrchestratorConfig()
        self._sleep = sleep
        self._clock = clock
        self._now = now

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    async def run(self, store_url: str, run_id: Optional[str] = None) -> AnalysisResult:
        run = FunnelRun(run_id=run_id or str(uuid.uuid4()), store_url=store_url)
        ctx = _RunContext(run=run, findings=FindingLog(), timeline=TimelineRecorder(now=self._now), started=self._clock())
        log_event(logger, logging.INFO, "run_start", run_id=run.run_id, store_url=store_url)
        try:
            await self._init_session(ctx)
            await self._navigate(ctx)
            await self._discover_product(ctx)
            if not run.dropped_off:
                await self._analyze_product_page(ctx)
                await self._add_to_cart(ctx)
            if not run.dropped_off and run.add_to_cart_success:
                await self._go_to_checkout(ctx)
            if not run.dropped_off and run.checkout_reached:
                await self._fill_checkout(ctx)
            result = self._completed(ctx)
        except Exception as e:
            logger.error(f"Analysis of {store_url} failed: {e}", exc_info=True)
            result = self._failed(ctx, e)
        finally:
            await self._close()
        log_event(
            logger,
            logging.INFO if result.status == RunStatus.COMPLETED else logging.ERROR,
            "run_complete" if result.status == RunStatus.COMPLETED else "run_error",
            run_id=result.run_id,
            status=result.status.value,
            score=result.score,
            drop_off_step=result.metrics.get("drop_off_step"),
            error=result.error,
        )
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    async def _init_session(self, ctx: _RunContext) -> None:
        try:
            session_id = await self.agent.init()
        except Exception as e:
            ctx.timeline.record("Started browser session", ctx.run.store_url, False)
            raise SessionInitError(f"Failed to initialize browser session: {e}") from e
        ctx.run.session_url = self.agent.session_url()
        ctx.timeline.record("Started browser session", ctx.run.store_url, True)
        logger.info(f"Browser session ready: session_id={session_id} replay={ctx.run.session_url}")

    async def _navigate(self, ctx: _RunContext) -> None:
        await self._act(ctx, prompts.render(prompts.NAVIGATE, {"url": ctx.run.store_url}), "Navigated to store")
        await self._settle()
        self._stage_complete(ctx, "navigate")

    async def _discover_product(self, ctx: _RunContext) -> None:
        last_observation: List[Any] = []

        async def attempt(strategy: Strategy) -> None:
            await self._act(ctx, strategy.instruction, strategy.label)
            await self._settle()

        async def probe(strategy: Strategy) -> bool:
            observation = await self.agent.extract(prompts.PRODUCT_PAGE_CHECK)
            last_observation.append(observation)
            reached = is_affirmative(observation)
            ctx.timeline.record("Verified product page", await self._current_url(ctx), reached)
            return reached

        try:
            await self._leave_landing_page(ctx)
            outcome = await run_ladder(PRODUCT_CLICK_LADDER, attempt, probe, self.config.max_product_attempts)
        except Exception as e:
            logger.warning(f"Product discovery failed: {e}", exc_info=True)
            self._drop_off(ctx, DropOffStep.PRODUCT_DISCOVERY, NO_PRODUCTS.finding(str(e)))
            return
        if not outcome.reached:
            if last_observation:
                evidence = evidence_snippet(observation_text(last_observation[-1]))
            else:
                evidence = outcome.last_error or ""
            self._drop_off(ctx, DropOffStep.PRODUCT_DISCOVERY, NO_PRODUCTS.finding(evidence))
            return
        self._stage_complete(ctx, "product_discovery", attempts=outcome.attempts)

    async def _leave_landing_page(self, ctx: _RunContext) -> None:
        """Classify the homepage and, if it only links to the shop, open a category first."""
        try:
            observation = await self.agent.extract(prompts.LANDING_CHECK)
        except Exception as e:
            logger.warning(f"Homepage observation failed: {e}")
            return
        ctx.findings.extend(classify(observation, HOMEPAGE_RULES))
        if not LANDING_PAGE.matches(observation):
            return

        logger.info("Landing page detected; opening the product catalog")
        url_before = await self._current_url(ctx)
        try:
            await self._act(ctx, prompts.OPEN_CATALOG, "Opened product catalog")
            await self._settle()
            moved = await self._current_url(ctx) != url_before
        except Exception as e:
            logger.warning(f"Opening the product catalog failed: {e}")
            moved = False
        if not moved:
            # menu still open, target the dropdown directly
            await self._act(ctx, prompts.CLOSE_MENU_AND_OPEN_CATEGORY, "Opened category from navigation menu")
            await self._settle()

    async def _analyze_product_page(self, ctx: _RunContext) -> None:
        await self._ux_extract(ctx, prompts.PRODUCT_PAGE_UX, PRODUCT_PAGE_RULES, "product page")

    async def _add_to_cart(self, ctx: _RunContext) -> None:
        run = ctx.run

        async def attempt(strategy: Strategy) -> None:
            await self._act(ctx, strategy.instruction, strategy.label)
            await self._settle()

        async def probe(strategy: Strategy) -> bool:
            if strategy.retry_when is None:
                return True
            try:
                observation = await self.agent.extract(prompts.VARIANT_ERROR_CHECK)
            except Exception as e:
                logger.warning(f"Variant error check failed: {e}")
                return True
            if strategy.retry_when.matches(observation):
                logger.info(f"Variant selection still required after '{strategy.label}'")
                return False
            return True

        outcome = await run_ladder(ADD_TO_CART_LADDER, attempt, probe, self.config.max_add_to_cart_attempts)
        await self._settle()

        cart_error: Optional[str] = None
        try:
            cart_observation = await self.agent.extract(prompts.CART_STATE)
        except Exception as e:
            logger.warning(f"Cart state check failed: {e}")
            cart_observation, cart_error = None, str(e)

        url = await self._current_url(ctx)
        if cart_observation is not None and cart_has_items(cart_observation):
            elapsed = max(0.0, self._clock() - ctx.started)
            seconds = int(round(elapsed))
            run.add_to_cart_success = True
            run.time_to_add_to_cart_seconds = seconds
            ctx.timeline.record("Added product to cart", url, True)
            evidence = evidence_snippet(observation_text(cart_observation))
            ctx.findings.add(ADD_TO_CART_SUCCESS.finding(evidence, seconds=seconds))
            if elapsed <= self.config.fast_add_to_cart_sec:
                ctx.findings.add(FAST_ADD_TO_CART.finding(evidence, seconds=seconds))
            self._stage_complete(ctx, "add_to_cart", seconds=seconds)
            await self._ux_extract(ctx, prompts.CART_EXPERIENCE, CART_RULES, "cart")
            return

        ctx.timeline.record("Added product to cart", url, False)
        ladder_error = None if outcome.reached else outcome.last_error
        try:
            diagnostic = await self.agent.extract(prompts.ADD_TO_CART_DIAGNOSTIC)
            rule = diagnose_add_to_cart(diagnostic)
            evidence = (
                evidence_snippet(observation_text(diagnostic))
                or ladder_error
                or evidence_snippet(observation_text(cart_observation))
                or cart_error
            )
        except Exception as e:
            logger.warning(f"Add-to-cart diagnostic failed: {e}")
            rule = diagnose_add_to_cart(cart_observation)
            evidence = ladder_error or evidence_snippet(observation_text(cart_observation)) or cart_error or str(e)
        self._drop_off(ctx, DropOffStep.ADD_TO_CART, rule.finding(evidence))

    async def _go_to_checkout(self, ctx: _RunContext) -> None:
        try:
            await self._act(ctx, prompts.GO_TO_CHECKOUT, "Navigated to cart/checkout")
            await self._settle()
            observation = await self.agent.extract(prompts.CURRENT_PAGE_CHECK)
            if CART_PAGE.matches(observation):
                await self._act(ctx, prompts.PROCEED_TO_CHECKOUT, "Proceeded to checkout")
                await self._settle()
        except Exception as e:
            logger.warning(f"Checkout navigation failed: {e}", exc_info=True)
            self._drop_off(ctx, DropOffStep.CHECKOUT_NAVIGATION, CHECKOUT_FAILED.finding(str(e)))
            return
        ctx.run.checkout_reached = True
        if not CHECKOUT_SURFACE.matches(observation):
            ctx.findings.add(CHECKOUT_NAV_UNCLEAR.finding(evidence_snippet(observation_text(observation))))
        self._stage_complete(ctx, "checkout_navigation")

    async def _fill_checkout(self, ctx: _RunContext) -> None:
        values = asdict(self.config.checkout_profile)
        steps = (
            (prompts.GUEST_CHECKOUT, "Selected guest checkout"),
            (prompts.FILL_CONTACT, "Filled contact information"),
            (prompts.FILL_NAME, "Filled name fields"),
            (prompts.OPEN_ADDRESS_FORM, "Opened address form"),
            (prompts.FILL_ADDRESS, "Filled address fields"),
            (prompts.SAVE_ADDRESS_MODAL, "Saved address"),
            (prompts.SELECT_SHIPPING, "Selected shipping method"),
            (prompts.ADVANCE_TO_PAYMENT, "Advanced to payment step"),
        )
        errors: List[str] = []
        for template, label in steps:
            try:
                await self._act(ctx, prompts.render(template, values), label)
            except Exception as e:
                logger.info(f"Checkout step '{label}' skipped: {e}")
                errors.append(f"{label}: {e}")
            await self._settle()
        if len(errors) == len(steps):
            logger.warning("Checkout form could not be filled: every step failed")
            ctx.findings.add(CHECKOUT_FORM_ISSUES.finding(evidence_snippet("; ".join(errors))))
        else:
            ctx.timeline.record(FORM_FILLED_ACTION, await self._current_url(ctx), True)
            ctx.run.checkout_form_filled = True
            self._stage_complete(ctx, "checkout_form", skipped_steps=len(errors))
        await self._ux_extract(ctx, prompts.CHECKOUT_UX, CHECKOUT_RULES, "checkout page")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _act(self, ctx: _RunContext, instruction: str, label: str) -> None:
        """Run one action and record it on the timeline, re-raising its failure."""
        try:
            await self.agent.act(instruction)
        except Exception:
            ctx.timeline.record(label, await self._current_url(ctx), False)
            raise
        ctx.timeline.record(label, await self._current_url(ctx), True)

    async def _ux_extract(self, ctx: _RunContext, prompt: str, rules, page: str) -> None:
        try:
            observation = await self.agent.extract(prompt)
        except Exception as e:
            logger.warning(f"UX analysis of the {page} failed: {e}", exc_info=True)
            ctx.findings.add(UX_ANALYSIS_INCOMPLETE.finding(str(e), page=page))
            return
        added = ctx.findings.extend(classify(observation, rules))
        logger.info(f"UX analysis of the {page}: {added} new findings")

    async def _current_url(self, ctx: _RunContext) -> str:
        try:
            url = await self.agent.current_url()
        except Exception:
            return ctx.run.store_url
        return url or ctx.run.store_url

    async def _settle(self) -> None:
        if self.config.settle_delay_sec > 0:
            await self._sleep(self.config.settle_delay_sec)

    async def _close(self) -> None:
        try:
            await self.agent.close()
        except Exception as e:
            logger.warning(f"Closing the browser session failed: {e}")

    def _drop_off(self, ctx: _RunContext, step: DropOffStep, finding) -> None:
        ctx.run.drop_off_step = step
        ctx.findings.add(finding)
        log_event(logger, logging.WARNING, "drop_off", run_id=ctx.run.run_id, step=step.value, finding=finding.id)

    def _stage_complete(self, ctx: _RunContext, stage: str, **fields: Any) -> None:
        log_event(logger, logging.INFO, "stage_complete", run_id=ctx.run.run_id, stage=stage, **fields)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    def _completed(self, ctx: _RunContext) -> AnalysisResult:
        metrics = ctx.run.metrics()
        findings = ctx.findings.items
        return AnalysisResult(
            run_id=ctx.run.run_id,
            store_url=ctx.run.store_url,
            status=RunStatus.COMPLETED,
            score=score(metrics, findings, self.config.weights),
            metrics=metrics,
            findings=findings,
            timeline=ctx.timeline.events,
            session_url=ctx.run.session_url,
        )

    def _failed(self, ctx: _RunContext, error: BaseException) -> AnalysisResult:
        return failed_result(
            run_id=ctx.run.run_id,
            store_url=ctx.run.store_url,
            error=str(error) or error.__class__.__name__,
            timeline=ctx.timeline.events,
            session_url=ctx.run.session_url,
        )


def failed_result(
    run_id: str,
    store_url: str,
    error: str,
    timeline: Optional[List] = None,
    session_url: Optional[str] = None,
) -> AnalysisResult:
    """Terminal result for an unrecoverable run: score 0, no funnel progress, one critical finding."""
    metrics: Dict[str, Any] = FunnelRun(
        run_id=run_id, store_url=store_url, drop_off_step=DropOffStep.INITIALIZATION
    ).metrics()
    return AnalysisResult(
        run_id=run_id,
        store_url=store_url,
        status=RunStatus.FAILED,
        score=0,
        metrics=metrics,
        findings=[ANALYSIS_FAILED.finding(error)],
        timeline=list(timeline or []),
        session_url=session_url,
        error=error,
    )


__all__ = ["FunnelOrchestrator", "OrchestratorConfig", "CheckoutProfile", "failed_result", "FORM_FILLED_ACTION"]
