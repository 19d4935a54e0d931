"""
Run service: starts funnel audits in the background and answers polls.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Callable, Dict, Optional

from funnel_audit.models import RunStatus
from funnel_audit.orchestrator import FunnelOrchestrator, failed_result
from funnel_audit.store_url import validate_store_url

from ..adapters.run_store import RunStore

logger = logging.getLogger(__name__)


class RunService:
    """One orchestrator (and one browser session) per run; state goes to the injected store"""

    def __init__(
        self,
        store: RunStore,
        orchestrator_factory: Callable[[], FunnelOrchestrator],
        run_timeout_sec: Optional[float] = None,
    ):
        self.store = store
        self._orchestrator_factory = orchestrator_factory
        self.run_timeout_sec = run_timeout_sec if run_timeout_sec and run_timeout_sec > 0 else None
        self._tasks: Dict[str, asyncio.Task] = {}

    async def start_run(self, store_url: Optional[str]) -> Dict[str, Any]:
        """Validate the URL, register the run as running and start it. Raises InvalidStoreUrlError."""
        url = validate_store_url(store_url)
        run_id = str(uuid.uuid4())
        state = {"run_id": run_id, "store_url": url, "status": RunStatus.RUNNING.value}
        self.store.put(run_id, state)
        task = asyncio.create_task(self._execute(run_id, url))
        self._tasks[run_id] = task
        task.add_done_callback(lambda _t, rid=run_id: self._tasks.pop(rid, None))
        logger.info(f"Run {run_id} started for {url}")
        return dict(state)

    async def _execute(self, run_id: str, store_url: str) -> None:
        orchestrator = self._orchestrator_factory()
        try:
            if self.run_timeout_sec:
                result = await asyncio.wait_for(orchestrator.run(store_url, run_id=run_id), self.run_timeout_sec)
            else:
                result = await orchestrator.run(store_url, run_id=run_id)
        except asyncio.CancelledError:
            logger.warning(f"Run {run_id} cancelled")
            self._store_cancelled(run_id, store_url)
            raise
        except asyncio.TimeoutError:
            logger.error(f"Run {run_id} timed out after {self.run_timeout_sec:g} seconds")
            result = failed_result(run_id, store_url, f"Analysis timed out after {self.run_timeout_sec:g} seconds")
        except Exception as e:
            logger.error(f"Run {run_id} crashed: {e}", exc_info=True)
            result = failed_result(run_id, store_url, str(e) or e.__class__.__name__)
        self.store.put(run_id, result.to_dict())
        logger.info(f"Run {run_id} finished: status={result.status.value} score={result.score}")

    def _store_cancelled(self, run_id: str, store_url: str) -> None:
        self.store.put(run_id, failed_result(run_id, store_url, "Analysis cancelled").to_dict())

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        state = self.store.get(run_id)
        if state is None:
            return None
        status = state.get("status", RunStatus.RUNNING.value)
        if status == RunStatus.RUNNING.value:
            return {"run_id": run_id, "status": status}
        return {**state, "run_id": run_id, "status": status}

    async def wait(self, run_id: str) -> None:
        """Wait for a run started by this service to finish (no-op if unknown or done)."""
        task = self._tasks.get(run_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        active = dict(self._tasks)
        for task in active.values():
            task.cancel()
        if active:
            await asyncio.gather(*active.values(), return_exceptions=True)
        # tasks cancelled before their first step never reach _execute's handler
        for run_id in active:
            state = self.store.get(run_id)
            if state and state.get("status") == RunStatus.RUNNING.value:
                self._store_cancelled(run_id, state.get("store_url", ""))
        close = getattr(self.store, "close", None)
        if callable(close):
            close()
