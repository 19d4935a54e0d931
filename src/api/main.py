from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from funnel_audit.browser_agent import BrowserPageAgent
from funnel_audit.logging_utils import setup_logging
from funnel_audit.orchestrator import FunnelOrchestrator, OrchestratorConfig
from funnel_audit.settings import load_settings

from .adapters.run_store import build_run_store
from .routes.runs import router as runs_router
from .services.run_service import RunService

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def _parse_cors(settings: Dict[str, Any]) -> list[str]:
    s = os.getenv("CORS_ALLOWED_ORIGINS", "")
    origins = [x.strip() for x in s.split(",") if x.strip()]
    return origins or list((settings.get("api") or {}).get("cors_origins") or [])


def build_run_service(settings: Dict[str, Any]) -> RunService:
    """Wire the run store and a per-run orchestrator factory from settings."""
    config = OrchestratorConfig.from_settings(settings)

    def orchestrator_factory() -> FunnelOrchestrator:
        return FunnelOrchestrator(BrowserPageAgent(settings), config)

    timeout = (settings.get("api") or {}).get("run_timeout_sec")
    return RunService(build_run_store(settings), orchestrator_factory, run_timeout_sec=timeout)


def create_app(run_service: Optional[RunService] = None, settings: Optional[Dict[str, Any]] = None) -> FastAPI:
    if settings is None:
        settings, _ = load_settings()
    log_cfg = settings.get("logging") or {}
    setup_logging(log_cfg.get("level", "INFO"), log_cfg.get("log_file") or None)

    app = FastAPI(title="Funnel Audit API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_cors(settings) or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.run_service = run_service or build_run_service(settings)
    app.include_router(runs_router, prefix="/api/run")

    # Add shutdown event handler
    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("[Server] Shutdown event triggered, cancelling active runs...")
        await app.state.run_service.shutdown()

    return app
