"""
Run one funnel audit from the command line.

Usage:
  funnel-audit https://shop.example.com
  funnel-audit https://shop.example.com --profile local --out report.json
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from funnel_audit.browser_agent import BrowserPageAgent
from funnel_audit.exceptions import InvalidStoreUrlError
from funnel_audit.logging_utils import setup_logging
from funnel_audit.models import AnalysisResult, RunStatus
from funnel_audit.orchestrator import FunnelOrchestrator, OrchestratorConfig
from funnel_audit.settings import SettingsLoadError, load_settings
from funnel_audit.store_url import validate_store_url

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="funnel-audit", description="Mystery-shop an online store's purchase funnel")
    parser.add_argument("store_url", help="Store homepage URL (http or https)")
    parser.add_argument("-c", "--config", help="Path to a base TOML config file")
    parser.add_argument("--profile", action="append", help="Profile name to merge on top of the base config")
    parser.add_argument("--out", help="Write the JSON report to this path")
    parser.add_argument("--quiet", action="store_true", help="Only print the one-line summary")
    parser.add_argument("--log-level", help="Override [logging].level")
    return parser


def summarize(result: AnalysisResult) -> str:
    drop_off = result.metrics.get("drop_off_step") or "none"
    line = f"{result.store_url}: score={result.score} status={result.status.value} drop_off={drop_off}"
    if result.session_url:
        line += f" replay={result.session_url}"
    return line


async def audit(store_url: str, settings, agent=None) -> AnalysisResult:
    agent = agent or BrowserPageAgent(settings)
    orchestrator = FunnelOrchestrator(agent, OrchestratorConfig.from_settings(settings))
    return await orchestrator.run(store_url)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    load_dotenv()
    try:
        store_url = validate_store_url(args.store_url)
        settings, _ = load_settings(
            config_path=Path(args.config).resolve() if args.config else None,
            profiles=args.profile or [],
        )
    except (InvalidStoreUrlError, SettingsLoadError) as exc:
        print(f"funnel-audit: error: {exc}", file=sys.stderr)
        return 2

    log_cfg = settings.get("logging") or {}
    setup_logging(args.log_level or log_cfg.get("level", "INFO"), log_cfg.get("log_file") or None)

    result = asyncio.run(audit(store_url, settings))
    report = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(report + "\n", encoding="utf-8")
        logger.info(f"Report saved to: {out}")
    print(summarize(result))
    if not args.quiet:
        print(report)
    return 0 if result.status == RunStatus.COMPLETED else 1


if __name__ == "__main__":
    raise SystemExit(main())
