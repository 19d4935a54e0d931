from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

ROOT_LOGGER = "funnel_audit"
_HANDLER_TAG = "_funnel_audit_handler"


def setup_logging(level: str | int = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Set up the package logger to log to the console and, optionally, a file.

    Calling it again replaces the handlers it installed before instead of stacking them.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()

    c_handler = logging.StreamHandler()
    c_handler.setLevel(level)
    c_handler.setFormatter(logging.Formatter('%(message)s'))
    setattr(c_handler, _HANDLER_TAG, True)
    logger.addHandler(c_handler)

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        f_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        f_handler.setLevel(level)
        f_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        setattr(f_handler, _HANDLER_TAG, True)
        logger.addHandler(f_handler)

    return logger


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Emit one compact JSON line for a machine-readable run event."""
    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str, separators=(",", ":")))


__all__ = ["setup_logging", "log_event", "ROOT_LOGGER"]
