from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

import requests


DEFAULT_API_BASE = "https://api.browserbase.com/v1"
DEFAULT_REPLAY_URL = "https://browserbase.com/sessions/{session_id}"
_SESSION_KEYS = ("id", "sessionId", "session_id")
_CDP_KEYS = ("connectUrl", "wsEndpoint", "cdpUrl", "wsUrl", "url")

logger = logging.getLogger(__name__)


class BrowserbaseError(RuntimeError):
    pass


def _pick(data: Dict[str, Any], keys: Tuple[str, ...], prefix: str = "") -> Optional[str]:
    for source in (data, data.get("session") or {}):
        if not isinstance(source, dict):
            continue
        for key in keys:
            val = source.get(key)
            if isinstance(val, str) and val and val.startswith(prefix):
                return val
    return None


def _api_base(api_base: Optional[str]) -> str:
    return (api_base or os.getenv("BROWSERBASE_API_BASE") or DEFAULT_API_BASE).rstrip("/")


def resolve_credentials(project_id: Optional[str], api_key: Optional[str]) -> Tuple[str, str]:
    pid = project_id or os.getenv("BROWSERBASE_PROJECT_ID")
    key = api_key or os.getenv("BROWSERBASE_API_KEY")
    if not pid:
        raise BrowserbaseError("Missing Browserbase project id. Set BROWSERBASE_PROJECT_ID or provide in config.")
    if not key:
        raise BrowserbaseError("Missing Browserbase API key. Set BROWSERBASE_API_KEY or provide in config.")
    return pid, key


def create_session(
    project_id: str,
    api_key: str,
    *,
    api_base: Optional[str] = None,
    session_options: Optional[Dict[str, Any]] = None,
    timeout_sec: int = 30,
) -> Tuple[str, Optional[str]]:
    """Create a remote browser session; returns ``(cdp_url, session_id)``."""
    url = f"{_api_base(api_base)}/sessions"
    headers = {
        "X-BB-API-Key": api_key,
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    payload: Dict[str, Any] = {"projectId": project_id}
    if session_options:
        payload.update(session_options)
    try:
        resp = requests.post(url, headers=headers, json=payload, timeout=timeout_sec)
    except requests.RequestException as e:
        raise BrowserbaseError(f"Failed to reach Browserbase: {e}") from e
    if resp.status_code // 100 != 2:
        raise BrowserbaseError(f"Failed to create Browserbase session: {resp.status_code} {resp.text}")
    data = resp.json() if resp.content else {}
    cdp_url = _pick(data, _CDP_KEYS, prefix="ws")
    session_id = _pick(data, _SESSION_KEYS)
    if not cdp_url:
        raise BrowserbaseError(f"Browserbase session created but no CDP URL returned: {data}")
    return cdp_url, session_id


def close_session(session_id: str, api_key: str, *, api_base: Optional[str] = None, timeout_sec: int = 10) -> None:
    """Ask Browserbase to release the session. Best effort: failures are logged only."""
    url = f"{_api_base(api_base)}/sessions/{session_id}"
    headers = {
        "X-BB-API-Key": api_key,
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    project_id = os.getenv("BROWSERBASE_PROJECT_ID")
    payload: Dict[str, Any] = {"status": "REQUEST_RELEASE"}
    if project_id:
        payload["projectId"] = project_id
    try:
        requests.post(url, headers=headers, json=payload, timeout=timeout_sec)
    except requests.RequestException as e:
        logger.warning(f"Failed to release Browserbase session {session_id}: {e}")


def session_replay_url(session_id: Optional[str], template: Optional[str] = None) -> Optional[str]:
    if not session_id:
        return None
    return (template or DEFAULT_REPLAY_URL).format(session_id=session_id)


__all__ = [
    "BrowserbaseError",
    "resolve_credentials",
    "create_session",
    "close_session",
    "session_replay_url",
    "DEFAULT_API_BASE",
    "DEFAULT_REPLAY_URL",
]
