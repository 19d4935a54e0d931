"""
Interface of the page-interaction capability the orchestrator drives.

One instance owns one live browsing session. ``act`` performs a best-effort UI action
described in natural language and raises when it cannot; ``extract`` returns an
unstructured observation (text, or anything JSON-serializable) about the current page.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class PageAgent(Protocol):
    async def init(self) -> Optional[str]:
        """Start the session; returns the provider session id when there is one."""
        ...

    async def act(self, instruction: str) -> None:
        ...

    async def extract(self, prompt: str) -> Any:
        ...

    async def current_url(self) -> str:
        ...

    async def close(self) -> None:
        ...

    def session_url(self) -> Optional[str]:
        """Replay link of the session, if the provider records one."""
        ...
