from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional

from funnel_audit.models import TimelineEvent


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimelineRecorder:
    """Append-only, causally ordered log of the actions a run attempted.

    Timestamps never go backwards: if the clock returns an earlier instant than the
    previous entry (clock skew, fake clocks), the previous timestamp is reused.
    """

    def __init__(self, now: Callable[[], datetime] = _utcnow):
        self._now = now
        self._events: List[TimelineEvent] = []
        self._last: Optional[datetime] = None

    def record(self, action: str, url: str, success: bool, screenshot: Optional[str] = None) -> TimelineEvent:
        ts = self._now()
        if self._last is not None and ts < self._last:
            ts = self._last
        self._last = ts
        event = TimelineEvent(
            timestamp=ts.isoformat(),
            action=action,
            url=url,
            success=success,
            screenshot=screenshot,
        )
        self._events.append(event)
        return event

    @property
    def events(self) -> List[TimelineEvent]:
        return list(self._events)

    def __iter__(self) -> Iterator[TimelineEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
