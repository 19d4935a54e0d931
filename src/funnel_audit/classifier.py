"""
Keyword classification of free-text page observations.

Observations coming back from the page agent are opaque: plain prose, JSON-ish dicts,
lists. Everything is serialized to text once (``observation_text``), lowercased, and
matched against declarative ``Lexicon`` predicates. A ``Rule`` pairs a lexicon with a
finding template; ``classify`` evaluates a rule table in order and is a pure function of
(observation, rules).
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Pattern, Sequence, Tuple, Union

from funnel_audit.models import Finding, FindingCategory

Term = Union[str, Pattern[str]]

EVIDENCE_RADIUS = 120
_ANSWER_RE = re.compile(r"\b(yes|true|evet|no|false|hay[ıi]r)\b")
_AFFIRMATIVE = {"yes", "true", "evet"}


def observation_text(observation: Any) -> str:
    """Serialize an observation to text before any matching."""
    if observation is None:
        return ""
    if isinstance(observation, str):
        return observation
    if isinstance(observation, bytes):
        return observation.decode("utf-8", errors="replace")
    try:
        return json.dumps(observation, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(observation)


def fold(text: str) -> str:
    """Lowercase for matching. Turkish dotted I folds to a plain "i", keeping the length."""
    return text.replace("İ", "i").lower()


def normalize(observation: Any) -> str:
    return fold(observation_text(observation))


def _find(term: Term, lowered: str) -> Optional[Tuple[int, int]]:
    if isinstance(term, str):
        idx = lowered.find(term)
        return (idx, idx + len(term)) if idx >= 0 else None
    m = term.search(lowered)
    return m.span() if m else None


@dataclass(frozen=True)
class Lexicon:
    """Keyword predicate over lowercased text.

    Matches when at least one ``any_of`` term is present (skipped if empty), every
    ``all_of`` group has at least one present term, and no ``none_of`` term is present.
    Terms are lowercase substrings or compiled regexes.
    """
    any_of: Tuple[Term, ...] = ()
    all_of: Tuple[Tuple[Term, ...], ...] = ()
    none_of: Tuple[Term, ...] = ()

    def first_hit(self, lowered: str) -> Optional[Tuple[int, int]]:
        if not self.any_of and not self.all_of:
            return None
        for term in self.none_of:
            if _find(term, lowered):
                return None
        hit: Optional[Tuple[int, int]] = None
        if self.any_of:
            spans = [s for s in (_find(t, lowered) for t in self.any_of) if s]
            if not spans:
                return None
            hit = min(spans)
        for group in self.all_of:
            spans = [s for s in (_find(t, lowered) for t in group) if s]
            if not spans:
                return None
            if hit is None:
                hit = min(spans)
        return hit

    def matches(self, observation: Any) -> bool:
        return self.first_hit(normalize(observation)) is not None


@dataclass(frozen=True)
class Rule:
    id: str
    category: FindingCategory
    title: str
    description: str
    recommendation: str
    when: Lexicon = field(default_factory=Lexicon)

    def finding(self, evidence: str, **fmt: Any) -> Finding:
        return Finding(
            id=self.id,
            category=self.category,
            title=self.title,
            description=self.description.format(**fmt) if fmt else self.description,
            evidence=evidence,
            recommendation=self.recommendation,
        )


def evidence_snippet(text: str, span: Optional[Tuple[int, int]] = None, radius: int = EVIDENCE_RADIUS) -> str:
    """Excerpt of the raw observation around a matched span."""
    text = text.strip()
    if not text:
        return ""
    if span is None:
        return text if len(text) <= 2 * radius else text[: 2 * radius].rstrip() + "..."
    start = max(0, span[0] - radius)
    end = min(len(text), span[1] + radius)
    snippet = text[start:end].strip()
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet


def classify(observation: Any, rules: Sequence[Rule]) -> List[Finding]:
    """Map one observation to the findings of every rule that fires, in table order."""
    raw = observation_text(observation)
    lowered = fold(raw)
    # a few code points still change length when lowercased
    source = raw if len(raw) == len(lowered) else lowered
    findings: List[Finding] = []
    for rule in rules:
        span = rule.when.first_hit(lowered)
        if span is None:
            continue
        findings.append(rule.finding(evidence_snippet(source, span)))
    return findings


def first_answer(observation: Any) -> Optional[bool]:
    """Interpret a yes/no observation by its first yes/no token; None if neither appears."""
    m = _ANSWER_RE.search(normalize(observation))
    if not m:
        return None
    return m.group(1) in _AFFIRMATIVE


def is_affirmative(observation: Any) -> bool:
    return first_answer(observation) is True


class FindingLog:
    """Ordered findings of one run; the first finding recorded for an id wins."""

    def __init__(self) -> None:
        self._items: List[Finding] = []
        self._ids: set[str] = set()

    def add(self, finding: Finding) -> bool:
        if finding.id in self._ids:
            return False
        self._ids.add(finding.id)
        self._items.append(finding)
        return True

    def extend(self, findings: Iterable[Finding]) -> int:
        return sum(1 for f in findings if self.add(f))

    @property
    def items(self) -> List[Finding]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
