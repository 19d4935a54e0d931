# -*- coding: utf-8 -*-
# Copyright (c) 2024 OSU Natural Language Processing Group
#
# Licensed under the OpenRAIL-S License;
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.licenses.ai/ai-pubs-open-rails-vz1
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Playwright-backed page agent.

Runs a Chromium page either on a Browserbase remote session (connected over CDP) or
locally. Natural-language ``act`` instructions are grounded against the page's visible
interactive elements by asking the LLM for a small JSON action plan; ``extract`` answers
a question about the page from its URL, title and visible text.

Action plan format expected from the model:

    {"actions": [{"action": "CLICK", "element": 3}, {"action": "TYPE", "element": 5, "value": "..."}]}
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from playwright.async_api import async_playwright

from funnel_audit.exceptions import ActionNotPossibleError, ExtractionError, SessionInitError
from funnel_audit.inference_engine import engine_factory
from funnel_audit.runtime.browserbase_client import (
    close_session,
    create_session,
    resolve_credentials,
    session_replay_url,
)

logger = logging.getLogger(__name__)

ACTIONS = ("CLICK", "TYPE", "SELECT", "HOVER")
MAX_ELEMENTS = 150
MAX_PAGE_TEXT = 12000
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"

_NAVIGATE_RE = re.compile(r"^\s*navigate to\s+(\S+)\s*$", re.IGNORECASE)
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

ACT_SYSTEM_PROMPT = (
    "You operate a web browser for a shopper. You get an instruction and a numbered list of the "
    "visible interactive elements of the current page. Reply with JSON only: "
    '{"actions": [{"action": "CLICK|TYPE|SELECT|HOVER", "element": <number>, "value": <text or null>}]}. '
    "Use the fewest actions that carry out the instruction. If the instruction is conditional and "
    'its condition does not hold, or nothing on the page fits, reply {"actions": []}. '
    "Never submit a payment or place an order."
)

EXTRACT_SYSTEM_PROMPT = (
    "You are a careful e-commerce UX analyst looking at a web page through its URL, title and "
    "visible text. Answer the question about the current page concisely and factually. When "
    "something asked about is absent, say explicitly that it is not visible or missing."
)

_INTERACTIVE_ELEMENTS_JS = """
() => {
  const selectors = [
    'a', 'button', 'input', 'select', 'textarea', 'summary',
    '[role="button"]', '[role="link"]', '[role="menuitem"]', '[role="option"]',
    '[role="tab"]', '[role="checkbox"]', '[role="radio"]', '[onclick]'
  ];
  const seen = new Set();
  const results = [];
  const vw = window.innerWidth;
  const vh = window.innerHeight;

  function buildXPath(el) {
    if (el.id) return `//*[@id="${el.id}"]`;
    const parts = [];
    while (el && el.nodeType === Node.ELEMENT_NODE) {
      let index = 1;
      let sibling = el.previousSibling;
      while (sibling) {
        if (sibling.nodeType === Node.ELEMENT_NODE && sibling.nodeName === el.nodeName) index++;
        sibling = sibling.previousSibling;
      }
      parts.unshift(`${el.nodeName.toLowerCase()}[${index}]`);
      el = el.parentNode;
    }
    return '/' + parts.join('/');
  }

  for (const sel of selectors) {
    document.querySelectorAll(sel).forEach(el => {
      const rect = el.getBoundingClientRect();
      if (rect.width <= 2 || rect.height <= 2) return;
      if (rect.bottom < 0 || rect.right < 0 || rect.y > vh * 3 || rect.x > vw) return;
      const style = window.getComputedStyle(el);
      if (style.visibility === 'hidden' || style.display === 'none') return;
      const text = (el.innerText || el.value || el.getAttribute('aria-label') || el.getAttribute('placeholder')
        || el.getAttribute('alt') || el.getAttribute('name') || el.getAttribute('title') || '').trim();
      const xpath = buildXPath(el);
      if (seen.has(xpath)) return;
      seen.add(xpath);
      const tag = el.tagName.toLowerCase();
      const type = el.getAttribute('type');
      const role = el.getAttribute('role');
      let options = null;
      if (tag === 'select') options = Array.from(el.options).slice(0, 20).map(o => o.text.trim());
      if (!text && !['input', 'select', 'textarea'].includes(tag)) return;
      results.push({
        tag, type, role, options,
        description: text.replace(/\\s+/g, ' ').slice(0, 120),
        disabled: !!el.disabled || el.getAttribute('aria-disabled') === 'true',
        selector: xpath,
      });
    });
  }
  return results;
}
"""


@dataclass(frozen=True)
class PlannedAction:
    action: str
    element: int
    value: Optional[str] = None


def format_elements(elements: List[Dict[str, Any]]) -> str:
    """Numbered, one-line-per-element listing shown to the model."""
    lines = []
    for idx, el in enumerate(elements):
        head = el.get("tag") or "element"
        if el.get("role"):
            head += f' role="{el["role"]}"'
        if el.get("type"):
            head += f' type="{el["type"]}"'
        line = f"[{idx}] <{head}> {el.get('description') or ''}".rstrip()
        if el.get("options"):
            line += " | options: " + ", ".join(el["options"])
        if el.get("disabled"):
            line += " (disabled)"
        lines.append(line)
    return "\n".join(lines)


def parse_action_plan(text: Optional[str], max_steps: int = 4) -> List[PlannedAction]:
    """Parse the model's JSON reply into at most ``max_steps`` actions; junk yields []."""
    if not text:
        return []
    cleaned = _FENCE_RE.sub("", text.strip()).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        m = re.search(r"\{.*\}|\[.*\]", cleaned, re.DOTALL)
        if not m:
            return []
        try:
            data = json.loads(m.group(0))
        except json.JSONDecodeError:
            return []
    if isinstance(data, dict):
        data = data.get("actions", [])
    if not isinstance(data, list):
        return []
    plan: List[PlannedAction] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        action = str(item.get("action", "")).upper()
        if action not in ACTIONS:
            continue
        try:
            element = int(item.get("element"))
        except (TypeError, ValueError):
            continue
        value = item.get("value")
        plan.append(PlannedAction(action=action, element=element, value=None if value is None else str(value)))
        if len(plan) >= max_steps:
            break
    return plan


class BrowserPageAgent:
    def __init__(
        self,
        settings: Mapping[str, Any],
        engine=None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        runtime = settings.get("runtime") or {}
        self.provider = str(runtime.get("provider", "browserbase")).lower()
        self.project_id = runtime.get("project_id") or None
        self.api_base = runtime.get("api_base") or None
        self.session_options = runtime.get("session_options") or {}
        self.headless = bool(runtime.get("headless", True))
        self.viewport = dict(runtime.get("viewport") or {"width": 1280, "height": 900})
        self.replay_template = runtime.get("session_replay_url") or None
        self.action_timeout_ms = int(float(runtime.get("action_timeout_sec", 30)) * 1000)
        self.max_plan_steps = int(runtime.get("max_plan_steps", 4))
        self._openai_config = dict(settings.get("openai") or {})
        self._llm_timeout_sec = float(self._openai_config.pop("timeout_sec", 60))
        self._playwright_factory = playwright_factory
        self.engine = engine

        self.playwright = None
        self.browser = None
        self.context = None
        self.page = None
        self._session_id: Optional[str] = None
        self._api_key: Optional[str] = None

    async def init(self) -> Optional[str]:
        try:
            if self.engine is None:
                self.engine = engine_factory(**self._openai_config)
            self.playwright = await self._playwright_factory().start()
            if self.provider == "browserbase":
                pid, api_key = resolve_credentials(self.project_id, None)
                cdp_url, session_id = await asyncio.to_thread(
                    create_session, pid, api_key, api_base=self.api_base, session_options=self.session_options
                )
                self._session_id, self._api_key = session_id, api_key
                logger.info(f"Browserbase session created: session_id={session_id}")
                self.browser = await self.playwright.chromium.connect_over_cdp(cdp_url)
                contexts = getattr(self.browser, "contexts", None) or []
                self.context = contexts[0] if contexts else await self.browser.new_context(viewport=self.viewport)
            else:
                self.browser = await self.playwright.chromium.launch(headless=self.headless)
                self.context = await self.browser.new_context(viewport=self.viewport, user_agent=USER_AGENT)
            pages = getattr(self.context, "pages", None) or []
            self.page = pages[0] if pages else await self.context.new_page()
            if not self.page.viewport_size:
                await self.page.set_viewport_size(self.viewport)
        except Exception as e:
            raise SessionInitError(f"Failed to start {self.provider} browser session: {e}") from e
        return self._session_id

    def session_url(self) -> Optional[str]:
        return session_replay_url(self._session_id, self.replay_template)

    def _require_page(self):
        if self.page is None:
            raise RuntimeError("Browser session is not initialized")
        return self.page

    async def _generate(self, system: str, user: str) -> Optional[str]:
        """Run the engine in a thread with a timeout so a stalled call cannot hang the run."""
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self.engine.generate, system=system, user=user),
                timeout=self._llm_timeout_sec,
            )
        except asyncio.TimeoutError:
            logger.warning(f"LLM generation timed out after {self._llm_timeout_sec} seconds")
            return None
        return getattr(response, "message", response)

    async def act(self, instruction: str) -> None:
        page = self._require_page()
        m = _NAVIGATE_RE.match(instruction)
        if m:
            target = m.group(1)
            await page.goto(target, wait_until="domcontentloaded", timeout=self.action_timeout_ms)
            logger.info(f"Loaded website: {target}")
            return

        elements = (await page.evaluate(_INTERACTIVE_ELEMENTS_JS))[:MAX_ELEMENTS]
        if not elements:
            raise ActionNotPossibleError(instruction, "no interactive elements on the page", page.url)
        user = (
            f"Instruction: {instruction}\n"
            f"Current URL: {page.url}\n\n"
            f"Interactive elements:\n{format_elements(elements)}"
        )
        reply = await self._generate(ACT_SYSTEM_PROMPT, user)
        plan = parse_action_plan(reply, self.max_plan_steps)
        if not plan:
            raise ActionNotPossibleError(instruction, "no matching element", page.url)
        for step in plan:
            if not 0 <= step.element < len(elements):
                raise ActionNotPossibleError(instruction, f"unknown element {step.element}", page.url)
            await self._perform(page, step, elements[step.element])

    async def _perform(self, page, step: PlannedAction, element: Dict[str, Any]) -> None:
        locator = page.locator(f"xpath={element['selector']}").first
        timeout = self.action_timeout_ms
        if step.action == "CLICK":
            await locator.click(timeout=timeout)
        elif step.action == "TYPE":
            await locator.fill(step.value or "", timeout=timeout)
        elif step.action == "SELECT":
            try:
                await locator.select_option(label=step.value, timeout=timeout)
            except Exception:
                await locator.select_option(step.value, timeout=timeout)
        elif step.action == "HOVER":
            await locator.hover(timeout=timeout)
        logger.info(f"{step.action} on <{element.get('tag')}> {element.get('description', '')!r}")
        try:
            await page.wait_for_load_state("domcontentloaded", timeout=timeout)
        except Exception:
            logger.debug("Page did not reach domcontentloaded after action")

    async def extract(self, prompt: str) -> str:
        page = self._require_page()
        try:
            title = await page.title()
            text = await page.inner_text("body", timeout=self.action_timeout_ms)
        except Exception as e:
            raise ExtractionError(f"Could not read page content: {e}") from e
        text = re.sub(r"\n\s*\n+", "\n", text or "").strip()
        if len(text) > MAX_PAGE_TEXT:
            text = text[:MAX_PAGE_TEXT] + "..."
        user = f"URL: {page.url}\nTitle: {title}\n\nVisible page text:\n{text}\n\nQuestion:\n{prompt}"
        reply = await self._generate(EXTRACT_SYSTEM_PROMPT, user)
        if reply is None:
            raise ExtractionError("No answer from the language model")
        return reply

    async def current_url(self) -> str:
        return self.page.url if self.page is not None else ""

    async def close(self) -> None:
        for name, closer in (
            ("context", lambda: self.context.close() if self.context else None),
            ("browser", lambda: self.browser.close() if self.browser else None),
            ("playwright", lambda: self.playwright.stop() if self.playwright else None),
        ):
            try:
                pending = closer()
                if pending is not None:
                    await pending
            except Exception as e:
                logger.warning(f"Failed to close {name}: {e}")
        if self._session_id and self._api_key:
            await asyncio.to_thread(close_session, self._session_id, self._api_key, api_base=self.api_base)
            self._api_key = None
        self.page = self.context = self.browser = self.playwright = None


__all__ = ["BrowserPageAgent", "PlannedAction", "parse_action_plan", "format_elements"]
