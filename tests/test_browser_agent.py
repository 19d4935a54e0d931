import json
from types import SimpleNamespace

import pytest

from funnel_audit import browser_agent as ba
from funnel_audit.browser_agent import BrowserPageAgent, PlannedAction, format_elements, parse_action_plan
from funnel_audit.exceptions import ActionNotPossibleError, ExtractionError, SessionInitError

ELEMENTS = [
    {"tag": "a", "description": "Shop", "selector": "//a[1]"},
    {"tag": "button", "description": "Add to cart", "selector": "//button[1]"},
    {"tag": "select", "description": "Size", "options": ["S", "M"], "selector": "//select[1]"},
    {"tag": "input", "type": "email", "description": "Email", "selector": "//input[1]", "disabled": True},
]


class FakeLocator:
    def __init__(self, page, selector):
        self.page = page
        self.selector = selector
        self.first = self

    async def click(self, timeout=None):
        self.page.performed.append(("click", self.selector, None))

    async def fill(self, value, timeout=None):
        self.page.performed.append(("fill", self.selector, value))

    async def select_option(self, value=None, label=None, timeout=None):
        self.page.performed.append(("select", self.selector, label or value))

    async def hover(self, timeout=None):
        self.page.performed.append(("hover", self.selector, None))


class FakePage:
    def __init__(self, elements=None, body="Welcome to the shop"):
        self.url = "about:blank"
        self.viewport_size = None
        self.elements = ELEMENTS if elements is None else elements
        self.body = body
        self.performed = []

    async def set_viewport_size(self, size):
        self.viewport_size = size

    async def goto(self, url, wait_until=None, timeout=None):
        self.url = url

    async def evaluate(self, script):
        return list(self.elements)

    def locator(self, selector):
        return FakeLocator(self, selector)

    async def wait_for_load_state(self, state, timeout=None):
        return None

    async def title(self):
        return "Shop"

    async def inner_text(self, selector, timeout=None):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


class FakeContext:
    def __init__(self, page):
        self.pages = []
        self._page = page
        self.closed = False

    async def new_page(self):
        self.pages.append(self._page)
        return self._page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, context):
        self.contexts = []
        self._context = context
        self.closed = False

    async def new_context(self, **kwargs):
        self.context_kwargs = kwargs
        return self._context

    async def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, browser):
        self.browser = browser
        self.launched = None
        self.cdp_url = None

    async def launch(self, headless=True):
        self.launched = headless
        return self.browser

    async def connect_over_cdp(self, url):
        self.cdp_url = url
        self.browser.contexts = [self.browser._context]
        return self.browser


class FakePlaywright:
    def __init__(self, page):
        self.chromium = FakeChromium(FakeBrowser(FakeContext(page)))
        self.stopped = False

    async def start(self):
        return self

    async def stop(self):
        self.stopped = True


class FakeEngine:
    def __init__(self, replies):
        self.replies = list(replies)
        self.prompts = []

    def generate(self, system, user, **kwargs):
        self.prompts.append((system, user))
        return SimpleNamespace(message=self.replies.pop(0) if self.replies else "")


def _settings(provider="local"):
    return {
        "runtime": {"provider": provider, "headless": True, "viewport": {"width": 800, "height": 600}},
        "openai": {"model": "gpt-4o-mini", "timeout_sec": 5},
    }


async def _local_agent(replies=(), page=None):
    page = page or FakePage()
    pw = FakePlaywright(page)
    agent = BrowserPageAgent(_settings(), engine=FakeEngine(replies), playwright_factory=lambda: pw)
    await agent.init()
    return agent, page, pw


@pytest.mark.smoke
def test_parse_action_plan_variants():
    assert parse_action_plan('{"actions": [{"action": "click", "element": 1}]}') == [PlannedAction("CLICK", 1)]
    fenced = '```json\n[{"action": "TYPE", "element": "3", "value": 42}]\n```'
    assert parse_action_plan(fenced) == [PlannedAction("TYPE", 3, "42")]
    chatty = 'Sure! {"actions": [{"action": "HOVER", "element": 0}]} hope that helps'
    assert parse_action_plan(chatty) == [PlannedAction("HOVER", 0)]
    assert parse_action_plan('{"actions": []}') == []
    assert parse_action_plan("I cannot find it") == []
    assert parse_action_plan(None) == []
    junk = '[{"action": "PAY", "element": 1}, {"action": "CLICK", "element": "x"}, "noise"]'
    assert parse_action_plan(junk) == []


def test_parse_action_plan_caps_steps():
    many = json.dumps({"actions": [{"action": "CLICK", "element": i} for i in range(10)]})
    assert len(parse_action_plan(many, max_steps=3)) == 3


def test_format_elements():
    listing = format_elements(ELEMENTS).splitlines()
    assert listing[0] == "[0] <a> Shop"
    assert listing[2] == "[2] <select> Size | options: S, M"
    assert listing[3] == '[3] <input type="email"> Email (disabled)'


@pytest.mark.asyncio
async def test_local_init_launches_chromium_and_sets_viewport():
    agent, page, pw = await _local_agent()
    assert pw.chromium.launched is True
    assert page.viewport_size == {"width": 800, "height": 600}
    assert agent.session_url() is None


@pytest.mark.asyncio
async def test_navigate_instruction_goes_straight_to_url():
    agent, page, _ = await _local_agent()
    await agent.act("Navigate to https://shop.example.com/")
    assert await agent.current_url() == "https://shop.example.com/"
    assert agent.engine.prompts == []


@pytest.mark.asyncio
async def test_act_performs_planned_steps():
    plan = json.dumps({"actions": [
        {"action": "SELECT", "element": 2, "value": "M"},
        {"action": "CLICK", "element": 1},
    ]})
    agent, page, _ = await _local_agent([plan])
    await agent.act("Select a size and click Add to Cart")

    assert page.performed == [("select", "xpath=//select[1]", "M"), ("click", "xpath=//button[1]", None)]
    system, user = agent.engine.prompts[0]
    assert system == ba.ACT_SYSTEM_PROMPT
    assert "Select a size and click Add to Cart" in user and "[1] <button> Add to cart" in user


@pytest.mark.asyncio
async def test_act_without_plan_is_not_possible():
    agent, _, _ = await _local_agent(['{"actions": []}'])
    with pytest.raises(ActionNotPossibleError):
        await agent.act("Click on a product")


@pytest.mark.asyncio
async def test_act_with_unknown_element_is_not_possible():
    agent, page, _ = await _local_agent(['{"actions": [{"action": "CLICK", "element": 99}]}'])
    with pytest.raises(ActionNotPossibleError):
        await agent.act("Click on a product")
    assert page.performed == []


@pytest.mark.asyncio
async def test_act_on_page_without_elements():
    agent, _, _ = await _local_agent(page=FakePage(elements=[]))
    with pytest.raises(ActionNotPossibleError):
        await agent.act("Click on a product")


@pytest.mark.asyncio
async def test_extract_returns_model_answer():
    agent, _, _ = await _local_agent(["Yes, a product page"], page=FakePage(body="Blue shirt\n\n\n$20"))
    answer = await agent.extract("Is this a product page?")
    assert answer == "Yes, a product page"
    _, user = agent.engine.prompts[0]
    assert "Blue shirt\n$20" in user
    assert user.rstrip().endswith("Is this a product page?")


@pytest.mark.asyncio
async def test_extract_page_read_failure():
    agent, _, _ = await _local_agent(page=FakePage(body=RuntimeError("detached")))
    with pytest.raises(ExtractionError):
        await agent.extract("anything")


@pytest.mark.asyncio
async def test_init_failure_is_wrapped():
    class BrokenPlaywright:
        async def start(self):
            raise RuntimeError("no browser binary")

    agent = BrowserPageAgent(_settings(), engine=FakeEngine([]), playwright_factory=BrokenPlaywright)
    with pytest.raises(SessionInitError):
        await agent.init()


@pytest.mark.asyncio
async def test_browserbase_session_lifecycle(monkeypatch):
    released = []
    monkeypatch.setattr(ba, "resolve_credentials", lambda pid, key: ("proj", "bb-key"))
    monkeypatch.setattr(ba, "create_session", lambda pid, key, **kw: ("wss://bb/connect", "sess-9"))
    monkeypatch.setattr(ba, "close_session", lambda sid, key, **kw: released.append((sid, key)))

    page = FakePage()
    pw = FakePlaywright(page)
    agent = BrowserPageAgent(_settings("browserbase"), engine=FakeEngine([]), playwright_factory=lambda: pw)

    assert await agent.init() == "sess-9"
    assert pw.chromium.cdp_url == "wss://bb/connect"
    assert agent.session_url() == "https://browserbase.com/sessions/sess-9"

    await agent.close()
    assert released == [("sess-9", "bb-key")]
    assert pw.stopped is True
    assert await agent.current_url() == ""
    # a second close does not release twice
    await agent.close()
    assert len(released) == 1
