import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest


def _ensure_pkg():
    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    if str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))


_ensure_pkg()

from funnel_audit import prompts  # noqa: E402

STORE_URL = "https://shop.example.com/"


class FakePageAgent:
    """Scripted page agent.

    observations: prompt -> value, list of values (consumed in order, last one repeats)
                  or an Exception instance to raise.
    failures:     instruction prefix -> number of times ``act`` raises (None = always).
    url_after:    instruction prefix -> URL the page is on after that action.
    """

    def __init__(
        self,
        observations: Optional[Dict[str, Any]] = None,
        failures: Optional[Dict[str, Optional[int]]] = None,
        url_after: Optional[Dict[str, str]] = None,
        init_error: Optional[Exception] = None,
        close_error: Optional[Exception] = None,
        session_id: Optional[str] = "sess-123",
    ):
        self.observations = dict(observations or {})
        self.failures = dict(failures or {})
        self.url_after = dict(url_after or {})
        self.init_error = init_error
        self.close_error = close_error
        self.session_id = session_id
        self.url = "about:blank"
        self.calls: List[Tuple[str, str]] = []
        self.close_calls = 0
        self._served: Dict[str, int] = {}

    async def init(self):
        self.calls.append(("init", ""))
        if self.init_error is not None:
            raise self.init_error
        return self.session_id

    def session_url(self):
        return f"https://browserbase.com/sessions/{self.session_id}" if self.session_id else None

    async def act(self, instruction: str) -> None:
        self.calls.append(("act", instruction))
        for prefix, remaining in self.failures.items():
            if instruction.startswith(prefix) and (remaining is None or remaining > 0):
                if remaining is not None:
                    self.failures[prefix] = remaining - 1
                raise RuntimeError(f"could not act: {prefix[:40]}")
        if instruction.startswith("Navigate to "):
            self.url = instruction[len("Navigate to "):]
        for prefix, url in self.url_after.items():
            if instruction.startswith(prefix):
                self.url = url

    async def extract(self, prompt: str) -> Any:
        self.calls.append(("extract", prompt))
        value = self.observations.get(prompt, "")
        if isinstance(value, list):
            idx = self._served.get(prompt, 0)
            self._served[prompt] = idx + 1
            value = value[min(idx, len(value) - 1)] if value else ""
        if isinstance(value, Exception):
            raise value
        return value

    async def current_url(self) -> str:
        return self.url

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error

    def acts(self) -> List[str]:
        return [arg for kind, arg in self.calls if kind == "act"]

    def extracts(self) -> List[str]:
        return [arg for kind, arg in self.calls if kind == "extract"]


def happy_observations() -> Dict[str, Any]:
    """Observations of a store where every stage works and nothing is wrong."""
    return {
        prompts.LANDING_CHECK: (
            "Products with prices are visible on the homepage. A search bar is shown in the header. "
            "Navigation is clear."
        ),
        prompts.PRODUCT_PAGE_CHECK: "Yes, this is a single product page with an Add to Cart button.",
        prompts.PRODUCT_PAGE_UX: (
            "1. Price: clearly shown at the top. 2. Images: large, high resolution gallery. "
            "3. Add to cart: prominent black button. 4. Description: detailed. "
            "5. Stock: in stock indicator shown. 6. Reviews: 4.8 stars from 120 reviews. "
            "7. Variants: clear size buttons. 8. Size guide: available. "
            "9. Shipping: free shipping over $50 shown. 10. Trust: 30-day returns and secure payment badges."
        ),
        prompts.VARIANT_ERROR_CHECK: "no error",
        prompts.CART_STATE: "Cart icon shows 1 item. Success message: added to cart.",
        prompts.CART_EXPERIENCE: (
            "1. Feedback: a cart drawer confirmed the item was added. "
            "2. Free shipping: free shipping on orders over $50, spend $20 more. "
            "3. Upsell: you may also like section shown. 4. Checkout path: clear checkout button."
        ),
        prompts.CURRENT_PAGE_CHECK: "This is the checkout page with contact and shipping address fields.",
        prompts.CHECKOUT_UX: (
            "1. Discount field: small link, collapsed. 2. Upsell: none offered. "
            "3. Payment button: clear Continue to payment button. 4. Trust badges: SSL secure checkout badges shown. "
            "5. Shipping cost: shown as $5.00 in the summary. 6. Guest checkout: available, continue as guest. "
            "7. Fields: 8 required fields. 8. Errors: none. "
            "9. Progress: step indicator Information > Shipping > Payment shown. "
            "10. Incentives: free shipping threshold banner shown."
        ),
    }


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def make_agent():
    def _make(overrides: Optional[Dict[str, Any]] = None, **kwargs) -> FakePageAgent:
        observations = happy_observations()
        observations.update(overrides or {})
        return FakePageAgent(observations=observations, **kwargs)
    return _make


@pytest.fixture
def fake_clock():
    return FakeClock()
