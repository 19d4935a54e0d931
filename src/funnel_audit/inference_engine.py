from dataclasses import dataclass
import os
import time
from typing import Optional

import backoff
from openai import (
    APIConnectionError,
    APIError,
    OpenAI,
    RateLimitError,
)
from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)


def load_openai_api_key():
    load_dotenv()
    key = os.getenv("OPENAI_API_KEY")
    if not key:
        raise RuntimeError("must set OPENAI_API_KEY in the environment")
    return key


@dataclass
class EngineResponse:
    message: str
    tokens_prompt: int = -1
    tokens_completion: int = -1
    model: Optional[str] = None


class OpenAIEngine:
    def __init__(
            self,
            model: str = "gpt-4o-mini",
            temperature: float = 0,
            rate_limit: int = -1,
            base_url: Optional[str] = None,
            client=None,
            **kwargs,
    ) -> None:
        """
            Init an OpenAI chat engine

        Args:
            model (str, optional): Chat model name. Defaults to "gpt-4o-mini".
            temperature (float, optional): Sampling temperature. Defaults to 0.
            rate_limit (int, optional): Max number of requests per minute. Defaults to -1.
            base_url (str, optional): OpenAI-compatible endpoint; falls back to OPENAI_BASE_URL.
            client (optional): Preconstructed client, mainly for tests.
        """
        self.model = model
        self.temperature = temperature
        # convert rate limit to minimum request interval
        self.request_interval = 0 if not rate_limit or rate_limit <= 0 else 60.0 / rate_limit
        self.next_avil_time = 0.0
        if client is not None:
            self._client = client
        else:
            load_openai_api_key()
            base_url = base_url or os.getenv("OPENAI_BASE_URL") or None
            self._client = OpenAI(base_url=base_url) if base_url else OpenAI()
        logger.debug(f"Initializing model {self.model}")

    @backoff.on_exception(
        backoff.expo,
        (APIError, RateLimitError, APIConnectionError), max_tries=5, logger=logger
    )
    def generate(self, system: str, user: str, max_new_tokens: int = 1024, temperature=None, model=None) -> EngineResponse:
        start_time = time.time()
        if self.request_interval > 0 and start_time < self.next_avil_time:
            time.sleep(self.next_avil_time - start_time)

        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        resp = self._client.chat.completions.create(
            model=model if model else self.model,
            messages=messages,  # type: ignore
            max_tokens=max_new_tokens,
            temperature=self.temperature if temperature is None else temperature,
        )
        if self.request_interval > 0:
            self.next_avil_time = max(start_time, self.next_avil_time) + self.request_interval
        usage = getattr(resp, "usage", None)
        return EngineResponse(
            message=resp.choices[0].message.content or "",
            tokens_prompt=getattr(usage, "prompt_tokens", -1) if usage else -1,
            tokens_completion=getattr(usage, "completion_tokens", -1) if usage else -1,
            model=model if model else self.model,
        )


def engine_factory(model: Optional[str] = None, **kwargs) -> OpenAIEngine:
    """Build the chat engine from the ``[openai]`` settings section."""
    known = {k: v for k, v in kwargs.items() if k in ("temperature", "rate_limit", "base_url", "client")}
    if not known.get("base_url"):
        known.pop("base_url", None)
    return OpenAIEngine(model=model or "gpt-4o-mini", **known)
