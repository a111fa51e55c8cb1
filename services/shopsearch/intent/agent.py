"""
Assisting agent: a single-call `run(prompt) -> text` over the Anthropic
Messages API.

The analyzer treats the agent as best-effort. run() raises on timeout or API
failure; CategoryBrandAnalyzer catches and falls back to keyword matching.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from services.shopsearch.config import settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "你是一個商品搜尋個人化助手，負責把使用者的搜尋關鍵字對應到既有的商品分類與品牌。"
    "只能使用提供的清單中的名稱，並且只回傳 JSON，不要加入其他說明文字。"
    "請使用繁體中文。"
)


class Agent(Protocol):
    async def run(self, prompt: str) -> str: ...


class AgentUnavailable(RuntimeError):
    """The agent returned no usable text."""


class AnthropicAgent:
    """
    Args:
        anthropic_client: anthropic.AsyncAnthropic instance.
        model: Model id; defaults to settings.agent_model.
        timeout_s: Per-call bound; defaults to settings.agent_timeout_s.
    """

    def __init__(
        self,
        anthropic_client,
        model: str | None = None,
        *,
        max_tokens: int | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self._client = anthropic_client
        self._model = model or settings.agent_model
        self._max_tokens = max_tokens or settings.agent_max_tokens
        self._timeout_s = timeout_s if timeout_s is not None else settings.agent_timeout_s

    async def run(self, prompt: str) -> str:
        response = await asyncio.wait_for(
            self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            ),
            timeout=self._timeout_s,
        )

        texts = [
            block.text
            for block in getattr(response, "content", None) or []
            if getattr(block, "type", "text") == "text" and getattr(block, "text", None)
        ]
        if not texts:
            raise AgentUnavailable("agent returned no text content")
        return "".join(texts).strip()


def build_agent(api_key: str | None = None) -> AnthropicAgent | None:
    """Agent from settings, or None when no API key is configured."""
    key = api_key if api_key is not None else settings.anthropic_api_key
    if not key:
        logger.info("ANTHROPIC_API_KEY not set; category/brand analysis uses keyword matching only")
        return None

    from anthropic import AsyncAnthropic

    return AnthropicAgent(AsyncAnthropic(api_key=key))
