"""Utilities for interacting with LLM providers."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from eventnet.core.config import settings
from eventnet.core.exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)


class LLMClient:
    """Coordinate interactions with primary and fallback LLM providers."""

    def __init__(
        self,
        *,
        openai_client: AsyncOpenAI | None = None,
        claude_client: AsyncAnthropic | None = None,
    ) -> None:
        self.openai = openai_client
        if self.openai is None and settings.OPENAI_API_KEY:
            self.openai = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self.claude = claude_client
        if self.claude is None and settings.ANTHROPIC_API_KEY:
            self.claude = AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)

    @property
    def available(self) -> bool:
        return self.openai is not None or self.claude is not None

    async def generate(self, system_instruction: str, user_text: str) -> str:
        """Answer ``user_text`` under ``system_instruction``; raises when every provider fails."""

        return await self.chat([{"role": "user", "content": user_text}], system=system_instruction)

    async def complete(self, prompt: str) -> str:
        return await self.chat([{"role": "user", "content": prompt}], max_tokens=16, temperature=0.0)

    async def chat(
        self,
        messages: List[Dict[str, str]],
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Send a chat completion request with fallback to Claude."""

        max_tokens = max_tokens or settings.MAX_TOKENS
        temperature = settings.TEMPERATURE if temperature is None else temperature

        if self.openai is not None:
            payload = ([{"role": "system", "content": system}] if system else []) + messages
            try:
                response = await self.openai.chat.completions.create(
                    model=model or settings.OPENAI_MODEL,
                    messages=payload,
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
                content = response.choices[0].message.content
                if content:
                    return content.strip()
                logger.error("OpenAI chat returned empty content")
            except Exception as exc:
                logger.error("OpenAI chat failed: %s", exc)

        if self.claude is not None:
            try:
                kwargs = {"system": system} if system else {}
                claude_response = await self.claude.messages.create(
                    model=settings.CLAUDE_MODEL,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    messages=messages,
                    **kwargs,
                )
                return claude_response.content[0].text.strip()
            except Exception as exc:
                logger.error("Claude chat failed: %s", exc)

        raise UpstreamUnavailableError("All LLM providers failed")


llm_client = LLMClient()
