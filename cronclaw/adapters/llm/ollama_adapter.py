"""Ollama chat backend using aiohttp — implements LLMPort."""

import asyncio
import sys
from datetime import datetime
from typing import List

import aiohttp

from cronclaw.config import OllamaConfig
from cronclaw.domain.models import ChatMessage


def _log(msg: str):
    print(msg, file=sys.stderr)


class LLMError(RuntimeError):
    """The chat backend did not produce a reply."""


class OllamaAdapter:
    """Async client for Ollama's /api/chat endpoint."""

    def __init__(self, config: OllamaConfig):
        self._config = config

    @property
    def model(self) -> str:
        return self._config.model

    def build_payload(self, messages: List[ChatMessage]) -> dict:
        return {
            "model": self._config.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": False,
            "keep_alive": self._config.keep_alive,
            "options": {
                "temperature": self._config.temperature,
                "num_ctx": self._config.context_length,
            },
        }

    async def chat(self, messages: List[ChatMessage]) -> str:
        url = f"{self._config.host}/api/chat"
        timeout = aiohttp.ClientTimeout(total=self._config.timeout_seconds)
        _log(f"[{datetime.now().isoformat()}] ollama chat ({self._config.model}, {len(messages)} message(s))")

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, json=self.build_payload(messages)) as resp:
                    if resp.status >= 400:
                        text = await resp.text()
                        raise LLMError(f"Ollama returned error {resp.status}: {text}")
                    data = await resp.json()
        except aiohttp.ClientError as e:
            raise LLMError(f"Ollama request failed: {e}") from e
        except asyncio.TimeoutError:
            raise LLMError(f"Timeout ({self._config.timeout_seconds:.0f}s)")

        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, dict) or "content" not in message:
            raise LLMError(f"Unexpected Ollama response: {str(data)[:200]}")
        return str(message["content"])

    async def warm_up(self) -> bool:
        """Load the model into memory. Failure is logged, never raised."""
        _log(f"[ollama] warming up model: {self._config.model}")
        try:
            await self.chat([ChatMessage(role="user", content="hi")])
        except Exception as e:
            _log(f"[ollama] warm-up failed, continuing anyway: {e}")
            return False
        _log("[ollama] model loaded and ready")
        return True
