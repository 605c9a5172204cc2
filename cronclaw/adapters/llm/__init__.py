"""LLM adapters — chat-completion backends."""

from cronclaw.adapters.llm.ollama_adapter import LLMError, OllamaAdapter

__all__ = [
    "LLMError",
    "OllamaAdapter",
]
