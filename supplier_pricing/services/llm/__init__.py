"""Assistant (text-completion) clients."""

from supplier_pricing.services.llm.client import (
    LLMBackend,
    LLMClient,
    LLMConfig,
    OllamaClient,
    OpenAIClient,
    get_llm_client,
)

__all__ = [
    "LLMBackend",
    "LLMClient",
    "LLMConfig",
    "OllamaClient",
    "OpenAIClient",
    "get_llm_client",
]
