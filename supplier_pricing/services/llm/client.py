"""LLM client abstraction for the column-mapping assistant.

Supports two backends over plain HTTP:
- OpenAI-compatible chat completions (``response_format=json_object``)
- Ollama (``format=json``), for local deployments

Both return a parsed JSON object. Transport failures and non-JSON answers
raise :class:`LLMError`; ``details["reason"]`` tells them apart
(``"transport"`` vs ``"malformed_json"``).

Example:
    client = get_llm_client(get_settings())
    data = await client.complete_json(prompt, system_prompt=SYSTEM_PROMPT)
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import httpx
import structlog

from supplier_pricing.config.settings import Settings
from supplier_pricing.utils.errors import LLMError

logger = structlog.get_logger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class LLMBackend(str, Enum):
    """Supported LLM backends."""

    OLLAMA = "ollama"
    OPENAI = "openai"


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    backend: LLMBackend = LLMBackend.OPENAI
    model: str = "gpt-4o-mini"
    base_url: str = "https://api.openai.com"
    api_key: Optional[str] = None
    timeout: float = 20.0
    temperature: float = 0.1
    max_tokens: int = 2048

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMConfig":
        return cls(
            backend=LLMBackend(settings.llm_backend),
            model=settings.llm_model,
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            timeout=settings.llm_timeout,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )


def parse_json_object(content: str) -> dict[str, Any]:
    """Parse a completion into a JSON object, tolerating markdown fences."""
    text = _FENCE_RE.sub("", content.strip()).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Some models wrap the object in prose.
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise LLMError(
                "Assistant returned non-JSON content",
                details={"reason": "malformed_json", "preview": text[:200]},
            )
        try:
            data = json.loads(text[start : end + 1])
        except json.JSONDecodeError as e:
            raise LLMError(
                f"Assistant returned invalid JSON: {e}",
                details={"reason": "malformed_json", "preview": text[:200]},
            ) from e

    if not isinstance(data, dict):
        raise LLMError(
            "Assistant returned JSON that is not an object",
            details={"reason": "malformed_json", "type": type(data).__name__},
        )
    return data


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig()
        self._client: Optional[httpx.AsyncClient] = None
        self._log = logger.bind(
            component="LLMClient",
            backend=self.config.backend.value,
            model=self.config.model,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def complete_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> dict[str, Any]:
        """Send one request and return the parsed JSON object.

        Args:
            prompt: User prompt expecting a JSON object
            system_prompt: Instructions for the assistant

        Returns:
            Parsed JSON response

        Raises:
            LLMError: Transport failure or non-JSON answer
        """
        try:
            content = await self._request(prompt, system_prompt)
        except httpx.HTTPStatusError as e:
            self._log.warning("llm.http_error", status_code=e.response.status_code)
            raise LLMError(
                f"Assistant HTTP error: {e.response.status_code}",
                details={"reason": "transport", "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            self._log.warning("llm.request_failed", error=str(e))
            raise LLMError(
                f"Assistant unreachable: {e}",
                details={"reason": "transport"},
            ) from e
        except ValueError as e:
            raise LLMError(
                "Assistant response body is not JSON",
                details={"reason": "malformed_json"},
            ) from e

        return parse_json_object(content)

    @abstractmethod
    async def _request(self, prompt: str, system_prompt: Optional[str]) -> str:
        """Perform the backend call and return the raw completion text."""


class OpenAIClient(LLMClient):
    """OpenAI-compatible chat completions client."""

    async def _request(self, prompt: str, system_prompt: Optional[str]) -> str:
        client = await self._get_client()
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        headers = {}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        response = await client.post(
            "/v1/chat/completions",
            headers=headers,
            json={
                "model": self.config.model,
                "messages": messages,
                "temperature": self.config.temperature,
                "max_tokens": self.config.max_tokens,
                "response_format": {"type": "json_object"},
            },
        )
        response.raise_for_status()
        data = response.json()

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(
                "Unexpected completion payload",
                details={"reason": "malformed_json"},
            ) from e

        self._log.debug(
            "llm.completion_received",
            tokens=data.get("usage", {}).get("total_tokens", 0),
        )
        return content or ""


class OllamaClient(LLMClient):
    """Ollama ``/api/generate`` client with JSON output mode."""

    async def _request(self, prompt: str, system_prompt: Optional[str]) -> str:
        client = await self._get_client()
        payload: dict[str, Any] = {
            "model": self.config.model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {
                "temperature": self.config.temperature,
                "num_predict": self.config.max_tokens,
            },
        }
        if system_prompt:
            payload["system"] = system_prompt

        response = await client.post("/api/generate", json=payload)
        response.raise_for_status()
        data = response.json()
        self._log.debug(
            "llm.completion_received",
            tokens=data.get("prompt_eval_count", 0) + data.get("eval_count", 0),
        )
        return data.get("response", "")


def get_llm_client(settings: Settings) -> LLMClient:
    """Build the client for the configured backend."""
    config = LLMConfig.from_settings(settings)
    if config.backend == LLMBackend.OLLAMA:
        return OllamaClient(config)
    return OpenAIClient(config)
