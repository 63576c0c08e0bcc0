"""Provider interface plus the shared plumbing for SDK-backed collaborators."""

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Any

from argmap.models import ModelResponse
from config.config_loader import ModelConfig

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when a provider call fails: network, timeout, SDK or service error."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'claude', 'gemini')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, system: str, messages: list[dict[str, str]]) -> ModelResponse:
        """Generate a reply to a conversation.

        Args:
            system: System prompt text.
            messages: Conversation turns as {"role": "user"|"assistant", "content": str}.

        Returns:
            ModelResponse dataclass with content and metadata. ``truncated``
            is True when the model stopped at its token limit.

        Raises:
            TransportError: On API failure, timeout, or empty response.
        """
        ...


class SDKProvider(AIProvider):
    """An AIProvider backed by a vendor SDK client.

    Subclasses build the client, issue one request and unpack the reply;
    this class owns the API key lookup, timeout, latency measurement and
    conversion of every failure into TransportError.
    """

    label = "SDK"

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise TransportError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = self._build_client(api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    @abstractmethod
    def _build_client(self, api_key: str) -> Any: ...

    @abstractmethod
    async def _request(self, system: str, messages: list[dict[str, str]]) -> Any:
        """Send one request through the SDK and return its raw response."""

    @abstractmethod
    def _unpack(self, response: Any) -> tuple[str | None, int | None, bool]:
        """Return (text, token_count, truncated) from a raw SDK response."""

    def _describe_error(self, exc: Exception) -> str:
        return f"API call failed: {exc}"

    async def generate(self, system: str, messages: list[dict[str, str]]) -> ModelResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._request(system, messages),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise TransportError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise TransportError(self._config.name, self._describe_error(exc)) from exc

        latency = time.monotonic() - start
        text, token_count, truncated = self._unpack(response)
        if not text:
            raise TransportError(self._config.name, "Empty response")

        logger.info("%s reply: %.2fs, %s tokens%s", self.label, latency, token_count, " (truncated)" if truncated else "")

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=text,
            latency_sec=latency,
            token_count=token_count,
            truncated=truncated,
        )
