"""Anthropic Claude provider using anthropic SDK with native async."""

from typing import Any

import anthropic as anthropic_sdk

from argmap.providers.base import SDKProvider


class AnthropicProvider(SDKProvider):
    """Anthropic Claude provider via anthropic SDK."""

    label = "Anthropic"

    def _build_client(self, api_key: str) -> anthropic_sdk.AsyncAnthropic:
        return anthropic_sdk.AsyncAnthropic(api_key=api_key)

    async def _request(self, system: str, messages: list[dict[str, str]]) -> Any:
        return await self._client.messages.create(
            model=self._config.model,
            max_tokens=self._config.max_tokens,
            system=system,
            messages=messages,
        )

    def _unpack(self, response: Any) -> tuple[str | None, int | None, bool]:
        text = "\n".join(b.text for b in response.content if b.type == "text")
        token_count = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens
        return text, token_count, response.stop_reason == "max_tokens"

    def _describe_error(self, exc: Exception) -> str:
        if isinstance(exc, anthropic_sdk.APIStatusError):
            return f"API error ({exc.status_code}): {exc.message}"
        return super()._describe_error(exc)
