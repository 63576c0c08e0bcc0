"""OpenAI provider using openai SDK with native async.

Also serves OpenAI-compatible APIs (xAI, DeepSeek) when base_url is set.
"""

from typing import Any

from openai import AsyncOpenAI

from argmap.providers.base import SDKProvider


class OpenAIProvider(SDKProvider):
    """OpenAI chat completions; the system prompt goes in as the first message."""

    label = "OpenAI"

    def _build_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key, base_url=self._config.base_url)

    async def _request(self, system: str, messages: list[dict[str, str]]) -> Any:
        return await self._client.chat.completions.create(
            model=self._config.model,
            messages=[{"role": "system", "content": system}, *messages],
            max_tokens=self._config.max_tokens,
        )

    def _unpack(self, response: Any) -> tuple[str | None, int | None, bool]:
        if not response.choices:
            return None, None, False
        choice = response.choices[0]
        token_count = response.usage.total_tokens if response.usage else None
        return choice.message.content, token_count, choice.finish_reason == "length"
