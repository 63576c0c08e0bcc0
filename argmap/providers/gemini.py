"""Gemini provider using google-genai SDK with native async."""

from typing import Any

from google import genai
from google.genai import types as genai_types

from argmap.providers.base import SDKProvider

# Gemini names the assistant role "model"
_ROLES = {"user": "user", "assistant": "model"}


class GeminiProvider(SDKProvider):
    label = "Gemini"

    def _build_client(self, api_key: str) -> genai.Client:
        return genai.Client(api_key=api_key)

    async def _request(self, system: str, messages: list[dict[str, str]]) -> Any:
        contents = [
            genai_types.Content(
                role=_ROLES.get(m["role"], "user"),
                parts=[genai_types.Part(text=m["content"])],
            )
            for m in messages
        ]
        return await self._client.aio.models.generate_content(
            model=self._config.model,
            contents=contents,
            config=genai_types.GenerateContentConfig(
                system_instruction=system,
                max_output_tokens=self._config.max_tokens,
            ),
        )

    def _unpack(self, response: Any) -> tuple[str | None, int | None, bool]:
        token_count = response.usage_metadata.total_token_count if response.usage_metadata else None
        truncated = bool(
            response.candidates
            and response.candidates[0].finish_reason == genai_types.FinishReason.MAX_TOKENS
        )
        return response.text, token_count, truncated
