"""Chat completion client.

Sampling parameters are fixed: they bound the two text transforms this service
runs (organize keeps roughly the original length, summarize asks for a few
sentences) and are not tunable per call.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from record_ai.common.config import OpenAIConfig
from record_ai.common.errors import NormalizationError
from record_ai.providers.base import BaseProviderClient, ProviderResult, RetryPolicy
from record_ai.providers.normalizer import normalize_content

CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 500

CHAT_POLICY = RetryPolicy(
    timeout_seconds=60.0,
    max_retries=2,
    initial_backoff_seconds=2.0,
    retry_client_errors=True,
)


class _ChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: Any = None


class _ChatChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: _ChatMessage | None = None


class ChatResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    choices: list[_ChatChoice] = []

    def first_content(self) -> Any:
        if not self.choices or self.choices[0].message is None:
            return None
        return self.choices[0].message.content


def _text_message(role: str, text: str) -> dict[str, Any]:
    return {"role": role, "content": [{"type": "text", "text": text}]}


class ChatClient(BaseProviderClient):
    """Single-turn chat completion returning plain text."""

    provider_name = "chat"

    def __init__(
        self, config: OpenAIConfig, policy: RetryPolicy = CHAT_POLICY, **kwargs: Any
    ) -> None:
        super().__init__(config, policy, **kwargs)

    def build_body(self, system_instruction: str, user_prompt: str) -> dict[str, Any]:
        return {
            "model": self._config.chat_model,
            "messages": [
                _text_message("system", system_instruction),
                _text_message("user", user_prompt),
            ],
            "temperature": CHAT_TEMPERATURE,
            "max_tokens": CHAT_MAX_TOKENS,
        }

    async def complete(self, system_instruction: str, user_prompt: str) -> ProviderResult[str]:
        return await self._execute(
            "complete",
            lambda headers: self._complete(system_instruction, user_prompt, headers),
            prompt_chars=len(user_prompt),
        )

    async def _complete(
        self, system_instruction: str, user_prompt: str, headers: Mapping[str, str]
    ) -> str:
        body = await self._post_json(
            self._config.chat_url,
            headers,
            json=self.build_body(system_instruction, user_prompt),
        )
        try:
            parsed = ChatResponse.model_validate(body)
        except ValidationError as exc:
            raise NormalizationError(
                "chat response has an unexpected shape",
                provider=self.provider_name,
            ) from exc

        text = normalize_content(parsed.first_content()).strip()
        if not text:
            raise NormalizationError(
                "chat response did not contain any text content",
                provider=self.provider_name,
            )
        return text


__all__ = ["CHAT_MAX_TOKENS", "CHAT_POLICY", "CHAT_TEMPERATURE", "ChatClient"]
