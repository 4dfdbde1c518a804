"""Image generation client.

Only URL responses are usable. Inline base64 images would need blob storage
that this service does not have, so they surface as an unsupported capability
rather than a generic failure.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from record_ai.common.config import LimitsConfig, OpenAIConfig
from record_ai.common.errors import NormalizationError, UnsupportedCapabilityError
from record_ai.common.payload_guard import clamp_prompt
from record_ai.providers.base import BaseProviderClient, ProviderResult, RetryPolicy

IMAGE_COUNT = 1

IMAGE_POLICY = RetryPolicy(
    timeout_seconds=60.0,
    max_retries=2,
    initial_backoff_seconds=1.0,
)


class _ImageEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str | None = None
    b64_json: str | None = None


class ImageResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[_ImageEntry] | None = None


class ImageClient(BaseProviderClient):
    """Generates one image for a prompt and returns its URL."""

    provider_name = "image"

    def __init__(
        self,
        config: OpenAIConfig,
        policy: RetryPolicy = IMAGE_POLICY,
        *,
        limits: LimitsConfig | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, policy, **kwargs)
        self._limits = limits or LimitsConfig()

    def build_body(self, prompt: str) -> dict[str, Any]:
        return {
            "prompt": clamp_prompt(prompt, self._limits.image_prompt_max_chars),
            "model": self._config.image_model,
            "size": self._config.image_size,
            "n": IMAGE_COUNT,
        }

    async def generate_image(self, prompt: str) -> ProviderResult[str]:
        return await self._execute(
            "generate_image",
            lambda headers: self._generate(prompt, headers),
            prompt_chars=len(prompt),
            max_chars=self._limits.image_prompt_max_chars,
        )

    async def _generate(self, prompt: str, headers: Mapping[str, str]) -> str:
        body = await self._post_json(
            self._config.image_url, headers, json=self.build_body(prompt)
        )
        try:
            parsed = ImageResponse.model_validate(body)
        except ValidationError as exc:
            raise NormalizationError(
                "image response has an unexpected shape",
                provider=self.provider_name,
            ) from exc

        if not parsed.data:
            raise NormalizationError(
                "image response contained no data entries",
                provider=self.provider_name,
            )
        if len(parsed.data) != IMAGE_COUNT:
            raise NormalizationError(
                f"image response contained {len(parsed.data)} data entries, expected {IMAGE_COUNT}",
                provider=self.provider_name,
            )

        entry = parsed.data[0]
        if entry.url and entry.url.strip():
            return entry.url
        if entry.b64_json:
            raise UnsupportedCapabilityError(
                "image provider returned inline base64 data; storing inline images is not supported",
                provider=self.provider_name,
            )
        raise NormalizationError(
            "image response contained neither url nor b64_json",
            provider=self.provider_name,
        )


__all__ = ["IMAGE_COUNT", "IMAGE_POLICY", "ImageClient"]
