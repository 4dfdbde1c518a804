"""Speech-to-text client (multipart upload to the transcription endpoint)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from record_ai.common.config import OpenAIConfig
from record_ai.common.errors import NormalizationError
from record_ai.providers.base import BaseProviderClient, ProviderResult, RetryPolicy

DEFAULT_AUDIO_FILENAME = "audio.m4a"
AUDIO_CONTENT_TYPE = "application/octet-stream"

TRANSCRIPTION_POLICY = RetryPolicy(
    timeout_seconds=120.0,
    max_retries=2,
    initial_backoff_seconds=0.5,
)


@dataclass(frozen=True)
class AudioPayload:
    """Uploaded audio plus the hints sent alongside it."""

    data: bytes
    filename: str | None = None
    language: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def upload_filename(self) -> str:
        if self.filename is None or not self.filename.strip():
            return DEFAULT_AUDIO_FILENAME
        return self.filename


class TranscriptionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str | None = None


class TranscriptionClient(BaseProviderClient):
    """Uploads audio and returns the transcript text."""

    provider_name = "transcription"

    def __init__(
        self,
        config: OpenAIConfig,
        policy: RetryPolicy = TRANSCRIPTION_POLICY,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, policy, **kwargs)

    def build_form(self, audio: AudioPayload) -> dict[str, str]:
        form = {"model": self._config.transcription_model}
        if audio.language and audio.language.strip():
            form["language"] = audio.language.strip()
        return form

    async def transcribe(self, audio: AudioPayload) -> ProviderResult[str]:
        """Transcribe ``audio``; the caller has already checked its size."""
        return await self._execute(
            "transcribe",
            lambda headers: self._transcribe(audio, headers),
            filename=audio.upload_filename,
            size_bytes=audio.size_bytes,
            language=audio.language,
        )

    async def _transcribe(self, audio: AudioPayload, headers: Mapping[str, str]) -> str:
        body = await self._post_json(
            self._config.transcription_url,
            headers,
            data=self.build_form(audio),
            files={"file": (audio.upload_filename, audio.data, AUDIO_CONTENT_TYPE)},
        )
        try:
            parsed = TranscriptionResponse.model_validate(body)
        except ValidationError as exc:
            raise NormalizationError(
                "transcription response has an unexpected shape",
                provider=self.provider_name,
            ) from exc

        if parsed.text is None or not parsed.text.strip():
            raise NormalizationError(
                "transcription response did not contain text",
                provider=self.provider_name,
            )
        return parsed.text


__all__ = [
    "AudioPayload",
    "DEFAULT_AUDIO_FILENAME",
    "TRANSCRIPTION_POLICY",
    "TranscriptionClient",
]
