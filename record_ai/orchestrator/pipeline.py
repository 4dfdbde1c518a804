"""Linear pipelines over the provider clients.

Every pipeline is a fixed sequence of stages run one after another inside the
caller's task. The first failing stage ends the run; its failure kind is passed
through unchanged and the stage is recorded on the outcome. Retries happen
inside the provider clients and never show up as repeated stages here.

    transcription:  payload_guard -> transcription
    image:          payload_guard -> image_generation
    organize:       payload_guard -> organize
    summarize:      payload_guard -> summarize
    illustration:   payload_guard -> image_prompt -> image_generation
"""

from __future__ import annotations

import dataclasses
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from record_ai.common.config import AppConfig, LimitsConfig
from record_ai.common.errors import (
    ErrorKind,
    OrchestrationError,
    PayloadValidationError,
    ProviderFailure,
)
from record_ai.common.payload_guard import check_audio, clamp_prompt, require_text
from record_ai.common.structured_logging import get_logger
from record_ai.orchestrator import prompts
from record_ai.orchestrator.types import (
    Illustration,
    PipelineOutcome,
    PipelineStage,
    PipelineState,
    PromptLanguage,
    StateTransition,
    TextPrompt,
)
from record_ai.providers.base import ProviderResult
from record_ai.providers.chat import ChatClient
from record_ai.providers.image import ImageClient
from record_ai.providers.transcription import AudioPayload, TranscriptionClient

T = TypeVar("T")

logger = get_logger(__name__)


class _PipelineRun:
    """Tracks the state transitions of a single pipeline run."""

    def __init__(self, pipeline: str) -> None:
        self.pipeline = pipeline
        self._transitions: list[StateTransition] = [StateTransition(PipelineState.IDLE)]
        self._entered: set[PipelineStage] = set()
        self._stage: PipelineStage | None = None
        self._started = time.perf_counter()

    def _elapsed_ms(self) -> float:
        return round((time.perf_counter() - self._started) * 1000, 2)

    def enter(self, stage: PipelineStage) -> None:
        if stage in self._entered:
            raise RuntimeError(f"stage {stage.value} already ran in {self.pipeline} pipeline")
        self._entered.add(stage)
        self._stage = stage
        self._transitions.append(StateTransition(PipelineState.IN_FLIGHT, stage))
        logger.debug("pipeline.stage_started", pipeline=self.pipeline, stage=stage.value)

    def fail(self, failure: ProviderFailure) -> PipelineOutcome[Any]:
        self._transitions.append(
            StateTransition(PipelineState.FAILED, self._stage, failure.kind)
        )
        logger.warning(
            "pipeline.stage_failed",
            pipeline=self.pipeline,
            stage=self._stage.value if self._stage else None,
            kind=failure.kind.value,
            detail=failure.detail,
            duration_ms=self._elapsed_ms(),
        )
        return PipelineOutcome(
            failure=failure,
            failed_stage=self._stage,
            transitions=tuple(self._transitions),
        )

    def done(self, artifact: T) -> PipelineOutcome[T]:
        self._transitions.append(StateTransition(PipelineState.DONE))
        logger.info(
            "pipeline.completed",
            pipeline=self.pipeline,
            stages=[t.stage.value for t in self._transitions if t.stage is not None],
            duration_ms=self._elapsed_ms(),
        )
        return PipelineOutcome(artifact=artifact, transitions=tuple(self._transitions))


class PipelineOrchestrator:
    """Composes the provider clients into the caller-facing pipelines."""

    def __init__(
        self,
        transcription: TranscriptionClient,
        chat: ChatClient,
        image: ImageClient,
        *,
        limits: LimitsConfig | None = None,
    ) -> None:
        self._transcription = transcription
        self._chat = chat
        self._image = image
        self._limits = limits or LimitsConfig()

    @classmethod
    def from_config(cls, config: AppConfig, **client_kwargs: Any) -> PipelineOrchestrator:
        """Build one client per provider from ``config``.

        ``client_kwargs`` are forwarded to every client (``client=`` for an
        injected ``httpx.AsyncClient``, ``sleep=`` for the backoff sleep).
        """
        client_kwargs.setdefault("http_config", config.http)
        return cls(
            TranscriptionClient(config.openai, **client_kwargs),
            ChatClient(config.openai, **client_kwargs),
            ImageClient(config.openai, limits=config.limits, **client_kwargs),
            limits=config.limits,
        )

    @property
    def limits(self) -> LimitsConfig:
        return self._limits

    async def close(self) -> None:
        for client in (self._transcription, self._chat, self._image):
            await client.close()

    async def __aenter__(self) -> PipelineOrchestrator:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _call_stage(
        self,
        run: _PipelineRun,
        stage: PipelineStage,
        call: Callable[[], Awaitable[ProviderResult[T]]],
    ) -> ProviderResult[T]:
        run.enter(stage)
        try:
            return await call()
        except OrchestrationError as exc:
            # Raised before any network I/O (missing credential).
            return ProviderResult.failed(exc.to_failure())

    def _guard_text(self, run: _PipelineRun, text: str | None, field: str) -> ProviderFailure | None:
        run.enter(PipelineStage.PAYLOAD_GUARD)
        try:
            require_text(text, field)
        except PayloadValidationError as exc:
            return exc.to_failure()
        return None

    async def transcribe_audio(self, audio: AudioPayload) -> PipelineOutcome[str]:
        """Size-check ``audio`` and transcribe it."""
        run = _PipelineRun("transcription")
        run.enter(PipelineStage.PAYLOAD_GUARD)
        check = check_audio(audio.data, self._limits.max_audio_bytes)
        if not check.ok:
            return run.fail(ProviderFailure(kind=ErrorKind.VALIDATION, detail=check.message))

        if audio.language is None and self._limits.transcription_language:
            audio = dataclasses.replace(audio, language=self._limits.transcription_language)

        result = await self._call_stage(
            run, PipelineStage.TRANSCRIPTION, lambda: self._transcription.transcribe(audio)
        )
        if not result.ok:
            return run.fail(result.failure)
        return run.done(result.value)

    async def generate_image(self, prompt: TextPrompt | str) -> PipelineOutcome[str]:
        """Generate one image for an already-built prompt."""
        text = prompt.text if isinstance(prompt, TextPrompt) else prompt
        run = _PipelineRun("image")
        failure = self._guard_text(run, text, "prompt")
        if failure is not None:
            return run.fail(failure)

        result = await self._call_stage(
            run, PipelineStage.IMAGE_GENERATION, lambda: self._image.generate_image(text)
        )
        if not result.ok:
            return run.fail(result.failure)
        return run.done(result.value)

    async def _chat_transform(
        self,
        pipeline: str,
        stage: PipelineStage,
        text: str | None,
        system: str,
        build_prompt: Callable[[str], str],
    ) -> PipelineOutcome[str]:
        run = _PipelineRun(pipeline)
        failure = self._guard_text(run, text, "review text")
        if failure is not None:
            return run.fail(failure)

        result = await self._call_stage(
            run, stage, lambda: self._chat.complete(system, build_prompt(text))
        )
        if not result.ok:
            return run.fail(result.failure)
        return run.done(result.value)

    async def organize_review(self, text: str | None) -> PipelineOutcome[str]:
        """Tidy a review into one paragraph while keeping its tone."""
        return await self._chat_transform(
            "organize",
            PipelineStage.ORGANIZE,
            text,
            prompts.ORGANIZE_SYSTEM,
            prompts.organize_prompt,
        )

    async def summarize_review(self, text: str | None) -> PipelineOutcome[str]:
        """Summarize a review into three to five Korean sentences."""
        return await self._chat_transform(
            "summarize",
            PipelineStage.SUMMARIZE,
            text,
            prompts.SUMMARIZE_SYSTEM,
            prompts.summarize_prompt,
        )

    async def illustrate_review(self, summary: TextPrompt | str | None) -> PipelineOutcome[Illustration]:
        """Turn a Korean review summary into an English prompt, then an image."""
        text = summary.text if isinstance(summary, TextPrompt) else summary
        max_chars = self._limits.image_prompt_max_chars
        run = _PipelineRun("illustration")
        failure = self._guard_text(run, text, "basePrompt")
        if failure is not None:
            return run.fail(failure)

        prompt_result = await self._call_stage(
            run,
            PipelineStage.IMAGE_PROMPT,
            lambda: self._chat.complete(
                prompts.IMAGE_PROMPT_SYSTEM,
                prompts.image_prompt_request(text, max_chars),
            ),
        )
        if not prompt_result.ok:
            return run.fail(prompt_result.failure)

        english_prompt = TextPrompt(
            clamp_prompt(prompt_result.value, max_chars), PromptLanguage.ENGLISH
        )
        image_result = await self._call_stage(
            run,
            PipelineStage.IMAGE_GENERATION,
            lambda: self._image.generate_image(english_prompt.text),
        )
        if not image_result.ok:
            return run.fail(image_result.failure)
        return run.done(Illustration(prompt=english_prompt.text, image_url=image_result.value))


__all__ = ["PipelineOrchestrator"]
