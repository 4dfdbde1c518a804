"""Pipeline stages, run states and outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from record_ai.common.errors import ErrorKind, ProviderFailure

T = TypeVar("T")


class PipelineStage(str, Enum):
    PAYLOAD_GUARD = "payload_guard"
    TRANSCRIPTION = "transcription"
    ORGANIZE = "organize"
    SUMMARIZE = "summarize"
    IMAGE_PROMPT = "image_prompt"
    IMAGE_GENERATION = "image_generation"


class PipelineState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"
    DONE = "done"


class PromptLanguage(str, Enum):
    KOREAN = "ko"
    ENGLISH = "en"


@dataclass(frozen=True)
class StateTransition:
    """One step of a run: ``IN_FLIGHT(stage)``, ``FAILED(stage, kind)`` and so on."""

    state: PipelineState
    stage: PipelineStage | None = None
    kind: ErrorKind | None = None

    def __str__(self) -> str:
        args = [a.value for a in (self.stage, self.kind) if a is not None]
        if not args:
            return self.state.value
        return f"{self.state.value}({', '.join(args)})"


@dataclass(frozen=True)
class TextPrompt:
    text: str
    language: PromptLanguage = PromptLanguage.KOREAN


@dataclass(frozen=True)
class Illustration:
    """Artifact of the illustration pipeline."""

    prompt: str
    image_url: str


@dataclass(frozen=True)
class PipelineOutcome(Generic[T]):
    """Terminal artifact or the first failure of a pipeline run."""

    artifact: T | None = None
    failure: ProviderFailure | None = None
    failed_stage: PipelineStage | None = None
    transitions: tuple[StateTransition, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def state(self) -> PipelineState:
        if not self.transitions:
            return PipelineState.IDLE
        return self.transitions[-1].state

    @property
    def stages(self) -> tuple[PipelineStage, ...]:
        """Stages entered, in order."""
        return tuple(
            t.stage
            for t in self.transitions
            if t.state is PipelineState.IN_FLIGHT and t.stage is not None
        )


__all__ = [
    "Illustration",
    "PipelineOutcome",
    "PipelineStage",
    "PipelineState",
    "PromptLanguage",
    "StateTransition",
    "TextPrompt",
]
