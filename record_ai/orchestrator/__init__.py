"""Pipeline orchestration over the provider clients."""

from .pipeline import PipelineOrchestrator
from .types import (
    Illustration,
    PipelineOutcome,
    PipelineStage,
    PipelineState,
    PromptLanguage,
    StateTransition,
    TextPrompt,
)

__all__ = [
    "Illustration",
    "PipelineOrchestrator",
    "PipelineOutcome",
    "PipelineStage",
    "PipelineState",
    "PromptLanguage",
    "StateTransition",
    "TextPrompt",
]
