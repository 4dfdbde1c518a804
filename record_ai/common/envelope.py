"""Uniform ``{success, data, message}`` wrapper returned for every operation."""

from __future__ import annotations

from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel

from record_ai.common.errors import ProviderFailure

T = TypeVar("T")


class _Outcome(Protocol):
    @property
    def ok(self) -> bool: ...

    @property
    def artifact(self) -> Any: ...

    @property
    def failure(self) -> ProviderFailure | None: ...


class ResultEnvelope(BaseModel, Generic[T]):
    """Caller-facing result. All failures share this shape with ``success=False``."""

    success: bool
    data: T | None = None
    message: str

    @classmethod
    def ok(cls, data: T, message: str) -> ResultEnvelope[T]:
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, message: str) -> ResultEnvelope[T]:
        return cls(success=False, data=None, message=message)

    @classmethod
    def from_outcome(
        cls,
        outcome: _Outcome,
        *,
        success_message: str,
        failure_prefix: str,
    ) -> ResultEnvelope[T]:
        """Render a pipeline outcome; failures become ``"<prefix>: <detail>"``."""
        if outcome.ok:
            return cls.ok(outcome.artifact, success_message)
        detail = outcome.failure.detail if outcome.failure else "unknown error"
        return cls.fail(f"{failure_prefix}: {detail}")


__all__ = ["ResultEnvelope"]
