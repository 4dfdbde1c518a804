"""Failure taxonomy shared by the provider clients and the orchestrator.

Every failure that can reach a caller is classified into one of a small set of
kinds. Callers branch on ``kind``; the human-readable ``detail`` is for the
result envelope and for logs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Stable, caller-visible failure classes."""

    VALIDATION = "validation"
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    CONFIGURATION = "configuration"
    UNSUPPORTED = "unsupported_capability"


@dataclass(frozen=True)
class ProviderFailure:
    """Classified failure carried by a failed ``ProviderResult`` or outcome."""

    kind: ErrorKind
    detail: str
    provider: str | None = None
    status_code: int | None = None


class OrchestrationError(Exception):
    """Base class for every classified failure."""

    kind: ErrorKind = ErrorKind.PERMANENT

    def __init__(
        self,
        detail: str,
        *,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.provider = provider
        self.status_code = status_code

    def to_failure(self) -> ProviderFailure:
        return ProviderFailure(
            kind=self.kind,
            detail=self.detail,
            provider=self.provider,
            status_code=self.status_code,
        )


class PayloadValidationError(OrchestrationError):
    """Input exceeds a hard limit or a required value is missing."""

    kind = ErrorKind.VALIDATION


class TransientProviderError(OrchestrationError):
    """Timeout, network failure or retryable HTTP status."""

    kind = ErrorKind.TRANSIENT


class PermanentProviderError(OrchestrationError):
    """Non-retryable provider rejection, or retries exhausted."""

    kind = ErrorKind.PERMANENT


class NormalizationError(PermanentProviderError):
    """A well-formed response lacked the expected success shape."""


class ConfigurationError(OrchestrationError):
    """Missing, blank or rejected provider credential."""

    kind = ErrorKind.CONFIGURATION


class UnsupportedCapabilityError(OrchestrationError):
    """The provider answered in a recognised shape this service cannot use."""

    kind = ErrorKind.UNSUPPORTED


__all__ = [
    "ConfigurationError",
    "ErrorKind",
    "NormalizationError",
    "OrchestrationError",
    "PayloadValidationError",
    "PermanentProviderError",
    "ProviderFailure",
    "TransientProviderError",
    "UnsupportedCapabilityError",
]
