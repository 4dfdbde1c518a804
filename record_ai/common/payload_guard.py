"""Payload limits checked before any provider call.

Oversized audio is a hard caller error. Overlong prompts are silently truncated
because the image provider rejects them outright and a truncated prompt still
carries most of the intent.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from record_ai.common.errors import PayloadValidationError

_BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class AudioOk:
    size_bytes: int

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class AudioTooLarge:
    actual_mb: float
    limit_mb: float

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return f"파일이 너무 큽니다. ({self.actual_mb}MB) 제한: {self.limit_mb:g}MB"


AudioCheck = AudioOk | AudioTooLarge


def _megabytes(size: int) -> float:
    """Size in MB rounded half-up to two decimals."""
    mb = Decimal(size) / Decimal(_BYTES_PER_MB)
    return float(mb.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def check_audio(data: bytes, max_bytes: int) -> AudioCheck:
    """Compare an upload against the size ceiling."""
    size = len(data)
    if size > max_bytes:
        return AudioTooLarge(
            actual_mb=_megabytes(size),
            limit_mb=max_bytes / _BYTES_PER_MB,
        )
    return AudioOk(size_bytes=size)


def clamp_prompt(text: str, max_chars: int) -> str:
    """Return the first ``max_chars`` characters of ``text``."""
    if max_chars < 0:
        max_chars = 0
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def require_text(value: str | None, field: str) -> str:
    """Reject missing or whitespace-only text input."""
    if value is None or not value.strip():
        raise PayloadValidationError(f"{field} is required")
    return value


__all__ = [
    "AudioCheck",
    "AudioOk",
    "AudioTooLarge",
    "check_audio",
    "clamp_prompt",
    "require_text",
]
