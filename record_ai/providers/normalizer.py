"""Collapse provider "content" fields into plain text.

Chat providers return ``message.content`` either as a bare string or as an
ordered list of typed segments (``[{"type": "text", "text": "..."}]``). The raw
JSON value is parsed once into a small tagged union and every variant knows how
to render itself as text. Nothing here raises on an unexpected shape: the worst
case is ``NoContent``, which renders as ``""`` and which callers must treat as a
normalization failure rather than a valid empty answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr, TypeAdapter, ValidationError

TEXT_SEGMENT_TYPE = "text"


class ContentSegment(BaseModel):
    """One typed entry of a segmented content list."""

    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    text: str | None = None


@dataclass(frozen=True)
class PlainText:
    value: str

    def as_text(self) -> str:
        return self.value


@dataclass(frozen=True)
class TextSegments:
    segments: tuple[ContentSegment, ...]

    def as_text(self) -> str:
        for segment in self.segments:
            if segment.type == TEXT_SEGMENT_TYPE and segment.text is not None:
                return segment.text
        return ""


@dataclass(frozen=True)
class NoContent:
    def as_text(self) -> str:
        return ""


MessageContent = PlainText | TextSegments | NoContent

_PLAIN_ADAPTER = TypeAdapter(StrictStr)


def parse_content(raw: Any) -> MessageContent:
    """Classify a raw JSON "content" value into one of the union variants."""
    if raw is None:
        return NoContent()
    try:
        return PlainText(_PLAIN_ADAPTER.validate_python(raw))
    except ValidationError:
        pass
    if not isinstance(raw, list):
        return NoContent()
    segments = []
    for item in raw:
        # malformed entries are skipped, not fatal
        try:
            segments.append(ContentSegment.model_validate(item))
        except ValidationError:
            continue
    if not segments:
        return NoContent()
    return TextSegments(tuple(segments))


def normalize_content(raw: Any) -> str:
    """Best-effort plain text for a raw "content" value; ``""`` when none exists."""
    return parse_content(raw).as_text()


__all__ = [
    "ContentSegment",
    "MessageContent",
    "NoContent",
    "PlainText",
    "TextSegments",
    "normalize_content",
    "parse_content",
]
