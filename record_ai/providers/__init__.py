"""Provider clients for transcription, chat completion and image generation."""

from .base import BaseProviderClient, ProviderResult, RetryPolicy
from .chat import ChatClient
from .image import ImageClient
from .normalizer import normalize_content, parse_content
from .transcription import AudioPayload, TranscriptionClient

__all__ = [
    "AudioPayload",
    "BaseProviderClient",
    "ChatClient",
    "ImageClient",
    "ProviderResult",
    "RetryPolicy",
    "TranscriptionClient",
    "normalize_content",
    "parse_content",
]
