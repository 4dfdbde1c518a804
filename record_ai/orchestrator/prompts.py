"""Instruction templates for the chat-backed stages."""

from __future__ import annotations

ORGANIZE_SYSTEM = "You rewrite Korean text naturally while keeping the user's tone."

ORGANIZE_TEMPLATE = """아래 공연 후기를 '말투와 분위기를 최대한 유지'하면서
자연스럽게 정돈된 한 문단으로 정리해줘.
- 핵심만 정리하되 내용은 크게 축약하지 말 것
- 말투, 감정선, 표현 분위기를 유지
- 너무 딱딱하지 않고 사용자 후기 느낌을 살릴 것
- 불필요한 반복/오타/비문만 자연스럽게 고치기
- 불릿포인트 금지
후기:
{review}
"""

SUMMARIZE_SYSTEM = (
    "You summarize Korean performance reviews into natural Korean (3-5 sentences) "
    "while preserving the original emotion and atmosphere."
)

SUMMARIZE_TEMPLATE = """아래 공연 후기를 **3-5문장의 자연스러운 한국어**로 요약해줘.
요구사항:
- 핵심 장면, 분위기, 감정, 공간적/분위기적 요소에 집중
- 불릿포인트나 리스트 형식 금지
- 요약에 대한 메타 코멘트 금지
- 자연스럽고 읽기 좋은 문장으로 작성
- 원본 후기의 감정과 분위기를 최대한 살리기

후기:
{review}
"""

IMAGE_PROMPT_SYSTEM = (
    "You write English prompts for an image generation model. "
    "Describe one illustrated scene that captures the stage, lighting, mood and "
    "emotion of a Korean performance review. Output only the prompt text, "
    "in English, without quotes or commentary."
)

IMAGE_PROMPT_TEMPLATE = """Korean performance review summary:
{review}

Write a single English image prompt (at most {max_chars} characters) for a
poster-like illustration of this performance. Do not include any text or
lettering in the image.
"""


def organize_prompt(review: str) -> str:
    return ORGANIZE_TEMPLATE.format(review=review)


def summarize_prompt(review: str) -> str:
    return SUMMARIZE_TEMPLATE.format(review=review)


def image_prompt_request(review: str, max_chars: int) -> str:
    return IMAGE_PROMPT_TEMPLATE.format(review=review, max_chars=max_chars)
