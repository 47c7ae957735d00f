"""Prompt templates for provider calls."""

from reservation_extractor.prompts.reservation_prompt import (
    PARSE_SYSTEM_PROMPT,
    OCR_SYSTEM_PROMPT,
    build_parse_prompt,
)

__all__ = [
    "PARSE_SYSTEM_PROMPT",
    "OCR_SYSTEM_PROMPT",
    "build_parse_prompt",
]
