"""Failure kinds raised by the extraction and visualization clients."""

from __future__ import annotations

from enum import Enum


class ExtractionErrorKind(str, Enum):
    EMPTY_MENU = "EMPTY_MENU"
    RATE_LIMIT = "RATE_LIMIT"
    SAFETY_BLOCKED = "SAFETY_BLOCKED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"


class VisualErrorKind(str, Enum):
    VISUAL_SAFETY = "VISUAL_SAFETY"
    RATE_LIMIT = "RATE_LIMIT"
    GEN_FAILED = "GEN_FAILED"


class MenuExtractionError(Exception):
    """Menu extraction failed; ``kind`` says why."""

    def __init__(self, kind: ExtractionErrorKind, detail: str = "") -> None:
        super().__init__(detail or kind.value)
        self.kind = kind


class VisualGenerationError(Exception):
    """Dish image generation failed; ``kind`` says why."""

    def __init__(self, kind: VisualErrorKind, detail: str = "") -> None:
        super().__init__(detail or kind.value)
        self.kind = kind


class InvalidTransitionError(RuntimeError):
    """Raised when the scan session is asked to move to a disallowed state."""


def is_rate_limited(exc: BaseException) -> bool:
    """Whether a backend exception signals throttling (HTTP 429)."""
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if value == 429:
            return True
    name = type(exc).__name__
    if name in ("RateLimitError", "ResourceExhausted", "TooManyRequests"):
        return True
    message = str(exc)
    return "429" in message or "rate limit" in message.lower()


def is_safety_blocked(exc: BaseException) -> bool:
    """Whether a backend exception signals a content-safety rejection."""
    name = type(exc).__name__
    if name in ("BlockedPromptException", "StopCandidateException"):
        return True
    return "safety" in str(exc).lower()
