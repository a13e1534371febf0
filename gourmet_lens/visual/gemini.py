"""Gemini image model backend for dish visualization."""

from __future__ import annotations

import base64
import logging

from ..errors import VisualErrorKind, VisualGenerationError
from . import VisualGenerator, build_prompt, classify_failure

logger = logging.getLogger(__name__)

# Finish reasons that mean the content was refused, besides the *SAFETY ones
_BLOCKED_REASONS = frozenset({"PROHIBITED_CONTENT", "BLOCKLIST", "SPII"})


class GeminiVisualGenerator(VisualGenerator):
    """Render dish photos with a Gemini image-capable model."""

    def __init__(
        self, api_key: str = "", model: str = "gemini-2.5-flash-image"
    ) -> None:
        self._api_key = api_key
        self._model = model

    async def generate(self, dish_name: str) -> str | None:
        if not self._api_key:
            raise VisualGenerationError(
                VisualErrorKind.GEN_FAILED,
                "Gemini API key is not set. "
                "Check the config file or the GEMINI_API_KEY environment variable.",
            )

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model)

        try:
            response = await model.generate_content_async(build_prompt(dish_name))
        except Exception as e:
            error = classify_failure(e)
            logger.error("Image generation for %r failed: %s", dish_name, e)
            raise error from e

        return _extract_image(response)


def _extract_image(response) -> str | None:
    """Pull the first inline image out of a Gemini response as a data URI."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        raise VisualGenerationError(VisualErrorKind.VISUAL_SAFETY, "no candidate")

    candidate = candidates[0]
    reason = getattr(candidate, "finish_reason", None)
    reason = str(getattr(reason, "name", reason) or "")
    if "SAFETY" in reason or reason in _BLOCKED_REASONS:
        raise VisualGenerationError(
            VisualErrorKind.VISUAL_SAFETY, f"finish reason {reason}"
        )

    content = getattr(candidate, "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None)
        if not data:
            continue
        if isinstance(data, bytes):
            data = base64.b64encode(data).decode()
        mime_type = getattr(inline, "mime_type", None) or "image/png"
        return f"data:{mime_type};base64,{data}"
    return None
