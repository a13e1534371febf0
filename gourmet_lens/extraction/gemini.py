"""Gemini API backend for menu extraction."""

from __future__ import annotations

import logging

from ..errors import ExtractionErrorKind, MenuExtractionError
from ..models import ScanResult
from . import PROMPT, RESPONSE_SCHEMA, MenuExtractor, classify_failure, parse_response

logger = logging.getLogger(__name__)


class GeminiMenuExtractor(MenuExtractor):
    """Read dishes off a menu photo using Google Gemini's vision capability."""

    def __init__(
        self, api_key: str = "", model: str = "gemini-3-flash-preview"
    ) -> None:
        self._api_key = api_key
        self._model = model

    async def extract(
        self, image: bytes, mime_type: str = "image/jpeg"
    ) -> ScanResult:
        if not self._api_key:
            raise MenuExtractionError(
                ExtractionErrorKind.EXTRACTION_FAILED,
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
        model = genai.GenerativeModel(
            self._model,
            generation_config={
                "response_mime_type": "application/json",
                "response_schema": RESPONSE_SCHEMA,
            },
        )

        try:
            response = await model.generate_content_async(
                [{"mime_type": mime_type, "data": image}, PROMPT]
            )
            text = response.text
        except Exception as e:
            error = classify_failure(e)
            logger.warning("Gemini extraction failed (%s): %s", error.kind.value, e)
            raise error from e

        return parse_response(text)
