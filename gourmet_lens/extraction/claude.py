"""Claude API backend for menu extraction."""

from __future__ import annotations

import base64
import logging

from ..errors import ExtractionErrorKind, MenuExtractionError
from ..models import ScanResult
from . import PROMPT, MenuExtractor, classify_failure, parse_response

logger = logging.getLogger(__name__)

# Claude has no response schema option, so the shape is spelled out
_FORMAT = """
Reply with a single JSON object and nothing else:
{
  "cafeName": "restaurant name if printed on the menu (optional)",
  "dishes": [
    {"name": "dish name", "description": "short description", "category": "menu section"}
  ]
}
"""


class ClaudeMenuExtractor(MenuExtractor):
    """Read dishes off a menu photo using Claude's vision capability."""

    def __init__(
        self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929"
    ) -> None:
        self._api_key = api_key
        self._model = model

    async def extract(
        self, image: bytes, mime_type: str = "image/jpeg"
    ) -> ScanResult:
        if not self._api_key:
            raise MenuExtractionError(
                ExtractionErrorKind.EXTRACTION_FAILED,
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable.",
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": mime_type,
                    "data": base64.standard_b64encode(image).decode(),
                },
            },
            {"type": "text", "text": PROMPT + "\n" + _FORMAT},
        ]

        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        try:
            response = await client.messages.create(
                model=self._model,
                max_tokens=4096,
                messages=[{"role": "user", "content": content}],
            )
        except Exception as e:
            error = classify_failure(e)
            logger.warning("Claude extraction failed (%s): %s", error.kind.value, e)
            raise error from e

        if getattr(response, "stop_reason", None) == "refusal":
            raise MenuExtractionError(
                ExtractionErrorKind.SAFETY_BLOCKED, "request refused"
            )

        text = "".join(
            block.text for block in response.content if hasattr(block, "text")
        )
        return parse_response(text)
