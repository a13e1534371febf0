"""Menu extraction backend base class, response parsing, and factory."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ..errors import (
    ExtractionErrorKind,
    MenuExtractionError,
    is_rate_limited,
    is_safety_blocked,
)
from ..models import Dish, ScanResult, now_ms

if TYPE_CHECKING:
    from ..config import LensConfig

PROMPT = (
    "Extract dish names and descriptions from this menu. "
    "IMPORTANT: Completely ignore and exclude any prices or currency symbols. "
    "Focus on non-Indian international dishes. Return only valid JSON."
)

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "cafeName": {"type": "STRING"},
        "dishes": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "description": {"type": "STRING"},
                    "category": {"type": "STRING"},
                },
                "required": ["name", "description", "category"],
            },
        },
    },
    "required": ["dishes"],
}


class MenuExtractor(ABC):
    """Abstract base for turning a menu photo into structured dishes."""

    @abstractmethod
    async def extract(
        self, image: bytes, mime_type: str = "image/jpeg"
    ) -> ScanResult:
        """Extract the dishes shown on a menu image.

        Raises:
            MenuExtractionError: with EMPTY_MENU when no dishes are found,
                RATE_LIMIT / SAFETY_BLOCKED when the backend says so, and
                EXTRACTION_FAILED for anything else.
        """
        ...


def classify_failure(exc: BaseException) -> MenuExtractionError:
    """Map a backend exception onto an extraction error kind."""
    if isinstance(exc, MenuExtractionError):
        return exc
    if is_rate_limited(exc):
        kind = ExtractionErrorKind.RATE_LIMIT
    elif is_safety_blocked(exc):
        kind = ExtractionErrorKind.SAFETY_BLOCKED
    else:
        kind = ExtractionErrorKind.EXTRACTION_FAILED
    return MenuExtractionError(kind, str(exc))


def parse_response(text: str) -> ScanResult:
    """Parse the backend's JSON reply into a ScanResult with fresh dish IDs."""
    cleaned = (text or "").strip() or "{}"
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MenuExtractionError(
            ExtractionErrorKind.EXTRACTION_FAILED, f"invalid JSON: {e}"
        ) from e
    if not isinstance(parsed, dict):
        raise MenuExtractionError(
            ExtractionErrorKind.EXTRACTION_FAILED, "expected a JSON object"
        )

    raw_dishes = parsed.get("dishes") or []
    if not raw_dishes:
        raise MenuExtractionError(ExtractionErrorKind.EMPTY_MENU)

    stamp = now_ms()
    dishes = []
    for index, item in enumerate(raw_dishes):
        if not isinstance(item, dict) or not item.get("name"):
            raise MenuExtractionError(
                ExtractionErrorKind.EXTRACTION_FAILED,
                f"dish #{index} has no name",
            )
        dishes.append(
            Dish(
                id=f"dish-{index}-{stamp}",
                name=item["name"],
                description=item.get("description", ""),
                category=item.get("category", ""),
            )
        )
    return ScanResult(dishes=dishes, cafe_name=parsed.get("cafeName") or None)


def create_extractor(config: LensConfig) -> MenuExtractor:
    """Create a menu extraction backend based on configuration."""
    backend_name = config.extraction.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiMenuExtractor

            return GeminiMenuExtractor(
                api_key=config.extraction.gemini.api_key,
                model=config.extraction.gemini.model,
            )
        case "claude":
            from .claude import ClaudeMenuExtractor

            return ClaudeMenuExtractor(
                api_key=config.extraction.claude.api_key,
                model=config.extraction.claude.model,
            )
        case _:
            raise ValueError(
                f"Unknown extraction backend: {backend_name!r} "
                f"(choose gemini or claude)"
            )
