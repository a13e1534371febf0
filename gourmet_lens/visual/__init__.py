"""Dish visualization backend base class and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ..errors import (
    VisualErrorKind,
    VisualGenerationError,
    is_rate_limited,
    is_safety_blocked,
)

if TYPE_CHECKING:
    from ..config import LensConfig


def build_prompt(dish_name: str) -> str:
    return (
        f"A single, high-quality, professional food photography shot of {dish_name}. "
        "Served on a clean plate in a natural cafe setting. "
        "Bright, appetizing, 4k detail, no text on image. "
        "Square 1:1 composition."
    )


class VisualGenerator(ABC):
    """Abstract base for rendering a photo of a dish from its name."""

    @abstractmethod
    async def generate(self, dish_name: str) -> str | None:
        """Return a ``data:`` URI for the dish image.

        ``None`` means the backend answered without an image and without an
        explicit failure.

        Raises:
            VisualGenerationError: VISUAL_SAFETY, RATE_LIMIT or GEN_FAILED.
        """
        ...


def classify_failure(exc: BaseException) -> VisualGenerationError:
    """Map a backend exception onto a visualization error kind."""
    if isinstance(exc, VisualGenerationError):
        return exc
    if is_rate_limited(exc):
        kind = VisualErrorKind.RATE_LIMIT
    elif is_safety_blocked(exc):
        kind = VisualErrorKind.VISUAL_SAFETY
    else:
        kind = VisualErrorKind.GEN_FAILED
    return VisualGenerationError(kind, str(exc))


def create_generator(config: LensConfig) -> VisualGenerator:
    """Create the image generation backend."""
    from .gemini import GeminiVisualGenerator

    return GeminiVisualGenerator(
        api_key=config.visual.api_key,
        model=config.visual.model,
    )
