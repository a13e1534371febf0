"""Scan session state machine: capture → extraction → results → visuals."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from .camera import read_image_file
from .errors import (
    ExtractionErrorKind,
    InvalidTransitionError,
    MenuExtractionError,
    VisualErrorKind,
    VisualGenerationError,
)
from .extraction import classify_failure as classify_extraction_failure
from .models import Dish, HistoryItem, ScanResult
from .visual import classify_failure as classify_visual_failure

if TYPE_CHECKING:
    from .camera import MenuCamera
    from .db import HistoryStore
    from .extraction import MenuExtractor
    from .visual import VisualGenerator

logger = logging.getLogger(__name__)


class AppState(str, Enum):
    IDLE = "IDLE"
    CAPTURING = "CAPTURING"
    PROCESSING = "PROCESSING"
    RESULTS = "RESULTS"
    ERROR = "ERROR"
    HISTORY = "HISTORY"


TRANSITIONS: dict[AppState, frozenset[AppState]] = {
    AppState.IDLE: frozenset(
        {AppState.IDLE, AppState.CAPTURING, AppState.PROCESSING, AppState.HISTORY}
    ),
    AppState.CAPTURING: frozenset(
        {AppState.IDLE, AppState.PROCESSING, AppState.HISTORY}
    ),
    AppState.PROCESSING: frozenset(
        {AppState.IDLE, AppState.RESULTS, AppState.ERROR, AppState.HISTORY}
    ),
    AppState.RESULTS: frozenset(
        {AppState.IDLE, AppState.CAPTURING, AppState.PROCESSING, AppState.HISTORY}
    ),
    AppState.ERROR: frozenset({AppState.IDLE, AppState.HISTORY}),
    AppState.HISTORY: frozenset(
        {AppState.IDLE, AppState.RESULTS, AppState.HISTORY}
    ),
}

EXTRACTION_MESSAGES: dict[ExtractionErrorKind, str] = {
    ExtractionErrorKind.EMPTY_MENU: (
        "NO DISHES FOUND. TRY A CLEARER SHOT OR A DIFFERENT MENU."
    ),
    ExtractionErrorKind.RATE_LIMIT: "SYSTEM BUSY. COOL DOWN FOR A SEC.",
    ExtractionErrorKind.SAFETY_BLOCKED: "CONTENT FILTERED. TRY AGAIN.",
    ExtractionErrorKind.EXTRACTION_FAILED: "READ ERROR. CHECK CONNECTION OR IMAGE.",
}

VISUAL_LABELS: dict[VisualErrorKind, str] = {
    VisualErrorKind.VISUAL_SAFETY: "FILTERED",
    VisualErrorKind.RATE_LIMIT: "BUSY",
    VisualErrorKind.GEN_FAILED: "FAILED",
}


class ScanSessionController:
    """Drives one user's scan session.

    Holds the live ScanResult shown to the user, the current AppState and
    the extraction error message, and writes every successful scan to the
    history store. In-flight requests are never cancelled: a reply that
    arrives after a reset still lands in the history, but does not replace
    whatever the user is looking at by then. Browsing the history list
    while a scan runs is not a reset; the scan still becomes the live
    result behind the list.
    """

    def __init__(
        self,
        extractor: MenuExtractor,
        generator: VisualGenerator,
        history: HistoryStore,
    ) -> None:
        self._extractor = extractor
        self._generator = generator
        self._history = history
        self._camera: MenuCamera | None = None
        self._scan_seq = 0
        self._tasks: set[asyncio.Task] = set()

        self.state = AppState.IDLE
        self.results: ScanResult | None = None
        self.error: str | None = None
        self.error_kind: ExtractionErrorKind | None = None

    @property
    def history(self) -> HistoryStore:
        return self._history

    def _transition(self, target: AppState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"cannot go from {self.state.value} to {target.value}"
            )
        if self.state is AppState.CAPTURING and target is not AppState.CAPTURING:
            self._release_camera()
        logger.debug("State %s -> %s", self.state.value, target.value)
        self.state = target

    def _release_camera(self) -> None:
        if self._camera is not None:
            self._camera.release()
            self._camera = None

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_pending(self) -> None:
        """Wait for background visualizations started by a scan."""
        while self._tasks:
            outcomes = await asyncio.gather(
                *list(self._tasks), return_exceptions=True
            )
            for outcome in outcomes:
                if isinstance(outcome, Exception):
                    logger.warning("Background visualization ended early: %r", outcome)

    def close(self) -> None:
        """Release the camera if the session still holds it."""
        self._release_camera()

    # ── capture ──

    def start_capture(self, camera: MenuCamera) -> None:
        if AppState.CAPTURING not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"cannot start capture from {self.state.value}"
            )
        camera.open()
        self._camera = camera
        self._transition(AppState.CAPTURING)

    def cancel_capture(self) -> None:
        self._transition(AppState.IDLE)

    async def capture(self, *, auto_visualize: bool = True) -> ScanResult | None:
        """Take a still with the held camera and scan it."""
        if self.state is not AppState.CAPTURING or self._camera is None:
            raise InvalidTransitionError("capture requires an open camera")
        try:
            image = self._camera.capture()
        except RuntimeError:
            self._transition(AppState.IDLE)
            raise
        finally:
            self._release_camera()
        return await self.process_image(image, auto_visualize=auto_visualize)

    async def upload(
        self, path: str | Path, *, auto_visualize: bool = True
    ) -> ScanResult | None:
        """Scan a menu image read from disk."""
        image, mime_type = read_image_file(path)
        return await self.process_image(
            image, mime_type, auto_visualize=auto_visualize
        )

    # ── extraction ──

    async def process_image(
        self,
        image: bytes,
        mime_type: str = "image/jpeg",
        *,
        auto_visualize: bool = True,
    ) -> ScanResult | None:
        """Extract dishes from *image* and move to RESULTS or ERROR.

        Returns:
            The live ScanResult, or None when extraction failed or the scan
            was superseded by a reset while in flight.
        """
        self._transition(AppState.PROCESSING)
        self.error = None
        self.error_kind = None
        self._scan_seq += 1
        seq = self._scan_seq

        try:
            result = await self._extractor.extract(image, mime_type)
            if not result.dishes:
                raise MenuExtractionError(ExtractionErrorKind.EMPTY_MENU)
        except Exception as e:
            error = classify_extraction_failure(e)
            if self._is_stale(seq):
                logger.info("Ignoring failure of a superseded scan: %s", error.kind.value)
                return None
            logger.warning("Menu extraction failed: %s (%s)", error.kind.value, e)
            self.error_kind = error.kind
            self.error = EXTRACTION_MESSAGES[error.kind]
            if self.state is AppState.PROCESSING:
                self._transition(AppState.ERROR)
            return None

        self._history.append(HistoryItem.from_result(result))
        if self._is_stale(seq):
            logger.info("Scan finished after reset; saved to history only")
            return None

        if self.state is AppState.PROCESSING:
            self._transition(AppState.RESULTS)
        elif self.state is not AppState.HISTORY:
            # An archived entry was opened meanwhile; keep it on screen
            logger.info("Scan finished while another result is shown; archived")
            return None
        self.results = result
        logger.info(
            "Found %d dishes%s",
            len(result.dishes),
            f" at {result.cafe_name}" if result.cafe_name else "",
        )

        if auto_visualize:
            self._spawn(self._auto_visualize(result.dishes[0].id))
        return result

    def _is_stale(self, seq: int) -> bool:
        return seq != self._scan_seq

    async def _auto_visualize(self, dish_id: str) -> None:
        if self._live_dish(dish_id) is None:
            logger.debug("Dish %s left the live result before rendering", dish_id)
            return
        await self.visualize(dish_id)

    # ── visualization ──

    def _live_dish(self, dish_id: str) -> Dish | None:
        if self.results is None:
            return None
        return self.results.find(dish_id)

    async def visualize(self, dish_id: str) -> str | None:
        """Generate the image for one dish of the live result.

        Failures only touch that dish's ``error`` label; the session state
        is left alone.

        Returns:
            The image data URI, or None on failure.

        Raises:
            KeyError: if the live result has no dish with *dish_id*.
        """
        dish = self._live_dish(dish_id)
        if dish is None:
            raise KeyError(f"no dish {dish_id!r} in the current results")

        dish.is_generating = True
        dish.error = None

        try:
            image_url = await self._generator.generate(dish.name)
            if not image_url:
                raise VisualGenerationError(
                    VisualErrorKind.GEN_FAILED, "no image in response"
                )
        except Exception as e:
            error = classify_visual_failure(e)
            logger.warning(
                "Visual for %r failed: %s (%s)", dish.name, error.kind.value, e
            )
            live = self._live_dish(dish_id)
            if live is not None:
                live.is_generating = False
                live.error = VISUAL_LABELS[error.kind]
            return None

        live = self._live_dish(dish_id)
        if live is not None:
            live.image_url = image_url
            live.is_generating = False
        self._history.update_dish_image(dish_id, image_url)
        return image_url

    # ── navigation ──

    def reset(self) -> None:
        """Back to IDLE, dropping results and error."""
        self._scan_seq += 1
        self._transition(AppState.IDLE)
        self._release_camera()
        self.results = None
        self.error = None
        self.error_kind = None

    def show_history(self) -> list[HistoryItem]:
        self._transition(AppState.HISTORY)
        return self._history.items

    def select_history(self, item_id: str) -> ScanResult:
        """Show a stored scan as the live result without re-extracting."""
        item = self._history.get(item_id)
        if item is None:
            raise KeyError(f"no history entry {item_id!r}")
        self._transition(AppState.RESULTS)
        self.results = item.result.snapshot()
        return self.results

    def clear_history(self) -> None:
        self._history.clear()
        logger.info("History cleared")
