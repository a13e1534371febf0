"""Gourmet Lens: scan a restaurant menu and visualize its dishes."""

from .camera import MenuCamera, read_image_file
from .config import (
    CameraConfig,
    ExtractionConfig,
    HistoryConfig,
    LensConfig,
    VisualConfig,
    load_config,
)
from .db import HistoryStore, MemoryBackend, SQLiteBackend
from .errors import (
    ExtractionErrorKind,
    InvalidTransitionError,
    MenuExtractionError,
    VisualErrorKind,
    VisualGenerationError,
)
from .extraction import MenuExtractor, create_extractor
from .models import Dish, HistoryItem, ScanResult
from .session import AppState, ScanSessionController
from .visual import VisualGenerator, create_generator

__all__ = [
    "MenuCamera",
    "read_image_file",
    "MenuExtractor",
    "create_extractor",
    "VisualGenerator",
    "create_generator",
    "ScanSessionController",
    "AppState",
    "HistoryStore",
    "MemoryBackend",
    "SQLiteBackend",
    "Dish",
    "ScanResult",
    "HistoryItem",
    "ExtractionErrorKind",
    "VisualErrorKind",
    "MenuExtractionError",
    "VisualGenerationError",
    "InvalidTransitionError",
    "LensConfig",
    "CameraConfig",
    "ExtractionConfig",
    "VisualConfig",
    "HistoryConfig",
    "load_config",
]
