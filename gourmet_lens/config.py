"""TOML configuration loader for Gourmet Lens."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class CameraConfig:
    index: int = 0
    jpeg_quality: int = 80
    save_dir: str = ""


@dataclass
class GeminiExtractionConfig:
    api_key: str = ""
    model: str = "gemini-3-flash-preview"


@dataclass
class ClaudeExtractionConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class ExtractionConfig:
    backend: str = "gemini"
    gemini: GeminiExtractionConfig = field(default_factory=GeminiExtractionConfig)
    claude: ClaudeExtractionConfig = field(default_factory=ClaudeExtractionConfig)


@dataclass
class VisualConfig:
    api_key: str = ""
    model: str = "gemini-2.5-flash-image"


@dataclass
class HistoryConfig:
    db_path: str = "~/.config/gourmet-lens/history.db"


@dataclass
class LensConfig:
    camera: CameraConfig = field(default_factory=CameraConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    visual: VisualConfig = field(default_factory=VisualConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)


def load_config(path: str | Path | None = None) -> LensConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cam = raw.get("camera", {})
    ext = raw.get("extraction", {})
    vis = raw.get("visual", {})
    his = raw.get("history", {})

    gemini_cfg = ext.get("gemini", {})
    claude_cfg = ext.get("claude", {})

    # Resolve API keys: config file → environment variable
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    # Image generation runs on Gemini too, so it shares the key by default
    visual_api_key = vis.get("api_key", "") or gemini_api_key

    return LensConfig(
        camera=CameraConfig(
            index=cam.get("index", 0),
            jpeg_quality=cam.get("jpeg_quality", 80),
            save_dir=cam.get("save_dir", ""),
        ),
        extraction=ExtractionConfig(
            backend=ext.get("backend", "gemini"),
            gemini=GeminiExtractionConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-3-flash-preview"),
            ),
            claude=ClaudeExtractionConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
        ),
        visual=VisualConfig(
            api_key=visual_api_key,
            model=vis.get("model", "gemini-2.5-flash-image"),
        ),
        history=HistoryConfig(
            db_path=his.get("db_path", "~/.config/gourmet-lens/history.db"),
        ),
    )
