"""Tests for config loading."""

import os
import tempfile

import pytest

from gourmet_lens.config import LensConfig, load_config


@pytest.fixture(autouse=True)
def _no_api_keys(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


def _load_toml(content: bytes) -> LensConfig:
    with tempfile.NamedTemporaryFile(suffix=".toml", delete=False) as f:
        f.write(content)
        f.flush()
        config = load_config(f.name)
    os.unlink(f.name)
    return config


def test_load_config_defaults():
    """Loading with no path returns all defaults."""
    config = load_config()
    assert isinstance(config, LensConfig)
    assert config.camera.index == 0
    assert config.camera.jpeg_quality == 80
    assert config.camera.save_dir == ""
    assert config.extraction.backend == "gemini"
    assert config.extraction.gemini.model == "gemini-3-flash-preview"
    assert config.extraction.gemini.api_key == ""
    assert config.visual.model == "gemini-2.5-flash-image"
    assert config.visual.api_key == ""
    assert config.history.db_path == "~/.config/gourmet-lens/history.db"


def test_load_config_nonexistent_file():
    """Loading a nonexistent file returns defaults."""
    config = load_config("/nonexistent/path.toml")
    assert config.camera.index == 0


def test_load_config_from_toml():
    config = _load_toml(b"""\
[camera]
index = 2
jpeg_quality = 95
save_dir = "/var/menus"

[extraction]
backend = "claude"

[extraction.claude]
api_key = "claude-key"
model = "claude-x"

[visual]
model = "img-model"

[history]
db_path = "/tmp/lens.db"
""")
    assert config.camera.index == 2
    assert config.camera.jpeg_quality == 95
    assert config.camera.save_dir == "/var/menus"
    assert config.extraction.backend == "claude"
    assert config.extraction.claude.api_key == "claude-key"
    assert config.extraction.claude.model == "claude-x"
    assert config.visual.model == "img-model"
    assert config.history.db_path == "/tmp/lens.db"


def test_load_config_env_override(monkeypatch):
    """Environment variables fill empty API keys."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-anthropic-key")
    monkeypatch.setenv("GEMINI_API_KEY", "env-gemini-key")

    config = load_config()
    assert config.extraction.claude.api_key == "env-anthropic-key"
    assert config.extraction.gemini.api_key == "env-gemini-key"
    assert config.visual.api_key == "env-gemini-key"


def test_load_config_file_key_takes_precedence(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")
    config = _load_toml(b"""\
[extraction.gemini]
api_key = "file-key"
""")
    assert config.extraction.gemini.api_key == "file-key"
    assert config.visual.api_key == "file-key"


def test_visual_key_can_differ():
    config = _load_toml(b"""\
[extraction.gemini]
api_key = "text-key"

[visual]
api_key = "image-key"
""")
    assert config.extraction.gemini.api_key == "text-key"
    assert config.visual.api_key == "image-key"


def test_load_config_partial_toml():
    """Partial TOML uses defaults for missing sections."""
    config = _load_toml(b"""\
[camera]
index = 3
""")
    assert config.camera.index == 3
    assert config.extraction.backend == "gemini"
    assert config.visual.model == "gemini-2.5-flash-image"
