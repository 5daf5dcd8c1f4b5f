"""
DocInsight - Global Configuration Module
Manages the backend endpoint, request timeouts, paths, and viewer settings.
"""

import json
import os
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional


# --- Path Constants ---
APP_ROOT = Path(__file__).parent.resolve()
CACHE_DIR = APP_ROOT / "blob_cache"
PDFJS_DIR = APP_ROOT / "pdfjs-5.4.624-dist"
RESOURCES_DIR = APP_ROOT / "resources"
CONFIG_FILE = APP_ROOT / "settings.json"
LOG_FILE = APP_ROOT / "docinsight.log"

DEFAULT_API_URL = "http://localhost:8000/api/v1"

# Shortest passage (after trimming) that may be sent to semantic search
MIN_SELECTION_LENGTH = 10

# Ensure directories exist
CACHE_DIR.mkdir(exist_ok=True)


@dataclass
class ApiConfig:
    """Connection settings for the document/insight backend."""
    base_url: str = DEFAULT_API_URL
    timeout: float = 60.0
    connect_timeout: float = 10.0
    podcast_timeout: float = 300.0      # podcast synthesis is slow


@dataclass
class ViewerConfig:
    """Settings for the embedded PDF.js viewer."""
    show_toolbar: bool = True
    default_zoom: str = "page-width"    # any PDF.js zoom value


@dataclass
class AppSettings:
    """Top-level application settings, serializable to JSON."""
    api: ApiConfig = field(default_factory=ApiConfig)
    viewer: ViewerConfig = field(default_factory=ViewerConfig)
    theme: str = "dark"                 # dark | light
    log_level: str = "INFO"

    def save(self, path: Optional[Path] = None) -> None:
        """Persist settings to a JSON file."""
        target = path or CONFIG_FILE
        with open(target, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AppSettings":
        """Load settings from a JSON file, falling back to defaults."""
        target = path or CONFIG_FILE
        if not target.exists():
            return cls._with_env_overrides(cls())
        try:
            with open(target, "r", encoding="utf-8") as f:
                data = json.load(f)
            loaded = cls(
                api=ApiConfig(**data.get("api", {})),
                viewer=ViewerConfig(**data.get("viewer", {})),
                theme=data.get("theme", "dark"),
                log_level=data.get("log_level", "INFO"),
            )
        except (json.JSONDecodeError, TypeError):
            loaded = cls()
        return cls._with_env_overrides(loaded)

    @staticmethod
    def _with_env_overrides(loaded: "AppSettings") -> "AppSettings":
        env_url = os.environ.get("DOCINSIGHT_API_URL")
        if env_url:
            loaded.api.base_url = env_url
        return loaded


# --- Singleton Settings Instance ---
settings = AppSettings.load()


def get_env_flags() -> dict:
    """Return Chromium/Qt environment flags for stable PDF rendering."""
    return {
        "QTWEBENGINE_CHROMIUM_FLAGS": "--disable-gpu --allow-file-access-from-files --no-sandbox",
        "QTWEBENGINE_DISABLE_SANDBOX": "1",
    }
