"""
NutriTrack configuration.

Values come from the process environment after a project-level `.env` file
has been loaded.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")

SUPPORTED_LANGUAGES = {
    "en": "English",
    "ja": "Japanese",
    "zh": "Chinese",
    "ms": "Malay",
    "fr": "French",
}

DEFAULT_FRUIT_API_URL = "https://www.fruityvice.com"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def language_name(code: str) -> str:
    """Human readable language name used inside prompts."""
    return SUPPORTED_LANGUAGES.get(code, code)


@dataclass
class Settings:
    """Runtime settings shared by the API and the service container."""
    gemini_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    )
    gemini_model: str = field(
        default_factory=lambda: os.getenv("NUTRITRACK_GEMINI_MODEL", "gemini-2.0-flash")
    )
    temperature: float = field(
        default_factory=lambda: _env_float("NUTRITRACK_LLM_TEMPERATURE", 0.5)
    )
    request_timeout_seconds: float = field(
        default_factory=lambda: _env_float("NUTRITRACK_LLM_TIMEOUT_SECONDS", 30.0)
    )
    max_attempts: int = field(
        default_factory=lambda: _env_int("NUTRITRACK_LLM_MAX_ATTEMPTS", 3)
    )
    retry_backoff_seconds: float = field(
        default_factory=lambda: _env_float("NUTRITRACK_LLM_BACKOFF_SECONDS", 1.0)
    )
    default_language: str = field(
        default_factory=lambda: os.getenv("NUTRITRACK_DEFAULT_LANGUAGE", "en")
    )
    translation_cache_dir: Optional[str] = field(
        default_factory=lambda: os.getenv("NUTRITRACK_TRANSLATION_CACHE_DIR") or None
    )
    fruit_api_url: str = field(
        default_factory=lambda: os.getenv("NUTRITRACK_FRUIT_API_URL", DEFAULT_FRUIT_API_URL)
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("NUTRITRACK_LOG_LEVEL", "INFO")
    )
    log_file: Optional[str] = field(
        default_factory=lambda: os.getenv("NUTRITRACK_LOG_FILE") or None
    )

    def __post_init__(self):
        if self.default_language not in SUPPORTED_LANGUAGES:
            self.default_language = "en"
        if self.max_attempts < 1:
            self.max_attempts = 1


settings = Settings()
