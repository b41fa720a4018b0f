"""Configuration management for VistaQuest."""

import os
from pathlib import Path

from dotenv import load_dotenv


# Load environment variables from .env file
def _find_env_file() -> Path | None:
    """Find the .env file, searching up the directory tree."""
    current = Path(__file__).parent
    for _ in range(5):  # Search up to 5 levels
        env_path = current / ".env"
        if env_path.exists():
            return env_path
        current = current.parent
    return None


_env_file = _find_env_file()
if _env_file:
    load_dotenv(_env_file)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


class Config:
    """Application configuration from environment variables."""

    # API key (GEMINI_API_KEY accepted as an alias)
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "") or os.getenv("GEMINI_API_KEY", "")

    # Models
    IMAGE_MODEL: str = os.getenv("IMAGE_MODEL", "gemini-2.5-flash-image-preview")
    TEXT_MODEL: str = os.getenv("TEXT_MODEL", "gemini-2.5-flash-preview-09-2025")
    VISION_MODEL: str = os.getenv("VISION_MODEL", "") or TEXT_MODEL

    # Retry policy (pure exponential, no jitter)
    MAX_RETRIES: int = _env_int("MAX_RETRIES", 3)
    RETRY_BASE_DELAY_MS: int = _env_int("RETRY_BASE_DELAY_MS", 1000)

    # Vision grounding
    VISION_MAX_DIMENSION: int = _env_int("VISION_MAX_DIMENSION", 800)
    VISION_TEMPERATURE: float = _env_float("VISION_TEMPERATURE", 0.5)

    # Image prompt suffix
    IMAGE_ASPECT_HINT: str = os.getenv("IMAGE_ASPECT_HINT", "--ar 16:9")

    # Theme / style tables
    DEFAULT_THEME: str = os.getenv("DEFAULT_THEME", "Fantasy")
    DEFAULT_STYLE: str = os.getenv("DEFAULT_STYLE", "Watercolor Concept")
    THEMES_FILE: str = os.getenv("THEMES_FILE", "")

    # Scene image handles (empty = system temp dir)
    MEDIA_DIR: str = os.getenv("MEDIA_DIR", "")

    # Debug
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    @classmethod
    def validate(cls) -> list[str]:
        """Validate configuration, return list of issues."""
        issues = []

        if not cls.GOOGLE_API_KEY:
            issues.append(
                "No Gemini API key configured. "
                "Set GOOGLE_API_KEY (or GEMINI_API_KEY) in .env"
            )
        if cls.MAX_RETRIES < 1:
            issues.append(f"MAX_RETRIES must be at least 1 (got {cls.MAX_RETRIES})")
        if cls.VISION_MAX_DIMENSION < 1:
            issues.append(
                f"VISION_MAX_DIMENSION must be positive (got {cls.VISION_MAX_DIMENSION})"
            )

        return issues

    @classmethod
    def retry_base_delay(cls) -> float:
        """Base retry delay in seconds."""
        return cls.RETRY_BASE_DELAY_MS / 1000.0

    @classmethod
    def media_dir(cls) -> Path | None:
        """Directory for scene image handles, or None for the temp dir."""
        return Path(cls.MEDIA_DIR) if cls.MEDIA_DIR else None

    @classmethod
    def is_debug(cls) -> bool:
        """Check if debug mode is enabled."""
        return cls.DEBUG


# Singleton config instance
config = Config()
