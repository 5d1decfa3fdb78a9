"""
Environment-driven configuration for the notes engine and API.
Everything is set via environment variables (optionally from a .env file).
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# ============================================================================
# Available Gemini Models
# ============================================================================

@dataclass
class ModelConfig:
    """Configuration for a Gemini model."""
    id: str                  # Model ID for API calls
    display_name: str        # Human-readable name
    rpm_limit: int           # Requests per minute limit
    supports_audio: bool     # Whether it supports audio transcription


AVAILABLE_MODELS = [
    ModelConfig("gemini-3-flash-preview", "Gemini 3 Flash Preview", 15, True),
    ModelConfig("gemini-2.0-flash", "Gemini 2.0 Flash", 15, True),
    ModelConfig("gemini-2.0-flash-lite", "Gemini 2.0 Flash Lite", 30, True),
    ModelConfig("gemini-1.5-pro", "Gemini 1.5 Pro", 2, True),
]

DEFAULT_MODEL = "gemini-3-flash-preview"


def get_model_config(model_id: str) -> Optional[ModelConfig]:
    """Get configuration for a specific model."""
    for model in AVAILABLE_MODELS:
        if model.id == model_id:
            return model
    return None


# ============================================================================
# Engine configuration
# ============================================================================

@dataclass
class EngineConfig:
    """Fully environment-driven configuration."""

    gemini_api_keys: list[str] = field(default_factory=list)
    gemini_model: str = DEFAULT_MODEL

    # Daily usage limits per user and feature
    ai_max_requests_per_day: int = 100       # enhance, extract-tasks, convert-to-todo
    transcribe_max_per_day: int = 50
    parser_max_requests_per_day: int = 100   # parse-datetime, extract-attendees

    # Storage
    database_url: str = "sqlite:///./data/notes.db"
    upload_dir: Path = field(default_factory=lambda: Path("./data/uploads"))

    def validate(self):
        """Validate the configuration before any AI call."""
        if not self.gemini_api_keys:
            logger.error("No Gemini API keys configured")
            raise ValueError("At least one Gemini API key is required")
        if get_model_config(self.gemini_model) is None:
            logger.warning(f"Model '{self.gemini_model}' is not in the known model list")

    def ensure_directories(self):
        self.upload_dir.mkdir(parents=True, exist_ok=True)


def _read_api_keys() -> list[str]:
    keys_str = os.environ.get("GEMINI_API_KEYS", "")
    keys = [k.strip() for k in keys_str.split(",") if k.strip()]
    if not keys:
        single = os.environ.get("GEMINI_API_KEY", "").strip()
        if single:
            keys = [single]
    return keys


def load_config(env_file: str = ".env") -> EngineConfig:
    """Load configuration from environment variables.

    Env vars:
        GEMINI_API_KEYS              comma-separated Gemini API keys
                                     (or GEMINI_API_KEY for a single key)
        GEMINI_MODEL                 model ID (default: DEFAULT_MODEL)
        AI_MAX_REQUESTS_PER_DAY      daily limit for text features
        TRANSCRIBE_MAX_PER_DAY       daily limit for transcription
        PARSER_MAX_REQUESTS_PER_DAY  daily limit for datetime/attendee parsing
        DATABASE_URL                 SQLAlchemy URL
        UPLOAD_DIR                   temp directory for uploaded audio
    """
    load_dotenv(env_file)

    keys = _read_api_keys()
    if not keys:
        logger.warning("GEMINI_API_KEYS or GEMINI_API_KEY is not set, AI features will fail")

    config = EngineConfig(
        gemini_api_keys=keys,
        gemini_model=os.environ.get("GEMINI_MODEL", DEFAULT_MODEL),
        ai_max_requests_per_day=int(os.environ.get("AI_MAX_REQUESTS_PER_DAY", "100")),
        transcribe_max_per_day=int(os.environ.get("TRANSCRIBE_MAX_PER_DAY", "50")),
        parser_max_requests_per_day=int(os.environ.get("PARSER_MAX_REQUESTS_PER_DAY", "100")),
        database_url=os.environ.get("DATABASE_URL", "sqlite:///./data/notes.db"),
        upload_dir=Path(os.environ.get("UPLOAD_DIR", "./data/uploads")),
    )

    logger.debug(f"Config loaded | Model: {config.gemini_model} | Keys: {len(keys)}")
    return config
