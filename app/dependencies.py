"""
Shared FastAPI dependencies: caller identity, configuration and the AI client.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException

from notes_engine.ai import GeminiClient
from notes_engine.config import EngineConfig, load_config

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_config() -> EngineConfig:
    return load_config()


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Caller id from the X-User-Id header, set by the authenticating proxy."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()


def get_ai_client(config: EngineConfig = Depends(get_config)) -> GeminiClient:
    """A fresh Gemini client per request; key rotation state is per instance."""
    try:
        return GeminiClient.from_config(config)
    except ValueError as e:
        logger.error(f"AI client unavailable: {e}")
        raise HTTPException(status_code=503, detail="AI service is not configured")
