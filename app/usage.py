"""
Per-user daily limits for the AI features.

Every call is recorded as an AIUsage row; the limit check counts the rows
of the current UTC day.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from notes_engine.config import EngineConfig

from .database import AIUsage

logger = logging.getLogger(__name__)


class AIFeature(str, Enum):
    ENHANCE = "enhance"
    EXTRACT_TASKS = "extract_tasks"
    CONVERT_TO_TODO = "convert_to_todo"
    TRANSCRIBE = "transcribe"
    PARSE_DATETIME = "parse_datetime"
    EXTRACT_ATTENDEES = "extract_attendees"


_LIMIT_MESSAGES = {
    AIFeature.ENHANCE: "You have reached your daily limit for AI text enhancement",
    AIFeature.EXTRACT_TASKS: "You have reached your daily limit for task extraction",
    AIFeature.CONVERT_TO_TODO: "You have reached your daily limit for to-do conversion",
    AIFeature.TRANSCRIBE: "You have reached your daily limit for voice transcription",
    AIFeature.PARSE_DATETIME: "You have reached your daily limit for date parsing",
    AIFeature.EXTRACT_ATTENDEES: "You have reached your daily limit for attendee extraction",
}


def daily_limit(feature: AIFeature, config: EngineConfig) -> int:
    """Requests per user per UTC day allowed for `feature`."""
    if feature is AIFeature.TRANSCRIBE:
        return config.transcribe_max_per_day
    if feature in (AIFeature.PARSE_DATETIME, AIFeature.EXTRACT_ATTENDEES):
        return config.parser_max_requests_per_day
    return config.ai_max_requests_per_day


def day_bucket(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) of the UTC day containing `now`."""
    now = now or datetime.utcnow()
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def count_usage_today(db: Session, user_id: str, feature: AIFeature, now: Optional[datetime] = None) -> int:
    start, end = day_bucket(now)
    return (
        db.query(AIUsage)
        .filter(
            AIUsage.user_id == user_id,
            AIUsage.feature == AIFeature(feature).value,
            AIUsage.used_at >= start,
            AIUsage.used_at < end,
        )
        .count()
    )


def check_rate_limit(db: Session, user_id: str, feature: AIFeature, config: EngineConfig):
    """Raise 429 when the user has used up today's calls for `feature`."""
    feature = AIFeature(feature)
    limit = daily_limit(feature, config)
    used = count_usage_today(db, user_id, feature)

    if used >= limit:
        logger.warning(f"🚫 User {user_id} hit daily limit for {feature.value} ({used}/{limit})")
        raise HTTPException(
            status_code=429,
            detail={
                "error": "Rate limit exceeded",
                "message": f"{_LIMIT_MESSAGES[feature]} ({limit} per day). Please try again tomorrow.",
            },
        )


def track_usage(
    db: Session,
    user_id: str,
    feature: AIFeature,
    successful: bool = True,
    metadata: Optional[dict] = None,
) -> AIUsage:
    """Record one AI call."""
    row = AIUsage(
        user_id=user_id,
        feature=AIFeature(feature).value,
        used_at=datetime.utcnow(),
        successful=successful,
        usage_metadata=metadata or {},
    )
    db.add(row)
    db.commit()
    return row
