"""
Natural-language parsers backed by the AI client: dates/times and meeting attendees.
"""

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Optional

from .ai import AIResponseFormatError
from .prompts import get_attendees_prompt, get_datetime_prompt

logger = logging.getLogger(__name__)

DATETIME_TEMPERATURE = 0.1


def parse_datetime(
    text: str,
    ai_client,
    reference_time: Optional[datetime] = None,
    timezone: str = "UTC",
) -> dict:
    """Parse a date/time out of `text`.

    Returns the model's JSON (`parsed`, `iso`, `components`, `formatted`)
    plus `original_text`, or `{parsed: False, reason}` when the answer
    cannot be read. Errors of the AI call itself propagate.
    """
    reference_time = reference_time or datetime.now(dt_timezone.utc)
    prompt = get_datetime_prompt(reference_time, timezone)

    try:
        result = ai_client.generate_json(prompt, text, temperature=DATETIME_TEMPERATURE)
    except AIResponseFormatError as e:
        logger.warning(f"Could not read datetime answer: {e}")
        return {"parsed": False, "reason": "Error parsing the AI response"}

    if not isinstance(result, dict):
        return {"parsed": False, "reason": "Error parsing the AI response"}

    result.setdefault("parsed", False)
    result["original_text"] = text
    return result


def extract_attendees(text: str, ai_client, include_details: bool = True) -> dict:
    """People mentioned in `text` who might attend a meeting.

    Always returns `{attendees, count}`; with details each attendee is an
    object and an `explanation` is included. Any failure degrades to an
    empty attendee list.
    """
    try:
        result = ai_client.generate_json(get_attendees_prompt(include_details), text)
    except Exception as e:
        logger.error(f"Attendee extraction failed: {e}")
        result = {"attendees": [], "explanation": "Error processing request"}

    if isinstance(result, list):
        result = {"attendees": result}
    if not isinstance(result, dict):
        result = {"attendees": []}

    attendees = result.get("attendees") or []
    if not include_details:
        attendees = [a["name"] if isinstance(a, dict) and "name" in a else a for a in attendees]

    response = {"attendees": attendees, "count": len(attendees)}
    if include_details:
        response["explanation"] = result.get("explanation", "")
    return response
