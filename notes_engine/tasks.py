"""
Task extraction from note content.

Identifies calendar events, emails to send and plain to-dos in a note.
"""

import logging
from typing import Any

from .ai import AIResponseFormatError
from .models import ExtractedTask, TaskType
from .prompts import TASK_EXTRACTION_PROMPT

logger = logging.getLogger(__name__)


def extract_tasks(text: str, ai_client) -> list[ExtractedTask]:
    """Extract tasks from `text` using AI.

    Args:
        text: Note content in plain text.
        ai_client: GeminiClient (anything with `generate_json`).

    Returns:
        List of ExtractedTask objects; empty when the model's answer has
        no usable task list.

    Raises:
        AIServiceError: If the AI call itself fails.
    """
    try:
        response = ai_client.generate_json(TASK_EXTRACTION_PROMPT, text)
    except AIResponseFormatError as e:
        logger.warning(f"Could not read task extraction answer: {e}")
        return []
    tasks = _parse_task_response(response)
    logger.info(f"Extracted {len(tasks)} task(s)")
    return tasks


def _parse_task_response(response: Any) -> list[ExtractedTask]:
    """Parse the AI JSON answer into ExtractedTask objects."""
    if isinstance(response, dict):
        items = response.get("tasks") or []
    elif isinstance(response, list):
        items = response
    else:
        logger.warning(f"Unexpected task extraction response: {type(response).__name__}")
        return []

    tasks = []
    for item in items:
        if isinstance(item, str):
            item = {"title": item}
        if not isinstance(item, dict) or not str(item.get("title") or "").strip():
            continue

        try:
            task_type = TaskType(str(item.get("type") or "todo").lower())
        except ValueError:
            task_type = TaskType.TODO

        people = item.get("people") or []
        if isinstance(people, str):
            people = [people]

        tasks.append(ExtractedTask(
            title=str(item["title"]).strip(),
            type=task_type,
            details=item.get("details"),
            people=[str(p) for p in people],
        ))

    return tasks
