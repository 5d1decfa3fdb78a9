"""
Convert a note (text, rich text, or a voice message) into a to-do list.

The AI splits the input into actionable items and leftover prose; both
come back in the caller's format.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from .convert import doc_to_plain, tasks_to_doc, text_to_doc
from .errors import InvalidContent
from .models import ContentFormat, RichDocument, TodoConversion
from .prompts import TODO_EXTRACTION_PROMPT, TRANSCRIPTION_PROMPT

logger = logging.getLogger(__name__)


def convert_to_todo(
    content: Union[str, dict, RichDocument, None],
    content_format: ContentFormat,
    ai_client,
    voice_message_path: Optional[Path] = None,
) -> TodoConversion:
    """Split content into to-do items and regular text.

    Args:
        content: Plain text, or a document (dict or RichDocument) for the
                 delta format. Ignored when `voice_message_path` is given.
        content_format: Format of the input and of the returned values.
        ai_client: GeminiClient.
        voice_message_path: Audio file to transcribe and convert instead.

    Raises:
        InvalidContent: If there is no text to process.
        InvalidDocument: If a delta input is malformed.
        AIServiceError: If the AI call fails.
    """
    content_format = ContentFormat(content_format)

    if voice_message_path is not None:
        logger.info(f"Transcribing voice message for to-do conversion: {Path(voice_message_path).name}")
        text = ai_client.transcribe(Path(voice_message_path), TRANSCRIPTION_PROMPT)
    elif content_format is ContentFormat.DELTA:
        doc = content if isinstance(content, RichDocument) else RichDocument.from_dict(content)
        text = doc_to_plain(doc)
    else:
        text = content if isinstance(content, str) else ""

    if not text or not text.strip():
        raise InvalidContent("No valid content to process")

    response = ai_client.generate_json(TODO_EXTRACTION_PROMPT, text)
    if not isinstance(response, dict):
        response = {}
    tasks = [str(t) for t in (response.get("tasks") or []) if t]
    regular_text = str(response.get("regular_text") or "")
    logger.info(f"To-do conversion: {len(tasks)} task(s)")

    if content_format is ContentFormat.DELTA:
        return TodoConversion(tasks_to_doc(tasks), text_to_doc(regular_text), ContentFormat.DELTA)
    return TodoConversion(tasks, regular_text, ContentFormat.PLAIN)
