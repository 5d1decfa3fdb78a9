"""
AI feature routes: enhancement, task extraction, transcription, to-do
conversion and the natural-language parsers.

All AI calls are blocking; they run in the threadpool so the event loop
stays free.
"""

import shutil
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from notes_engine import (
    ContentFormat,
    EnhancementError,
    InvalidDocument,
    RewriteServiceFailure,
    RichDocument,
    doc_to_plain,
    enhance_text,
)
from notes_engine.ai import AIServiceError, GeminiClient
from notes_engine.config import EngineConfig
from notes_engine.parsers import extract_attendees, parse_datetime
from notes_engine.prompts import TRANSCRIPTION_PROMPT
from notes_engine.tasks import extract_tasks
from notes_engine.todo import convert_to_todo

from .database import get_db, Message, Task
from .dependencies import get_ai_client, get_config, get_current_user_id
from .usage import AIFeature, check_rate_limit, track_usage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])

ALLOWED_AUDIO_EXTENSIONS = {'.m4a', '.mp3', '.wav', '.mp4', '.webm', '.ogg'}


# ============================================================================
# PYDANTIC MODELS
# ============================================================================

class EnhanceRequest(BaseModel):
    content: Any = None
    format: ContentFormat = ContentFormat.PLAIN


class ExtractTasksRequest(BaseModel):
    content: Any = None
    message_id: Optional[int] = None


class ParseDatetimeRequest(BaseModel):
    text: Optional[str] = None
    reference_time: Optional[str] = None
    timezone: Optional[str] = None


class ExtractAttendeesRequest(BaseModel):
    text: Optional[str] = None
    include_details: bool = True


class ConvertToTodoRequest(BaseModel):
    content: Any = None
    format: ContentFormat = ContentFormat.PLAIN


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _content_to_text(content: Any) -> str:
    """Plain text of a request body that may be text or a delta document."""
    if isinstance(content, str):
        return content
    try:
        return doc_to_plain(RichDocument.from_dict(content))
    except InvalidDocument as e:
        raise HTTPException(status_code=400, detail=str(e))


def _save_upload(file: UploadFile, upload_dir: Path) -> Path:
    ext = Path(file.filename or "").suffix.lower()
    if ext not in ALLOWED_AUDIO_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_AUDIO_EXTENSIONS))}"
        )

    upload_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    file_path = upload_dir / f"{timestamp}_{Path(file.filename).name}"

    with open(file_path, "wb") as f:
        shutil.copyfileobj(file.file, f)
    return file_path


def _parse_reference_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid reference time", "message": "reference_time must be an ISO 8601 datetime"},
        )


def _require_text(text: Optional[str]) -> str:
    if not isinstance(text, str) or not text.strip():
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid text", "message": "Please provide a non-empty text"},
        )
    return text


# ============================================================================
# API ROUTES
# ============================================================================

@router.post("/enhance")
async def api_enhance(
    request: EnhanceRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_config),
    ai_client: GeminiClient = Depends(get_ai_client),
):
    """Fix grammar and clarity, keeping rich-text formatting."""
    check_rate_limit(db, user_id, AIFeature.ENHANCE, config)

    is_rich = request.format is ContentFormat.DELTA
    try:
        result = await run_in_threadpool(enhance_text, request.content, is_rich, ai_client.rewrite)
    except RewriteServiceFailure as e:
        logger.error(f"❌ Enhancement failed for user {user_id}: {e.reason or e}")
        track_usage(db, user_id, AIFeature.ENHANCE, successful=False, metadata={"format": request.format.value})
        raise HTTPException(status_code=502, detail=str(e))
    except EnhancementError as e:
        raise HTTPException(status_code=400, detail=str(e))

    track_usage(db, user_id, AIFeature.ENHANCE, metadata={"format": request.format.value})
    return result.to_dict()


@router.post("/extract-tasks")
async def api_extract_tasks(
    request: ExtractTasksRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_config),
    ai_client: GeminiClient = Depends(get_ai_client),
):
    """Extract calendar events, emails and to-dos; optionally store them on a message."""
    text = _content_to_text(request.content)
    if not text.strip():
        raise HTTPException(status_code=400, detail="Content is required")

    message = None
    if request.message_id is not None:
        message = db.query(Message).filter(
            Message.id == request.message_id, Message.user_id == user_id
        ).first()
        if not message:
            raise HTTPException(status_code=404, detail="Message not found")

    check_rate_limit(db, user_id, AIFeature.EXTRACT_TASKS, config)

    try:
        tasks = await run_in_threadpool(extract_tasks, text, ai_client)
    except AIServiceError as e:
        logger.error(f"❌ Task extraction failed for user {user_id}: {e}")
        track_usage(db, user_id, AIFeature.EXTRACT_TASKS, successful=False)
        raise HTTPException(status_code=502, detail="Failed to extract tasks")

    if message is not None:
        for task in tasks:
            db.add(Task(
                user_id=user_id,
                message_id=message.id,
                title=task.title,
                type=task.type.value,
                details=task.details,
                people=task.people,
            ))
        message.tasks_extracted = True
        db.commit()
        logger.info(f"📝 Stored {len(tasks)} task(s) for message {message.id}")

    track_usage(db, user_id, AIFeature.EXTRACT_TASKS, metadata={"count": len(tasks)})
    return {"tasks": [t.to_dict() for t in tasks]}


@router.post("/transcribe")
async def api_transcribe(
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_config),
    ai_client: GeminiClient = Depends(get_ai_client),
):
    """Transcribe an uploaded audio file."""
    check_rate_limit(db, user_id, AIFeature.TRANSCRIBE, config)
    file_path = _save_upload(file, config.upload_dir)

    try:
        transcription = await run_in_threadpool(ai_client.transcribe, file_path, TRANSCRIPTION_PROMPT)
    except AIServiceError as e:
        logger.error(f"❌ Transcription failed for {file.filename}: {e}")
        track_usage(db, user_id, AIFeature.TRANSCRIBE, successful=False)
        raise HTTPException(status_code=502, detail="Failed to transcribe audio")
    finally:
        file_path.unlink(missing_ok=True)

    track_usage(db, user_id, AIFeature.TRANSCRIBE, metadata={"filename": file.filename})
    return {"transcription": transcription.strip()}


@router.post("/parse-datetime")
async def api_parse_datetime(
    request: ParseDatetimeRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_config),
    ai_client: GeminiClient = Depends(get_ai_client),
):
    """Parse a natural-language date/time such as "next Friday at 3pm"."""
    text = _require_text(request.text)
    reference_time = _parse_reference_time(request.reference_time)
    check_rate_limit(db, user_id, AIFeature.PARSE_DATETIME, config)

    try:
        result = await run_in_threadpool(
            parse_datetime, text, ai_client, reference_time, request.timezone or "UTC"
        )
    except AIServiceError as e:
        logger.error(f"❌ Datetime parsing failed: {e}")
        track_usage(db, user_id, AIFeature.PARSE_DATETIME, successful=False)
        raise HTTPException(status_code=502, detail="Failed to parse date and time")

    parsed = bool(result.get("parsed"))
    track_usage(db, user_id, AIFeature.PARSE_DATETIME, successful=parsed, metadata={"text": text[:200]})

    if not parsed:
        return JSONResponse(status_code=422, content=result)
    return result


@router.post("/extract-attendees")
async def api_extract_attendees(
    request: ExtractAttendeesRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_config),
    ai_client: GeminiClient = Depends(get_ai_client),
):
    """People mentioned in the text who might attend a meeting."""
    text = _require_text(request.text)
    check_rate_limit(db, user_id, AIFeature.EXTRACT_ATTENDEES, config)

    result = await run_in_threadpool(extract_attendees, text, ai_client, request.include_details)
    found = result["count"] > 0
    track_usage(db, user_id, AIFeature.EXTRACT_ATTENDEES, successful=found, metadata={"count": result["count"]})

    if not found:
        return JSONResponse(
            status_code=422,
            content={**result, "error": "No attendees found", "message": "Could not identify any attendees in the text"},
        )
    return result


async def _convert(db, user_id, config, ai_client, content, content_format, voice_path=None):
    check_rate_limit(db, user_id, AIFeature.CONVERT_TO_TODO, config)
    try:
        conversion = await run_in_threadpool(convert_to_todo, content, content_format, ai_client, voice_path)
    except EnhancementError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AIServiceError as e:
        logger.error(f"❌ To-do conversion failed for user {user_id}: {e}")
        track_usage(db, user_id, AIFeature.CONVERT_TO_TODO, successful=False)
        raise HTTPException(status_code=502, detail="Failed to convert to to-do list")

    track_usage(db, user_id, AIFeature.CONVERT_TO_TODO, metadata={"format": content_format.value})
    return conversion.to_dict()


@router.post("/convert-to-todo")
async def api_convert_to_todo(
    request: ConvertToTodoRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_config),
    ai_client: GeminiClient = Depends(get_ai_client),
):
    """Split a note into to-do items and regular text."""
    return await _convert(db, user_id, config, ai_client, request.content, request.format)


@router.post("/convert-to-todo/voice")
async def api_convert_voice_to_todo(
    file: UploadFile = File(...),
    format: ContentFormat = Form(ContentFormat.PLAIN),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_config),
    ai_client: GeminiClient = Depends(get_ai_client),
):
    """Transcribe a voice message and split it into to-do items and regular text."""
    file_path = _save_upload(file, config.upload_dir)
    try:
        return await _convert(db, user_id, config, ai_client, None, format, file_path)
    finally:
        file_path.unlink(missing_ok=True)
