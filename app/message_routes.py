"""
Message (note) CRUD routes.

A message is stored with both a plain-text and a rich-text body; whichever
one the client sends, the other is derived, and the links found in the
body are kept in the links table.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from notes_engine import InvalidDocument, RichDocument, link_records, text_conversions

from .database import get_db, Link, Message
from .dependencies import get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["messages"])


# ============================================================================
# PYDANTIC MODELS
# ============================================================================

class MessageCreate(BaseModel):
    text_content: Optional[str] = None
    delta_content: Optional[Any] = None
    file_attachments: Optional[List[Any]] = None
    images: Optional[List[Any]] = None
    voice_message_url: Optional[str] = None


class MessageUpdate(BaseModel):
    text_content: Optional[str] = None
    delta_content: Optional[Any] = None


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _message_to_dict(message: Message) -> dict:
    return {
        "id": message.id,
        "user_id": message.user_id,
        "text_content": message.text_content,
        "delta_content": message.delta_content,
        "file_attachments": message.file_attachments or [],
        "images": message.images or [],
        "voice_message_url": message.voice_message_url,
        "tasks_extracted": bool(message.tasks_extracted),
        "links": [link.url for link in message.links],
        "created_at": message.created_at.isoformat() if message.created_at else None,
        "updated_at": message.updated_at.isoformat() if message.updated_at else None,
    }


def _apply_content(db: Session, message: Message, text_content: Optional[str], delta_content: Any):
    """Store both body representations and replace the message's links."""
    doc = None
    if delta_content is not None:
        try:
            doc = RichDocument.from_dict(delta_content)
        except InvalidDocument as e:
            raise HTTPException(status_code=400, detail=str(e))

    conversion = text_conversions(text_content, doc)
    message.text_content = conversion.text_content
    message.delta_content = conversion.delta_content.to_dict() if conversion.delta_content else None

    message.links.clear()
    db.flush()
    for record in link_records(conversion.links, message.id):
        db.add(Link(**record))


def _escape_like(value: str) -> str:
    """Make LIKE wildcards in user input match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _get_own_message(db: Session, message_id: int, user_id: str) -> Message:
    message = db.query(Message).filter(Message.id == message_id, Message.user_id == user_id).first()
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    return message


# ============================================================================
# API ROUTES
# ============================================================================

@router.get("")
async def api_get_messages(
    q: Optional[str] = None,
    limit: int = 100,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the caller's messages, newest first, optionally filtered by text."""
    query = db.query(Message).filter(Message.user_id == user_id)
    if q:
        query = query.filter(Message.text_content.ilike(f"%{_escape_like(q)}%", escape="\\"))

    messages = query.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit).all()
    return [_message_to_dict(m) for m in messages]


@router.post("")
async def api_create_message(
    create: MessageCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create a message from text or a rich-text document."""
    has_body = bool(create.text_content) or create.delta_content is not None
    if not (has_body or create.file_attachments or create.images or create.voice_message_url):
        raise HTTPException(status_code=400, detail="Message is empty")

    message = Message(
        user_id=user_id,
        file_attachments=create.file_attachments,
        images=create.images,
        voice_message_url=create.voice_message_url,
    )
    db.add(message)
    db.flush()
    _apply_content(db, message, create.text_content, create.delta_content)
    db.commit()
    db.refresh(message)

    logger.info(f"💬 Message {message.id} created for user {user_id} ({len(message.links)} link(s))")
    return _message_to_dict(message)


@router.patch("/{message_id}")
async def api_update_message(
    message_id: int,
    update: MessageUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Replace a message's body; conversions and links are recomputed."""
    message = _get_own_message(db, message_id, user_id)

    if update.text_content is None and update.delta_content is None:
        return _message_to_dict(message)

    _apply_content(db, message, update.text_content, update.delta_content)
    message.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(message)
    return _message_to_dict(message)


@router.delete("/{message_id}")
async def api_delete_message(
    message_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Delete a message with its links and tasks."""
    message = _get_own_message(db, message_id, user_id)
    db.delete(message)
    db.commit()
    logger.info(f"🗑️  Message {message_id} deleted")
    return {"success": True}
