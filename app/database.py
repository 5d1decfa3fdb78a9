"""
Database configuration and models using SQLAlchemy.
Supports SQLite (default) or PostgreSQL.
"""

import os
from datetime import datetime
from sqlalchemy import create_engine, Column, Integer, String, Text, DateTime, Boolean, JSON, ForeignKey, event
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from notes_engine.config import load_config

# Database URL - defaults to SQLite, can use PostgreSQL
DATABASE_URL = load_config().database_url

# Handle PostgreSQL URL format from some cloud providers
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# Create engine
if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for crash safety and better concurrent access
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()
else:
    engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ============================================================================
# MODELS
# ============================================================================

class Message(Base):
    """A note: plain text and rich-text (delta) body plus attachments."""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)

    # Content - both representations are kept in sync
    text_content = Column(Text)
    delta_content = Column(JSON)  # {"ops": [...]}

    # Attachments
    file_attachments = Column(JSON)  # list of file URLs/metadata
    images = Column(JSON)
    voice_message_url = Column(String(1000))

    tasks_extracted = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    links = relationship("Link", back_populates="message", cascade="all, delete-orphan")
    tasks = relationship("Task", back_populates="message", cascade="all, delete-orphan")


class Link(Base):
    """A URL found in a message body."""
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(Integer, ForeignKey("messages.id"), nullable=False, index=True)
    url = Column(String(2000), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    message = relationship("Message", back_populates="links")


class Task(Base):
    """A task extracted from a message by the AI."""
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    message_id = Column(Integer, ForeignKey("messages.id"), index=True)

    title = Column(String(500), nullable=False)
    type = Column(String(20), default="todo")  # calendar, email, todo
    details = Column(JSON)
    people = Column(JSON)
    completed = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    message = relationship("Message", back_populates="tasks")


class AIUsage(Base):
    """One AI feature call, used for per-user daily limits."""
    __tablename__ = "ai_usage"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    feature = Column(String(50), nullable=False, index=True)
    used_at = Column(DateTime, default=datetime.utcnow, index=True)  # UTC
    successful = Column(Boolean, default=True)
    # "metadata" is reserved on declarative classes
    usage_metadata = Column("metadata", JSON)


# ============================================================================
# DATABASE HELPERS
# ============================================================================

def init_db():
    """Initialize database tables."""
    # Ensure data directory exists for SQLite
    if DATABASE_URL.startswith("sqlite:///"):
        db_dir = os.path.dirname(DATABASE_URL[len("sqlite:///"):])
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    Base.metadata.create_all(bind=engine)


def get_db():
    """Get database session (for FastAPI dependency injection)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
