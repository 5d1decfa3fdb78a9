"""
Shared fixtures: a fake AI client and an API client wired to an in-memory database.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.dependencies import get_ai_client, get_config
from app.main import app
from notes_engine.config import EngineConfig


class FakeAIClient:
    """Stands in for GeminiClient; records calls and replays canned answers."""

    def __init__(self, rewrite=None, json_responses=None, transcription="Call the dentist tomorrow"):
        self._rewrite = rewrite or (lambda text: text)
        self.json_responses = list(json_responses or [])
        self.transcription = transcription
        self.rewrite_calls = []
        self.json_calls = []
        self.transcribed = []

    def rewrite(self, text):
        self.rewrite_calls.append(text)
        return self._rewrite(text)

    def generate_json(self, system_prompt, text, temperature=0.2):
        self.json_calls.append((system_prompt, text))
        response = self.json_responses.pop(0) if self.json_responses else {}
        if isinstance(response, Exception):
            raise response
        return response

    def transcribe(self, audio_path, prompt, max_retries=5):
        self.transcribed.append(Path(audio_path).name)
        return self.transcription


@pytest.fixture
def fake_ai():
    return FakeAIClient()


@pytest.fixture
def test_config(tmp_path):
    return EngineConfig(
        gemini_api_keys=["test-key"],
        ai_max_requests_per_day=3,
        transcribe_max_per_day=2,
        parser_max_requests_per_day=3,
        database_url="sqlite://",
        upload_dir=tmp_path / "uploads",
    )


@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(db_session_factory):
    session = db_session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session_factory, fake_ai, test_config):
    def override_get_db():
        session = db_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_config] = lambda: test_config
    app.dependency_overrides[get_ai_client] = lambda: fake_ai

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-User-Id": "user-1"}
