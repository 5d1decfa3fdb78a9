"""
Tests for environment-driven configuration.
"""

from pathlib import Path

import pytest

from notes_engine.config import DEFAULT_MODEL, EngineConfig, get_model_config, load_config

ENV_VARS = [
    "GEMINI_API_KEYS", "GEMINI_API_KEY", "GEMINI_MODEL", "AI_MAX_REQUESTS_PER_DAY",
    "TRANSCRIBE_MAX_PER_DAY", "PARSER_MAX_REQUESTS_PER_DAY", "DATABASE_URL", "UPLOAD_DIR",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        # set then delete so teardown also removes values loaded from .env files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return tmp_path / "missing.env"


class TestLoadConfig:

    def test_defaults(self, clean_env):
        config = load_config(str(clean_env))
        assert config.gemini_api_keys == []
        assert config.gemini_model == DEFAULT_MODEL
        assert config.ai_max_requests_per_day == 100
        assert config.transcribe_max_per_day == 50
        assert config.parser_max_requests_per_day == 100

    def test_multiple_keys(self, clean_env, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEYS", "a, b,,c ")
        assert load_config(str(clean_env)).gemini_api_keys == ["a", "b", "c"]

    def test_single_key_fallback(self, clean_env, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "solo")
        assert load_config(str(clean_env)).gemini_api_keys == ["solo"]

    def test_limits_and_paths(self, clean_env, monkeypatch):
        monkeypatch.setenv("AI_MAX_REQUESTS_PER_DAY", "7")
        monkeypatch.setenv("UPLOAD_DIR", "/tmp/notes-uploads")
        config = load_config(str(clean_env))
        assert config.ai_max_requests_per_day == 7
        assert config.upload_dir == Path("/tmp/notes-uploads")

    def test_env_file(self, clean_env, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("GEMINI_API_KEYS=from-file\n")
        config = load_config(str(env_file))
        assert config.gemini_api_keys == ["from-file"]


class TestValidate:

    def test_requires_key(self):
        with pytest.raises(ValueError):
            EngineConfig().validate()

    def test_unknown_model_allowed(self):
        EngineConfig(gemini_api_keys=["k"], gemini_model="gemini-next").validate()

    def test_model_lookup(self):
        assert get_model_config(DEFAULT_MODEL).supports_audio
        assert get_model_config("nope") is None
