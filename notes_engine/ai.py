"""
Gemini client for the notes features.

Serves as the rewrite service for text enhancement and as the backend of
the JSON features (task extraction, to-do conversion, datetime and
attendee parsing) and of voice transcription.

Keys are held in memory by a KeyPool and used round-robin:
- a 429 puts the key on a short cooldown
- three 429s in a row, or a daily quota error, retire the key

Pool state belongs to one client instance. The HTTP layer builds a new
client per request, so cooldowns and retirements only span the retries
of that request.
"""

import json
import time
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Optional

from google import genai
from google.genai import types

from .config import DEFAULT_MODEL, EngineConfig, load_config
from .prompts import ENHANCEMENT_PROMPT

logger = logging.getLogger(__name__)

_QUOTA_MARKERS = ["429", "quota", "rate limit", "resource exhausted", "too many requests"]
_NETWORK_MARKERS = ["broken pipe", "errno 32", "connection", "reset", "timeout"]
_DAILY_QUOTA_MARKERS = ["perday", "daily", "quotaexceeded", "limit:0"]  # matched with spaces/underscores removed

RATE_LIMIT_WAIT_SECONDS = 15
MAX_429_BEFORE_EXHAUST = 3

ENHANCE_TEMPERATURE = 0.3
JSON_TEMPERATURE = 0.2

_NORMAL_FINISH = {"STOP", "FinishReason.STOP", "UNSPECIFIED", "FinishReason.UNSPECIFIED", "0", "1"}


class AIServiceError(Exception):
    """The AI provider could not produce a usable response."""


class AIResponseFormatError(AIServiceError):
    """The AI answered, but not in the requested format."""


def classify_error(e: Exception) -> Optional[str]:
    """'daily', 'quota' or 'network' for retryable provider errors, else None."""
    message = str(e).lower()
    if any(m in message for m in _QUOTA_MARKERS):
        squashed = message.replace(" ", "").replace("_", "")
        return "daily" if any(m in squashed for m in _DAILY_QUOTA_MARKERS) else "quota"
    if any(m in message for m in _NETWORK_MARKERS):
        return "network"
    return None


# ============================================================================
# Key pool
# ============================================================================

@dataclass
class _KeyState:
    key: str
    cooldown_until: Optional[datetime] = None
    strikes: int = 0
    retired: bool = False


class KeyPool:
    """Round-robin over API keys, skipping keys on cooldown or retired."""

    def __init__(self, keys: list[str]):
        if not keys:
            raise ValueError("At least one API key is required")
        self._states = [_KeyState(k) for k in keys]
        self._turn = 0

    def __len__(self) -> int:
        return len(self._states)

    def is_cooling(self, idx: int) -> bool:
        return self._states[idx].cooldown_until is not None

    def is_retired(self, idx: int) -> bool:
        return self._states[idx].retired

    def acquire(self) -> tuple[int, str]:
        """Next usable (index, key).

        Sleeps until the earliest cooldown ends when every live key is
        cooling down; raises AIServiceError once all keys are retired.
        """
        now = datetime.utcnow()
        for state in self._states:
            if state.cooldown_until is not None and state.cooldown_until <= now:
                self._reset(state)

        live = [i for i, s in enumerate(self._states) if not s.retired]
        if not live:
            raise AIServiceError("All API keys exhausted. Wait for quota reset or add more keys.")

        ready = [i for i in live if self._states[i].cooldown_until is None]
        if ready:
            idx = ready[self._turn % len(ready)]
            self._turn += 1
            return idx, self._states[idx].key

        idx = min(live, key=lambda i: self._states[i].cooldown_until)
        state = self._states[idx]
        wait = (state.cooldown_until - now).total_seconds()
        if wait > 0:
            logger.info(f"⏳ All keys rate-limited. Waiting {wait:.0f}s for key {idx + 1}...")
            time.sleep(wait + 1)
        self._reset(state)
        return idx, state.key

    def succeeded(self, idx: int):
        self._states[idx].strikes = 0

    def rate_limited(self, idx: int, daily: bool = False):
        """Cool a key down after a 429, or retire it."""
        state = self._states[idx]
        state.strikes += 1

        if daily or state.strikes >= MAX_429_BEFORE_EXHAUST:
            reason = "daily quota" if daily else f"{state.strikes} consecutive 429s"
            logger.warning(f"🚫 Key {idx + 1} retired after {reason}")
            state.retired = True
            state.cooldown_until = None
            return

        state.cooldown_until = datetime.utcnow() + timedelta(seconds=RATE_LIMIT_WAIT_SECONDS)
        logger.warning(
            f"⏸️ Key {idx + 1} rate-limited ({state.strikes}/{MAX_429_BEFORE_EXHAUST}), "
            f"cooldown until {state.cooldown_until.strftime('%H:%M:%S')}"
        )

    @staticmethod
    def _reset(state: _KeyState):
        state.cooldown_until = None
        state.strikes = 0


# ============================================================================
# Client
# ============================================================================

class GeminiClient:
    """Gemini API client with key rotation and retries.

    Quota errors move on to the next key; network errors back off
    exponentially (capped at 30s); anything else propagates.
    """

    def __init__(self, api_keys: list[str], model_name: str = DEFAULT_MODEL):
        self._pool = KeyPool(api_keys)
        self._model_name = model_name
        self._clients: dict[int, genai.Client] = {}

    @classmethod
    def from_config(cls, config: Optional[EngineConfig] = None) -> "GeminiClient":
        config = config or load_config()
        config.validate()
        return cls(config.gemini_api_keys, config.gemini_model)

    def _get_client(self, idx: int, key: str) -> genai.Client:
        if idx not in self._clients:
            self._clients[idx] = genai.Client(api_key=key)
        return self._clients[idx]

    def _run(self, label: str, call: Callable[[genai.Client], Any], max_retries: int) -> str:
        """Run `call` with key rotation and retries; return the validated text."""
        last_error = None

        for attempt in range(max_retries):
            idx, key = self._pool.acquire()
            logger.info(f"{label} (attempt {attempt + 1}/{max_retries}, key {idx + 1}/{len(self._pool)})")

            try:
                response = call(self._get_client(idx, key))
                self._validate_response(response)
            except AIServiceError:
                raise
            except Exception as e:
                kind = classify_error(e)
                if kind is None:
                    raise
                last_error = e
                if kind == "network":
                    wait = min(5 * (2 ** attempt), 30)
                    logger.warning(f"Network error, retrying in {wait}s: {e}")
                    time.sleep(wait)
                else:
                    self._pool.rate_limited(idx, daily=kind == "daily")
                continue

            self._pool.succeeded(idx)
            logger.info(f"{label} complete: {len(response.text)} chars")
            return response.text

        raise AIServiceError(f"{label} failed after {max_retries} attempts: {last_error}")

    def _generate(
        self,
        label: str,
        system_prompt: str,
        text: str,
        temperature: float,
        json_mode: bool = False,
        max_retries: int = 5,
    ) -> str:
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            response_mime_type="application/json" if json_mode else None,
        )
        return self._run(
            label,
            lambda client: client.models.generate_content(
                model=self._model_name,
                contents=text,
                config=config,
            ),
            max_retries,
        )

    # ── Public API ──────────────────────────────────────────────────────

    def rewrite(self, text: str) -> str:
        """Grammar/clarity rewrite that keeps the input's line count."""
        return self._generate("Enhancing text", ENHANCEMENT_PROMPT, text, ENHANCE_TEMPERATURE)

    def generate_json(self, system_prompt: str, text: str, temperature: float = JSON_TEMPERATURE) -> Any:
        """Run a JSON-mode prompt and return the decoded payload."""
        raw = self._generate("Generating JSON", system_prompt, text, temperature, json_mode=True)
        try:
            return json.loads(raw)
        except ValueError as e:
            raise AIResponseFormatError(f"Unparsable JSON from Gemini: {raw[:120]!r}") from e

    def transcribe(self, audio_path: Path, prompt: str, max_retries: int = 5) -> str:
        """Transcribe an audio file.

        The upload is deleted again after every attempt, whatever the outcome.
        """
        audio_path = Path(audio_path)

        def call(client: genai.Client):
            uploaded = client.files.upload(file=str(audio_path))
            try:
                return client.models.generate_content(
                    model=self._model_name,
                    contents=[prompt, uploaded],
                    config=types.GenerateContentConfig(
                        temperature=1.0,  # lower values make long transcripts loop
                        top_p=0.95,
                        max_output_tokens=65536,
                    ),
                )
            finally:
                try:
                    client.files.delete(name=uploaded.name)
                except Exception as e:
                    logger.debug(f"Could not delete uploaded file {uploaded.name}: {e}")

        return self._run(f"Transcribing {audio_path.name}", call, max_retries)

    @staticmethod
    def _validate_response(response):
        """Reject empty, blocked or truncated-to-nothing responses."""
        if not response or not getattr(response, "candidates", None):
            raise AIServiceError("No candidates in Gemini response")

        finish = getattr(response.candidates[0], "finish_reason", None)
        if finish and str(finish) not in _NORMAL_FINISH:
            if "MAX_TOKENS" not in str(finish):
                raise AIServiceError(f"Abnormal finish reason: {finish}")
            logger.warning("Response hit max token limit, returning partial content")

        if not response.text or not response.text.strip():
            raise AIServiceError("Empty text in Gemini response")
