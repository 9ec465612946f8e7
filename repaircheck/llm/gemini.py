"""
Gemini Provider — Google Gemini API implementation.

Uses the google.genai SDK. Client is lazily initialized —
app loads without an API key and only fails on actual LLM call.

Features:
- Model fallback chain: primary model → gemini-2.5-flash on failure
- Circuit breaker: after consecutive failures, fail fast for 60s
- Exponential backoff retry on transient errors
- Token usage read from response metadata for usage tracking
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Any, Optional

from google import genai
from google.genai import types

from repaircheck.llm import ChatResponse, LLMProvider, split_messages

logger = logging.getLogger("repaircheck.llm.gemini")

FALLBACK_MODEL = "gemini-2.5-flash"

# Circuit breaker settings
_CB_FAILURE_THRESHOLD = 3   # Open after this many consecutive failures
_CB_RECOVERY_TIMEOUT = 60   # Seconds before trying again (half-open)

_TRANSIENT_MARKERS = (
    "429", "503", "500", "rate", "quota", "timeout",
    "connection", "unavailable", "overloaded",
)


class CircuitBreaker:
    """Simple circuit breaker: closed → open → half-open → closed.

    When open, calls raise CircuitOpenError immediately so the review
    layer can return the deterministic report without waiting on a
    provider that is known to be down.
    """

    def __init__(
        self,
        failure_threshold: int = _CB_FAILURE_THRESHOLD,
        recovery_timeout: float = _CB_RECOVERY_TIMEOUT,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._failures = 0
        self._last_failure_time: float = 0
        self._state = "closed"  # closed | open | half-open

    @property
    def state(self) -> str:
        if self._state == "open":
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = "half-open"
        return self._state

    def record_success(self) -> None:
        self._failures = 0
        self._state = "closed"

    def record_failure(self) -> None:
        self._failures += 1
        self._last_failure_time = time.monotonic()
        if self._failures >= self.failure_threshold:
            self._state = "open"
            logger.warning(
                "Circuit breaker OPEN — %d consecutive LLM failures. "
                "AI review disabled for %ds.",
                self._failures, self.recovery_timeout,
            )

    @property
    def is_open(self) -> bool:
        return self.state == "open"


class CircuitOpenError(Exception):
    """Raised when the circuit breaker is open."""


def _is_transient(error: Exception) -> bool:
    text = str(error).lower()
    return any(marker in text for marker in _TRANSIENT_MARKERS)


class GeminiProvider(LLMProvider):
    """Google Gemini LLM provider with fallback and circuit breaker."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self._api_key = api_key or os.getenv("GEMINI_API_KEY", "")
        self._model = model or os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        self._client: Optional[genai.Client] = None
        self.circuit_breaker = CircuitBreaker()

    @property
    def model_name(self) -> str:
        return self._model

    def has_credential(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise RuntimeError(
                    "GEMINI_API_KEY not set. Get one from "
                    "https://aistudio.google.com/apikey"
                )
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def _call_model(
        self,
        model: str,
        prompt: str,
        config: types.GenerateContentConfig,
        max_retries: int = 3,
    ) -> Any:
        """Call a specific model with retry logic. Returns the raw response."""
        client = self._get_client()
        last_error = None
        for attempt in range(max_retries):
            try:
                return await client.aio.models.generate_content(
                    model=model,
                    contents=prompt,
                    config=config,
                )
            except Exception as e:
                last_error = e
                if _is_transient(e) and attempt < max_retries - 1:
                    await asyncio.sleep(2 ** attempt)
                    continue
                raise

        raise last_error  # type: ignore[misc]

    async def _generate(
        self,
        prompt: str,
        config: types.GenerateContentConfig,
    ) -> tuple[Any, str]:
        """Primary model, then the fallback model. Returns (response, model used)."""
        if self.circuit_breaker.is_open:
            raise CircuitOpenError(
                "LLM circuit breaker is open — too many consecutive failures."
            )

        try:
            response = await self._call_model(self._model, prompt, config, max_retries=2)
            self.circuit_breaker.record_success()
            return response, self._model
        except Exception as primary_err:
            if self._model == FALLBACK_MODEL:
                self.circuit_breaker.record_failure()
                raise
            logger.warning(
                "Primary model %s failed (%s), falling back to %s",
                self._model, primary_err, FALLBACK_MODEL,
            )
            try:
                response = await self._call_model(
                    FALLBACK_MODEL, prompt, config, max_retries=1,
                )
            except Exception as fallback_err:
                logger.error(
                    "Fallback model %s also failed: %s", FALLBACK_MODEL, fallback_err,
                )
                self.circuit_breaker.record_failure()
                raise fallback_err from primary_err
            self.circuit_breaker.record_success()
            return response, FALLBACK_MODEL

    @staticmethod
    def _config(
        temperature: float,
        system_instruction: Optional[str],
        json_mode: bool = False,
    ) -> types.GenerateContentConfig:
        config = types.GenerateContentConfig(
            temperature=temperature,
            system_instruction=system_instruction,
        )
        if json_mode:
            config.response_mime_type = "application/json"
        return config

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        config = self._config(temperature, system_instruction, json_mode)
        response, _ = await self._generate(prompt, config)
        return response.text or ""

    async def send_chat(
        self,
        messages: list[dict],
        temperature: float = 0.7,
    ) -> ChatResponse:
        system_instruction, prompt = split_messages(messages)
        config = self._config(temperature, system_instruction)
        response, model = await self._generate(prompt, config)

        usage = {}
        metadata = getattr(response, "usage_metadata", None)
        if metadata is not None:
            usage = {
                "prompt_tokens": metadata.prompt_token_count or 0,
                "completion_tokens": metadata.candidates_token_count or 0,
                "total_tokens": metadata.total_token_count or 0,
            }
        return ChatResponse(content=response.text or "", model=model, usage=usage)
