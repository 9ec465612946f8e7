"""
Gemini provider tests. The SDK call is replaced; no network.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from repaircheck.llm.gemini import (
    FALLBACK_MODEL,
    CircuitBreaker,
    CircuitOpenError,
    GeminiProvider,
    _is_transient,
)


def _response(text, total=15):
    return SimpleNamespace(
        text=text,
        usage_metadata=SimpleNamespace(
            prompt_token_count=10,
            candidates_token_count=total - 10,
            total_token_count=total,
        ),
    )


class TestCircuitBreaker:
    def test_opens_after_threshold(self):
        cb = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        cb.record_failure()
        assert cb.state == "closed"
        cb.record_failure()
        assert cb.is_open

    def test_half_open_after_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        assert cb.state == "half-open"
        assert not cb.is_open

    def test_success_closes(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()
        cb.record_success()
        assert cb.state == "closed"


class TestTransientErrors:
    @pytest.mark.parametrize("message", ["429 Too Many Requests", "503 UNAVAILABLE", "Quota exceeded"])
    def test_transient(self, message):
        assert _is_transient(RuntimeError(message)) is True

    def test_permanent(self):
        assert _is_transient(ValueError("invalid argument")) is False


class TestGeminiProvider:
    @pytest.fixture
    def provider(self):
        return GeminiProvider(api_key="test-key", model="gemini-primary")

    @pytest.mark.asyncio
    async def test_send_chat_reads_usage(self, provider):
        async def fake_generate(prompt, config):
            assert prompt == "Review this."
            return _response('{"ok": true}', total=42), "gemini-primary"

        provider._generate = fake_generate
        reply = await provider.send_chat([
            {"role": "system", "content": "Be careful."},
            {"role": "user", "content": "Review this."},
        ])
        assert reply.content == '{"ok": true}'
        assert reply.model == "gemini-primary"
        assert reply.total_tokens == 42
        assert reply.usage["prompt_tokens"] == 10

    @pytest.mark.asyncio
    async def test_falls_back_when_primary_fails(self, provider):
        calls = []

        async def fake_call(model, prompt, config, max_retries=3):
            calls.append(model)
            if model == "gemini-primary":
                raise RuntimeError("500 internal")
            return _response("fallback reply")

        provider._call_model = fake_call
        config = provider._config(0.7, None)
        response, model = await provider._generate("prompt", config)

        assert calls == ["gemini-primary", FALLBACK_MODEL]
        assert model == FALLBACK_MODEL
        assert response.text == "fallback reply"
        assert provider.circuit_breaker.state == "closed"

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(self, provider):
        async def always_fail(model, prompt, config, max_retries=3):
            raise RuntimeError("503 unavailable")

        provider._call_model = always_fail
        config = provider._config(0.7, None)
        for _ in range(3):
            with pytest.raises(RuntimeError):
                await provider._generate("prompt", config)

        with pytest.raises(CircuitOpenError):
            await provider._generate("prompt", config)

    def test_json_mode_config(self, provider):
        config = provider._config(0.3, "system", json_mode=True)
        assert config.response_mime_type == "application/json"
        assert config.temperature == 0.3

    def test_missing_key_fails_on_first_call(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        provider = GeminiProvider(api_key="")
        with pytest.raises(RuntimeError):
            provider._get_client()
