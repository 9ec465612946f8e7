"""
Reviewer Tests — deterministic report plus AI second opinion.

Uses a mock LLM provider. No API calls.
"""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import pytest

from repaircheck.cache import ReviewCache
from repaircheck.config import Settings
from repaircheck.llm import ChatResponse, LLMProvider, parse_json_reply, split_messages
from repaircheck.reviewer import AI_RATE_KEY, review_document, review_safety

APOLOGY = "I promise to attend weekly counseling and I understand this caused you pain."
NARRATIVE = "He tried to choke me and I fear for my safety."

REVIEW_JSON = json.dumps({
    "sincerity": 72,
    "empathy": 80,
    "red_flags": [],
    "commitment_quality": "Specific and dated.",
    "repair_likelihood": "high",
    "recommendations": ["Name the harm in your own words"],
})


class MockLLM(LLMProvider):
    """Mock LLM that returns a canned reply."""

    model_name = "mock-model"

    def __init__(
        self,
        reply: str = REVIEW_JSON,
        credential: bool = True,
        delay: float = 0.0,
        error: Optional[Exception] = None,
    ):
        self.reply = reply
        self.credential = credential
        self.delay = delay
        self.error = error
        self.calls: list[dict] = []

    def has_credential(self) -> bool:
        return self.credential

    async def generate(self, prompt, system_instruction=None, temperature=0.7, json_mode=False):
        self.calls.append({
            "prompt": prompt,
            "system_instruction": system_instruction,
            "temperature": temperature,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


class UsageLLM(MockLLM):
    """Reports token usage like a real provider."""

    async def send_chat(self, messages, temperature=0.7):
        content = await super().send_chat(messages, temperature)
        return ChatResponse(
            content=content.content,
            model="mock-model-001",
            usage={"prompt_tokens": 100, "completion_tokens": 20, "total_tokens": 120},
        )


@pytest.fixture(autouse=True)
def fresh_ai_window():
    from repaircheck.rate_limit import _lock, _windows

    with _lock:
        _windows.pop(AI_RATE_KEY, None)
    yield


@pytest.fixture
def cache():
    return ReviewCache()


@pytest.fixture
def on():
    return Settings(FEATURES=frozenset({"document_review", "safety_review"}))


class TestDeterministicOnly:
    @pytest.mark.asyncio
    async def test_no_llm_no_addendum(self, cache, on):
        result = await review_document(APOLOGY, cache=cache, settings=on)
        assert "aiAnalysis" not in result
        assert result["scores"]["sincerity"]["score"] > 50

    @pytest.mark.asyncio
    async def test_error_report_skips_llm(self, cache, on):
        llm = MockLLM()
        result = await review_document("   ", llm=llm, cache=cache, settings=on)
        assert result["error"] == "No valid text provided"
        assert "aiAnalysis" not in result
        assert llm.calls == []


class TestSecondOpinion:
    @pytest.mark.asyncio
    async def test_document_review_structured(self, cache, on):
        llm = MockLLM()
        result = await review_document(APOLOGY, llm=llm, cache=cache, settings=on)

        ai = result["aiAnalysis"]
        assert ai["enabled"] is True
        assert ai["structured"] is True
        assert ai["insights"]["repair_likelihood"] == "high"
        assert ai["model"] == "mock-model"
        assert "timestamp" in ai
        # deterministic report is untouched
        assert result["scores"]["empathy"]["category"] == "high"

    @pytest.mark.asyncio
    async def test_prompt_carries_summary_and_text(self, cache, on):
        llm = MockLLM()
        await review_document(APOLOGY, llm=llm, cache=cache, settings=on)

        call = llm.calls[0]
        assert "restorative justice" in call["system_instruction"]
        assert APOLOGY in call["prompt"]
        assert "Sincerity:" in call["prompt"]
        assert call["temperature"] == on.AI_TEMPERATURE

    @pytest.mark.asyncio
    async def test_safety_review(self, cache, on):
        reply = json.dumps({"risk_level": "critical", "recommended_protocol": "LIBERATE"})
        llm = MockLLM(reply=reply)
        result = await review_safety(NARRATIVE, llm=llm, cache=cache, settings=on)

        assert result["recommendedProtocol"] == "LIBERATE_URGENT"
        assert result["aiAnalysis"]["insights"]["risk_level"] == "critical"
        assert "domestic violence specialist" in llm.calls[0]["system_instruction"]
        assert "Protocol: LIBERATE_URGENT" in llm.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_fenced_json_reply(self, cache, on):
        llm = MockLLM(reply=f"```json\n{REVIEW_JSON}\n```")
        result = await review_document(APOLOGY, llm=llm, cache=cache, settings=on)
        assert result["aiAnalysis"]["structured"] is True

    @pytest.mark.asyncio
    async def test_free_text_reply_kept_raw(self, cache, on):
        llm = MockLLM(reply="This apology is specific and credible.")
        result = await review_document(APOLOGY, llm=llm, cache=cache, settings=on)

        ai = result["aiAnalysis"]
        assert ai["enabled"] is True
        assert ai["structured"] is False
        assert ai["insights"] == "This apology is specific and credible."


class TestUnavailable:
    """Every AI-side failure degrades to an addendum; the report survives."""

    @pytest.mark.asyncio
    async def test_missing_credential(self, cache, on):
        llm = MockLLM(credential=False)
        result = await review_document(APOLOGY, llm=llm, cache=cache, settings=on)

        ai = result["aiAnalysis"]
        assert ai["enabled"] is False
        assert ai["error"] == "AI review requires an LLM API key"
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_feature_disabled(self, cache):
        llm = MockLLM()
        off = Settings(FEATURES=frozenset({"document_review"}))
        result = await review_safety(NARRATIVE, llm=llm, cache=cache, settings=off)

        assert result["aiAnalysis"] == {
            "enabled": False,
            "error": "Feature disabled: safety_review",
            "timestamp": result["aiAnalysis"]["timestamp"],
        }
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_timeout(self, cache):
        llm = MockLLM(delay=1.0)
        fast = Settings(
            FEATURES=frozenset({"document_review"}), AI_TIMEOUT_SECONDS=0.05,
        )
        result = await review_document(APOLOGY, llm=llm, cache=cache, settings=fast)

        ai = result["aiAnalysis"]
        assert ai["enabled"] is False
        assert ai["error"] == "AI review timed out after 0.05s"
        assert result["scores"]["sincerity"]["score"] > 0

    @pytest.mark.asyncio
    async def test_provider_exception(self, cache, on):
        llm = MockLLM(error=ConnectionError("network down"))
        result = await review_safety(NARRATIVE, llm=llm, cache=cache, settings=on)

        ai = result["aiAnalysis"]
        assert ai["enabled"] is False
        assert ai["error"] == "AI review failed: ConnectionError"
        assert result["safetyScore"] > 0

    @pytest.mark.asyncio
    async def test_rate_limited(self, cache):
        llm = MockLLM()
        tight = Settings(
            FEATURES=frozenset({"document_review"}), AI_RATE_PER_MINUTE=1,
        )
        first = await review_document(APOLOGY, llm=llm, cache=cache, settings=tight)
        second = await review_document(APOLOGY + " Truly.", llm=llm, cache=cache, settings=tight)

        assert first["aiAnalysis"]["enabled"] is True
        assert second["aiAnalysis"]["enabled"] is False
        assert "Rate limit exceeded" in second["aiAnalysis"]["error"]
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, cache, on):
        failing = MockLLM(error=RuntimeError("boom"))
        await review_document(APOLOGY, llm=failing, cache=cache, settings=on)

        working = MockLLM()
        result = await review_document(APOLOGY, llm=working, cache=cache, settings=on)
        assert result["aiAnalysis"]["enabled"] is True
        assert len(working.calls) == 1


class TestCachingAndUsage:
    @pytest.mark.asyncio
    async def test_repeat_text_served_from_cache(self, cache, on):
        llm = MockLLM()
        first = await review_document(APOLOGY, llm=llm, cache=cache, settings=on)
        second = await review_document(APOLOGY, llm=llm, cache=cache, settings=on)

        assert "cached" not in first["aiAnalysis"]
        assert second["aiAnalysis"]["cached"] is True
        assert second["aiAnalysis"]["insights"] == first["aiAnalysis"]["insights"]
        assert len(llm.calls) == 1
        # a fresh deterministic report every time
        assert first["id"] != second["id"]

    @pytest.mark.asyncio
    async def test_cache_is_per_engine(self, cache, on):
        llm = MockLLM()
        await review_document(NARRATIVE, llm=llm, cache=cache, settings=on)
        await review_safety(NARRATIVE, llm=llm, cache=cache, settings=on)
        assert len(llm.calls) == 2

    @pytest.mark.asyncio
    async def test_token_usage_tracked(self, cache, on):
        from repaircheck.rate_limit import get_usage

        before = get_usage(AI_RATE_KEY)
        llm = UsageLLM()
        result = await review_document(APOLOGY, llm=llm, cache=cache, settings=on)
        after = get_usage(AI_RATE_KEY)

        assert result["aiAnalysis"]["tokens"] == 120
        assert result["aiAnalysis"]["model"] == "mock-model-001"
        assert after["tokens_used"] - before["tokens_used"] == 120
        assert after["minute"] == 1


class TestLLMHelpers:
    def test_split_messages_single_user_turn(self):
        system, prompt = split_messages([
            {"role": "system", "content": "Be kind."},
            {"role": "user", "content": "Review this."},
        ])
        assert system == "Be kind."
        assert prompt == "Review this."

    def test_split_messages_multi_turn(self):
        system, prompt = split_messages([
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello"},
            {"role": "user", "content": "Review this."},
        ])
        assert system is None
        assert prompt == "USER: Hi\n\nASSISTANT: Hello\n\nUSER: Review this."

    def test_parse_json_reply(self):
        assert parse_json_reply('```json\n{"a": 1}\n```') == {"a": 1}
        assert parse_json_reply(' {"a": 1} ') == {"a": 1}

    def test_parse_json_reply_rejects_non_objects(self):
        with pytest.raises(ValueError):
            parse_json_reply("[1, 2]")
        with pytest.raises(ValueError):
            parse_json_reply("not json")

    def test_total_tokens_defaults_to_zero(self):
        assert ChatResponse(content="x", model="m").total_tokens == 0

    @pytest.mark.asyncio
    async def test_generate_json(self):
        llm = MockLLM(reply='{"ok": true}')
        assert await llm.generate_json("prompt") == {"ok": True}
