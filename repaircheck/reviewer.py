"""
Reviewer — Deterministic Analysis with Optional AI Second Opinion

Runs one of the two engines and, when a provider is supplied, asks the
LLM for a second opinion on the same text with the deterministic report
as context.

The deterministic report always comes first and is always returned.
Anything that goes wrong on the AI side (feature off, no credential,
rate limit, timeout, network, unparseable reply) becomes an
`aiAnalysis` addendum with `enabled: false` and an error message.

This module coordinates between the engines, the LLM provider, the
review cache, and the rate limiter. The engines themselves never see
any of these.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from fastapi import HTTPException

from repaircheck.cache import ReviewCache, review_cache
from repaircheck.config import Settings, settings as default_settings
from repaircheck.document_core import document_core
from repaircheck.llm import LLMProvider, parse_json_reply
from repaircheck.models import QualityReport, SafetyReport, utc_now
from repaircheck.rate_limit import RateLimits, check_rate_limit, track_usage
from repaircheck.safety_core import safety_core

logger = logging.getLogger(__name__)

# Shared outbound budget for all AI reviews
AI_RATE_KEY = "ai_review"


# ============================================================
# LLM PROMPTS
# ============================================================

DOCUMENT_SYSTEM_PROMPT = (
    "You are an expert in restorative justice, conflict resolution, and the "
    "REPAIR Protocol framework. Provide detailed, actionable analysis of "
    "apology documents."
)

DOCUMENT_REVIEW_PROMPT = """Analyze this REPAIR Protocol document for:
1. Emotional sincerity and authenticity
2. Depth of empathy and harm recognition
3. Specific red flags (defensiveness, blame-shifting, minimizing)
4. Quality of commitments and action plans
5. Overall likelihood of successful relationship repair

## Already Measured (by the deterministic engine)
{summary}

## Document
{text}

Provide a structured analysis with scores (0-100) and specific recommendations.
Return ONLY valid JSON with:
- "sincerity": 0-100
- "empathy": 0-100
- "red_flags": array of short strings
- "commitment_quality": 1-2 sentences
- "repair_likelihood": "low" | "moderate" | "high"
- "recommendations": array of short strings"""

SAFETY_SYSTEM_PROMPT = (
    "You are a domestic violence specialist and trauma-informed counselor. "
    "Analyze relationships for abuse patterns with care and directness. "
    "Prioritize safety above all else."
)

SAFETY_REVIEW_PROMPT = """Analyze this relationship document for abuse patterns and safety concerns:

{text}

## Already Measured (by the deterministic engine)
{summary}

Provide analysis covering:
1. Abuse patterns detected (physical, emotional, financial, sexual, coercive control)
2. Safety risk level (critical/high/moderate/low)
3. Red flags or warning signs
4. Recommended action (REPAIR vs LIBERATE protocol)
5. Specific safety concerns and recommendations

Be direct and protective. If abuse is present, state it clearly.
Return ONLY valid JSON with:
- "abuse_patterns": array of strings
- "risk_level": "critical" | "high" | "moderate" | "low"
- "warning_signs": array of strings
- "recommended_protocol": "REPAIR" | "LIBERATE"
- "safety_concerns": array of strings"""


def summarize_quality(report: QualityReport) -> str:
    s = report.scores
    flags = ", ".join(
        f"{f.type} ({f.severity.value}, {f.count})" for f in report.red_flags
    ) or "(none)"
    return (
        f"Sentiment: {s.sentiment.score} ({s.sentiment.category.value})\n"
        f"Sincerity: {s.sincerity.score}/100 ({s.sincerity.category.value})\n"
        f"Empathy: {s.empathy.score}/100 ({s.empathy.category.value})\n"
        f"Completeness: {s.completeness.score}/100, missing phases: "
        f"{', '.join(s.completeness.missing) or '(none)'}\n"
        f"Red flags: {flags}"
    )


def summarize_safety(report: SafetyReport) -> str:
    patterns = ", ".join(
        f"{p.type} ({p.severity.value}, {p.match_count})" for p in report.abuse_patterns
    ) or "(none)"
    return (
        f"Safety score: {report.safety_score}/100 ({report.safety_level.value})\n"
        f"Protocol: {report.recommended_protocol.value}\n"
        f"Abuse patterns: {patterns}\n"
        f"Danger indicators: {len(report.danger_indicators)}, "
        f"healthy indicators: {len(report.healthy_indicators)}"
    )


def _unavailable(error: str) -> dict:
    return {"enabled": False, "error": error, "timestamp": utc_now()}


# ============================================================
# REVIEW FUNCTIONS
# ============================================================

async def review_document(
    text: Any,
    llm: Optional[LLMProvider] = None,
    cache: ReviewCache = review_cache,
    settings: Settings = default_settings,
) -> dict:
    """
    Quality analysis, plus an AI second opinion when `llm` is given.
    """
    report = document_core.analyze(text)
    result = report.to_dict()
    logger.info(
        "Document analyzed",
        extra={
            "report_id": report.id,
            "engine": "document",
            "flags_count": len(report.red_flags),
            "duration_ms": report.processing_time,
            "error": report.error,
        },
    )

    if llm is None or report.error:
        return result

    messages = [
        {"role": "system", "content": DOCUMENT_SYSTEM_PROMPT},
        {"role": "user", "content": DOCUMENT_REVIEW_PROMPT.format(
            summary=summarize_quality(report), text=text,
        )},
    ]
    result["aiAnalysis"] = await _second_opinion(
        text, "document", "document_review", messages, llm, cache, settings, report.id,
    )
    return result


async def review_safety(
    text: Any,
    llm: Optional[LLMProvider] = None,
    cache: ReviewCache = review_cache,
    settings: Settings = default_settings,
) -> dict:
    """
    Safety analysis, plus an AI second opinion when `llm` is given.
    """
    report = safety_core.analyze(text)
    result = report.to_dict()
    logger.info(
        "Safety analyzed",
        extra={
            "report_id": report.id,
            "engine": "safety",
            "safety_score": report.safety_score,
            "protocol": report.recommended_protocol.value,
            "flags_count": len(report.abuse_patterns),
            "duration_ms": report.processing_time,
            "error": report.error,
        },
    )

    if llm is None or report.error:
        return result

    messages = [
        {"role": "system", "content": SAFETY_SYSTEM_PROMPT},
        {"role": "user", "content": SAFETY_REVIEW_PROMPT.format(
            summary=summarize_safety(report), text=text,
        )},
    ]
    result["aiAnalysis"] = await _second_opinion(
        text, "safety", "safety_review", messages, llm, cache, settings, report.id,
    )
    return result


async def _second_opinion(
    text: str,
    engine: str,
    feature: str,
    messages: list[dict],
    llm: LLMProvider,
    cache: ReviewCache,
    settings: Settings,
    report_id: str,
) -> dict:
    if not llm.has_credential():
        return _unavailable("AI review requires an LLM API key")
    if not settings.feature_enabled(feature):
        return _unavailable(f"Feature disabled: {feature}")

    cached = await cache.get(text, engine, llm.model_name)
    if cached:
        return cached

    try:
        check_rate_limit(
            AI_RATE_KEY,
            RateLimits(
                per_minute=settings.AI_RATE_PER_MINUTE,
                per_hour=settings.AI_RATE_PER_HOUR,
            ),
        )
        reply = await asyncio.wait_for(
            llm.send_chat(messages, temperature=settings.AI_TEMPERATURE),
            timeout=settings.AI_TIMEOUT_SECONDS,
        )
    except HTTPException as e:
        logger.warning(
            "AI review rate limited",
            extra={"report_id": report_id, "engine": engine, "error": e.detail},
        )
        return _unavailable(str(e.detail))
    except asyncio.TimeoutError:
        logger.warning(
            "AI review timed out",
            extra={"report_id": report_id, "engine": engine,
                   "error_type": "TimeoutError"},
        )
        return _unavailable(
            f"AI review timed out after {settings.AI_TIMEOUT_SECONDS:g}s"
        )
    except Exception as e:
        logger.warning(
            "AI review failed: %s", e,
            extra={"report_id": report_id, "engine": engine,
                   "error": str(e), "error_type": type(e).__name__},
        )
        return _unavailable(f"AI review failed: {type(e).__name__}")

    track_usage(AI_RATE_KEY, reply.total_tokens)

    try:
        insights: Any = parse_json_reply(reply.content)
        structured = True
    except ValueError:
        insights = reply.content
        structured = False

    review = {
        "enabled": True,
        "structured": structured,
        "insights": insights,
        "model": reply.model,
        "tokens": reply.total_tokens,
        "timestamp": utc_now(),
    }
    await cache.put(text, engine, llm.model_name, review)

    logger.info(
        "AI review complete",
        extra={"report_id": report_id, "engine": engine,
               "model": reply.model, "tokens": reply.total_tokens},
    )
    return review
