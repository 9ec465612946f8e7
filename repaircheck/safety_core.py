"""
Safety Core — Abuse Pattern and Risk Engine

Scans a relationship narrative for abuse-pattern indicators and decides
which intervention path applies: REPAIR (work on the relationship) or
LIBERATE (separate, with safety planning).

Pipeline:
  1. Abuse patterns     eight weighted categories, prefix matched
  2. Danger phrases     first-person fear / escalation statements
  3. Healthy signals    counterweights that lower the score
  4. Score -> level, protocol, trend           (scorer.py)
  5. Recommendations + crisis directory        (recommendations.py)

Deterministic. No I/O, no LLM. The engine holds no mutable state.
"""

from __future__ import annotations

import time
from typing import Any

from repaircheck import lexicon
from repaircheck.matcher import MatchMode, contains, extract_context, find_matches
from repaircheck.models import (
    AbusePattern,
    DangerIndicator,
    Document,
    PatternExample,
    Protocol,
    SafetyAssessment,
    SafetyLevel,
    SafetyReport,
    Severity,
    Trend,
    elapsed_ms,
    new_report_id,
    utc_now,
)
from repaircheck.recommendations import build_safety_recommendations, crisis_resources_for
from repaircheck.scorer import (
    assess_overall_trend,
    calculate_safety_score,
    categorize_safety_level,
    recommend_protocol,
)

PATTERN_WINDOW = 60
DANGER_WINDOW = 80
MAX_PATTERN_EXAMPLES = 3

INVALID_INPUT_ERROR = "No valid text provided"


def sort_patterns(patterns: list[AbusePattern]) -> tuple[AbusePattern, ...]:
    """CRITICAL before HIGH, then weight descending, then lexicon order."""
    return tuple(sorted(patterns, key=lambda p: (-p.severity.rank, -p.weight)))


class SafetyCore:
    """
    Safety-risk engine. Deterministic. Zero API cost.

    Instantiated once as a singleton. Abuse categories, danger phrases
    and healthy indicators are module-level constants in lexicon.py.
    """

    def analyze(self, text: Any) -> SafetyReport:
        """
        Assess a narrative for safety risk.

        Args:
            text: The narrative. Anything that is not a non-blank string
                yields the error report instead of raising.

        Returns:
            SafetyReport with score, level, protocol, patterns and
            recommendations. Crisis resources are attached at score >= 60.
        """
        started = time.perf_counter()
        if not isinstance(text, str) or not text.strip():
            return self.empty_report(INVALID_INPUT_ERROR)

        doc = Document.from_text(text)

        # --- Phase 1: Detection ---
        patterns = self.detect_abuse_patterns(doc)
        danger = self.detect_danger_indicators(doc)
        healthy = self.detect_healthy_indicators(doc)

        # --- Phase 2: Scoring ---
        score, breakdown = calculate_safety_score(patterns, danger, healthy)
        level = categorize_safety_level(score)
        protocol = recommend_protocol(score, patterns)

        # --- Phase 3: Synthesis ---
        assessment = SafetyAssessment(
            critical_patterns=tuple(
                p.type for p in patterns if p.severity is Severity.CRITICAL
            ),
            high_risk_patterns=tuple(
                p.type for p in patterns if p.severity is Severity.HIGH
            ),
            danger_signs_count=len(danger),
            healthy_signs_count=len(healthy),
            overall_trend=assess_overall_trend(patterns, danger, healthy),
            score_breakdown=breakdown,
        )

        return SafetyReport(
            id=new_report_id("safety_analysis"),
            timestamp=utc_now(),
            safety_score=score,
            safety_level=level,
            recommended_protocol=protocol,
            abuse_patterns=patterns,
            danger_indicators=danger,
            healthy_indicators=healthy,
            detailed_assessment=assessment,
            recommendations=build_safety_recommendations(score, patterns),
            crisis_resources=crisis_resources_for(score),
            processing_time=elapsed_ms(started),
        )

    def detect_abuse_patterns(self, doc: Document) -> tuple[AbusePattern, ...]:
        detected: list[AbusePattern] = []
        for category in lexicon.ABUSE_CATEGORIES:
            examples: list[PatternExample] = []
            total = 0
            for keyword in category.keywords:
                result = find_matches(
                    doc.text, keyword, MatchMode.PREFIX, PATTERN_WINDOW, max_excerpts=1,
                )
                if not result.matched:
                    continue
                total += result.count
                examples.append(PatternExample(
                    keyword=keyword, count=result.count, context=result.excerpts[0],
                ))

            if total:
                detected.append(AbusePattern(
                    type=category.name,
                    severity=category.severity,
                    weight=category.weight,
                    match_count=total,
                    description=category.description,
                    examples=tuple(examples[:MAX_PATTERN_EXAMPLES]),
                ))
        return sort_patterns(detected)

    def detect_danger_indicators(self, doc: Document) -> tuple[DangerIndicator, ...]:
        """One indicator per distinct danger phrase present."""
        return tuple(
            DangerIndicator(
                phrase=phrase,
                context=extract_context(doc.text, phrase, MatchMode.SUBSTRING, DANGER_WINDOW),
            )
            for phrase in lexicon.DANGER_PHRASES
            if contains(doc.normalized, phrase)
        )

    def detect_healthy_indicators(self, doc: Document) -> tuple[str, ...]:
        return tuple(
            indicator for indicator in lexicon.HEALTHY_INDICATORS
            if contains(doc.normalized, indicator)
        )

    def empty_report(self, error: str) -> SafetyReport:
        """Zero-value report for input that cannot be analyzed."""
        return SafetyReport(
            id=new_report_id("safety_analysis"),
            timestamp=utc_now(),
            safety_score=0,
            safety_level=SafetyLevel.UNKNOWN,
            recommended_protocol=Protocol.ASSESSMENT_NEEDED,
            abuse_patterns=(),
            danger_indicators=(),
            healthy_indicators=(),
            detailed_assessment=SafetyAssessment(
                critical_patterns=(),
                high_risk_patterns=(),
                danger_signs_count=0,
                healthy_signs_count=0,
                overall_trend=Trend.UNCLEAR,
            ),
            recommendations=(),
            crisis_resources=(),
            processing_time=0.0,
            error=error,
        )


# ============================================================
# SINGLETON: instantiated once, never mutated
# ============================================================

safety_core = SafetyCore()
