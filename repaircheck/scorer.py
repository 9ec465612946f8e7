"""
Safety Score Calculator

Computes a 0-100 danger score from detected abuse patterns, danger
phrases and healthy-relationship counterweights, then maps it to a
display level, a recommended protocol and an overall trend.
Separated from safety_core.py for single-responsibility.

Higher score = more dangerous. The protocol decision adds one override
on top of the score bands: any CRITICAL pattern forces LIBERATE_URGENT.
"""

from __future__ import annotations

from typing import Sequence

from repaircheck.lexicon import ESCALATION_MARKERS
from repaircheck.models import (
    AbusePattern,
    DangerIndicator,
    Protocol,
    SafetyLevel,
    Severity,
    Trend,
)

DANGER_POINTS = 15
HEALTHY_CREDIT = 2
CRITICAL_MULTIPLIER = 2

# (lower bound, level, protocol), highest band first
_BANDS: tuple[tuple[int, SafetyLevel, Protocol], ...] = (
    (80, SafetyLevel.CRITICAL_DANGER, Protocol.LIBERATE_URGENT),
    (60, SafetyLevel.HIGH_RISK, Protocol.LIBERATE_RECOMMENDED),
    (40, SafetyLevel.MODERATE_CONCERN, Protocol.ASSESSMENT_LEAN_LIBERATE),
    (20, SafetyLevel.LOW_CONCERN, Protocol.ASSESSMENT_NEEDED),
)


def calculate_safety_score(
    patterns: Sequence[AbusePattern],
    danger_indicators: Sequence[DangerIndicator],
    healthy_indicators: Sequence[str],
) -> tuple[int, dict]:
    """
    Calculate the safety score.

    Returns:
        (score, breakdown) where breakdown shows every contribution.

    Scoring:
      CRITICAL pattern:   +weight x matches x 2
      HIGH pattern:       +weight x matches
      Danger phrase:      +15 each
      Healthy indicator:  -2 each
      Floor at 0, cap at 100.
    """
    critical_points = 0
    high_points = 0
    for pattern in patterns:
        if pattern.severity is Severity.CRITICAL:
            critical_points += pattern.weight * pattern.match_count * CRITICAL_MULTIPLIER
        elif pattern.severity is Severity.HIGH:
            high_points += pattern.weight * pattern.match_count

    danger_points = len(danger_indicators) * DANGER_POINTS
    healthy_credit = len(healthy_indicators) * HEALTHY_CREDIT

    raw = critical_points + high_points + danger_points - healthy_credit
    final = max(0, min(100, raw))

    breakdown = {
        "critical_patterns": critical_points,
        "high_risk_patterns": high_points,
        "danger_indicators": danger_points,
        "healthy_indicators": -healthy_credit,
        "raw_score": raw,
        "final_score": final,
    }
    return final, breakdown


def categorize_safety_level(score: int) -> SafetyLevel:
    for floor, level, _ in _BANDS:
        if score >= floor:
            return level
    return SafetyLevel.APPEARS_SAFE


def recommend_protocol(score: int, patterns: Sequence[AbusePattern]) -> Protocol:
    """
    First matching rule wins. A single CRITICAL pattern dominates any
    aggregate score, so a low-count physical keyword still yields
    LIBERATE_URGENT.
    """
    if any(p.severity is Severity.CRITICAL for p in patterns):
        return Protocol.LIBERATE_URGENT
    for floor, _, protocol in _BANDS:
        if score >= floor:
            return protocol
    return Protocol.REPAIR_VIABLE


def assess_overall_trend(
    patterns: Sequence[AbusePattern],
    danger_indicators: Sequence[DangerIndicator],
    healthy_indicators: Sequence[str],
) -> Trend:
    critical = sum(1 for p in patterns if p.severity is Severity.CRITICAL)
    high_risk = sum(1 for p in patterns if p.severity is Severity.HIGH)
    healthy = len(healthy_indicators)

    escalating = any(
        marker in d.phrase for d in danger_indicators for marker in ESCALATION_MARKERS
    )
    if critical > 0 or escalating:
        return Trend.WORSENING
    if high_risk > 3 and healthy == 0:
        return Trend.CONCERNING
    if healthy > high_risk:
        return Trend.MIXED_WITH_POSITIVE_SIGNS
    return Trend.UNCLEAR
