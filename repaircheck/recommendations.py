"""
Recommendation Synthesis

Turns completed scores and flags into ranked recommendation lists.

Rules are evaluated independently against the finished analysis, so
several can fire at once. Every list leaves here stable-sorted by
priority: critical > high > medium > low, ties in discovery order.
"""

from __future__ import annotations

from typing import Sequence

from repaircheck.models import (
    AbusePattern,
    CrisisResource,
    Priority,
    QualityScores,
    Recommendation,
    RecommendationCategory,
    RedFlag,
    Severity,
    sort_by_priority,
)

COMMITMENT_THRESHOLD = 60
EMPATHY_THRESHOLD = 60


# ============================================================
# QUALITY ENGINE
# ============================================================

def build_quality_recommendations(
    scores: QualityScores,
    red_flags: Sequence[RedFlag],
) -> tuple[Recommendation, ...]:
    recs: list[Recommendation] = []

    if scores.sincerity.score < COMMITMENT_THRESHOLD:
        recs.append(Recommendation(
            category=RecommendationCategory.SINCERITY,
            priority=Priority.HIGH,
            suggestion="Strengthen commitments with specific, concrete language",
            example=(
                'Change "I will try to improve" to "I will attend weekly '
                'counseling sessions starting March 1st"'
            ),
        ))

    if scores.empathy.score < EMPATHY_THRESHOLD:
        recs.append(Recommendation(
            category=RecommendationCategory.EMPATHY,
            priority=Priority.HIGH,
            suggestion="Acknowledge the specific impact and harm caused",
            example=(
                'Add statements like "I understand this caused you pain" or '
                '"I recognize how my actions affected you"'
            ),
        ))

    missing = scores.completeness.missing
    if missing:
        recs.append(Recommendation(
            category=RecommendationCategory.COMPLETENESS,
            priority=Priority.MEDIUM,
            suggestion=f"Address missing REPAIR phases: {', '.join(missing)}",
            example="Ensure your document covers all six phases of the REPAIR Protocol",
        ))

    for flag in red_flags:
        if flag.severity is Severity.HIGH:
            recs.append(Recommendation(
                category=RecommendationCategory.RED_FLAG,
                priority=Priority.CRITICAL,
                suggestion=f"Remove {flag.type.replace('_', ' ')}: {flag.description}",
                example=flag.examples[0] if flag.examples else "See detected instances",
            ))

    if scores.sentiment.score < 0:
        recs.append(Recommendation(
            category=RecommendationCategory.SENTIMENT,
            priority=Priority.MEDIUM,
            suggestion="Adjust tone to be more constructive and forward-looking",
            example="Focus on healing and restoration rather than dwelling on negativity",
        ))

    return sort_by_priority(recs)


# ============================================================
# SAFETY ENGINE
# ============================================================

def _safety(priority: Priority, action: str, description: str, resources: bool = False):
    return Recommendation(
        category=RecommendationCategory.SAFETY,
        priority=priority,
        suggestion=action,
        example=description,
        resources=resources,
    )


# (score floor, records appended when score >= floor)
SAFETY_BANDS: tuple[tuple[int, tuple[Recommendation, ...]], ...] = (
    (80, (
        _safety(
            Priority.CRITICAL, "Seek immediate help",
            "Contact domestic violence hotline, create safety plan, consider emergency shelter",
            resources=True,
        ),
        _safety(
            Priority.CRITICAL, "Do not confront abuser alone",
            "Confrontation can escalate danger. Work with professionals to plan safe exit",
        ),
        _safety(
            Priority.CRITICAL, "Document everything safely",
            "Keep records in secure location abuser cannot access. Photos, messages, incidents",
        ),
    )),
    (60, (
        _safety(
            Priority.HIGH, "Consult with domestic violence specialist",
            "Professional assessment of your situation and safety planning",
            resources=True,
        ),
        _safety(
            Priority.HIGH, "Build support network quietly",
            "Connect with trusted friends/family without alerting abuser",
        ),
        _safety(
            Priority.HIGH, "Secure important documents",
            "ID, birth certificates, financial docs, keep copies in safe place",
        ),
    )),
    (40, (
        _safety(
            Priority.MEDIUM, "Take assessment seriously",
            "Use the full protocol assessment to determine best path forward",
        ),
        _safety(
            Priority.MEDIUM, "Seek therapy/counseling",
            "Professional support to process experiences and clarify needs",
        ),
        _safety(
            Priority.MEDIUM, "Establish firmer boundaries",
            "Begin setting and enforcing boundaries about acceptable behavior",
        ),
    )),
)


def build_safety_recommendations(
    score: int,
    patterns: Sequence[AbusePattern],
) -> tuple[Recommendation, ...]:
    """
    Bands are cumulative: a score of 85 collects the >=80, >=60 and >=40
    records. Each CRITICAL pattern then adds one record naming it.
    """
    recs: list[Recommendation] = []
    for floor, band in SAFETY_BANDS:
        if score >= floor:
            recs.extend(band)

    for pattern in patterns:
        if pattern.severity is Severity.CRITICAL:
            recs.append(Recommendation(
                category=RecommendationCategory.ABUSE_PATTERN,
                priority=Priority.CRITICAL,
                suggestion=f"Address {pattern.type} abuse",
                example=f"{pattern.description} - This requires professional intervention",
                resources=True,
            ))

    return sort_by_priority(recs)


# ============================================================
# CRISIS DIRECTORY
# ============================================================

CRISIS_RESOURCE_THRESHOLD = 60

CRISIS_RESOURCES: tuple[CrisisResource, ...] = (
    CrisisResource(
        name="National Domestic Violence Hotline",
        contact="1-800-799-7233",
        type="phone",
        hours="24/7",
        description="Confidential support, safety planning, and resource referrals",
    ),
    CrisisResource(
        name="Crisis Text Line",
        contact="Text HOME to 741741",
        type="text",
        hours="24/7",
        description="Text-based crisis support with trained counselors",
    ),
    CrisisResource(
        name="National Sexual Assault Hotline",
        contact="1-800-656-4673",
        type="phone",
        hours="24/7",
        description="Support for sexual assault survivors",
    ),
    CrisisResource(
        name="Online Chat Support",
        contact="https://www.thehotline.org",
        type="web",
        hours="24/7",
        description="Anonymous online chat with advocates",
    ),
    CrisisResource(
        name="National Suicide Prevention Lifeline",
        contact="988",
        type="phone",
        hours="24/7",
        description="Crisis intervention and suicide prevention",
    ),
)


def crisis_resources_for(score: int) -> tuple[CrisisResource, ...]:
    """The full directory at score >= 60, otherwise nothing."""
    if score >= CRISIS_RESOURCE_THRESHOLD:
        return CRISIS_RESOURCES
    return ()
