"""
Data Model — Report Records and Ordered Tags

Every value the two engines produce is a frozen record defined here.
Tags that drive ordering or override rules (severity, priority, safety
level, protocol) are enums, so an invalid state cannot be spelled.

Reports are value objects: built fresh per call, never mutated after
return. `to_dict()` renders the stable camelCase wire shape.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Mapping, Optional, Union


# ============================================================
# ORDERED TAGS
# ============================================================

class Severity(str, Enum):
    """Flag / pattern severity. Declaration order is the total order."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = list(Severity)


class Priority(str, Enum):
    """Recommendation priority. Higher rank sorts first."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


def sort_by_priority(items: Iterable["Recommendation"]) -> tuple["Recommendation", ...]:
    """Priority descending. `sorted` is stable, so ties keep discovery order."""
    return tuple(sorted(items, key=lambda r: -r.priority.rank))


# ============================================================
# CATEGORY LABELS
# ============================================================

class SentimentCategory(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class ScoreLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CompletenessCategory(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    INCOMPLETE = "incomplete"


class SafetyLevel(str, Enum):
    CRITICAL_DANGER = "CRITICAL_DANGER"
    HIGH_RISK = "HIGH_RISK"
    MODERATE_CONCERN = "MODERATE_CONCERN"
    LOW_CONCERN = "LOW_CONCERN"
    APPEARS_SAFE = "APPEARS_SAFE"
    UNKNOWN = "UNKNOWN"  # error sentinel only


class Protocol(str, Enum):
    LIBERATE_URGENT = "LIBERATE_URGENT"
    LIBERATE_RECOMMENDED = "LIBERATE_RECOMMENDED"
    ASSESSMENT_LEAN_LIBERATE = "ASSESSMENT_LEAN_LIBERATE"
    ASSESSMENT_NEEDED = "ASSESSMENT_NEEDED"
    REPAIR_VIABLE = "REPAIR_VIABLE"


class Trend(str, Enum):
    WORSENING = "WORSENING"
    CONCERNING = "CONCERNING"
    MIXED_WITH_POSITIVE_SIGNS = "MIXED_WITH_POSITIVE_SIGNS"
    UNCLEAR = "UNCLEAR"


class RecommendationCategory(str, Enum):
    SINCERITY = "sincerity"
    EMPATHY = "empathy"
    COMPLETENESS = "completeness"
    RED_FLAG = "red_flag"
    SENTIMENT = "sentiment"
    SAFETY = "safety"
    ABUSE_PATTERN = "abuse_pattern"


Category = Union[SentimentCategory, ScoreLevel, CompletenessCategory]


# ============================================================
# REPORT STAMPS
# ============================================================

def new_report_id(prefix: str) -> str:
    """e.g. doc_analysis_1718000000000_3f9a1c2b7"""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def elapsed_ms(started: float) -> float:
    """Milliseconds since a `time.perf_counter()` reading."""
    return round((time.perf_counter() - started) * 1000, 2)


# ============================================================
# INPUT
# ============================================================

_APOSTROPHES = str.maketrans({"’": "'", "‘": "'"})


@dataclass(frozen=True)
class Document:
    """
    The text under analysis.

    `text` folds typographic apostrophes to ASCII so lexicon phrases
    like "I'm sorry if" match pasted text. The fold is one character for
    one character, so offsets found in `text` index `raw` as well.
    """
    raw: str
    text: str
    normalized: str
    length: int
    word_count: int

    @classmethod
    def from_text(cls, raw: str) -> "Document":
        text = raw.translate(_APOSTROPHES)
        return cls(
            raw=raw,
            text=text,
            normalized=text.lower(),
            length=len(raw),
            word_count=len(raw.split()),
        )


# ============================================================
# QUALITY ENGINE RECORDS
# ============================================================

@dataclass(frozen=True)
class DimensionScore:
    """One independently scored axis of document quality."""
    name: str
    score: float
    category: Category
    score_range: tuple[float, float]
    evidence: tuple[str, ...] = ()
    counts: Mapping[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "score": self.score,
            "category": self.category.value,
            "range": list(self.score_range),
            "evidence": list(self.evidence),
        }
        data.update(self.counts)
        return data


@dataclass(frozen=True)
class PhaseDetail:
    phase: str
    score: int
    indicators: tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "phase": self.phase,
            "score": self.score,
            "indicators": list(self.indicators),
        }


@dataclass(frozen=True)
class CompletenessScore(DimensionScore):
    phases_found: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()
    phase_details: tuple[PhaseDetail, ...] = ()

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["phasesFound"] = list(self.phases_found)
        data["missing"] = list(self.missing)
        data["details"] = [d.to_dict() for d in self.phase_details]
        return data


@dataclass(frozen=True)
class RedFlag:
    """A problematic language pattern found in an apology document."""
    type: str
    severity: Severity
    count: int
    description: str
    examples: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "severity": self.severity.value,
            "count": self.count,
            "description": self.description,
            "examples": list(self.examples),
        }


@dataclass(frozen=True)
class Recommendation:
    category: RecommendationCategory
    priority: Priority
    suggestion: str
    example: str
    resources: bool = False

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "priority": self.priority.value,
            "suggestion": self.suggestion,
            "example": self.example,
            "resources": self.resources,
        }


@dataclass(frozen=True)
class QualityScores:
    sentiment: DimensionScore
    sincerity: DimensionScore
    empathy: DimensionScore
    completeness: CompletenessScore

    def to_dict(self) -> dict:
        return {
            "sentiment": self.sentiment.to_dict(),
            "sincerity": self.sincerity.to_dict(),
            "empathy": self.empathy.to_dict(),
            "completeness": self.completeness.to_dict(),
        }


@dataclass(frozen=True)
class QualityReport:
    id: str
    timestamp: str
    text_length: int
    word_count: int
    scores: QualityScores
    red_flags: tuple[RedFlag, ...]
    recommendations: tuple[Recommendation, ...]
    processing_time: float
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "textLength": self.text_length,
            "wordCount": self.word_count,
            "scores": self.scores.to_dict(),
            "redFlags": [f.to_dict() for f in self.red_flags],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "processingTime": self.processing_time,
            "error": self.error,
        }


# ============================================================
# SAFETY ENGINE RECORDS
# ============================================================

@dataclass(frozen=True)
class PatternExample:
    keyword: str
    count: int
    context: str

    def to_dict(self) -> dict:
        return {"keyword": self.keyword, "count": self.count, "context": self.context}


@dataclass(frozen=True)
class AbusePattern:
    """A detected abuse category with its fixed weight and severity."""
    type: str
    severity: Severity
    weight: int
    match_count: int
    description: str
    examples: tuple[PatternExample, ...] = ()

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "severity": self.severity.value,
            "weight": self.weight,
            "matchCount": self.match_count,
            "description": self.description,
            "examples": [e.to_dict() for e in self.examples],
        }


@dataclass(frozen=True)
class DangerIndicator:
    phrase: str
    context: str
    severity: Severity = Severity.CRITICAL

    def to_dict(self) -> dict:
        return {
            "phrase": self.phrase,
            "context": self.context,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class CrisisResource:
    name: str
    contact: str
    type: str
    hours: str
    description: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "contact": self.contact,
            "type": self.type,
            "hours": self.hours,
            "description": self.description,
        }


@dataclass(frozen=True)
class SafetyAssessment:
    """Derived breakdown of a safety report."""
    critical_patterns: tuple[str, ...]
    high_risk_patterns: tuple[str, ...]
    danger_signs_count: int
    healthy_signs_count: int
    overall_trend: Trend
    score_breakdown: Mapping[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "criticalPatterns": list(self.critical_patterns),
            "highRiskPatterns": list(self.high_risk_patterns),
            "dangerSignsCount": self.danger_signs_count,
            "healthySignsCount": self.healthy_signs_count,
            "overallTrend": self.overall_trend.value,
            "scoreBreakdown": dict(self.score_breakdown),
        }


@dataclass(frozen=True)
class SafetyReport:
    id: str
    timestamp: str
    safety_score: int
    safety_level: SafetyLevel
    recommended_protocol: Protocol
    abuse_patterns: tuple[AbusePattern, ...]
    danger_indicators: tuple[DangerIndicator, ...]
    healthy_indicators: tuple[str, ...]
    detailed_assessment: SafetyAssessment
    recommendations: tuple[Recommendation, ...]
    crisis_resources: tuple[CrisisResource, ...]
    processing_time: float
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "safetyScore": self.safety_score,
            "safetyLevel": self.safety_level.value,
            "recommendedProtocol": self.recommended_protocol.value,
            "abusePatterns": [p.to_dict() for p in self.abuse_patterns],
            "dangerIndicators": [d.to_dict() for d in self.danger_indicators],
            "healthyIndicators": list(self.healthy_indicators),
            "detailedAssessment": self.detailed_assessment.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "crisisResources": [c.to_dict() for c in self.crisis_resources],
            "processingTime": self.processing_time,
            "error": self.error,
        }
