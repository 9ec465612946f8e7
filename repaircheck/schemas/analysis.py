"""
API Schemas — Request and Response Models

Pydantic models for the RepairCheck API.

Report models mirror `QualityReport.to_dict()` / `SafetyReport.to_dict()`
and use camelCase on the wire; Python attributes stay snake_case.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# REQUESTS
# ============================================================

class AnalyzeRequest(BaseModel):
    """POST /analyze/document and /analyze/safety request body."""
    text: str = Field(..., max_length=50_000,
                      description="The document to analyze (up to 50,000 characters). "
                                  "Blank text returns an error report, not a 422.")
    enrich: bool = Field(False, description="Also request an AI second opinion.")

    model_config = {"json_schema_extra": {"examples": [
        {"text": "I promise to attend weekly counseling starting March 1st "
                 "and I understand this caused you pain.", "enrich": False},
    ]}}


class BatchItem(BaseModel):
    text: str = Field(..., max_length=50_000)
    engine: str = Field("document", pattern="^(document|safety)$")


class BatchRequest(BaseModel):
    """POST /analyze/batch request body. Deterministic engines only."""
    items: list[BatchItem] = Field(..., min_length=1, max_length=50)


# ============================================================
# QUALITY REPORT
# ============================================================

class DimensionResponse(WireModel):
    """One scored axis. Per-dimension counters pass through as extra keys."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow",
    )

    name: str
    score: Union[int, float]
    category: str
    score_range: list[float] = Field(alias="range")
    evidence: list[str] = []


class QualityScoresResponse(WireModel):
    sentiment: DimensionResponse
    sincerity: DimensionResponse
    empathy: DimensionResponse
    completeness: DimensionResponse


class RedFlagResponse(WireModel):
    type: str
    severity: str
    count: int
    description: str
    examples: list[str] = []


class RecommendationResponse(WireModel):
    category: str
    priority: str
    suggestion: str
    example: str
    resources: bool = False


class QualityReportResponse(WireModel):
    id: str
    timestamp: str
    text_length: int
    word_count: int
    scores: QualityScoresResponse
    red_flags: list[RedFlagResponse]
    recommendations: list[RecommendationResponse]
    processing_time: float
    error: Optional[str] = None
    ai_analysis: Optional[dict] = None


# ============================================================
# SAFETY REPORT
# ============================================================

class PatternExampleResponse(WireModel):
    keyword: str
    count: int
    context: str


class AbusePatternResponse(WireModel):
    type: str
    severity: str
    weight: int
    match_count: int
    description: str
    examples: list[PatternExampleResponse] = []


class DangerIndicatorResponse(WireModel):
    phrase: str
    context: str
    severity: str


class CrisisResourceResponse(WireModel):
    name: str
    contact: str
    type: str
    hours: str
    description: str


class SafetyAssessmentResponse(WireModel):
    critical_patterns: list[str]
    high_risk_patterns: list[str]
    danger_signs_count: int
    healthy_signs_count: int
    overall_trend: str
    score_breakdown: dict = {}


class SafetyReportResponse(WireModel):
    id: str
    timestamp: str
    safety_score: int
    safety_level: str
    recommended_protocol: str
    abuse_patterns: list[AbusePatternResponse]
    danger_indicators: list[DangerIndicatorResponse]
    healthy_indicators: list[str]
    detailed_assessment: SafetyAssessmentResponse
    recommendations: list[RecommendationResponse]
    crisis_resources: list[CrisisResourceResponse]
    processing_time: float
    error: Optional[str] = None
    ai_analysis: Optional[dict] = None


# ============================================================
# BATCH
# ============================================================

class BatchResult(BaseModel):
    engine: str
    report: dict


class BatchResponse(BaseModel):
    """POST /analyze/batch response body."""
    results: list[BatchResult]
    total: int
    analyzed: int


# ============================================================
# META
# ============================================================

class ResourcesResponse(BaseModel):
    threshold: int
    resources: list[CrisisResourceResponse]


class HealthResponse(BaseModel):
    status: str
    version: str
    core_version: str
    llm_provider: str
    ai_review_available: bool
    features: list[str]
    review_cache: dict
