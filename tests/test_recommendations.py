"""
Recommendation synthesis tests.
"""

from __future__ import annotations

from repaircheck.models import (
    AbusePattern,
    CompletenessCategory,
    CompletenessScore,
    DimensionScore,
    Priority,
    QualityScores,
    Recommendation,
    RecommendationCategory,
    RedFlag,
    ScoreLevel,
    SentimentCategory,
    Severity,
    sort_by_priority,
)
from repaircheck.recommendations import (
    CRISIS_RESOURCE_THRESHOLD,
    build_quality_recommendations,
    build_safety_recommendations,
    crisis_resources_for,
)


def _scores(sentiment=0.0, sincerity=80, empathy=80, missing=()):
    return QualityScores(
        sentiment=DimensionScore(
            name="sentiment", score=sentiment,
            category=SentimentCategory.NEUTRAL, score_range=(-1.0, 1.0),
        ),
        sincerity=DimensionScore(
            name="sincerity", score=sincerity,
            category=ScoreLevel.HIGH, score_range=(0.0, 100.0),
        ),
        empathy=DimensionScore(
            name="empathy", score=empathy,
            category=ScoreLevel.HIGH, score_range=(0.0, 100.0),
        ),
        completeness=CompletenessScore(
            name="completeness", score=100,
            category=CompletenessCategory.COMPLETE, score_range=(0.0, 100.0),
            missing=tuple(missing),
        ),
    )


def _rec(priority, suggestion):
    return Recommendation(
        category=RecommendationCategory.SAFETY, priority=priority,
        suggestion=suggestion, example="",
    )


class TestSortByPriority:
    def test_priority_order(self):
        recs = [
            _rec(Priority.LOW, "a"),
            _rec(Priority.CRITICAL, "b"),
            _rec(Priority.MEDIUM, "c"),
            _rec(Priority.HIGH, "d"),
        ]
        assert [r.suggestion for r in sort_by_priority(recs)] == ["b", "d", "c", "a"]

    def test_ties_keep_discovery_order(self):
        recs = [
            _rec(Priority.HIGH, "first"),
            _rec(Priority.CRITICAL, "x"),
            _rec(Priority.HIGH, "second"),
            _rec(Priority.HIGH, "third"),
        ]
        ordered = [r.suggestion for r in sort_by_priority(recs)]
        assert ordered == ["x", "first", "second", "third"]


class TestQualityRecommendations:
    def test_strong_document_gets_none(self):
        assert build_quality_recommendations(_scores(), []) == ()

    def test_threshold_is_strict(self):
        assert build_quality_recommendations(_scores(sincerity=60, empathy=60), []) == ()
        recs = build_quality_recommendations(_scores(sincerity=59, empathy=59), [])
        assert [r.category for r in recs] == [
            RecommendationCategory.SINCERITY, RecommendationCategory.EMPATHY,
        ]
        assert "weekly counseling" in recs[0].example

    def test_missing_phases_named(self):
        recs = build_quality_recommendations(_scores(missing=("PREPARE", "RESTORE")), [])
        assert recs[0].suggestion == "Address missing REPAIR phases: PREPARE, RESTORE"
        assert recs[0].priority is Priority.MEDIUM

    def test_only_high_flags_recommended(self):
        flags = [
            RedFlag("vague_commitments", Severity.MEDIUM, 2, "Vague", ("soon",)),
            RedFlag("minimizing_harm", Severity.HIGH, 1, "Minimizing (1 instances)", ("just a joke",)),
        ]
        recs = build_quality_recommendations(_scores(), flags)
        assert len(recs) == 1
        assert recs[0].priority is Priority.CRITICAL
        assert recs[0].suggestion == "Remove minimizing harm: Minimizing (1 instances)"
        assert recs[0].example == "just a joke"

    def test_flag_without_examples(self):
        flags = [RedFlag("insincere_apology", Severity.HIGH, 1, "Non-apology")]
        recs = build_quality_recommendations(_scores(), flags)
        assert recs[0].example == "See detected instances"

    def test_negative_sentiment(self):
        recs = build_quality_recommendations(_scores(sentiment=-0.1), [])
        assert [r.category for r in recs] == [RecommendationCategory.SENTIMENT]


class TestSafetyRecommendations:
    def test_bands_are_cumulative(self):
        assert len(build_safety_recommendations(85, [])) == 9
        assert len(build_safety_recommendations(65, [])) == 6
        assert len(build_safety_recommendations(45, [])) == 3
        assert build_safety_recommendations(10, []) == ()

    def test_band_content(self):
        recs = build_safety_recommendations(60, [])
        assert recs[0].suggestion == "Consult with domestic violence specialist"
        assert recs[0].resources is True
        assert recs[-1].suggestion == "Establish firmer boundaries"

    def test_one_record_per_critical_pattern(self):
        patterns = [
            AbusePattern("physical", Severity.CRITICAL, 10, 1, "Physical violence"),
            AbusePattern("stalking", Severity.CRITICAL, 9, 1, "Surveillance"),
            AbusePattern("emotional", Severity.HIGH, 7, 3, "Emotional abuse"),
        ]
        recs = build_safety_recommendations(45, patterns)
        critical = [r for r in recs if r.priority is Priority.CRITICAL]
        assert [r.suggestion for r in critical] == [
            "Address physical abuse", "Address stalking abuse",
        ]
        assert critical[0].example.endswith("This requires professional intervention")
        assert recs[0].priority is Priority.CRITICAL


class TestCrisisResources:
    def test_threshold(self):
        assert CRISIS_RESOURCE_THRESHOLD == 60
        assert len(crisis_resources_for(60)) == 5
        assert crisis_resources_for(59) == ()

    def test_directory_entries(self):
        names = [r.name for r in crisis_resources_for(100)]
        assert names[0] == "National Domestic Violence Hotline"
        assert "Crisis Text Line" in names
        assert all(r.hours == "24/7" for r in crisis_resources_for(100))
