"""
Document Core — Apology Quality Engine

Scores an apology / remediation document on four independent axes and
flags problematic language:

  1. Sentiment     [-1.0, 1.0]  positive vs negative vocabulary
  2. Sincerity     [0, 100]     commitment strength, hedging, timeframes
  3. Empathy       [0, 100]     harm recognition vs dismissive connectives
  4. Completeness  [0, 100]     coverage of the six REPAIR phases
  5. Red flags                  defensive / vague / minimizing / insincere

Deterministic. No I/O, no LLM. Each call is a pure function of its input
text against the lexicon tables; the engine holds no mutable state.
"""

from __future__ import annotations

import re
import time
from typing import Any, Sequence

from repaircheck import lexicon
from repaircheck.lexicon import RedFlagRule, Tiered
from repaircheck.matcher import (
    MatchMode,
    contains,
    count_matches,
    extract_context,
    match_spans,
)
from repaircheck.models import (
    CompletenessCategory,
    CompletenessScore,
    DimensionScore,
    Document,
    PhaseDetail,
    QualityReport,
    QualityScores,
    RedFlag,
    ScoreLevel,
    SentimentCategory,
    Severity,
    elapsed_ms,
    new_report_id,
    utc_now,
)
from repaircheck.recommendations import build_quality_recommendations

SENTIMENT_RANGE = (-1.0, 1.0)
PERCENT_RANGE = (0.0, 100.0)

EXCERPT_WINDOW = 50
MAX_FLAG_EXAMPLES = 3
MAX_SENTIMENT_EVIDENCE = 10
MAX_EVIDENCE = 5

INVALID_INPUT_ERROR = "No valid text provided"


# ============================================================
# CATEGORY THRESHOLDS
# ============================================================

def categorize_sentiment(score: float) -> SentimentCategory:
    if score > 0.3:
        return SentimentCategory.POSITIVE
    if score < -0.3:
        return SentimentCategory.NEGATIVE
    return SentimentCategory.NEUTRAL


def categorize_score(score: float) -> ScoreLevel:
    if score >= 80:
        return ScoreLevel.HIGH
    if score >= 60:
        return ScoreLevel.MEDIUM
    return ScoreLevel.LOW


def categorize_completeness(score: float) -> CompletenessCategory:
    if score >= 90:
        return CompletenessCategory.COMPLETE
    if score >= 60:
        return CompletenessCategory.PARTIAL
    return CompletenessCategory.INCOMPLETE


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _phase_label(name: str) -> re.Pattern:
    # "PHASE 1: RECOGNIZE", "Phase #2 - Examine"
    return re.compile(rf"\bphase\b[ \t\d:#.\-–—]*\b{name}\b", re.IGNORECASE)


_PHASE_LABELS = {p.name: _phase_label(p.name) for p in lexicon.REPAIR_PHASES}


# ============================================================
# THE QUALITY ENGINE
# ============================================================

class DocumentCore:
    """
    Apology quality engine. Deterministic. Zero API cost.

    Instantiated once as a singleton. The lexicon it reads is a set of
    module-level constants that cannot change at runtime.
    """

    def analyze(self, text: Any) -> QualityReport:
        """
        Analyze a document.

        Args:
            text: The document text. Anything that is not a non-blank
                string yields the error report instead of raising.

        Returns:
            QualityReport with scores, red flags and ranked recommendations.
        """
        started = time.perf_counter()
        if not isinstance(text, str) or not text.strip():
            return self.empty_report(INVALID_INPUT_ERROR)

        doc = Document.from_text(text)

        scores = QualityScores(
            sentiment=self.score_sentiment(doc),
            sincerity=self.score_sincerity(doc),
            empathy=self.score_empathy(doc),
            completeness=self.score_completeness(doc),
        )
        red_flags = self.detect_red_flags(doc)
        recommendations = build_quality_recommendations(scores, red_flags)

        return QualityReport(
            id=new_report_id("doc_analysis"),
            timestamp=utc_now(),
            text_length=doc.length,
            word_count=doc.word_count,
            scores=scores,
            red_flags=red_flags,
            recommendations=recommendations,
            processing_time=elapsed_ms(started),
        )

    # --- Dimension scorers ---

    def score_sentiment(self, doc: Document) -> DimensionScore:
        """
        (positive - negative) / (positive + negative), 0 with no hits.
        An apology root anywhere in the text adds +0.2.
        """
        evidence: list[str] = []
        positive = 0
        for word in lexicon.POSITIVE_WORDS:
            n = count_matches(doc.normalized, word)
            if n:
                positive += n
                evidence.append(f'Positive: "{word}" ({n}x)')

        negative = 0
        for word in lexicon.NEGATIVE_WORDS:
            n = count_matches(doc.normalized, word)
            if n:
                negative += n
                evidence.append(f'Negative: "{word}" ({n}x)')

        total = positive + negative
        score = (positive - negative) / total if total else 0.0

        if any(root in doc.normalized for root in lexicon.APOLOGY_ROOTS):
            score = min(score + 0.2, 1.0)
        score = _clamp(score, *SENTIMENT_RANGE)

        return DimensionScore(
            name="sentiment",
            score=round(score, 2),
            category=categorize_sentiment(score),
            score_range=SENTIMENT_RANGE,
            evidence=tuple(evidence[:MAX_SENTIMENT_EVIDENCE]),
            counts={"positiveCount": positive, "negativeCount": negative},
        )

    def score_sincerity(self, doc: Document) -> DimensionScore:
        """
        Base 50, +8 per strong commitment, +3 per medium, -10 per hedge,
        +5 per timeframe match.
        """
        evidence: list[str] = []
        high, medium, low = self._tier_counts(
            doc, lexicon.SINCERITY, evidence,
            high_label="Strong commitment", low_label="Weak commitment",
        )
        score = 50 + high * 8 + medium * 3 - low * 10

        for pattern in lexicon.TIMEFRAME_PATTERNS:
            found = [m.group(0) for m in pattern.finditer(doc.text)]
            if found:
                score += len(found) * 5
                evidence.append(f"Specific timeframe: {found[0]}")

        score = _clamp(score, *PERCENT_RANGE)
        return DimensionScore(
            name="sincerity",
            score=round(score),
            category=categorize_score(score),
            score_range=PERCENT_RANGE,
            evidence=tuple(evidence[:MAX_EVIDENCE]),
            counts={"highCommitmentCount": high, "weakCommitmentCount": low},
        )

    def score_empathy(self, doc: Document) -> DimensionScore:
        """
        Base 50, +7 per empathy marker, +3 per medium marker, -8 per
        dismissive connective, +8 per distinct impact acknowledgment.
        """
        evidence: list[str] = []
        high, medium, low = self._tier_counts(
            doc, lexicon.EMPATHY, evidence,
            high_label="Empathy marker", low_label="Dismissive word",
            exclude=self._defensive_spans(doc),
        )
        score = 50 + high * 7 + medium * 3 - low * 8

        for phrase in lexicon.IMPACT_PHRASES:
            if contains(doc.normalized, phrase):
                score += 8
                evidence.append(f'Impact acknowledgment: "{phrase}"')

        score = _clamp(score, *PERCENT_RANGE)
        return DimensionScore(
            name="empathy",
            score=round(score),
            category=categorize_score(score),
            score_range=PERCENT_RANGE,
            evidence=tuple(evidence[:MAX_EVIDENCE]),
            counts={"empathyMarkerCount": high, "dismissiveCount": low},
        )

    def score_completeness(self, doc: Document) -> CompletenessScore:
        """
        Per phase: +20 per distinct keyword, +30 for an explicit
        "PHASE <name>" label, capped at 100. Overall is the mean over all
        six phases plus structure bonuses.
        """
        total = 0
        found: list[str] = []
        missing: list[str] = []
        details: list[PhaseDetail] = []

        for phase in lexicon.REPAIR_PHASES:
            phase_score = 0
            indicators: list[str] = []
            for keyword in phase.keywords:
                if count_matches(doc.normalized, keyword):
                    phase_score += 20
                    indicators.append(keyword)

            if _PHASE_LABELS[phase.name].search(doc.text):
                phase_score += 30
                indicators.append(f"{phase.name} phase mentioned")

            if phase_score > 0:
                capped = min(100, phase_score)
                total += capped
                found.append(phase.name)
                details.append(PhaseDetail(
                    phase=phase.name, score=capped, indicators=tuple(indicators),
                ))
            else:
                missing.append(phase.name)

        score = round(total / len(lexicon.REPAIR_PHASES))

        if any(divider in doc.text for divider in lexicon.SECTION_DIVIDERS):
            score = min(100, score + 10)
        if lexicon.DATE_LABEL_PATTERN.search(doc.text):
            score = min(100, score + 5)

        score = int(_clamp(score, *PERCENT_RANGE))
        return CompletenessScore(
            name="completeness",
            score=score,
            category=categorize_completeness(score),
            score_range=PERCENT_RANGE,
            evidence=tuple(d.phase for d in details),
            phases_found=tuple(found),
            missing=tuple(missing),
            phase_details=tuple(details),
        )

    # --- Red flags ---

    def detect_red_flags(self, doc: Document) -> tuple[RedFlag, ...]:
        return tuple(
            flag for flag in (self._scan_rule(doc, rule) for rule in lexicon.RED_FLAG_RULES)
            if flag is not None
        )

    def _scan_rule(self, doc: Document, rule: RedFlagRule) -> RedFlag | None:
        haystack = doc.text if rule.scan == "raw" else doc.normalized
        count = 0
        examples: list[str] = []
        for phrase in lexicon.RED_FLAG_PHRASES[rule.lexicon_key]:
            n = count_matches(haystack, phrase)
            if not n:
                continue
            count += n
            if len(examples) < MAX_FLAG_EXAMPLES:
                examples.append(
                    extract_context(doc.text, phrase, MatchMode.WORD, EXCERPT_WINDOW)
                )

        if count == 0:
            return None

        severity = Severity.HIGH if count > rule.high_above else Severity.MEDIUM
        return RedFlag(
            type=rule.type,
            severity=severity,
            count=count,
            description=rule.description.format(count=count),
            examples=tuple(examples),
        )

    # --- Helpers ---

    @staticmethod
    def _tier_counts(
        doc: Document,
        tiers: Tiered,
        evidence: list[str],
        high_label: str,
        low_label: str,
        exclude: Sequence[tuple[int, int]] = (),
    ) -> tuple[int, int, int]:
        """
        Total hits per tier. High and low hits append evidence in lexicon order.
        High-tier hits that fall inside an `exclude` span earn nothing.
        """
        high = 0
        for word in tiers.high:
            n = sum(
                1 for start, end in match_spans(doc.normalized, word)
                if not any(lo <= start and end <= hi for lo, hi in exclude)
            )
            if n:
                high += n
                evidence.append(f'{high_label}: "{word}"')

        medium = sum(count_matches(doc.normalized, word) for word in tiers.medium)

        low = 0
        for word in tiers.low:
            n = count_matches(doc.normalized, word)
            if n:
                low += n
                evidence.append(f'{low_label}: "{word}"')

        return high, medium, low

    @staticmethod
    def _defensive_spans(doc: Document) -> list[tuple[int, int]]:
        # "you caused" must not count as acknowledging harm
        return [
            span
            for phrase in lexicon.RED_FLAG_PHRASES["defensive"]
            for span in match_spans(doc.normalized, phrase)
        ]

    def empty_report(self, error: str) -> QualityReport:
        """Zero-value report for input that cannot be analyzed."""
        scores = QualityScores(
            sentiment=DimensionScore(
                name="sentiment", score=0.0,
                category=SentimentCategory.NEUTRAL, score_range=SENTIMENT_RANGE,
            ),
            sincerity=DimensionScore(
                name="sincerity", score=0,
                category=ScoreLevel.LOW, score_range=PERCENT_RANGE,
            ),
            empathy=DimensionScore(
                name="empathy", score=0,
                category=ScoreLevel.LOW, score_range=PERCENT_RANGE,
            ),
            completeness=CompletenessScore(
                name="completeness", score=0,
                category=CompletenessCategory.INCOMPLETE, score_range=PERCENT_RANGE,
            ),
        )
        return QualityReport(
            id=new_report_id("doc_analysis"),
            timestamp=utc_now(),
            text_length=0,
            word_count=0,
            scores=scores,
            red_flags=(),
            recommendations=(),
            processing_time=0.0,
            error=error,
        )


# ============================================================
# SINGLETON: instantiated once, never mutated
# ============================================================

document_core = DocumentCore()
