"""
Lexicon — Immutable Trigger Tables

Every phrase either engine matches lives here and only here.

These tables are built once at import and never change:
  - phrase lists are tuples
  - category maps are read-only mapping proxies
  - category records are frozen dataclasses

Weights and thresholds are the calibrated values of the REPAIR
Protocol analyzers. They are fixed constants, not learned.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from repaircheck.models import Severity

# --- Lexicon version (stamped on API responses) ---
CORE_VERSION = "1.0.0"


@dataclass(frozen=True)
class Tiered:
    """A lexicon category split into high / medium / low signal."""
    high: tuple[str, ...]
    medium: tuple[str, ...]
    low: tuple[str, ...]


# ============================================================
# QUALITY ENGINE: SINCERITY & EMPATHY
# ============================================================

SINCERITY = Tiered(
    high=(
        "acknowledge", "responsibility", "accountable", "commit", "committed",
        "promise", "will", "shall", "dedicated", "determined", "ensure",
        "guarantee", "pledge", "vow", "oath", "swear", "undertake",
    ),
    medium=(
        "intend", "plan", "aim", "strive", "endeavor", "work towards",
        "focus on", "prioritize", "make effort",
    ),
    # Hedging: each hit is a penalty
    low=(
        "try", "maybe", "might", "possibly", "hope", "wish", "could",
        "should", "would like", "if possible", "attempt", "see if",
    ),
)

EMPATHY = Tiered(
    high=(
        "understand", "recognize", "realize", "appreciate", "hurt", "pain",
        "suffering", "impact", "affected", "feel", "felt", "sorry", "regret",
        "remorse", "apologize", "harm", "damage", "wrong", "mistake",
        "deeply", "sincerely", "truly", "caused",
    ),
    medium=(
        "see", "know", "aware", "conscious", "notice", "observed",
        "effect", "consequence", "result", "counseling", "therapy",
    ),
    # Dismissive connectives: each hit is a penalty
    low=(
        "but", "however", "though", "although", "nevertheless",
        "nonetheless", "still", "yet", "anyway",
    ),
)

# Phrases that name the harm done to the other person. Each counts once.
IMPACT_PHRASES: tuple[str, ...] = (
    "caused you pain", "hurt you", "affected you", "made you feel",
    "understand your", "recognize your", "see how", "realize how",
)


# ============================================================
# QUALITY ENGINE: SENTIMENT
# ============================================================

POSITIVE_WORDS: tuple[str, ...] = (
    "love", "care", "respect", "trust", "honest", "genuine", "authentic",
    "transparent", "open", "committed", "dedicated", "support", "help",
    "improve", "better", "change", "grow", "learn", "heal", "restore",
)

NEGATIVE_WORDS: tuple[str, ...] = (
    "hate", "anger", "resentment", "bitter", "hostile", "aggressive",
    "defensive", "denial", "refuse", "won't", "can't", "impossible",
    "never", "always", "nothing", "everything",
)

# Stems: an apology in a REPAIR document shifts sentiment upward
APOLOGY_ROOTS: tuple[str, ...] = ("apolog", "sorry", "regret")


# ============================================================
# QUALITY ENGINE: RED FLAGS
# ============================================================

RED_FLAG_PHRASES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "defensive": (
        "excuse", "justify", "justification", "blame", "fault",
        "not my fault", "wasn't me", "didn't mean", "not intentional",
        "you made me", "you caused", "your fault", "you're to blame",
        "if you hadn't", "you should have",
    ),
    "vague": (
        "soon", "eventually", "someday", "sometime", "when I can",
        "as soon as possible", "when possible", "in the future",
        "down the road", "at some point", "one day",
    ),
    "minimizing": (
        "just", "only", "simply", "merely", "not a big deal",
        "overreacting", "too sensitive", "dramatic", "exaggerating",
        "making a big deal", "blowing out of proportion",
    ),
    "insincere": (
        "if I hurt", "if you felt", "if it seemed", "if that's how",
        "I'm sorry you feel", "I'm sorry if", "mistakes were made",
        "regrettable", "unfortunate situation",
    ),
})


@dataclass(frozen=True)
class RedFlagRule:
    """
    How one red-flag category is scanned and graded.

    A flag is raised when count > 0. Severity is HIGH when the count
    exceeds `high_above`, else MEDIUM; `high_above=0` means always HIGH.
    """
    type: str
    lexicon_key: str
    scan: str  # "raw" | "normalized"
    high_above: int
    description: str


RED_FLAG_RULES: tuple[RedFlagRule, ...] = (
    RedFlagRule(
        type="defensive_language",
        lexicon_key="defensive",
        scan="raw",
        high_above=2,
        description="Defensive or blame-shifting language detected ({count} instances)",
    ),
    RedFlagRule(
        type="vague_commitments",
        lexicon_key="vague",
        scan="normalized",
        high_above=3,
        description="Vague timeframes or commitments detected ({count} instances)",
    ),
    RedFlagRule(
        type="minimizing_harm",
        lexicon_key="minimizing",
        scan="normalized",
        high_above=0,
        description="Minimizing or dismissive language detected ({count} instances)",
    ),
    RedFlagRule(
        type="insincere_apology",
        lexicon_key="insincere",
        scan="raw",
        high_above=0,
        description="Non-apology or conditional apology detected ({count} instances)",
    ),
)


# ============================================================
# QUALITY ENGINE: TIMEFRAMES & STRUCTURE
# ============================================================

_MONTHS = (
    r"(?:january|february|march|april|may|june|july|august|"
    r"september|october|november|december)"
)

# Each match of each pattern earns the sincerity timeframe bonus
TIMEFRAME_PATTERNS: tuple[re.Pattern, ...] = (
    # relative duration: "6 weeks", "3 months", "weekly"
    re.compile(
        r"\b(?:\d+\s*(?:day|week|month|year)s?|daily|weekly|monthly)\b",
        re.IGNORECASE,
    ),
    # "by March"
    re.compile(rf"\bby\s+{_MONTHS}\b", re.IGNORECASE),
    # explicit date: "on 3/1/2025", "March 1st"
    re.compile(
        rf"\b(?:on\s+)?\d{{1,2}}/\d{{1,2}}/\d{{4}}\b|\b{_MONTHS}\s+\d{{1,2}}(?:st|nd|rd|th)?\b",
        re.IGNORECASE,
    ),
)

SECTION_DIVIDERS: tuple[str, ...] = ("===", "---")
DATE_LABEL_PATTERN = re.compile(r"Date:\s*\d{1,2}/\d{1,2}/\d{4}")


# ============================================================
# QUALITY ENGINE: REPAIR PHASES
# ============================================================

@dataclass(frozen=True)
class RepairPhase:
    name: str
    keywords: tuple[str, ...]


REPAIR_PHASES: tuple[RepairPhase, ...] = (
    RepairPhase("RECOGNIZE", ("recognize", "acknowledge", "admit", "accept responsibility")),
    RepairPhase("EXAMINE", ("examine", "analyze", "understand", "impact", "root cause")),
    RepairPhase("PREPARE", ("prepare", "plan", "strategy", "amends", "apology")),
    RepairPhase("ARTICULATE", ("articulate", "communicate", "express", "deliver", "apologize")),
    RepairPhase("IMPLEMENT", ("implement", "action", "change", "behavior", "commit")),
    RepairPhase("RESTORE", ("restore", "rebuild", "trust", "relationship", "healing")),
)


# ============================================================
# SAFETY ENGINE: ABUSE PATTERNS
# ============================================================

@dataclass(frozen=True)
class AbuseCategory:
    """An abuse category: trigger keywords plus fixed weight and severity."""
    name: str
    keywords: tuple[str, ...]
    weight: int
    severity: Severity
    description: str


ABUSE_CATEGORIES: tuple[AbuseCategory, ...] = (
    AbuseCategory(
        name="physical",
        keywords=(
            "hit", "slap", "push", "shove", "punch", "kick", "choke", "strangle",
            "grab", "restrain", "force", "hurt", "bruise", "injured", "attacked",
            "threatened violence", "weapon", "physical harm", "afraid for safety",
        ),
        weight=10,
        severity=Severity.CRITICAL,
        description="Physical violence or threats of violence - extremely dangerous and never acceptable",
    ),
    AbuseCategory(
        name="emotional",
        keywords=(
            "worthless", "stupid", "idiot", "useless", "pathetic", "crazy",
            "insane", "dramatic", "too sensitive", "overreacting", "making things up",
            "no one else would want", "lucky to have", "name calling", "insults",
            "humiliate", "embarrass", "put down", "belittle", "degrade",
        ),
        weight=7,
        severity=Severity.HIGH,
        description="Emotional abuse damages self-esteem and psychological wellbeing",
    ),
    AbuseCategory(
        name="gaslighting",
        keywords=(
            "never happened", "imagining things", "making it up", "didn't say that",
            "you're crazy", "questioning reality", "questioning memory",
            "twisting words", "lying about", "deny", "denied saying", "rewrite history",
            "not how it happened", "you're remembering wrong",
        ),
        weight=8,
        severity=Severity.HIGH,
        description="Psychological manipulation making you question reality and sanity",
    ),
    AbuseCategory(
        name="isolation",
        keywords=(
            "keep me from", "won't let me see", "doesn't want me around",
            "gets angry when I see", "jealous of my friends", "isolate", "separated from",
            "cut off from", "no contact with", "control who I see", "control where I go",
            "monitors my", "tracks my", "checks my phone", "reads my messages",
        ),
        weight=7,
        severity=Severity.HIGH,
        description="Cutting you off from support systems to increase control",
    ),
    AbuseCategory(
        name="financial",
        keywords=(
            "controls money", "won't let me work", "takes my paycheck",
            "withholds money", "financial control", "can't access accounts",
            "refuses to let me", "financial abuse", "economically dependent",
            "sabotages my job", "prevents me from working",
        ),
        weight=8,
        severity=Severity.HIGH,
        description="Controlling money to create dependence and prevent independence",
    ),
    AbuseCategory(
        name="coercion",
        keywords=(
            "threatened to", "said they would", "force me to", "pressure",
            "coerce", "intimidate", "blackmail", "manipulate", "guilt trip",
            "if you don't", "or else", "you better", "you have to",
            "made me feel like", "no choice", "afraid to say no",
        ),
        weight=8,
        severity=Severity.HIGH,
        description="Forcing compliance through threats, pressure, or manipulation",
    ),
    AbuseCategory(
        name="stalking",
        keywords=(
            "follows me", "shows up uninvited", "monitors my location",
            "tracks me", "watches my house", "won't leave me alone",
            "constant calls", "excessive texting", "surveillance", "GPS tracker",
            "cameras", "spying", "stalking", "harassing",
        ),
        weight=9,
        severity=Severity.CRITICAL,
        description="Unwanted surveillance and harassment - serious safety concern",
    ),
    AbuseCategory(
        name="sexual",
        keywords=(
            "forced me", "didn't want to", "said no but", "sexual coercion",
            "pressured for sex", "guilted into", "ignored my no", "wouldn't stop",
            "sexual assault", "raped", "violated", "unwanted touching",
            "didn't consent", "made me do",
        ),
        weight=10,
        severity=Severity.CRITICAL,
        description="Sexual violence or coercion - criminal behavior requiring immediate help",
    ),
)

ABUSE_BY_NAME: Mapping[str, AbuseCategory] = MappingProxyType(
    {c.name: c for c in ABUSE_CATEGORIES}
)


# ============================================================
# SAFETY ENGINE: DANGER & HEALTH SIGNALS
# ============================================================

# First-person fear and escalation statements
DANGER_PHRASES: tuple[str, ...] = (
    "afraid of them",
    "fear for my safety",
    "scared of what they'll do",
    "threatened to kill",
    "threatened suicide",
    "afraid to leave",
    "worried about retaliation",
    "escalating violence",
    "getting worse",
    "more frequent",
    "more intense",
)

# Danger phrases that mark an escalating trajectory
ESCALATION_MARKERS: tuple[str, ...] = ("escalating", "getting worse")

# Counterweights: each present indicator lowers the safety score
HEALTHY_INDICATORS: tuple[str, ...] = (
    "respects my boundaries",
    "listens to me",
    "supports my",
    "encourages me",
    "apologizes",
    "takes responsibility",
    "works together",
    "compromise",
    "mutual respect",
    "feels safe",
)


def describe() -> dict:
    """Summarize lexicon sizes and weights. Used by GET /lexicon."""
    return {
        "core_version": CORE_VERSION,
        "document": {
            "sincerity": {
                "high": len(SINCERITY.high),
                "medium": len(SINCERITY.medium),
                "low": len(SINCERITY.low),
            },
            "empathy": {
                "high": len(EMPATHY.high),
                "medium": len(EMPATHY.medium),
                "low": len(EMPATHY.low),
            },
            "sentiment": {
                "positive": len(POSITIVE_WORDS),
                "negative": len(NEGATIVE_WORDS),
            },
            "red_flags": {k: len(v) for k, v in RED_FLAG_PHRASES.items()},
            "impact_phrases": len(IMPACT_PHRASES),
            "phases": [
                {"name": p.name, "keywords": list(p.keywords)} for p in REPAIR_PHASES
            ],
        },
        "safety": {
            "abuse_patterns": [
                {
                    "name": c.name,
                    "weight": c.weight,
                    "severity": c.severity.value,
                    "keywords": len(c.keywords),
                    "description": c.description,
                }
                for c in ABUSE_CATEGORIES
            ],
            "danger_phrases": len(DANGER_PHRASES),
            "healthy_indicators": len(HEALTHY_INDICATORS),
        },
    }
