"""
RepairCheck — Apology Quality and Relationship Safety Analysis

Deterministic lexical engines for the REPAIR Protocol.

Public API:
  - document_core:   Apology quality engine (sentiment, sincerity,
                     empathy, completeness, red flags)
  - safety_core:     Abuse-pattern and risk engine (score, level,
                     REPAIR vs LIBERATE protocol, crisis resources)
  - review_document: Quality report + optional AI second opinion
  - review_safety:   Safety report + optional AI second opinion
  - LLMProvider:     Abstract LLM interface for provider swapping

Usage:
    from repaircheck import document_core, safety_core
    report = document_core.analyze(text)
    report.to_dict()
"""

__version__ = "1.0.0"

from repaircheck.lexicon import CORE_VERSION
from repaircheck.models import (
    Priority,
    Protocol,
    QualityReport,
    SafetyLevel,
    SafetyReport,
    Severity,
)
from repaircheck.document_core import DocumentCore, document_core
from repaircheck.safety_core import SafetyCore, safety_core
from repaircheck.reviewer import review_document, review_safety
from repaircheck.llm import ChatResponse, LLMProvider
from repaircheck.llm.factory import get_provider

__all__ = [
    "CORE_VERSION",
    "Priority",
    "Protocol",
    "QualityReport",
    "SafetyLevel",
    "SafetyReport",
    "Severity",
    "DocumentCore",
    "document_core",
    "SafetyCore",
    "safety_core",
    "review_document",
    "review_safety",
    "ChatResponse",
    "LLMProvider",
    "get_provider",
]
