"""
Lexical analysis of employee utterances: entity extraction and intent
classification. Everything here is best-effort and never raises; anything
that does not match is simply absent.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple, Union

from models import (
    ExtractedEntities,
    GENERAL_INQUIRY_INTENT,
    IntentCategory,
    Transcript,
    VACATION_INTENT,
)

EMPLOYEE_ID_PATTERN = re.compile(r"[A-Za-z]{2}\d{5}")
HOURS_PATTERN = re.compile(r"(\d+)\s*(?:hours?|heures?|h)\b", re.IGNORECASE)
# Day count must sit next to a "remaining" word, at most two words apart on each side
DAYS_PATTERN = re.compile(
    r"(\d+)\s*(?:[^\W\d]+\s+){0,2}?(?:days?|jours?)\s+(?:[^\W\d]+\s+){0,2}?"
    r"(?:remaining|left|available|restants?|disponibles?)\b",
    re.IGNORECASE,
)
OT_USAGE_PATTERN = re.compile(r"(\d+)\s*/\s*12\b")

# Priority order matters: first matching family wins.
INTENT_RULES: List[Tuple[Pattern[str], IntentCategory]] = [
    (
        re.compile(r"\b(?:sick|ill|unwell|malade|maladie)\b", re.IGNORECASE),
        IntentCategory.SICK_LEAVE,
    ),
    (
        re.compile(
            r"overtime|heures?\s+sup|\bot\b|extra\s+hours|\d+\s*h(?:ours?)?\b|\d+\s*heures?\b",
            re.IGNORECASE,
        ),
        IntentCategory.OVERTIME_REQUEST,
    ),
    (
        re.compile(r"training|formation|reschedul", re.IGNORECASE),
        IntentCategory.TRAINING_RESCHEDULE,
    ),
    (
        re.compile(r"balance|solde|remaining|how\s+many|\bleft\b|combien|restant", re.IGNORECASE),
        IntentCategory.BALANCE_QUERY,
    ),
]

# Whole-transcript re-scan used when a conversation ends without a final turn
TRANSCRIPT_INTENT_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    (
        IntentCategory.SICK_LEAVE.value,
        ("sick leave", "sick day", "appeler malade", "congé de maladie"),
    ),
    (
        IntentCategory.OVERTIME_REQUEST.value,
        ("overtime", "heures supplémentaires", " ot "),
    ),
    (
        IntentCategory.TRAINING_RESCHEDULE.value,
        ("training", "reschedule", "formation"),
    ),
    (VACATION_INTENT, ("vacation", "time off", "vacances")),
]


@dataclass
class QueryAnalysis:
    """Result of analysing one utterance."""
    intent: Optional[IntentCategory]
    entities: ExtractedEntities


def _first_int(pattern: Pattern[str], text: str) -> Optional[int]:
    match = pattern.search(text or "")
    return int(match.group(1)) if match else None


def extract_employee_id(text: str) -> Optional[str]:
    match = EMPLOYEE_ID_PATTERN.search(text or "")
    return match.group(0).upper() if match else None


def extract_entities(text: str) -> ExtractedEntities:
    """
    Pull the employee identifier and hour/day counts out of free text.

    Args:
        text: Raw utterance, spoken or typed, English or French.

    Returns:
        ExtractedEntities with unmatched fields left as None.
    """
    return ExtractedEntities(
        employee_id=extract_employee_id(text),
        hours=_first_int(HOURS_PATTERN, text),
        days=_first_int(DAYS_PATTERN, text),
    )


def extract_ot_usage(text: str) -> Optional[int]:
    """Overtime already used when quoted as ``<n>/12``."""
    return _first_int(OT_USAGE_PATTERN, text)


def classify_intent(text: str) -> Optional[IntentCategory]:
    """Map text to the first matching intent family, or None when nothing matches."""
    if not text:
        return None
    for pattern, intent in INTENT_RULES:
        if pattern.search(text):
            return intent
    return None


def analyze_utterance(text: str) -> QueryAnalysis:
    return QueryAnalysis(intent=classify_intent(text), entities=extract_entities(text))


def scan_transcript_intent(transcript: Union[Transcript, str]) -> str:
    """Keyword re-scan of a whole conversation; falls back to GENERAL_INQUIRY."""
    text = transcript if isinstance(transcript, str) else transcript.joined_text()
    lowered = f" {text.lower()} "
    for intent, keywords in TRANSCRIPT_INTENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return intent
    return GENERAL_INQUIRY_INTENT
