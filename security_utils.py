"""PII redaction for text that leaves the process (fallback agent prompts)."""

import re
from typing import Dict, List, Pattern

from models import ConversationTurn

# Applied in order; card and SIN numbers before phones so they are not half-matched.
# Employee identifiers (AC + 5 digits) never match any of these.
PII_PATTERNS: Dict[str, Pattern[str]] = {
    "EMAIL": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    "CREDIT_CARD": re.compile(r"\b(?:\d{4}[- ]){3}\d{4}\b|\b\d{16}\b"),
    "SIN": re.compile(r"\b\d{3}[- ]\d{3}[- ]\d{3}\b"),
    "PHONE": re.compile(
        r"(?:\+?1[-. ]?)?\(?\b\d{3}\)?[-. ]?\d{3}[-. ]\d{4}\b|\b\d{3}[-. ]\d{4}\b"
    ),
}


def redact(text: str) -> str:
    """Replace PII with ``[<TYPE>_REDACTED]`` placeholders."""
    if not text:
        return text
    for pii_type, pattern in PII_PATTERNS.items():
        text = pattern.sub(f"[{pii_type}_REDACTED]", text)
    return text


def redact_turns(turns: List[ConversationTurn]) -> List[ConversationTurn]:
    return [turn.model_copy(update={"text": redact(turn.text)}) for turn in turns]
