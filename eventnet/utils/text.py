"""Text normalization helpers shared by intake, indexing and retrieval."""

from __future__ import annotations

import re
from typing import Optional

# Pictographic ranges: emoticons, symbols & pictographs, transport, misc symbols, dingbats,
# supplemental symbols, plus variation selectors and zero-width joiners left behind.
_PICTOGRAPHS = re.compile(
    "["
    "\U0001F300-\U0001F5FF"
    "\U0001F600-\U0001F64F"
    "\U0001F680-\U0001F6FF"
    "\U0001F900-\U0001F9FF"
    "\U0001FA70-\U0001FAFF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "\uFE0F\u200D"
    "]"
)
_WHITESPACE = re.compile(r"\s+")
# Digit runs with optional separators; only runs of 7+ digits are treated as phone numbers.
_PHONE_CANDIDATE = re.compile(r"\+?\d[\d\s()./\-]{5,}\d")
_MIN_PHONE_DIGITS = 7


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Reduce a phone number to digits only; ``None`` when no digits remain."""

    if not value:
        return None
    digits = re.sub(r"\D", "", str(value))
    return digits or None


def normalize_email(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    email = str(value).strip().lower()
    return email or None


def redact_phone_numbers(text: str, *known: Optional[str]) -> str:
    """Remove phone-number-like digit runs and any known numbers from free text."""

    if not text:
        return ""

    def _replace(match: re.Match) -> str:
        digits = re.sub(r"\D", "", match.group(0))
        return " " if len(digits) >= _MIN_PHONE_DIGITS else match.group(0)

    cleaned = _PHONE_CANDIDATE.sub(_replace, text)
    for number in known:
        if number:
            cleaned = cleaned.replace(number, " ")
    return cleaned


def clean_text_for_embedding(text: str) -> str:
    """Strip pictographs, collapse whitespace runs and trim."""

    if not text:
        return ""
    text = _PICTOGRAPHS.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def snippet(text: str, length: int) -> str:
    return f"{text[:length]}..."
