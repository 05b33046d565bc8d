"""
Keyword-anchored date extraction.

A date is only assigned to a role (pickup, delivery, ETD, ETA) when it appears
inside a bounded window after a recognized keyword. Dates without a keyword
window are dropped rather than guessed.
"""

import re
from datetime import date

from freight_intake.field_extraction.base import FieldExtractor

WINDOW_CHARS = 50

KEYWORDS = {
    "pickup_date": r"pick[\s\-]?up|collection|abholung|enl(?:è|e)vement|ophalen|ready\s+(?:for\s+loading|on)",
    "delivery_date": r"delivery|deliver\s+by|lieferung|livraison|levering",
    "etd": r"\bETD\b|departure|sailing|abfahrt|d(?:é|e)part|vertrek",
    "eta": r"\bETA\b|arrival|ankunft|arriv(?:é|e)e|aankomst",
}

KEYWORD_PATTERNS = {role: re.compile(pattern, re.IGNORECASE) for role, pattern in KEYWORDS.items()}

MONTHS = {
    "jan": 1, "january": 1, "januar": 1, "janvier": 1, "januari": 1,
    "feb": 2, "february": 2, "februar": 2, "février": 2, "fevrier": 2, "februari": 2,
    "mar": 3, "march": 3, "märz": 3, "maerz": 3, "mars": 3, "maart": 3,
    "apr": 4, "april": 4, "avril": 4,
    "may": 5, "mai": 5, "mei": 5,
    "jun": 6, "june": 6, "juni": 6, "juin": 6,
    "jul": 7, "july": 7, "juli": 7, "juillet": 7,
    "aug": 8, "august": 8, "août": 8, "aout": 8, "augustus": 8,
    "sep": 9, "sept": 9, "september": 9, "septembre": 9,
    "oct": 10, "october": 10, "oktober": 10, "octobre": 10, "okt": 10,
    "nov": 11, "november": 11, "novembre": 11,
    "dec": 12, "december": 12, "dezember": 12, "décembre": 12, "decembre": 12, "dez": 12,
}

DMY = re.compile(r"\b(\d{1,2})[./\-](\d{1,2})[./\-](\d{4}|\d{2})\b")
YMD = re.compile(r"\b(\d{4})[./\-](\d{1,2})[./\-](\d{1,2})\b")
TEXTUAL_DAY_FIRST = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th|\.)?\s+([A-Za-zÀ-ÿ]{3,9})\.?,?\s+(\d{4})\b")
TEXTUAL_MONTH_FIRST = re.compile(r"\b([A-Za-zÀ-ÿ]{3,9})\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})\b")


def parse_date(text: str) -> date | None:
    """Try D/M/Y, then Y/M/D, then textual month. Earliest match in text wins per format."""
    match = DMY.search(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        if year < 100:
            year += 2000
        parsed = _safe_date(year, month, day)
        if parsed:
            return parsed

    match = YMD.search(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        parsed = _safe_date(year, month, day)
        if parsed:
            return parsed

    match = TEXTUAL_DAY_FIRST.search(text)
    if match:
        month = MONTHS.get(match.group(2).lower())
        if month:
            parsed = _safe_date(int(match.group(3)), month, int(match.group(1)))
            if parsed:
                return parsed

    match = TEXTUAL_MONTH_FIRST.search(text)
    if match:
        month = MONTHS.get(match.group(1).lower())
        if month:
            return _safe_date(int(match.group(3)), month, int(match.group(2)))
    return None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def dates_in_keyword_windows(text: str) -> dict[str, str]:
    """Role -> ISO date for every role whose keyword window holds a date."""
    found: dict[str, str] = {}
    for role, pattern in KEYWORD_PATTERNS.items():
        for keyword in pattern.finditer(text or ""):
            window = text[keyword.end():keyword.end() + WINDOW_CHARS]
            parsed = parse_date(window)
            if parsed:
                found[role] = parsed.isoformat()
                break
    return found


class DateExtractor(FieldExtractor):
    section = "dates"
    expected_fields = ["pickup_date", "delivery_date", "etd", "eta"]
    structured_keys = ("dates", "schedule")

    def from_structured(self, data: dict) -> dict:
        value = {}
        for role in KEYWORDS:
            raw = data.get(role)
            if not raw:
                continue
            parsed = parse_date(str(raw))
            if parsed:
                value[role] = parsed.isoformat()
        return value

    def from_text(self, text: str) -> dict:
        return dates_in_keyword_windows(text)
