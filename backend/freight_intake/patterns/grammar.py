"""
Named, locale-aware grammar rules for dimensions and routes.

Each rule is an independent value (name, locale, compiled pattern, parser) so
it can be tested on its own. Rules are tried in list order and the first one
that yields a result wins.
"""

import re
from dataclasses import dataclass
from typing import Callable

from freight_intake.patterns.normalizers import canonical_length_unit, parse_number

NUM = r"(\d+(?:[.,]\d+)?)"
UNIT = r"((?:mm|cm|mtrs?|meters?|metres?|m|ft|feet|inch(?:es)?|in|'|\")(?![A-Za-z]))"
SEP = r"\s*[x×X*]\s*"

# Capitalized place: up to four words, optional ", Country"
PLACE = (
    r"([A-ZÀ-Þ][\w'\-]*(?:[ \t]+[A-ZÀ-Þ][\w'\-]*){0,3}"
    r"(?:,[ \t]*[A-ZÀ-Þ][\w'\-]*(?:[ \t]+[A-ZÀ-Þ][\w'\-]*){0,2})?)"
)


@dataclass(frozen=True)
class GrammarRule:
    name: str
    locale: str
    pattern: re.Pattern
    parse: Callable[[re.Match], dict | None]

    def apply(self, text: str) -> dict | None:
        """First successful parse of this rule over text."""
        for match in self.pattern.finditer(text or ""):
            result = self.parse(match)
            if result:
                result["rule"] = self.name
                return result
        return None

    def apply_all(self, text: str) -> list[dict]:
        results = []
        for match in self.pattern.finditer(text or ""):
            result = self.parse(match)
            if result:
                result["rule"] = self.name
                results.append(result)
        return results


# --- Dimensions ---


def infer_length_unit(values: list[float]) -> str:
    """Guess a unit for bare numbers from their magnitude."""
    largest = max(values)
    if largest > 1000:
        return "mm"
    if largest > 30:
        return "cm"
    return "m"


def _triple(raw_values: list[str], raw_units: list[str | None]) -> dict | None:
    grouped = [canonical_length_unit(u) == "mm" for u in raw_units]
    values = [parse_number(v, grouped_thousands=g) for v, g in zip(raw_values, grouped)]
    if any(v is None for v in values):
        return None
    units = [canonical_length_unit(u) for u in raw_units]
    # A single trailing unit applies to every value
    known = [u for u in units if u]
    fallback = known[-1] if known else infer_length_unit(values)
    units = [u or fallback for u in units]
    return {
        "length": values[0], "width": values[1], "height": values[2],
        "units": units,
    }


def _parse_combined(match: re.Match) -> dict | None:
    g = match.groups()
    return _triple([g[0], g[2], g[4]], [g[1], g[3], g[5]])


def _parse_worded(match: re.Match) -> dict | None:
    g = match.groups()
    return _triple([g[0], g[2], g[4]], [g[1], g[3], g[5]])


def _parse_letters(match: re.Match) -> dict | None:
    g = match.groups()
    return _triple([g[0], g[2], g[4]], [g[1], g[3], g[5]])


COMBINED_DIMENSIONS = GrammarRule(
    name="combined_lxwxh",
    locale="any",
    pattern=re.compile(NUM + r"\s*" + UNIT + "?" + SEP + NUM + r"\s*" + UNIT + "?" + SEP + NUM + r"\s*" + UNIT + r"?(?![\d])"),
    parse=_parse_combined,
)

GERMAN_WORDED_DIMENSIONS = GrammarRule(
    name="german_lang_breit_hoch",
    locale="de",
    pattern=re.compile(
        NUM + r"\s*" + UNIT + r"?\s*lang\W+" + NUM + r"\s*" + UNIT + r"?\s*breit\W+" + NUM + r"\s*" + UNIT + r"?\s*hoch",
        re.IGNORECASE,
    ),
    parse=_parse_worded,
)

ENGLISH_WORDED_DIMENSIONS = GrammarRule(
    name="english_long_wide_high",
    locale="en",
    pattern=re.compile(
        NUM + r"\s*" + UNIT + r"?\s*long\W+" + NUM + r"\s*" + UNIT + r"?\s*wide\W+" + NUM + r"\s*" + UNIT + r"?\s*(?:high|tall)",
        re.IGNORECASE,
    ),
    parse=_parse_worded,
)

LETTER_DIMENSIONS = GrammarRule(
    name="letter_l_w_h",
    locale="any",
    pattern=re.compile(
        r"\bL\s*[:=]?\s*" + NUM + r"\s*" + UNIT + r"?[\s,;/]+(?:W|B)\s*[:=]?\s*" + NUM + r"\s*" + UNIT
        + r"?[\s,;/]+H\s*[:=]?\s*" + NUM + r"\s*" + UNIT + r"?"
    ),
    parse=_parse_letters,
)

# Combined expressions, tried before individually labeled fields
COMBINED_DIMENSION_RULES = [
    GERMAN_WORDED_DIMENSIONS,
    ENGLISH_WORDED_DIMENSIONS,
    LETTER_DIMENSIONS,
    COMBINED_DIMENSIONS,
]

LABELS = {
    "length": r"(?:length|lengte|l(?:ä|ae)nge|longueur|long)",
    "width": r"(?:width|breedte|breite|largeur|wide)",
    "height": r"(?:height|hoogte|h(?:ö|oe)he|hauteur|high)",
}


def _labeled_pattern(label: str) -> re.Pattern:
    return re.compile(LABELS[label] + r"\s*[:=\-]?\s*" + NUM + r"\s*" + UNIT + "?", re.IGNORECASE)


LABELED_DIMENSION_PATTERNS = {key: _labeled_pattern(key) for key in LABELS}


def parse_labeled_dimensions(text: str) -> dict | None:
    """Individually labeled length/width/height fields, all three required."""
    raw_values, raw_units = [], []
    for key in ("length", "width", "height"):
        match = LABELED_DIMENSION_PATTERNS[key].search(text or "")
        if not match:
            return None
        raw_values.append(match.group(1))
        raw_units.append(match.group(2))
    result = _triple(raw_values, raw_units)
    if result:
        result["rule"] = "labeled_fields"
    return result


# --- Routes ---


def _route(match: re.Match) -> dict | None:
    origin, destination = match.group(1), match.group(2)
    alternative = match.group(3) if match.lastindex and match.lastindex >= 3 else None
    if not origin or not destination or origin.strip() == destination.strip():
        return None
    result = {"origin": origin.strip(), "destination": destination.strip()}
    if alternative:
        result["destination_options"] = [destination.strip(), alternative.strip()]
    return result


ENGLISH_ROUTE = GrammarRule(
    name="english_from_to",
    locale="en",
    pattern=re.compile(r"(?i:\bfrom)\s+" + PLACE + r"\s+(?i:to)\s+" + PLACE + r"(?:\s+(?i:or)\s+" + PLACE + r")?"),
    parse=_route,
)

GERMAN_ROUTE = GrammarRule(
    name="german_ab_nach",
    locale="de",
    pattern=re.compile(r"(?i:\b(?:ab|von))\s+" + PLACE + r"\s+(?i:nach)\s+" + PLACE + r"(?:\s+(?i:oder)\s+" + PLACE + r")?"),
    parse=_route,
)

FRENCH_ROUTE = GrammarRule(
    name="french_de_vers",
    locale="fr",
    pattern=re.compile(r"(?i:\b(?:de|depuis))\s+" + PLACE + r"\s+(?i:vers|pour|(?:à|a)\s+destination\s+de|(?:à|a))\s+" + PLACE + r"(?:\s+(?i:ou)\s+" + PLACE + r")?"),
    parse=_route,
)

DUTCH_ROUTE = GrammarRule(
    name="dutch_van_naar",
    locale="nl",
    pattern=re.compile(r"(?i:\bvan(?:af)?)\s+" + PLACE + r"\s+(?i:naar)\s+" + PLACE + r"(?:\s+(?i:of)\s+" + PLACE + r")?"),
    parse=_route,
)

ARROW_ROUTE = GrammarRule(
    name="arrow",
    locale="any",
    pattern=re.compile(PLACE + r"\s*(?:->|→|=>|–>|—>)\s*" + PLACE),
    parse=_route,
)

ROUTE_RULES = [ENGLISH_ROUTE, GERMAN_ROUTE, DUTCH_ROUTE, FRENCH_ROUTE, ARROW_ROUTE]
