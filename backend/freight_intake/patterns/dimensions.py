"""
Dimension and weight recovery with a plausibility envelope.

Fallback chain: combined L x W x H expressions (all locale variants) first,
then individually labeled fields, else nothing. Every candidate triple is
converted to meters and must fall inside the envelope before it is accepted.
"""

import logging
import re

from freight_intake.patterns.grammar import COMBINED_DIMENSION_RULES, parse_labeled_dimensions
from freight_intake.patterns.normalizers import canonical_weight_unit, parse_number, to_kilograms, to_meters

logger = logging.getLogger("freight.patterns")

# (min, max) in meters
PLAUSIBILITY_ENVELOPE = {
    "length_m": (2.0, 15.0),
    "width_m": (1.0, 4.0),
    "height_m": (0.8, 4.0),
}

WEIGHT_PATTERN = re.compile(
    r"(\d{1,3}(?:[.,]\d{3})+|\d+(?:[.,]\d+)?)\s*(kgs?|kilos?|kilograms?|lbs?|pounds?|t|tons?|tonnes?)(?![A-Za-z])",
    re.IGNORECASE,
)

# Plausible cargo weight in kg
WEIGHT_RANGE_KG = (50.0, 100_000.0)


def within_envelope(dimensions: dict | None) -> bool:
    """True only when all three measurements fall inside the envelope."""
    if not dimensions:
        return False
    for key, (low, high) in PLAUSIBILITY_ENVELOPE.items():
        value = dimensions.get(key)
        if not isinstance(value, (int, float)) or not low <= value <= high:
            return False
    return True


def to_metric_triple(candidate: dict) -> dict | None:
    """Convert a parsed grammar candidate into {length_m, width_m, height_m}."""
    units = candidate.get("units") or ["m", "m", "m"]
    converted = {
        "length_m": to_meters(candidate["length"], units[0]),
        "width_m": to_meters(candidate["width"], units[1]),
        "height_m": to_meters(candidate["height"], units[2]),
    }
    if any(v is None for v in converted.values()):
        return None
    return converted


def extract_dimensions(text: str) -> dict | None:
    """Recover a plausible dimension triple from free text.

    Returns:
        {"length_m", "width_m", "height_m", "volume_m3", "rule"} or None.
    """
    if not text:
        return None

    for rule in COMBINED_DIMENSION_RULES:
        for candidate in rule.apply_all(text):
            accepted = _accept(candidate)
            if accepted:
                return accepted

    labeled = parse_labeled_dimensions(text)
    if labeled:
        accepted = _accept(labeled)
        if accepted:
            return accepted

    return None


def _accept(candidate: dict) -> dict | None:
    metric = to_metric_triple(candidate)
    if metric is None:
        return None
    if not within_envelope(metric):
        logger.debug("Rejected implausible dimensions %s (rule=%s)", metric, candidate.get("rule"))
        return None
    metric["volume_m3"] = round(metric["length_m"] * metric["width_m"] * metric["height_m"], 3)
    metric["rule"] = candidate.get("rule")
    return metric


def parse_weight(text: str) -> float | None:
    """First plausible weight in text, in kilograms.

    "/ 18.750 kg" -> 18750.0, "18,75 t" -> 18750.0, "3500 lbs" -> 1587.57.
    """
    for match in WEIGHT_PATTERN.finditer(text or ""):
        unit = canonical_weight_unit(match.group(2))
        # Thousands grouping only makes sense for kg/lb figures
        value = parse_number(match.group(1), grouped_thousands=unit != "t")
        if value is None or unit is None:
            continue
        kilograms = to_kilograms(value, unit)
        if kilograms is not None and WEIGHT_RANGE_KG[0] <= kilograms <= WEIGHT_RANGE_KG[1]:
            return kilograms
    return None


def parse_dimension_string(value: str) -> dict | None:
    """Parse an already-formatted dimension string without the envelope check."""
    for rule in COMBINED_DIMENSION_RULES:
        candidate = rule.apply(value or "")
        if candidate:
            return to_metric_triple(candidate)
    labeled = parse_labeled_dimensions(value or "")
    return to_metric_triple(labeled) if labeled else None
