"""
Multi-source merge with confidence weighting.

Sources are processed in confidence-descending order and each attribute takes
the first non-blank value it sees. A filled attribute is never overwritten, so
adding a lower-confidence source can only fill gaps.
"""

import enum
from dataclasses import dataclass, field

from freight_intake.mapping.paths import is_blank


class SourceOrigin(str, enum.Enum):
    """Where an extracted value came from, in descending trust order."""

    STRUCTURED_DATA = "structured_data"
    METADATA = "metadata"
    CONTENT_PATTERNS = "content_patterns"
    DATABASE = "database"
    MESSAGES = "messages"


DEFAULT_CONFIDENCE = {
    SourceOrigin.STRUCTURED_DATA: 0.95,
    SourceOrigin.METADATA: 0.9,
    SourceOrigin.CONTENT_PATTERNS: 0.7,
    SourceOrigin.DATABASE: 0.65,
    SourceOrigin.MESSAGES: 0.6,
}


@dataclass
class ExtractionSource:
    origin: SourceOrigin
    value: dict
    confidence: float = 0.0

    def __post_init__(self):
        if not self.confidence:
            self.confidence = DEFAULT_CONFIDENCE[self.origin]
        self.confidence = clamp(self.confidence)


@dataclass
class ExtractionContext:
    """Everything an extractor may read for one document."""

    text: str = ""
    structured_data: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)  # protocol headers (from, subject, ...)
    messages: list[dict] = field(default_factory=list)  # [{"from": str, "content": str}]
    document_id: str | None = None
    structured_confidence: float = 0.0  # 0 means the structured_data default


@dataclass
class SectionResult:
    """Merged output for one semantic domain (contact, vehicle, ...)."""

    data: dict = field(default_factory=dict)
    confidence: float = 0.0
    provenance: dict[str, str] = field(default_factory=dict)
    field_confidence: dict[str, float] = field(default_factory=dict)
    validation: dict = field(default_factory=lambda: {"valid": True, "errors": [], "warnings": []})

    @property
    def is_empty(self) -> bool:
        return not self.data


def clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def merge_sources(sources: list[ExtractionSource], expected_fields: list[str]) -> SectionResult:
    """Fill-if-empty merge in confidence-descending order.

    Args:
        sources: Candidate values from each origin.
        expected_fields: Attributes used for the completeness fraction.

    Returns:
        SectionResult with confidence = avg(contributing source confidence) x completeness.
    """
    ordered = sorted(sources, key=lambda s: s.confidence, reverse=True)
    result = SectionResult()
    contributing: list[float] = []

    for source in ordered:
        contributed = False
        for key, value in source.value.items():
            if is_blank(value) or not is_blank(result.data.get(key)):
                continue
            result.data[key] = value
            result.provenance[key] = source.origin.value
            result.field_confidence[key] = source.confidence
            contributed = True
        if contributed:
            contributing.append(source.confidence)

    if not contributing:
        return result

    average = sum(contributing) / len(contributing)
    if expected_fields:
        filled = sum(1 for f in expected_fields if not is_blank(result.data.get(f)))
        completeness = filled / len(expected_fields)
    else:
        completeness = 1.0
    result.confidence = round(clamp(average * completeness), 4)
    return result
