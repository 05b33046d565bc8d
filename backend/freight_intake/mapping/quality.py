"""
Quality report for a mapped record.

Pure functions, no I/O. The score lets a reviewer triage low-confidence
documents before they are forwarded downstream.
"""

from freight_intake.mapping.paths import is_blank

COMPLETENESS_WEIGHT = 0.6
CONFIDENCE_WEIGHT = 0.4
ERROR_PENALTY = 10
WARNING_PENALTY = 2


def build_quality_report(
    record: dict,
    required_fields: list[str],
    confidence: float,
    extraction_metadata: dict | None = None,
    mapping_warnings: list[str] | None = None,
    error: str | None = None,
) -> dict:
    """Build {errors, warnings, score 0-100, completeness, confidence}.

    Args:
        record: Mapped target record.
        required_fields: Target fields that must be filled.
        confidence: Overall extraction confidence in [0, 1].
        extraction_metadata: Field-engine metadata (section validation, missing critical fields).
        mapping_warnings: Validation failures recorded by the mapper.
        error: Record-level extraction error, if the strategy failed.
    """
    extraction_metadata = extraction_metadata or {}
    errors: list[str] = []
    warnings: list[str] = list(mapping_warnings or [])

    if error:
        errors.append(error)

    missing = [f for f in required_fields if is_blank(record.get(f))]
    errors.extend(f"Missing required field: {f}" for f in missing)

    for section, info in extraction_metadata.get("sections", {}).items():
        validation = info.get("validation") or {}
        errors.extend(f"{section}: {e}" for e in validation.get("errors", []))
        warnings.extend(f"{section}: {w}" for w in validation.get("warnings", []))

    for path in extraction_metadata.get("missing_critical_fields", []):
        warnings.append(f"Critical field not extracted: {path}")

    for note in extraction_metadata.get("notes", []):
        warnings.append(note)

    if required_fields:
        completeness = (len(required_fields) - len(missing)) / len(required_fields)
    else:
        filled = [k for k, v in record.items() if k not in ("formatted_at", "mapping_version") and not is_blank(v)]
        total = max(len(record) - 2, 1)
        completeness = len(filled) / total

    warnings = _dedupe(warnings)
    confidence = max(0.0, min(1.0, confidence))
    score = 100 * (COMPLETENESS_WEIGHT * completeness + CONFIDENCE_WEIGHT * confidence)
    score -= ERROR_PENALTY * len(errors) + WARNING_PENALTY * len(warnings)

    return {
        "errors": errors,
        "warnings": warnings,
        "score": int(round(max(0.0, min(100.0, score)))),
        "completeness": round(completeness, 3),
        "confidence": round(confidence, 3),
    }


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out
