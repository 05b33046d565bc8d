"""
Field extraction engine.

Runs every per-domain extractor over one document context and assembles the
semantic tree handed to the mapper:

  data = {"contact": {...}, "vehicle": {...}, "shipment": {...}, "pricing": {...},
          "dates": {...}, "cargo": {...}, "messages": [...], "document": {...}}

Per-section confidence, provenance and validation go into metadata so the data
tree only ever holds plain values.
"""

import logging

from freight_intake.field_extraction.cargo import CargoExtractor
from freight_intake.field_extraction.contact import ContactExtractor
from freight_intake.field_extraction.dates import DateExtractor
from freight_intake.field_extraction.pricing import PricingExtractor
from freight_intake.field_extraction.shipment import ShipmentExtractor
from freight_intake.field_extraction.sources import ExtractionContext, SectionResult, clamp
from freight_intake.field_extraction.vehicle import VehicleExtractor
from freight_intake.mapping.paths import is_blank, resolve
from freight_intake.patterns.catalog import PatternCatalog, get_default_catalog
from freight_intake.services.vehicle_reference import VehicleReference

logger = logging.getLogger("freight.fields")

FIELD_WEIGHTS = {
    "vehicle.brand": 15,
    "vehicle.model": 15,
    "vehicle.year": 10,
    "vehicle.vin": 20,
    "vehicle.engine_cc": 5,
    "vehicle.fuel_type": 5,
    "vehicle.dimensions": 10,
    "vehicle.weight_kg": 5,
    "contact.email": 10,
    "contact.phone": 5,
    "contact.name": 3,
    "contact.company": 2,
    "shipment.origin": 8,
    "shipment.destination": 8,
    "shipment.shipping_type": 4,
}

CRITICAL_FIELDS = (
    "vehicle.brand",
    "vehicle.model",
    "vehicle.dimensions",
    "shipment.origin",
    "shipment.destination",
    "contact.email",
)


class FieldExtractionEngine:
    """Runs all domain extractors. Stateless apart from read-only catalog/reference."""

    def __init__(self, catalog: PatternCatalog | None = None, reference: VehicleReference | None = None):
        self.catalog = catalog or get_default_catalog()
        self.reference = reference or VehicleReference()
        self.contact = ContactExtractor(self.catalog)
        self.vehicle = VehicleExtractor(self.catalog, self.reference)
        self.shipment = ShipmentExtractor(self.catalog)
        self.pricing = PricingExtractor(self.catalog)
        self.dates = DateExtractor(self.catalog)
        self.cargo = CargoExtractor(self.catalog)

    def extract(self, context: ExtractionContext) -> tuple[dict, dict]:
        """Extract all sections.

        Args:
            context: Text, structured side-channel data, headers and message history.

        Returns:
            (data, metadata) where metadata holds per-section confidence, provenance,
            validation, overall confidence and missing critical fields.
        """
        sections: dict[str, SectionResult] = {
            "contact": self.contact.extract(context),
            "vehicle": self.vehicle.extract(context),
            "shipment": self.shipment.extract(context),
            "pricing": self.pricing.extract(context),
            "dates": self.dates.extract(context),
        }
        sections["cargo"] = self.cargo.extract(context, vehicle=sections["vehicle"].data)

        data = {name: result.data for name, result in sections.items()}
        data["messages"] = list(context.messages)
        data["document"] = {
            k: v for k, v in {
                "id": context.document_id,
                "subject": context.metadata.get("subject"),
                "from": context.metadata.get("from"),
                "date": context.metadata.get("date"),
            }.items() if v
        }

        metadata = {
            "sections": {
                name: {
                    "confidence": result.confidence,
                    "provenance": result.provenance,
                    "validation": result.validation,
                }
                for name, result in sections.items()
            },
            "overall_confidence": weighted_confidence(sections),
            "missing_critical_fields": missing_critical_fields(data),
        }

        logger.info(
            "Field extraction for document %s: confidence %.2f, missing %s",
            context.document_id,
            metadata["overall_confidence"],
            metadata["missing_critical_fields"] or "none",
        )
        return data, metadata


def weighted_confidence(sections: dict[str, SectionResult]) -> float:
    """Weighted average of per-field confidence over FIELD_WEIGHTS. Missing fields count as 0."""
    total = sum(FIELD_WEIGHTS.values())
    score = 0.0
    for path, weight in FIELD_WEIGHTS.items():
        section, key = path.split(".", 1)
        result = sections.get(section)
        if result is None or is_blank(result.data.get(key)):
            continue
        score += weight * result.field_confidence.get(key, result.confidence)
    return round(clamp(score / total), 4)


def missing_critical_fields(data: dict) -> list[str]:
    return [path for path in CRITICAL_FIELDS if is_blank(resolve(data, path))]


def needs_enhancement(data: dict, metadata: dict, threshold: float) -> bool:
    """Whether an AI pass should be requested for this result."""
    confidences = [s["confidence"] for s in metadata.get("sections", {}).values()]
    if not confidences or max(confidences) < threshold:
        return True
    if metadata.get("missing_critical_fields"):
        return True
    vehicle = data.get("vehicle", {})
    return bool((vehicle.get("brand") or vehicle.get("type")) and not vehicle.get("dimensions"))
