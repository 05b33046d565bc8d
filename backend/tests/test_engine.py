"""Tests for the field extraction engine and enhancement heuristics."""

from conftest import QUOTE_EMAIL_BODY
from freight_intake.field_extraction.engine import (
    FIELD_WEIGHTS,
    missing_critical_fields,
    needs_enhancement,
    weighted_confidence,
)
from freight_intake.field_extraction.sources import ExtractionContext, SectionResult

HEADERS = {
    "from": '"Jan Peeters" <jan.peeters@acme-logistics.be>',
    "subject": "Quote request BMW 7 Series",
    "date": "Mon, 03 Mar 2025 10:00:00 +0100",
}


class TestEngine:
    def test_quote_email_tree(self, engine):
        data, metadata = engine.extract(ExtractionContext(
            text=QUOTE_EMAIL_BODY, metadata=HEADERS, document_id="doc-1",
        ))
        assert data["contact"]["email"] == "jan.peeters@acme-logistics.be"
        assert data["vehicle"]["brand"] == "BMW"
        assert data["vehicle"]["model"] == "7 Series"
        assert data["shipment"]["origin"] == "Antwerp"
        assert data["shipment"]["destination"] == "Lagos"
        assert data["dates"]["pickup_date"] == "2025-03-15"
        assert data["cargo"]["description"] == "BMW 7 Series 2019"
        assert data["document"] == {
            "id": "doc-1",
            "subject": "Quote request BMW 7 Series",
            "from": HEADERS["from"],
            "date": HEADERS["date"],
        }
        assert metadata["missing_critical_fields"] == []
        assert metadata["sections"]["contact"]["confidence"] == 0.8
        assert metadata["sections"]["vehicle"]["provenance"]["brand"] == "metadata"
        assert 0 < metadata["overall_confidence"] <= 1
        assert not needs_enhancement(data, metadata, 0.7)

    def test_weak_email_needs_enhancement(self, engine):
        data, metadata = engine.extract(ExtractionContext(
            text="Hello, can you give me a price for shipping my car to Lagos?\n\nThanks,\nMarie Dubois",
        ))
        assert data["contact"]["name"] == "Marie Dubois"
        assert "vehicle.brand" in metadata["missing_critical_fields"]
        assert "contact.email" in metadata["missing_critical_fields"]
        assert needs_enhancement(data, metadata, 0.7)

    def test_messages_are_a_low_trust_source(self, engine):
        data, metadata = engine.extract(ExtractionContext(
            text="Any update on my request?",
            messages=[{"from": "jan.peeters@acme-logistics.be", "content": "Ship from Antwerp to Lagos please"}],
        ))
        assert data["shipment"]["origin"] == "Antwerp"
        assert metadata["sections"]["shipment"]["provenance"]["origin"] == "messages"
        assert data["messages"][0]["content"].startswith("Ship from")

    def test_empty_context(self, engine):
        data, metadata = engine.extract(ExtractionContext())
        assert data["contact"] == {}
        assert data["document"] == {}
        assert metadata["overall_confidence"] == 0.0


class TestHeuristics:
    def test_weighted_confidence(self):
        sections = {
            "vehicle": SectionResult(data={"vin": "WBA7E2C51KG123456"}, field_confidence={"vin": 1.0}),
        }
        assert weighted_confidence(sections) == round(FIELD_WEIGHTS["vehicle.vin"] / sum(FIELD_WEIGHTS.values()), 4)

    def test_missing_critical_fields(self):
        data = {"vehicle": {"brand": "BMW", "model": "7 Series", "dimensions": {"length_m": 5.12}},
                "shipment": {"origin": "Antwerp", "destination": ""},
                "contact": {"email": "jan@acme-logistics.be"}}
        assert missing_critical_fields(data) == ["shipment.destination"]

    def test_needs_enhancement_when_all_sections_weak(self):
        metadata = {"sections": {"contact": {"confidence": 0.3}}, "missing_critical_fields": []}
        assert needs_enhancement({}, metadata, 0.7)

    def test_identified_vehicle_without_dimensions(self):
        metadata = {"sections": {"vehicle": {"confidence": 0.9}}, "missing_critical_fields": []}
        assert needs_enhancement({"vehicle": {"brand": "BMW"}}, metadata, 0.7)
        complete = {"vehicle": {"brand": "BMW", "dimensions": {"length_m": 5.12}}}
        assert not needs_enhancement(complete, metadata, 0.7)

    def test_no_sections(self):
        assert needs_enhancement({}, {}, 0.7)
