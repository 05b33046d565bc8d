"""
Vehicle and equipment extraction.

Equipment types (grader, excavator, forklift, ...) are checked before generic
vehicle detection because they change the downstream cargo category. Brand and
model come from the reference pattern table, most specific pattern first.
"""

import re
from datetime import date

from freight_intake.field_extraction.base import FieldExtractor
from freight_intake.field_extraction.sources import ExtractionContext, ExtractionSource, SourceOrigin
from freight_intake.patterns.catalog import PatternCatalog
from freight_intake.patterns.dimensions import extract_dimensions, parse_weight, within_envelope
from freight_intake.patterns.normalizers import is_valid_vin, parse_number
from freight_intake.services.vehicle_reference import VehicleReference

FUEL_TYPES = {
    "diesel": "diesel",
    "petrol": "petrol",
    "gasoline": "petrol",
    "benzin": "petrol",
    "essence": "petrol",
    "electric": "electric",
    "elektro": "electric",
    "hybrid": "hybrid",
    "lpg": "lpg",
    "cng": "cng",
}

TRANSMISSIONS = {
    "automatic": "automatic",
    "automatik": "automatic",
    "cvt": "automatic",
    "manual": "manual",
    "manuell": "manual",
    "schaltgetriebe": "manual",
}

CONDITIONS = {
    "new": "new",
    "brand new": "new",
    "neu": "new",
    "used": "used",
    "second hand": "used",
    "second-hand": "used",
    "gebraucht": "used",
    "damaged": "damaged",
    "non runner": "non_runner",
    "non-runner": "non_runner",
    "runner": "used",
}

COLORS = {
    "schwarz": "black",
    "weiss": "white",
    "weiß": "white",
    "rot": "red",
    "blau": "blue",
    "gray": "grey",
}

YEAR_LABEL = re.compile(
    r"(?i:\b(?:year|model\s+year|build\s+year|built|baujahr|bj|ann(?:é|e)e|bouwjaar|my))\.?\s*[:\-]?\s*((?:19|20)\d{2})\b"
)

# Model token after a bare brand: "Toyota Hilux", "Caterpillar 140M"
MODEL_AFTER_BRAND = re.compile(r"[\s\-]+([A-Z0-9][\w\-]*(?:[ \t]+[A-Z0-9][\w\-]*)?)")


class VehicleExtractor(FieldExtractor):
    section = "vehicle"
    expected_fields = ["brand", "model", "year", "condition", "dimensions", "weight_kg"]
    structured_keys = ("vehicle", "vehicle_info", "car", "cargo_vehicle")

    def __init__(self, catalog: PatternCatalog | None = None, reference: VehicleReference | None = None):
        super().__init__(catalog)
        self.reference = reference or VehicleReference()
        self._brand_model_patterns = self.reference.get_brand_model_patterns()
        self._brand_patterns = self.reference.get_brand_patterns()

    def collect(self, context: ExtractionContext) -> list[ExtractionSource]:
        sources = super().collect(context)
        merged_hint: dict = {}
        for source in sorted(sources, key=lambda s: s.confidence, reverse=True):
            for key in ("brand", "model", "year", "vin"):
                if not merged_hint.get(key) and source.value.get(key):
                    merged_hint[key] = source.value[key]

        enrichment = self.reference_enrichment(merged_hint)
        if enrichment:
            sources.append(ExtractionSource(SourceOrigin.DATABASE, enrichment))
        return sources

    def reference_enrichment(self, hint: dict) -> dict:
        """Specs from the reference tables for an identified vehicle."""
        value: dict = {}
        decoded = self.reference.decode_vin(hint.get("vin")) if hint.get("vin") else None
        if decoded:
            value["manufacturer"] = decoded.get("manufacturer")
            if decoded.get("manufacturer") and not hint.get("brand"):
                value["brand"] = decoded["manufacturer"]
            if decoded.get("year") and not hint.get("year"):
                value["year"] = decoded["year"]

        record = self.reference.find_vehicle({
            "brand": hint.get("brand") or value.get("brand"),
            "model": hint.get("model"),
            "year": hint.get("year") or value.get("year"),
        })
        if record:
            if record.dimensions and within_envelope(record.dimensions):
                value["dimensions"] = dict(record.dimensions)
            value["weight_kg"] = record.weight_kg
            value["category"] = record.category
        return {k: v for k, v in value.items() if v is not None}

    def from_structured(self, data: dict) -> dict:
        value = {
            "brand": data.get("brand") or data.get("make"),
            "model": data.get("model"),
            "year": _year(data.get("year")),
            "vin": _vin(data.get("vin")),
            "condition": _lookup(CONDITIONS, data.get("condition")),
            "fuel_type": _lookup(FUEL_TYPES, data.get("fuel_type") or data.get("fuel")),
            "transmission": _lookup(TRANSMISSIONS, data.get("transmission")),
            "engine_cc": _int(data.get("engine_cc")),
            "mileage_km": _int(data.get("mileage_km") or data.get("mileage")),
            "color": data.get("color") or data.get("colour"),
            "weight_kg": parse_number(data.get("weight_kg") or data.get("weight")),
            "type": data.get("type"),
            "category": data.get("category"),
        }
        dimensions = data.get("dimensions")
        if isinstance(dimensions, dict) and within_envelope(dimensions):
            value["dimensions"] = {k: dimensions[k] for k in ("length_m", "width_m", "height_m")}
        elif isinstance(dimensions, str):
            value["dimensions"] = extract_dimensions(dimensions)
        return {k: v for k, v in value.items() if v not in (None, "")}

    def from_metadata(self, metadata: dict) -> dict:
        subject = metadata.get("subject")
        if not subject:
            return {}
        return self._identify(subject)

    def from_text(self, text: str) -> dict:
        value = self._identify(text)

        vin = self._find_vin(text)
        if vin:
            value["vin"] = vin

        year = self._find_year(text, value.get("brand"))
        if year:
            value["year"] = year

        match = self.catalog.match("engine_cc", text)
        if match:
            value["engine_cc"] = int(match.group(1))
        else:
            litres = self.catalog.match("engine_litres", text)
            if litres:
                value["engine_cc"] = int(round(float(litres.group(1)) * 1000))

        match = self.catalog.match("mileage", text)
        if match:
            amount = parse_number(match.group(1))
            if amount is not None:
                unit = match.group(2).lower()
                km = amount * 1.609344 if unit.startswith("mi") else amount
                value["mileage_km"] = int(round(km))

        for key, table in (("fuel_type", FUEL_TYPES), ("transmission", TRANSMISSIONS)):
            match = self.catalog.match(key, text)
            if match:
                value[key] = table[match.group(1).lower()]

        match = self.catalog.match("condition", text)
        if match:
            value["condition"] = _lookup(CONDITIONS, match.group(1))
        elif value.get("brand") or value.get("type"):
            value["condition"] = "used"

        match = self.catalog.match("color", text)
        if match:
            color = match.group(1).lower()
            value["color"] = COLORS.get(color, color)

        dimensions = extract_dimensions(text)
        if dimensions:
            value["dimensions"] = {k: dimensions[k] for k in ("length_m", "width_m", "height_m")}

        weight = parse_weight(text)
        if weight:
            value["weight_kg"] = weight

        return value

    def _identify(self, text: str) -> dict:
        """Equipment type first, then brand/model."""
        value: dict = {}
        equipment = self.reference.match_equipment(text)
        if equipment:
            value["type"] = equipment.type
            value["category"] = equipment.category

        for pattern in self._brand_model_patterns:
            if pattern.regex.search(text):
                value["brand"] = pattern.brand
                value["model"] = pattern.model
                return value

        for pattern in self._brand_patterns:
            match = pattern.regex.search(text)
            if match:
                value["brand"] = pattern.brand
                model = MODEL_AFTER_BRAND.match(text, match.end())
                if model and not re.fullmatch(r"(?:19|20)\d{2}", model.group(1)):
                    value["model"] = model.group(1).strip()
                return value
        return value

    def _find_vin(self, text: str) -> str | None:
        for match in self.catalog.match_all("vin", text):
            candidate = match.group(1).upper()
            if is_valid_vin(candidate):
                return candidate
        return None

    def _find_year(self, text: str, brand: str | None) -> int | None:
        """Labeled year first, then a year adjacent to the brand, then any plausible year."""
        labeled = YEAR_LABEL.search(text)
        if labeled and _year(labeled.group(1)):
            return int(labeled.group(1))

        years = [m for m in self.catalog.match_all("year", text) if _year(m.group(1))]
        if not years:
            return None

        if brand:
            for match in years:
                window = text[max(0, match.start() - 40):match.end() + 40].lower()
                if brand.lower() in window:
                    return int(match.group(1))

        for match in years:
            # Skip years that are part of a date
            around = text[max(0, match.start() - 3):match.end() + 3]
            if re.search(r"\d[./\-]\s*" + match.group(1) + r"|" + match.group(1) + r"\s*[./\-]\d", around):
                continue
            return int(match.group(1))
        return None

    def finalize(self, data: dict, context: ExtractionContext) -> dict:
        if data.get("dimensions"):
            dims = data["dimensions"]
            data["dimensions"] = {
                **dims,
                "volume_m3": round(dims["length_m"] * dims["width_m"] * dims["height_m"], 3),
            }
        return data

    def validate(self, data: dict) -> dict:
        errors, warnings = [], []
        if data.get("vin") and not is_valid_vin(data["vin"]):
            errors.append(f"Invalid VIN: {data['vin']}")
        if data.get("dimensions") and not within_envelope(data["dimensions"]):
            errors.append("Dimensions outside plausibility envelope")
        if not data.get("brand") and not data.get("type"):
            warnings.append("Vehicle not identified")
        if (data.get("brand") or data.get("type")) and not data.get("dimensions"):
            warnings.append("Dimensions missing for identified vehicle")
        return {"valid": not errors, "errors": errors, "warnings": warnings}


def _year(raw) -> int | None:
    try:
        year = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    if 1950 <= year <= date.today().year + 1:
        return year
    return None


def _vin(raw) -> str | None:
    if raw and is_valid_vin(str(raw)):
        return str(raw).strip().upper()
    return None


def _int(raw) -> int | None:
    number = parse_number(raw) if raw is not None else None
    return int(number) if number is not None else None


def _lookup(table: dict, raw) -> str | None:
    if not raw:
        return None
    key = re.sub(r"\s+", " ", str(raw)).strip().lower()
    return table.get(key, key)
