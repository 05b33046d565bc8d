import re

from freight_intake.field_extraction.base import FieldExtractor
from freight_intake.field_extraction.sources import ExtractionContext, SectionResult

DESCRIPTION_LABEL = re.compile(
    r"(?i:\b(?:cargo|commodity|goods|description|ware|marchandise|lading))\s*[:\-]\s*([^\n]+)"
)

PACKAGING = re.compile(
    r"\b(pallets?|crates?|boxes|cartons?|drums?|bales?|loose|flat\s*rack|on\s+own\s+wheels)\b",
    re.IGNORECASE,
)

WORD_NUMBERS = {"one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6, "ein": 1, "zwei": 2, "un": 1, "deux": 2}
WORD_QUANTITY = re.compile(r"\b(" + "|".join(WORD_NUMBERS) + r")\s+(?:units?|vehicles?|cars?|trucks?|machines?)\b", re.IGNORECASE)


class CargoExtractor(FieldExtractor):
    section = "cargo"
    expected_fields = ["quantity", "description", "category"]
    structured_keys = ("cargo", "goods", "commodity")

    def extract(self, context: ExtractionContext, vehicle: dict | None = None) -> SectionResult:
        result = super().extract(context)
        if vehicle:
            self._fill_from_vehicle(result, vehicle)
        return result

    def _fill_from_vehicle(self, result: SectionResult, vehicle: dict) -> None:
        derived = {
            "category": vehicle.get("category") or ("passenger_vehicle" if vehicle.get("brand") else None),
            "description": " ".join(
                str(p) for p in (vehicle.get("brand"), vehicle.get("model"), vehicle.get("year")) if p
            ) or (vehicle.get("type") or "").replace("_", " ") or None,
            "condition": vehicle.get("condition"),
        }
        for key, value in derived.items():
            if value and not result.data.get(key):
                result.data[key] = value
                result.provenance[key] = "vehicle"

    def from_structured(self, data: dict) -> dict:
        value = {
            "quantity": _quantity(data.get("quantity")),
            "description": data.get("description"),
            "category": data.get("category"),
            "packaging": data.get("packaging"),
        }
        return {k: v for k, v in value.items() if v}

    def from_text(self, text: str) -> dict:
        value: dict = {}
        match = self.catalog.match("quantity", text)
        if match:
            value["quantity"] = int(match.group(1))
        else:
            word = WORD_QUANTITY.search(text)
            if word:
                value["quantity"] = WORD_NUMBERS[word.group(1).lower()]

        match = DESCRIPTION_LABEL.search(text)
        if match:
            value["description"] = match.group(1).strip()

        match = PACKAGING.search(text)
        if match:
            value["packaging"] = match.group(1).lower()
        return {k: v for k, v in value.items() if v}


def _quantity(raw) -> int | None:
    try:
        quantity = int(float(str(raw)))
    except (TypeError, ValueError):
        return None
    return quantity if quantity > 0 else None
