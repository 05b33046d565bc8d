"""
Read-only vehicle reference data backed by a bundled JSON file.

Provides reference lookups (dimensions, weight) for known make/model/year
combinations, VIN decoding via the WMI table and model-year character, and
the prioritized brand/model pattern table used by the vehicle extractor.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from freight_intake.config import Settings
from freight_intake.exceptions import ConfigurationError

logger = logging.getLogger("freight.reference")

# Model-year character (VIN position 10); cycle restarts every 30 years
YEAR_CODES = "ABCDEFGHJKLMNPRSTVWXY123456789"


@dataclass(frozen=True)
class VehicleRecord:
    brand: str
    model: str
    year_from: int | None = None
    year_to: int | None = None
    category: str = "passenger_vehicle"
    length_m: float | None = None
    width_m: float | None = None
    height_m: float | None = None
    weight_kg: float | None = None
    aliases: tuple[str, ...] = ()

    @property
    def dimensions(self) -> dict | None:
        if None in (self.length_m, self.width_m, self.height_m):
            return None
        return {"length_m": self.length_m, "width_m": self.width_m, "height_m": self.height_m}

    def covers_year(self, year: int | None) -> bool:
        if year is None:
            return True
        if self.year_from and year < self.year_from:
            return False
        if self.year_to and year > self.year_to:
            return False
        return True


@dataclass(frozen=True)
class BrandModelPattern:
    regex: re.Pattern
    brand: str
    model: str | None


@dataclass(frozen=True)
class EquipmentType:
    type: str
    regex: re.Pattern
    category: str


@dataclass
class VehicleReference:
    """In-memory reference tables. Build once, share across requests."""

    brands: dict[str, list[str]] = field(default_factory=dict)
    vehicles: list[VehicleRecord] = field(default_factory=list)
    equipment: list[EquipmentType] = field(default_factory=list)
    wmi: dict[str, str] = field(default_factory=dict)
    version: str = "0"

    @classmethod
    def from_file(cls, path: str | Path) -> "VehicleReference":
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigurationError(f"Vehicle reference data not found: {path}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Vehicle reference data is not valid JSON: {e}") from e
        return cls.from_dict(raw)

    @classmethod
    def from_settings(cls, settings: Settings) -> "VehicleReference":
        return cls.from_file(settings.vehicle_reference_path)

    @classmethod
    def from_dict(cls, raw: dict) -> "VehicleReference":
        vehicles = [
            VehicleRecord(
                brand=v["brand"],
                model=v["model"],
                year_from=v.get("year_from"),
                year_to=v.get("year_to"),
                category=v.get("category", "passenger_vehicle"),
                length_m=v.get("length_m"),
                width_m=v.get("width_m"),
                height_m=v.get("height_m"),
                weight_kg=v.get("weight_kg"),
                aliases=tuple(v.get("aliases", [])),
            )
            for v in raw.get("vehicles", [])
        ]
        equipment = [
            EquipmentType(
                type=e["type"],
                regex=re.compile(r"\b(?:" + e["pattern"] + r")(?:s|es)?\b", re.IGNORECASE),
                category=e["category"],
            )
            for e in raw.get("equipment", [])
        ]
        reference = cls(
            brands={k: list(v) for k, v in raw.get("brands", {}).items()},
            vehicles=vehicles,
            equipment=equipment,
            wmi=dict(raw.get("wmi", {})),
            version=str(raw.get("version", "0")),
        )
        logger.info(
            "Loaded vehicle reference v%s: %d brands, %d vehicles",
            reference.version, len(reference.brands), len(reference.vehicles),
        )
        return reference

    def find_vehicle(self, candidate: dict) -> VehicleRecord | None:
        """Best record for {brand, model, year}, or None.

        Model matching accepts the canonical name or an alias, case-insensitive.
        A record whose year range excludes the candidate year is skipped.
        """
        brand = _norm(candidate.get("brand"))
        model = _norm(candidate.get("model"))
        if not brand or not model:
            return None
        year = _as_int(candidate.get("year"))

        for record in self.vehicles:
            if _norm(record.brand) != brand:
                continue
            names = [_norm(record.model)] + [_norm(a) for a in record.aliases]
            if model not in names and not any(model.startswith(n + " ") for n in names):
                continue
            if record.covers_year(year):
                return record
        return None

    def decode_vin(self, vin: str | None) -> dict | None:
        """Manufacturer from the WMI and model year from position 10."""
        if not vin or len(vin) != 17:
            return None
        vin = vin.upper()
        manufacturer = self.wmi.get(vin[:3]) or self.wmi.get(vin[:2])
        year = _vin_model_year(vin[9])
        if manufacturer is None and year is None:
            return None
        return {
            "vin": vin,
            "manufacturer": manufacturer,
            "year": year,
            "wmi": vin[:3],
        }

    def get_brand_model_patterns(self) -> list[BrandModelPattern]:
        """Make/model patterns ordered most specific (longest model name) first."""
        patterns: list[tuple[int, BrandModelPattern]] = []
        for record in self.vehicles:
            brand_alt = "|".join(_phrase(a) for a in self.brands.get(record.brand, [record.brand.lower()]))
            for name in (record.model, *record.aliases):
                regex = re.compile(
                    r"\b(?:" + brand_alt + r")[\s\-]+" + _phrase(name) + r"(?![\w])",
                    re.IGNORECASE,
                )
                patterns.append((len(name), BrandModelPattern(regex, record.brand, record.model)))
        patterns.sort(key=lambda p: p[0], reverse=True)
        return [p for _, p in patterns]

    def get_brand_patterns(self) -> list[BrandModelPattern]:
        """Brand-only fallback patterns, longest alias first."""
        patterns = []
        for brand, aliases in self.brands.items():
            for alias in aliases:
                # Short aliases only count in upper case ("CAT", "VW")
                flags = 0 if len(alias) <= 3 else re.IGNORECASE
                text = alias.upper() if len(alias) <= 3 else alias
                patterns.append((len(alias), BrandModelPattern(
                    re.compile(r"\b" + _phrase(text) + r"\b", flags), brand, None,
                )))
        patterns.sort(key=lambda p: p[0], reverse=True)
        return [p for _, p in patterns]

    def match_equipment(self, text: str) -> EquipmentType | None:
        """First equipment type in table order whose pattern occurs in text."""
        for equipment in self.equipment:
            if equipment.regex.search(text or ""):
                return equipment
        return None


def _vin_model_year(code: str) -> int | None:
    index = YEAR_CODES.find(code.upper())
    if index < 0:
        return None
    latest = date.today().year + 1
    year = 1980 + index
    while year + 30 <= latest:
        year += 30
    return year


def _phrase(text: str) -> str:
    """Regex for a phrase with flexible whitespace/hyphen between words."""
    parts = re.split(r"[\s\-]+", text.strip())
    return r"[\s\-]*".join(re.escape(p) for p in parts if p)


def _norm(value) -> str:
    if value is None:
        return ""
    return re.sub(r"[\s\-]+", " ", str(value)).strip().lower()


def _as_int(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
