"""
Named, pure value transforms for the field mapper.

Every transform has the signature (value, params, ctx) -> value. Lookup tables
come from the "transformations" section of the mapping configuration via ctx,
never from module state. An unknown transform name is a passthrough.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from dateutil import parser as date_parser

from freight_intake.mapping.paths import is_blank
from freight_intake.patterns.dimensions import parse_dimension_string, parse_weight, within_envelope
from freight_intake.patterns.grammar import infer_length_unit
from freight_intake.patterns.normalizers import (
    canonical_length_unit,
    normalize_currency,
    normalize_person_name,
    parse_number,
    to_meters,
)

logger = logging.getLogger("freight.mapping")

Transform = Callable[[Any, dict, "TransformContext"], Any]

DIMENSIONS_FORMAT = "{:.2f} x {:.2f} x {:.2f} m // {:.2f} Cbm"

UNIT_SUFFIX = re.compile(r"^\s*(-?\d+(?:[.,]\d+)?)\s*([a-zA-Z'\"]+)?\s*$")

# DimensionLookup(make, model, year) -> {"length_m", "width_m", "height_m"} | None
DimensionLookup = Callable[[str, str, int | None], dict | None]


class DimensionResolver:
    """Reference-data and on-demand lookups for missing dimensions, cached by make/model/year."""

    def __init__(self, reference=None, external_lookup: DimensionLookup | None = None):
        self.reference = reference
        self.external_lookup = external_lookup
        self._cache: dict[tuple, dict | None] = {}

    def lookup(self, make: str | None, model: str | None, year: int | None = None) -> dict | None:
        if not make or not model:
            return None
        key = (make.strip().lower(), model.strip().lower(), year)
        if key in self._cache:
            return self._cache[key]

        found = None
        if self.reference is not None:
            record = self.reference.find_vehicle({"brand": make, "model": model, "year": year})
            if record and record.dimensions and within_envelope(record.dimensions):
                found = dict(record.dimensions)

        if found is None and self.external_lookup is not None:
            try:
                candidate = self.external_lookup(make, model, year)
            except Exception as e:
                logger.warning("External dimension lookup failed for %s %s: %s", make, model, e)
                candidate = None
            if candidate and within_envelope(candidate):
                found = {k: candidate[k] for k in ("length_m", "width_m", "height_m")}

        self._cache[key] = found
        return found

    @property
    def cache_size(self) -> int:
        return len(self._cache)


@dataclass
class TransformContext:
    tables: dict = field(default_factory=dict)
    extracted: dict = field(default_factory=dict)
    dimensions: DimensionResolver | None = None


# --- Text ---


def extract_name(value, params, ctx):
    """'Jane Doe <jane@x.com>' -> 'Jane Doe'; 'jane.doe@x.com' -> 'Jane Doe'."""
    if not isinstance(value, str):
        return value
    match = re.match(r"^\s*\"?([^\"<]*?)\"?\s*<[^>]+>", value)
    if match and match.group(1).strip():
        return normalize_person_name(match.group(1))
    if "@" in value and " " not in value.strip():
        local = value.split("@", 1)[0]
        return normalize_person_name(re.sub(r"[._\-]+", " ", re.sub(r"\d+", "", local)))
    return value.strip()


def to_upper(value, params, ctx):
    return value.upper() if isinstance(value, str) else value


def to_lower(value, params, ctx):
    return value.lower() if isinstance(value, str) else value


def title_case(value, params, ctx):
    return value.title() if isinstance(value, str) else value


def trim(value, params, ctx):
    return re.sub(r"\s+", " ", value).strip() if isinstance(value, str) else value


def join(value, params, ctx):
    separator = params.get("separator", ", ")
    if isinstance(value, (list, tuple)):
        return separator.join(str(v) for v in value if not is_blank(v))
    if isinstance(value, dict):
        return separator.join(str(v) for v in value.values() if not is_blank(v))
    return value


# --- Lookups ---


def _table_lookup(table: dict, value: str) -> str | None:
    """Exact key match first, then the longest key contained in value (case-insensitive)."""
    lowered = value.strip().lower()
    for key, mapped in table.items():
        if key.lower() == lowered:
            return mapped
    hits = [(key, mapped) for key, mapped in table.items() if re.search(r"\b" + re.escape(key.lower()) + r"\b", lowered)]
    if hits:
        return max(hits, key=lambda h: len(h[0]))[1]
    return None


def city_to_port(value, params, ctx):
    """Free-text location -> canonical port.

    Countries listed under country_hubs always resolve to their regional hub;
    otherwise the city table is consulted; otherwise the value passes through.
    """
    if not isinstance(value, str) or not value.strip():
        return value
    hub = _table_lookup(ctx.tables.get("country_hubs", {}), value)
    if hub:
        return hub
    port = _table_lookup(ctx.tables.get("city_to_port", {}), value)
    return port or value.strip()


def city_to_code(value, params, ctx):
    if not isinstance(value, str) or not value.strip():
        return value
    code = _table_lookup(ctx.tables.get("city_to_code", {}), value)
    return code or params.get("fallback", value.strip())


def currency(value, params, ctx):
    if not isinstance(value, str):
        return value
    table = ctx.tables.get("currency", {})
    return table.get(value.strip()) or table.get(value.strip().lower()) or normalize_currency(value) or value


def standardize_fuel_type(value, params, ctx):
    if not isinstance(value, str):
        return value
    table = ctx.tables.get("fuel_types", {})
    return table.get(value.strip().lower(), value.strip().lower())


def lookup(value, params, ctx):
    """Generic table lookup: params {"table": name}."""
    if not isinstance(value, str):
        return value
    table = ctx.tables.get(params.get("table", ""), {})
    return _table_lookup(table, value) or value


# --- Numbers and dates ---


def to_numeric(value, params, ctx):
    number = parse_number(value, grouped_thousands=params.get("grouped_thousands", True)) if value is not None else None
    if number is None:
        return None
    decimals = params.get("decimals")
    return round(number, decimals) if decimals is not None else number


def to_integer(value, params, ctx):
    number = to_numeric(value, params, ctx)
    return int(round(number)) if number is not None else None


def to_date(value, params, ctx):
    """Parse to ISO date. Day-first unless params say otherwise."""
    if value is None:
        return None
    text = str(value).strip()
    # dayfirst would swap month and day in an ISO string
    try:
        return date_parser.isoparse(text).date().isoformat()
    except ValueError:
        pass
    try:
        parsed = date_parser.parse(text, dayfirst=params.get("dayfirst", True))
    except (ValueError, OverflowError):
        return None
    return parsed.date().isoformat()


def to_meters_transform(value, params, ctx):
    """'800cm' -> 8.0, '26ft' -> 7.925; bare numbers use params['unit'] or magnitude."""
    if isinstance(value, (int, float)):
        return to_meters(float(value), params.get("unit", "m"))
    if not isinstance(value, str):
        return value
    match = UNIT_SUFFIX.match(value)
    if not match:
        return None
    number = parse_number(match.group(1), grouped_thousands=False)
    unit = canonical_length_unit(match.group(2)) or params.get("unit") or infer_length_unit([number])
    return to_meters(number, unit)


def extract_weight_numeric(value, params, ctx):
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return value
    weight = parse_weight(value)
    if weight is not None:
        return weight
    return parse_number(value)


def extract_engine_cc(value, params, ctx):
    """'2.0 L' -> 2000, '1998 cc' -> 1998."""
    if isinstance(value, (int, float)):
        return int(value) if value > 20 else int(round(value * 1000))
    if not isinstance(value, str):
        return value
    litres = re.search(r"(\d+[.,]\d)\s*(?:l|litre|liter|ltr)\b", value, re.IGNORECASE)
    if litres:
        return int(round(parse_number(litres.group(1), grouped_thousands=False) * 1000))
    cc = re.search(r"(\d{3,5})", value)
    return int(cc.group(1)) if cc else None


def clean_vehicle_model(value, params, ctx):
    """Drop a leading brand and trailing year from a model string."""
    if not isinstance(value, str):
        return value
    brand = (ctx.extracted.get("vehicle") or {}).get("brand")
    text = value.strip()
    if brand and text.lower().startswith(brand.lower()):
        text = text[len(brand):]
    text = re.sub(r"\b(?:19|20)\d{2}\b", "", text)
    return re.sub(r"\s+", " ", text).strip(" -,") or None


# --- Dimensions ---


def _dims_from_bag(bag: dict) -> dict | None:
    if all(isinstance(bag.get(k), (int, float)) for k in ("length_m", "width_m", "height_m")):
        return {k: float(bag[k]) for k in ("length_m", "width_m", "height_m")}

    raw = [bag.get("length"), bag.get("width"), bag.get("height")]
    if any(is_blank(v) for v in raw):
        return None
    unit = bag.get("unit")
    values, units = [], []
    for item in raw:
        if isinstance(item, (int, float)):
            values.append(float(item))
            units.append(canonical_length_unit(unit))
            continue
        match = UNIT_SUFFIX.match(str(item))
        if not match:
            return None
        values.append(parse_number(match.group(1), grouped_thousands=False))
        units.append(canonical_length_unit(match.group(2)) or canonical_length_unit(unit))
    if any(v is None for v in values):
        return None
    fallback = next((u for u in units if u), None) or infer_length_unit(values)
    units = [u or fallback for u in units]
    return {
        "length_m": to_meters(values[0], units[0]),
        "width_m": to_meters(values[1], units[1]),
        "height_m": to_meters(values[2], units[2]),
    }


def _format_dims(dims: dict) -> str:
    volume = dims["length_m"] * dims["width_m"] * dims["height_m"]
    return DIMENSIONS_FORMAT.format(dims["length_m"], dims["width_m"], dims["height_m"], volume)


def _plausible(dims: dict | None) -> dict | None:
    if dims is not None and not within_envelope(dims):
        logger.debug("Discarding implausible dimensions %s", dims)
        return None
    return dims


def _looked_up_dims(bag: dict, ctx) -> dict | None:
    if ctx.dimensions is None:
        return None
    vehicle = ctx.extracted.get("vehicle") or {}
    make = bag.get("brand") or bag.get("make") or vehicle.get("brand")
    model = bag.get("model") or vehicle.get("model")
    year = bag.get("year") or vehicle.get("year")
    try:
        year = int(year) if year else None
    except (TypeError, ValueError):
        year = None
    return ctx.dimensions.lookup(make, model, year)


def format_dimensions(value, params, ctx):
    """Formatted string or components bag -> 'L x W x H m // V Cbm'.

    Direct values win when they fall inside the plausibility envelope. When
    they are missing or implausible the resolver consults reference specs and
    then the on-demand lookup, keyed by make/model/year.
    """
    dims = None
    bag = value if isinstance(value, dict) else {}

    if isinstance(value, str) and value.strip():
        dims = _plausible(parse_dimension_string(value))
    elif bag:
        nested = bag.get("dimensions")
        if isinstance(nested, dict):
            dims = _plausible(_dims_from_bag(nested))
        elif isinstance(nested, str):
            dims = _plausible(parse_dimension_string(nested))
        if dims is None:
            dims = _plausible(_dims_from_bag(bag))

    if dims is None:
        dims = _looked_up_dims(bag, ctx)

    if dims is None:
        return None
    return _format_dims(dims)


def calculate_volume(value, params, ctx):
    """Dimensions dict or string -> cubic meters (3 decimals)."""
    if isinstance(value, dict):
        dims = _plausible(_dims_from_bag(value))
    elif isinstance(value, str):
        dims = _plausible(parse_dimension_string(value))
    else:
        return value
    if dims is None:
        dims = _looked_up_dims({}, ctx)
    if dims is None:
        return None
    return round(dims["length_m"] * dims["width_m"] * dims["height_m"], 3)


# --- Composite lines ---


def _cargo_parts(bag: dict) -> list[str]:
    parts = [bag.get("condition"), bag.get("brand"), bag.get("model"), bag.get("year")]
    if not any(not is_blank(p) for p in parts[1:3]):
        parts = [bag.get("condition"), bag.get("description") or bag.get("type")]
    return [str(p).strip() for p in parts if not is_blank(p)]


def format_cargo(value, params, ctx):
    """{quantity, condition, brand, model, year} -> '1 x used BMW 7 Series'."""
    if not isinstance(value, dict):
        return value
    core = " ".join(_cargo_parts(value))
    if not core:
        return None
    quantity = value.get("quantity")
    if is_blank(quantity):
        quantity = params.get("default_quantity", 1)
    return f"{quantity} x {core}"


def format_cargo_core(value, params, ctx):
    """Cargo line without quantity, for use inside templates."""
    if not isinstance(value, dict):
        return value
    return " ".join(_cargo_parts(value)) or None


def format_contact(value, params, ctx):
    """Contact bag -> multi-line block."""
    if not isinstance(value, dict):
        return value
    name, company = value.get("name"), value.get("company")
    lines = []
    if name and company and name != company:
        lines.append(f"{name} ({company})")
    elif name or company:
        lines.append(name or company)
    for key in ("address", "email", "phone"):
        if not is_blank(value.get(key)):
            lines.append(str(value[key]))
    return "\n".join(lines) or None


def format_route(value, params, ctx):
    if not isinstance(value, dict):
        return value
    origin, destination = value.get("origin"), value.get("destination")
    if is_blank(origin) or is_blank(destination):
        return None
    return f"{origin} {params.get('separator', '-')} {destination}"


def format_messages(value, params, ctx):
    """Message history -> plain text transcript."""
    if not isinstance(value, list):
        return value
    max_length = params.get("max_length", 4000)
    lines = []
    for message in value:
        if isinstance(message, dict):
            content = re.sub(r"\s+", " ", str(message.get("content", ""))).strip()
            author = message.get("from") or message.get("role")
            if content:
                lines.append(f"{author}: {content}" if author else content)
        elif not is_blank(message):
            lines.append(str(message).strip())
    text = "\n\n".join(lines)
    return text[:max_length] if text else None


TRANSFORMS: dict[str, Transform] = {
    "extract_name": extract_name,
    "uppercase": to_upper,
    "lowercase": to_lower,
    "title_case": title_case,
    "trim": trim,
    "join": join,
    "city_to_port": city_to_port,
    "city_to_code": city_to_code,
    "currency": currency,
    "standardize_fuel_type": standardize_fuel_type,
    "lookup": lookup,
    "to_numeric": to_numeric,
    "to_integer": to_integer,
    "to_date": to_date,
    "to_meters": to_meters_transform,
    "extract_weight_numeric": extract_weight_numeric,
    "extract_engine_cc": extract_engine_cc,
    "clean_vehicle_model": clean_vehicle_model,
    "format_dimensions": format_dimensions,
    "calculate_volume": calculate_volume,
    "format_cargo": format_cargo,
    "format_cargo_core": format_cargo_core,
    "format_contact": format_contact,
    "format_route": format_route,
    "format_messages": format_messages,
}


def apply_transform(name: str | None, value: Any, params: dict | None, ctx: TransformContext) -> Any:
    """Apply a named transform. Unknown names return value unchanged."""
    if not name:
        return value
    transform = TRANSFORMS.get(name)
    if transform is None:
        logger.debug("Unknown transform %s, passing value through", name)
        return value
    return transform(value, params or {}, ctx)
