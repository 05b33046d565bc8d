"""
Compiled, named pattern catalog.

Patterns are compiled and validated once when the catalog is built. Invalid
ones are dropped and logged so nothing can fail at match time. A catalog is
immutable; reload() returns a new instance.
"""

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType

logger = logging.getLogger("freight.patterns")

# name -> (regex, flags)
DEFAULT_PATTERNS: dict[str, tuple[str, int]] = {
    # Party blocks
    "shipper": (r"\bshipper\s*[:\-]?\s*(.+)", re.IGNORECASE),
    "consignee": (r"\bconsignee\s*[:\-]?\s*(.+)", re.IGNORECASE),
    "notify": (r"\bnotify(?:\s+party)?\s*[:\-]?\s*(.+)", re.IGNORECASE),
    # Vehicle
    "vin": (r"\b([A-HJ-NPR-Z0-9]{17})\b", re.IGNORECASE),
    "year": (r"\b(19[5-9]\d|20[0-4]\d)\b", 0),
    "engine_cc": (r"\b(\d{3,5})\s*(?:cc|ccm|cm3|cm³)\b", re.IGNORECASE),
    "engine_litres": (r"\b(\d\.\d)\s*(?:l|litre|liter|ltr)\b", re.IGNORECASE),
    "mileage": (r"\b(\d{1,3}(?:[.,\s]\d{3})*|\d+)\s*(km|kms|kilometers?|kilometres?|miles?|mi)\b", re.IGNORECASE),
    "fuel_type": (r"\b(diesel|petrol|gasoline|benzin|essence|electric|elektro|hybrid|lpg|cng)\b", re.IGNORECASE),
    "transmission": (r"\b(automatic|automatik|manual|manuell|schaltgetriebe|cvt)\b", re.IGNORECASE),
    "condition": (r"\b(brand new|new(?!\s+(?:york|zealand|jersey|delhi|orleans|castle))|used|second[- ]hand|damaged|non[- ]runner|runner|neu|gebraucht)\b", re.IGNORECASE),
    "color": (r"\b(black|white|silver|grey|gray|red|blue|green|yellow|orange|brown|beige|gold|schwarz|weiss|weiß|rot|blau)\b", re.IGNORECASE),
    # Weight
    "weight": (r"(\d{1,3}(?:[.,]\d{3})+|\d+(?:[.,]\d+)?)\s*(kg|kgs|kilos?|lbs?|pounds?|t|tons?|tonnes?)\b", re.IGNORECASE),
    # Ports and routing
    "por": (r"\b(?:place\s+of\s+receipt|POR)\s*[:\-]\s*([^\n,;]+)", re.IGNORECASE),
    "pol": (r"\b(?:port\s+of\s+loading|POL)\s*[:\-]\s*([^\n,;]+)", re.IGNORECASE),
    "pod": (r"\b(?:port\s+of\s+discharge|POD)\s*[:\-]\s*([^\n,;]+)", re.IGNORECASE),
    "destination": (r"\b(?:final\s+)?destination\s*[:\-]\s*([^\n;]+)", re.IGNORECASE),
    "origin": (r"\borigin\s*[:\-]\s*([^\n;]+)", re.IGNORECASE),
    # Contact
    "email": (r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}", 0),
    "phone": (r"(?:\+|00)?\d[\d \t().\-/]{6,}\d", 0),
    "labeled_phone": (r"\b(?:tel|phone|mobile|mob|gsm|telefon|t[ée]l[ée]phone)\.?\s*[:\-]?\s*((?:\+|00)?[\d \t().\-/]{7,}\d)", re.IGNORECASE),
    "email_header_name": (r"^\s*\"?([^\"<]+?)\"?\s*<([^>]+)>", 0),
    # References
    "booking": (r"\b(?:booking|bkg)\s*(?:no\.?|number|#|ref)?\s*[:\-]?\s*([A-Z0-9\-]{6,})", re.IGNORECASE),
    "concerning": (r"\b(?:concerning|regarding|re|betreff|objet)\s*[:\-]\s*([^\n]+)", re.IGNORECASE),
    # Shipping
    "shipping_type": (r"\b(ro-?ro|roll[- ]on[- ]roll[- ]off|40\s*'?\s*(?:ft|foot)?\s*hc|40\s*'?\s*(?:ft|foot)?\s*high\s*cube|40\s*(?:ft|foot|')\s*(?:container)?|20\s*(?:ft|foot|')\s*(?:container)?|container)\b", re.IGNORECASE),
    "quantity": (r"\b(\d{1,3})\s*(?:x\s+(?=[A-Za-z])|units?\b|pcs\b|pieces\b|vehicles?\b|cars?\b|stück\b)", re.IGNORECASE),
    # Pricing
    "price_symbol_first": (r"([$€£])\s*(\d{1,3}(?:[.,\s]\d{3})*(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?)", 0),
    "price_code_first": (r"\b(USD|EUR|GBP|CHF|AED|CAD|AUD|JPY)\s*(\d{1,3}(?:[.,\s]\d{3})*(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?)", re.IGNORECASE),
    "price_amount_first": (r"(\d{1,3}(?:[.,\s]\d{3})*(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?)\s*(USD|EUR|GBP|CHF|AED|CAD|AUD|JPY|[$€£]|euros?|dollars?)", re.IGNORECASE),
    "incoterm": (r"\b(EXW|FCA|FAS|FOB|CFR|CIF|CPT|CIP|DAP|DPU|DDP)\b", 0),
}


@dataclass(frozen=True)
class PatternCatalog:
    """Immutable set of compiled, named regular expressions."""

    compiled: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    rejected: tuple[str, ...] = ()

    @classmethod
    def build(cls, definitions: dict[str, tuple[str, int]] | None = None) -> "PatternCatalog":
        """Compile definitions, dropping (and logging) any that fail to compile."""
        definitions = DEFAULT_PATTERNS if definitions is None else definitions
        compiled: dict[str, re.Pattern] = {}
        rejected: list[str] = []

        for name, definition in definitions.items():
            if isinstance(definition, str):
                source, flags = definition, 0
            else:
                source, flags = definition
            try:
                compiled[name] = re.compile(source, flags)
            except re.error as e:
                rejected.append(name)
                logger.warning("Dropping invalid pattern %s: %s", name, e)

        logger.info("Pattern catalog built: %d patterns, %d rejected", len(compiled), len(rejected))
        return cls(compiled=MappingProxyType(compiled), rejected=tuple(rejected))

    def reload(self, definitions: dict[str, tuple[str, int]] | None = None) -> "PatternCatalog":
        return PatternCatalog.build(definitions)

    def get(self, name: str) -> re.Pattern | None:
        return self.compiled.get(name)

    def has_pattern(self, name: str) -> bool:
        return name in self.compiled

    def names(self) -> list[str]:
        return sorted(self.compiled)

    def match(self, name: str, text: str) -> re.Match | None:
        """First match of a named pattern, or None (also None for unknown names)."""
        pattern = self.compiled.get(name)
        if pattern is None or not text:
            return None
        return pattern.search(text)

    def match_all(self, name: str, text: str) -> list[re.Match]:
        pattern = self.compiled.get(name)
        if pattern is None or not text:
            return []
        return list(pattern.finditer(text))

    def stats(self) -> dict:
        return {
            "total": len(self.compiled),
            "rejected": list(self.rejected),
            "names": self.names(),
        }


_default_catalog: PatternCatalog | None = None


def get_default_catalog() -> PatternCatalog:
    """Process-wide catalog, built on first use."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = PatternCatalog.build()
    return _default_catalog
