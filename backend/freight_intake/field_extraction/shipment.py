import re

from freight_intake.field_extraction.base import FieldExtractor
from freight_intake.patterns.grammar import ROUTE_RULES

SHIPPING_TYPES = (
    (re.compile(r"ro-?ro|roll[- ]on", re.IGNORECASE), "roro"),
    (re.compile(r"hc|high\s*cube", re.IGNORECASE), "container_40hc"),
    (re.compile(r"^40", re.IGNORECASE), "container_40ft"),
    (re.compile(r"^20", re.IGNORECASE), "container_20ft"),
    (re.compile(r"container", re.IGNORECASE), "container"),
)

# Trailing words the place grammar can swallow
PLACE_STOPWORDS = re.compile(r"\s+(?:Port|Please|ASAP|Thanks|Regards|By|Via)$", re.IGNORECASE)


def normalize_shipping_type(raw: str | None) -> str | None:
    if not raw:
        return None
    text = raw.strip()
    for pattern, value in SHIPPING_TYPES:
        if pattern.search(text):
            return value
    return text.lower()


def clean_place(raw: str | None) -> str | None:
    if not raw:
        return None
    text = re.sub(r"\s+", " ", raw).strip(" .,;:-")
    text = PLACE_STOPWORDS.sub("", text)
    return text or None


class ShipmentExtractor(FieldExtractor):
    section = "shipment"
    expected_fields = ["origin", "destination", "shipping_type"]
    structured_keys = ("shipment", "shipping", "route", "transport")

    def from_structured(self, data: dict) -> dict:
        value = {
            "origin": clean_place(data.get("origin") or data.get("from")),
            "destination": clean_place(data.get("destination") or data.get("to")),
            "shipping_type": normalize_shipping_type(data.get("shipping_type") or data.get("method")),
            "port_of_loading": clean_place(data.get("port_of_loading") or data.get("pol")),
            "port_of_discharge": clean_place(data.get("port_of_discharge") or data.get("pod")),
            "booking_reference": data.get("booking_reference"),
        }
        return {k: v for k, v in value.items() if v}

    def from_metadata(self, metadata: dict) -> dict:
        subject = metadata.get("subject")
        value = self._route(subject) if subject else {}
        match = self.catalog.match("shipping_type", subject or "")
        if match:
            value["shipping_type"] = normalize_shipping_type(match.group(1))
        return value

    def from_text(self, text: str) -> dict:
        value: dict = {}

        for key, pattern in (("origin", "origin"), ("destination", "destination")):
            match = self.catalog.match(pattern, text)
            if match:
                value[key] = clean_place(match.group(1))

        for key, pattern in (("place_of_receipt", "por"), ("port_of_loading", "pol"), ("port_of_discharge", "pod")):
            match = self.catalog.match(pattern, text)
            if match:
                value[key] = clean_place(match.group(1))

        route = self._route(text)
        for key, item in route.items():
            value.setdefault(key, item)

        value.setdefault("origin", value.get("port_of_loading") or value.get("place_of_receipt"))
        value.setdefault("destination", value.get("port_of_discharge"))

        match = self.catalog.match("shipping_type", text)
        if match:
            value["shipping_type"] = normalize_shipping_type(match.group(1))

        match = self.catalog.match("booking", text)
        if match:
            value["booking_reference"] = match.group(1).upper()

        match = self.catalog.match("concerning", text)
        if match:
            value["concerning"] = match.group(1).strip()

        return {k: v for k, v in value.items() if v}

    def _route(self, text: str) -> dict:
        for rule in ROUTE_RULES:
            result = rule.apply(text)
            if result:
                route = {
                    "origin": clean_place(result["origin"]),
                    "destination": clean_place(result["destination"]),
                    "route_rule": result["rule"],
                }
                if result.get("destination_options"):
                    route["destination_options"] = [clean_place(d) for d in result["destination_options"]]
                return {k: v for k, v in route.items() if v}
        return {}
