from freight_intake.field_extraction.base import FieldExtractor
from freight_intake.patterns.normalizers import normalize_currency, parse_number

INCOTERMS = {"EXW", "FCA", "FAS", "FOB", "CFR", "CIF", "CPT", "CIP", "DAP", "DPU", "DDP"}


class PricingExtractor(FieldExtractor):
    section = "pricing"
    expected_fields = ["amount", "currency"]
    structured_keys = ("pricing", "price", "quote", "quotation")

    def from_structured(self, data: dict) -> dict:
        value = {
            "amount": parse_number(data.get("amount") or data.get("price") or data.get("total")),
            "currency": normalize_currency(data.get("currency")),
            "incoterm": _incoterm(data.get("incoterm")),
        }
        return {k: v for k, v in value.items() if v is not None}

    def from_text(self, text: str) -> dict:
        value: dict = {}

        # Symbol or code before the amount, then amount before the currency
        for name, currency_group, amount_group in (
            ("price_symbol_first", 1, 2),
            ("price_code_first", 1, 2),
            ("price_amount_first", 2, 1),
        ):
            match = self.catalog.match(name, text)
            if not match:
                continue
            currency = normalize_currency(match.group(currency_group))
            amount = parse_number(match.group(amount_group))
            if currency and amount is not None:
                value["amount"] = amount
                value["currency"] = currency
                break

        match = self.catalog.match("incoterm", text)
        if match:
            value["incoterm"] = match.group(1)

        return value


def _incoterm(raw) -> str | None:
    if not raw:
        return None
    code = str(raw).strip().upper()[:3]
    return code if code in INCOTERMS else None
