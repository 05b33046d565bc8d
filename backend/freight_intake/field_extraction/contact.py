"""
Contact extraction: party blocks, email headers, signatures, phone numbers.

Generic mailboxes (info@, noreply@, ...) are demoted to a half-confidence
source rather than discarded, so a personal address wins whenever one exists.
"""

import re

from freight_intake.field_extraction.base import FieldExtractor
from freight_intake.field_extraction.sources import ExtractionContext, ExtractionSource
from freight_intake.patterns.normalizers import (
    company_from_domain,
    is_generic_mailbox,
    is_plausible_phone,
    normalize_company_name,
    normalize_email,
    normalize_person_name,
    normalize_phone,
)

GENERIC_DEMOTION = 0.5
MIN_UNPREFIXED_DIGITS = 9

LEGAL_SUFFIX = (
    r"(?:B\.?V\.?|N\.?V\.?|BVBA|GmbH(?:\s*&\s*Co\.?\s*KG)?|AG|KG|Ltd\.?|Limited|LLC|L\.L\.C\.|Inc\.?|"
    r"Corp\.?|SARL|SAS|S\.?A\.?|S\.?r\.?l\.?|S\.?p\.?A\.?|Pty\.?\s*Ltd\.?|PLC|Co\.?)"
)

PARTY_BLOCK = re.compile(
    r"(?i:\b(shipper|consignee|notify(?:\s+party)?))\b\s*[:\-]?\s*"
    r"(?P<name>[A-Z0-9][\w&'.\-]*(?:[ \t]+[\w&'.\-]+){0,6}?[ \t]+" + LEGAL_SUFFIX + r")(?=[\s,;]|$)"
    r"[\s,;]*(?P<address>[^\n]*)",
)

PARTY_LINE = re.compile(
    r"(?i:\b(shipper|consignee|notify(?:\s+party)?))\b\s*[:\-]\s*(?P<name>[^,\n]+)(?:,\s*(?P<address>[^\n]+))?",
)

SIGNATURE_INTRO = re.compile(
    r"^\s*(?:best\s+regards|kind\s+regards|regards|thanks|thank\s+you|cheers|sincerely|"
    r"mit\s+freundlichen\s+gr(?:ü|ue)(?:ß|ss)en|mfg|cordialement|met\s+vriendelijke\s+groet(?:en)?|mvg)\W*$",
    re.IGNORECASE | re.MULTILINE,
)

SELF_INTRO = re.compile(
    r"(?i:\b(?:my\s+name\s+is|je\s+suis|je\s+m'appelle|ich\s+bin|mein\s+name\s+ist|ik\s+ben))\s+"
    r"([A-ZÀ-Þ][\w'\-]+(?:[ \t]+[A-ZÀ-Þ][\w'\-]+){0,2})",
)

NAME_LINE = re.compile(r"^[A-ZÀ-Þ][\w'\-]+(?:[ \t]+[A-ZÀ-Þ][\w'\-.]+){0,3}$")

COMPANY_LINE = re.compile(r"\b[A-Z][\w&'.\-]*(?:[ \t]+[\w&'.\-]+){0,5}?[ \t]+" + LEGAL_SUFFIX + r"(?=[\s,;]|$)")

# Digit runs next to these labels are references, not phone numbers
REFERENCE_CONTEXT = re.compile(
    r"(?:booking|bkg|ref(?:erence)?|order|invoice|quote|quotation|offer|vin|chassis|container|"
    r"b/?l|bill\s+of\s+lading|po|customer\s+(?:no|number|id)|account)\s*(?:no\.?|number|#|nr\.?)?\s*[:\-]?\s*$",
    re.IGNORECASE,
)

DATE_LIKE = re.compile(r"\b(?:\d{1,2}[./\-]\d{1,2}[./\-](?:19|20)\d{2}|(?:19|20)\d{2}[./\-]\d{1,2}[./\-]\d{1,2})\b")


class ContactExtractor(FieldExtractor):
    section = "contact"
    expected_fields = ["name", "email", "phone", "company"]
    structured_keys = ("contact", "contact_info", "customer", "sender", "from")

    def collect(self, context: ExtractionContext) -> list[ExtractionSource]:
        sources = super().collect(context)
        demoted: list[ExtractionSource] = []
        for source in sources:
            email = source.value.get("email")
            if email and is_generic_mailbox(email):
                source.value = {k: v for k, v in source.value.items() if k != "email"}
                demoted.append(ExtractionSource(
                    source.origin, {"email": email}, source.confidence * GENERIC_DEMOTION,
                ))
        return [s for s in sources if s.value] + demoted

    def from_structured(self, data: dict) -> dict:
        name = data.get("name") or " ".join(
            p for p in (data.get("first_name"), data.get("last_name")) if p
        )
        return _compact({
            "name": normalize_person_name(name),
            "email": normalize_email(data.get("email")),
            "phone": _phone(data.get("phone") or data.get("telephone") or data.get("mobile")),
            "company": normalize_company_name(data.get("company") or data.get("company_name")),
            "address": _text(data.get("address")),
            "client_type": _text(data.get("client_type") or data.get("type")),
        })

    def from_metadata(self, metadata: dict) -> dict:
        header = metadata.get("from") or metadata.get("reply_to") or ""
        name, email = parse_address_header(header)
        if not email:
            email = normalize_email(metadata.get("from_email"))
        if not name:
            name = normalize_person_name(metadata.get("from_name"))
        return _compact({
            "name": name,
            "email": email,
            "company": company_from_domain(email),
        })

    def from_text(self, text: str) -> dict:
        value: dict = {}

        party = self._party_block(text)
        if party:
            value.update(party)

        emails = [normalize_email(m.group(0)) for m in self.catalog.match_all("email", text)]
        emails = [e for e in emails if e]
        if emails:
            personal = [e for e in emails if not is_generic_mailbox(e)]
            value["email"] = personal[0] if personal else emails[0]

        phone = self._phone_from_text(text)
        if phone:
            value["phone"] = phone

        if "name" not in value:
            name = self._signature_name(text)
            if name:
                value["name"] = name

        if "company" not in value:
            company = COMPANY_LINE.search(text)
            if company:
                value["company"] = normalize_company_name(company.group(0))
            elif value.get("email"):
                inferred = company_from_domain(value["email"])
                if inferred:
                    value["company"] = inferred

        return _compact(value)

    def _party_block(self, text: str) -> dict:
        """"Shipper ACME Logistics BV Main Street 12 Antwerp" style blocks."""
        match = PARTY_BLOCK.search(text)
        if not match:
            match = PARTY_LINE.search(text)
        if not match:
            return {}
        client_type = match.group(1).lower().split()[0]
        name = normalize_company_name(match.group("name"))
        address = _text(match.group("address"))
        return _compact({
            "name": name,
            "company": name,
            "address": address,
            "client_type": client_type,
        })

    def _phone_from_text(self, text: str) -> str | None:
        labeled = self.catalog.match("labeled_phone", text)
        if labeled:
            phone = _phone(labeled.group(1))
            if phone:
                return phone

        for match in self.catalog.match_all("phone", text):
            candidate = match.group(0)
            if DATE_LIKE.search(candidate):
                continue
            prefix = text[max(0, match.start() - 40):match.start()]
            if REFERENCE_CONTEXT.search(prefix):
                continue
            # Digit runs glued to letters are identifiers (VINs, booking codes)
            before = text[match.start() - 1:match.start()] if match.start() else ""
            after = text[match.end():match.end() + 1]
            if before.isalpha() or after.isalpha():
                continue
            # Unprefixed numbers need phone-style grouping and a national-length digit count
            if not re.match(r"^(?:\+|00)", candidate):
                if not re.search(r"[\s()\-./]", candidate):
                    continue
                if len(re.sub(r"\D", "", candidate)) < MIN_UNPREFIXED_DIGITS:
                    continue
            phone = _phone(candidate)
            if phone:
                return phone
        return None

    def _signature_name(self, text: str) -> str | None:
        intro = SELF_INTRO.search(text)
        if intro:
            return normalize_person_name(intro.group(1))

        sign_offs = list(SIGNATURE_INTRO.finditer(text))
        if not sign_offs:
            return None
        # First non-empty line after the last sign-off
        for line in text[sign_offs[-1].end():].splitlines():
            line = line.strip()
            if not line:
                continue
            if NAME_LINE.match(line):
                return normalize_person_name(line)
            break
        return None

    def validate(self, data: dict) -> dict:
        return validate_contact(data)


def validate_contact(data: dict) -> dict:
    """Validate a merged contact block.

    Returns:
        {"valid": bool, "complete": bool, "errors": [...], "warnings": [...]}
    """
    errors: list[str] = []
    warnings: list[str] = []

    email = data.get("email")
    phone = data.get("phone")
    name = data.get("name")

    if email and normalize_email(email) is None:
        errors.append(f"Invalid email format: {email}")
    if email and is_generic_mailbox(email):
        warnings.append(f"Generic mailbox address: {email}")
    if phone and not is_plausible_phone(phone):
        warnings.append(f"Implausible phone number: {phone}")
    if not name:
        warnings.append("Contact name missing")
    if not email and not phone:
        errors.append("No email or phone number")

    return {
        "valid": not errors,
        "complete": is_contact_complete(data),
        "errors": errors,
        "warnings": warnings,
    }


def is_contact_complete(data: dict) -> bool:
    """Name plus a reachable channel. A generic mailbox alone does not count."""
    if not data.get("name"):
        return False
    email = data.get("email")
    has_personal_email = bool(email) and not is_generic_mailbox(email)
    return has_personal_email or bool(data.get("phone"))


def parse_address_header(header: str) -> tuple[str | None, str | None]:
    """'"Jane Doe" <jane@acme.be>' -> ("Jane Doe", "jane@acme.be")."""
    if not header:
        return None, None
    match = re.match(r"^\s*\"?([^\"<]*?)\"?\s*<([^>]+)>", header)
    if match:
        return normalize_person_name(match.group(1)), normalize_email(match.group(2))
    return None, normalize_email(header)


def _phone(raw: str | None) -> str | None:
    phone = normalize_phone(raw)
    return phone if is_plausible_phone(phone) else None


def _text(raw) -> str | None:
    if raw is None:
        return None
    text = re.sub(r"\s+", " ", str(raw)).strip(" ,;")
    return text or None


def _compact(value: dict) -> dict:
    return {k: v for k, v in value.items() if v not in (None, "", [], {})}
