"""
Value normalizers shared by the field extractors and the mapping transforms.

Pure functions with no I/O and no catalog state.
"""

import re

from email_validator import EmailNotValidError, validate_email

# Length units to meters
LENGTH_MULTIPLIERS = {
    "m": 1.0,
    "cm": 0.01,
    "mm": 0.001,
    "ft": 0.3048,
    "in": 0.0254,
}

LENGTH_ALIASES = {
    "m": "m", "meter": "m", "meters": "m", "metre": "m", "metres": "m", "mtr": "m", "mtrs": "m",
    "cm": "cm", "centimeter": "cm", "centimeters": "cm", "centimetre": "cm", "centimetres": "cm",
    "mm": "mm", "millimeter": "mm", "millimeters": "mm", "millimetre": "mm", "millimetres": "mm",
    "ft": "ft", "feet": "ft", "foot": "ft", "'": "ft",
    "in": "in", "inch": "in", "inches": "in", '"': "in",
}

# Weight units to kilograms
WEIGHT_MULTIPLIERS = {
    "kg": 1.0,
    "lb": 0.453592,
    "t": 1000.0,
}

WEIGHT_ALIASES = {
    "kg": "kg", "kgs": "kg", "kilo": "kg", "kilos": "kg", "kilogram": "kg", "kilograms": "kg",
    "lb": "lb", "lbs": "lb", "pound": "lb", "pounds": "lb",
    "t": "t", "ton": "t", "tons": "t", "tonne": "t", "tonnes": "t",
}

CURRENCY_SYMBOLS = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "euro": "EUR",
    "euros": "EUR",
    "dollar": "USD",
    "dollars": "USD",
    "pound": "GBP",
    "pounds": "GBP",
}

ISO_CURRENCIES = {"USD", "EUR", "GBP", "CHF", "AED", "CAD", "AUD", "JPY"}

GENERIC_MAILBOXES = {
    "noreply", "no-reply", "donotreply", "do-not-reply", "admin",
    "info", "contact", "support", "sales", "test", "mailer-daemon", "postmaster",
}

FREEMAIL_DOMAINS = {
    "gmail.com", "googlemail.com", "yahoo.com", "yahoo.fr", "yahoo.de", "hotmail.com",
    "hotmail.fr", "outlook.com", "live.com", "msn.com", "aol.com", "icloud.com", "me.com",
    "gmx.de", "gmx.net", "web.de", "t-online.de", "orange.fr", "free.fr", "wanadoo.fr",
    "telenet.be", "skynet.be", "proton.me", "protonmail.com", "mail.com",
}

HONORIFICS = {
    "mr", "mrs", "ms", "miss", "dr", "prof", "sir", "madam",
    "herr", "frau", "m", "mme", "mlle", "dhr", "mevr", "mw", "sr", "sra",
}

SIGNATURE_ARTIFACTS = re.compile(
    r"\b(?:best\s+regards|kind\s+regards|regards|thanks|thank\s+you|cheers|sincerely|"
    r"mit\s+freundlichen\s+gr(?:ü|ue)(?:ß|ss)en|mfg|cordialement|bien\s+(?:à|a)\s+vous|"
    r"met\s+vriendelijke\s+groet(?:en)?|mvg|sent\s+from\s+my\s+\w+)\b[,.!]*",
    re.IGNORECASE,
)

VIN_ALPHABET = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")


def parse_number(raw: str | float | int | None, grouped_thousands: bool = True) -> float | None:
    """Parse a locale-formatted number.

    "10,06" -> 10.06, "18.750" -> 18750 (3-digit group), "1.234,5" -> 1234.5.
    With grouped_thousands=False a lone separator is always the decimal mark.
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return float(raw)

    text = re.sub(r"[\s ']", "", str(raw))
    text = text.strip("+")
    if not text or not re.search(r"\d", text):
        return None

    has_dot = "." in text
    has_comma = "," in text
    if has_dot and has_comma:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif has_dot or has_comma:
        sep = "." if has_dot else ","
        head, _, tail = text.rpartition(sep)
        if text.count(sep) > 1:
            text = text.replace(sep, "")
        elif grouped_thousands and len(tail) == 3 and head.lstrip("-").isdigit() and head.lstrip("-") != "0":
            text = head + tail
        else:
            text = head + "." + tail

    try:
        return float(text)
    except ValueError:
        return None


def canonical_length_unit(unit: str | None) -> str | None:
    if not unit:
        return None
    return LENGTH_ALIASES.get(unit.strip().lower().rstrip("."))


def canonical_weight_unit(unit: str | None) -> str | None:
    if not unit:
        return None
    return WEIGHT_ALIASES.get(unit.strip().lower().rstrip("."))


def to_meters(value: float, unit: str | None) -> float | None:
    """Convert a length to meters, rounded to 3 decimals."""
    canonical = canonical_length_unit(unit) if unit else "m"
    if canonical is None or value is None:
        return None
    return round(value * LENGTH_MULTIPLIERS[canonical], 3)


def from_meters(value: float, unit: str) -> float | None:
    canonical = canonical_length_unit(unit)
    if canonical is None or value is None:
        return None
    return value / LENGTH_MULTIPLIERS[canonical]


def to_kilograms(value: float, unit: str | None) -> float | None:
    canonical = canonical_weight_unit(unit) if unit else "kg"
    if canonical is None or value is None:
        return None
    return round(value * WEIGHT_MULTIPLIERS[canonical], 2)


def normalize_currency(token: str | None) -> str | None:
    """Map a currency symbol, word or code to its ISO code."""
    if not token:
        return None
    token = token.strip()
    if token in CURRENCY_SYMBOLS:
        return CURRENCY_SYMBOLS[token]
    lowered = token.lower()
    if lowered in CURRENCY_SYMBOLS:
        return CURRENCY_SYMBOLS[lowered]
    upper = token.upper()
    if upper in ISO_CURRENCIES:
        return upper
    return None


def normalize_email(raw: str | None) -> str | None:
    """Lower-case and RFC-validate an address. Returns None if invalid."""
    if not raw:
        return None
    candidate = raw.strip().strip("<>").strip().lower()
    if candidate.startswith("mailto:"):
        candidate = candidate[len("mailto:"):]
    try:
        info = validate_email(candidate, check_deliverability=False)
    except EmailNotValidError:
        return None
    return info.normalized.lower()


def is_generic_mailbox(email: str | None) -> bool:
    if not email or "@" not in email:
        return False
    local = email.split("@", 1)[0].lower()
    return local in GENERIC_MAILBOXES


def email_domain(email: str | None) -> str | None:
    if not email or "@" not in email:
        return None
    return email.rsplit("@", 1)[1].lower()


def company_from_domain(email: str | None) -> str | None:
    """Infer a company name from a non-freemail email domain."""
    domain = email_domain(email)
    if not domain or domain in FREEMAIL_DOMAINS:
        return None
    labels = domain.split(".")
    if len(labels) < 2:
        return None
    # Drop TLD and second-level public suffixes like co.uk
    core = labels[-3] if len(labels) >= 3 and labels[-2] in ("co", "com", "org", "net") else labels[-2]
    words = re.split(r"[-_]", core)
    return " ".join(w.capitalize() for w in words if w) or None


def normalize_phone(raw: str | None) -> str | None:
    """Strip to digits and a leading plus. 00 prefix becomes +."""
    if not raw:
        return None
    text = str(raw).strip()
    plus = text.startswith("+")
    digits = re.sub(r"\D", "", text)
    if not plus and digits.startswith("00"):
        digits = digits[2:]
        plus = True
    if not digits:
        return None
    return ("+" if plus else "") + digits


def is_plausible_phone(normalized: str | None) -> bool:
    """Digit count within international bounds and not a degenerate run."""
    if not normalized:
        return False
    digits = normalized.lstrip("+")
    if not 7 <= len(digits) <= 15:
        return False
    if len(set(digits)) == 1:
        return False
    return True


def normalize_person_name(raw: str | None) -> str | None:
    """Title-case a person name with honorifics and signature phrases removed."""
    if not raw:
        return None
    text = SIGNATURE_ARTIFACTS.sub(" ", str(raw))
    text = re.sub(r"[\r\n\t]+", " ", text)
    text = re.sub(r"[^\w\s'\-.]", " ", text)
    words = [w for w in text.split() if w]
    while words and words[0].lower().rstrip(".") in HONORIFICS:
        words.pop(0)
    words = [w.strip(".-'") for w in words]
    words = [w for w in words if w]
    if not words:
        return None
    return " ".join(_title_word(w) for w in words)


def _title_word(word: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in word.split("-"))


def normalize_company_name(raw: str | None) -> str | None:
    """Collapse whitespace and trim punctuation. Case is preserved."""
    if not raw:
        return None
    text = re.sub(r"\s+", " ", str(raw)).strip(" \t,;:-.")
    return text or None


def is_valid_vin(raw: str | None) -> bool:
    """17 characters from the VIN alphabet (no I, O, Q), mixing letters and digits."""
    if not raw:
        return False
    candidate = raw.strip().upper()
    if not VIN_ALPHABET.match(candidate):
        return False
    return bool(re.search(r"\d", candidate)) and bool(re.search(r"[A-Z]", candidate))
