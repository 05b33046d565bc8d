"""Template substitution with cleanup of separators left by missing components."""

import re

from freight_intake.mapping.paths import is_blank

PLACEHOLDER = re.compile(r"\{([\w.]+)\}")

CLEANUP_RULES = (
    (re.compile(r"[ \t]+"), " "),
    (re.compile(r"\(\s*(?:,\s*)+"), "("),
    (re.compile(r"(?:\s*,)+\s*\)"), ")"),
    (re.compile(r"\(\s*\)|\[\s*\]"), ""),
    # Repeated separators from empty components: "1 x  x BMW", "A - - B"
    (re.compile(r"(\s[x×])(?:\s+[x×](?=\s))+"), r"\1"),
    (re.compile(r"\s([-/|])(?:\s+\1)+(?=\s|$)"), r" \1"),
    (re.compile(r"\s*,(?:\s*,)+"), ","),
    (re.compile(r"\s+,"), ","),
    (re.compile(r"^(?:\s*[-/|,:]\s*|\s*[x×]\s+)+"), ""),
    (re.compile(r"(?:\s*[-/|,:]|\s+[x×])+\s*$"), ""),
    (re.compile(r" {2,}"), " "),
)


def placeholders(template: str) -> list[str]:
    return PLACEHOLDER.findall(template or "")


def cleanup(text: str) -> str:
    for pattern, replacement in CLEANUP_RULES:
        text = pattern.sub(replacement, text)
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line).strip()


def render_template(template: str, values: dict) -> str:
    """Substitute {name} placeholders. Missing or blank values become empty."""

    def _sub(match: re.Match) -> str:
        value = values.get(match.group(1))
        if is_blank(value):
            return ""
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value)

    return cleanup(PLACEHOLDER.sub(_sub, template))
