"""
RFC 822 email parsing.

Splits a message into protocol headers, the sender's own text and the
quoted reply history. The history becomes the low-trust "messages" source.
"""

import html
import logging
import re
from dataclasses import dataclass, field
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser

from freight_intake.exceptions import ExtractionFailed

logger = logging.getLogger("freight.fields")

# Lines that open a quoted previous message
REPLY_SEPARATORS = re.compile(
    r"^(?:"
    r"-{2,}\s*(?:Original Message|Forwarded message|Ursprüngliche Nachricht|Message d'origine|Oorspronkelijk bericht)\s*-{2,}"
    r"|On .{5,200} wrote:"
    r"|Am .{5,200} schrieb .{1,200}:"
    r"|Le .{5,200} a écrit\s?:"
    r"|Op .{5,200} schreef .{1,200}:"
    r")\s*$",
    re.IGNORECASE | re.MULTILINE,
)
QUOTED_FROM = re.compile(r"^\s*(?:From|Von|De|Van)\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE)
EMAIL_ADDRESS = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
WROTE_AUTHOR = re.compile(r"(?:wrote|schrieb|a écrit|schreef)", re.IGNORECASE)
TAGS = re.compile(r"<(?:script|style)[^>]*>.*?</(?:script|style)>|<[^>]+>", re.IGNORECASE | re.DOTALL)
BLOCK_TAGS = re.compile(r"<\s*(?:br|/p|/div|/tr|/li)\s*/?>", re.IGNORECASE)


@dataclass
class ParsedEmail:
    headers: dict = field(default_factory=dict)
    body: str = ""
    messages: list[dict] = field(default_factory=list)
    attachments: list[dict] = field(default_factory=list)

    @property
    def full_text(self) -> str:
        """Subject plus current body, the text handed to pattern extraction."""
        subject = self.headers.get("subject") or ""
        return f"{subject}\n\n{self.body}".strip()


def html_to_text(markup: str) -> str:
    text = BLOCK_TAGS.sub("\n", markup)
    text = TAGS.sub("", text)
    return html.unescape(text)


def parse_email(content: bytes) -> ParsedEmail:
    """Parse raw message bytes.

    Raises:
        ExtractionFailed: The bytes do not look like an email at all.
    """
    message: EmailMessage = BytesParser(policy=policy.default).parsebytes(content)
    if not any(message.get(h) for h in ("from", "subject", "to", "date")):
        raise ExtractionFailed("Not an RFC 822 message: no headers found")

    headers = {
        "from": str(message.get("from", "") or ""),
        "reply_to": str(message.get("reply-to", "") or ""),
        "to": str(message.get("to", "") or ""),
        "subject": str(message.get("subject", "") or ""),
        "date": str(message.get("date", "") or ""),
        "message_id": str(message.get("message-id", "") or ""),
    }
    headers = {k: v.strip() for k, v in headers.items() if v and v.strip()}

    body = _body_text(message)
    current, messages = split_history(body)

    attachments = []
    for part in message.iter_attachments():
        payload = part.get_payload(decode=True) or b""
        attachments.append({
            "filename": part.get_filename(),
            "content_type": part.get_content_type(),
            "size": len(payload),
        })

    return ParsedEmail(headers=headers, body=current, messages=messages, attachments=attachments)


def _body_text(message: EmailMessage) -> str:
    part = message.get_body(preferencelist=("plain", "html"))
    if part is None:
        return ""
    try:
        text = part.get_content()
    except (LookupError, UnicodeDecodeError) as e:
        logger.warning("Undecodable email body, using raw payload: %s", e)
        payload = part.get_payload(decode=True) or b""
        text = payload.decode("utf-8", errors="replace")
    if part.get_content_type() == "text/html":
        text = html_to_text(text)
    return text.replace("\r\n", "\n")


def split_history(body: str) -> tuple[str, list[dict]]:
    """Separate the sender's text from quoted earlier messages.

    Returns:
        (current text, [{"from": str, "content": str}, ...]) oldest message last.
    """
    separator = REPLY_SEPARATORS.search(body)
    if separator:
        current = body[:separator.start()]
        history = body[separator.start():]
    else:
        current, history = body, ""

    # ">"-quoted lines inside the current part also belong to history
    own_lines, quoted_lines = [], []
    for line in current.splitlines():
        (quoted_lines if line.lstrip().startswith(">") else own_lines).append(line)

    chunks = []
    if quoted_lines:
        chunks.append("\n".join(quoted_lines))
    if history:
        chunks.extend(c for c in REPLY_SEPARATORS.split(history) if c.strip())
        heads = REPLY_SEPARATORS.findall(history)
    else:
        heads = []

    messages = []
    for i, chunk in enumerate(chunks):
        content = "\n".join(re.sub(r"^\s*>+\s?", "", line) for line in chunk.splitlines()).strip()
        if not content:
            continue
        messages.append({"from": _quoted_author(chunk, heads, i - (1 if quoted_lines else 0)), "content": content})

    return "\n".join(own_lines).strip(), messages


def _quoted_author(chunk: str, heads: list[str], head_index: int) -> str:
    match = QUOTED_FROM.search(chunk)
    if match:
        return match.group(1).strip()
    if 0 <= head_index < len(heads):
        head = heads[head_index]
        address = EMAIL_ADDRESS.search(head)
        if address:
            return address.group(0)
        wrote = WROTE_AUTHOR.search(head)
        if wrote:
            # "On <date>, <name> wrote:" keeps the name after the last comma
            return head[:wrote.start()].rsplit(",", 1)[-1].strip()
    return ""
