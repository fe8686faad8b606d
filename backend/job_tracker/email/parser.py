"""Email MIME parsing: header decoding and raw body selection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.message import Message
from email.utils import parsedate_to_datetime
from typing import List, Optional


@dataclass(frozen=True)
class EmailRecord:
    """One inbound email as handed to the classification pipeline.

    ``content`` is the raw body and may still contain HTML; the pipeline
    normalizes it. ``sender`` is the decoded ``From`` header, possibly in
    ``"Name <addr>"`` form.
    """

    subject: str
    sender: str
    content: str
    date: Optional[datetime] = None
    message_id: Optional[str] = None


# Plain-text parts made of leftover CSS are worse than the HTML part.
_CSS_TOKENS = ["color:", "font-", "{", "}", "margin", "padding", "mso-", "-webkit-"]


def looks_like_css(text: str, threshold: int = 3) -> bool:
    """Return True if *text* reads like stylesheet residue rather than prose."""
    lowered = text.lower()
    return sum(1 for tok in _CSS_TOKENS if tok in lowered) >= threshold


def decode_mime_text(value: Optional[str]) -> str:
    """Decode a MIME-encoded header value to a plain string."""
    if not value:
        return ""
    try:
        return str(make_header(decode_header(value))).strip()
    except (HeaderParseError, UnicodeDecodeError, LookupError, ValueError):
        return value.strip()


def parse_date(date_raw: str) -> Optional[datetime]:
    """Parse a raw ``Date`` header into an aware UTC datetime, or None."""
    if not date_raw:
        return None
    try:
        dt = parsedate_to_datetime(date_raw)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _decode_payload(part: Message) -> str:
    payload = part.get_payload(decode=True) or b""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def extract_raw_body(msg: Message) -> str:
    """Return the best body representation: plain text, else the raw HTML."""
    plain_parts: List[str] = []
    html_parts: List[str] = []

    parts = msg.walk() if msg.is_multipart() else [msg]
    for part in parts:
        ctype = part.get_content_type()
        if "attachment" in str(part.get("Content-Disposition", "")).lower():
            continue
        if ctype == "text/plain":
            plain_parts.append(_decode_payload(part))
        elif ctype == "text/html":
            html_parts.append(_decode_payload(part))

    plain_text = "\n".join(p for p in plain_parts if p)
    html_text = "\n".join(p for p in html_parts if p)
    if plain_text.strip() and not looks_like_css(plain_text):
        return plain_text
    return html_text or plain_text


def _extract_message_id(msg: Message) -> Optional[str]:
    raw = msg.get("Message-ID", "") or msg.get("Message-Id", "")
    cleaned = str(raw).strip().strip("<>").strip()
    return cleaned or None


def parse_email_message(msg: Message) -> EmailRecord:
    """Parse a stdlib ``email.message.Message`` into an :class:`EmailRecord`."""
    return EmailRecord(
        subject=decode_mime_text(msg.get("Subject", "")),
        sender=decode_mime_text(msg.get("From", "")),
        content=extract_raw_body(msg),
        date=parse_date(decode_mime_text(msg.get("Date", ""))),
        message_id=_extract_message_id(msg),
    )
