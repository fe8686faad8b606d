"""HTML/CSS stripping and whitespace normalization for email bodies."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment

BULLET = "• "

_DROP_TAGS = ["script", "style", "head", "title", "meta", "link", "noscript"]
_BLOCK_TAGS = [
    "p", "div", "section", "article", "header", "footer", "blockquote", "pre",
    "h1", "h2", "h3", "h4", "h5", "h6", "table", "tr", "ul", "ol", "hr",
]
# Paragraph-like blocks get a blank line after them, the rest a single break.
_PARAGRAPH_TAGS = {"p", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "table", "ul", "ol"}

_CSS_IMPORT_RE = re.compile(r"@import[^;]+;", re.IGNORECASE)
_CSS_BLOCK_RE = re.compile(r"\{[^{}]*\}")
_INLINE_WS_RE = re.compile(r"[^\S\n]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")

# Escaped markup decodes into new markup; re-run until the text stops changing.
_MAX_PASSES = 8


def _looks_like_markup(text: str) -> bool:
    return "<" in text or "&" in text


def _collapse_whitespace(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\u200b", "")
    lines = [_INLINE_WS_RE.sub(" ", line).strip() for line in text.split("\n")]
    return _BLANK_RUN_RE.sub("\n\n", "\n".join(lines)).strip()


def _html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_DROP_TAGS):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    for br in soup.find_all("br"):
        br.replace_with("\n")
    for li in soup.find_all("li"):
        li.insert_before("\n" + BULLET)
    for block in soup.find_all(_BLOCK_TAGS):
        block.insert_before("\n")
        block.insert_after("\n\n" if block.name in _PARAGRAPH_TAGS else "\n")

    return soup.get_text()


def _normalize_once(raw: str) -> str:
    text = _CSS_IMPORT_RE.sub("", raw)
    if _looks_like_markup(text):
        text = _html_to_text(text)
    text = _CSS_BLOCK_RE.sub("", text)
    return _collapse_whitespace(text)


def normalize_html(raw: str) -> str:
    """Convert a raw (possibly HTML) email body into readable plain text.

    Style/script/head content and comments are dropped, block elements and
    ``<br>`` become line breaks, list items become bulleted lines, entities
    are decoded, and whitespace runs collapse to single spaces with at most
    one blank line between paragraphs. Escaped markup such as
    ``&lt;b&gt;`` is decoded and stripped as well, so the result is a fixed
    point: ``normalize_html(normalize_html(x)) == normalize_html(x)``.
    """
    if not raw:
        return ""
    text = _normalize_once(raw)
    for _ in range(_MAX_PASSES):
        again = _normalize_once(text)
        if again == text:
            break
        text = again
    return text


def normalize_text(raw: str) -> str:
    """Lower-cased :func:`normalize_html` output, used for phrase matching."""
    return normalize_html(raw).lower()
