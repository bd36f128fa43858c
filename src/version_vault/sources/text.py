"""
Text cleanup shared by the source adapters.
"""

import html as html_lib
import re

from bs4 import BeautifulSoup

_TAG = re.compile(r"<[^>]+>")
_SCRIPT_STYLE = re.compile(r"<(script|style)\b[^>]*>.*?</\1>", re.DOTALL | re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_BLANK_LINES = re.compile(r"\n{3,}")
_INLINE_SPACE = re.compile(r"[ \t\r\f\v]+")

NOISE_TAGS = ["script", "style", "noscript", "iframe", "svg", "canvas", "template"]
BLOCK_TAGS = ["p", "div", "li", "tr", "h1", "h2", "h3", "h4", "h5", "h6", "pre", "blockquote"]


def normalize_whitespace(text: str) -> str:
    """Collapse all whitespace runs to single spaces."""
    return _WHITESPACE.sub(" ", text or "").strip()


def normalize_lines(text: str) -> str:
    """Trim each line and squeeze runs of blank lines, keeping line structure."""
    lines = [line.rstrip() for line in (text or "").replace("\r\n", "\n").split("\n")]
    return _BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()


def decode_entities(text: str) -> str:
    return html_lib.unescape(text or "")


def strip_tags(text: str) -> str:
    """Regex tag removal for fragments that don't merit a parser."""
    without_code = _SCRIPT_STYLE.sub(" ", text or "")
    return normalize_whitespace(decode_entities(_TAG.sub(" ", without_code)))


def html_to_text(html: str) -> str:
    """
    Visible text of an HTML fragment, one line per block.

    Line breaks and block elements become newlines and entities are
    decoded; scripts and other non-content tags are dropped.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(NOISE_TAGS):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(BLOCK_TAGS):
        block.append("\n")
    text = _INLINE_SPACE.sub(" ", soup.get_text())
    return normalize_lines("\n".join(line.strip() for line in text.split("\n")))


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Cut text to limit characters, appending suffix when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + suffix
