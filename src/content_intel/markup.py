"""Markup Utility Module

Bounded, regex-based helpers for reading editorial markup fragments. This is
deliberately not an HTML parser; it supports exactly these operations:

  - ``strip_markup``: drop <script>/<style> blocks, drop every remaining tag,
    collapse whitespace runs to single spaces
  - ``extract_hrefs``: return the href targets of <a> elements, in order
  - ``paragraph_blocks``: return the inner markup of <p> elements, in order
  - ``word_count``: count whitespace-delimited tokens

Every helper accepts None and returns an empty result for it.
"""

import html
import re
from typing import List, Optional

# Regex patterns (define at module level for performance)
SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>[\s\S]*?</\1\s*>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
WHITESPACE_RE = re.compile(r"\s+")
ANCHOR_HREF_RE = re.compile(r"""<a\s+[^>]*?href\s*=\s*["']([^"']+)["'][^>]*>""", re.IGNORECASE)
PARAGRAPH_RE = re.compile(r"<p\b[^>]*>([\s\S]*?)</p\s*>", re.IGNORECASE)


def strip_markup(markup: Optional[str]) -> str:
    """Convert a markup fragment to single-spaced plain text.

    Steps:
    1. Remove <script> and <style> blocks including their content
    2. Replace every remaining tag with a space
    3. Unescape HTML entities (&amp; -> &)
    4. Collapse whitespace runs and trim
    """
    if not markup:
        return ""
    text = SCRIPT_STYLE_RE.sub(" ", markup)
    text = TAG_RE.sub(" ", text)
    text = html.unescape(text)
    return WHITESPACE_RE.sub(" ", text).strip()


def word_count(text: Optional[str]) -> int:
    if not text:
        return 0
    return len(text.split())


def extract_hrefs(markup: Optional[str]) -> List[str]:
    """Return anchor targets in document order (duplicates kept)."""
    if not markup:
        return []
    return [href.strip() for href in ANCHOR_HREF_RE.findall(markup)]


def paragraph_blocks(markup: Optional[str]) -> List[str]:
    """Return the inner markup of each <p> element in document order."""
    if not markup:
        return []
    return PARAGRAPH_RE.findall(markup)
