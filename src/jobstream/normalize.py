"""Content normalization: raw listing markup and date text to canonical form.

Everything here is pure and deterministic.  The same markup always yields
the same text, which keeps downstream identities stable across re-renders.
"""

from __future__ import annotations

import re
from datetime import datetime
from html.parser import HTMLParser

from jobstream.logging import logger
from jobstream.text import printable_ascii

# Elements dropped together with everything inside them
_SKIPPED_TAGS = frozenset({"script", "style", "noscript", "template"})

# Elements whose start and end mark a line boundary in the output
_BLOCK_TAGS = frozenset(
    {
        "p", "div", "section", "article", "header", "footer",
        "h1", "h2", "h3", "h4", "h5", "h6",
        "ul", "ol", "li", "table", "caption", "tr", "td", "th",
        "dl", "dt", "dd", "blockquote", "pre", "hr",
    }
)

_LINE_BREAK = "\n"

# Formats tried in order by normalize_date
_DATE_FORMATS = (
    "%b %d, %Y",  # Jan 5, 2024
    "%B %d, %Y",  # January 5, 2024
    "%b %d %Y",
    "%d %b %Y",  # 5 Jan 2024
    "%d %B %Y",
    "%Y-%m-%d",
    "%m/%d/%Y",
)

_DATE_PREFIX = re.compile(r"^\s*date\s+posted\s*:?\s*", re.IGNORECASE)

# "Jan. 5, 2024": the abbreviation period is not part of any strptime format
_MONTH_PERIOD = re.compile(r"^([A-Za-z]{3,9})\.")


# ---------------------------------------------------------------------------
# HTML → plain-text
# ---------------------------------------------------------------------------


class _ContentExtractor(HTMLParser):
    """Collects text data, emitting a line break at block boundaries."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag == "br" or tag in _BLOCK_TAGS:
            self._parts.append(_LINE_BREAK)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag == "br" or tag in _BLOCK_TAGS:
            self._parts.append(_LINE_BREAK)

    def handle_endtag(self, tag: str) -> None:
        if tag in _SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in _BLOCK_TAGS:
            self._parts.append(_LINE_BREAK)

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        # Source newlines are formatting, not content boundaries
        self._parts.append(re.sub(r"\s", " ", data))

    def get_text(self) -> str:
        return "".join(self._parts)


def _collapse_lines(text: str) -> str:
    """Collapse whitespace within each line and drop blank lines."""
    lines = (re.sub(r" {2,}", " ", line).strip() for line in text.split(_LINE_BREAK))
    return _LINE_BREAK.join(line for line in lines if line)


def normalize_content(raw_markup: str) -> str:
    """Convert raw listing markup to canonical plain text.

    Script and style blocks are removed with their contents.  Paragraph,
    heading and table-cell boundaries become line breaks, remaining tags are
    stripped and entities decoded.  Whitespace runs collapse to single
    spaces within a line, characters outside printable ASCII are dropped,
    and the result is trimmed.

    >>> normalize_content("<p>Hello &amp; welcome</p>")
    'Hello & welcome'
    """
    if not raw_markup:
        return ""
    extractor = _ContentExtractor()
    extractor.feed(raw_markup)
    extractor.close()
    return _collapse_lines(printable_ascii(extractor.get_text()))


def normalize_title(raw_title: str) -> str:
    """Canonical single-line form of plain text read from the listing page."""
    text = re.sub(r"\s+", " ", raw_title or "")
    return re.sub(r" {2,}", " ", printable_ascii(text)).strip()


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def normalize_date(raw_date_text: str | None) -> str:
    """Parse a human-readable posting date into ``YYYY-MM-DD``.

    A leading ``"Date posted"`` label is tolerated.  Absent or unparseable
    input returns ``""`` and logs a warning; this never raises.

    >>> normalize_date("Jan 5, 2024")
    '2024-01-05'
    """
    if raw_date_text is None or not raw_date_text.strip():
        logger.warning("No posted date found; datePosted left empty")
        return ""

    text = _DATE_PREFIX.sub("", re.sub(r"\s+", " ", raw_date_text)).strip()
    text = _MONTH_PERIOD.sub(r"\1", text)
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    logger.warning("Unparseable posted date %r; datePosted left empty", raw_date_text)
    return ""
