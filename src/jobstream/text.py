"""Shared text-processing utilities.

Pure functions with no domain dependencies, safe to import from any
layer (CLI, scraper, export).
"""

from __future__ import annotations

import re

MAX_SLUG_LEN = 80


def slugify(text: str, *, max_len: int = MAX_SLUG_LEN) -> str:
    """Convert *text* to a filesystem-safe slug.

    Lowercases, strips non-alphanumeric characters (except hyphens),
    collapses whitespace/underscores to single hyphens, and truncates
    to *max_len* characters.

    >>> slugify("Job item 1702345: Software Engineer (Redmond)")
    'job-item-1702345-software-engineer-redmond'
    """
    slug = text.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = slug.strip("-")
    return slug[:max_len]


def printable_ascii(text: str) -> str:
    """Drop every character outside printable ASCII, keeping newlines."""
    return "".join(ch for ch in text if ch == "\n" or " " <= ch <= "~")
