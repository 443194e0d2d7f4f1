"""Raw listing markup dump for debugging extraction.

In debug mode every extracted listing's raw detail markup is written to
``<raw_content_dir>/<slug>.html`` so normalization problems can be
reproduced offline.  Files are overwritten on re-runs.
"""

from __future__ import annotations

import logging
from pathlib import Path

from jobstream.text import slugify

logger = logging.getLogger(__name__)


class RawContentWriter:
    """Writes one HTML file per listing.

    Usage::

        writer = RawContentWriter("data/raw_content")
        path = writer.write("Job item 1702345", "<div>...</div>")
    """

    def __init__(self, output_dir: str | Path) -> None:
        self._output_dir = Path(output_dir)

    def write(self, external_id: str, raw_markup: str) -> Path:
        """Write *raw_markup* and return the file path."""
        self._output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self._output_dir / f"{slugify(external_id) or 'listing'}.html"
        filepath.write_text(raw_markup, encoding="utf-8")
        logger.debug("Raw content saved to %s", filepath)
        return filepath
