"""Content-addressed listing identity.

Identity depends only on ``title``, ``date_posted`` and ``company``.  The
site's own listing id and the body text are excluded on purpose: two renders
of the same listing must collapse to one identity even when the extracted
body differs slightly.
"""

from __future__ import annotations

import hashlib


def compute_identity(title: str, date_posted: str, company: str) -> str:
    """Return the SHA-256 hex digest of ``title + date_posted + company``.

    The fields are concatenated in that fixed order with no separator.

    >>> len(compute_identity("Software Engineer", "2024-01-05", "Microsoft"))
    64
    """
    payload = f"{title}{date_posted}{company}".encode()
    return hashlib.sha256(payload).hexdigest()
