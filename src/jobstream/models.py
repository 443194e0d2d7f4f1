"""Listing data contract and pipeline result types.

A listing is built in two stages.  The listing page yields a
:class:`ListingDraft` (id, title, company); the detail view completes it
into a :class:`ListingRecord`.  The publishable invariant is checked once,
when the record is constructed, instead of by field presence later on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from jobstream.errors import ActionableError
from jobstream.identity import compute_identity

# Stream entry field order, fixed for reproducibility
STREAM_FIELDS = ("jobId", "title", "datePosted", "company", "content")


class PublishOutcome(StrEnum):
    """Result of offering one record to the dedup-publish gateway."""

    PUBLISHED = "published"
    DUPLICATE = "duplicate"


class GroupCreateResult(StrEnum):
    """Result of consumer-group bootstrap.  Other failures raise."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


def _is_iso_date(value: str) -> bool:
    try:
        return date.fromisoformat(value).isoformat() == value
    except ValueError:
        return False


@dataclass(frozen=True)
class ListingRecord:
    """A fully extracted, normalized listing ready for publication.

    Construction fails with a VALIDATION error unless ``title`` and
    ``content`` are non-empty and ``date_posted`` is either ``""`` or an
    ISO calendar date.
    """

    external_id: str
    title: str
    date_posted: str
    company: str
    content: str

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise ActionableError.validation(
                "title",
                f"listing '{self.external_id}' has an empty title after normalization",
            )
        if not self.content.strip():
            raise ActionableError.validation(
                "content",
                f"listing '{self.external_id}' has empty content after normalization",
            )
        if self.date_posted and not _is_iso_date(self.date_posted):
            raise ActionableError.validation(
                "date_posted",
                f"'{self.date_posted}' is not an ISO calendar date (YYYY-MM-DD)",
            )

    @property
    def identity(self) -> str:
        return compute_identity(self.title, self.date_posted, self.company)

    def stream_fields(self) -> dict[str, str]:
        """Field mapping appended to the stream, in :data:`STREAM_FIELDS` order."""
        values = (self.external_id, self.title, self.date_posted, self.company, self.content)
        return dict(zip(STREAM_FIELDS, values, strict=True))


@dataclass(frozen=True)
class ListingDraft:
    """What the listing page knows about a listing before its detail is read."""

    external_id: str
    title: str
    company: str

    def complete(self, *, content: str, date_posted: str) -> ListingRecord:
        """Combine with the detail-view fields into a publishable record."""
        return ListingRecord(
            external_id=self.external_id,
            title=self.title,
            date_posted=date_posted,
            company=self.company,
            content=content,
        )


@dataclass
class RunResult:
    """Counters from one scrape run, consumed by the CLI summary."""

    pages_visited: int = 0
    listings_seen: int = 0
    published: int = 0
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0
    undated: int = 0
    unfiltered_total: int = -1
    filtered_total: int = -1
    published_ids: list[str] = field(default_factory=list)
    error: ActionableError | None = None

    @property
    def aborted(self) -> bool:
        """True when a fatal failure abandoned the traversal."""
        return self.error is not None
