"""Pagination controller for the Microsoft careers search.

Drives one rendering surface through the filtered result pages in site
order and hands every listing to the dedup-publish gateway:

1. **Apply filters**: open the search page, read the unfiltered total,
   pick the location and experience category, read the filtered total.
2. **Listing page loaded**: wait until the job list shows an item, then
   read the job-item labels (the site's listing ids) in page order.
3. **Per-listing detail**: for each item index, resolve that item's
   "See details" control, open it, read the detail markup and the posted
   date, publish, then go back and wait for the list again.
4. **Advance or terminate**: click "Go to next page" while it exists and
   is enabled.

A listing whose detail cannot be resolved or read is skipped with a
warning.  Any other surface failure abandons the traversal; entries
already published stay in the stream, and a re-run is safe because
publication is idempotent per identity.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from jobstream.errors import ActionableError, ErrorType, SurfaceError
from jobstream.logging import logger
from jobstream.models import ListingDraft, PublishOutcome, RunResult
from jobstream.normalize import normalize_content, normalize_date, normalize_title
from jobstream.scraper.session import throttle

if TYPE_CHECKING:
    from jobstream.config import ScraperConfig
    from jobstream.export.raw_content import RawContentWriter
    from jobstream.publish.gateway import DedupPublishGateway
    from jobstream.scraper.surface import RenderingSurface

# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------

_SELECTORS = {
    "results_status": 'div[role="status"][aria-live="polite"]:has-text("Showing")',
    "location_input": 'input[placeholder="City, state, or country/region"]',
    "location_option": '[role="listbox"] >> text="{location}"',
    "experience_filter": 'text="Experience"',
    "category_option": '[role="listbox"] >> text={category}',
    "list_ready": '[aria-label="job list"] [role="listitem"]',
    "job_items": 'div[aria-label^="Job item "]',
    "item_title": ".ms-List-cell >> nth={index} >> h2",
    "details_button": 'div[aria-label="{label}"] >> text="See details"',
    "detail_ready": 'text="Job number"',
    "detail_content": "#main-content",
    "date_posted": 'div:text-matches("^Date posted")',
    "next_page": '[aria-label="Go to next page"]',
}

_RESULTS_TOTAL = re.compile(r"of\s+([\d,]+)\s+results")
_DATE_POSTED = re.compile(r"Date posted\s*:?\s*([A-Za-z]{3,9}\.?\s+\d{1,2},\s+\d{4})")


class PaginationController:
    """Traverses all result pages once and publishes each listing.

    The controller has exclusive use of *surface* for the duration of
    :meth:`run`; calls are strictly sequential.

    Usage::

        controller = PaginationController(surface, gateway, settings.scraper)
        result = await controller.run()
    """

    def __init__(
        self,
        surface: RenderingSurface,
        gateway: DedupPublishGateway,
        config: ScraperConfig,
        *,
        raw_writer: RawContentWriter | None = None,
    ) -> None:
        self._surface = surface
        self._gateway = gateway
        self._config = config
        self._raw_writer = raw_writer
        # Position, reported when a run is abandoned
        self._stage = "starting"
        self._page_number = 0
        self._listing_index: int | None = None

    async def run(self) -> RunResult:
        """Apply filters, then walk every result page until "next" is disabled.

        Never raises for surface or store-connection failures: they are
        logged and returned in :attr:`RunResult.error`.
        """
        result = RunResult()
        try:
            await self._apply_filters(result)
            self._page_number = 1
            while True:
                await self._process_page(result)
                result.pages_visited += 1

                if self._config.max_pages and self._page_number >= self._config.max_pages:
                    logger.info("Reached max_pages=%d; stopping", self._config.max_pages)
                    break
                if not await self._advance():
                    break
                self._page_number += 1
        except SurfaceError as exc:
            result.error = ActionableError.render(
                self._stage,
                str(exc),
                page_number=self._page_number or None,
                listing_index=self._listing_index,
                transient=exc.transient,
            )
            logger.error(
                "Traversal abandoned during %s (page %d, listing %s): %s",
                self._stage,
                self._page_number,
                "-" if self._listing_index is None else self._listing_index + 1,
                exc,
            )
        except ActionableError as exc:
            if exc.error_type is not ErrorType.CONNECTION:
                raise
            result.error = exc
            logger.error(
                "Store unreachable on page %d, listing %s; traversal abandoned: %s",
                self._page_number,
                "-" if self._listing_index is None else self._listing_index + 1,
                exc.error,
            )

        logger.info(
            "Run finished: %d page(s), %d listing(s) seen, %d published, "
            "%d duplicate(s), %d skipped, %d failed",
            result.pages_visited,
            result.listings_seen,
            result.published,
            result.duplicates,
            result.skipped,
            result.failed,
        )
        return result

    # -- filters -------------------------------------------------------------

    async def _apply_filters(self, result: RunResult) -> None:
        self._stage = "applying filters"
        await self._surface.navigate(self._config.target_url)
        result.unfiltered_total = await self._results_total(filtered=False)

        location = self._config.location_filter
        await self._surface.fill(_SELECTORS["location_input"], location)
        await self._surface.click(_SELECTORS["location_option"].format(location=location))

        await self._surface.click(_SELECTORS["experience_filter"])
        await self._surface.click(
            _SELECTORS["category_option"].format(category=self._config.category_filter)
        )
        await self._surface.wait_for_idle()

        result.filtered_total = await self._results_total(filtered=True)

        # The site's counts are advisory; a filtered total above the
        # unfiltered one means the filters did not apply.
        if (
            result.unfiltered_total >= 0
            and result.filtered_total >= 0
            and result.filtered_total > result.unfiltered_total
        ):
            logger.warning(
                "Results mismatch: filtered total %d exceeds unfiltered total %d",
                result.filtered_total,
                result.unfiltered_total,
            )

    async def _results_total(self, *, filtered: bool) -> int:
        """Parse "Showing x-y of z results"; -1 when it cannot be read."""
        label = "Filtered" if filtered else "Unfiltered"
        try:
            text = await self._surface.read_text(_SELECTORS["results_status"])
        except SurfaceError as exc:
            logger.warning("%s results total unavailable: %s", label, exc)
            return -1

        match = _RESULTS_TOTAL.search(text)
        if match is None:
            logger.warning('"Showing x-y of z results" text not found in %r', text)
            return -1

        total = int(match.group(1).replace(",", ""))
        logger.debug("%s results: %d", label, total)
        return total

    # -- pages ---------------------------------------------------------------

    async def _wait_for_list(self) -> None:
        await self._surface.wait_for_visible(
            _SELECTORS["list_ready"],
            timeout_ms=self._config.wait_timeout_ms,
        )

    async def _process_page(self, result: RunResult) -> None:
        self._stage = "loading listing page"
        self._listing_index = None
        await self._wait_for_list()

        labels = await self._read_labels()
        logger.info("Page %d: %d listing(s)", self._page_number, len(labels))

        for index, label in enumerate(labels):
            if index:
                await throttle(self._config.rate_limit_seconds)
            self._listing_index = index
            await self._process_listing(index, label, result)
        self._listing_index = None

    async def _read_labels(self) -> list[str]:
        """Job-item ``aria-label`` values in page order; ``""`` when absent."""
        labels: list[str] = []
        for raw_label in await self._surface.read_attributes(_SELECTORS["job_items"], "aria-label"):
            label = (raw_label or "").strip()
            if not label:
                logger.warning('Empty "Job item" label on page %d', self._page_number)
            else:
                logger.debug(label)
            labels.append(label)
        return labels

    async def _advance(self) -> bool:
        """Click "next page" if it exists and is enabled; return whether it did."""
        self._stage = "advancing to next page"
        next_selector = _SELECTORS["next_page"]

        if await self._surface.count(next_selector) == 0:
            logger.info("No next-page control on page %d; done", self._page_number)
            return False

        disabled = await self._surface.read_attribute(next_selector, "disabled")
        aria_disabled = await self._surface.read_attribute(next_selector, "aria-disabled")
        if disabled is not None or aria_disabled == "true":
            logger.info("Next-page control disabled on page %d; done", self._page_number)
            return False

        await self._surface.click(next_selector)
        await self._surface.wait_for_idle()
        return True

    # -- listings ------------------------------------------------------------

    async def _process_listing(self, index: int, label: str, result: RunResult) -> None:
        self._stage = "listing detail"
        result.listings_seen += 1
        position = f"listing {index + 1} on page {self._page_number}"

        if not label:
            logger.warning("Skipping %s: no job-item label", position)
            result.skipped += 1
            return

        details = _SELECTORS["details_button"].format(label=label)
        try:
            raw_title = await self._surface.read_text(_SELECTORS["item_title"].format(index=index))
            if await self._surface.count(details) == 0:
                logger.warning('Skipping %s (%s): "See details" not found', position, label)
                result.skipped += 1
                return
            await self._surface.click(details)
        except SurfaceError as exc:
            logger.warning("Skipping %s (%s): %s", position, label, exc)
            result.skipped += 1
            return

        try:
            raw_markup, raw_date = await self._read_detail()
        except SurfaceError as exc:
            logger.warning("Skipping %s (%s): detail unreadable: %s", position, label, exc)
            result.skipped += 1
        else:
            draft = ListingDraft(
                external_id=label,
                title=normalize_title(raw_title),
                company=self._config.company,
            )
            await self._publish(draft, raw_markup, raw_date, position, result)

        self._stage = "returning to listing page"
        await self._surface.go_back()
        await self._wait_for_list()

    async def _read_detail(self) -> tuple[str, str | None]:
        """Return the detail region's markup and the raw posted-date text."""
        await self._surface.wait_for_visible(
            _SELECTORS["detail_ready"],
            timeout_ms=self._config.wait_timeout_ms,
        )
        markup = await self._surface.read_markup(_SELECTORS["detail_content"])

        if await self._surface.count(_SELECTORS["date_posted"]) == 0:
            return markup, None
        date_text = await self._surface.read_text(_SELECTORS["date_posted"])
        match = _DATE_POSTED.search(date_text)
        return markup, match.group(1) if match else date_text

    async def _publish(
        self,
        draft: ListingDraft,
        raw_markup: str,
        raw_date: str | None,
        position: str,
        result: RunResult,
    ) -> None:
        date_posted = normalize_date(raw_date)
        if not date_posted:
            result.undated += 1

        try:
            record = draft.complete(
                content=normalize_content(raw_markup),
                date_posted=date_posted,
            )
        except ActionableError as exc:
            logger.warning("Skipping %s (%s): %s", position, draft.external_id, exc.error)
            result.skipped += 1
            return

        logger.debug("Extracted %s: %r", position, record)
        if self._raw_writer is not None:
            self._raw_writer.write(record.external_id, raw_markup)

        try:
            outcome = await self._gateway.publish_if_new(record, record.identity)
        except ActionableError as exc:
            if exc.error_type is ErrorType.CONNECTION:
                raise
            logger.error(
                "Publish failed for %s (%s); not marked as published: %s",
                position,
                record.external_id,
                exc.error,
            )
            result.failed += 1
            return

        if outcome is PublishOutcome.PUBLISHED:
            result.published += 1
            result.published_ids.append(record.identity)
        else:
            result.duplicates += 1
