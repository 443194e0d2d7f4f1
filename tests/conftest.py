"""Global test configuration: shared fixtures and fakes.

This conftest provides:

1. **Settings factory**: ``make_settings`` builds a validated
   :class:`Settings` with zero throttling and output under ``tmp_path``.

2. **Store fixtures**: ``redis_server`` / ``redis_client`` give a
   per-test in-memory Redis (``fakeredis``), and ``store`` /
   ``gateway`` wire the real :class:`RedisStreamStore` and
   :class:`DedupPublishGateway` on top of it.  Only the network is fake.

3. **FakeSurface**: a scripted rendering surface that models the careers
   site (filters, paged job list, detail view, next-page control) and
   records what the controller did to it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import fakeredis
import pytest

from jobstream.config import OutputConfig, ScraperConfig, Settings, StreamConfig
from jobstream.errors import SurfaceError
from jobstream.publish.gateway import DedupPublishGateway
from jobstream.publish.store import RedisStreamStore
from jobstream.scraper.controller import _SELECTORS

STREAM = "jobs"
GROUP = "job-processors"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def make_settings(tmp_path: Path):
    """Factory fixture returning a callable that produces Settings.

    Usage::

        settings = make_settings()
        settings = make_settings(max_pages=2, debug=True)
    """

    def _factory(*, max_pages: int = 0, debug: bool = False) -> Settings:
        return Settings(
            scraper=ScraperConfig(
                target_url="https://careers.example.org/search",
                location_filter="United States",
                category_filter="Students and graduates",
                company="Microsoft",
                wait_timeout_ms=1_000,
                max_pages=max_pages,
                rate_limit_seconds=(0.0, 0.0),
            ),
            stream=StreamConfig(
                redis_url="redis://localhost:6379",
                stream_name=STREAM,
                group_name=GROUP,
                consumer_name="consumer-1",
            ),
            output=OutputConfig(
                raw_content_dir=str(tmp_path / "raw_content"),
                log_dir=str(tmp_path / "logs"),
            ),
            debug=debug,
        )

    return _factory


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@pytest.fixture
def redis_server() -> fakeredis.FakeServer:
    """One in-memory Redis server per test; clients on it share data."""
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(redis_server: fakeredis.FakeServer) -> fakeredis.FakeAsyncRedis:
    return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def store(redis_client: fakeredis.FakeAsyncRedis) -> RedisStreamStore:
    return RedisStreamStore(redis_client, url="redis://fake")


@pytest.fixture
def gateway(store: RedisStreamStore, make_settings) -> DedupPublishGateway:
    return DedupPublishGateway(store, make_settings().stream)


async def stream_entries(client: fakeredis.FakeAsyncRedis, stream: str = STREAM) -> list[dict[str, str]]:
    """All entry field mappings in the stream, oldest first."""
    return [fields for _entry_id, fields in await client.xrange(stream)]


# ---------------------------------------------------------------------------
# Fake rendering surface
# ---------------------------------------------------------------------------


@dataclass
class FakeListing:
    """One listing as the careers site would render it."""

    label: str
    title: str
    markup: str = "<p>Build things.</p>"
    date_text: str | None = "Jan 5, 2024"
    resolvable: bool = True
    unreadable: bool = False


def make_page(prefix: str, count: int = 3) -> list[FakeListing]:
    return [
        FakeListing(
            label=f"Job item {prefix}{i}",
            title=f"Engineer {prefix}{i}",
            markup=f"<h2>Engineer {prefix}{i}</h2><p>Role {prefix}{i} &amp; team.</p>",
        )
        for i in range(count)
    ]


@dataclass
class FakeSurface:
    """Scripted stand-in for the careers site.

    ``pages`` is the filtered result set; the next-page control is
    disabled on the last page.  ``fail_list_wait_on_page`` makes the list
    readiness wait time out on that (0-based) page.
    """

    pages: list[list[FakeListing]]
    unfiltered_total: int = 500
    filtered_total: int = 40
    has_next_control: bool = True
    fail_list_wait_on_page: int | None = None

    page_index: int = 0
    open_detail: FakeListing | None = None
    filters_applied: bool = False
    navigations: list[str] = field(default_factory=list)
    page_reads: list[int] = field(default_factory=list)
    clicks: list[str] = field(default_factory=list)
    filled: dict[str, str] = field(default_factory=dict)
    back_count: int = 0

    # -- helpers -------------------------------------------------------------

    @property
    def current(self) -> list[FakeListing]:
        return self.pages[self.page_index]

    def _listing_for(self, selector: str) -> FakeListing | None:
        match = re.search(r'aria-label="([^"]+)"', selector)
        label = match.group(1) if match else ""
        return next((item for item in self.current if item.label == label), None)

    @property
    def _on_last_page(self) -> bool:
        return self.page_index >= len(self.pages) - 1

    # -- RenderingSurface ----------------------------------------------------

    async def navigate(self, url: str) -> None:
        self.navigations.append(url)
        self.page_index = 0
        self.open_detail = None

    async def wait_for_visible(self, selector: str, *, timeout_ms: int | None = None) -> None:
        if selector == _SELECTORS["list_ready"]:
            if self.fail_list_wait_on_page == self.page_index:
                raise SurfaceError("wait_for_visible", selector, "Timeout exceeded", transient=True)
            if self.open_detail is not None or not self.current:
                raise SurfaceError("wait_for_visible", selector, "list not visible", transient=True)
        elif selector == _SELECTORS["detail_ready"] and self.open_detail is None:
            raise SurfaceError("wait_for_visible", selector, "detail not open", transient=True)

    async def read_text(self, selector: str) -> str:
        if selector == _SELECTORS["results_status"]:
            total = self.filtered_total if self.filters_applied else self.unfiltered_total
            return f"Showing 1-20 of {total:,} results"
        if selector == _SELECTORS["date_posted"] and self.open_detail is not None:
            return f"Date posted{self.open_detail.date_text}Job number 123"
        nth = re.search(r"nth=(\d+)", selector)
        if nth is not None and self.open_detail is None:
            return self.current[int(nth.group(1))].title
        raise SurfaceError("read_text", selector, "no element")

    async def read_markup(self, selector: str) -> str:
        if selector == _SELECTORS["detail_content"] and self.open_detail is not None:
            if self.open_detail.unreadable:
                raise SurfaceError("read_markup", selector, "detached", transient=True)
            return self.open_detail.markup
        raise SurfaceError("read_markup", selector, "no element")

    async def read_attribute(self, selector: str, name: str) -> str | None:
        if selector == _SELECTORS["next_page"] and name == "disabled":
            return "" if self._on_last_page else None
        return None

    async def fill(self, selector: str, value: str) -> None:
        self.filled[selector] = value

    async def click(self, selector: str) -> None:
        self.clicks.append(selector)
        if selector == _SELECTORS["category_option"].format(category="Students and graduates"):
            self.filters_applied = True
        elif selector == _SELECTORS["next_page"]:
            if self._on_last_page:
                raise SurfaceError("click", selector, "element is disabled")
            self.page_index += 1
        elif "See details" in selector:
            listing = self._listing_for(selector)
            if listing is None or not listing.resolvable:
                raise SurfaceError("click", selector, "no element")
            self.open_detail = listing

    async def go_back(self) -> None:
        self.back_count += 1
        self.open_detail = None

    async def read_attributes(self, selector: str, name: str) -> list[str | None]:
        if selector == _SELECTORS["job_items"] and name == "aria-label":
            self.page_reads.append(self.page_index)
            return [item.label or None for item in self.current]
        return []

    async def count(self, selector: str) -> int:
        if selector == _SELECTORS["next_page"]:
            return 1 if self.has_next_control else 0
        if selector == _SELECTORS["date_posted"]:
            return 1 if self.open_detail is not None and self.open_detail.date_text is not None else 0
        if "See details" in selector:
            listing = self._listing_for(selector)
            return 1 if listing is not None and listing.resolvable else 0
        return 0

    async def wait_for_idle(self) -> None:
        return None


@pytest.fixture
def make_surface():
    """Factory fixture: ``make_surface(pages, **overrides) -> FakeSurface``."""

    def _factory(pages: list[list[FakeListing]] | None = None, **kwargs: object) -> FakeSurface:
        return FakeSurface(pages=pages if pages is not None else [make_page("a")], **kwargs)  # type: ignore[arg-type]

    return _factory
