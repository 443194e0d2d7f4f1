"""Pipeline runner: store bootstrap, browser session, traversal.

The PipelineRunner ties the pieces together for one run:

1. Connect to Redis and ping it (fail fast before any browser work)
2. Ensure the consumer group exists on the stream
3. Open a browser session and wrap its page as a rendering surface
4. Drive the pagination controller over every result page

The runner owns lifecycles; all traversal and publication logic lives in
the controller and gateway it constructs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from jobstream.export.raw_content import RawContentWriter
from jobstream.logging import set_debug
from jobstream.publish.gateway import DedupPublishGateway
from jobstream.publish.store import RedisStreamStore
from jobstream.scraper.controller import PaginationController
from jobstream.scraper.session import SessionConfig, SessionManager
from jobstream.scraper.surface import PlaywrightSurface

if TYPE_CHECKING:
    from jobstream.config import Settings
    from jobstream.models import GroupCreateResult, RunResult
    from jobstream.publish.store import StreamStore
    from jobstream.scraper.surface import RenderingSurface

logger = logging.getLogger(__name__)


class PipelineRunner:
    """Top-level orchestrator for a scrape-and-publish run.

    *store* defaults to a :class:`RedisStreamStore` for
    ``settings.stream.redis_url``; the runner closes stores it created.
    """

    def __init__(self, settings: Settings, *, store: StreamStore | None = None) -> None:
        self._settings = settings
        self._owns_store = store is None
        self._store: StreamStore = store or RedisStreamStore.from_url(settings.stream.redis_url)
        self._gateway = DedupPublishGateway(self._store, settings.stream)
        set_debug(settings.debug)

    @property
    def gateway(self) -> DedupPublishGateway:
        return self._gateway

    async def init_group(self) -> GroupCreateResult:
        """Bootstrap the consumer group only."""
        try:
            await self._ping()
            return await self._gateway.ensure_group()
        finally:
            await self._close_store()

    async def run(self, *, surface: RenderingSurface | None = None) -> RunResult:
        """Execute a full traversal.

        Args:
            surface: Drive this surface instead of launching a browser.

        Returns:
            The controller's :class:`RunResult`.

        Raises:
            ActionableError: CONNECTION when Redis is unreachable at startup,
                or STORE when the consumer group cannot be created.
        """
        try:
            await self._ping()
            await self._gateway.ensure_group()

            if surface is not None:
                return await self._traverse(surface)

            scraper = self._settings.scraper
            config = SessionConfig(
                headless=scraper.headless,
                stealth=scraper.stealth,
                default_timeout_ms=scraper.wait_timeout_ms,
            )
            async with SessionManager(config) as session:
                page = await session.new_page()
                return await self._traverse(
                    PlaywrightSurface(page, default_timeout_ms=scraper.wait_timeout_ms)
                )
        finally:
            await self._close_store()

    async def _traverse(self, surface: RenderingSurface) -> RunResult:
        raw_writer = None
        if self._settings.debug:
            raw_writer = RawContentWriter(self._settings.output.raw_content_dir)
            logger.debug("Debug mode: raw listing markup -> %s", self._settings.output.raw_content_dir)

        controller = PaginationController(
            surface,
            self._gateway,
            self._settings.scraper,
            raw_writer=raw_writer,
        )
        return await controller.run()

    async def _ping(self) -> None:
        if isinstance(self._store, RedisStreamStore):
            await self._store.ping()
            logger.info("Redis reachable at %s", self._settings.stream.redis_url)

    async def _close_store(self) -> None:
        if self._owns_store and isinstance(self._store, RedisStreamStore):
            await self._store.close()
