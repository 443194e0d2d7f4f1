"""Playwright session manager and throttling.

Owns the browser lifecycle.  The controller receives a surface wrapping
one page and never launches browsers itself; one session means one page,
driven by one task at a time.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

from jobstream.logging import logger

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class SessionConfig:
    """Browser session configuration."""

    headless: bool = True
    user_agent: str | None = None
    viewport_width: int = 1440
    viewport_height: int = 900
    stealth: bool = False
    default_timeout_ms: int = 30_000


# ---------------------------------------------------------------------------
# Throttle
# ---------------------------------------------------------------------------


async def throttle(bounds: tuple[float, float]) -> float:
    """Sleep for a random duration within *bounds* (seconds).

    Returns the actual duration slept (useful for assertions).
    """
    lo, hi = bounds
    duration = random.uniform(lo, hi)
    if duration > 0:
        logger.debug("Throttle: sleeping %.2fs", duration)
        await asyncio.sleep(duration)
    return duration


# ---------------------------------------------------------------------------
# Session manager
# ---------------------------------------------------------------------------


class SessionManager:
    """Manages a Playwright Chromium session.

    Usage::

        async with SessionManager(config) as session:
            page = await session.new_page()
            surface = PlaywrightSurface(page)
    """

    def __init__(self, config: SessionConfig) -> None:
        self.config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    async def __aenter__(self) -> SessionManager:
        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
        )
        logger.info("Launched Chromium (headless=%s)", self.config.headless)

        self._context = await self._browser.new_context(
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
            user_agent=self.config.user_agent if self.config.user_agent else None,
        )
        self._context.set_default_timeout(self.config.default_timeout_ms)

        if self.config.stealth:
            from playwright_stealth import Stealth

            await Stealth().apply_stealth_async(self._context)
            logger.info("Stealth patches applied")

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        if self._context:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()

    async def new_page(self) -> Page:
        """Create a new page in the managed browser context."""
        if self._context is None:
            msg = "SessionManager not entered; use 'async with'"
            raise RuntimeError(msg)
        return await self._context.new_page()
