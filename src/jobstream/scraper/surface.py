"""Rendering surface boundary.

The controller only needs a handful of blocking page operations.  They are
expressed as the :class:`RenderingSurface` protocol so the traversal logic
can be driven by a real browser page or by a scripted fake in tests.

:class:`PlaywrightSurface` wraps an async Playwright ``Page`` and converts
Playwright failures into :class:`~jobstream.errors.SurfaceError`; timeouts
are flagged ``transient``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from jobstream.errors import SurfaceError
from jobstream.logging import logger

if TYPE_CHECKING:
    from playwright.async_api import Page


class RenderingSurface(Protocol):
    """Capability interface over one stateful browsing session.

    Every call blocks until the surface has done the work.  Implementations
    raise :class:`~jobstream.errors.SurfaceError` on failure.
    """

    async def navigate(self, url: str) -> None: ...

    async def wait_for_visible(self, selector: str, *, timeout_ms: int | None = None) -> None: ...

    async def read_text(self, selector: str) -> str: ...

    async def read_markup(self, selector: str) -> str: ...

    async def read_attribute(self, selector: str, name: str) -> str | None: ...

    async def fill(self, selector: str, value: str) -> None: ...

    async def click(self, selector: str) -> None: ...

    async def go_back(self) -> None: ...

    async def read_attributes(self, selector: str, name: str) -> list[str | None]:
        """Attribute *name* of every element matching *selector*, in document order."""
        ...

    async def count(self, selector: str) -> int: ...

    async def wait_for_idle(self) -> None:
        """Block until the surface has finished loading after an interaction."""
        ...


class PlaywrightSurface:
    """:class:`RenderingSurface` over a Playwright page.

    Selectors are Playwright selectors, so chained forms such as
    ``.ms-List-cell >> nth=3 >> h2`` work unchanged.  Reads target the
    first match.
    """

    def __init__(self, page: Page, *, default_timeout_ms: int = 30_000) -> None:
        self._page = page
        self._timeout = default_timeout_ms

    async def navigate(self, url: str) -> None:
        logger.debug("Navigating to %s", url)
        try:
            await self._page.goto(url, wait_until="domcontentloaded", timeout=self._timeout)
        except PlaywrightError as exc:
            raise _surface_error("navigate", url, exc) from exc

    async def wait_for_visible(self, selector: str, *, timeout_ms: int | None = None) -> None:
        try:
            await self._page.locator(selector).first.wait_for(
                state="visible",
                timeout=timeout_ms if timeout_ms is not None else self._timeout,
            )
        except PlaywrightError as exc:
            raise _surface_error("wait_for_visible", selector, exc) from exc

    async def read_text(self, selector: str) -> str:
        try:
            return await self._page.locator(selector).first.inner_text(timeout=self._timeout)
        except PlaywrightError as exc:
            raise _surface_error("read_text", selector, exc) from exc

    async def read_markup(self, selector: str) -> str:
        try:
            return await self._page.locator(selector).first.inner_html(timeout=self._timeout)
        except PlaywrightError as exc:
            raise _surface_error("read_markup", selector, exc) from exc

    async def read_attribute(self, selector: str, name: str) -> str | None:
        try:
            return await self._page.locator(selector).first.get_attribute(name, timeout=self._timeout)
        except PlaywrightError as exc:
            raise _surface_error("read_attribute", selector, exc) from exc

    async def fill(self, selector: str, value: str) -> None:
        try:
            await self._page.locator(selector).first.fill(value, timeout=self._timeout)
        except PlaywrightError as exc:
            raise _surface_error("fill", selector, exc) from exc

    async def click(self, selector: str) -> None:
        try:
            await self._page.locator(selector).first.click(timeout=self._timeout)
        except PlaywrightError as exc:
            raise _surface_error("click", selector, exc) from exc

    async def go_back(self) -> None:
        try:
            await self._page.go_back(wait_until="domcontentloaded", timeout=self._timeout)
        except PlaywrightError as exc:
            raise _surface_error("go_back", "", exc) from exc

    async def read_attributes(self, selector: str, name: str) -> list[str | None]:
        # Resolved in one page-side call; no element handles outlive it
        try:
            return await self._page.locator(selector).evaluate_all(
                "(elements, name) => elements.map((e) => e.getAttribute(name))",
                name,
            )
        except PlaywrightError as exc:
            raise _surface_error("read_attributes", selector, exc) from exc

    async def count(self, selector: str) -> int:
        try:
            return await self._page.locator(selector).count()
        except PlaywrightError as exc:
            raise _surface_error("count", selector, exc) from exc

    async def wait_for_idle(self) -> None:
        try:
            await self._page.wait_for_load_state("networkidle", timeout=self._timeout)
        except PlaywrightError as exc:
            raise _surface_error("wait_for_idle", "", exc) from exc


def _surface_error(operation: str, selector: str, exc: PlaywrightError) -> SurfaceError:
    return SurfaceError(
        operation,
        selector,
        exc.message,
        transient=isinstance(exc, PlaywrightTimeoutError),
    )
