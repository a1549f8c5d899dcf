"""Browser session and tab lifecycle with bounded cleanup.

Tabs are Playwright pages opened in a single browser context. Whoever
acquires a tab learns whether it owns it; only owners ever close tabs,
and every close is raced against a deadline so one stuck tab cannot
stall the crawl.

Example usage:

    async with BrowserSession(headless=True) as session:
        pages = session.page_manager()
        page, owned = await pages.acquire()
        try:
            await page.goto("https://example.com")
        finally:
            await pages.release(page, owned)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional, Tuple, TypeVar

from .models import DEFAULT_VIEWPORT

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

PAGE_CLOSE_TIMEOUT = 5.0
SESSION_CLOSE_TIMEOUT = 10.0


async def with_timeout(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """Await ``awaitable`` but give up after ``timeout`` seconds.

    Raises:
        TimeoutError: If the deadline passes first. The message names the
            operation and the deadline in milliseconds.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise TimeoutError(
            f"{operation} timed out after {int(timeout * 1000)}ms"
        ) from exc


class PageLifecycleManager:
    """Acquire and release tabs with explicit ownership."""

    def __init__(self, context: Any, close_timeout: float = PAGE_CLOSE_TIMEOUT):
        self.context = context
        self.close_timeout = close_timeout

    async def acquire(self, parent: Optional[Any] = None) -> Tuple[Any, bool]:
        """Return ``(page, owned)``; a supplied parent stays owned by the caller."""
        if parent is not None:
            return parent, False
        page = await self.context.new_page()
        return page, True

    async def release(
        self, page: Any, owned: bool, timeout: Optional[float] = None
    ) -> None:
        """Close ``page`` if owned. Failures are logged, never raised."""
        if not owned or page is None:
            return
        limit = self.close_timeout if timeout is None else timeout
        try:
            await with_timeout(page.close(), limit, "Close page")
        except Exception as exc:
            LOGGER.warning("Could not close page: %s", exc)


class BrowserSession:
    """One Playwright browser with a single shared context."""

    def __init__(
        self,
        *,
        headless: bool = True,
        viewport: Optional[dict] = None,
        close_timeout: float = SESSION_CLOSE_TIMEOUT,
        page_close_timeout: float = PAGE_CLOSE_TIMEOUT,
    ):
        self.headless = headless
        self.viewport = dict(viewport or DEFAULT_VIEWPORT)
        self.close_timeout = close_timeout
        self.page_close_timeout = page_close_timeout
        self._playwright_cm: Any = None
        self._playwright: Any = None
        self.browser: Any = None
        self.context: Any = None

    async def start(self) -> "BrowserSession":
        try:
            from playwright.async_api import async_playwright
        except ImportError as exc:
            raise RuntimeError(
                "Playwright is required for crawling. "
                "Install it with: pip install playwright && playwright install chromium"
            ) from exc

        self._playwright_cm = async_playwright()
        self._playwright = await self._playwright_cm.__aenter__()
        try:
            self.browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--disable-blink-features=AutomationControlled"],
            )
            self.context = await self.browser.new_context(viewport=self.viewport)
        except BaseException:
            await self.close()
            raise
        LOGGER.info("Browser session ready (headless=%s)", self.headless)
        return self

    def page_manager(self) -> PageLifecycleManager:
        if self.context is None:
            raise RuntimeError("Browser session has not been started")
        return PageLifecycleManager(self.context, close_timeout=self.page_close_timeout)

    async def close(self, timeout: Optional[float] = None) -> None:
        """Tear down browser and driver under one deadline; warn on failure."""
        limit = self.close_timeout if timeout is None else timeout
        try:
            await with_timeout(self._shutdown(), limit, "Close browser session")
        except Exception as exc:
            LOGGER.error("Unable to close browser session cleanly: %s", exc)
        finally:
            self.browser = None
            self.context = None
            self._playwright = None
            self._playwright_cm = None

    async def _shutdown(self) -> None:
        if self.browser is not None:
            await self.browser.close()
        if self._playwright_cm is not None:
            await self._playwright_cm.__aexit__(None, None, None)

    async def __aenter__(self) -> "BrowserSession":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
