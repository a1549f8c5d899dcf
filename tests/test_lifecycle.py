"""Tests for browsecrawl.lifecycle module."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from browsecrawl.lifecycle import (
    BrowserSession,
    PageLifecycleManager,
    with_timeout,
)


def _build_playwright_mocks():
    """Build a full set of Playwright mocks."""
    mock_context = AsyncMock()
    mock_context.new_page = AsyncMock(return_value=MagicMock())

    mock_browser = AsyncMock()
    mock_browser.new_context = AsyncMock(return_value=mock_context)
    mock_browser.close = AsyncMock()

    mock_pw = MagicMock()
    mock_pw.chromium = MagicMock()
    mock_pw.chromium.launch = AsyncMock(return_value=mock_browser)

    mock_pw_cm = AsyncMock()
    mock_pw_cm.__aenter__ = AsyncMock(return_value=mock_pw)
    mock_pw_cm.__aexit__ = AsyncMock(return_value=None)

    return mock_pw_cm, mock_pw, mock_browser, mock_context


class TestWithTimeout:
    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def work():
            return 42

        assert await with_timeout(work(), 1.0, "Work") == 42

    @pytest.mark.asyncio
    async def test_deadline_names_operation(self):
        with pytest.raises(TimeoutError, match="Close page timed out after 10ms"):
            await with_timeout(asyncio.sleep(1), 0.01, "Close page")

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        async def broken():
            raise ValueError("nope")

        with pytest.raises(ValueError, match="nope"):
            await with_timeout(broken(), 1.0, "Work")


class TestPageLifecycleManager:
    @pytest.mark.asyncio
    async def test_acquire_opens_owned_tab(self, context):
        page, owned = await PageLifecycleManager(context).acquire()

        assert owned is True
        assert context.pages == [page]

    @pytest.mark.asyncio
    async def test_acquire_reuses_parent(self, context):
        manager = PageLifecycleManager(context)
        parent, _ = await manager.acquire()

        page, owned = await manager.acquire(parent)

        assert page is parent
        assert owned is False
        assert len(context.pages) == 1

    @pytest.mark.asyncio
    async def test_release_closes_owned_tab(self, context):
        manager = PageLifecycleManager(context)
        page, owned = await manager.acquire()

        await manager.release(page, owned)

        assert page.close_calls == 1

    @pytest.mark.asyncio
    async def test_release_leaves_borrowed_tab_open(self, context):
        manager = PageLifecycleManager(context)
        parent, _ = await manager.acquire()
        page, owned = await manager.acquire(parent)

        await manager.release(page, owned)

        assert parent.close_calls == 0

    @pytest.mark.asyncio
    async def test_release_none_is_noop(self, context):
        await PageLifecycleManager(context).release(None, True)

    @pytest.mark.asyncio
    async def test_hanging_close_only_warns(self, context, caplog):
        context.close_delay = 1.0
        manager = PageLifecycleManager(context, close_timeout=0.01)
        page, owned = await manager.acquire()

        with caplog.at_level(logging.WARNING, logger="browsecrawl.lifecycle"):
            await manager.release(page, owned)

        assert "Could not close page" in caplog.text
        assert "timed out after 10ms" in caplog.text

    @pytest.mark.asyncio
    async def test_failing_close_only_warns(self, context, caplog):
        manager = PageLifecycleManager(context)
        page, owned = await manager.acquire()
        page.close = AsyncMock(side_effect=RuntimeError("Target closed"))

        with caplog.at_level(logging.WARNING, logger="browsecrawl.lifecycle"):
            await manager.release(page, owned)

        assert "Could not close page: Target closed" in caplog.text


class TestBrowserSession:
    @pytest.mark.asyncio
    async def test_playwright_not_installed(self):
        """Should raise RuntimeError if playwright is missing."""
        with patch.dict(
            "sys.modules", {"playwright": None, "playwright.async_api": None}
        ):
            with pytest.raises(RuntimeError, match="Playwright is required"):
                await BrowserSession().start()

    @pytest.mark.asyncio
    async def test_start_and_close(self):
        mock_pw_cm, mock_pw, mock_browser, mock_context = _build_playwright_mocks()

        with patch(
            "playwright.async_api.async_playwright", return_value=mock_pw_cm
        ):
            async with BrowserSession(
                headless=False, viewport={"width": 800, "height": 600}
            ) as session:
                assert session.context is mock_context
                manager = session.page_manager()
                assert manager.context is mock_context

        mock_pw.chromium.launch.assert_awaited_once()
        assert mock_pw.chromium.launch.await_args.kwargs["headless"] is False
        mock_browser.new_context.assert_awaited_once_with(
            viewport={"width": 800, "height": 600}
        )
        mock_browser.close.assert_awaited_once()
        mock_pw_cm.__aexit__.assert_awaited_once()
        assert session.context is None

    @pytest.mark.asyncio
    async def test_failed_launch_stops_driver(self):
        mock_pw_cm, mock_pw, _, _ = _build_playwright_mocks()
        mock_pw.chromium.launch = AsyncMock(side_effect=RuntimeError("no chromium"))

        with patch(
            "playwright.async_api.async_playwright", return_value=mock_pw_cm
        ):
            with pytest.raises(RuntimeError, match="no chromium"):
                async with BrowserSession():
                    pass

        mock_pw_cm.__aexit__.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_context_closes_browser(self):
        mock_pw_cm, _, mock_browser, _ = _build_playwright_mocks()
        mock_browser.new_context = AsyncMock(side_effect=RuntimeError("bad viewport"))

        with patch(
            "playwright.async_api.async_playwright", return_value=mock_pw_cm
        ):
            session = BrowserSession()
            with pytest.raises(RuntimeError, match="bad viewport"):
                await session.start()

        mock_browser.close.assert_awaited_once()
        mock_pw_cm.__aexit__.assert_awaited_once()
        assert session.browser is None

    def test_page_manager_requires_start(self):
        with pytest.raises(RuntimeError, match="not been started"):
            BrowserSession().page_manager()

    @pytest.mark.asyncio
    async def test_hanging_close_is_logged(self, caplog):
        mock_pw_cm, _, mock_browser, _ = _build_playwright_mocks()

        async def hang():
            await asyncio.sleep(1)

        mock_browser.close = AsyncMock(side_effect=hang)

        with patch(
            "playwright.async_api.async_playwright", return_value=mock_pw_cm
        ):
            session = await BrowserSession().start()
            with caplog.at_level(logging.ERROR, logger="browsecrawl.lifecycle"):
                await session.close(timeout=0.01)

        assert "Unable to close browser session cleanly" in caplog.text
        assert session.browser is None
