"""Tests for browsecrawl.content module."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from browsecrawl.content import (
    build_markdown_generator,
    capture_page_artifacts,
    render_markdown,
)

ARTICLE_HTML = """
<html><body>
<main>
  <h1>Quarterly results</h1>
  <p>Revenue grew in every region during the third quarter, driven by strong
  demand for the new product line and better pricing across the board.</p>
  <a href="/next">Read the next story</a>
</main>
</body></html>
"""


def _mock_page(html=ARTICLE_HTML, text="Quarterly results"):
    page = MagicMock()
    page.evaluate = AsyncMock(return_value=text)
    page.content = AsyncMock(return_value=html)
    locator = MagicMock()
    locator.aria_snapshot = AsyncMock(return_value='- heading "Quarterly results"')
    page.locator = MagicMock(return_value=locator)
    return page


class TestMarkdown:
    def test_generator_has_pruning_filter(self):
        generator = build_markdown_generator()
        assert generator.content_filter is not None
        assert hasattr(generator, "generate_markdown")

    def test_render_markdown(self):
        raw, _ = render_markdown(ARTICLE_HTML, "https://example.com/story")
        assert "Quarterly results" in raw

    def test_empty_html(self):
        assert render_markdown("   ", "https://example.com/") == ("", "")


class TestCapturePageArtifacts:
    @pytest.mark.asyncio
    async def test_captures_everything(self):
        page = _mock_page()

        artifacts = await capture_page_artifacts(page, "https://example.com/story")

        assert artifacts.text == "Quarterly results"
        assert artifacts.html == ARTICLE_HTML
        assert "Quarterly results" in artifacts.raw_markdown
        assert artifacts.aria_snapshot == '- heading "Quarterly results"'
        page.locator.assert_called_once_with("body")

    @pytest.mark.asyncio
    async def test_unreadable_tab_returns_none(self, caplog):
        page = _mock_page()
        page.content = AsyncMock(side_effect=RuntimeError("Execution context was destroyed"))

        with caplog.at_level(logging.WARNING, logger="browsecrawl.content"):
            artifacts = await capture_page_artifacts(page, "https://example.com/")

        assert artifacts is None
        assert "Unable to capture page data" in caplog.text

    @pytest.mark.asyncio
    async def test_dead_browser_is_reraised(self):
        page = _mock_page()
        page.evaluate = AsyncMock(
            side_effect=RuntimeError("Target page, context or browser has been closed")
        )

        with pytest.raises(RuntimeError, match="has been closed"):
            await capture_page_artifacts(page, "https://example.com/")

    @pytest.mark.asyncio
    async def test_dead_browser_during_aria_snapshot_is_reraised(self):
        page = _mock_page()
        page.locator.return_value.aria_snapshot = AsyncMock(
            side_effect=RuntimeError("Connection closed")
        )

        with pytest.raises(RuntimeError, match="Connection closed"):
            await capture_page_artifacts(page, "https://example.com/")

    @pytest.mark.asyncio
    async def test_markdown_failure_keeps_html(self):
        page = _mock_page()

        with patch(
            "browsecrawl.content.render_markdown", side_effect=ValueError("bad html")
        ):
            artifacts = await capture_page_artifacts(page, "https://example.com/")

        assert artifacts.html == ARTICLE_HTML
        assert artifacts.raw_markdown == ""

    @pytest.mark.asyncio
    async def test_missing_aria_snapshot(self):
        page = _mock_page()
        page.locator.return_value.aria_snapshot = AsyncMock(
            side_effect=AttributeError("aria_snapshot")
        )

        artifacts = await capture_page_artifacts(page, "https://example.com/")

        assert artifacts.aria_snapshot is None
