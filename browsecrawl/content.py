"""Page artifact capture and HTML to markdown rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from crawl4ai.content_filter_strategy import PruningContentFilter
from crawl4ai.markdown_generation_strategy import DefaultMarkdownGenerator

from .failures import ConnectionFailureClassifier

LOGGER = logging.getLogger(__name__)

_FAILURES = ConnectionFailureClassifier()


@dataclass(slots=True)
class PageArtifacts:
    """Everything captured from a tab besides the snapshot itself."""

    text: str
    html: str
    raw_markdown: str = ""
    fit_markdown: str = ""
    aria_snapshot: Optional[str] = None


def build_markdown_generator() -> DefaultMarkdownGenerator:
    """Markdown generator tuned for article and listing pages."""
    prune_filter = PruningContentFilter(
        threshold=0.45,
        threshold_type="dynamic",
        min_word_threshold=1,
    )
    return DefaultMarkdownGenerator(
        content_filter=prune_filter,
        options={
            "citations": False,
            "body_width": 0,
            "ignore_images": True,
        },
    )


def render_markdown(html: str, url: str) -> Tuple[str, str]:
    """Return ``(raw_markdown, fit_markdown)`` for an HTML document."""
    if not html or not html.strip():
        return "", ""
    generator = build_markdown_generator()
    generated = generator.generate_markdown(
        html,
        base_url=url,
        options=generator.options,
        content_filter=generator.content_filter,
        citations=False,
    )
    raw = getattr(generated, "raw_markdown", "") or ""
    fit = getattr(generated, "fit_markdown", "") or ""
    return raw, fit


async def capture_page_artifacts(page: Any, url: str) -> Optional[PageArtifacts]:
    """Grab text, HTML, markdown and the ARIA tree from an open tab.

    Returns None when the tab cannot be read; the visit itself still counts.
    Errors that mean the browser itself is gone are re-raised.
    """
    try:
        text = await page.evaluate("() => document.body.innerText")
        html = await page.content()
    except Exception as exc:
        if _FAILURES.is_fatal(exc):
            raise
        LOGGER.warning("Unable to capture page data for %s: %s", url, exc)
        return None

    artifacts = PageArtifacts(text=text or "", html=html or "")

    try:
        artifacts.raw_markdown, artifacts.fit_markdown = render_markdown(html, url)
    except Exception as exc:
        LOGGER.warning("Markdown rendering failed for %s: %s", url, exc)

    try:
        artifacts.aria_snapshot = await page.locator("body").aria_snapshot()
    except Exception as exc:
        if _FAILURES.is_fatal(exc):
            raise
        LOGGER.debug("No ARIA snapshot for %s: %s", url, exc)

    return artifacts
