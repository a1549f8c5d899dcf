"""Depth-bounded, visited-set guarded traversal of a web graph.

One tab is processed at a time. A page's snapshot is written before any
of its children are visited, children are visited in the order the
classifier listed them, and every URL is visited at most once per crawl.
A fatal browser error unwinds the whole recursion; anything else only
costs the link that raised it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Set, Tuple, Union

from .classifier import PageClassifier
from .content import PageArtifacts, capture_page_artifacts
from .failures import (
    BrowserConnectionLost,
    ClassificationError,
    ConnectionFailureClassifier,
    ResumeUnavailableError,
)
from .lifecycle import PageLifecycleManager
from .models import (
    DEFAULT_VIEWPORT,
    ClassificationResult,
    CrawlConfig,
    CrawlSummary,
    Link,
    LinkType,
    PageIndex,
    PageMetadata,
    PageSnapshot,
)
from .resume import build_resume_state
from .storage import SnapshotStore, create_output_dir, sanitize_for_filename
from .throttle import ThrottleGate

LOGGER = logging.getLogger(__name__)

NAVIGATION_TIMEOUT = 60.0
RESUME_COMMAND = "browse-crawl --resume"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


@dataclass
class CrawlOutcome:
    """What a finished (fresh or resumed) crawl hands back to its caller."""

    output_dir: Path
    summary: Optional[CrawlSummary]


class CrawlEngine:
    """Recursive crawler writing one snapshot per visited URL."""

    def __init__(
        self,
        pages: PageLifecycleManager,
        classifier: PageClassifier,
        store: SnapshotStore,
        *,
        throttle: Optional[ThrottleGate] = None,
        failures: Optional[ConnectionFailureClassifier] = None,
        navigation_timeout: float = NAVIGATION_TIMEOUT,
        capture_content: bool = True,
    ):
        self.pages = pages
        self.classifier = classifier
        self.store = store
        self.throttle = throttle or ThrottleGate()
        self.failures = failures or ConnectionFailureClassifier()
        self.navigation_timeout = navigation_timeout
        self.capture_content = capture_content

    async def crawl(
        self,
        url: str,
        depth: int,
        config: CrawlConfig,
        visited: Set[str],
        page_index: PageIndex,
        parent_page: Optional[Any] = None,
        link_type: Optional[LinkType] = None,
    ) -> None:
        """Visit ``url`` and, below the depth limit, its classified links.

        ``parent_page`` is a tab the caller owns and will close itself.
        Errors from this page propagate; errors from children are
        contained unless they are fatal.
        """
        if url in visited:
            LOGGER.info("Already visited: %s", url)
            return
        visited.add(url)

        page, owned = await self.pages.acquire(parent_page)
        try:
            snapshot, artifacts = await self.extract_page(
                page, url, depth, config, link_type
            )
            self.store.write_snapshot(page_index.current, snapshot)
            index = page_index.take()
            if artifacts is not None:
                self._save_artifacts(index, url, artifacts)

            if depth >= config.max_depth:
                return

            next_links = snapshot.classification.next_links
            if next_links:
                LOGGER.info("Exploring %d link(s) from %s", len(next_links), url)
            await self.visit_links(next_links, depth + 1, config, visited, page_index)
        finally:
            await self.pages.release(page, owned)

    async def visit_links(
        self,
        links: Iterable[Link],
        depth: int,
        config: CrawlConfig,
        visited: Set[str],
        page_index: PageIndex,
        *,
        stop_on_error: bool = False,
    ) -> None:
        """Crawl ``links`` in order at ``depth``, each in a fresh tab."""
        for link in links:
            await self.throttle.wait(config.sleep_ms)
            child = None
            try:
                child, _ = await self.pages.acquire()
                await self.crawl(
                    link.url,
                    depth,
                    config,
                    visited,
                    page_index,
                    parent_page=child,
                    link_type=link.link_type,
                )
            except Exception as exc:
                if self.failures.is_fatal(exc):
                    LOGGER.error("Browser connection lost while crawling %s", link.url)
                    raise
                LOGGER.error("Error crawling %s: %s", link.url, exc)
                if stop_on_error:
                    raise
            finally:
                if child is not None:
                    await self.pages.release(child, True)

    async def extract_page(
        self,
        page: Any,
        url: str,
        depth: int,
        config: CrawlConfig,
        link_type: Optional[LinkType] = None,
    ) -> Tuple[PageSnapshot, Optional[PageArtifacts]]:
        """Navigate ``page`` to ``url`` and build its snapshot."""
        LOGGER.info("[Depth %d] %s", depth, url)
        if link_type:
            LOGGER.debug("Link hint: %s", link_type)

        await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self.navigation_timeout * 1000,
        )

        if depth >= config.max_depth or link_type == "content":
            reason = "max depth" if depth >= config.max_depth else "link hint"
            LOGGER.info("Skipping classification (%s)", reason)
            classification = ClassificationResult.assumed_content()
        else:
            classification = await self.classifier.classify(page, config.goal, depth)
            if classification.is_assumed:
                raise ClassificationError(
                    f"Classifier returned reserved page type for {url}"
                )
            LOGGER.info(
                "Classified as %s with %d link(s)",
                classification.page_type,
                len(classification.next_links),
            )

        title = await page.title()
        viewport = getattr(page, "viewport_size", None)
        if not isinstance(viewport, dict):
            viewport = DEFAULT_VIEWPORT

        artifacts = None
        if self.capture_content:
            artifacts = await capture_page_artifacts(page, url)

        snapshot = PageSnapshot(
            url=url,
            depth=depth,
            timestamp=_utc_now(),
            classification=classification,
            metadata=PageMetadata(title=title or "", viewport=dict(viewport)),
            content=artifacts.text if artifacts is not None else None,
        )
        return snapshot, artifacts

    def _save_artifacts(self, index: int, url: str, artifacts: PageArtifacts) -> None:
        try:
            self.store.write_artifacts(index, url, artifacts)
        except OSError as exc:
            LOGGER.warning("Could not save page artifacts for %s: %s", url, exc)


def _log_resume_hint(output_dir: Path) -> None:
    LOGGER.error("Browser connection lost.")
    LOGGER.error("Output saved to: %s", output_dir)
    LOGGER.error('Resume with: %s "%s"', RESUME_COMMAND, output_dir)


async def run_fresh_crawl(
    pages: PageLifecycleManager,
    classifier: PageClassifier,
    start_url: str,
    config: CrawlConfig,
    *,
    output_root: Union[str, Path] = "outputs",
    **engine_options: Any,
) -> CrawlOutcome:
    """Crawl from ``start_url`` into a new timestamped output directory.

    Raises:
        BrowserConnectionLost: If the browser died mid-crawl. Everything
            written so far stays in ``output_dir`` for a later resume.
    """
    output_dir = create_output_dir(sanitize_for_filename(start_url), root=output_root)
    LOGGER.info("Output directory: %s", output_dir)
    LOGGER.info(
        "Starting crawl of %s (max_depth=%d, sleep=%dms)",
        start_url,
        config.max_depth,
        config.sleep_ms,
    )

    store = SnapshotStore(output_dir)
    engine = CrawlEngine(pages, classifier, store, **engine_options)
    page_index = PageIndex()
    visited: Set[str] = set()
    started = time.monotonic()

    try:
        await engine.crawl(start_url, 0, config, visited, page_index)
    except Exception as exc:
        if engine.failures.is_fatal(exc):
            _log_resume_hint(output_dir)
            raise BrowserConnectionLost(str(output_dir), exc) from exc
        LOGGER.error("Crawl failed: %s", exc)
        raise

    summary = CrawlSummary(
        start_url=start_url,
        goal=config.goal,
        max_depth=config.max_depth,
        total_pages=page_index.current,
        duration_ms=int((time.monotonic() - started) * 1000),
        timestamp=_utc_now(),
    )
    store.write_summary(summary)
    LOGGER.info("Crawl complete. Pages: %d", page_index.current)
    return CrawlOutcome(output_dir=output_dir, summary=summary)


async def run_resumed_crawl(
    pages: PageLifecycleManager,
    classifier: PageClassifier,
    output_dir: Union[str, Path],
    config: CrawlConfig,
    **engine_options: Any,
) -> CrawlOutcome:
    """Continue an interrupted crawl from the first-level links left over.

    Remaining links always restart at depth 1. Unlike a fresh crawl, an
    error on any remaining link stops the resume so the directory stays
    in a state a later resume can pick up from.

    Raises:
        ResumeUnavailableError: If ``output_dir`` holds no resumable crawl.
        BrowserConnectionLost: If the browser died mid-resume.
    """
    output_dir = Path(output_dir)
    LOGGER.info("Resuming from %s", output_dir)
    state = build_resume_state(output_dir)
    if state is None:
        raise ResumeUnavailableError(
            f"Unable to resume: {output_dir} is missing crawl data"
        )

    if not state.remaining_links:
        LOGGER.info("Crawl is already complete.")
        return CrawlOutcome(output_dir=output_dir, summary=None)

    # Remaining links sit at depth 1; a depth budget of 0 leaves nothing to visit.
    if config.max_depth < 1:
        LOGGER.info("Crawl is already complete (max_depth=%d).", config.max_depth)
        return CrawlOutcome(output_dir=output_dir, summary=None)

    store = SnapshotStore(output_dir)
    root = store.read_snapshot(0)
    start_url = root.url if root is not None else ""
    engine = CrawlEngine(pages, classifier, store, **engine_options)
    page_index = PageIndex(state.next_page_index)
    visited = set(state.visited_urls)
    LOGGER.info(
        "Visited: %d, Remaining: %d", len(visited), len(state.remaining_links)
    )
    started = time.monotonic()

    try:
        await engine.visit_links(
            state.remaining_links,
            1,
            config,
            visited,
            page_index,
            stop_on_error=True,
        )
    except Exception as exc:
        if engine.failures.is_fatal(exc):
            _log_resume_hint(output_dir)
            raise BrowserConnectionLost(str(output_dir), exc) from exc
        LOGGER.error("Resume failed: %s", exc)
        raise

    summary = CrawlSummary(
        start_url=start_url,
        goal=config.goal,
        max_depth=config.max_depth,
        total_pages=page_index.current,
        duration_ms=int((time.monotonic() - started) * 1000),
        timestamp=_utc_now(),
        resumed=True,
    )
    store.write_summary(summary)
    LOGGER.info("Resume complete. Total pages: %d", page_index.current)
    return CrawlOutcome(output_dir=output_dir, summary=summary)
