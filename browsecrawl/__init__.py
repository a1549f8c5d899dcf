"""Goal-directed, resumable browser crawler.

Starting from a seed page, every visited page is classified against a
natural-language goal, the links it proposes are followed depth-first
within a depth budget, and one JSON snapshot per page is written to an
output directory. An interrupted crawl can be resumed from that
directory alone.

Example usage:

    from browsecrawl import CrawlConfig, crawl_goal_async, resume_crawl_async

    config = CrawlConfig(goal="Find the top stories", max_depth=1, sleep_ms=2000)

    # Fresh crawl
    outcome = await crawl_goal_async("https://news.example.com", config)
    print(outcome.output_dir, outcome.summary.total_pages)

    # Resume after a crash
    outcome = await resume_crawl_async(outcome.output_dir, config)
    if outcome.summary is None:
        print("Crawl was already complete")
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Union

from .classifier import LLMPageClassifier, PageClassifier
from .config import CrawlSettings
from .engine import CrawlEngine, CrawlOutcome, run_fresh_crawl, run_resumed_crawl
from .failures import (
    BrowserConnectionLost,
    ClassificationError,
    ConnectionFailureClassifier,
    CrawlError,
    ResumeUnavailableError,
)
from .lifecycle import BrowserSession, PageLifecycleManager, with_timeout
from .models import (
    ClassificationResult,
    CrawlConfig,
    CrawlSummary,
    Link,
    PageIndex,
    PageSnapshot,
    ResumeState,
)
from .resume import build_resume_state
from .storage import SnapshotStore
from .throttle import ThrottleGate

__all__ = [
    # Data model
    "CrawlConfig",
    "Link",
    "ClassificationResult",
    "PageSnapshot",
    "PageIndex",
    "ResumeState",
    "CrawlSummary",
    "CrawlOutcome",
    # Components
    "CrawlEngine",
    "PageClassifier",
    "LLMPageClassifier",
    "PageLifecycleManager",
    "BrowserSession",
    "SnapshotStore",
    "ThrottleGate",
    "ConnectionFailureClassifier",
    "with_timeout",
    "build_resume_state",
    # Errors
    "CrawlError",
    "ClassificationError",
    "BrowserConnectionLost",
    "ResumeUnavailableError",
    # Settings
    "CrawlSettings",
    # Entry points
    "crawl_goal",
    "crawl_goal_async",
    "resume_crawl",
    "resume_crawl_async",
]


def _default_classifier(settings: CrawlSettings) -> PageClassifier:
    return LLMPageClassifier(settings.llm_provider, settings.llm_api_key)


async def crawl_goal_async(
    start_url: str,
    config: CrawlConfig,
    *,
    settings: Optional[CrawlSettings] = None,
    classifier: Optional[PageClassifier] = None,
) -> CrawlOutcome:
    """
    Run a fresh crawl in its own browser session.

    Args:
        start_url: Seed page (depth 0).
        config: Goal, depth budget and politeness delay.
        settings: Process settings; read from the environment when omitted.
        classifier: Optional classifier; defaults to the LLM classifier.

    Returns:
        CrawlOutcome with the output directory and the written summary.

    Raises:
        BrowserConnectionLost: If the browser died; resume from
            ``exc.output_dir``.
    """
    settings = settings or CrawlSettings.from_env()
    classifier = classifier or _default_classifier(settings)
    async with BrowserSession(headless=settings.headless) as session:
        return await run_fresh_crawl(
            session.page_manager(),
            classifier,
            start_url,
            config,
            output_root=settings.output_root,
        )


async def resume_crawl_async(
    output_dir: Union[str, Path],
    config: CrawlConfig,
    *,
    settings: Optional[CrawlSettings] = None,
    classifier: Optional[PageClassifier] = None,
) -> CrawlOutcome:
    """
    Resume an interrupted crawl from its output directory.

    Returns:
        CrawlOutcome whose ``summary`` is None when nothing was left to do.

    Raises:
        ResumeUnavailableError: If the directory holds no resumable crawl.
        BrowserConnectionLost: If the browser died again.
    """
    # Settle the no-browser cases before launching one.
    state = build_resume_state(output_dir)
    if state is None:
        raise ResumeUnavailableError(
            f"Unable to resume: {output_dir} is missing crawl data"
        )
    if not state.remaining_links or config.max_depth < 1:
        return CrawlOutcome(output_dir=Path(output_dir), summary=None)

    settings = settings or CrawlSettings.from_env()
    classifier = classifier or _default_classifier(settings)
    async with BrowserSession(headless=settings.headless) as session:
        return await run_resumed_crawl(
            session.page_manager(), classifier, output_dir, config
        )


def crawl_goal(
    start_url: str,
    config: CrawlConfig,
    *,
    settings: Optional[CrawlSettings] = None,
    classifier: Optional[PageClassifier] = None,
) -> CrawlOutcome:
    """Synchronous wrapper for crawl_goal_async."""
    return asyncio.run(
        crawl_goal_async(start_url, config, settings=settings, classifier=classifier)
    )


def resume_crawl(
    output_dir: Union[str, Path],
    config: CrawlConfig,
    *,
    settings: Optional[CrawlSettings] = None,
    classifier: Optional[PageClassifier] = None,
) -> CrawlOutcome:
    """Synchronous wrapper for resume_crawl_async."""
    return asyncio.run(
        resume_crawl_async(output_dir, config, settings=settings, classifier=classifier)
    )
