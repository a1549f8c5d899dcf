"""Shared fakes for a Playwright browser context and a scripted classifier."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Union

import pytest

from browsecrawl.engine import CrawlEngine
from browsecrawl.lifecycle import PageLifecycleManager
from browsecrawl.models import ClassificationResult, Link
from browsecrawl.storage import SnapshotStore
from browsecrawl.throttle import ThrottleGate


class FakeLocator:
    def __init__(self, page: "FakePage"):
        self.page = page

    async def aria_snapshot(self) -> str:
        return f'- document "{self.page.url}"'


class FakePage:
    """Enough of ``playwright.async_api.Page`` for the engine."""

    def __init__(self, context: "FakeContext"):
        self.context = context
        self.url = "about:blank"
        self.viewport_size = {"width": 1280, "height": 720}
        self.close_calls = 0
        self.close_delay: Optional[float] = None

    async def goto(self, url: str, **kwargs) -> None:
        self.context.navigations.append(url)
        error = self.context.goto_errors.get(url)
        if error is not None:
            raise error
        self.url = url

    async def title(self) -> str:
        return f"Title of {self.url}"

    async def evaluate(self, script: str) -> str:
        return f"Body of {self.url}"

    async def content(self) -> str:
        return f"<html><body><main><p>{self.url}</p></main></body></html>"

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self)

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_delay:
            await asyncio.sleep(self.close_delay)


class FakeContext:
    """Browser context that hands out ``FakePage`` tabs."""

    def __init__(self) -> None:
        self.pages: List[FakePage] = []
        self.navigations: List[str] = []
        self.goto_errors: Dict[str, BaseException] = {}
        self.new_page_error: Optional[BaseException] = None
        self.close_delay: Optional[float] = None

    async def new_page(self) -> FakePage:
        if self.new_page_error is not None:
            raise self.new_page_error
        page = FakePage(self)
        page.close_delay = self.close_delay
        self.pages.append(page)
        return page


Scripted = Union[ClassificationResult, BaseException]


class ScriptedClassifier:
    """Returns canned results per URL; unknown URLs classify as content."""

    def __init__(self, results: Optional[Dict[str, Scripted]] = None):
        self.results = dict(results or {})
        self.calls: List[tuple] = []

    async def classify(self, page, goal: str, depth: int) -> ClassificationResult:
        self.calls.append((page.url, depth))
        result = self.results.get(page.url)
        if isinstance(result, BaseException):
            raise result
        if result is None:
            return ClassificationResult(page_type="content")
        return result


def entry(*links: Link) -> ClassificationResult:
    return ClassificationResult(page_type="entry", next_links=list(links))


def link(url: str, link_type: str = "entry", text: str = "") -> Link:
    return Link(url=url, text=text or url, link_type=link_type)


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def context() -> FakeContext:
    return FakeContext()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def store(tmp_path) -> SnapshotStore:
    return SnapshotStore(tmp_path / "crawl")


@pytest.fixture
def make_engine(context, sleeps, store):
    def _make(classifier, **options) -> CrawlEngine:
        options.setdefault("capture_content", False)
        close_timeout = options.pop("close_timeout", 5.0)
        return CrawlEngine(
            PageLifecycleManager(context, close_timeout=close_timeout),
            classifier,
            store,
            throttle=ThrottleGate(sleep=sleeps),
            **options,
        )

    return _make
