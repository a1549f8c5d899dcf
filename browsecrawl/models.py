"""Data structures describing a goal-directed crawl and its persisted record."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Set, get_args

LinkType = Literal["content", "entry"]
PageType = Literal["content", "entry", "blocked", "other", "content-assumed"]
BlockedReason = Literal[
    "auth", "paywall", "error", "captcha", "rate-limit", "geo-blocked", "unknown"
]

LINK_TYPES = frozenset(get_args(LinkType))
PAGE_TYPES = frozenset(get_args(PageType))
BLOCKED_REASONS = frozenset(get_args(BlockedReason))

# Written by the engine when classification is skipped; never by a classifier.
CONTENT_ASSUMED = "content-assumed"

DEFAULT_VIEWPORT = {"width": 1280, "height": 720}


@dataclass(frozen=True)
class CrawlConfig:
    """Immutable crawl parameters shared by every traversal step."""

    goal: str
    max_depth: int = 1
    sleep_ms: int = 2000

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.sleep_ms < 0:
            raise ValueError(f"sleep_ms must be >= 0, got {self.sleep_ms}")


@dataclass(frozen=True, slots=True)
class Link:
    """Outbound link proposed by the classifier, with a predicted target type."""

    url: str
    text: str
    link_type: LinkType

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "text": self.text, "linkType": self.link_type}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Link":
        link_type = data.get("linkType") or data.get("link_type")
        if link_type not in LINK_TYPES:
            raise ValueError(f"Unknown link type {link_type!r} for {data.get('url')}")
        return cls(url=str(data["url"]), text=str(data.get("text") or ""), link_type=link_type)


@dataclass(slots=True)
class ClassificationResult:
    """Page type plus the candidate links worth following."""

    page_type: PageType
    next_links: List[Link] = field(default_factory=list)
    blocked_reason: Optional[BlockedReason] = None

    def __post_init__(self) -> None:
        if self.page_type not in PAGE_TYPES:
            raise ValueError(f"Unknown page type {self.page_type!r}")
        if self.page_type != "blocked":
            self.blocked_reason = None

    @classmethod
    def assumed_content(cls) -> "ClassificationResult":
        return cls(page_type=CONTENT_ASSUMED, next_links=[])

    @property
    def is_assumed(self) -> bool:
        return self.page_type == CONTENT_ASSUMED

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"pageType": self.page_type}
        if self.blocked_reason:
            data["blockedReason"] = self.blocked_reason
        data["nextLinks"] = [link.to_dict() for link in self.next_links]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassificationResult":
        return cls(
            page_type=data["pageType"],
            next_links=[Link.from_dict(item) for item in data.get("nextLinks") or []],
            blocked_reason=data.get("blockedReason"),
        )


@dataclass(slots=True)
class PageMetadata:
    title: str = ""
    viewport: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_VIEWPORT))


@dataclass(slots=True)
class PageSnapshot:
    """Durable record of one visited URL. Written once, never mutated."""

    url: str
    depth: int
    timestamp: str
    classification: ClassificationResult
    metadata: PageMetadata = field(default_factory=PageMetadata)
    content: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "depth": self.depth,
            "timestamp": self.timestamp,
            "crawlData": self.classification.to_dict(),
            "metadata": {
                "title": self.metadata.title,
                "viewport": dict(self.metadata.viewport),
            },
        }
        if self.content is not None:
            data["content"] = self.content
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageSnapshot":
        metadata = data.get("metadata") or {}
        return cls(
            url=str(data["url"]),
            depth=int(data.get("depth", 0)),
            timestamp=str(data.get("timestamp", "")),
            classification=ClassificationResult.from_dict(data["crawlData"]),
            metadata=PageMetadata(
                title=str(metadata.get("title") or ""),
                viewport=dict(metadata.get("viewport") or DEFAULT_VIEWPORT),
            ),
            content=data.get("content"),
        )


@dataclass
class PageIndex:
    """Monotonic snapshot counter shared by every frame of one crawl."""

    current: int = 0

    def take(self) -> int:
        """Return the current index and advance the counter."""
        value = self.current
        self.current += 1
        return value


@dataclass
class ResumeState:
    """Traversal state reconstructed from the snapshots on disk."""

    remaining_links: List[Link]
    visited_urls: Set[str]
    next_page_index: int


@dataclass(slots=True)
class CrawlSummary:
    start_url: str
    goal: str
    max_depth: int
    total_pages: int
    duration_ms: int
    timestamp: str
    resumed: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "startUrl": self.start_url,
            "goal": self.goal,
            "maxDepth": self.max_depth,
            "totalPages": self.total_pages,
            "durationMs": self.duration_ms,
            "timestamp": self.timestamp,
        }
        if self.resumed is not None:
            data["resumed"] = self.resumed
        return data
