"""Crawl error taxonomy and fatal-connection detection."""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

# Substrings that mean the browser transport or session itself is gone.
FATAL_CONNECTION_MARKERS: Tuple[str, ...] = (
    "CDP transport closed",
    "socket-close",
    "Session closed",
    "Target closed",
    "Connection closed",
    "Target page, context or browser has been closed",
    "Browser has been closed",
)


class CrawlError(RuntimeError):
    """Base class for crawl failures."""


class ClassificationError(CrawlError):
    """The classifier returned nothing usable for one page."""


class BrowserConnectionLost(CrawlError):
    """The browsing session died; the output directory is resumable."""

    def __init__(self, output_dir: str, cause: Optional[BaseException] = None):
        self.output_dir = output_dir
        message = f"Browser connection lost; output saved to {output_dir}"
        if cause is not None:
            message = f"{message} ({cause})"
        super().__init__(message)


class ResumeUnavailableError(ValueError):
    """The requested output directory holds no resumable crawl."""


class ConnectionFailureClassifier:
    """Decide whether an error is fatal to the whole crawl.

    Matching is a plain substring test on the error message and on its
    chained cause, so a wrapped Playwright error is still recognised.
    """

    def __init__(self, markers: Iterable[str] = FATAL_CONNECTION_MARKERS):
        self.markers = tuple(markers)

    def is_fatal(self, error: BaseException) -> bool:
        if isinstance(error, BrowserConnectionLost):
            return True
        seen = set()
        current: Optional[BaseException] = error
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            message = str(current)
            if any(marker in message for marker in self.markers):
                return True
            current = current.__cause__
        return False
