"""On-disk layout of a crawl: one JSON snapshot per page plus a summary.

Layout::

    <output_dir>/
        index.json                          crawl summary
        pages/page-<i>-<domain>_crawl.json  PageSnapshot
        pages/page-<i>-<domain>_html.html   captured HTML
        pages/page-<i>-<domain>_raw.md      markdown (full page)
        pages/page-<i>-<domain>_fit.md      markdown (pruned)
        pages/page-<i>-<domain>_a11y.json   ARIA snapshot
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union
from urllib.parse import urlparse

from .content import PageArtifacts
from .models import CrawlSummary, PageSnapshot

LOGGER = logging.getLogger(__name__)

PAGES_DIR = "pages"
SUMMARY_FILE = "index.json"
SNAPSHOT_SUFFIX = "crawl"

_SNAPSHOT_NAME = re.compile(r"^page-(?P<index>\d+)-.*_crawl\.json$")


def sanitize_for_filename(url: str) -> str:
    """Hostname with dots replaced, or a scrubbed prefix of unparsable input."""
    hostname = ""
    try:
        hostname = urlparse(url).hostname or ""
    except ValueError:
        hostname = ""
    if hostname:
        return hostname.replace(".", "-")
    return re.sub(r"[^a-zA-Z0-9]", "-", url)[:50]


def page_filename(index: int, url: str, suffix: str, extension: str = "json") -> str:
    return f"page-{index}-{sanitize_for_filename(url)}_{suffix}.{extension}"


def create_output_dir(identifier: str, root: Union[str, Path] = "outputs") -> Path:
    """Create ``<root>/<timestamp>-<identifier>/pages`` and return the crawl dir."""
    timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    timestamp = timestamp.replace("+00:00", "Z")
    timestamp = re.sub(r"[:.]", "-", timestamp)
    output_dir = Path(root) / f"{timestamp}-{identifier}"
    (output_dir / PAGES_DIR).mkdir(parents=True, exist_ok=True)
    return output_dir


def _write_json(path: Path, data: Any) -> None:
    """Write through a hidden sibling so a crash never leaves a partial file."""
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp_path, path)


class SnapshotStore:
    """Append-only writer and reader for one crawl output directory."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    @property
    def pages_dir(self) -> Path:
        return self.output_dir / PAGES_DIR

    def write_snapshot(self, index: int, snapshot: PageSnapshot) -> Path:
        """Persist ``snapshot`` under ``index``; an existing index is never replaced."""
        self.pages_dir.mkdir(parents=True, exist_ok=True)
        existing = self._snapshot_path_for_index(index)
        if existing is not None:
            raise FileExistsError(f"Snapshot index {index} already written: {existing}")
        path = self.pages_dir / page_filename(index, snapshot.url, SNAPSHOT_SUFFIX)
        _write_json(path, snapshot.to_dict())
        LOGGER.debug("Saved snapshot %s", path.name)
        return path

    def write_artifacts(self, index: int, url: str, artifacts: PageArtifacts) -> None:
        self.pages_dir.mkdir(parents=True, exist_ok=True)
        if artifacts.html:
            path = self.pages_dir / page_filename(index, url, "html", "html")
            path.write_text(artifacts.html, encoding="utf-8")
        if artifacts.raw_markdown:
            path = self.pages_dir / page_filename(index, url, "raw", "md")
            path.write_text(artifacts.raw_markdown, encoding="utf-8")
        if artifacts.fit_markdown:
            path = self.pages_dir / page_filename(index, url, "fit", "md")
            path.write_text(artifacts.fit_markdown, encoding="utf-8")
        if artifacts.aria_snapshot:
            path = self.pages_dir / page_filename(index, url, "a11y")
            _write_json(path, {"url": url, "ariaSnapshot": artifacts.aria_snapshot})

    def write_summary(self, summary: CrawlSummary) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / SUMMARY_FILE
        _write_json(path, summary.to_dict())
        LOGGER.info("Wrote crawl summary to %s", path)
        return path

    def snapshot_files(self) -> List[Tuple[int, Path]]:
        """All snapshot files as ``(index, path)``, ordered by index."""
        if not self.pages_dir.is_dir():
            return []
        found = []
        for path in self.pages_dir.iterdir():
            match = _SNAPSHOT_NAME.match(path.name)
            if match and path.is_file():
                found.append((int(match.group("index")), path))
        return sorted(found, key=lambda item: (item[0], item[1].name))

    def read_snapshots(self) -> List[Tuple[int, PageSnapshot]]:
        snapshots = []
        for index, path in self.snapshot_files():
            data = json.loads(path.read_text(encoding="utf-8"))
            snapshots.append((index, PageSnapshot.from_dict(data)))
        return snapshots

    def read_snapshot(self, index: int) -> Optional[PageSnapshot]:
        path = self._snapshot_path_for_index(index)
        if path is None:
            return None
        return PageSnapshot.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def _snapshot_path_for_index(self, index: int) -> Optional[Path]:
        if not self.pages_dir.is_dir():
            return None
        matches = sorted(self.pages_dir.glob(f"page-{index}-*_{SNAPSHOT_SUFFIX}.json"))
        return matches[0] if matches else None
