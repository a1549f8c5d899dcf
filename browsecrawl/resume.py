"""Rebuild traversal state from the snapshots of an interrupted crawl."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Set, Union

from .models import Link, ResumeState
from .storage import SnapshotStore

LOGGER = logging.getLogger(__name__)


def build_resume_state(output_dir: Union[str, Path]) -> Optional[ResumeState]:
    """Derive ``ResumeState`` purely from what is on disk.

    The root snapshot (index 0) lists the first-level links; every link
    whose URL already has a snapshot is dropped, order preserved. The next
    index is the snapshot count, so resumed indices continue without gaps.

    Returns:
        None when the directory holds no resumable crawl (no ``pages/``
        directory, no root snapshot, or unreadable snapshot files).
    """
    store = SnapshotStore(output_dir)
    if not store.pages_dir.is_dir():
        LOGGER.warning("No pages directory under %s", store.output_dir)
        return None

    try:
        root = store.read_snapshot(0)
        if root is None:
            LOGGER.warning("No root snapshot (page 0) under %s", store.pages_dir)
            return None
        snapshots = store.read_snapshots()
    except (OSError, ValueError, KeyError, TypeError, json.JSONDecodeError) as exc:
        LOGGER.error("Unable to build resume state from %s: %s", output_dir, exc)
        return None

    visited: Set[str] = {snapshot.url for _, snapshot in snapshots}

    remaining: List[Link] = []
    queued: Set[str] = set()
    for link in root.classification.next_links:
        if link.url in visited or link.url in queued:
            continue
        queued.add(link.url)
        remaining.append(link)

    return ResumeState(
        remaining_links=remaining,
        visited_urls=visited,
        next_page_index=len(snapshots),
    )
