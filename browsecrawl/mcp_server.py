"""MCP server exposing goal-directed crawling and resume.

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for desktop MCP clients)
    python -m browsecrawl.mcp_server

    # HTTP (for remote access)
    python -m browsecrawl.mcp_server --transport http --port 8000

Environment Variables:
    BROWSECRAWL_LLM_PROVIDER: LLM used for page classification
    BROWSECRAWL_LLM_API_KEY: API key for that provider
    BROWSECRAWL_OUTPUT_ROOT: Where new crawl directories are created
"""

from __future__ import annotations

import argparse
import json
import logging
from typing import Any, Dict

from fastmcp import FastMCP

from .config import DEFAULT_MAX_DEPTH, DEFAULT_SLEEP_MS, CrawlSettings, load_config
from .engine import CrawlOutcome
from .failures import BrowserConnectionLost, ResumeUnavailableError
from .models import CrawlConfig

LOGGER = logging.getLogger(__name__)

mcp = FastMCP(
    name="Goal Crawler",
    instructions="""
    A browser crawler that follows links toward a natural-language goal.

    Tools:
       - crawl: Start a fresh crawl from a seed URL
       - resume: Continue an interrupted crawl from its output directory

    Both return a JSON object with the output directory and crawl summary.
    """,
)


def _outcome_to_json(outcome: CrawlOutcome) -> str:
    payload: Dict[str, Any] = {
        "output_dir": str(outcome.output_dir),
        "complete": True,
        "summary": outcome.summary.to_dict() if outcome.summary else None,
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _error_to_json(message: str, **extra: Any) -> str:
    return json.dumps({"error": message, **extra}, ensure_ascii=False)


@mcp.tool
async def crawl(
    url: str,
    goal: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    sleep_ms: int = DEFAULT_SLEEP_MS,
):
    """
    Crawl from a seed URL, following only links that serve the goal.

    Args:
        url: Seed URL (depth 0)
        goal: Natural-language description of what to look for
        max_depth: Maximum depth, inclusive (default: 1)
        sleep_ms: Delay before each child visit in milliseconds (default: 2000)

    Returns:
        JSON with output_dir and summary, or an error. When the browser
        dies mid-crawl the error carries output_dir for resume.
    """
    from . import crawl_goal_async

    try:
        config = CrawlConfig(goal=goal, max_depth=max_depth, sleep_ms=sleep_ms)
    except ValueError as exc:
        return _error_to_json(str(exc))

    LOGGER.info("MCP crawl: %s (max_depth=%d)", url, max_depth)
    try:
        outcome = await crawl_goal_async(url, config, settings=CrawlSettings.from_env())
    except BrowserConnectionLost as exc:
        return _error_to_json(str(exc), output_dir=exc.output_dir, resumable=True)
    except Exception as exc:
        LOGGER.error("Crawl failed: %s", exc)
        return _error_to_json(f"Crawl failed: {exc}")
    return _outcome_to_json(outcome)


@mcp.tool
async def resume(
    output_dir: str,
    goal: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    sleep_ms: int = DEFAULT_SLEEP_MS,
):
    """
    Resume an interrupted crawl from its output directory.

    Args:
        output_dir: Directory returned by an earlier crawl
        goal: Navigation goal for the remaining pages
        max_depth: Maximum depth, inclusive (default: 1)
        sleep_ms: Delay before each visit in milliseconds (default: 2000)

    Returns:
        JSON with output_dir and summary (null summary = already complete).
    """
    from . import resume_crawl_async

    try:
        config = CrawlConfig(goal=goal, max_depth=max_depth, sleep_ms=sleep_ms)
    except ValueError as exc:
        return _error_to_json(str(exc))

    try:
        outcome = await resume_crawl_async(
            output_dir, config, settings=CrawlSettings.from_env()
        )
    except ResumeUnavailableError as exc:
        return _error_to_json(str(exc), output_dir=output_dir, resumable=False)
    except BrowserConnectionLost as exc:
        return _error_to_json(str(exc), output_dir=exc.output_dir, resumable=True)
    except Exception as exc:
        LOGGER.error("Resume failed: %s", exc)
        return _error_to_json(f"Resume failed: {exc}")
    return _outcome_to_json(outcome)


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the goal crawler MCP server.",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )
    args = parser.parse_args()

    load_config()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
