"""Command-line interface for the goal-directed crawler."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from .config import DEFAULT_MAX_DEPTH, DEFAULT_SLEEP_MS, CrawlSettings, load_config
from .engine import RESUME_COMMAND
from .failures import BrowserConnectionLost, ResumeUnavailableError
from .models import CrawlConfig

DEFAULT_GOAL = (
    "Extract up to 10 main entry links from headline, top stories, "
    "or trending sections."
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="browse-crawl",
        description="Crawl a site toward a goal, classifying each page with an LLM.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Fresh crawl, one level below the seed page
  browse-crawl https://finance.example.com --goal "Top stories" --max-depth 1

  # Slower, deeper crawl written under ./runs
  browse-crawl https://docs.example.com --max-depth 2 --sleep-ms 5000 --output-root runs

  # Resume after the browser died
  browse-crawl --resume outputs/2026-01-01T00-00-00-000Z-docs-example-com
""",
    )

    parser.add_argument(
        "url",
        nargs="?",
        default=None,
        help="Seed URL (required unless --resume is given)",
    )
    parser.add_argument(
        "--goal",
        type=str,
        default=DEFAULT_GOAL,
        help="Natural-language navigation goal passed to the classifier",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Maximum crawl depth, inclusive (default: {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument(
        "--sleep-ms",
        type=int,
        default=DEFAULT_SLEEP_MS,
        help=f"Delay before each child visit in ms (default: {DEFAULT_SLEEP_MS})",
    )
    parser.add_argument(
        "--resume",
        type=str,
        default=None,
        metavar="OUTPUT_DIR",
        help="Resume an interrupted crawl from its output directory",
    )
    parser.add_argument(
        "--output-root",
        type=str,
        default=None,
        help="Directory that receives new crawl output (default: outputs)",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)
    if not args.url and not args.resume:
        parser.error("a seed URL is required unless --resume is given")
    if args.max_depth < 0:
        parser.error("--max-depth must be >= 0")
    if args.sleep_ms < 0:
        parser.error("--sleep-ms must be >= 0")
    return args


def _settings_from_args(args: argparse.Namespace) -> CrawlSettings:
    settings = CrawlSettings.from_env()
    overrides = {}
    if args.output_root:
        overrides["output_root"] = args.output_root
    if args.headed:
        overrides["headless"] = False
    if overrides:
        settings = replace(settings, **overrides)
    return settings


async def _run_async(args: argparse.Namespace) -> int:
    from . import crawl_goal_async, resume_crawl_async

    config = CrawlConfig(goal=args.goal, max_depth=args.max_depth, sleep_ms=args.sleep_ms)
    settings = _settings_from_args(args)

    if args.resume:
        outcome = await resume_crawl_async(args.resume, config, settings=settings)
        if outcome.summary is None:
            logging.info("Crawl is already complete: %s", outcome.output_dir)
        return 0

    logging.info("Goal: %s", config.goal)
    outcome = await crawl_goal_async(args.url, config, settings=settings)
    logging.info("Output: %s", outcome.output_dir)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for browse-crawl."""
    load_config()
    args = _parse_args(argv)
    _setup_logging(args.verbose)

    try:
        return asyncio.run(_run_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except ResumeUnavailableError as exc:
        logging.error("%s", exc)
        return 2
    except BrowserConnectionLost as exc:
        print(f"Output saved to: {exc.output_dir}", file=sys.stderr)
        print(f'Resume with: {RESUME_COMMAND} "{exc.output_dir}"', file=sys.stderr)
        return 1
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
