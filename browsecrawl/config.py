"""Environment-driven settings and ``.env`` loading."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv

from .classifier import DEFAULT_PROVIDER

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "browsecrawl"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"

DEFAULT_MAX_DEPTH = 1
DEFAULT_SLEEP_MS = 2000
DEFAULT_OUTPUT_ROOT = "outputs"

_API_KEY_VARS = ("BROWSECRAWL_LLM_API_KEY", "GEMINI_API_KEY", "OPENAI_API_KEY")


def load_config(
    *,
    cwd: Optional[Path] = None,
    config_env_file: Path = CONFIG_ENV_FILE,
    load_env: Callable[[Path], bool] = load_dotenv,
) -> Optional[Path]:
    """Load ``.env`` from the working directory, else the user config dir.

    Returns the file that was loaded, or None.
    """
    local_env = (cwd or Path.cwd()) / ".env"
    if local_env.is_file():
        load_env(local_env)
        return local_env

    if config_env_file.is_file():
        load_env(config_env_file)
        return config_env_file

    LOGGER.debug("No .env found in %s or %s", local_env.parent, config_env_file)
    return None


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class CrawlSettings:
    """Process-level settings that are not part of a single crawl's config."""

    llm_provider: str = DEFAULT_PROVIDER
    llm_api_key: Optional[str] = None
    output_root: str = DEFAULT_OUTPUT_ROOT
    headless: bool = True

    @classmethod
    def from_env(cls) -> "CrawlSettings":
        """Read settings at call time so late ``.env`` loading takes effect."""
        api_key = next(
            (os.environ[name] for name in _API_KEY_VARS if os.environ.get(name)),
            None,
        )
        return cls(
            llm_provider=os.getenv("BROWSECRAWL_LLM_PROVIDER") or DEFAULT_PROVIDER,
            llm_api_key=api_key,
            output_root=os.getenv("BROWSECRAWL_OUTPUT_ROOT") or DEFAULT_OUTPUT_ROOT,
            headless=_env_bool("BROWSECRAWL_HEADLESS", True),
        )
