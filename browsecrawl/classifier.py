"""Goal-driven page classification.

The engine only depends on the ``PageClassifier`` protocol. The default
``LLMPageClassifier`` renders the open tab to markdown and asks an LLM,
through crawl4ai's ``LLMExtractionStrategy``, for the page type and the
outbound links that serve the crawl goal.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, List, Literal, Optional, Protocol
from urllib.parse import urljoin, urlparse

from crawl4ai import LLMConfig
from crawl4ai.extraction_strategy import LLMExtractionStrategy
from pydantic import BaseModel, Field, ValidationError

from .content import render_markdown
from .failures import ClassificationError
from .models import ClassificationResult, Link

LOGGER = logging.getLogger(__name__)

DEFAULT_PROVIDER = "gemini/gemini-2.5-flash"


class PageClassifier(Protocol):
    async def classify(self, page: Any, goal: str, depth: int) -> ClassificationResult:
        ...


class NextLinkModel(BaseModel):
    url: str = Field(description="Absolute URL of the link")
    text: str = Field(default="", description="Visible link text")
    linkType: Literal["content", "entry"] = Field(
        description=(
            "Predicted target: 'content' = an article or post to read; "
            "'entry' = an index or listing page with more links"
        )
    )


class CrawlPageModel(BaseModel):
    pageType: Literal["content", "entry", "blocked", "other"] = Field(
        description=(
            "Primary purpose of the page: 'content' = main article or post; "
            "'entry' = homepage, category or listing page; 'blocked' = login, "
            "paywall, error or CAPTCHA; 'other' = none of these"
        )
    )
    blockedReason: Optional[
        Literal["auth", "paywall", "error", "captcha", "rate-limit", "geo-blocked", "unknown"]
    ] = Field(default=None, description="Only when pageType is 'blocked'")
    nextLinks: List[NextLinkModel] = Field(
        default_factory=list,
        description=(
            "Links worth exploring for the goal; empty for content or blocked pages"
        ),
    )


INSTRUCTION_TEMPLATE = """\
Classify this page and pick the links to follow next.

Navigation goal: {goal}

Return exactly one JSON object matching the schema. Choose pageType by the
page's primary purpose; a page whose main focus is substantial written
content is 'content' regardless of its navigation menus. Only list links
that serve the goal, and predict for each whether it leads to a content
page or another entry page.
"""


def parse_classification(
    blocks: Iterable[Any], base_url: str = ""
) -> ClassificationResult:
    """Turn raw extraction blocks into a ``ClassificationResult``.

    Raises:
        ClassificationError: If no block validates against the schema.
    """
    errors: List[str] = []
    for block in blocks or []:
        if not isinstance(block, dict):
            continue
        if block.get("error"):
            errors.append(str(block.get("content") or "extraction error"))
            continue
        if "pageType" not in block:
            continue
        try:
            model = CrawlPageModel.model_validate(block)
        except ValidationError as exc:
            errors.append(str(exc))
            continue
        return _to_result(model, base_url)

    detail = "; ".join(errors) if errors else "no classification block returned"
    raise ClassificationError(f"Classifier returned no usable result: {detail}")


def _to_result(model: CrawlPageModel, base_url: str) -> ClassificationResult:
    links = []
    for item in model.nextLinks:
        url = urljoin(base_url, item.url.strip()) if base_url else item.url.strip()
        if urlparse(url).scheme not in ("http", "https"):
            LOGGER.debug("Dropping non-http link %s", url)
            continue
        links.append(Link(url=url, text=item.text.strip(), link_type=item.linkType))
    return ClassificationResult(
        page_type=model.pageType,
        next_links=links,
        blocked_reason=model.blockedReason,
    )


class LLMPageClassifier:
    """Classifier backed by crawl4ai's LLM extraction strategy."""

    def __init__(
        self,
        provider: str = DEFAULT_PROVIDER,
        api_token: Optional[str] = None,
        *,
        verbose: bool = False,
    ):
        self.provider = provider
        self.api_token = api_token
        self.verbose = verbose

    def build_strategy(self, goal: str) -> LLMExtractionStrategy:
        return LLMExtractionStrategy(
            llm_config=LLMConfig(provider=self.provider, api_token=self.api_token),
            schema=CrawlPageModel.model_json_schema(),
            extraction_type="schema",
            instruction=INSTRUCTION_TEMPLATE.format(goal=goal),
            input_format="markdown",
            apply_chunking=False,
            verbose=self.verbose,
        )

    async def classify(self, page: Any, goal: str, depth: int) -> ClassificationResult:
        url = page.url
        html = await page.content()
        raw_markdown, fit_markdown = render_markdown(html, url)
        document = raw_markdown or fit_markdown
        if not document.strip():
            raise ClassificationError(f"No readable content on {url}")

        LOGGER.debug("Classifying %s at depth %d (%d chars)", url, depth, len(document))
        strategy = self.build_strategy(goal)
        blocks = await asyncio.to_thread(strategy.run, url, [document])
        return parse_classification(blocks, base_url=url)
