"""
In-process extraction backend built on readability-lxml.

This is also the engine behind the ``cleanread-worker`` process, so a
supervised worker and the in-process backend produce the same articles.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import structlog
from bs4 import BeautifulSoup
from lxml import etree
from lxml import html as lxml_html
from readability import Document
from readability.readability import Unparseable

from .errors import InvalidInputError
from .models import ExtractionResult

logger = structlog.get_logger(__name__)

EXCERPT_LENGTH = 200

READABILITY_OPTIONS: Dict[str, Any] = {
    "min_text_length": 25,
    "retry_length": 250,
    "positive_keywords": ["article", "body", "content", "entry", "hentry", "main", "post", "text", "story", "chapter"],
    "negative_keywords": ["comment", "footer", "masthead", "promo", "related", "sidebar", "sponsor", "widget"],
}


def _html_to_text(fragment: str) -> str:
    if not fragment:
        return ""
    try:
        root = lxml_html.fromstring(fragment)
    except (etree.ParserError, ValueError):
        return ""
    text = etree.tostring(root, method="text", encoding="unicode")
    return " ".join(text.split())


def _meta(soup: BeautifulSoup, *selectors: str) -> str:
    for selector in selectors:
        tag = soup.select_one(selector)
        if tag is not None and tag.get("content"):
            return str(tag["content"]).strip()
    return ""


def extract_article(html: str | bytes, url: Optional[str] = None) -> Optional[ExtractionResult]:
    """Run readability over a document.

    Returns:
        The extracted article, or None when nothing readable was found
    """
    try:
        doc = Document(html, url=url, **READABILITY_OPTIONS)
        content = doc.summary(html_partial=True)
        title = doc.short_title() or doc.title()
    except Unparseable as e:
        logger.debug("Readability could not parse document", url=url, error=str(e))
        return None

    text = _html_to_text(content)
    if not text:
        return None

    soup = BeautifulSoup(html, "html.parser")
    excerpt = _meta(soup, 'meta[property="og:description"]', 'meta[name="description"]')
    if not excerpt:
        excerpt = text[:EXCERPT_LENGTH]

    return ExtractionResult(
        title=title if title and title != "[no-title]" else "",
        text_content=text,
        content=content,
        excerpt=excerpt,
        site_name=_meta(soup, 'meta[property="og:site_name"]'),
        published_time=_meta(soup, 'meta[property="article:published_time"]', 'meta[name="date"]'),
    )


class ReadabilityBackend:
    """Extraction backend that runs readability in the default executor."""

    name = "readability"

    async def parse(
        self,
        html: str | bytes,
        document_url: str,
        *,
        timeout: Optional[float] = None,
    ) -> ExtractionResult:
        if not html or not html.strip():
            raise InvalidInputError("Request body cannot be empty")

        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, extract_article, html, document_url)
        article = await asyncio.wait_for(future, timeout) if timeout is not None else await future
        if article is None:
            return ExtractionResult.no_article()
        return article

    async def close(self, timeout: Optional[float] = None) -> None:
        return None
