"""
Assembles cleaned documents from an extraction backend and navigation inference.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import aiohttp
import structlog

from cleanread.config.config import FetchConfig
from cleanread.extractor.errors import FetchError
from cleanread.extractor.models import ExtractionRequest, ExtractionResult
from cleanread.extractor.protocols import ExtractionBackend
from cleanread.navigation.engine import NavInferenceEngine, NavLinks
from cleanread.navigation.urls import relativize_url, validate_document_url
from cleanread.observability import increment

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CleanDocument:
    """Reader-ready document: article title and body plus navigation links."""

    title: str = ""
    content_html: str = ""
    nav_next: str = ""
    nav_prev: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CleanDocument:
        return cls(
            title=str(data.get("title") or ""),
            content_html=str(data.get("content_html") or ""),
            nav_next=str(data.get("nav_next") or ""),
            nav_prev=str(data.get("nav_prev") or ""),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str | bytes) -> CleanDocument:
        return cls.from_dict(json.loads(raw))

    def relative_nav(self) -> NavLinks:
        """Navigation links reduced to path, query and fragment for in-app routing."""
        return NavLinks(next=relativize_url(self.nav_next), previous=relativize_url(self.nav_prev))


class DocumentCache:
    """In-memory TTL cache of serialized clean documents."""

    def __init__(self, ttl_seconds: float = 600.0, max_entries: int = 256) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def key(prefix: str, url: str) -> str:
        return f"{prefix}:{url}"

    async def get(self, key: str) -> Optional[CleanDocument]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, payload = entry
            if time.monotonic() >= expires_at:
                del self._entries[key]
                return None
        return CleanDocument.from_json(payload)

    async def set(self, key: str, document: CleanDocument) -> None:
        async with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_entries:
                # dicts keep insertion order, so the first key is the oldest
                oldest = next(iter(self._entries))
                del self._entries[oldest]
            self._entries[key] = (time.monotonic() + self.ttl_seconds, document.to_json())

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


class ContentAssembler:
    """Runs article extraction and navigation inference side by side."""

    def __init__(
        self,
        backend: ExtractionBackend,
        nav_engine: Optional[NavInferenceEngine] = None,
        *,
        cache: Optional[DocumentCache] = None,
        fetch_config: Optional[FetchConfig] = None,
    ) -> None:
        self.backend = backend
        self.nav_engine = nav_engine or NavInferenceEngine()
        self.cache = cache
        self.fetch_config = fetch_config or FetchConfig()

    async def assemble(self, request: ExtractionRequest) -> CleanDocument:
        """Extract the article and infer navigation for one document.

        Backend errors propagate; navigation inference never fails.
        """
        loop = asyncio.get_running_loop()
        article, nav = await asyncio.gather(
            self.backend.parse(request.html_body, request.document_url),
            loop.run_in_executor(None, self.nav_engine.infer, request.html_body, request.document_url),
        )
        return self._merge(request.document_url, article, nav)

    async def clean(self, html: str | bytes, document_url: str) -> CleanDocument:
        return await self.assemble(ExtractionRequest.from_text(html, document_url))

    async def fetch_and_clean(self, url: str, *, cache_prefix: str = "item") -> CleanDocument:
        """Fetch a page over HTTP and clean it, consulting the cache first."""
        validate_document_url(url)
        key = DocumentCache.key(cache_prefix, url)

        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug("Clean document cache hit", url=url)
                return cached

        body = await self._fetch(url)
        document = await self.assemble(ExtractionRequest(html_body=body, document_url=url))

        if self.cache is not None:
            await self.cache.set(key, document)
        return document

    async def _fetch(self, url: str) -> bytes:
        timeout = aiohttp.ClientTimeout(total=self.fetch_config.timeout)
        headers = {"User-Agent": self.fetch_config.user_agent}
        try:
            async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise FetchError(url, f"non-200 response: {response.status}", status=response.status)
                    return await response.read()
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"timed out after {self.fetch_config.timeout}s") from e
        except aiohttp.ClientError as e:
            raise FetchError(url, str(e)) from e

    def _merge(self, url: str, article: ExtractionResult, nav: NavLinks) -> CleanDocument:
        for direction, link in (("next", nav.next), ("previous", nav.previous)):
            if link:
                increment("nav_links_found", labels={"direction": direction})

        logger.debug(
            "Cleaned document",
            url=url,
            article_found=article.article_found,
            next=nav.next,
            prev=nav.previous,
        )
        return CleanDocument(
            title=article.title,
            content_html=article.content,
            nav_next=nav.next,
            nav_prev=nav.previous,
        )
