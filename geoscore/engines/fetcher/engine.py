"""
Document Fetcher - bounded-timeout retrieval of pages and sidecar artifacts.

Architecture:
- One httpx.AsyncClient per fetcher, opened as an async context manager
- Every request wrapped in asyncio.wait_for so an expired budget cancels it
- Primary document failures raise FetchError subclasses
- Artifact (robots.txt, llms.txt, sitemap) failures degrade to None
- Page + robots.txt + llms.txt fetched concurrently and joined before scoring
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from urllib.parse import urlparse

import httpx
import structlog

from geoscore.core.config import Settings, get_settings
from geoscore.core.exceptions import (
    FetchError,
    FetchTimeout,
    HttpStatusError,
    NetworkError,
)

logger = structlog.get_logger(__name__)

LLMS_TXT_PATHS = ("/llms.txt", "/.well-known/llms.txt")


# ─────────────────────────────────────────────
# Data Structures
# ─────────────────────────────────────────────

@dataclass
class FetchedDocument:
    """A successfully retrieved response body."""
    url: str
    final_url: str
    text: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    load_time_ms: float = 0.0


@dataclass
class PageBundle:
    """A page together with the site artifacts fetched alongside it."""
    document: FetchedDocument
    robots_txt: str | None = None
    llms_txt: str | None = None


def site_root(url: str) -> str:
    """scheme://netloc of a URL; netloc keeps ports and IPv6 brackets."""
    parsed = urlparse(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


# ─────────────────────────────────────────────
# Fetcher
# ─────────────────────────────────────────────

class DocumentFetcher:
    """
    Fetches documents over HTTP with absolute per-request budgets.

    Usage:
        async with DocumentFetcher() as fetcher:
            bundle = await fetcher.fetch_bundle("https://example.com/")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "DocumentFetcher":
        headers = {
            "User-Agent": self.settings.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
        self._client = httpx.AsyncClient(
            headers=headers,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("DocumentFetcher must be used as an async context manager")
        return self._client

    async def fetch_document(self, url: str, timeout_ms: int | None = None) -> FetchedDocument:
        """
        Fetch one document within an absolute budget.

        Raises:
            FetchTimeout: budget exceeded, request cancelled
            HttpStatusError: non-2xx response
            NetworkError: connection-level failure
        """
        timeout_s = timeout_ms / 1000 if timeout_ms else self.settings.document_timeout
        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.client.get(url, timeout=timeout_s),
                timeout=timeout_s,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise FetchTimeout(url, timeout_s) from None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NetworkError(url, str(e) or e.__class__.__name__) from e

        elapsed = (time.perf_counter() - start) * 1000

        if not response.is_success:
            raise HttpStatusError(url, response.status_code, response.reason_phrase)

        return FetchedDocument(
            url=url,
            final_url=str(response.url),
            text=response.text,
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            load_time_ms=elapsed,
        )

    async def fetch_optional(self, url: str, timeout_ms: int | None = None) -> str | None:
        """Fetch an artifact; any failure or an empty body means absent."""
        try:
            doc = await self.fetch_document(url, timeout_ms or self.settings.ARTIFACT_TIMEOUT_MS)
        except FetchError as e:
            logger.debug("Optional fetch failed", url=url, error=e.message)
            return None
        return doc.text if doc.text.strip() else None

    async def fetch_robots_txt(self, root_url: str) -> str | None:
        return await self.fetch_optional(f"{root_url}/robots.txt")

    async def fetch_llms_txt(self, root_url: str) -> str | None:
        """Both llms.txt locations share a single artifact budget."""
        try:
            return await asyncio.wait_for(
                self._first_llms_txt(root_url),
                timeout=self.settings.artifact_timeout,
            )
        except asyncio.TimeoutError:
            logger.debug("llms.txt lookup timed out", root_url=root_url)
            return None

    async def _first_llms_txt(self, root_url: str) -> str | None:
        for path in LLMS_TXT_PATHS:
            text = await self.fetch_optional(f"{root_url}{path}")
            if text is not None:
                return text
        return None

    async def fetch_bundle(self, url: str) -> PageBundle:
        """
        Fetch the page and both artifacts concurrently.
        The page's failure propagates and abandons the artifact fetches.
        """
        root = site_root(url)
        tasks = [
            asyncio.ensure_future(self.fetch_document(url)),
            asyncio.ensure_future(self.fetch_robots_txt(root)),
            asyncio.ensure_future(self.fetch_llms_txt(root)),
        ]
        try:
            document, robots_txt, llms_txt = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        logger.debug(
            "Bundle fetched",
            url=url,
            elapsed_ms=round(document.load_time_ms, 1),
            has_robots_txt=robots_txt is not None,
            has_llms_txt=llms_txt is not None,
        )
        return PageBundle(document=document, robots_txt=robots_txt, llms_txt=llms_txt)
