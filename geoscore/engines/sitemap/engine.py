"""
Site Map Resolver - discovers the bounded set of pages to analyze.

Discovery order:
1. /sitemap.xml, /sitemap_index.xml, /sitemap/sitemap.xml (first non-empty wins)
2. Sitemap indexes are followed one level deep, first N nested sitemaps only
3. Fallback (SITEMAP_FALLBACK_CRAWL): same-host links from the homepage

Results are deduplicated in first-seen order, filtered to the root host and
capped at MAX_PAGES.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urljoin, urlparse

import structlog
from bs4 import BeautifulSoup

from geoscore.core.config import Settings, get_settings
from geoscore.core.exceptions import FetchError, InvalidURLError, SitemapRequiredError
from geoscore.engines.base import DiscoveryMethod
from geoscore.engines.fetcher.engine import DocumentFetcher, site_root

logger = structlog.get_logger(__name__)

SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap/sitemap.xml")


# ─────────────────────────────────────────────
# Data Structures
# ─────────────────────────────────────────────

@dataclass
class ResolveResult:
    found: bool
    urls: list[str] = field(default_factory=list)
    discovery_method: DiscoveryMethod = DiscoveryMethod.SITEMAP


# ─────────────────────────────────────────────
# URL Utilities
# ─────────────────────────────────────────────

class URLNormalizer:
    """Normalizes user input and crawled links for comparison."""

    CRAWL_DENYLIST = (
        "/wp-admin", "/wp-login", "/cart", "/checkout", "/my-account",
        "/login", "/register", "/admin", "/api/", "/feed", "/rss",
        ".pdf", ".jpg", ".png", ".gif", ".css", ".js", ".xml",
    )

    @classmethod
    def normalize_input(cls, url: str) -> str:
        """
        Accept a user-supplied URL with or without scheme.
        Raises InvalidURLError for empty input or non-http(s) schemes.
        """
        url = (url or "").strip()
        if not url:
            raise InvalidURLError("URL is required")
        if "://" not in url:
            url = f"https://{url}"

        parsed = urlparse(url)
        if parsed.scheme.lower() not in ("http", "https"):
            raise InvalidURLError(f"Unsupported URL scheme: {parsed.scheme}")
        if not parsed.hostname:
            raise InvalidURLError(f"Invalid URL: {url}")
        return url

    @classmethod
    def root_url(cls, url: str) -> str:
        return site_root(url)

    @classmethod
    def host(cls, url: str) -> str:
        return urlparse(url).netloc.lower()

    @classmethod
    def is_same_host(cls, url: str, root_url: str) -> bool:
        return cls.host(url) == cls.host(root_url)

    @classmethod
    def clean_link(cls, href: str, root_url: str) -> str | None:
        """
        Resolve a homepage link against the root and strip it down to
        scheme://host/path. Returns None when the link should be skipped.
        """
        href = href.strip()
        if not href or href.startswith(("mailto:", "tel:", "javascript:")):
            return None

        parsed = urlparse(urljoin(f"{root_url}/", href))
        if parsed.scheme not in ("http", "https"):
            return None
        if parsed.netloc.lower() != cls.host(root_url):
            return None

        path_lower = parsed.path.lower()
        if any(pattern in path_lower for pattern in cls.CRAWL_DENYLIST):
            return None

        # No query, no fragment, no trailing slash
        path = parsed.path.rstrip("/")
        return f"{parsed.scheme}://{parsed.netloc.lower()}{path}"


def dedupe(urls: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered


# ─────────────────────────────────────────────
# Sitemap Parser
# ─────────────────────────────────────────────

def parse_sitemap(content: str) -> tuple[list[str], list[str]]:
    """
    Parse sitemap XML.

    Returns:
        (nested sitemap locations, page locations)
    """
    soup = BeautifulSoup(content, "xml")
    nested = []
    for entry in soup.find_all("sitemap"):
        loc = entry.find("loc")
        if loc and loc.get_text(strip=True):
            nested.append(loc.get_text(strip=True))

    pages = []
    for entry in soup.find_all("url"):
        loc = entry.find("loc")
        if loc and loc.get_text(strip=True):
            pages.append(loc.get_text(strip=True))

    return nested, pages


# ─────────────────────────────────────────────
# Resolver
# ─────────────────────────────────────────────

class SitemapResolver:
    """Resolves a site root into the list of pages to analyze."""

    def __init__(self, fetcher: DocumentFetcher, settings: Settings | None = None):
        self.fetcher = fetcher
        self.settings = settings or get_settings()

    async def resolve(self, root_url: str, fallback_crawl: bool | None = None) -> ResolveResult:
        """
        Raises:
            SitemapRequiredError: nothing found and fallback crawl disabled
        """
        if fallback_crawl is None:
            fallback_crawl = self.settings.SITEMAP_FALLBACK_CRAWL

        urls = await self.discover_sitemap_urls(root_url)
        if urls:
            logger.info("Sitemap resolved", root_url=root_url, pages=len(urls))
            return ResolveResult(found=True, urls=urls, discovery_method=DiscoveryMethod.SITEMAP)

        if not fallback_crawl:
            raise SitemapRequiredError(
                "No sitemap.xml found. A sitemap is required for the multi-page report.",
                remediation_url=self.settings.SITEMAP_REMEDIATION_URL,
            )

        urls = await self.crawl_homepage(root_url)
        logger.info("Sitemap missing, crawled homepage", root_url=root_url, pages=len(urls))
        return ResolveResult(found=False, urls=urls, discovery_method=DiscoveryMethod.CRAWL)

    async def discover_sitemap_urls(self, root_url: str) -> list[str]:
        """Page URLs from the first conventional sitemap location that yields any."""
        urls: list[str] = []
        for path in SITEMAP_PATHS:
            urls = await self._read_sitemap(f"{root_url}{path}")
            if urls:
                break

        same_host = [u for u in dedupe(urls) if URLNormalizer.is_same_host(u, root_url)]
        return same_host[: self.settings.MAX_PAGES]

    async def _read_sitemap(self, url: str) -> list[str]:
        content = await self.fetcher.fetch_optional(url)
        if not content:
            return []

        nested, pages = parse_sitemap(content)
        if not nested:
            return pages

        # Sitemap index: one level deep, first N children only
        merged: list[str] = []
        for child_url in nested[: self.settings.SITEMAP_INDEX_FOLLOW]:
            child = await self.fetcher.fetch_optional(child_url)
            if not child:
                logger.debug("Nested sitemap skipped", url=child_url)
                continue
            merged.extend(parse_sitemap(child)[1])
        return merged

    async def crawl_homepage(self, root_url: str) -> list[str]:
        """Same-host links from the homepage, root first."""
        try:
            doc = await self.fetcher.fetch_document(root_url, self.settings.ARTIFACT_TIMEOUT_MS)
        except FetchError as e:
            logger.warning("Homepage crawl failed", root_url=root_url, error=e.message)
            return [root_url]

        soup = BeautifulSoup(doc.text, "lxml")
        links = [root_url]
        for a in soup.find_all("a", href=True):
            link = URLNormalizer.clean_link(a["href"], root_url)
            if link:
                links.append(link)

        return dedupe(links)[: self.settings.MAX_CRAWL_PAGES]
