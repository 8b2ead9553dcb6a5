"""
Tests for the Site Map Resolver.
Uses httpx MockTransport to avoid real network calls.
"""

import pytest

from geoscore.core.exceptions import InvalidURLError, SitemapRequiredError
from geoscore.engines.base import DiscoveryMethod
from geoscore.engines.fetcher.engine import DocumentFetcher
from geoscore.engines.sitemap.engine import SitemapResolver, URLNormalizer, parse_sitemap


def urlset(*locs: str) -> str:
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'
    )


def sitemap_index(*locs: str) -> str:
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</sitemapindex>'
    )


# ─────────────────────────────────────────────
# URL Normalizer Tests
# ─────────────────────────────────────────────

class TestURLNormalizer:

    def test_adds_https_when_scheme_missing(self):
        assert URLNormalizer.normalize_input("example.com/page") == "https://example.com/page"

    def test_keeps_http_scheme(self):
        assert URLNormalizer.normalize_input("http://example.com") == "http://example.com"

    def test_strips_whitespace(self):
        assert URLNormalizer.normalize_input("  example.com ") == "https://example.com"

    def test_rejects_non_http_scheme(self):
        with pytest.raises(InvalidURLError):
            URLNormalizer.normalize_input("ftp://example.com")

    def test_rejects_empty_input(self):
        with pytest.raises(InvalidURLError):
            URLNormalizer.normalize_input("   ")

    def test_root_url(self):
        assert URLNormalizer.root_url("https://Example.com/a/b?x=1") == "https://example.com"

    def test_same_host_check(self):
        assert URLNormalizer.is_same_host("https://example.com/page", "https://example.com")
        assert not URLNormalizer.is_same_host("https://sub.example.com/page", "https://example.com")
        assert not URLNormalizer.is_same_host("https://other.com/page", "https://example.com")

    def test_clean_link_resolves_relative(self):
        assert URLNormalizer.clean_link("/about", "https://example.com") == "https://example.com/about"

    def test_clean_link_strips_query_fragment_and_slash(self):
        result = URLNormalizer.clean_link("/blog/?page=2#top", "https://example.com")
        assert result == "https://example.com/blog"

    def test_clean_link_skips_denylisted_paths(self):
        for href in ("/wp-admin/", "/cart", "/api/v1/items", "/files/report.pdf", "/feed"):
            assert URLNormalizer.clean_link(href, "https://example.com") is None

    def test_clean_link_skips_other_hosts_and_schemes(self):
        assert URLNormalizer.clean_link("https://other.com/x", "https://example.com") is None
        assert URLNormalizer.clean_link("mailto:hi@example.com", "https://example.com") is None


# ─────────────────────────────────────────────
# Sitemap Parser Tests
# ─────────────────────────────────────────────

class TestParseSitemap:

    def test_parses_urlset(self):
        nested, pages = parse_sitemap(urlset("https://example.com/a", "https://example.com/b"))
        assert nested == []
        assert pages == ["https://example.com/a", "https://example.com/b"]

    def test_parses_index(self):
        nested, pages = parse_sitemap(sitemap_index("https://example.com/s1.xml"))
        assert nested == ["https://example.com/s1.xml"]
        assert pages == []

    def test_html_soft_404_yields_nothing(self):
        assert parse_sitemap("<html><body>Not found</body></html>") == ([], [])


# ─────────────────────────────────────────────
# Resolver Tests
# ─────────────────────────────────────────────

class TestSitemapResolver:

    @pytest.mark.asyncio
    async def test_uses_first_sitemap_location(self, settings, site):
        transport = site({"/sitemap.xml": urlset("https://example.com/", "https://example.com/about")})
        async with DocumentFetcher(settings, transport=transport) as fetcher:
            result = await SitemapResolver(fetcher, settings).resolve("https://example.com")

        assert result.found
        assert result.discovery_method == DiscoveryMethod.SITEMAP
        assert result.urls == ["https://example.com/", "https://example.com/about"]
        assert "https://example.com/sitemap_index.xml" not in transport.requests

    @pytest.mark.asyncio
    async def test_falls_through_to_later_locations(self, settings, site):
        transport = site({"/sitemap/sitemap.xml": urlset("https://example.com/deep")})
        async with DocumentFetcher(settings, transport=transport) as fetcher:
            result = await SitemapResolver(fetcher, settings).resolve("https://example.com")

        assert result.urls == ["https://example.com/deep"]

    @pytest.mark.asyncio
    async def test_index_follows_only_first_two_children(self, settings, site):
        transport = site({
            "/sitemap.xml": sitemap_index(
                "https://example.com/s1.xml",
                "https://example.com/s2.xml",
                "https://example.com/s3.xml",
            ),
            "/s1.xml": urlset("https://example.com/a", "https://example.com/b"),
            "/s2.xml": urlset("https://example.com/b", "https://example.com/c"),
            "/s3.xml": urlset("https://example.com/never"),
        })
        async with DocumentFetcher(settings, transport=transport) as fetcher:
            result = await SitemapResolver(fetcher, settings).resolve("https://example.com")

        assert result.urls == [
            "https://example.com/a",
            "https://example.com/b",
            "https://example.com/c",
        ]
        assert "https://example.com/s3.xml" not in transport.requests

    @pytest.mark.asyncio
    async def test_failing_child_sitemap_is_skipped(self, settings, site):
        transport = site({
            "/sitemap.xml": sitemap_index("https://example.com/s1.xml", "https://example.com/s2.xml"),
            "/s2.xml": urlset("https://example.com/ok"),
        })
        async with DocumentFetcher(settings, transport=transport) as fetcher:
            result = await SitemapResolver(fetcher, settings).resolve("https://example.com")

        assert result.urls == ["https://example.com/ok"]

    @pytest.mark.asyncio
    async def test_filters_foreign_hosts_and_caps(self, settings, site):
        locs = ["https://cdn.other.com/x"] + [f"https://example.com/p{i}" for i in range(30)]
        transport = site({"/sitemap.xml": urlset(*locs)})
        async with DocumentFetcher(settings, transport=transport) as fetcher:
            result = await SitemapResolver(fetcher, settings).resolve("https://example.com")

        assert len(result.urls) == settings.MAX_PAGES
        assert result.urls[0] == "https://example.com/p0"
        assert all(u.startswith("https://example.com/") for u in result.urls)

    @pytest.mark.asyncio
    async def test_crawls_homepage_when_no_sitemap(self, settings, site):
        homepage = """
        <html><body>
          <a href="/about/">About</a>
          <a href="/about#team">Team</a>
          <a href="https://example.com/blog?page=2">Blog</a>
          <a href="/wp-login.php">Login</a>
          <a href="https://other.com/x">Elsewhere</a>
          <a href="#top">Top</a>
        </body></html>
        """
        transport = site({"/": homepage})
        async with DocumentFetcher(settings, transport=transport) as fetcher:
            result = await SitemapResolver(fetcher, settings).resolve("https://example.com")

        assert not result.found
        assert result.discovery_method == DiscoveryMethod.CRAWL
        assert result.urls == [
            "https://example.com",
            "https://example.com/about",
            "https://example.com/blog",
        ]

    @pytest.mark.asyncio
    async def test_crawl_caps_at_limit(self, settings, site):
        links = "".join(f'<a href="/p{i}">p{i}</a>' for i in range(40))
        transport = site({"/": f"<html><body>{links}</body></html>"})
        async with DocumentFetcher(settings, transport=transport) as fetcher:
            result = await SitemapResolver(fetcher, settings).resolve("https://example.com")

        assert len(result.urls) == settings.MAX_CRAWL_PAGES
        assert result.urls[0] == "https://example.com"

    @pytest.mark.asyncio
    async def test_unreachable_homepage_yields_root_only(self, settings, site):
        transport = site({})
        async with DocumentFetcher(settings, transport=transport) as fetcher:
            result = await SitemapResolver(fetcher, settings).resolve("https://example.com")

        assert result.urls == ["https://example.com"]

    @pytest.mark.asyncio
    async def test_sitemap_required_when_fallback_disabled(self, settings, site):
        transport = site({"/": "<html></html>"})
        async with DocumentFetcher(settings, transport=transport) as fetcher:
            with pytest.raises(SitemapRequiredError) as exc_info:
                await SitemapResolver(fetcher, settings).resolve("https://example.com", fallback_crawl=False)

        assert exc_info.value.code == "SITEMAP_REQUIRED"
        assert exc_info.value.remediation_url == settings.SITEMAP_REMEDIATION_URL
