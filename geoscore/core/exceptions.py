"""
Error taxonomy for the GEO scoring engine.

Fetch errors are recovered locally (artifacts degrade to absent, pages
degrade to a failed entry). Only resolver and input errors surface to the
caller, as an ErrorReport carrying the machine-readable code.
"""

from __future__ import annotations


class GeoScoreError(Exception):
    """Base class for all engine errors."""

    code: str = "GEOSCORE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ─────────────────────────────────────────────
# Fetching
# ─────────────────────────────────────────────

class FetchError(GeoScoreError):
    code = "FETCH_FAILED"

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class NetworkError(FetchError):
    """Connection-level failure (DNS, refused, TLS, reset)."""


class HttpStatusError(FetchError):
    """Server answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int, reason: str = ""):
        message = f"HTTP {status_code}" + (f": {reason}" if reason else "")
        super().__init__(url, message)
        self.status_code = status_code


class FetchTimeout(FetchError):
    """The fetch budget was exceeded and the request was cancelled."""

    def __init__(self, url: str, timeout_s: float):
        super().__init__(url, f"Timeout: no response within {timeout_s:g}s")
        self.timeout_s = timeout_s


# ─────────────────────────────────────────────
# Parsing
# ─────────────────────────────────────────────

class ParseError(GeoScoreError):
    """A structured-metadata block could not be parsed."""

    code = "PARSE_ERROR"


# ─────────────────────────────────────────────
# Input / discovery
# ─────────────────────────────────────────────

class InvalidURLError(GeoScoreError):
    code = "INVALID_URL"


class ResolverError(GeoScoreError):
    """No analyzable page set could be found for the site."""

    code = "RESOLVER_FAILED"

    def __init__(self, message: str, remediation_url: str | None = None):
        super().__init__(message)
        self.remediation_url = remediation_url


class SitemapRequiredError(ResolverError):
    code = "SITEMAP_REQUIRED"
