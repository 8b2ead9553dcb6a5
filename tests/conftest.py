"""
Shared fixtures. All network behaviour goes through httpx.MockTransport.
"""

import logging

import httpx
import pytest
import structlog

from geoscore.core.config import Settings
from geoscore.engines.document import ParsedDocument


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep structlog silent and uncached between tests."""
    structlog.reset_defaults()
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        INTER_PAGE_DELAY_MS=0,
        DOCUMENT_TIMEOUT_MS=2000,
        ARTIFACT_TIMEOUT_MS=2000,
    )


@pytest.fixture
def make_doc():
    def _make(html: str = "", url: str = "https://example.com/", **kwargs) -> ParsedDocument:
        kwargs.setdefault("load_time_ms", 120.0)
        return ParsedDocument(url=url, html=html, **kwargs)
    return _make


@pytest.fixture
def site():
    """
    Build a MockTransport from a {path: response} map.

    A response is either a body string (200, text/html) or an
    (status_code, body) tuple. Unknown paths return 404. Every requested
    URL is recorded on transport.requests.
    """
    def _make(routes: dict, host: str = "example.com") -> httpx.MockTransport:
        requests: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(str(request.url))
            if request.url.host != host:
                return httpx.Response(404, text="not found")
            route = routes.get(request.url.path)
            if route is None:
                return httpx.Response(404, text="not found")
            if isinstance(route, Exception):
                raise route
            status, body = route if isinstance(route, tuple) else (200, route)
            return httpx.Response(status, text=body, headers={"content-type": "text/html"})

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport
    return _make


GOOD_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Guide</title>
  <meta name="description" content="{description}">
  <link rel="canonical" href="https://example.com/guide">
</head>
<body>
  <header role="banner"><nav><a href="/">Home</a></nav></header>
  <main>
    <article>
      <h1>How to brew coffee</h1>
      <section>
        <h2>Steps</h2>
        <ol><li>Grind beans</li><li>Heat water</li><li>Pour slowly</li></ol>
      </section>
      <section>
        <h2>FAQ</h2>
        <details><summary>Which grind?</summary><p>Medium-fine works for pour-over brewing.</p></details>
        <dl><dt>Bloom</dt><dd>The first pour that releases trapped gas.</dd></dl>
        <blockquote cite="https://example.com/barista">Good coffee takes patience.</blockquote>
        <table><thead><tr><th>Method</th><th>Time</th></tr></thead>
          <tbody><tr><td>Pour-over</td><td>4 min</td></tr></tbody></table>
      </section>
      <p>Brewing great coffee at home is mostly about consistency. Weigh your beans, control the
      water temperature, and keep the pour steady so that every cup tastes the same as the last one.</p>
      <img src="/a.jpg" alt="Coffee beans"><img src="/b.jpg" alt="Kettle">
    </article>
  </main>
  <aside>Related guides</aside>
  <footer>© Example</footer>
</body>
</html>
"""

DESCRIPTION_140 = "x" * 140


@pytest.fixture
def good_page_html():
    return GOOD_PAGE.replace("{description}", DESCRIPTION_140)
