"""
Tests for the HTTP API.
The analysis service is overridden with one backed by httpx MockTransport.
"""

import pytest
from fastapi.testclient import TestClient

from geoscore.api.v1.routes.analyze import get_analysis_service
from geoscore.main import create_application
from geoscore.services.analyzer import AnalysisService

SITEMAP = '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"><url><loc>https://example.com/guide</loc></url></urlset>'


@pytest.fixture
def client_for(settings, site):
    def _make(routes: dict, raise_server_exceptions: bool = True) -> TestClient:
        app = create_application()
        service = AnalysisService(settings, transport=site(routes))
        app.dependency_overrides[get_analysis_service] = lambda: service
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)
    return _make


class TestHealth:

    def test_health(self, client_for):
        response = client_for({}).get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_probes(self, client_for):
        client = client_for({})
        assert client.get("/health/ready").json() == {"ready": True}
        assert client.get("/health/live").json() == {"alive": True}


class TestAnalyzeRoute:

    def test_success(self, client_for, good_page_html):
        client = client_for({"/guide": good_page_html})
        response = client.get("/api/v1/analyze", params={"url": "example.com/guide"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["url"] == "https://example.com/guide"
        assert body["machine_readability"]["max_score"] == 25
        assert body["recommendations"]

    def test_missing_url(self, client_for):
        response = client_for({}).get("/api/v1/analyze")
        assert response.status_code == 400
        assert response.json()["code"] == "URL_REQUIRED"

    def test_invalid_url(self, client_for):
        response = client_for({}).get("/api/v1/analyze", params={"url": "ftp://example.com"})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_URL"

    def test_fetch_failure_is_bad_gateway(self, client_for):
        response = client_for({}).get("/api/v1/analyze", params={"url": "https://example.com/missing"})
        assert response.status_code == 502
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "FETCH_FAILED"


class TestReportRoute:

    def test_success(self, client_for, good_page_html):
        client = client_for({"/sitemap.xml": SITEMAP, "/guide": good_page_html})
        response = client.get("/api/v1/report", params={"url": "https://example.com"})

        assert response.status_code == 200
        body = response.json()
        assert body["report_type"] == "premium"
        assert body["discovery_method"] == "sitemap"
        assert body["pages_analyzed"] == 1
        assert "has_major_issues" in body["action_plan"]

    def test_sitemap_required(self, client_for):
        client = client_for({"/": "<html></html>"})
        response = client.get("/api/v1/report", params={"url": "example.com", "require_sitemap": "true"})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "SITEMAP_REQUIRED"
        assert body["remediation_url"]

    def test_missing_url(self, client_for):
        response = client_for({}).get("/api/v1/report")
        assert response.status_code == 400
        assert response.json()["code"] == "URL_REQUIRED"


class TestErrorHandling:

    def test_unhandled_exception_is_internal_error(self, client_for, monkeypatch):
        client = client_for({}, raise_server_exceptions=False)

        async def boom(self, raw_url):
            raise RuntimeError("boom")

        monkeypatch.setattr(AnalysisService, "analyze_url", boom)
        response = client.get("/api/v1/analyze", params={"url": "example.com"})

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"
