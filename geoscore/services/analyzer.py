"""
Analysis Service - the stateless scoring pipeline.

    Resolve -> (per page) Fetch -> Score -> Synthesize -> Aggregate -> Prioritize

The single-page and multi-page flows share analyze_document(), so a page
scores identically whichever entry point produced it. Nothing is persisted;
every call rebuilds its report from scratch.
"""

from __future__ import annotations

import asyncio
import time

import httpx
import structlog

from geoscore.core.config import Settings, get_settings
from geoscore.core.exceptions import FetchError, InvalidURLError, ResolverError
from geoscore.engines.accessibility.engine import BotAccessibilityScorer
from geoscore.engines.base import (
    PAGE_MAX_SCORE,
    BotAccessibilityResult,
    ErrorReport,
    ExtractionFormatResult,
    MachineReadabilityResult,
    PageAnalysis,
    PageDetails,
    SiteReport,
    StructuredDataResult,
    clamp,
)
from geoscore.engines.document import ParsedDocument
from geoscore.engines.extraction.engine import ExtractionFormatScorer
from geoscore.engines.fetcher.engine import DocumentFetcher
from geoscore.engines.prioritization.engine import build_action_plan
from geoscore.engines.readability.engine import MachineReadabilityScorer
from geoscore.engines.recommendations.engine import synthesize
from geoscore.engines.scoring.engine import SiteAggregator
from geoscore.engines.sitemap.engine import SitemapResolver, URLNormalizer
from geoscore.engines.structured_data.engine import StructuredDataScorer

logger = structlog.get_logger(__name__)


def build_page_details(
    document: ParsedDocument,
    mr: MachineReadabilityResult,
    sd: StructuredDataResult,
    ef: ExtractionFormatResult,
    ba: BotAccessibilityResult,
) -> PageDetails:
    return PageDetails(
        h1_count=mr.details.h1_count,
        schema_types=sd.details.schema_types,
        has_meta_description=ef.details.meta_description_length is not None,
        has_faq=ef.details.faq_method is not None,
        has_canonical=ef.details.canonical_url is not None,
        has_open_graph=bool(sd.details.open_graph_fields),
        has_twitter_cards=bool(sd.details.twitter_card_fields),
        has_robots_txt=ba.details.has_robots_txt,
        has_llms_txt=ba.details.has_llms_txt,
        blocked_bots=ba.details.blocked_bots,
        allowed_bots=ba.details.allowed_bots,
        has_noindex=ba.details.has_noindex,
        has_nofollow=ba.details.has_nofollow,
        csr_detected=any(i.code == "likely_csr" for i in ba.issues),
        load_time_ms=round(document.load_time_ms, 1),
        html_size=document.html_size,
    )


class AnalysisService:
    """
    Entry points for single-page analysis and multi-page site reports.

    Args:
        settings: override the cached process settings
        transport: httpx transport injected into every fetcher (tests)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport
        self.readability = MachineReadabilityScorer()
        self.structured_data = StructuredDataScorer()
        self.extraction = ExtractionFormatScorer()
        self.accessibility = BotAccessibilityScorer()
        self.aggregator = SiteAggregator(self.settings)

    def fetcher(self) -> DocumentFetcher:
        return DocumentFetcher(self.settings, transport=self.transport)

    # ─────────────────────────────────────────
    # Page scoring
    # ─────────────────────────────────────────

    def analyze_document(self, document: ParsedDocument) -> PageAnalysis:
        """Score one parsed document. Pure: no I/O."""
        mr = self.readability.score(document)
        sd = self.structured_data.score(document)
        ef = self.extraction.score(document)
        ba = self.accessibility.score(document)

        results = [mr, sd, ef, ba]
        total = clamp(sum(r.score for r in results), 0, PAGE_MAX_SCORE)
        issues = [issue for r in results for issue in r.issues]

        return PageAnalysis(
            url=document.url,
            success=True,
            score=total,
            machine_readability=mr,
            structured_data=sd,
            extraction_format=ef,
            bot_accessibility=ba,
            issues=issues,
            recommendations=synthesize(issues, page_url=document.url),
            details=build_page_details(document, mr, sd, ef, ba),
            load_time_ms=round(document.load_time_ms, 1),
        )

    async def analyze_page(self, fetcher: DocumentFetcher, url: str) -> PageAnalysis:
        """Fetch and score one page; every failure degrades to a failed entry."""
        start = time.perf_counter()
        try:
            bundle = await fetcher.fetch_bundle(url)
            analysis = self.analyze_document(ParsedDocument.from_bundle(bundle))
        except FetchError as e:
            logger.warning("Page fetch failed", url=url, error=e.message)
            return self.failed_page(url, e.message, start)
        except Exception as e:
            logger.error("Page analysis failed", url=url, error=str(e), exc_info=True)
            return self.failed_page(url, str(e) or e.__class__.__name__, start)

        logger.info(
            "Page analyzed",
            url=url,
            score=analysis.score,
            elapsed_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return analysis

    @staticmethod
    def failed_page(url: str, error: str, start: float) -> PageAnalysis:
        return PageAnalysis(
            url=url,
            success=False,
            score=0,
            error=error,
            load_time_ms=round((time.perf_counter() - start) * 1000, 1),
        )

    # ─────────────────────────────────────────
    # Entry points
    # ─────────────────────────────────────────

    async def analyze_url(self, raw_url: str) -> PageAnalysis | ErrorReport:
        """Free single-page analysis. Document fetch failure is surfaced."""
        try:
            url = URLNormalizer.normalize_input(raw_url)
        except InvalidURLError as e:
            return ErrorReport(code=e.code, message=e.message, url=raw_url)

        async with self.fetcher() as fetcher:
            try:
                bundle = await fetcher.fetch_bundle(url)
            except FetchError as e:
                logger.warning("Document fetch failed", url=url, error=e.message)
                return ErrorReport(code=e.code, message=e.message, url=url)

        analysis = self.analyze_document(ParsedDocument.from_bundle(bundle))
        logger.info("URL analyzed", url=url, score=analysis.score)
        return analysis

    async def analyze_site(
        self,
        raw_url: str,
        fallback_crawl: bool | None = None,
    ) -> SiteReport | ErrorReport:
        """Multi-page report: resolve, score each page sequentially, aggregate."""
        start = time.perf_counter()
        try:
            url = URLNormalizer.normalize_input(raw_url)
        except InvalidURLError as e:
            return ErrorReport(code=e.code, message=e.message, url=raw_url)

        root = URLNormalizer.root_url(url)
        delay = self.settings.INTER_PAGE_DELAY_MS / 1000

        async with self.fetcher() as fetcher:
            resolver = SitemapResolver(fetcher, self.settings)
            try:
                resolved = await resolver.resolve(root, fallback_crawl=fallback_crawl)
            except ResolverError as e:
                logger.warning("Page discovery failed", root_url=root, code=e.code)
                return ErrorReport(
                    code=e.code,
                    message=e.message,
                    url=root,
                    remediation_url=e.remediation_url,
                )

            pages: list[PageAnalysis] = []
            for index, page_url in enumerate(resolved.urls):
                if index and delay:
                    await asyncio.sleep(delay)
                pages.append(await self.analyze_page(fetcher, page_url))

        aggregate = self.aggregator.aggregate(pages)
        action_plan = build_action_plan(
            aggregate.recommendations,
            aggregate.summary.average_score,
            self.settings,
        )
        successful = sum(1 for p in pages if p.success)
        elapsed = round((time.perf_counter() - start) * 1000, 1)

        logger.info(
            "Site report complete",
            root_url=root,
            discovery_method=resolved.discovery_method.value,
            pages=len(pages),
            successful=successful,
            average_score=aggregate.summary.average_score,
            elapsed_ms=elapsed,
        )

        return SiteReport(
            url=root,
            discovery_method=resolved.discovery_method,
            pages_analyzed=len(pages),
            pages_successful=successful,
            pages_failed=len(pages) - successful,
            analysis_time_ms=elapsed,
            summary=aggregate.summary,
            pages=pages,
            problem_pages=aggregate.problem_pages,
            global_recommendations=aggregate.global_recommendations,
            action_plan=action_plan,
        )
