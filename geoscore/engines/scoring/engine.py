"""
Site Aggregator

Folds per-page analyses into site-level statistics:

  average_score   = half-up rounded mean over successful pages (0 if none)
  potential_score = min(100, average + POTENTIAL_SCORE_GAIN)
  score_level     = critical < 30 <= poor < 50 <= average < 70 <= good

Problem pages are the lowest scorers below PROBLEM_PAGE_THRESHOLD. Global
recommendations are those raised by at least half of the successful pages.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from geoscore.core.config import Settings, get_settings
from geoscore.engines.base import (
    PAGE_MAX_SCORE,
    AggregatedRecommendation,
    PageAnalysis,
    ProblemPage,
    ScoreLevel,
    SiteSummary,
    round_half_up,
)

logger = structlog.get_logger(__name__)


@dataclass
class SiteAggregate:
    summary: SiteSummary
    problem_pages: list[ProblemPage] = field(default_factory=list)
    recommendations: list[AggregatedRecommendation] = field(default_factory=list)
    global_recommendations: list[AggregatedRecommendation] = field(default_factory=list)


def score_level(average: int, settings: Settings | None = None) -> ScoreLevel:
    settings = settings or get_settings()
    if average < settings.SCORE_LEVEL_CRITICAL:
        return ScoreLevel.CRITICAL
    if average < settings.SCORE_LEVEL_POOR:
        return ScoreLevel.POOR
    if average < settings.SCORE_LEVEL_AVERAGE:
        return ScoreLevel.AVERAGE
    return ScoreLevel.GOOD


def summarize(pages: list[PageAnalysis], settings: Settings | None = None) -> SiteSummary:
    settings = settings or get_settings()
    scores = [p.score for p in pages if p.success]
    if not scores:
        return SiteSummary(score_level=score_level(0, settings))

    average = round_half_up(sum(scores) / len(scores))
    potential = min(PAGE_MAX_SCORE, average + settings.POTENTIAL_SCORE_GAIN)
    return SiteSummary(
        average_score=average,
        lowest_score=min(scores),
        highest_score=max(scores),
        potential_score=potential,
        possible_gain=potential - average,
        score_level=score_level(average, settings),
    )


def find_problem_pages(
    pages: list[PageAnalysis],
    threshold: int = 40,
    limit: int = 5,
) -> list[ProblemPage]:
    weak = sorted(
        (p for p in pages if p.success and p.score < threshold),
        key=lambda p: p.score,
    )
    return [
        ProblemPage(
            url=p.url,
            score=p.score,
            main_issues=[r.action for r in p.recommendations[:2]],
        )
        for p in weak[:limit]
    ]


def count_recommendations(pages: list[PageAnalysis]) -> list[AggregatedRecommendation]:
    """
    Deduplicate recommendations site-wide by action text.
    The first occurrence wins (and keeps its page_url); affected_pages counts
    every page that raised the action.
    """
    by_action: dict[str, AggregatedRecommendation] = {}
    for page in pages:
        if not page.success:
            continue
        page_seen: set[str] = set()
        for rec in page.recommendations:
            if rec.action in page_seen:
                continue
            page_seen.add(rec.action)
            existing = by_action.get(rec.action)
            if existing is None:
                by_action[rec.action] = AggregatedRecommendation(
                    **rec.model_dump(exclude={"affected_pages"}), affected_pages=1
                )
            else:
                existing.affected_pages += 1
    return list(by_action.values())


def select_global_recommendations(
    counted: list[AggregatedRecommendation],
    successful_pages: int,
    limit: int = 5,
) -> list[AggregatedRecommendation]:
    if successful_pages <= 0:
        return []
    common = [r for r in counted if r.affected_pages * 2 >= successful_pages]
    return common[:limit]


class SiteAggregator:
    """Builds the site-level aggregate for one report run."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def aggregate(self, pages: list[PageAnalysis]) -> SiteAggregate:
        successful = sum(1 for p in pages if p.success)
        summary = summarize(pages, self.settings)
        counted = count_recommendations(pages)

        aggregate = SiteAggregate(
            summary=summary,
            problem_pages=find_problem_pages(
                pages,
                threshold=self.settings.PROBLEM_PAGE_THRESHOLD,
                limit=self.settings.PROBLEM_PAGE_LIMIT,
            ),
            recommendations=counted,
            global_recommendations=select_global_recommendations(
                counted, successful, limit=self.settings.GLOBAL_RECOMMENDATION_LIMIT
            ),
        )

        logger.info(
            "Site aggregated",
            pages=len(pages),
            successful=successful,
            average_score=summary.average_score,
            score_level=summary.score_level.value,
            distinct_recommendations=len(counted),
        )
        return aggregate
