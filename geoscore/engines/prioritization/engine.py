"""
Action Plan Prioritizer

Sorts site recommendations into three mutually exclusive urgency tiers.

Effort / impact are estimated from the action text (first keyword match
wins). Tiering depends on how bad the site is overall:

  average < 30        high -> critical,   medium/low -> important
  30 <= average < 50  high -> important,  medium/low -> improvements
  average >= 50       everything -> improvements

Each tier is ordered by impact (descending, stable) and capped.
"""

from __future__ import annotations

from typing import NamedTuple

import structlog

from geoscore.core.config import Settings, get_settings
from geoscore.engines.base import (
    ActionItem,
    ActionPlan,
    AggregatedRecommendation,
    Priority,
    Recommendation,
    Tier,
)

logger = structlog.get_logger(__name__)


class EffortEstimate(NamedTuple):
    estimated_time: str
    impact: int


# Order matters: the first keyword found in the action text wins
EFFORT_RULES: list[tuple[str, EffortEstimate]] = [
    ("meta description", EffortEstimate("5 min", 2)),
    ("h1", EffortEstimate("5 min", 3)),
    ("json-ld", EffortEstimate("30 min", 3)),
    ("robots.txt", EffortEstimate("10 min", 3)),
    ("llms.txt", EffortEstimate("15 min", 2)),
    ("alt text", EffortEstimate("15-30 min", 2)),
    ("canonical", EffortEstimate("10 min", 2)),
    ("semantic", EffortEstimate("1-2 hours", 3)),
    ("faq", EffortEstimate("30 min", 2)),
    ("client-side rendering", EffortEstimate("4+ hours", 3)),
]
DEFAULT_EFFORT = EffortEstimate("1-2 hours", 2)


def estimate_effort(action: str) -> EffortEstimate:
    text = action.lower()
    for keyword, estimate in EFFORT_RULES:
        if keyword in text:
            return estimate
    return DEFAULT_EFFORT


def assign_tier(priority: Priority, average_score: int) -> Tier:
    if average_score < 30:
        return Tier.CRITICAL if priority == Priority.HIGH else Tier.IMPORTANT
    if average_score < 50:
        return Tier.IMPORTANT if priority == Priority.HIGH else Tier.IMPROVEMENT
    return Tier.IMPROVEMENT


def build_action_plan(
    recommendations: list[Recommendation],
    average_score: int,
    settings: Settings | None = None,
) -> ActionPlan:
    """
    Build the three-tier plan.
    Input is deduplicated by action first, so an action lands in one tier only.
    """
    settings = settings or get_settings()
    limit = settings.ACTION_PLAN_TIER_LIMIT

    tiers: dict[Tier, list[ActionItem]] = {tier: [] for tier in Tier}
    seen: set[str] = set()
    for rec in recommendations:
        if rec.action in seen:
            continue
        seen.add(rec.action)

        estimate = estimate_effort(rec.action)
        tier = assign_tier(rec.priority, average_score)
        affected = rec.affected_pages if isinstance(rec, AggregatedRecommendation) else 1
        tiers[tier].append(ActionItem(
            **rec.model_dump(exclude={"affected_pages"}),
            affected_pages=affected,
            estimated_time=estimate.estimated_time,
            impact=estimate.impact,
            tier=tier,
        ))

    for items in tiers.values():
        items.sort(key=lambda item: -item.impact)

    plan = ActionPlan(
        critical=tiers[Tier.CRITICAL][:limit],
        important=tiers[Tier.IMPORTANT][:limit],
        improvements=tiers[Tier.IMPROVEMENT][:limit],
    )
    logger.debug(
        "Action plan built",
        average_score=average_score,
        critical=len(plan.critical),
        important=len(plan.important),
        improvements=len(plan.improvements),
    )
    return plan
