"""
Recommendation Synthesizer

Maps every issue code to exactly one remediation step through a fixed
table. Output is deduplicated by action text and ordered
high -> medium -> low; the sort is stable so scorer order is kept within a
priority band.

A page that raises no issues still gets a small set of optimization
suggestions, so a successfully scored page never has an empty list.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict

from geoscore.engines.base import (
    PRIORITY_ORDER,
    Category,
    Issue,
    Priority,
    Recommendation,
)

logger = structlog.get_logger(__name__)


class RecommendationRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: Category
    priority: Priority
    template: str


def _rule(category: Category, priority: Priority, template: str) -> RecommendationRule:
    return RecommendationRule(category=category, priority=priority, template=template)


MR = Category.MACHINE_READABILITY
SD = Category.STRUCTURED_DATA
EF = Category.EXTRACTION_FORMAT
BA = Category.BOT_ACCESSIBILITY
HIGH, MEDIUM, LOW = Priority.HIGH, Priority.MEDIUM, Priority.LOW


RECOMMENDATION_RULES: dict[str, RecommendationRule] = {
    # Machine readability
    "missing_lang": _rule(MR, HIGH, 'Add lang attribute to <html> tag (e.g., <html lang="en">)'),
    "no_h1": _rule(MR, HIGH, "Add a unique H1 heading to this page"),
    "multiple_h1": _rule(MR, HIGH, "Fix: only one H1 per page is recommended (found {count})"),
    "heading_hierarchy_broken": _rule(
        MR, HIGH, "Fix heading hierarchy: use H1→H2→H3 in order, don't skip levels"
    ),
    "too_many_divs": _rule(
        MR, MEDIUM,
        "Replace some <div> with semantic tags (article, section, aside). Current ratio: {ratio}% semantic",
    ),
    "missing_semantic": _rule(MR, MEDIUM, "Add semantic HTML5 tags: {tags}"),
    "few_landmarks": _rule(
        MR, LOW, "Add ARIA landmarks or use semantic elements (header, nav, main, footer, aside)"
    ),

    # Structured data
    "no_jsonld": _rule(
        SD, HIGH, "Add JSON-LD structured data with @context and @type (Organization, Article, FAQPage)"
    ),
    "jsonld_parse_error": _rule(
        SD, HIGH,
        "Fix JSON-LD syntax error in {count} block{plural}: validate your structured data with the schema.org validator",
    ),
    "jsonld_no_context": _rule(
        SD, HIGH, 'Add @context: "https://schema.org" to your JSON-LD for proper validation'
    ),
    "no_recommended_schemas": _rule(
        SD, MEDIUM, "Add GEO-recommended schemas: Organization, Article, FAQPage, or HowTo"
    ),
    "no_opengraph": _rule(
        SD, MEDIUM, "Add Open Graph meta tags (og:title, og:description, og:image, og:type)"
    ),
    "no_twitter_cards": _rule(
        SD, LOW, "Add Twitter Card meta tags (twitter:card, twitter:title, twitter:description)"
    ),

    # Extraction format
    "no_meta_desc": _rule(EF, HIGH, "Add a meta description (120-160 characters) for AI snippet extraction"),
    "meta_desc_length": _rule(
        EF, MEDIUM, "Optimize meta description length (currently {length} chars, ideal: 120-160)"
    ),
    "no_canonical": _rule(EF, HIGH, 'Add <link rel="canonical" href="..."> to specify the preferred URL'),
    "no_faq": _rule(EF, MEDIUM, "Add FAQ section using <details>/<summary> for AI-friendly Q&A extraction"),
    "faq_not_semantic": _rule(
        EF, LOW, "Convert FAQ to semantic <details>/<summary> elements for better AI parsing"
    ),
    "few_ordered_steps": _rule(EF, LOW, "Add numbered lists (<ol><li>) for step-by-step instructions"),
    "howto_schema_missing": _rule(EF, LOW, "Add HowTo schema markup for your step-by-step instructions"),
    "dl_incomplete": _rule(EF, LOW, "Complete your definition lists with <dt> terms and <dd> descriptions"),
    "glossary_without_dl": _rule(EF, LOW, "Use <dl>/<dt>/<dd> for definitions and glossary terms"),
    "no_table_headers": _rule(
        EF, LOW, "Use <table> with <thead>/<th> for comparison data so AI can extract structured facts"
    ),

    # Bot accessibility
    "bots_mostly_blocked": _rule(BA, HIGH, "Unblock AI bots in robots.txt: {bots} are blocked"),
    "bots_partially_blocked": _rule(BA, MEDIUM, "Some AI bots are blocked in robots.txt: {bots}"),
    "no_robots_txt": _rule(
        BA, LOW, "Add a robots.txt file that explicitly allows AI crawlers (GPTBot, ClaudeBot, PerplexityBot)"
    ),
    "no_llms_txt": _rule(BA, LOW, "Create an llms.txt file to give AI crawlers instructions about your site"),
    "has_noindex": _rule(BA, HIGH, "Remove noindex directive - it prevents AI bots from indexing your content"),
    "has_nofollow": _rule(
        BA, MEDIUM, "Consider removing nofollow - it may limit how AI bots discover your other pages"
    ),
    "likely_csr": _rule(
        BA, HIGH,
        "Your site appears to use client-side rendering (CSR) - AI bots may not see your content. Consider SSR/SSG.",
    ),
    "low_content": _rule(
        BA, MEDIUM, "Very little text content detected in HTML - ensure content is server-rendered"
    ),
    "heavy_js": _rule(
        BA, LOW, "Heavy JavaScript with little text in the HTML ({scripts} scripts) - pre-render key content"
    ),
    "missing_alt": _rule(BA, MEDIUM, "Add alt text to {count} image{plural} for better AI understanding"),
    "slow_load": _rule(
        BA, HIGH, "Page loads too slowly ({seconds}s) - AI bots time out after 5-10s. Optimize performance."
    ),
    "moderate_load": _rule(
        BA, MEDIUM, "Page load time is moderate ({seconds}s) - consider optimizing for faster AI crawling"
    ),
}

FALLBACK_RECOMMENDATIONS: tuple[Recommendation, ...] = (
    Recommendation(
        category=Category.OPTIMIZATION,
        priority=LOW,
        issue_code="enrich_schemas",
        action="Enrich JSON-LD schemas with more types (HowTo, Article, Product)",
    ),
    Recommendation(
        category=Category.OPTIMIZATION,
        priority=LOW,
        issue_code="faq_schema",
        action="Add structured FAQ with FAQPage schema for AI featured snippets",
    ),
    Recommendation(
        category=Category.OPTIMIZATION,
        priority=LOW,
        issue_code="maintain_llms_txt",
        action="Keep your llms.txt up to date as your content evolves",
    ),
)


def render_params(params: dict[str, Any]) -> dict[str, Any]:
    """Flatten list params for display and derive a plural suffix from count."""
    rendered = {k: ", ".join(map(str, v)) if isinstance(v, (list, tuple)) else v for k, v in params.items()}
    if "count" in params:
        rendered["plural"] = "" if params["count"] == 1 else "s"
    return rendered


def render(issue: Issue) -> Recommendation:
    rule = RECOMMENDATION_RULES.get(issue.code)
    if rule is None:
        raise KeyError(f"No recommendation rule for issue code: {issue.code}")
    return Recommendation(
        category=rule.category,
        priority=rule.priority,
        issue_code=issue.code,
        action=rule.template.format(**render_params(issue.params)),
    )


def synthesize(issues: list[Issue], page_url: str | None = None) -> list[Recommendation]:
    """
    Turn a page's issues into deduplicated, priority-ordered recommendations.
    Deterministic: the same issues always produce the same list.
    """
    if not issues:
        return [rec.model_copy(update={"page_url": page_url}) for rec in FALLBACK_RECOMMENDATIONS]

    seen: set[str] = set()
    recommendations = []
    for issue in issues:
        rec = render(issue)
        if rec.action in seen:
            continue
        seen.add(rec.action)
        recommendations.append(rec.model_copy(update={"page_url": page_url}))

    recommendations.sort(key=lambda r: PRIORITY_ORDER[r.priority])
    logger.debug("Recommendations synthesized", page_url=page_url, count=len(recommendations))
    return recommendations
