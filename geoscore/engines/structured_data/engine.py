"""
Structured Data Scorer (25 points).

Components:
- JSON-LD presence 4, parse errors -2, schema.org context 3
- Distinct @type count 3
- GEO-relevant schema types 5
- Open Graph 5
- Twitter cards 5
"""

from __future__ import annotations

from typing import Any

from geoscore.engines.base import (
    Category,
    CategoryScorer,
    Issue,
    StructuredDataDetails,
    StructuredDataResult,
    scaled,
)
from geoscore.engines.document import ParsedDocument

IMPORTANT_TYPES = (
    "Organization", "LocalBusiness", "Person", "Service", "Product",
    "FAQPage", "HowTo", "Article", "WebPage", "BreadcrumbList",
)
OPEN_GRAPH_FIELDS = ("og:title", "og:description", "og:image", "og:type", "og:url")
TWITTER_CARD_FIELDS = ("twitter:card", "twitter:title", "twitter:description", "twitter:image")

SCHEMA_ORG_CONTEXTS = {"https://schema.org", "http://schema.org"}


def is_schema_org_context(context: Any) -> bool:
    """Accept a schema.org IRI as a string, inside a list, or as an @vocab."""
    if isinstance(context, str):
        return context.strip().rstrip("/").lower() in SCHEMA_ORG_CONTEXTS
    if isinstance(context, list):
        return any(is_schema_org_context(c) for c in context)
    if isinstance(context, dict):
        return is_schema_org_context(context.get("@vocab"))
    return False


def has_valid_context(data: Any) -> bool:
    items = data if isinstance(data, list) else [data]
    for item in items:
        if not isinstance(item, dict):
            continue
        if "@graph" in item or is_schema_org_context(item.get("@context")):
            return True
    return False


class StructuredDataScorer(CategoryScorer):

    CATEGORY = Category.STRUCTURED_DATA
    RESULT_TYPE = StructuredDataResult

    def compute(self, document: ParsedDocument) -> tuple[int, list[Issue], StructuredDataDetails]:
        issues: list[Issue] = []
        details = StructuredDataDetails()
        score = 0

        # ── JSON-LD ──────────────────────────────
        blocks = document.jsonld_blocks
        parsed = [b for b in blocks if b.parsed]
        errors = len(blocks) - len(parsed)
        details.jsonld_blocks = len(blocks)
        details.jsonld_parse_errors = errors

        if blocks:
            score += 4
            if errors:
                score -= 2
                issues.append(self.issue("jsonld_parse_error", count=errors))

            if any(has_valid_context(b.data) for b in parsed):
                details.has_valid_context = True
                score += 3
            elif parsed:
                issues.append(self.issue("jsonld_no_context"))
        else:
            issues.append(self.issue("no_jsonld"))

        # ── Schema types ─────────────────────────
        types = document.schema_types
        important = [t for t in IMPORTANT_TYPES if t in types]
        details.schema_types = list(types)
        details.important_types = important

        score += min(3, len(types))

        if len(important) >= 3:
            score += 5
        elif len(important) == 2:
            score += 3
        elif len(important) == 1:
            score += 2
        else:
            issues.append(self.issue("no_recommended_schemas"))

        # ── Open Graph ───────────────────────────
        og_fields = [f for f in OPEN_GRAPH_FIELDS if self._meta(document, f)]
        details.open_graph_fields = og_fields
        score += scaled(len(og_fields) / len(OPEN_GRAPH_FIELDS), 5)
        if not og_fields:
            issues.append(self.issue("no_opengraph"))

        # ── Twitter cards ────────────────────────
        twitter_fields = [f for f in TWITTER_CARD_FIELDS if self._meta(document, f)]
        details.twitter_card_fields = twitter_fields
        score += scaled(len(twitter_fields) / len(TWITTER_CARD_FIELDS), 5)
        if not twitter_fields:
            issues.append(self.issue("no_twitter_cards"))

        return score, issues, details

    @staticmethod
    def _meta(document: ParsedDocument, key: str) -> str | None:
        # Publishers mix property= and name= for both vocabularies
        return document.meta_content("property", key) or document.meta_content("name", key)
