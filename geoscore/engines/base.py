"""
Base class and type contracts for the GEO scoring engines.
Every category scorer MUST inherit from CategoryScorer and implement compute().

Design principles:
- Scorers are pure: all input comes from the ParsedDocument
- Scorers are independent: no scorer imports another
- Scorers return a typed CategoryResult clamped to [0, 25]
- Reports are transient: rebuilt on every analyze call, never persisted
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

import structlog
from pydantic import BaseModel, ConfigDict, Field, computed_field

from geoscore.engines.document import ParsedDocument

CATEGORY_MAX_SCORE = 25
PAGE_MAX_SCORE = 100


# ─────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────

class Category(str, Enum):
    MACHINE_READABILITY = "machine_readability"
    STRUCTURED_DATA = "structured_data"
    EXTRACTION_FORMAT = "extraction_format"
    BOT_ACCESSIBILITY = "bot_accessibility"
    OPTIMIZATION = "optimization"   # Fallback suggestions only


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_ORDER: dict[Priority, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


class ScoreLevel(str, Enum):
    CRITICAL = "critical"
    POOR = "poor"
    AVERAGE = "average"
    GOOD = "good"


class Tier(str, Enum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    IMPROVEMENT = "improvement"


class DiscoveryMethod(str, Enum):
    SITEMAP = "sitemap"
    CRAWL = "crawl"


# ─────────────────────────────────────────────
# Issues
# ─────────────────────────────────────────────

class Issue(BaseModel):
    """A single problem detected by a scorer."""
    code: str
    category: Category
    params: dict[str, Any] = Field(default_factory=dict)


# ─────────────────────────────────────────────
# Category detail records
# ─────────────────────────────────────────────

class MachineReadabilityDetails(BaseModel):
    semantic_found: list[str] = Field(default_factory=list)
    semantic_missing: list[str] = Field(default_factory=list)
    heading_counts: dict[str, int] = Field(default_factory=dict)   # "h1".."h6"
    h1_count: int = 0
    has_h2: bool = False
    hierarchy_ok: bool = True
    div_count: int = 0
    semantic_container_count: int = 0
    semantic_ratio: float = 0.0
    lang: str | None = None
    landmarks: list[str] = Field(default_factory=list)


class StructuredDataDetails(BaseModel):
    jsonld_blocks: int = 0
    jsonld_parse_errors: int = 0
    has_valid_context: bool = False
    schema_types: list[str] = Field(default_factory=list)
    important_types: list[str] = Field(default_factory=list)
    open_graph_fields: list[str] = Field(default_factory=list)
    twitter_card_fields: list[str] = Field(default_factory=list)


class ExtractionFormatDetails(BaseModel):
    meta_description_length: int | None = None
    canonical_url: str | None = None
    faq_method: str | None = None       # details | schema | class
    ordered_lists: int = 0
    ordered_list_items: int = 0
    has_howto_schema: bool = False
    step_elements: int = 0
    definition_lists: int = 0
    complete_definition_lists: int = 0
    blockquotes: int = 0
    cited_blockquotes: int = 0
    tables: int = 0
    tables_with_headers: int = 0


class BotAccessibilityDetails(BaseModel):
    has_robots_txt: bool = False
    allowed_bots: list[str] = Field(default_factory=list)
    blocked_bots: list[str] = Field(default_factory=list)
    has_llms_txt: bool = False
    has_noindex: bool = False
    has_nofollow: bool = False
    text_length: int = 0
    script_count: int = 0
    text_ratio: float = 0.0
    csr_signals: list[str] = Field(default_factory=list)
    images: int = 0
    images_with_alt: int = 0
    load_time_ms: float = 0.0


# ─────────────────────────────────────────────
# Category results
# ─────────────────────────────────────────────

class CategoryResult(BaseModel):
    """Standardized output of every category scorer."""
    category: Category
    score: int = Field(ge=0, le=CATEGORY_MAX_SCORE)
    max_score: int = CATEGORY_MAX_SCORE
    issues: list[Issue] = Field(default_factory=list)


class MachineReadabilityResult(CategoryResult):
    category: Category = Category.MACHINE_READABILITY
    details: MachineReadabilityDetails


class StructuredDataResult(CategoryResult):
    category: Category = Category.STRUCTURED_DATA
    details: StructuredDataDetails


class ExtractionFormatResult(CategoryResult):
    category: Category = Category.EXTRACTION_FORMAT
    details: ExtractionFormatDetails


class BotAccessibilityResult(CategoryResult):
    category: Category = Category.BOT_ACCESSIBILITY
    details: BotAccessibilityDetails


# ─────────────────────────────────────────────
# Recommendations & action plan
# ─────────────────────────────────────────────

class Recommendation(BaseModel):
    """A remediation step. Identity is the action text."""
    category: Category
    priority: Priority
    issue_code: str
    action: str
    page_url: str | None = None


class AggregatedRecommendation(Recommendation):
    affected_pages: int = 1


class ActionItem(AggregatedRecommendation):
    estimated_time: str
    impact: int = Field(ge=1, le=3)
    tier: Tier


class ActionPlan(BaseModel):
    critical: list[ActionItem] = Field(default_factory=list)
    important: list[ActionItem] = Field(default_factory=list)
    improvements: list[ActionItem] = Field(default_factory=list)

    @computed_field
    @property
    def has_major_issues(self) -> bool:
        return bool(self.critical or self.important)


# ─────────────────────────────────────────────
# Page & site reports
# ─────────────────────────────────────────────

class PageDetails(BaseModel):
    """Flat per-page summary consumed by report renderers."""
    h1_count: int = 0
    schema_types: list[str] = Field(default_factory=list)
    has_meta_description: bool = False
    has_faq: bool = False
    has_canonical: bool = False
    has_open_graph: bool = False
    has_twitter_cards: bool = False
    has_robots_txt: bool = False
    has_llms_txt: bool = False
    blocked_bots: list[str] = Field(default_factory=list)
    allowed_bots: list[str] = Field(default_factory=list)
    has_noindex: bool = False
    has_nofollow: bool = False
    csr_detected: bool = False
    load_time_ms: float = 0.0
    html_size: int = 0


class PageAnalysis(BaseModel):
    """Result of analyzing one URL. Created once, never mutated."""
    model_config = ConfigDict(frozen=True)

    url: str
    success: bool
    score: int = Field(default=0, ge=0, le=PAGE_MAX_SCORE)
    machine_readability: MachineReadabilityResult | None = None
    structured_data: StructuredDataResult | None = None
    extraction_format: ExtractionFormatResult | None = None
    bot_accessibility: BotAccessibilityResult | None = None
    issues: list[Issue] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    details: PageDetails | None = None
    load_time_ms: float = 0.0
    error: str | None = None
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def category_results(self) -> list[CategoryResult]:
        return [
            r for r in (
                self.machine_readability,
                self.structured_data,
                self.extraction_format,
                self.bot_accessibility,
            )
            if r is not None
        ]


class SiteSummary(BaseModel):
    average_score: int = 0
    lowest_score: int = 0
    highest_score: int = 0
    potential_score: int = 0
    possible_gain: int = 0
    score_level: ScoreLevel = ScoreLevel.CRITICAL


class ProblemPage(BaseModel):
    url: str
    score: int
    main_issues: list[str] = Field(default_factory=list)


class SiteReport(BaseModel):
    success: bool = True
    report_type: str = "premium"
    url: str
    discovery_method: DiscoveryMethod
    pages_analyzed: int = 0
    pages_successful: int = 0
    pages_failed: int = 0
    analysis_time_ms: float = 0.0
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    summary: SiteSummary
    pages: list[PageAnalysis] = Field(default_factory=list)
    problem_pages: list[ProblemPage] = Field(default_factory=list)
    global_recommendations: list[AggregatedRecommendation] = Field(default_factory=list)
    action_plan: ActionPlan = Field(default_factory=ActionPlan)


class ErrorReport(BaseModel):
    """Distinguished failure returned to callers instead of a report."""
    success: bool = False
    code: str
    message: str
    url: str | None = None
    remediation_url: str | None = None


# ─────────────────────────────────────────────
# Numeric helpers
# ─────────────────────────────────────────────

def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (banker's rounding skews partial credit)."""
    if value < 0:
        return -round_half_up(-value)
    return int(value + 0.5)


def scaled(fraction: float, points: int) -> int:
    """Partial credit: fraction of a point budget."""
    fraction = max(0.0, min(1.0, fraction))
    return round_half_up(fraction * points)


def clamp(value: float, lo: int, hi: int) -> int:
    return int(max(lo, min(hi, value)))


# ─────────────────────────────────────────────
# Base Scorer
# ─────────────────────────────────────────────

class CategoryScorer(ABC):
    """
    Abstract base class for the four category scorers.

    All scorers MUST:
    1. Implement compute(document) -> (raw_score, issues, details)
    2. Be pure - no I/O, no state stored on self between calls
    3. Leave clamping to score(); intermediate terms may overflow or go negative
    """

    CATEGORY: ClassVar[Category]
    RESULT_TYPE: ClassVar[type[CategoryResult]]
    MAX_SCORE: ClassVar[int] = CATEGORY_MAX_SCORE

    def __init__(self):
        self.logger = structlog.get_logger(self.__class__.__name__)

    @abstractmethod
    def compute(self, document: ParsedDocument) -> tuple[int, list[Issue], BaseModel]:
        """
        Score a parsed document.

        Returns:
            raw score (unclamped), detected issues, category detail record
        """
        ...

    def score(self, document: ParsedDocument) -> CategoryResult:
        """
        Wrapper around compute() that clamps and packages the result.
        Call this instead of compute() directly.
        """
        raw, issues, details = self.compute(document)
        final = clamp(raw, 0, self.MAX_SCORE)
        self.logger.debug(
            "Category scored",
            category=self.CATEGORY.value,
            url=document.url,
            raw_score=raw,
            score=final,
            issue_count=len(issues),
        )
        return self.RESULT_TYPE(
            category=self.CATEGORY,
            score=final,
            issues=issues,
            details=details,
        )

    def issue(self, code: str, **params: Any) -> Issue:
        return Issue(code=code, category=self.CATEGORY, params=params)
