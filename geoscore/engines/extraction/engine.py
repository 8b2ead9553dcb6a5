"""
Extraction Format Scorer (25 points).

Measures how easily an answer engine can lift self-contained snippets:
meta description 5, canonical 3, FAQ 4, ordered lists 3, how-to 3,
definition lists 3, blockquotes 2, tables 2.
"""

from __future__ import annotations

from geoscore.engines.base import (
    Category,
    CategoryScorer,
    ExtractionFormatDetails,
    ExtractionFormatResult,
    Issue,
)
from geoscore.engines.document import ParsedDocument

META_DESC_IDEAL = (120, 160)
META_DESC_ACCEPTABLE = (80, 200)

FAQ_HINT_SELECTOR = '[class*="faq" i], [id*="faq" i], [class*="accordion" i]'
STEP_HINT_SELECTOR = '[class*="step" i]'
GLOSSARY_WORDS = ("definition", "glossary")


class ExtractionFormatScorer(CategoryScorer):

    CATEGORY = Category.EXTRACTION_FORMAT
    RESULT_TYPE = ExtractionFormatResult

    def compute(self, document: ParsedDocument) -> tuple[int, list[Issue], ExtractionFormatDetails]:
        soup = document.soup
        issues: list[Issue] = []
        details = ExtractionFormatDetails()
        score = 0

        # ── Meta description ─────────────────────
        description = document.meta_content("name", "description")
        if description:
            length = len(description)
            details.meta_description_length = length
            if META_DESC_IDEAL[0] <= length <= META_DESC_IDEAL[1]:
                score += 5
            else:
                if META_DESC_ACCEPTABLE[0] <= length <= META_DESC_ACCEPTABLE[1]:
                    score += 3
                else:
                    score += 1
                issues.append(self.issue("meta_desc_length", length=length))
        else:
            issues.append(self.issue("no_meta_desc"))

        # ── Canonical ────────────────────────────
        canonical = soup.find("link", rel="canonical")
        href = (canonical.get("href") or "").strip() if canonical else ""
        if href:
            details.canonical_url = href
            score += 3
        else:
            issues.append(self.issue("no_canonical"))

        # ── FAQ ──────────────────────────────────
        if soup.select_one("details summary") is not None:
            details.faq_method = "details"
            score += 4
        elif document.has_schema_type("FAQPage"):
            details.faq_method = "schema"
            score += 4
        elif soup.select_one(FAQ_HINT_SELECTOR) is not None:
            details.faq_method = "class"
            score += 2
            issues.append(self.issue("faq_not_semantic"))
        else:
            issues.append(self.issue("no_faq"))

        # ── Ordered lists ────────────────────────
        ordered_lists = soup.find_all("ol")
        list_items = len(soup.select("ol li"))
        details.ordered_lists = len(ordered_lists)
        details.ordered_list_items = list_items
        if list_items >= 3:
            score += 3
        else:
            if ordered_lists:
                score += 1
            issues.append(self.issue("few_ordered_steps", count=list_items))

        # ── How-to ───────────────────────────────
        step_elements = len(soup.select(STEP_HINT_SELECTOR))
        details.step_elements = step_elements
        details.has_howto_schema = document.has_schema_type("HowTo")
        if details.has_howto_schema:
            score += 3
        elif step_elements >= 2 or list_items >= 3:
            score += 1
            issues.append(self.issue("howto_schema_missing"))

        # ── Definition lists ─────────────────────
        definition_lists = soup.find_all("dl")
        complete = [dl for dl in definition_lists if dl.find("dt") and dl.find("dd")]
        details.definition_lists = len(definition_lists)
        details.complete_definition_lists = len(complete)
        if complete:
            score += 3
        elif definition_lists:
            score += 1
            issues.append(self.issue("dl_incomplete"))
        else:
            text = document.body_text.lower()
            if any(word in text for word in GLOSSARY_WORDS):
                issues.append(self.issue("glossary_without_dl"))

        # ── Blockquotes ──────────────────────────
        blockquotes = soup.find_all("blockquote")
        cited = [q for q in blockquotes if q.get("cite") or q.find("cite")]
        details.blockquotes = len(blockquotes)
        details.cited_blockquotes = len(cited)
        if cited:
            score += 2
        elif blockquotes:
            score += 1

        # ── Tables ───────────────────────────────
        tables = soup.find_all("table")
        with_headers = [t for t in tables if t.find("thead") or t.find("th")]
        details.tables = len(tables)
        details.tables_with_headers = len(with_headers)
        if with_headers:
            score += 2
        else:
            issues.append(self.issue("no_table_headers"))

        return score, issues, details
