"""
Tests for the Extraction Format scorer.
"""

import json

import pytest

from geoscore.engines.extraction.engine import ExtractionFormatScorer


def body(content: str, head: str = "") -> str:
    return f"<html><head>{head}</head><body>{content}</body></html>"


def meta_description(length: int) -> str:
    return f'<meta name="description" content="{"a" * length}">'


def codes(result):
    return [i.code for i in result.issues]


@pytest.fixture
def scorer():
    return ExtractionFormatScorer()


class TestMetaDescription:

    @pytest.mark.parametrize("length,points,issue", [
        (140, 5, None),
        (120, 5, None),
        (160, 5, None),
        (100, 3, "meta_desc_length"),
        (190, 3, "meta_desc_length"),
        (40, 1, "meta_desc_length"),
        (300, 1, "meta_desc_length"),
    ])
    def test_length_windows(self, scorer, make_doc, length, points, issue):
        baseline = scorer.score(make_doc(body("")))
        result = scorer.score(make_doc(body("", head=meta_description(length))))
        assert result.score - baseline.score == points
        assert result.details.meta_description_length == length
        if issue:
            found = next(i for i in result.issues if i.code == issue)
            assert found.params["length"] == length
        else:
            assert "meta_desc_length" not in codes(result)

    def test_missing_description(self, scorer, make_doc):
        result = scorer.score(make_doc(body("")))
        assert "no_meta_desc" in codes(result)
        assert result.details.meta_description_length is None

    def test_blank_description_counts_as_missing(self, scorer, make_doc):
        result = scorer.score(make_doc(body("", head='<meta name="description" content="   ">')))
        assert "no_meta_desc" in codes(result)


class TestExtractionFormatScorer:

    def test_empty_document_stays_in_range(self, scorer, make_doc):
        result = scorer.score(make_doc(""))
        assert result.score == 0
        assert {"no_meta_desc", "no_canonical", "no_faq", "few_ordered_steps", "no_table_headers"} <= set(codes(result))

    def test_well_structured_page(self, scorer, make_doc, good_page_html):
        result = scorer.score(make_doc(good_page_html))
        # everything but HowTo schema: 25 - 2
        assert result.score == 23
        assert codes(result) == ["howto_schema_missing"]
        assert result.details.faq_method == "details"
        assert result.details.canonical_url == "https://example.com/guide"

    def test_faq_from_schema_type(self, scorer, make_doc):
        schema = json.dumps({"@context": "https://schema.org", "@type": "FAQPage"})
        html = body("", head=f'<script type="application/ld+json">{schema}</script>')
        result = scorer.score(make_doc(html))
        assert result.details.faq_method == "schema"
        assert "no_faq" not in codes(result)

    def test_faq_class_hint_is_not_semantic(self, scorer, make_doc):
        result = scorer.score(make_doc(body('<div class="FAQ-list"><p>Q</p></div>')))
        assert result.details.faq_method == "class"
        assert "faq_not_semantic" in codes(result)

    def test_short_ordered_list(self, scorer, make_doc):
        result = scorer.score(make_doc(body("<ol><li>One</li><li>Two</li></ol>")))
        assert result.details.ordered_list_items == 2
        issue = next(i for i in result.issues if i.code == "few_ordered_steps")
        assert issue.params["count"] == 2

    def test_howto_schema_earns_full_points(self, scorer, make_doc):
        schema = json.dumps({"@context": "https://schema.org", "@type": "HowTo"})
        steps = "<ol><li>a</li><li>b</li><li>c</li></ol>"
        html = body(steps, head=f'<script type="application/ld+json">{schema}</script>')
        result = scorer.score(make_doc(html))
        assert result.details.has_howto_schema
        assert "howto_schema_missing" not in codes(result)

    def test_step_classes_without_schema(self, scorer, make_doc):
        html = body('<div class="step">1</div><div class="step">2</div>')
        result = scorer.score(make_doc(html))
        assert result.details.step_elements == 2
        assert "howto_schema_missing" in codes(result)

    def test_incomplete_definition_list(self, scorer, make_doc):
        result = scorer.score(make_doc(body("<dl><dt>Term</dt></dl>")))
        assert "dl_incomplete" in codes(result)

    def test_glossary_text_without_dl(self, scorer, make_doc):
        result = scorer.score(make_doc(body("<p>See our Glossary for every term.</p>")))
        assert "glossary_without_dl" in codes(result)

    def test_blockquote_credit(self, scorer, make_doc):
        uncited = scorer.score(make_doc(body("<blockquote>Quote</blockquote>")))
        cited = scorer.score(make_doc(body("<blockquote>Quote <cite>Someone</cite></blockquote>")))
        assert cited.score - uncited.score == 1
        assert cited.details.cited_blockquotes == 1

    def test_table_without_headers(self, scorer, make_doc):
        result = scorer.score(make_doc(body("<table><tr><td>1</td></tr></table>")))
        assert result.details.tables == 1
        assert "no_table_headers" in codes(result)
