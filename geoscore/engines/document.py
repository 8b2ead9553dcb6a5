"""
Parsed view of a fetched page, shared read-only by every category scorer.

Parsing happens lazily and at most once per document: the soup, the visible
body text and the JSON-LD blocks are cached on first access.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Any

from bs4 import BeautifulSoup

from geoscore.core.exceptions import ParseError

if TYPE_CHECKING:
    from geoscore.engines.fetcher.engine import PageBundle

JSONLD_TYPE_RE = re.compile(r"application/ld\+json", re.I)
WHITESPACE_RE = re.compile(r"\s+")

# Strings under these tags never reach a reader
INVISIBLE_TAGS = frozenset({"script", "style", "noscript", "template"})


@dataclass
class JsonLdBlock:
    raw: str
    data: Any = None
    error: str | None = None

    @property
    def parsed(self) -> bool:
        return self.error is None


def parse_jsonld(raw: str) -> Any:
    """Decode one JSON-LD script body. Raises ParseError on malformed input."""
    text = raw.strip()
    if not text:
        raise ParseError("Empty JSON-LD block")
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError, RecursionError) as e:
        raise ParseError(f"Invalid JSON-LD: {e}") from e


def iter_jsonld_nodes(data: Any):
    """Yield top-level objects, array members and @graph entries."""
    items = data if isinstance(data, list) else [data]
    for item in items:
        if not isinstance(item, dict):
            continue
        yield item
        graph = item.get("@graph")
        if isinstance(graph, list):
            for node in graph:
                if isinstance(node, dict):
                    yield node


def node_types(node: dict) -> list[str]:
    raw = node.get("@type")
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, list):
        return [t for t in raw if isinstance(t, str)]
    return []


@dataclass
class ParsedDocument:
    url: str
    html: str
    robots_txt: str | None = None
    llms_txt: str | None = None
    load_time_ms: float = 0.0
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    @classmethod
    def from_bundle(cls, bundle: "PageBundle") -> "ParsedDocument":
        doc = bundle.document
        return cls(
            url=doc.url,
            html=doc.text,
            robots_txt=bundle.robots_txt,
            llms_txt=bundle.llms_txt,
            load_time_ms=doc.load_time_ms,
            headers=doc.headers,
        )

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html or "", "lxml")

    @cached_property
    def body_text(self) -> str:
        """Visible body text, whitespace collapsed."""
        body = self.soup.body
        if body is None:
            return ""
        parts = [
            s for s in body.find_all(string=True)
            if s.parent is not None and s.parent.name not in INVISIBLE_TAGS
        ]
        return WHITESPACE_RE.sub(" ", " ".join(parts)).strip()

    @cached_property
    def jsonld_blocks(self) -> list[JsonLdBlock]:
        blocks = []
        for script in self.soup.find_all("script", attrs={"type": JSONLD_TYPE_RE}):
            raw = script.string or script.get_text() or ""
            try:
                blocks.append(JsonLdBlock(raw=raw, data=parse_jsonld(raw)))
            except ParseError as e:
                blocks.append(JsonLdBlock(raw=raw, error=e.message))
        return blocks

    @cached_property
    def schema_types(self) -> list[str]:
        """Distinct @type values across every parsed block, first-seen order."""
        seen: set[str] = set()
        types = []
        for block in self.jsonld_blocks:
            if not block.parsed:
                continue
            for node in iter_jsonld_nodes(block.data):
                for t in node_types(node):
                    if t not in seen:
                        seen.add(t)
                        types.append(t)
        return types

    def has_schema_type(self, name: str) -> bool:
        return name in self.schema_types

    def meta_content(self, attr: str, value: str) -> str | None:
        """Content of the first <meta attr=value>, matched case-insensitively."""
        pattern = re.compile(rf"^{re.escape(value)}$", re.I)
        tag = self.soup.find("meta", attrs={attr: pattern})
        if tag is None:
            return None
        content = tag.get("content")
        return content.strip() if isinstance(content, str) else None

    @property
    def html_size(self) -> int:
        return len(self.html or "")
