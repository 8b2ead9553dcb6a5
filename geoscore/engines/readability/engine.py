"""
Machine Readability Scorer (25 points).

Components:
- Semantic vocabulary      6
- Heading structure        5
- Semantic container ratio 5
- Document language        4
- ARIA landmarks           5
"""

from __future__ import annotations

from geoscore.engines.base import (
    Category,
    CategoryScorer,
    Issue,
    MachineReadabilityDetails,
    MachineReadabilityResult,
    scaled,
)
from geoscore.engines.document import ParsedDocument

SEMANTIC_TAGS = ("article", "section", "aside", "nav", "header", "footer", "main", "details")
CONTAINER_TAGS = ("article", "section", "aside", "nav", "header", "footer", "main")
LANDMARK_ROLES = ("banner", "navigation", "main", "contentinfo", "complementary", "search")
IMPLICIT_LANDMARKS = {
    "header": "banner",
    "nav": "navigation",
    "main": "main",
    "footer": "contentinfo",
    "aside": "complementary",
}
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")


class MachineReadabilityScorer(CategoryScorer):

    CATEGORY = Category.MACHINE_READABILITY
    RESULT_TYPE = MachineReadabilityResult

    def compute(self, document: ParsedDocument) -> tuple[int, list[Issue], MachineReadabilityDetails]:
        soup = document.soup
        issues: list[Issue] = []
        details = MachineReadabilityDetails()
        score = 0

        # ── Semantic vocabulary ──────────────────
        found = [tag for tag in SEMANTIC_TAGS if soup.find(tag) is not None]
        missing = [tag for tag in SEMANTIC_TAGS if tag not in found]
        details.semantic_found = found
        details.semantic_missing = missing
        score += scaled(len(found) / len(SEMANTIC_TAGS), 6)
        if len(found) < 4:
            issues.append(self.issue("missing_semantic", tags=missing[:3]))

        # ── Headings ─────────────────────────────
        headings = soup.find_all(HEADING_TAGS)
        counts = {tag: 0 for tag in HEADING_TAGS}
        hierarchy_ok = True
        for heading in headings:
            level = int(heading.name[1])
            if level > 1 and counts[f"h{level - 1}"] == 0:
                hierarchy_ok = False
            counts[heading.name] += 1

        h1_count = counts["h1"]
        has_h2 = any(h.get_text(strip=True) for h in soup.find_all("h2"))
        details.heading_counts = counts
        details.h1_count = h1_count
        details.has_h2 = has_h2
        details.hierarchy_ok = hierarchy_ok

        if h1_count == 1:
            score += 2
        elif h1_count > 1:
            score += 1
            issues.append(self.issue("multiple_h1", count=h1_count))
        else:
            issues.append(self.issue("no_h1"))

        if not hierarchy_ok:
            issues.append(self.issue("heading_hierarchy_broken"))
        elif has_h2:
            score += 3
        elif h1_count > 0:
            score += 1

        # ── Container ratio ──────────────────────
        div_count = len(soup.find_all("div"))
        container_count = len(soup.find_all(CONTAINER_TAGS))
        ratio = container_count / (div_count + container_count + 1)
        details.div_count = div_count
        details.semantic_container_count = container_count
        details.semantic_ratio = round(ratio, 3)

        if ratio >= 0.3:
            score += 5
        elif ratio >= 0.2:
            score += 4
        elif ratio >= 0.1:
            score += 2
        if ratio < 0.15:
            issues.append(self.issue("too_many_divs", ratio=int(ratio * 100)))

        # ── Language ─────────────────────────────
        html_tag = soup.find("html")
        lang = (html_tag.get("lang") or "").strip() if html_tag else ""
        details.lang = lang or None
        if len(lang) >= 2:
            score += 4
        else:
            issues.append(self.issue("missing_lang"))

        # ── Landmarks ────────────────────────────
        landmarks: list[str] = []
        for el in soup.find_all(attrs={"role": True}):
            role = el.get("role", "").strip().lower()
            if role in LANDMARK_ROLES and role not in landmarks:
                landmarks.append(role)
        for tag, role in IMPLICIT_LANDMARKS.items():
            if role not in landmarks and soup.find(tag) is not None:
                landmarks.append(role)
        details.landmarks = landmarks

        score += min(5, len(landmarks))
        if len(landmarks) < 3:
            issues.append(self.issue("few_landmarks", count=len(landmarks)))

        return score, issues, details
