"""
Bot Accessibility Scorer (25 points).

Components:
- robots.txt policy for the AI crawler roster   8
- llms.txt guidance file                        4
- Indexing directives (noindex)                 4
- Server-rendered content                       5
- Image alt text coverage                       4
- Latency penalty                              -3 / -1

robots.txt handling is narrow: an agent is blocked only when the
group that applies to it contains a bare "Disallow: /".
"""

from __future__ import annotations

from dataclasses import dataclass, field

from geoscore.engines.base import (
    BotAccessibilityDetails,
    BotAccessibilityResult,
    Category,
    CategoryScorer,
    Issue,
    round_half_up,
    scaled,
)
from geoscore.engines.document import ParsedDocument

AI_BOTS = (
    "GPTBot",
    "OAI-SearchBot",
    "ChatGPT-User",
    "ClaudeBot",
    "anthropic-ai",
    "Claude-Web",
    "PerplexityBot",
    "Amazonbot",
    "Google-Extended",
    "GoogleOther",
    "cohere-ai",
    "Bytespider",
)

APP_ROOT_SELECTOR = "#root, #__next, #app"
MIN_TEXT_LENGTH = 200
SLOW_LOAD_MS = 5000
MODERATE_LOAD_MS = 3000


# ─────────────────────────────────────────────
# robots.txt
# ─────────────────────────────────────────────

@dataclass
class RobotsGroup:
    agents: list[str] = field(default_factory=list)
    disallows: list[str] = field(default_factory=list)

    @property
    def blocks_all(self) -> bool:
        return "/" in self.disallows


def parse_robots_groups(text: str) -> list[RobotsGroup]:
    """
    Split robots.txt into user-agent groups.
    Consecutive User-agent lines share one group; the first rule line closes
    the agent list so a following User-agent starts a new group.
    """
    groups: list[RobotsGroup] = []
    current: RobotsGroup | None = None
    collecting_agents = False

    for raw_line in text.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip().lower()
        value = value.strip()

        if key == "user-agent":
            if current is None or not collecting_agents:
                current = RobotsGroup()
                groups.append(current)
                collecting_agents = True
            current.agents.append(value.lower())
        elif current is not None:
            collecting_agents = False
            if key == "disallow":
                current.disallows.append(value)

    return groups


def is_agent_blocked(groups: list[RobotsGroup], agent: str) -> bool:
    """Specific groups for the agent take precedence over the * group."""
    agent = agent.lower()
    specific = [g for g in groups if agent in g.agents]
    applicable = specific or [g for g in groups if "*" in g.agents]
    return any(g.blocks_all for g in applicable)


def blocked_agents(robots_txt: str, agents: tuple[str, ...] = AI_BOTS) -> list[str]:
    groups = parse_robots_groups(robots_txt)
    return [a for a in agents if is_agent_blocked(groups, a)]


# ─────────────────────────────────────────────
# Scorer
# ─────────────────────────────────────────────

class BotAccessibilityScorer(CategoryScorer):

    CATEGORY = Category.BOT_ACCESSIBILITY
    RESULT_TYPE = BotAccessibilityResult

    def compute(self, document: ParsedDocument) -> tuple[int, list[Issue], BotAccessibilityDetails]:
        soup = document.soup
        issues: list[Issue] = []
        details = BotAccessibilityDetails()
        score = 0

        # ── robots.txt ───────────────────────────
        if document.robots_txt is not None:
            blocked = blocked_agents(document.robots_txt)
            allowed = [a for a in AI_BOTS if a not in blocked]
            details.has_robots_txt = True
            details.blocked_bots = blocked
            details.allowed_bots = allowed

            score += scaled(len(allowed) / len(AI_BOTS), 8)
            if len(blocked) / len(AI_BOTS) >= 0.5:
                issues.append(self.issue("bots_mostly_blocked", bots=blocked[:3]))
            elif blocked:
                issues.append(self.issue("bots_partially_blocked", bots=blocked))
        else:
            details.allowed_bots = list(AI_BOTS)
            score += 6
            issues.append(self.issue("no_robots_txt"))

        # ── llms.txt ─────────────────────────────
        if document.llms_txt is not None:
            details.has_llms_txt = True
            score += 4
        else:
            issues.append(self.issue("no_llms_txt"))

        # ── Indexing directives ──────────────────
        directives = " ".join(
            d.lower() for d in (
                document.meta_content("name", "robots"),
                document.meta_content("name", "X-Robots-Tag"),
                document.headers.get("x-robots-tag"),
            )
            if d
        )
        details.has_noindex = "noindex" in directives
        details.has_nofollow = "nofollow" in directives
        if details.has_noindex:
            issues.append(self.issue("has_noindex"))
        else:
            score += 4
        if details.has_nofollow:
            issues.append(self.issue("has_nofollow"))

        # ── Rendering ────────────────────────────
        text_length = len(document.body_text)
        html_size = document.html_size
        script_count = len(soup.find_all("script"))
        text_ratio = text_length / html_size if html_size else 0.0
        details.text_length = text_length
        details.script_count = script_count
        details.text_ratio = round(text_ratio, 4)

        has_app_root = soup.select_one(APP_ROOT_SELECTOR) is not None
        if text_length < MIN_TEXT_LENGTH and has_app_root:
            details.csr_signals = ["app_root", "low_text"]
            issues.append(self.issue("likely_csr"))
        elif text_length < MIN_TEXT_LENGTH:
            details.csr_signals = ["low_text"]
            score += 2
            issues.append(self.issue("low_content", length=text_length))
        elif text_ratio < 0.05 and script_count > 10:
            details.csr_signals = ["heavy_js"]
            score += 3
            issues.append(self.issue("heavy_js", scripts=script_count))
        else:
            score += 5

        # ── Alt text ─────────────────────────────
        images = soup.find_all("img")
        with_alt = [img for img in images if (img.get("alt") or "").strip()]
        details.images = len(images)
        details.images_with_alt = len(with_alt)
        if images:
            coverage = len(with_alt) / len(images)
            if coverage >= 0.9:
                score += 4
            elif coverage >= 0.7:
                score += 3
            elif coverage >= 0.5:
                score += 2
            else:
                score += 1
            if coverage < 0.8:
                issues.append(self.issue("missing_alt", count=len(images) - len(with_alt)))
        else:
            score += 4

        # ── Latency ──────────────────────────────
        load_ms = document.load_time_ms
        details.load_time_ms = round(load_ms, 1)
        seconds = round_half_up(load_ms / 100) / 10
        if load_ms > SLOW_LOAD_MS:
            score -= 3
            issues.append(self.issue("slow_load", seconds=seconds))
        elif load_ms > MODERATE_LOAD_MS:
            score -= 1
            issues.append(self.issue("moderate_load", seconds=seconds))

        return score, issues, details
