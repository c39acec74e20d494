"""Keyword tables for relevance scoring and Six S classification.

Loaded once at import and never mutated. The scorer and classifier take a
KeywordTables instance so tests can swap in alternate tables.

Note: category lists overlap on purpose ("community", "together" appear in
both Supported and Sharing). Classification ties resolve in table order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from schemas.market_intel import SixSCategory, SourceSubtype


# ---------------------------------------------------------------------------
# Six S classification patterns (table order is the tie-break order)
# ---------------------------------------------------------------------------

SIX_S_PATTERNS: tuple[tuple[SixSCategory, tuple[str, ...]], ...] = (
    (SixSCategory.SIGNIFICANCE, (
        "recognition", "valued", "impact", "matter", "appreciated", "noticed", "ignored", "overlooked",
        "respect", "important", "meaningful", "legacy", "influence", "visible", "heard", "acknowledged",
    )),
    (SixSCategory.SAFE, (
        "security", "trust", "reliable", "risk", "fear", "uncertain", "confidence", "worried", "anxious",
        "stable", "secure", "protect", "safe", "dangerous", "scary", "nervous", "comfort", "peace of mind",
    )),
    (SixSCategory.SUPPORTED, (
        "alone", "guidance", "mentor", "community", "help", "isolated", "support", "partnership",
        "team", "together", "lonely", "abandoned", "backed", "assisted", "advice", "coach", "guide",
    )),
    (SixSCategory.SUCCESSFUL, (
        "achieve", "results", "goals", "accomplish", "progress", "stuck", "failure", "competent",
        "win", "success", "grow", "improve", "advance", "milestone", "breakthrough", "struggle",
    )),
    (SixSCategory.SURPRISE_AND_DELIGHT, (
        "creative", "innovation", "boring", "exciting", "fresh", "new", "different", "inspired",
        "amazing", "wow", "unexpected", "fun", "joy", "delight", "surprise", "discover", "spark",
    )),
    (SixSCategory.SHARING, (
        "community", "share", "together", "contribute", "belong", "connect", "social", "proud",
        "give back", "help others", "teach", "pass on", "inspire others", "collective", "group",
    )),
)

# Shorter per-category lists used to reward alignment with a profile's primary emotion.
SIX_S_SEARCH_KEYWORDS: Mapping[SixSCategory, tuple[str, ...]] = MappingProxyType({
    SixSCategory.SIGNIFICANCE: (
        "recognition", "valued", "impact", "matter", "appreciated", "noticed", "ignored", "overlooked",
    ),
    SixSCategory.SAFE: (
        "security", "trust", "reliable", "risk", "fear", "uncertain", "confidence", "worried", "anxious",
    ),
    SixSCategory.SUPPORTED: (
        "alone", "guidance", "mentor", "community", "help", "isolated", "support", "partnership",
    ),
    SixSCategory.SUCCESSFUL: (
        "achieve", "results", "goals", "accomplish", "progress", "stuck", "failure", "competent",
    ),
    SixSCategory.SURPRISE_AND_DELIGHT: (
        "creative", "innovation", "boring", "exciting", "fresh", "new", "different", "inspired",
    ),
    SixSCategory.SHARING: (
        "community", "share", "together", "contribute", "belong", "connect", "social", "proud",
    ),
})


# ---------------------------------------------------------------------------
# Relevance signals
# ---------------------------------------------------------------------------

# Distress / help-seeking vocabulary (stems; matched as substrings).
DISTRESS_WORDS: tuple[str, ...] = (
    "struggle", "frustrat", "hate", "problem", "issue", "difficult", "hard", "challenge",
    "stuck", "help", "need", "wish", "tired", "overwhelm", "stress", "fail", "waste",
    "confus", "annoy", "disappoint", "burned", "exhaust",
)

HELP_SEEKING_PHRASES: tuple[str, ...] = ("?", "how do", "anyone else")

PROMOTIONAL_PHRASES: tuple[str, ...] = ("subscribe", "check out my")

OFF_TOPIC_PHRASES: tuple[str, ...] = (
    "social anxiety", "depression help", "mental health crisis", "weight loss", "dating advice",
)

# Filler words dropped from marketing statements before keyword matching.
MARKETING_STOP_WORDS: frozenset[str] = frozenset({
    "their", "about", "which", "would", "could", "should", "being", "there", "where", "these", "those",
})


# ---------------------------------------------------------------------------
# Report sentiment / language patterns
# ---------------------------------------------------------------------------

FRUSTRATION_WORDS: tuple[str, ...] = (
    "frustrated", "terrible", "awful", "hate", "worst", "stuck", "annoying",
)

DESPERATION_WORDS: tuple[str, ...] = (
    "desperate", "struggling", "overwhelmed", "drowning", "help",
)

EMOTIONAL_TRIGGER_PHRASES: tuple[str, ...] = (
    "wasting time", "falling behind", "too complex", "burned out", "burnt out", "overwhelmed",
    "no idea where to start", "can't keep up", "losing money", "not enough time", "exhausted",
    "giving up", "feel stuck", "left behind",
)

OBJECTION_PHRASES: tuple[str, ...] = (
    "tried before", "too expensive", "no time", "doesn't work", "does not work", "not worth",
    "can't afford", "scam", "waste of money", "too good to be true", "not for me",
)


# ---------------------------------------------------------------------------
# Reddit sentiment aggregation
# ---------------------------------------------------------------------------

NEGATIVE_SENTIMENT_WORDS: tuple[str, ...] = (
    "frustrat", "hate", "struggl", "desperate", "stuck", "overwhelm", "worried", "anxious",
    "skeptic", "scam", "waste", "tired", "burned out", "burnt out", "annoy", "angry", "fail",
    "can't", "broke", "lost",
)

POSITIVE_SENTIMENT_WORDS: tuple[str, ...] = (
    "hope", "finally", "love", "works", "worked", "grateful", "excited", "determined", "progress",
    "success", "helped", "recommend", "happy", "proud", "win", "improved",
)

THEME_STOP_WORDS: frozenset[str] = frozenset({
    "about", "after", "again", "being", "before", "between", "could", "during",
    "every", "first", "found", "getting", "going", "having", "information",
    "people", "really", "something", "their", "there", "these", "thing", "think",
    "thought", "through", "trying", "using", "where", "which", "while", "would",
})

# (audience substrings, subreddits): first match order is kept, duplicates removed.
SUBREDDIT_RULES: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("entrepreneur", "business"), ("Entrepreneur", "smallbusiness", "startups")),
    (("market", "sales"), ("marketing", "sales", "socialmedia")),
    (("saas", "software"), ("SaaS", "software", "webdev")),
    (("creator", "content"), ("content_marketing", "ContentCreation", "YouTubers")),
    (("freelance", "consultant"), ("freelance", "consulting", "digitalnomad")),
)
DEFAULT_SUBREDDITS: tuple[str, ...] = ("Entrepreneur", "AskReddit", "business")


# ---------------------------------------------------------------------------
# Discussion search
# ---------------------------------------------------------------------------

DISCUSSION_SITES: tuple[str, ...] = (
    "quora.com", "reddit.com", "stackexchange.com", "medium.com", "indiehackers.com", "producthunt.com",
)

# (domain substrings, subtype): first match wins, unknown domains are blogs.
DOMAIN_SUBTYPE_RULES: tuple[tuple[tuple[str, ...], SourceSubtype], ...] = (
    (("quora",), SourceSubtype.QUORA),
    (("stackexchange", "stackoverflow"), SourceSubtype.STACKEXCHANGE),
    (("medium",), SourceSubtype.MEDIUM),
    (("forum", "community", "discuss"), SourceSubtype.FORUM),
    (("news", "techcrunch", "forbes"), SourceSubtype.NEWS),
)


@dataclass(frozen=True)
class KeywordTables:
    """Every keyword list the scorer, classifier and report builder read."""
    six_s_patterns: tuple[tuple[SixSCategory, tuple[str, ...]], ...] = SIX_S_PATTERNS
    six_s_search_keywords: Mapping[SixSCategory, tuple[str, ...]] = field(
        default_factory=lambda: SIX_S_SEARCH_KEYWORDS
    )
    distress_words: tuple[str, ...] = DISTRESS_WORDS
    help_seeking_phrases: tuple[str, ...] = HELP_SEEKING_PHRASES
    promotional_phrases: tuple[str, ...] = PROMOTIONAL_PHRASES
    off_topic_phrases: tuple[str, ...] = OFF_TOPIC_PHRASES
    marketing_stop_words: frozenset[str] = MARKETING_STOP_WORDS
    frustration_words: tuple[str, ...] = FRUSTRATION_WORDS
    desperation_words: tuple[str, ...] = DESPERATION_WORDS
    emotional_trigger_phrases: tuple[str, ...] = EMOTIONAL_TRIGGER_PHRASES
    objection_phrases: tuple[str, ...] = OBJECTION_PHRASES


DEFAULT_KEYWORD_TABLES = KeywordTables()


def detect_source_subtype(display_link: str) -> SourceSubtype:
    """Map a result's display domain to a coarse source subtype."""
    link = (display_link or "").lower()
    for needles, subtype in DOMAIN_SUBTYPE_RULES:
        if any(needle in link for needle in needles):
            return subtype
    return SourceSubtype.BLOG


def suggest_subreddits(target_audience: str) -> list[str]:
    """Pick subreddits likely to host the audience's discussions."""
    audience = (target_audience or "").lower()
    picked: list[str] = []
    for needles, subreddits in SUBREDDIT_RULES:
        if any(needle in audience for needle in needles):
            for name in subreddits:
                if name not in picked:
                    picked.append(name)
    return picked or list(DEFAULT_SUBREDDITS)
