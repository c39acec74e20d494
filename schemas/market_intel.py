"""Market intelligence schemas — profile in, report out.

The report is the only thing the pipeline hands back to its caller. It is
built once per run and never mutated afterwards, so the top-level models
are frozen.

Stable keys:
  quotes[], sentiment{}, language_patterns{}, source_stats{}, reasoning,
  status, queries[], people_also_ask[], reddit_sentiment{}, diagnostics{}
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class _LenientStrEnum(str, Enum):
    """Base for string enums that tolerate caller and LLM quirks.

    Handles: wrong case, spaces/hyphens/underscores, "&" spelled "and".
    Unknown values still raise so a typo never silently becomes a category.
    """

    @staticmethod
    def _normalise(value: str) -> str:
        lowered = value.strip().lower().replace("&", " and ")
        return re.sub(r"[^a-z0-9]+", "", lowered)

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            wanted = cls._normalise(value)
            for member in cls:
                if cls._normalise(member.value) == wanted or cls._normalise(member.name) == wanted:
                    return member
        return None


class SixSCategory(_LenientStrEnum):
    """The six emotional needs a market signal is classified into."""
    SIGNIFICANCE = "Significance"
    SAFE = "Safe"
    SUPPORTED = "Supported"
    SUCCESSFUL = "Successful"
    SURPRISE_AND_DELIGHT = "Surprise & Delight"
    SHARING = "Sharing"


class SourceType(_LenientStrEnum):
    VIDEO_COMMENT = "video_comment"
    DISCUSSION = "discussion"
    SENTIMENT_ONLY = "sentiment_only"


class SourceSubtype(_LenientStrEnum):
    YOUTUBE = "youtube"
    QUORA = "quora"
    STACKEXCHANGE = "stackexchange"
    MEDIUM = "medium"
    FORUM = "forum"
    NEWS = "news"
    BLOG = "blog"


class SentimentTier(_LenientStrEnum):
    NEGATIVE = "negative"
    MIXED = "mixed"
    POSITIVE = "positive"


class Urgency(_LenientStrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MarketMaturity(_LenientStrEnum):
    EMERGING = "emerging"
    GROWING = "growing"
    MATURE = "mature"


class ReportStatus(_LenientStrEnum):
    ALIGNED_EVIDENCE = "aligned_evidence"
    SENTIMENT_ONLY = "sentiment_only"
    OFF_TOPIC = "off_topic"
    NO_DATA = "no_data"


class QueryOrigin(_LenientStrEnum):
    GENERATED = "generated"
    FALLBACK = "fallback"


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

class MarketingContext(BaseModel):
    """Marketing statement bundle used to sharpen relevance scoring."""
    model_config = ConfigDict(frozen=True)

    promise: str = ""
    problem: str = ""
    solution: str = ""
    transformation: str = ""

    def is_blank(self) -> bool:
        return not any(
            part.strip() for part in (self.promise, self.problem, self.solution, self.transformation)
        )


class Profile(BaseModel):
    """Customer-discovery context that drives one research run."""
    model_config = ConfigDict(frozen=True)

    pain_points: str = Field("", description="Free-text pain points in the customer's words")
    target_audience: str = Field("", description="Who the customer is")
    problem: str = Field("", description="The core problem being validated")
    primary_emotion: Optional[SixSCategory] = Field(
        None, description="Primary Six S emotional need, if known"
    )
    marketing_context: Optional[MarketingContext] = None

    def is_blank(self) -> bool:
        return not any(
            part.strip() for part in (self.pain_points, self.target_audience, self.problem)
        )


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------

class Candidate(BaseModel):
    """One raw snippet returned by a source adapter."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Adapter-assigned identifier, stable across the merge")
    source: SourceType
    source_subtype: SourceSubtype = SourceSubtype.BLOG
    text: str
    author: Optional[str] = None
    url: Optional[str] = None
    upvotes: Optional[int] = None
    timestamp: Optional[str] = None
    display_link: Optional[str] = None
    is_real_quote: bool = Field(
        True, description="False only for synthesized placeholders, which must stay traceable"
    )


class ScoredCandidate(Candidate):
    """A candidate annotated with relevance and emotional category."""
    relevance_score: int = Field(..., ge=0, le=100)
    emotional_tone: SixSCategory
    matched_signals: list[str] = Field(
        default_factory=list, description="Concrete evidence the relevance score is built from"
    )


class SentimentAggregate(BaseModel):
    """Aggregate-only view of a sentiment source. Never carries verbatim text."""
    model_config = ConfigDict(frozen=True)

    analyzed: bool = False
    post_count: int = 0
    sentiment_tier: SentimentTier = SentimentTier.MIXED
    theme_words: list[str] = Field(default_factory=list, max_length=5)
    subreddits: list[str] = Field(default_factory=list)
    community_insight: str = ""


class PeopleAlsoAsk(BaseModel):
    question: str
    snippet: str = ""
    is_generated: bool = True


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

class SentimentSummary(BaseModel):
    pain_intensity: int = Field(5, ge=1, le=10)
    urgency: Urgency = Urgency.MEDIUM
    top_emotions: list[SixSCategory] = Field(default_factory=list, max_length=3)
    # No maturity signal is derived from the sources; always GROWING.
    market_maturity: MarketMaturity = MarketMaturity.GROWING


class LanguagePatterns(BaseModel):
    common_phrases: list[str] = Field(default_factory=list)
    emotional_triggers: list[str] = Field(default_factory=list)
    objections: list[str] = Field(default_factory=list)


class SourceStats(BaseModel):
    """Provenance summary: where every displayed quote came from."""
    total_quotes: int = 0
    real_quotes: int = 0
    ai_generated_quotes: int = 0
    video_comment_quotes: int = 0
    discussion_quotes: int = 0
    per_subtype: dict[str, int] = Field(default_factory=dict)
    people_also_ask_questions: int = 0
    reddit_posts_analyzed: int = 0


class RunDiagnostics(BaseModel):
    candidates_considered: int = 0
    below_threshold: int = 0
    duplicates_removed: int = 0
    adapter_status: dict[str, str] = Field(default_factory=dict)
    timed_out: bool = False


class MarketIntelligenceReport(BaseModel):
    """Output of one market intelligence run."""
    model_config = ConfigDict(frozen=True)

    quotes: list[ScoredCandidate] = Field(default_factory=list)
    sentiment: SentimentSummary = Field(default_factory=SentimentSummary)
    language_patterns: LanguagePatterns = Field(default_factory=LanguagePatterns)
    source_stats: SourceStats = Field(default_factory=SourceStats)
    reasoning: str = ""
    status: ReportStatus = ReportStatus.NO_DATA
    queries: list[str] = Field(default_factory=list)
    query_origin: QueryOrigin = QueryOrigin.FALLBACK
    people_also_ask: list[PeopleAlsoAsk] = Field(default_factory=list)
    reddit_sentiment: Optional[SentimentAggregate] = None
    suggested_sources: list[str] = Field(default_factory=list)
    diagnostics: RunDiagnostics = Field(default_factory=RunDiagnostics)
    generated_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
