"""Aggregator — merges adapter output into one MarketIntelligenceReport.

This is the one place partial failures are reconciled. It scores and
classifies every candidate, drops what doesn't clear the threshold,
deduplicates, ranks and then derives sentiment, language patterns,
provenance and the reasoning string from whatever survived. Empty or
failed inputs still produce a well-formed report.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Mapping, Optional, Sequence

from pipeline.market_intel_classifier import EmotionalClassifier, top_emotions
from pipeline.market_intel_keywords import DEFAULT_KEYWORD_TABLES, KeywordTables
from pipeline.market_intel_scorer import RelevanceScorer
from schemas.market_intel import (
    Candidate,
    LanguagePatterns,
    MarketIntelligenceReport,
    PeopleAlsoAsk,
    Profile,
    QueryOrigin,
    ReportStatus,
    RunDiagnostics,
    ScoredCandidate,
    SentimentAggregate,
    SentimentSummary,
    SentimentTier,
    SourceStats,
    SourceType,
    Urgency,
)

logger = logging.getLogger(__name__)

BASE_PAIN_INTENSITY = 5
MAX_PAIN_INTENSITY = 10
HIGH_URGENCY_AT = 8
MEDIUM_URGENCY_AT = 5
LOW_DATA_QUOTES = 10
MAX_COMMON_PHRASES = 8
MIN_PHRASE_COUNT = 2
REDDIT_THEMES_IN_TRIGGERS = 3
DERIVED_TRIGGERS_WITH_THEMES = 2

NO_DATA_MARKER = "No relevant data found"

SUGGESTED_SOURCES = ("YouTube", "Quora", "Medium", "Industry Forums", "Reddit (sentiment)")

_SOURCE_LABELS = {
    SourceType.VIDEO_COMMENT: "YouTube comments",
    SourceType.DISCUSSION: "discussions from Q&A sites, forums and blogs",
}


# ---------------------------------------------------------------------------
# Derived signals
# ---------------------------------------------------------------------------

def pain_intensity(texts: Sequence[str], tables: KeywordTables = DEFAULT_KEYWORD_TABLES) -> int:
    hits = 0
    for text in texts:
        lowered = text.lower()
        hits += sum(1 for word in tables.frustration_words if word in lowered)
        hits += sum(1 for word in tables.desperation_words if word in lowered)
    return min(MAX_PAIN_INTENSITY, BASE_PAIN_INTENSITY + hits // 2)


def urgency_for(intensity: int) -> Urgency:
    if intensity >= HIGH_URGENCY_AT:
        return Urgency.HIGH
    if intensity >= MEDIUM_URGENCY_AT:
        return Urgency.MEDIUM
    return Urgency.LOW


def common_phrases(texts: Sequence[str], limit: int = MAX_COMMON_PHRASES) -> list[str]:
    """Repeated 2-3 word phrases, most frequent first.

    Two-word phrases must be longer than 8 chars and three-word phrases
    longer than 12, which keeps out most "of the" / "I am a" noise.
    """
    counts: Counter[str] = Counter()
    for text in texts:
        words = text.lower().split()
        for i in range(len(words) - 1):
            two = f"{words[i]} {words[i + 1]}"
            if len(two) > 8:
                counts[two] += 1
            if i + 2 < len(words):
                three = f"{two} {words[i + 2]}"
                if len(three) > 12:
                    counts[three] += 1
    return [phrase for phrase, count in counts.most_common() if count >= MIN_PHRASE_COUNT][:limit]


def phrases_present(texts: Sequence[str], phrases: Sequence[str]) -> list[str]:
    joined = " ".join(text.lower() for text in texts)
    return [phrase for phrase in phrases if phrase in joined]


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class ReportBuilder:
    """Builds the report for one run. Holds no per-run state."""

    def __init__(
        self,
        scorer: Optional[RelevanceScorer] = None,
        classifier: Optional[EmotionalClassifier] = None,
        tables: KeywordTables = DEFAULT_KEYWORD_TABLES,
    ):
        self.tables = tables
        self.scorer = scorer or RelevanceScorer(tables)
        self.classifier = classifier or EmotionalClassifier(tables)

    def build(
        self,
        candidates_per_adapter: Mapping[str, Sequence[Candidate]],
        sentiment: Optional[SentimentAggregate],
        profile: Profile,
        requested_count: int,
        *,
        queries: Sequence[str] = (),
        query_origin: QueryOrigin = QueryOrigin.FALLBACK,
        people_also_ask: Sequence[PeopleAlsoAsk] = (),
        adapter_status: Optional[Mapping[str, str]] = None,
        timed_out: bool = False,
    ) -> MarketIntelligenceReport:
        merged = [candidate for batch in candidates_per_adapter.values() for candidate in batch]

        scored: list[ScoredCandidate] = []
        below_threshold = 0
        for candidate in merged:
            breakdown = self.scorer.evaluate(candidate.text, profile)
            if not self.scorer.accepts(breakdown.score):
                below_threshold += 1
                continue
            scored.append(
                ScoredCandidate(
                    **candidate.model_dump(),
                    relevance_score=breakdown.score,
                    emotional_tone=self.classifier.classify(candidate.text),
                    matched_signals=breakdown.signals,
                )
            )

        unique: list[ScoredCandidate] = []
        seen: set[str] = set()
        for candidate in scored:
            if candidate.id not in seen:
                seen.add(candidate.id)
                unique.append(candidate)
        duplicates_removed = len(scored) - len(unique)

        # sorted() is stable, so equal scores keep discovery order.
        quotes = sorted(unique, key=lambda c: c.relevance_score, reverse=True)[:requested_count]
        texts = [quote.text for quote in quotes]

        intensity = pain_intensity(texts, self.tables)
        triggers = phrases_present(texts, self.tables.emotional_trigger_phrases)
        analyzed = sentiment is not None and sentiment.analyzed
        if analyzed:
            if sentiment.theme_words:
                triggers = (
                    sentiment.theme_words[:REDDIT_THEMES_IN_TRIGGERS]
                    + triggers[:DERIVED_TRIGGERS_WITH_THEMES]
                )
            if sentiment.sentiment_tier == SentimentTier.NEGATIVE:
                intensity = min(MAX_PAIN_INTENSITY, intensity + 1)

        status = self._status(quotes, merged, analyzed)
        stats = self._source_stats(quotes, people_also_ask, sentiment)
        summary = SentimentSummary(
            pain_intensity=intensity,
            urgency=urgency_for(intensity),
            top_emotions=top_emotions(quote.emotional_tone for quote in quotes),
        )

        report = MarketIntelligenceReport(
            quotes=quotes,
            sentiment=summary,
            language_patterns=LanguagePatterns(
                common_phrases=common_phrases(texts),
                emotional_triggers=triggers,
                objections=phrases_present(texts, self.tables.objection_phrases),
            ),
            source_stats=stats,
            reasoning=self._reasoning(
                status, quotes, merged, queries, query_origin, sentiment, people_also_ask, intensity,
            ),
            status=status,
            queries=list(queries),
            query_origin=query_origin,
            people_also_ask=list(people_also_ask),
            reddit_sentiment=sentiment,
            suggested_sources=list(SUGGESTED_SOURCES),
            diagnostics=RunDiagnostics(
                candidates_considered=len(merged),
                below_threshold=below_threshold,
                duplicates_removed=duplicates_removed,
                adapter_status=dict(adapter_status or {}),
                timed_out=timed_out,
            ),
        )
        logger.info(
            "Report: %d quotes kept of %d candidates (%d below threshold, %d duplicates), status=%s",
            len(quotes), len(merged), below_threshold, duplicates_removed, status.value,
        )
        return report

    @staticmethod
    def _status(quotes: Sequence[ScoredCandidate], merged: Sequence[Candidate], analyzed: bool) -> ReportStatus:
        if quotes:
            return ReportStatus.ALIGNED_EVIDENCE
        if merged:
            return ReportStatus.OFF_TOPIC
        if analyzed:
            return ReportStatus.SENTIMENT_ONLY
        return ReportStatus.NO_DATA

    @staticmethod
    def _source_stats(
        quotes: Sequence[ScoredCandidate],
        people_also_ask: Sequence[PeopleAlsoAsk],
        sentiment: Optional[SentimentAggregate],
    ) -> SourceStats:
        per_subtype = Counter(quote.source_subtype.value for quote in quotes)
        real = sum(1 for quote in quotes if quote.is_real_quote)
        return SourceStats(
            total_quotes=len(quotes),
            real_quotes=real,
            ai_generated_quotes=len(quotes) - real,
            video_comment_quotes=sum(1 for q in quotes if q.source == SourceType.VIDEO_COMMENT),
            discussion_quotes=sum(1 for q in quotes if q.source == SourceType.DISCUSSION),
            per_subtype=dict(per_subtype),
            people_also_ask_questions=len(people_also_ask),
            reddit_posts_analyzed=sentiment.post_count if sentiment is not None and sentiment.analyzed else 0,
        )

    @staticmethod
    def _reasoning(
        status: ReportStatus,
        quotes: Sequence[ScoredCandidate],
        merged: Sequence[Candidate],
        queries: Sequence[str],
        query_origin: QueryOrigin,
        sentiment: Optional[SentimentAggregate],
        people_also_ask: Sequence[PeopleAlsoAsk],
        intensity: int,
    ) -> str:
        parts: list[str] = []

        origin = "AI-generated" if query_origin == QueryOrigin.GENERATED else "fallback"
        if queries:
            shown = '", "'.join(queries[:2])
            more = "..." if len(queries) > 2 else ""
            parts.append(f'Searched using {len(queries)} {origin} queries: "{shown}"{more}')
        else:
            parts.append("No search queries were available")

        for source, label in _SOURCE_LABELS.items():
            retrieved = sum(1 for c in merged if c.source == source)
            kept = sum(1 for q in quotes if q.source == source)
            parts.append(f"Found {kept} relevant {label} (of {retrieved} retrieved)")

        if sentiment is not None and sentiment.analyzed:
            parts.append(
                f"Analyzed sentiment from {sentiment.post_count} Reddit posts "
                f"({sentiment.sentiment_tier.value})"
            )
        else:
            parts.append("Reddit sentiment was not available")

        if people_also_ask:
            parts.append(f'{len(people_also_ask)} "People Also Ask" questions generated (not quotes)')

        if status == ReportStatus.NO_DATA:
            parts.append(
                f"{NO_DATA_MARKER}: no source returned any candidates. "
                "Try adjusting pain points or the target audience description"
            )
        elif status == ReportStatus.OFF_TOPIC:
            parts.append(
                f"{NO_DATA_MARKER}: all {len(merged)} retrieved candidates were off-topic for this profile"
            )
        elif status == ReportStatus.SENTIMENT_ONLY:
            parts.append("No direct quotes matched this profile, but Reddit sentiment provides market context")
        elif len(quotes) < LOW_DATA_QUOTES:
            parts.append(
                f"Limited quote data ({len(quotes)}). Consider broadening your target audience description"
            )
        else:
            parts.append(f"Analyzed {len(quotes)} authentic, profile-aligned quotes for Six S validation")

        return ". ".join(parts) + f". Pain intensity: {intensity}/10."
