"""Relevance scorer — transparent 0-100 heuristic against a profile.

Every point added or removed is recorded as a signal so the report can cite
concrete evidence for why a quote made the cut.

Scoring (base 40):
  +8   per distress / help-seeking word
  +12  once for a question or help-seeking phrasing
  +10  per pain-point keyword (>4 chars)
  +8   per audience keyword (>4 chars)
  +15  per marketing-context keyword, +20 more when 3+ match
  +10  per primary-emotion keyword
  +10  substantive length (>500 chars)
  -25  very short text (<30 chars); short text is also capped at 15
  -35  promotional boilerplate
  -20  per off-topic phrase not present in the pain points
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from pipeline.market_intel_keywords import DEFAULT_KEYWORD_TABLES, KeywordTables
from schemas.market_intel import MarketingContext, Profile

BASE_SCORE = 40
ACCEPTANCE_THRESHOLD = 40

DISTRESS_POINTS = 8
HELP_SEEKING_POINTS = 12
PAIN_KEYWORD_POINTS = 10
AUDIENCE_KEYWORD_POINTS = 8
MARKETING_KEYWORD_POINTS = 15
MARKETING_MULTI_MATCH_BONUS = 20
MARKETING_MULTI_MATCH_MIN = 3
EMOTION_KEYWORD_POINTS = 10
LONG_TEXT_POINTS = 10
SHORT_TEXT_PENALTY = 25
PROMO_PENALTY = 35
OFF_TOPIC_PENALTY = 20

SHORT_TEXT_CHARS = 30
LONG_TEXT_CHARS = 500
MIN_KEYWORD_CHARS = 5  # keywords must be longer than 4 characters

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9'-]*")


def extract_keywords(text: str, stop_words: Iterable[str] = ()) -> list[str]:
    """Distinct lowercase words longer than 4 chars, in first-seen order."""
    stop = set(stop_words)
    keywords: list[str] = []
    for word in _WORD_RE.findall((text or "").lower()):
        word = word.strip("'-")
        if len(word) < MIN_KEYWORD_CHARS or word in stop or word in keywords:
            continue
        keywords.append(word)
    return keywords


def marketing_keywords(context: MarketingContext | None, stop_words: Iterable[str] = ()) -> list[str]:
    if context is None:
        return []
    text = f"{context.problem} {context.promise} {context.solution}"
    return extract_keywords(text, stop_words)


@dataclass
class ScoreBreakdown:
    raw: int
    score: int
    signals: list[str] = field(default_factory=list)


class RelevanceScorer:
    """Scores candidate text against a profile's pains, audience and context."""

    def __init__(
        self,
        tables: KeywordTables = DEFAULT_KEYWORD_TABLES,
        threshold: int = ACCEPTANCE_THRESHOLD,
    ):
        self.tables = tables
        self.threshold = threshold

    def score(self, text: str, profile: Profile) -> int:
        return self.evaluate(text, profile).score

    def accepts(self, score: int) -> bool:
        return score >= self.threshold

    def evaluate(self, text: str, profile: Profile) -> ScoreBreakdown:
        text = text or ""
        lowered = text.lower()
        pain_lower = (profile.pain_points or "").lower()
        signals: list[str] = []
        score = BASE_SCORE

        for word in self.tables.distress_words:
            if word in lowered:
                score += DISTRESS_POINTS
                signals.append(f"distress:{word}")

        if any(phrase in lowered for phrase in self.tables.help_seeking_phrases):
            score += HELP_SEEKING_POINTS
            signals.append("help-seeking")

        for keyword in extract_keywords(profile.pain_points):
            if keyword in lowered:
                score += PAIN_KEYWORD_POINTS
                signals.append(f"pain:{keyword}")

        for keyword in extract_keywords(profile.target_audience):
            if keyword in lowered:
                score += AUDIENCE_KEYWORD_POINTS
                signals.append(f"audience:{keyword}")

        matches = 0
        for keyword in marketing_keywords(profile.marketing_context, self.tables.marketing_stop_words):
            if keyword in lowered:
                matches += 1
                score += MARKETING_KEYWORD_POINTS
                signals.append(f"marketing:{keyword}")
        if matches >= MARKETING_MULTI_MATCH_MIN:
            score += MARKETING_MULTI_MATCH_BONUS
            signals.append("marketing:multi-match")

        if profile.primary_emotion is not None:
            for keyword in self.tables.six_s_search_keywords.get(profile.primary_emotion, ()):
                if keyword in lowered:
                    score += EMOTION_KEYWORD_POINTS
                    signals.append(f"emotion:{keyword}")

        short = len(text) < SHORT_TEXT_CHARS
        if short:
            score -= SHORT_TEXT_PENALTY
            signals.append("penalty:short")
        if len(text) > LONG_TEXT_CHARS:
            score += LONG_TEXT_POINTS
            signals.append("substantive-length")
        if any(phrase in lowered for phrase in self.tables.promotional_phrases):
            score -= PROMO_PENALTY
            signals.append("penalty:promotional")
        for phrase in self.tables.off_topic_phrases:
            if phrase in lowered and phrase not in pain_lower:
                score -= OFF_TOPIC_PENALTY
                signals.append(f"penalty:off-topic:{phrase}")

        raw = score
        if short:
            score = min(score, BASE_SCORE - SHORT_TEXT_PENALTY)
        return ScoreBreakdown(raw=raw, score=max(0, min(100, score)), signals=signals)
