"""Six S emotional classifier — weighted keyword matching, no network."""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from pipeline.market_intel_keywords import DEFAULT_KEYWORD_TABLES, KeywordTables
from schemas.market_intel import SixSCategory

DEFAULT_CATEGORY = SixSCategory.SUCCESSFUL


class EmotionalClassifier:
    """Maps free text to one of the six Six S categories.

    Each category scores one point per keyword found (case-insensitive
    substring). Highest score wins; ties go to the category listed first
    in the table. Text with no hits is SUCCESSFUL.
    """

    def __init__(self, tables: KeywordTables = DEFAULT_KEYWORD_TABLES):
        self.tables = tables

    def category_scores(self, text: str) -> dict[SixSCategory, int]:
        lowered = (text or "").lower()
        return {
            category: sum(1 for keyword in keywords if keyword in lowered)
            for category, keywords in self.tables.six_s_patterns
        }

    def classify(self, text: str) -> SixSCategory:
        scores = self.category_scores(text)
        best = max(scores.values(), default=0)
        if best == 0:
            return DEFAULT_CATEGORY
        for category, _ in self.tables.six_s_patterns:
            if scores[category] == best:
                return category
        return DEFAULT_CATEGORY


def top_emotions(categories: Iterable[SixSCategory], limit: int = 3) -> list[SixSCategory]:
    """Most frequent categories, ties broken by first appearance."""
    return [category for category, _ in Counter(categories).most_common(limit)]
