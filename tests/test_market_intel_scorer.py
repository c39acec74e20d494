from __future__ import annotations

import unittest

from pipeline.market_intel_keywords import KeywordTables
from pipeline.market_intel_scorer import (
    BASE_SCORE,
    RelevanceScorer,
    extract_keywords,
    marketing_keywords,
)
from schemas.market_intel import MarketingContext, Profile, SixSCategory

FREELANCE_PROFILE = Profile(
    pain_points="burned out juggling too many freelance clients",
    target_audience="freelance designers",
    problem="inconsistent income",
)

COURSE_CONTEXT = MarketingContext(
    problem="course creators struggling with leads",
    promise="predictable enrollments",
    solution="webinar funnel",
)


class KeywordExtractionTests(unittest.TestCase):
    def test_only_words_longer_than_four_chars(self):
        self.assertEqual(
            extract_keywords("burned out juggling too many freelance clients"),
            ["burned", "juggling", "freelance", "clients"],
        )

    def test_distinct_and_stop_words_removed(self):
        self.assertEqual(extract_keywords("Leads, leads and their leads", {"their"}), ["leads"])

    def test_marketing_keywords_use_problem_promise_and_solution(self):
        keywords = marketing_keywords(COURSE_CONTEXT)
        self.assertIn("webinar", keywords)
        self.assertIn("enrollments", keywords)
        self.assertEqual(marketing_keywords(None), [])


class RelevanceScorerTests(unittest.TestCase):
    def setUp(self):
        self.scorer = RelevanceScorer()

    def test_end_to_end_quote_scores_well(self):
        breakdown = self.scorer.evaluate("I'm so burned out juggling clients, it's exhausting", FREELANCE_PROFILE)
        self.assertGreaterEqual(breakdown.score, 66)
        self.assertIn("distress:burned", breakdown.signals)
        self.assertIn("distress:exhaust", breakdown.signals)
        self.assertIn("pain:clients", breakdown.signals)

    def test_short_text_never_exceeds_fifteen(self):
        for text in ("Help? stuck, struggle!", "burned out clients?", "", "?", "hate it"):
            with self.subTest(text=text):
                self.assertLess(len(text), 30)
                self.assertLessEqual(self.scorer.score(text, FREELANCE_PROFILE), 15)
                self.assertFalse(self.scorer.accepts(self.scorer.score(text, FREELANCE_PROFILE)))

    def test_marketing_bonus_is_additive(self):
        profile = Profile(target_audience="", problem="x", marketing_context=COURSE_CONTEXT)
        text = "Any course creators here running a webinar to get more leads for enrollments?"
        breakdown = self.scorer.evaluate(text, profile)
        self.assertIn("marketing:multi-match", breakdown.signals)
        self.assertGreaterEqual(breakdown.raw, BASE_SCORE + 15 * 3 + 20)
        self.assertEqual(breakdown.score, 100)

    def test_score_is_always_clamped(self):
        profile = Profile(
            pain_points="weight loss",
            target_audience="anyone",
            problem="x",
            primary_emotion=SixSCategory.SAFE,
        )
        samples = [
            "",
            "a" * 5000,
            "subscribe check out my channel " * 20 + "social anxiety dating advice depression help",
            ("struggle frustrated hate problem issue difficult hard challenge stuck help need wish "
             "tired overwhelm stress fail waste confused annoyed disappointed burned exhausted? ") * 10
            + "trust security risk fear",
            "\n\t  ",
        ]
        for text in samples:
            with self.subTest(text=text[:30]):
                score = self.scorer.score(text, profile)
                self.assertGreaterEqual(score, 0)
                self.assertLessEqual(score, 100)

    def test_promotional_and_off_topic_penalties(self):
        profile = Profile(pain_points="cash flow", target_audience="founders", problem="x")
        breakdown = self.scorer.evaluate(
            "Subscribe for more tips on social anxiety and dating advice every week", profile
        )
        self.assertIn("penalty:promotional", breakdown.signals)
        self.assertIn("penalty:off-topic:social anxiety", breakdown.signals)
        self.assertLess(breakdown.score, 40)

    def test_off_topic_phrase_in_pain_points_is_not_penalised(self):
        profile = Profile(pain_points="social anxiety at networking events", problem="x")
        breakdown = self.scorer.evaluate("My social anxiety makes networking events miserable", profile)
        self.assertNotIn("penalty:off-topic:social anxiety", breakdown.signals)

    def test_primary_emotion_keywords(self):
        profile = Profile(problem="x", primary_emotion=SixSCategory.SAFE)
        breakdown = self.scorer.evaluate("I do not trust these tools, the risk feels huge to me", profile)
        self.assertIn("emotion:trust", breakdown.signals)
        self.assertIn("emotion:risk", breakdown.signals)

    def test_substantive_length_bonus(self):
        profile = Profile(problem="x")
        base = self.scorer.score("plain words " * 3, profile)
        longer = self.scorer.score("plain words " * 50, profile)
        self.assertEqual(longer, base + 10)

    def test_custom_threshold(self):
        scorer = RelevanceScorer(KeywordTables(), threshold=70)
        self.assertFalse(scorer.accepts(69))
        self.assertTrue(scorer.accepts(70))


if __name__ == "__main__":
    unittest.main()
