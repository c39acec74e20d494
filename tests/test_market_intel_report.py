from __future__ import annotations

import unittest

from pipeline.market_intel_report import (
    NO_DATA_MARKER,
    ReportBuilder,
    common_phrases,
    pain_intensity,
    urgency_for,
)
from pipeline.market_intel_scorer import RelevanceScorer, ScoreBreakdown
from schemas.market_intel import (
    Candidate,
    PeopleAlsoAsk,
    Profile,
    QueryOrigin,
    ReportStatus,
    SentimentAggregate,
    SentimentTier,
    SourceSubtype,
    SourceType,
    Urgency,
)

PROFILE = Profile(
    pain_points="burned out juggling too many freelance clients",
    target_audience="freelance designers",
    problem="inconsistent income",
)


class FixedScorer(RelevanceScorer):
    """Scores by looking the text up in a table."""

    def __init__(self, scores):
        super().__init__()
        self.scores = scores

    def evaluate(self, text, profile):
        score = self.scores[text]
        return ScoreBreakdown(raw=score, score=score, signals=[f"fixed:{score}"])


def candidate(cid, text, source=SourceType.VIDEO_COMMENT, subtype=SourceSubtype.YOUTUBE, real=True):
    return Candidate(id=cid, source=source, source_subtype=subtype, text=text, is_real_quote=real)


class ReportBuilderTests(unittest.TestCase):
    def test_ranking_is_stable_for_ties(self):
        scorer = FixedScorer({"t40": 40, "t80a": 80, "t80b": 80, "t60": 60})
        builder = ReportBuilder(scorer=scorer)
        batch = [candidate("a", "t40"), candidate("b", "t80a"), candidate("c", "t80b"), candidate("d", "t60")]

        report = builder.build({"youtube": batch}, None, PROFILE, 10)

        self.assertEqual([q.id for q in report.quotes], ["b", "c", "d", "a"])
        self.assertEqual([q.relevance_score for q in report.quotes], [80, 80, 60, 40])

    def test_dedupe_keeps_first_seen(self):
        scorer = FixedScorer({"first": 50, "second": 90})
        builder = ReportBuilder(scorer=scorer)
        report = builder.build(
            {"youtube": [candidate("same", "first")], "discussions": [candidate("same", "second")]},
            None,
            PROFILE,
            10,
        )
        self.assertEqual(len(report.quotes), 1)
        self.assertEqual(report.quotes[0].text, "first")
        self.assertEqual(report.diagnostics.duplicates_removed, 1)

    def test_threshold_is_enforced(self):
        scorer = FixedScorer({"low": 39, "edge": 40, "high": 75})
        report = ReportBuilder(scorer=scorer).build(
            {"youtube": [candidate("1", "low"), candidate("2", "edge"), candidate("3", "high")]},
            None,
            PROFILE,
            10,
        )
        self.assertEqual([q.id for q in report.quotes], ["3", "2"])
        self.assertTrue(all(q.relevance_score >= 40 for q in report.quotes))
        self.assertEqual(report.diagnostics.below_threshold, 1)
        self.assertEqual(report.diagnostics.candidates_considered, 3)

    def test_truncates_to_requested_count(self):
        scorer = FixedScorer({f"t{i}": 50 + i for i in range(6)})
        batch = [candidate(str(i), f"t{i}") for i in range(6)]
        report = ReportBuilder(scorer=scorer).build({"youtube": batch}, None, PROFILE, 2)
        self.assertEqual([q.id for q in report.quotes], ["5", "4"])

    def test_empty_inputs_give_no_data_report(self):
        report = ReportBuilder().build({}, None, PROFILE, 30, queries=["a b c"])
        self.assertEqual(report.quotes, [])
        self.assertEqual(report.status, ReportStatus.NO_DATA)
        self.assertEqual(report.source_stats.total_quotes, 0)
        self.assertIn(NO_DATA_MARKER, report.reasoning)
        self.assertTrue(report.reasoning.endswith("Pain intensity: 5/10."))
        self.assertEqual(report.sentiment.market_maturity.value, "growing")

    def test_off_topic_is_distinguished_from_nothing(self):
        report = ReportBuilder().build(
            {"discussions": [candidate("x", "Subscribe to my channel for daily dating advice and more",
                                       SourceType.DISCUSSION, SourceSubtype.BLOG)]},
            None,
            PROFILE,
            30,
        )
        self.assertEqual(report.status, ReportStatus.OFF_TOPIC)
        self.assertIn(NO_DATA_MARKER, report.reasoning)
        self.assertIn("off-topic", report.reasoning)

    def test_sentiment_only(self):
        sentiment = SentimentAggregate(analyzed=True, post_count=12, sentiment_tier=SentimentTier.MIXED)
        report = ReportBuilder().build({}, sentiment, PROFILE, 30)
        self.assertEqual(report.status, ReportStatus.SENTIMENT_ONLY)
        self.assertNotIn(NO_DATA_MARKER, report.reasoning)
        self.assertIn("Analyzed sentiment from 12 Reddit posts", report.reasoning)
        self.assertEqual(report.source_stats.reddit_posts_analyzed, 12)

    def test_low_data_warning_and_reasoning_order(self):
        text = "I'm so burned out juggling clients, it's exhausting"
        report = ReportBuilder().build(
            {"youtube": [candidate("yt-1", text)]},
            None,
            PROFILE,
            30,
            queries=["freelance burnout", "client overload", "income swings"],
            query_origin=QueryOrigin.GENERATED,
            people_also_ask=[PeopleAlsoAsk(question="How do freelancers smooth income?")],
        )
        self.assertEqual(report.status, ReportStatus.ALIGNED_EVIDENCE)
        reasoning = report.reasoning
        self.assertTrue(reasoning.startswith('Searched using 3 AI-generated queries: "freelance burnout", "client overload"...'))
        order = [
            reasoning.index("Searched using"),
            reasoning.index("relevant YouTube comments"),
            reasoning.index("Reddit sentiment was not available"),
            reasoning.index('"People Also Ask"'),
            reasoning.index("Limited quote data (1)"),
            reasoning.index("Pain intensity:"),
        ]
        self.assertEqual(order, sorted(order))

    def test_sentiment_blending(self):
        texts = [
            "I'm so frustrated and stuck, wasting time on admin every week",
            "Honestly overwhelmed and struggling, I need help with too complex tooling",
        ]
        sentiment = SentimentAggregate(
            analyzed=True,
            post_count=20,
            sentiment_tier=SentimentTier.NEGATIVE,
            theme_words=["invoices", "pricing", "clients", "deadlines"],
        )
        batch = [candidate(str(i), t) for i, t in enumerate(texts)]
        without = ReportBuilder().build({"youtube": batch}, None, PROFILE, 30)
        blended = ReportBuilder().build({"youtube": batch}, sentiment, PROFILE, 30)

        self.assertEqual(blended.language_patterns.emotional_triggers[:3], ["invoices", "pricing", "clients"])
        self.assertEqual(
            blended.language_patterns.emotional_triggers[3:],
            without.language_patterns.emotional_triggers[:2],
        )
        self.assertEqual(
            blended.sentiment.pain_intensity, min(10, without.sentiment.pain_intensity + 1)
        )
        self.assertEqual(blended.sentiment.urgency, urgency_for(blended.sentiment.pain_intensity))

    def test_provenance_counts(self):
        scorer = FixedScorer({"a": 70, "b": 60, "c": 55})
        report = ReportBuilder(scorer=scorer).build(
            {
                "youtube": [candidate("yt-a", "a")],
                "discussions": [
                    candidate("gs-b", "b", SourceType.DISCUSSION, SourceSubtype.QUORA),
                    candidate("gs-c", "c", SourceType.DISCUSSION, SourceSubtype.QUORA, real=False),
                ],
            },
            None,
            PROFILE,
            30,
            people_also_ask=[PeopleAlsoAsk(question="q1"), PeopleAlsoAsk(question="q2")],
            adapter_status={"youtube": "ok (1)"},
        )
        stats = report.source_stats
        self.assertEqual(stats.total_quotes, 3)
        self.assertEqual(stats.real_quotes, 2)
        self.assertEqual(stats.ai_generated_quotes, 1)
        self.assertEqual(stats.video_comment_quotes, 1)
        self.assertEqual(stats.discussion_quotes, 2)
        self.assertEqual(stats.per_subtype, {"youtube": 1, "quora": 2})
        self.assertEqual(stats.people_also_ask_questions, 2)
        self.assertEqual(report.diagnostics.adapter_status, {"youtube": "ok (1)"})


class DerivedSignalTests(unittest.TestCase):
    def test_pain_intensity(self):
        self.assertEqual(pain_intensity([]), 5)
        self.assertEqual(pain_intensity(["frustrated and stuck, desperate for help"]), 7)
        self.assertEqual(pain_intensity(["frustrated stuck desperate help hate awful worst terrible"] * 3), 10)

    def test_urgency(self):
        self.assertEqual(urgency_for(8), Urgency.HIGH)
        self.assertEqual(urgency_for(5), Urgency.MEDIUM)
        self.assertEqual(urgency_for(4), Urgency.LOW)

    def test_common_phrases(self):
        texts = [
            "late paying clients again this month",
            "so many late paying clients",
            "one late paying client",
        ]
        phrases = common_phrases(texts)
        self.assertEqual(phrases[0], "late paying")
        self.assertIn("late paying clients", phrases)
        self.assertNotIn("so many", phrases)


if __name__ == "__main__":
    unittest.main()
