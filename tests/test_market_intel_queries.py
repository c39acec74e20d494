from __future__ import annotations

import json
import unittest

from pipeline.llm import LLMError, LLMUnavailableError
from pipeline.market_intel_queries import (
    GENERIC_QUERIES,
    PeopleAlsoAskGenerator,
    QuerySynthesizer,
    fallback_queries,
    parse_paa_response,
    parse_query_response,
    template_people_also_ask,
)
from pipeline.outcome import OutcomeStatus
from schemas.market_intel import MarketingContext, Profile, QueryOrigin, SixSCategory

BUSINESS_PROFILE = Profile(
    pain_points="no steady pipeline of customers",
    target_audience="small business owners",
    problem="cannot find customers",
)


def _raising(exc):
    def generate(system_prompt, user_prompt):
        raise exc
    return generate


class ParseQueryResponseTests(unittest.TestCase):
    def test_plain_array(self):
        outcome = parse_query_response('["freelance designer burnout", "client juggling stress"]')
        self.assertEqual(outcome.status, OutcomeStatus.OK)
        self.assertEqual(outcome.value, ["freelance designer burnout", "client juggling stress"])

    def test_object_wrapper_and_fences(self):
        raw = '```json\n{"queries": ["a b c", "d e f"]}\n```'
        self.assertEqual(parse_query_response(raw).value, ["a b c", "d e f"])

    def test_caps_at_five_and_dedupes_case_insensitively(self):
        raw = json.dumps(["One", "one", "two", "three", "four", "five", "six"])
        self.assertEqual(parse_query_response(raw).value, ["One", "two", "three", "four", "five"])

    def test_malformed_is_unparseable(self):
        for raw in ("", "not json at all", '{"items": ["x"]}', "[1, 2, 3]", '"just a string"'):
            with self.subTest(raw=raw):
                self.assertEqual(parse_query_response(raw).status, OutcomeStatus.UNPARSEABLE)


class FallbackQueryTests(unittest.TestCase):
    def test_templates_from_profile_words(self):
        self.assertEqual(
            fallback_queries(BUSINESS_PROFILE),
            [
                "small business problems",
                "small business struggles",
                "how to cannot customers",
                "small business owner challenges",
            ],
        )

    def test_market_audience_adds_marketing_query(self):
        profile = Profile(target_audience="marketing managers", problem="x")
        queries = fallback_queries(profile)
        self.assertIn("marketing frustrations tips", queries)
        self.assertLessEqual(len(queries), 4)

    def test_generic_queries_when_nothing_extracted(self):
        profile = Profile(pain_points="hard", target_audience="a b", problem="me")
        self.assertEqual(fallback_queries(profile), list(GENERIC_QUERIES))


class QuerySynthesizerTests(unittest.TestCase):
    def test_generated_queries(self):
        calls = []

        def generate(system_prompt, user_prompt):
            calls.append(user_prompt)
            return '["course creator lead generation", "online course marketing struggles"]'

        profile = Profile(
            pain_points="no leads",
            target_audience="course creators",
            problem="course creators struggling to generate leads",
            primary_emotion=SixSCategory.SUCCESSFUL,
            marketing_context=MarketingContext(problem="no leads", promise="full cohorts"),
        )
        result = QuerySynthesizer(generate).synthesize(profile)
        self.assertEqual(result.origin, QueryOrigin.GENERATED)
        self.assertEqual(result.primary, "course creator lead generation")
        self.assertIn("course creators struggling to generate leads", calls[0])
        self.assertIn("full cohorts", calls[0])
        self.assertIn("Successful", calls[0])

    def test_unavailable_generation_falls_back(self):
        def generate(system_prompt, user_prompt):
            raise LLMUnavailableError("OPENAI_API_KEY is not set")

        result = QuerySynthesizer(generate).synthesize(BUSINESS_PROFILE)
        self.assertEqual(result.origin, QueryOrigin.FALLBACK)
        self.assertEqual(list(result.queries), fallback_queries(BUSINESS_PROFILE))

    def test_failed_and_unparseable_generation_fall_back(self):
        for generate in (
            _raising(LLMError("boom")),
            _raising(RuntimeError("socket closed")),
            lambda s, u: "Sure! Here are some ideas: blah",
            lambda s, u: "[]",
        ):
            with self.subTest(generate=generate):
                result = QuerySynthesizer(generate).synthesize(BUSINESS_PROFILE)
                self.assertEqual(result.origin, QueryOrigin.FALLBACK)
                self.assertTrue(result.queries)

    def test_no_generator_configured(self):
        result = QuerySynthesizer(None).synthesize(BUSINESS_PROFILE)
        self.assertEqual(result.origin, QueryOrigin.FALLBACK)
        self.assertEqual(result.note, "generation capability not configured")


class PeopleAlsoAskTests(unittest.TestCase):
    def test_parse_array_of_objects(self):
        raw = '[{"question": "How do I get clients?", "snippet": "Common."}, {"snippet": "no question"}]'
        outcome = parse_paa_response(raw)
        self.assertEqual(outcome.status, OutcomeStatus.OK)
        self.assertEqual(len(outcome.value), 1)
        self.assertTrue(outcome.value[0].is_generated)

    def test_templates_when_generation_fails(self):
        def generate(system_prompt, user_prompt):
            raise LLMError("rate limited")

        questions = PeopleAlsoAskGenerator(generate).generate_questions("freelance designers income", BUSINESS_PROFILE)
        self.assertEqual(len(questions), 4)
        self.assertTrue(all(q.is_generated for q in questions))
        self.assertEqual(questions, template_people_also_ask("freelance designers income", BUSINESS_PROFILE))

    def test_generated_questions_are_used(self):
        generate = lambda s, u: '{"questions": [{"question": "Why is freelance income so uneven?", "snippet": "x"}]}'
        questions = PeopleAlsoAskGenerator(generate).generate_questions("q", BUSINESS_PROFILE)
        self.assertEqual([q.question for q in questions], ["Why is freelance income so uneven?"])


if __name__ == "__main__":
    unittest.main()
