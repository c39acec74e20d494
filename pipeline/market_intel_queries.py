"""Query synthesis — turns a profile into 1-5 short search queries.

Primary path asks the generation capability for queries; any failure
(missing key, network error, malformed JSON, empty list) routes to a
deterministic fallback built from the profile's own words. Nothing in
this module raises to its caller.

The People-Also-Ask generator follows the same shape: LLM first, templates
second. Its output is always flagged as generated, never as a quote.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from pipeline.llm import GenerateFn, LLMUnavailableError, safe_json_loads
from pipeline.outcome import Outcome
from prompts.market_intel_system import (
    MARKETING_BLOCK_TEMPLATE,
    PAA_SYSTEM_PROMPT,
    PAA_USER_TEMPLATE,
    QUERY_SYSTEM_PROMPT,
    QUERY_USER_TEMPLATE,
)
from schemas.market_intel import MarketingContext, PeopleAlsoAsk, Profile, QueryOrigin

logger = logging.getLogger(__name__)

MAX_QUERIES = 5
MAX_FALLBACK_QUERIES = 4
GENERIC_QUERIES = ("business owner struggles", "entrepreneur challenges")
MAX_PAA_QUESTIONS = 6


@dataclass(frozen=True)
class QuerySet:
    queries: tuple[str, ...]
    origin: QueryOrigin
    note: str = ""

    @property
    def primary(self) -> str:
        return self.queries[0]


def _marketing_block(context: Optional[MarketingContext]) -> str:
    if context is None or not (context.problem or context.promise):
        return ""
    return MARKETING_BLOCK_TEMPLATE.format(
        promise=context.promise or "not specified",
        problem=context.problem or "not specified",
        solution=context.solution or "not specified",
        transformation=context.transformation or "not specified",
    )


def _string_list(data: Any, wrapper_key: str) -> Optional[list]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(wrapper_key), list):
        return data[wrapper_key]
    return None


def parse_query_response(raw: str) -> Outcome[list[str]]:
    """Read an LLM reply as a list of queries.

    Accepts a JSON array of strings or {"queries": [...]}. Anything else is
    UNPARSEABLE so the caller can fall back.
    """
    try:
        data = safe_json_loads(raw)
    except ValueError as exc:
        return Outcome.unparseable(str(exc))

    items = _string_list(data, "queries")
    if items is None:
        return Outcome.unparseable(f"unexpected response shape: {type(data).__name__}")

    queries: list[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        query = " ".join(item.split())
        if query and query.lower() not in {q.lower() for q in queries}:
            queries.append(query)
    if not queries:
        return Outcome.unparseable("response contained no usable queries")
    return Outcome.ok(queries[:MAX_QUERIES])


def _long_words(text: str, limit: int = 2) -> list[str]:
    return [word for word in (text or "").split() if len(word) > 4][:limit]


def fallback_queries(profile: Profile) -> list[str]:
    """Deterministic queries from the profile's own words."""
    audience_words = _long_words(profile.target_audience)
    problem_words = _long_words(profile.problem)
    audience_lower = (profile.target_audience or "").lower()

    queries: list[str] = []
    if audience_words:
        queries.append(f"{' '.join(audience_words)} problems")
        queries.append(f"{' '.join(audience_words)} struggles")
    if problem_words:
        queries.append(f"how to {' '.join(problem_words)}")
    if "business" in audience_lower or "entrepreneur" in audience_lower:
        queries.append("small business owner challenges")
    if "market" in audience_lower:
        queries.append("marketing frustrations tips")

    return queries[:MAX_FALLBACK_QUERIES] if queries else list(GENERIC_QUERIES)


class QuerySynthesizer:
    """Builds the search queries for one run."""

    def __init__(self, generate: Optional[GenerateFn] = None):
        self.generate = generate

    def build_user_prompt(self, profile: Profile) -> str:
        emotion = profile.primary_emotion.value if profile.primary_emotion else "not specified"
        return QUERY_USER_TEMPLATE.format(
            target_audience=profile.target_audience or "not specified",
            pain_points=profile.pain_points or "not specified",
            problem=profile.problem or "not specified",
            marketing_block=_marketing_block(profile.marketing_context),
            primary_emotion=emotion,
        )

    def synthesize(self, profile: Profile) -> QuerySet:
        if self.generate is None:
            return self.fallback(profile, "generation capability not configured")

        try:
            raw = self.generate(QUERY_SYSTEM_PROMPT, self.build_user_prompt(profile))
        except LLMUnavailableError as exc:
            logger.info("Query synthesis: generation unavailable (%s); using fallback", exc)
            return self.fallback(profile, "generation unavailable")
        except Exception as exc:
            logger.warning("Query synthesis: generation failed (%s); using fallback", exc)
            return self.fallback(profile, "generation failed")

        parsed = parse_query_response(raw)
        if not parsed.succeeded or not parsed.value:
            logger.warning("Query synthesis: %s; using fallback", parsed.describe())
            return self.fallback(profile, "generation response unparseable")

        logger.info("Query synthesis: %d generated queries %s", len(parsed.value), parsed.value)
        return QuerySet(queries=tuple(parsed.value), origin=QueryOrigin.GENERATED)

    def fallback(self, profile: Profile, note: str) -> QuerySet:
        queries = fallback_queries(profile)
        logger.info("Query synthesis: fallback queries %s (%s)", queries, note)
        return QuerySet(queries=tuple(queries), origin=QueryOrigin.FALLBACK, note=note)


# ---------------------------------------------------------------------------
# People Also Ask
# ---------------------------------------------------------------------------

def parse_paa_response(raw: str) -> Outcome[list[PeopleAlsoAsk]]:
    try:
        data = safe_json_loads(raw)
    except ValueError as exc:
        return Outcome.unparseable(str(exc))

    items = _string_list(data, "questions")
    if items is None:
        return Outcome.unparseable(f"unexpected response shape: {type(data).__name__}")

    questions: list[PeopleAlsoAsk] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        question = " ".join(str(item.get("question") or "").split())
        if not question:
            continue
        snippet = " ".join(str(item.get("snippet") or "").split())
        questions.append(PeopleAlsoAsk(question=question, snippet=snippet))
    if not questions:
        return Outcome.unparseable("response contained no questions")
    return Outcome.ok(questions[:MAX_PAA_QUESTIONS])


def template_people_also_ask(query: str, profile: Profile) -> list[PeopleAlsoAsk]:
    problem_words = [w for w in (profile.problem or "").split() if len(w) > 4][:3]
    keyword_list = [k for k in (query or "").split() if len(k) > 3][:2]
    topic = " ".join(keyword_list) or " ".join(problem_words) or "this challenge"
    audience_words = [w for w in (profile.target_audience or "").split() if len(w) > 3]
    audience = audience_words[-1] if audience_words else "professionals"

    return [
        PeopleAlsoAsk(
            question=f"How do {audience} solve {topic}?",
            snippet=f"A common question among {audience} looking for a repeatable way to handle {topic}.",
        ),
        PeopleAlsoAsk(
            question=f"What are the biggest challenges with {topic}?",
            snippet="Asked by people trying to name the problem before choosing a fix.",
        ),
        PeopleAlsoAsk(
            question=f"Is fixing {topic} worth the investment?",
            snippet="Reflects cost and time objections that come up before buying.",
        ),
        PeopleAlsoAsk(
            question=f"What do experts recommend for {topic}?",
            snippet="Signals a search for trusted guidance over trial and error.",
        ),
    ]


class PeopleAlsoAskGenerator:
    """Generated search-intent questions shown next to (never as) quotes."""

    def __init__(self, generate: Optional[GenerateFn] = None):
        self.generate = generate

    def generate_questions(self, query: str, profile: Profile) -> list[PeopleAlsoAsk]:
        if self.generate is not None:
            user_prompt = PAA_USER_TEMPLATE.format(
                problem=profile.problem or "not specified",
                keywords=query,
                target_audience=profile.target_audience or "professionals facing this challenge",
                marketing_block=_marketing_block(profile.marketing_context),
            )
            try:
                parsed = parse_paa_response(self.generate(PAA_SYSTEM_PROMPT, user_prompt))
            except LLMUnavailableError as exc:
                logger.info("People Also Ask: generation unavailable (%s)", exc)
            except Exception as exc:
                logger.warning("People Also Ask: generation failed (%s)", exc)
            else:
                if parsed.succeeded and parsed.value:
                    return parsed.value
                logger.warning("People Also Ask: %s; using templates", parsed.describe())
        return template_people_also_ask(query, profile)
