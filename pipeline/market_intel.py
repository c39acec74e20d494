"""Market intelligence pipeline — profile in, one report out.

Steps:
  1. Validate the profile (dict or Profile).
  2. Synthesize 1-5 search queries (LLM, deterministic fallback).
  3. Run the source families concurrently:
       - YouTube comments, one search per query, throttled
       - discussion search, primary query only
       - Reddit sentiment, primary query only, aggregate only
       - "People Also Ask" questions (generated, never quotes)
  4. Hand everything, including partial results from timed-out families,
     to the ReportBuilder.

One run deadline covers steps 2 and 3. Synthesis that overruns it falls back
to the profile-derived queries.

Each run builds its own adapters and sinks; nothing is shared across runs.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError

import config
from pipeline.llm import generator_for
from pipeline.market_intel_classifier import EmotionalClassifier
from pipeline.market_intel_clients import (
    GoogleDiscussionSearchClient,
    RedditPostSearchClient,
    YouTubeCommentSearchClient,
)
from pipeline.market_intel_keywords import DEFAULT_KEYWORD_TABLES
from pipeline.market_intel_queries import PeopleAlsoAskGenerator, QuerySynthesizer
from pipeline.market_intel_report import ReportBuilder
from pipeline.market_intel_scorer import RelevanceScorer
from pipeline.market_intel_sources import (
    DiscussionSearchAdapter,
    RedditSentimentAdapter,
    YouTubeCommentAdapter,
    describe_error,
)
from pipeline.throttle import Throttle
from schemas.market_intel import Candidate, MarketIntelligenceReport, Profile

logger = logging.getLogger(__name__)

ProfileInput = Union[Profile, Mapping[str, Any]]

# Accept the camelCase keys web clients send.
_PROFILE_ALIASES = {
    "painPoints": "pain_points",
    "targetAudience": "target_audience",
    "primaryEmotion": "primary_emotion",
    "primarySixS": "primary_emotion",
    "marketingContext": "marketing_context",
}


class InvalidProfileError(ValueError):
    """The profile can't drive a run (blank, wrong type or invalid fields)."""


def coerce_profile(profile: ProfileInput) -> Profile:
    if isinstance(profile, Profile):
        parsed = profile
    elif isinstance(profile, Mapping):
        data = {_PROFILE_ALIASES.get(key, key): value for key, value in profile.items()}
        if not data.get("primary_emotion"):
            data.pop("primary_emotion", None)
        try:
            parsed = Profile.model_validate(data)
        except ValidationError as exc:
            raise InvalidProfileError(f"invalid profile: {exc.error_count()} field error(s)") from exc
    else:
        raise InvalidProfileError(f"profile must be a mapping or Profile, got {type(profile).__name__}")

    if parsed.is_blank():
        raise InvalidProfileError("profile needs pain_points, target_audience or problem")
    return parsed


class MarketIntelPipeline:
    """One configured set of components. Safe to reuse: runs share no state."""

    def __init__(
        self,
        *,
        synthesizer: QuerySynthesizer,
        builder: ReportBuilder,
        youtube: Optional[YouTubeCommentAdapter] = None,
        discussions: Optional[DiscussionSearchAdapter] = None,
        reddit: Optional[RedditSentimentAdapter] = None,
        people_also_ask: Optional[PeopleAlsoAskGenerator] = None,
        youtube_comment_budget: int = 40,
        discussion_max_results: int = 20,
        run_timeout: Optional[float] = None,
    ):
        self.synthesizer = synthesizer
        self.builder = builder
        self.youtube = youtube
        self.discussions = discussions
        self.reddit = reddit
        self.people_also_ask = people_also_ask
        self.youtube_comment_budget = youtube_comment_budget
        self.discussion_max_results = discussion_max_results
        self.run_timeout = run_timeout

    @classmethod
    def from_config(cls) -> "MarketIntelPipeline":
        tables = DEFAULT_KEYWORD_TABLES
        classifier = EmotionalClassifier(tables)

        youtube = discussions = reddit = people_also_ask = None
        if config.MARKET_INTEL_ENABLE_YOUTUBE:
            youtube = YouTubeCommentAdapter(
                YouTubeCommentSearchClient(),
                Throttle(config.MARKET_INTEL_YOUTUBE_DELAY_SECONDS, name="youtube"),
            )
        if config.MARKET_INTEL_ENABLE_DISCUSSIONS:
            discussions = DiscussionSearchAdapter(GoogleDiscussionSearchClient())
        if config.MARKET_INTEL_ENABLE_REDDIT:
            reddit = RedditSentimentAdapter(
                RedditPostSearchClient(),
                Throttle(config.MARKET_INTEL_REDDIT_DELAY_SECONDS, name="reddit"),
                classifier=classifier,
                subreddit_limit=config.MARKET_INTEL_REDDIT_SUBREDDIT_LIMIT,
                posts_per_subreddit=config.MARKET_INTEL_REDDIT_POSTS_PER_SUBREDDIT,
            )
        if config.MARKET_INTEL_ENABLE_PEOPLE_ALSO_ASK:
            people_also_ask = PeopleAlsoAskGenerator(generator_for("people_also_ask"))

        return cls(
            synthesizer=QuerySynthesizer(generator_for("query_synthesizer")),
            builder=ReportBuilder(
                RelevanceScorer(tables, threshold=config.MARKET_INTEL_RELEVANCE_THRESHOLD),
                classifier,
                tables,
            ),
            youtube=youtube,
            discussions=discussions,
            reddit=reddit,
            people_also_ask=people_also_ask,
            youtube_comment_budget=config.MARKET_INTEL_YOUTUBE_COMMENT_BUDGET,
            discussion_max_results=config.MARKET_INTEL_DISCUSSION_MAX_RESULTS,
            run_timeout=config.MARKET_INTEL_RUN_TIMEOUT_SECONDS,
        )

    async def run(self, profile: ProfileInput, requested_count: Optional[int] = None) -> MarketIntelligenceReport:
        profile = coerce_profile(profile)
        if requested_count is None:
            requested_count = config.MARKET_INTEL_DEFAULT_QUOTE_COUNT
        if requested_count <= 0:
            raise ValueError("requested_count must be positive")

        loop = asyncio.get_running_loop()
        deadline = None if self.run_timeout is None else loop.time() + self.run_timeout

        def remaining() -> Optional[float]:
            return None if deadline is None else max(0.0, deadline - loop.time())

        # Blocking LLM calls run on a per-run pool that is shut down without joining.
        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="market-intel")
        try:
            return await self._run(profile, requested_count, loop, executor, remaining)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    async def _run(
        self,
        profile: Profile,
        requested_count: int,
        loop: asyncio.AbstractEventLoop,
        executor: ThreadPoolExecutor,
        remaining: Callable[[], Optional[float]],
    ) -> MarketIntelligenceReport:
        timed_out = False
        try:
            query_set = await asyncio.wait_for(
                loop.run_in_executor(executor, self.synthesizer.synthesize, profile),
                remaining(),
            )
        except asyncio.TimeoutError:
            timed_out = True
            logger.warning("Market intel: query synthesis hit the run deadline (%ss)", self.run_timeout)
            query_set = self.synthesizer.fallback(profile, "generation timed out")
        queries = list(query_set.queries)
        logger.info("Market intel: %d %s queries %s", len(queries), query_set.origin.value, queries)

        sinks: dict[str, list[Candidate]] = {"youtube": [], "discussions": []}
        tasks: dict[str, asyncio.Future] = {}
        if self.youtube is not None:
            tasks["youtube"] = asyncio.create_task(
                self.youtube.collect(queries, profile, self.youtube_comment_budget, sinks["youtube"])
            )
        if self.discussions is not None:
            tasks["discussions"] = asyncio.create_task(
                self.discussions.collect(queries, profile, self.discussion_max_results, sinks["discussions"])
            )
        if self.reddit is not None:
            tasks["reddit"] = asyncio.create_task(
                self.reddit.analyze(query_set.primary, profile.target_audience)
            )
        if self.people_also_ask is not None:
            tasks["people_also_ask"] = loop.run_in_executor(
                executor, self.people_also_ask.generate_questions, query_set.primary, profile
            )

        if tasks:
            _, pending = await asyncio.wait(tasks.values(), timeout=remaining())
            if pending:
                timed_out = True
                logger.warning(
                    "Market intel: run deadline (%ss) hit; cancelling %s",
                    self.run_timeout,
                    [name for name, task in tasks.items() if task in pending],
                )
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

        adapter_status = {
            name: "disabled"
            for name in ("youtube", "discussions", "reddit", "people_also_ask")
            if name not in tasks
        }
        results: dict[str, Any] = {}
        for name, task in tasks.items():
            if task.cancelled():
                adapter_status[name] = f"timed out ({len(sinks.get(name, []))} kept)"
                continue
            exc = task.exception()
            if exc is not None:
                logger.warning("Market intel: %s raised (%s)", name, describe_error(exc))
                adapter_status[name] = f"failed: {describe_error(exc)}"
                continue
            results[name] = task.result()

        sentiment = None
        if "reddit" in results:
            sentiment = results["reddit"].value
            adapter_status["reddit"] = results["reddit"].describe()
        for name in ("youtube", "discussions"):
            if name in results:
                adapter_status[name] = results[name].describe()
        people_also_ask = results.get("people_also_ask", [])
        if "people_also_ask" in results:
            adapter_status["people_also_ask"] = f"ok ({len(people_also_ask)})"

        return self.builder.build(
            {"youtube": sinks["youtube"], "discussions": sinks["discussions"]},
            sentiment,
            profile,
            requested_count,
            queries=queries,
            query_origin=query_set.origin,
            people_also_ask=people_also_ask,
            adapter_status=dict(sorted(adapter_status.items())),
            timed_out=timed_out,
        )


async def arun_market_intelligence(
    profile: ProfileInput,
    requested_count: Optional[int] = None,
    *,
    pipeline: Optional[MarketIntelPipeline] = None,
) -> MarketIntelligenceReport:
    pipeline = pipeline or MarketIntelPipeline.from_config()
    return await pipeline.run(profile, requested_count)


def run_market_intelligence(
    profile: ProfileInput,
    requested_count: int = 30,
    *,
    pipeline: Optional[MarketIntelPipeline] = None,
) -> MarketIntelligenceReport:
    """Blocking entry point. Raises InvalidProfileError before any network call."""
    coerce_profile(profile)
    return asyncio.run(arun_market_intelligence(profile, requested_count, pipeline=pipeline))
