"""Source adapters — turn capability records into candidates.

Each adapter wraps one capability (see pipeline/market_intel_clients.py) and
never raises across its boundary: errors become an Outcome, malformed
records are dropped one at a time. Calls to the same upstream go through the
adapter's Throttle, and collected candidates land in a sink the caller owns
so a cancelled run keeps whatever was already fetched.
"""

from __future__ import annotations

import hashlib
import logging
import math
import re
from collections import Counter
from dataclasses import replace
from typing import Any, Optional, Protocol, Sequence

import httpx
from bs4 import BeautifulSoup

from pipeline.market_intel_classifier import EmotionalClassifier
from pipeline.market_intel_clients import CapabilityUnavailable
from pipeline.market_intel_keywords import (
    NEGATIVE_SENTIMENT_WORDS,
    POSITIVE_SENTIMENT_WORDS,
    THEME_STOP_WORDS,
    detect_source_subtype,
    suggest_subreddits,
)
from pipeline.outcome import Outcome, OutcomeStatus
from pipeline.throttle import Throttle
from schemas.market_intel import (
    Candidate,
    Profile,
    SentimentAggregate,
    SentimentTier,
    SourceSubtype,
    SourceType,
)

logger = logging.getLogger(__name__)

MIN_SNIPPET_CHARS = 30
MIN_POST_CHARS = 20
SENTIMENT_RATIO = 1.5
MAX_THEME_WORDS = 5
THEME_WORDS_PER_POST = 10
MIN_THEME_WORD_CHARS = 6


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

class VideoCommentSearch(Protocol):
    async def search(self, query: str, max_results: int) -> list[dict[str, Any]]: ...


class DiscussionSearch(Protocol):
    async def search(self, query: str, audience_hint: str, max_results: int) -> list[dict[str, Any]]: ...


class RedditPostSearch(Protocol):
    async def search(self, keywords: str, subreddit: str, limit: int) -> list[dict[str, Any]]: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def describe_error(exc: BaseException) -> str:
    """One-line reason for an adapter failure."""
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return "request timed out"
    if isinstance(exc, httpx.TransportError):
        return f"connection error ({type(exc).__name__})"
    return str(exc) or type(exc).__name__


def decode_comment_html(text: str) -> str:
    """Plain text from a comment's HTML: tags stripped, entities decoded."""
    if not text:
        return ""
    text = re.sub(r"<br\s*/?>", " ", text, flags=re.IGNORECASE)
    if "<" in text or "&" in text:
        text = BeautifulSoup(text, "html.parser").get_text(" ")
    return " ".join(text.split())


def clean_snippet(text: str) -> str:
    text = (text or "").replace("...", " ").replace("…", " ")
    return " ".join(text.split())


def discussion_id(url: str, fallback: str = "") -> str:
    payload = url or fallback
    return f"gs-{hashlib.sha1(payload.encode('utf-8')).hexdigest()[:12]}"


def sentiment_tier(negative_hits: int, positive_hits: int) -> SentimentTier:
    if negative_hits > SENTIMENT_RATIO * positive_hits:
        return SentimentTier.NEGATIVE
    if positive_hits > SENTIMENT_RATIO * negative_hits:
        return SentimentTier.POSITIVE
    return SentimentTier.MIXED


def theme_words_for(text: str) -> list[str]:
    """Up to ten letters-only words longer than 5 chars from one post."""
    words = []
    for word in text.lower().split():
        if len(word) < MIN_THEME_WORD_CHARS:
            continue
        if len(words) == THEME_WORDS_PER_POST:
            break
        words.append(word)
    cleaned = (re.sub(r"[^a-z]", "", word) for word in words)
    return [w for w in cleaned if len(w) >= MIN_THEME_WORD_CHARS and w not in THEME_STOP_WORDS]


def _dedupe_into(sink: list[Candidate], candidates: Sequence[Candidate], seen: set[str]) -> None:
    for candidate in candidates:
        if candidate.id in seen:
            continue
        seen.add(candidate.id)
        sink.append(candidate)


# ---------------------------------------------------------------------------
# Candidate adapters
# ---------------------------------------------------------------------------

class SourceAdapter:
    """Base for adapters that return quote candidates."""

    name = "source"

    def __init__(self, throttle: Optional[Throttle] = None):
        self.throttle = throttle or Throttle(0, name=self.name)

    async def _fetch(self, query: str, profile: Profile, limit: int) -> list[Candidate]:
        raise NotImplementedError

    async def fetch(self, query: str, profile: Profile, limit: int) -> Outcome[list[Candidate]]:
        try:
            candidates = await self._fetch(query, profile, limit)
        except CapabilityUnavailable as exc:
            logger.info("%s: unavailable (%s)", self.name, exc)
            return Outcome.unavailable(str(exc), value=[])
        except Exception as exc:
            reason = describe_error(exc)
            logger.warning("%s: %r failed (%s)", self.name, query, reason)
            return Outcome.failed(reason, value=[])
        return Outcome.ok(candidates)

    async def collect(
        self,
        queries: Sequence[str],
        profile: Profile,
        limit: int,
        sink: list[Candidate],
    ) -> Outcome[list[Candidate]]:
        """Default: the primary query only."""
        outcome = await self.fetch(queries[0], profile, limit)
        _dedupe_into(sink, outcome.value_or([]), set())
        return outcome


class YouTubeCommentAdapter(SourceAdapter):
    """Top-level YouTube comments, one search per synthesized query."""

    name = "youtube"

    def __init__(self, client: VideoCommentSearch, throttle: Optional[Throttle] = None):
        super().__init__(throttle)
        self.client = client

    async def _fetch(self, query: str, profile: Profile, limit: int) -> list[Candidate]:
        candidates = []
        for record in await self.client.search(query, limit):
            try:
                text = decode_comment_html(record.get("text", ""))
                if not text:
                    continue
                video_id = record["videoId"]
                candidates.append(
                    Candidate(
                        id=f"yt-{record['id']}",
                        source=SourceType.VIDEO_COMMENT,
                        source_subtype=SourceSubtype.YOUTUBE,
                        text=text,
                        author=record.get("author"),
                        url=f"https://youtube.com/watch?v={video_id}",
                        upvotes=int(record.get("likeCount") or 0),
                        timestamp=record.get("publishTime"),
                        display_link="youtube.com",
                    )
                )
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.debug("youtube: dropping malformed comment (%s)", exc)
        return candidates

    async def collect(
        self,
        queries: Sequence[str],
        profile: Profile,
        limit: int,
        sink: list[Candidate],
    ) -> Outcome[list[Candidate]]:
        per_query = max(1, math.ceil(limit / len(queries)))
        seen = {candidate.id for candidate in sink}
        errors: list[str] = []

        async for query in self.throttle.iterate(queries):
            outcome = await self.fetch(query, profile, per_query)
            if outcome.status == OutcomeStatus.UNAVAILABLE:
                return outcome
            if not outcome.succeeded:
                errors.append(f"{query!r}: {outcome.reason}")
                continue
            _dedupe_into(sink, outcome.value_or([]), seen)

        logger.info("youtube: %d unique comments from %d queries", len(sink), len(queries))
        if errors and len(errors) == len(queries):
            return Outcome.failed("; ".join(errors), value=list(sink))
        result = Outcome.ok(list(sink))
        if errors:
            return replace(result, reason=f"{len(errors)} of {len(queries)} queries failed")
        return result


class DiscussionSearchAdapter(SourceAdapter):
    """Q&A and forum snippets from the discussion-site allow-list."""

    name = "discussions"

    def __init__(self, client: DiscussionSearch, throttle: Optional[Throttle] = None):
        super().__init__(throttle)
        self.client = client

    async def _fetch(self, query: str, profile: Profile, limit: int) -> list[Candidate]:
        candidates = []
        for record in await self.client.search(query, profile.target_audience, limit):
            try:
                text = clean_snippet(record.get("snippet", ""))
                if len(text) < MIN_SNIPPET_CHARS:
                    continue
                url = record.get("url") or record.get("link") or ""
                display_link = record.get("displayLink") or ""
                candidates.append(
                    Candidate(
                        id=discussion_id(url, text),
                        source=SourceType.DISCUSSION,
                        source_subtype=detect_source_subtype(display_link),
                        text=text,
                        url=url or None,
                        timestamp=record.get("datePublished"),
                        display_link=display_link or None,
                    )
                )
            except (AttributeError, TypeError, ValueError) as exc:
                logger.debug("discussions: dropping malformed result (%s)", exc)
        return candidates


# ---------------------------------------------------------------------------
# Reddit sentiment (aggregate only)
# ---------------------------------------------------------------------------

class RedditSentimentAdapter:
    """Reads subreddit posts and reduces them to a SentimentAggregate.

    No post text leaves this class: the aggregate carries counts, a tier,
    theme words and a templated insight.
    """

    name = "reddit"

    def __init__(
        self,
        client: RedditPostSearch,
        throttle: Optional[Throttle] = None,
        *,
        classifier: Optional[EmotionalClassifier] = None,
        subreddit_limit: int = 3,
        posts_per_subreddit: int = 25,
    ):
        self.client = client
        self.throttle = throttle or Throttle(0, name=self.name)
        self.classifier = classifier or EmotionalClassifier()
        self.subreddit_limit = subreddit_limit
        self.posts_per_subreddit = posts_per_subreddit

    async def analyze(self, query: str, audience_hint: str) -> Outcome[SentimentAggregate]:
        subreddits = suggest_subreddits(audience_hint)[: self.subreddit_limit]
        texts: list[str] = []
        searched: list[str] = []
        errors: list[str] = []

        async for subreddit in self.throttle.iterate(subreddits):
            try:
                posts = await self.client.search(query, subreddit, self.posts_per_subreddit)
            except CapabilityUnavailable as exc:
                logger.info("reddit: unavailable (%s)", exc)
                return Outcome.unavailable(str(exc), value=SentimentAggregate(subreddits=subreddits))
            except Exception as exc:
                reason = describe_error(exc)
                logger.warning("reddit: r/%s failed (%s)", subreddit, reason)
                errors.append(f"r/{subreddit}: {reason}")
                continue
            searched.append(subreddit)
            for post in posts or []:
                if not isinstance(post, dict):
                    continue
                text = str(post.get("selftext") or post.get("title") or "")
                if len(text) >= MIN_POST_CHARS:
                    texts.append(text)

        if not texts:
            aggregate = SentimentAggregate(analyzed=False, subreddits=subreddits)
            if errors and not searched:
                return Outcome.failed("; ".join(errors), value=aggregate)
            return Outcome.empty(aggregate, reason="no relevant posts")

        aggregate = self.summarize(texts, subreddits)
        logger.info(
            "reddit: %d posts from %s, tier=%s themes=%s",
            aggregate.post_count, subreddits, aggregate.sentiment_tier.value, aggregate.theme_words,
        )
        return Outcome.ok(aggregate)

    def summarize(self, texts: Sequence[str], subreddits: Sequence[str]) -> SentimentAggregate:
        negative = positive = 0
        themes: Counter[str] = Counter()
        emotions: Counter = Counter()
        for text in texts:
            lowered = text.lower()
            negative += sum(1 for word in NEGATIVE_SENTIMENT_WORDS if word in lowered)
            positive += sum(1 for word in POSITIVE_SENTIMENT_WORDS if word in lowered)
            themes.update(theme_words_for(lowered))
            emotions[self.classifier.classify(lowered)] += 1

        tier = sentiment_tier(negative, positive)
        theme_words = [word for word, _ in themes.most_common(MAX_THEME_WORDS)]
        dominant = emotions.most_common(1)[0][0]
        return SentimentAggregate(
            analyzed=True,
            post_count=len(texts),
            sentiment_tier=tier,
            theme_words=theme_words,
            subreddits=list(subreddits),
            community_insight=self._insight(len(texts), subreddits, tier, theme_words, dominant.value),
        )

    @staticmethod
    def _insight(
        post_count: int,
        subreddits: Sequence[str],
        tier: SentimentTier,
        theme_words: Sequence[str],
        dominant: str,
    ) -> str:
        where = ", ".join(f"r/{name}" for name in subreddits)
        parts = [f"Across {post_count} posts in {where}, the overall tone is {tier.value}."]
        if theme_words:
            parts.append(f"Recurring themes: {', '.join(theme_words[:3])}.")
        parts.append(f"The dominant emotional need is {dominant}.")
        return " ".join(parts)
