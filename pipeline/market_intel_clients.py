"""Network capabilities for the market intel source adapters.

Thin async httpx clients for the YouTube Data API, Google Custom Search and
Reddit's public search endpoint. They fetch and reshape records and leave
scoring to the adapters. Missing credentials raise CapabilityUnavailable;
network and HTTP failures propagate as httpx errors.
"""

from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx

import config
from pipeline.market_intel_keywords import DISCUSSION_SITES

logger = logging.getLogger(__name__)


class CapabilityUnavailable(Exception):
    """A capability can't run in this environment (usually missing credentials)."""


class _HttpCapability:
    """Shared httpx session handling.

    Pass `client` to reuse a session (or a MockTransport in tests); otherwise
    each call opens and closes its own AsyncClient with the configured timeout.
    """

    def __init__(self, *, timeout: Optional[float] = None, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout if timeout is not None else config.MARKET_INTEL_REQUEST_TIMEOUT_SECONDS
        self._client = client

    def _headers(self) -> dict[str, str]:
        return {}

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout, headers=self._headers()) as client:
            yield client


# ---------------------------------------------------------------------------
# YouTube comments
# ---------------------------------------------------------------------------

class YouTubeCommentSearchClient(_HttpCapability):
    """Finds videos for a query and returns their top-level comments."""

    SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
    COMMENTS_URL = "https://www.googleapis.com/youtube/v3/commentThreads"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        videos_per_query: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self.api_key = config.YOUTUBE_API_KEY if api_key is None else api_key
        self.videos_per_query = videos_per_query or config.MARKET_INTEL_YOUTUBE_VIDEOS_PER_QUERY

    async def search(self, query: str, max_results: int) -> list[dict[str, Any]]:
        if not self.api_key:
            raise CapabilityUnavailable("YOUTUBE_API_KEY is not set")

        async with self._session() as http:
            response = await http.get(
                self.SEARCH_URL,
                params={
                    "part": "snippet",
                    "q": query,
                    "type": "video",
                    "maxResults": self.videos_per_query,
                    "relevanceLanguage": "en",
                    "key": self.api_key,
                },
            )
            response.raise_for_status()
            video_ids = [
                item["id"]["videoId"]
                for item in response.json().get("items", [])
                if isinstance(item.get("id"), dict) and item["id"].get("videoId")
            ]
            if not video_ids:
                return []

            per_video = max(1, math.ceil(max_results / len(video_ids)))
            comments: list[dict[str, Any]] = []
            for video_id in video_ids:
                if len(comments) >= max_results:
                    break
                response = await http.get(
                    self.COMMENTS_URL,
                    params={
                        "part": "snippet",
                        "videoId": video_id,
                        "maxResults": min(100, per_video),
                        "order": "relevance",
                        "key": self.api_key,
                    },
                )
                if response.status_code == 403:
                    # Comments disabled on this video.
                    logger.debug("YouTube: comments unavailable for %s", video_id)
                    continue
                response.raise_for_status()
                for item in response.json().get("items", []):
                    top = item.get("snippet", {}).get("topLevelComment", {})
                    snippet = top.get("snippet", {})
                    comments.append(
                        {
                            "id": top.get("id") or item.get("id"),
                            "text": snippet.get("textDisplay") or snippet.get("textOriginal") or "",
                            "author": snippet.get("authorDisplayName"),
                            "videoId": video_id,
                            "likeCount": snippet.get("likeCount", 0),
                            "publishTime": snippet.get("publishedAt"),
                        }
                    )

        logger.info("YouTube: %d comments for %r from %d videos", len(comments), query, len(video_ids))
        return comments[:max_results]


# ---------------------------------------------------------------------------
# Discussion search (Google Custom Search)
# ---------------------------------------------------------------------------

class GoogleDiscussionSearchClient(_HttpCapability):
    """Searches an allow-list of discussion sites through Custom Search."""

    SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
    MAX_PER_REQUEST = 10

    def __init__(
        self,
        api_key: Optional[str] = None,
        cse_id: Optional[str] = None,
        *,
        sites: tuple[str, ...] = DISCUSSION_SITES,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self.api_key = config.GOOGLE_SEARCH_API_KEY if api_key is None else api_key
        self.cse_id = config.GOOGLE_CSE_ID if cse_id is None else cse_id
        self.sites = sites

    def build_query(self, query: str, audience_hint: str) -> str:
        site_filter = " OR ".join(f"site:{site}" for site in self.sites)
        return " ".join(part for part in (query, audience_hint, f"({site_filter})") if part)

    async def search(self, query: str, audience_hint: str, max_results: int) -> list[dict[str, Any]]:
        if not self.api_key or not self.cse_id:
            raise CapabilityUnavailable("GOOGLE_SEARCH_API_KEY / GOOGLE_CSE_ID are not set")

        async with self._session() as http:
            response = await http.get(
                self.SEARCH_URL,
                params={
                    "key": self.api_key,
                    "cx": self.cse_id,
                    "q": self.build_query(query, audience_hint),
                    "num": max(1, min(max_results, self.MAX_PER_REQUEST)),
                    "dateRestrict": "y1",
                },
            )
            response.raise_for_status()
            payload = response.json()

        results = []
        for item in payload.get("items", []) or []:
            metatags = (item.get("pagemap") or {}).get("metatags") or [{}]
            results.append(
                {
                    "title": item.get("title", ""),
                    "snippet": item.get("snippet", ""),
                    "url": item.get("link", ""),
                    "displayLink": item.get("displayLink", ""),
                    "datePublished": metatags[0].get("article:published_time"),
                }
            )
        logger.info("Discussion search: %d results for %r", len(results), query)
        return results


# ---------------------------------------------------------------------------
# Reddit (posts are read for aggregation only)
# ---------------------------------------------------------------------------

class RedditPostSearchClient(_HttpCapability):
    """Searches one subreddit via Reddit's public JSON endpoint."""

    SEARCH_URL = "https://www.reddit.com/r/{subreddit}/search.json"

    def __init__(
        self,
        user_agent: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self.user_agent = user_agent or config.REDDIT_USER_AGENT

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent}

    async def search(self, keywords: str, subreddit: str, limit: int) -> list[dict[str, Any]]:
        async with self._session() as http:
            response = await http.get(
                self.SEARCH_URL.format(subreddit=subreddit),
                params={
                    "q": keywords,
                    "restrict_sr": 1,
                    "sort": "relevance",
                    "t": "year",
                    "limit": limit,
                },
                headers=self._headers(),
            )
            response.raise_for_status()
            payload = response.json()

        children = (payload.get("data") or {}).get("children") or []
        return [child.get("data", {}) for child in children if isinstance(child, dict)]
