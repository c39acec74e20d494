from __future__ import annotations

import asyncio
import unittest

import httpx

from pipeline.market_intel_clients import (
    CapabilityUnavailable,
    GoogleDiscussionSearchClient,
    RedditPostSearchClient,
    YouTubeCommentSearchClient,
)


def run_with_transport(handler, make_client, call):
    """Build a capability on a MockTransport-backed AsyncClient and await `call` on it."""

    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await call(make_client(http))

    return asyncio.run(_run())


class YouTubeCommentSearchClientTests(unittest.TestCase):
    def test_search_then_comment_threads(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path.endswith("/search"):
                return httpx.Response(200, json={"items": [
                    {"id": {"videoId": "v1"}},
                    {"id": {"kind": "youtube#channel"}},
                    {"id": {"videoId": "v2"}},
                ]})
            video_id = request.url.params["videoId"]
            if video_id == "v2":
                return httpx.Response(403, json={"error": {"message": "commentsDisabled"}})
            return httpx.Response(200, json={"items": [
                {"snippet": {"topLevelComment": {"id": "c1", "snippet": {
                    "textDisplay": "So tired of chasing invoices", "authorDisplayName": "@ana",
                    "likeCount": 7, "publishedAt": "2025-02-01T00:00:00Z",
                }}}},
            ]})

        comments = run_with_transport(
            handler,
            lambda http: YouTubeCommentSearchClient(api_key="k", client=http),
            lambda client: client.search("freelance burnout", 10),
        )

        self.assertEqual(comments, [{
            "id": "c1",
            "text": "So tired of chasing invoices",
            "author": "@ana",
            "videoId": "v1",
            "likeCount": 7,
            "publishTime": "2025-02-01T00:00:00Z",
        }])
        self.assertEqual(seen[0].url.params["q"], "freelance burnout")
        self.assertEqual(seen[0].url.params["type"], "video")
        self.assertEqual(seen[1].url.params["maxResults"], "5")

    def test_missing_key_is_unavailable(self):
        with self.assertRaises(CapabilityUnavailable):
            asyncio.run(YouTubeCommentSearchClient(api_key="").search("q", 10))

    def test_server_error_raises(self):
        handler = lambda request: httpx.Response(500)
        with self.assertRaises(httpx.HTTPStatusError):
            run_with_transport(
                handler,
                lambda http: YouTubeCommentSearchClient(api_key="k", client=http),
                lambda client: client.search("q", 10),
            )


class GoogleDiscussionSearchClientTests(unittest.TestCase):
    def test_query_restricted_to_discussion_sites(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"items": [{
                "title": "How do freelancers handle slow months?",
                "snippet": "I've been freelancing for 3 years and the income swings...",
                "link": "https://www.quora.com/How-do-freelancers",
                "displayLink": "www.quora.com",
                "pagemap": {"metatags": [{"article:published_time": "2025-03-01"}]},
            }]})

        results = run_with_transport(
            handler,
            lambda http: GoogleDiscussionSearchClient(api_key="k", cse_id="cx", client=http),
            lambda client: client.search("freelance income", "freelance designers", 20),
        )

        params = seen[0].url.params
        self.assertEqual(params["num"], "10")
        self.assertEqual(params["dateRestrict"], "y1")
        self.assertIn("site:quora.com OR site:reddit.com", params["q"])
        self.assertTrue(params["q"].startswith("freelance income freelance designers ("))
        self.assertEqual(results[0]["url"], "https://www.quora.com/How-do-freelancers")
        self.assertEqual(results[0]["displayLink"], "www.quora.com")
        self.assertEqual(results[0]["datePublished"], "2025-03-01")

    def test_no_items(self):
        results = run_with_transport(
            lambda request: httpx.Response(200, json={"searchInformation": {"totalResults": "0"}}),
            lambda http: GoogleDiscussionSearchClient(api_key="k", cse_id="cx", client=http),
            lambda client: client.search("q", "", 5),
        )
        self.assertEqual(results, [])

    def test_missing_cse_id_is_unavailable(self):
        with self.assertRaises(CapabilityUnavailable):
            asyncio.run(GoogleDiscussionSearchClient(api_key="k", cse_id="").search("q", "", 5))


class RedditPostSearchClientTests(unittest.TestCase):
    def test_subreddit_search(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"children": [
                {"kind": "t3", "data": {"title": "Slow month again", "selftext": "Any tips?"}},
            ]}})

        posts = run_with_transport(
            handler,
            lambda http: RedditPostSearchClient(user_agent="tests/1.0", client=http),
            lambda client: client.search("freelance income", "freelance", 25),
        )

        request = seen[0]
        self.assertEqual(request.url.path, "/r/freelance/search.json")
        self.assertEqual(request.url.params["restrict_sr"], "1")
        self.assertEqual(request.url.params["t"], "year")
        self.assertEqual(request.headers["User-Agent"], "tests/1.0")
        self.assertEqual(posts, [{"title": "Slow month again", "selftext": "Any tips?"}])


if __name__ == "__main__":
    unittest.main()
