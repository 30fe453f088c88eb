"""
Pytest configuration and fixtures.

Provides a fake Reddit upstream (token endpoint and top-posts listing)
served by aiohttp's TestServer, plus builders for listing payloads.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from hitown_reddit_bot.reddit import ContentFetcher, CredentialCache, MinIntervalRateLimiter

USER_AGENT = "test-agent/1.0"


def make_post(**overrides: Any) -> dict:
    """Create one listing item (``children[].data``) with sensible defaults."""
    post = {
        "title": "Test Post",
        "permalink": "/r/python/comments/abc123/test_post/",
        "score": 100,
        "num_comments": 12,
        "author": "testuser",
        "created_utc": 1_700_000_000.0,
        "is_self": True,
        "selftext": "Body of the post",
        "url_overridden_by_dest": None,
        "subreddit_name_prefixed": "r/python",
    }
    post.update(overrides)
    return post


def make_listing(*posts: dict) -> dict:
    """Wrap listing items the way Reddit's listing endpoint does."""
    return {
        "kind": "Listing",
        "data": {"children": [{"kind": "t3", "data": post} for post in posts]},
    }


class FakeReddit:
    """
    Scriptable stand-in for Reddit's OAuth and listing endpoints.

    Queue answers with ``token_responses`` / ``listing_responses`` as
    ``(status, body)`` tuples; when a queue is empty the default answer
    is used. Every request is recorded.
    """

    def __init__(self) -> None:
        self.token_responses: list[tuple[int, Any]] = []
        self.listing_responses: list[tuple[int, Any]] = []
        self.default_token: tuple[int, Any] = (
            200,
            {
                "access_token": "token-1",
                "token_type": "bearer",
                "expires_in": 86400,
                "scope": "*",
            },
        )
        self.default_listing: tuple[int, Any] = (200, make_listing(make_post()))
        self.token_requests: list[dict] = []
        self.listing_requests: list[dict] = []
        self.base_url = ""

    @staticmethod
    def _respond(status: int, body: Any) -> web.Response:
        if isinstance(body, (dict, list)):
            return web.json_response(body, status=status)
        if isinstance(body, bytes):
            return web.Response(
                body=body,
                status=status,
                content_type="application/json",
                charset="utf-8",
            )
        return web.Response(text=body or "", status=status)

    async def _token(self, request: web.Request) -> web.Response:
        form = await request.post()
        self.token_requests.append(
            {
                "authorization": request.headers.get("Authorization"),
                "user_agent": request.headers.get("User-Agent"),
                "form": dict(form),
            }
        )
        status, body = (
            self.token_responses.pop(0) if self.token_responses else self.default_token
        )
        return self._respond(status, body)

    async def _listing(self, request: web.Request) -> web.Response:
        self.listing_requests.append(
            {
                "subreddit": request.match_info["subreddit"],
                "query": dict(request.query),
                "authorization": request.headers.get("Authorization"),
                "user_agent": request.headers.get("User-Agent"),
            }
        )
        status, body = (
            self.listing_responses.pop(0)
            if self.listing_responses
            else self.default_listing
        )
        return self._respond(status, body)

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/v1/access_token", self._token)
        app.router.add_get("/r/{subreddit}/top.json", self._listing)
        return app

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/api/v1/access_token"

    @asynccontextmanager
    async def running(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Serve the fake API and yield a client session; ``base_url`` is set while running."""
        server = TestServer(self.app())
        await server.start_server()
        self.base_url = f"http://{server.host}:{server.port}"
        try:
            async with aiohttp.ClientSession() as session:
                yield session
        finally:
            await server.close()

    def credentials(
        self,
        session: aiohttp.ClientSession,
        rate_limiter: Optional[MinIntervalRateLimiter] = None,
        **kwargs: Any,
    ) -> CredentialCache:
        options = {
            "client_id": "client-id-123",
            "client_secret": "client-secret",
            "user_agent": USER_AGENT,
            "redirect_uri": "http://localhost:8080",
            "token_url": self.token_url,
        }
        options.update(kwargs)
        return CredentialCache(
            session,
            rate_limiter or MinIntervalRateLimiter(min_interval=0),
            **options,
        )

    def fetcher(
        self,
        session: aiohttp.ClientSession,
        credentials: Optional[CredentialCache] = None,
        **kwargs: Any,
    ) -> ContentFetcher:
        credentials = credentials or self.credentials(session)
        return ContentFetcher(
            session,
            credentials,
            credentials.rate_limiter,
            user_agent=USER_AGENT,
            api_url=self.base_url,
            **kwargs,
        )


@pytest.fixture
def fake_reddit() -> FakeReddit:
    """A fresh fake Reddit API; start it with ``async with fake_reddit.running()``."""
    return FakeReddit()


@pytest.fixture
def post_factory():
    return make_post


@pytest.fixture
def listing_factory():
    return make_listing
