"""
Rate-limited Reddit content fetcher.

Fetches the week's top posts of a subreddit through the Reddit OAuth API
and classifies the result into a FetchOutcome. A rejected bearer token
(401/403) is invalidated and the whole request retried exactly once.
Network failures never escape as exceptions.
"""

import asyncio
from typing import Callable, Literal, Optional, Union
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel

from hitown_reddit_bot.reddit.credentials import (
    CredentialCache,
    parse_error_detail,
    parse_json_body,
)
from hitown_reddit_bot.reddit.exceptions import AuthenticationError
from hitown_reddit_bot.reddit.formatter import format_listing
from hitown_reddit_bot.reddit.rate_limiter import MinIntervalRateLimiter
from hitown_reddit_bot.utils.logger import get_logger

logger = get_logger(__name__)


class Success(BaseModel):
    """Posts were fetched; ``text`` is the formatted message."""

    kind: Literal["success"] = "success"
    text: str

    def message(self, subreddit: str) -> str:
        return self.text


class AuthFailure(BaseModel):
    """
    Reddit did not accept our credentials.

    ``status`` is None when no token could be obtained at all, otherwise
    the 401/403 status of the retried content request.
    """

    kind: Literal["auth_failure"] = "auth_failure"
    status: Optional[int] = None
    detail: Optional[str] = None

    def message(self, subreddit: str) -> str:
        if self.status == 403:
            return (
                f"Error: Unable to access r/{subreddit}. "
                "The subreddit might be private or restricted."
            )
        return "Error: Unable to authenticate with Reddit API. Please try again later."


class NotFound(BaseModel):
    """The subreddit does not exist."""

    kind: Literal["not_found"] = "not_found"

    def message(self, subreddit: str) -> str:
        return f"Error: Subreddit r/{subreddit} not found."


class RateLimited(BaseModel):
    """Reddit answered 429."""

    kind: Literal["rate_limited"] = "rate_limited"

    def message(self, subreddit: str) -> str:
        return "Error: Rate limit exceeded. Please try again later."


class UpstreamError(BaseModel):
    """Any other non-2xx answer; ``detail`` is Reddit's error text if it sent one."""

    kind: Literal["upstream_error"] = "upstream_error"
    status: int
    detail: Optional[str] = None

    def message(self, subreddit: str) -> str:
        if self.detail:
            return f"Error: {self.detail}"
        return (
            f"Error: Reddit API returned status {self.status}. "
            "Please try again later."
        )


class TransportError(BaseModel):
    """The request failed before an HTTP answer arrived."""

    kind: Literal["transport_error"] = "transport_error"
    message_text: str

    def message(self, subreddit: str) -> str:
        return (
            f"Error fetching posts from Reddit: {self.message_text}. "
            "Please try again later."
        )


FetchOutcome = Union[Success, AuthFailure, NotFound, RateLimited, UpstreamError, TransportError]


class ContentFetcher:
    """
    Fetch and format the top posts of a subreddit.

    Attributes:
        credentials: Shared OAuth2 token cache
        rate_limiter: Shared request spacing limiter
        content_requests: Number of listing requests sent

    Example:
        >>> fetcher = ContentFetcher(session, credentials, rate_limiter)
        >>> outcome = await fetcher.fetch("python")
        >>> print(outcome.message("python"))
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        credentials: CredentialCache,
        rate_limiter: MinIntervalRateLimiter,
        *,
        user_agent: str,
        api_url: str = "https://oauth.reddit.com",
        limit: int = 10,
        time_filter: str = "week",
        formatter: Callable[[str, str], str] = format_listing,
    ) -> None:
        self.session = session
        self.credentials = credentials
        self.rate_limiter = rate_limiter
        self.user_agent = user_agent
        self.api_url = api_url.rstrip("/")
        self.limit = limit
        self.time_filter = time_filter
        self.formatter = formatter
        self.content_requests = 0

    def listing_url(self, subreddit: str) -> str:
        """Build the top-posts listing URL for ``subreddit``."""
        return f"{self.api_url}/r/{quote(subreddit, safe='')}/top.json"

    async def fetch(self, subreddit: str) -> FetchOutcome:
        """
        Fetch the top posts of ``subreddit``.

        On 401/403 the token is invalidated and the request repeated
        once; the second answer is returned whatever it is.

        Args:
            subreddit: Subreddit name without the ``r/`` prefix

        Returns:
            FetchOutcome describing the result; never raises for
            upstream or network failures
        """
        logger.info("reddit_fetch_started", subreddit=subreddit)

        outcome = await self._attempt(subreddit)

        if isinstance(outcome, AuthFailure) and outcome.status is not None:
            logger.warning(
                "reddit_auth_rejected_retrying",
                subreddit=subreddit,
                status=outcome.status,
            )
            await self.credentials.invalidate()
            outcome = await self._attempt(subreddit)

        logger.info("reddit_fetch_completed", subreddit=subreddit, outcome=outcome.kind)
        return outcome

    async def _attempt(self, subreddit: str) -> FetchOutcome:
        try:
            token = await self.credentials.get_token()
        except AuthenticationError as e:
            logger.error("reddit_token_unavailable", subreddit=subreddit, error=str(e))
            return AuthFailure(detail=e.message)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return self._transport_error(subreddit, e)

        try:
            await self.rate_limiter.await_turn()
            self.content_requests += 1

            async with self.session.get(
                self.listing_url(subreddit),
                params={"limit": str(self.limit), "t": self.time_filter},
                headers={
                    "Authorization": f"Bearer {token}",
                    "User-Agent": self.user_agent,
                    "Accept": "application/json",
                },
            ) as resp:
                status = resp.status
                body = await resp.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return self._transport_error(subreddit, e)

        logger.debug("reddit_response", subreddit=subreddit, status=status, length=len(body))
        return self._classify(status, body, subreddit)

    def _classify(self, status: int, body: str, subreddit: str) -> FetchOutcome:
        if status == 200:
            return Success(text=self.formatter(body, subreddit))
        if status in (401, 403):
            return AuthFailure(status=status, detail=parse_error_detail(parse_json_body(body)))
        if status == 404:
            return NotFound()
        if status == 429:
            return RateLimited()

        detail = parse_error_detail(parse_json_body(body))
        logger.warning("reddit_upstream_error", subreddit=subreddit, status=status, detail=detail)
        return UpstreamError(status=status, detail=detail)

    @staticmethod
    def _transport_error(subreddit: str, error: BaseException) -> TransportError:
        message = str(error) or type(error).__name__
        logger.error(
            "reddit_transport_error",
            subreddit=subreddit,
            error=message,
            error_type=type(error).__name__,
        )
        return TransportError(message_text=message)
