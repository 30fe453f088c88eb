"""
OAuth2 application token cache for the Reddit API.

Reddit's read-only OAuth API accepts an application-only bearer token
obtained with the client-credentials grant. This module keeps one such
token for the whole process and refreshes it shortly before it expires,
or immediately after Reddit rejects it.
"""

import asyncio
import json
import time
from typing import Any, Callable, Optional

import aiohttp

from hitown_reddit_bot.reddit.exceptions import AuthenticationError
from hitown_reddit_bot.reddit.rate_limiter import MinIntervalRateLimiter
from hitown_reddit_bot.utils.logger import get_logger, redact

logger = get_logger(__name__)

# Refresh tokens this many seconds before Reddit expires them
TOKEN_REFRESH_BUFFER = 300


def parse_error_detail(payload: Any) -> Optional[str]:
    """
    Extract a human-readable detail from a Reddit error body.

    Reddit answers errors as ``{"error": ..., "message": ...}``; either
    field may be missing and ``error`` is sometimes the numeric status.

    Returns:
        ``message`` if present, otherwise ``error``, otherwise None
    """
    if not isinstance(payload, dict):
        return None
    message = payload.get("message")
    if message:
        return str(message)
    error = payload.get("error")
    if error is not None and error != "":
        return str(error)
    return None


class CredentialCache:
    """
    Process-wide cache for the Reddit OAuth2 bearer token.

    States: unset -> valid -> (near expiry | invalidated) -> refreshing
    -> valid | unset. Every check-then-refresh runs under one asyncio.Lock,
    so concurrent callers that find the token stale share a single refresh.

    Attributes:
        access_token: Current bearer token, or None
        expires_at: Absolute expiry as epoch seconds
        token_requests: Number of token endpoint calls made

    Example:
        >>> cache = CredentialCache(session, rate_limiter, client_id="id",
        ...                         client_secret="secret")
        >>> token = await cache.get_token()
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        rate_limiter: MinIntervalRateLimiter,
        *,
        client_id: Optional[str],
        client_secret: Optional[str],
        user_agent: str,
        redirect_uri: str,
        token_url: str = "https://www.reddit.com/api/v1/access_token",
        refresh_buffer: float = TOKEN_REFRESH_BUFFER,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.session = session
        self.rate_limiter = rate_limiter
        self.client_id = client_id
        self.client_secret = client_secret
        self.user_agent = user_agent
        self.redirect_uri = redirect_uri
        self.token_url = token_url
        self.refresh_buffer = refresh_buffer
        self.clock = clock

        self.access_token: Optional[str] = None
        self.expires_at: float = 0.0
        self.token_requests = 0
        self._lock = asyncio.Lock()

    def is_valid(self) -> bool:
        """Check whether the cached token can be used without refreshing."""
        return (
            self.access_token is not None
            and self.clock() < self.expires_at - self.refresh_buffer
        )

    @property
    def state(self) -> str:
        """Short state label for health reporting."""
        if self.access_token is None:
            return "unset"
        return "valid" if self.is_valid() else "expiring"

    async def get_token(self) -> str:
        """
        Return a usable bearer token, refreshing it when needed.

        Returns:
            str: OAuth2 access token

        Raises:
            AuthenticationError: If credentials are missing or Reddit
                refuses to issue a token
            aiohttp.ClientError: On network failures
            asyncio.TimeoutError: If the token endpoint does not answer in time
        """
        async with self._lock:
            if self.is_valid():
                return self.access_token

            self.access_token = None
            self.expires_at = 0.0
            return await self._request_token()

    async def invalidate(self) -> None:
        """
        Forget the cached token.

        Called after Reddit rejects a bearer token with 401/403, so the
        next get_token() goes back to the token endpoint.
        """
        async with self._lock:
            if self.access_token is not None:
                logger.info("reddit_token_invalidated")
            self.access_token = None
            self.expires_at = 0.0

    async def _request_token(self) -> str:
        """Run the client-credentials grant. Caller must hold the lock."""
        if not self.client_id:
            logger.error("reddit_client_id_missing")
            raise AuthenticationError("REDDIT_CLIENT_ID is required")

        if not self.client_secret:
            logger.error("reddit_client_secret_missing")
            raise AuthenticationError("REDDIT_CLIENT_SECRET is required")

        await self.rate_limiter.await_turn()

        logger.info(
            "reddit_token_request",
            client_id=redact(self.client_id),
        )
        self.token_requests += 1

        async with self.session.post(
            self.token_url,
            headers={
                "Authorization": aiohttp.BasicAuth(
                    self.client_id, self.client_secret
                ).encode(),
                "User-Agent": self.user_agent,
            },
            data={
                "grant_type": "client_credentials",
                "redirect_uri": self.redirect_uri,
            },
        ) as resp:
            body = await resp.text(errors="replace")
            status = resp.status

        payload = parse_json_body(body)

        if not 200 <= status < 300:
            detail = parse_error_detail(payload)
            if detail:
                message = f"Reddit OAuth2 error: {detail}"
            else:
                message = f"Failed to get Reddit access token: {status} - {body[:200]}"
            logger.error("reddit_token_rejected", status=status, detail=detail)
            raise AuthenticationError(message, status_code=status)

        if not isinstance(payload, dict) or not payload.get("access_token"):
            logger.error("reddit_token_malformed", body=body[:200])
            raise AuthenticationError(
                "Token response missing access_token", status_code=status
            )

        try:
            expires_in = float(payload.get("expires_in", 3600))
        except (TypeError, ValueError):
            expires_in = 3600.0

        self.access_token = str(payload["access_token"])
        self.expires_at = self.clock() + expires_in

        logger.info(
            "reddit_token_refreshed",
            expires_in=expires_in,
            scope=payload.get("scope"),
        )
        return self.access_token


def parse_json_body(body: str) -> Any:
    """Decode a JSON response body, returning None when it is not JSON."""
    try:
        return json.loads(body) if body.strip() else None
    except ValueError:
        return None
