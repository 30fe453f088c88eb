"""
Reddit API integration layer.

This module provides the complete Reddit API integration including:
- CredentialCache: OAuth2 client-credentials token cache
- MinIntervalRateLimiter: request spacing shared by all Reddit calls
- ContentFetcher and the FetchOutcome result types
- PostFormatter: listing-to-chat formatting
- Custom exception hierarchy for error handling

Example:
    >>> from hitown_reddit_bot.reddit import ContentFetcher, Success
    >>> outcome = await fetcher.fetch("python")
    >>> isinstance(outcome, Success)
    True
"""

from hitown_reddit_bot.reddit.credentials import CredentialCache
from hitown_reddit_bot.reddit.exceptions import (
    RedditAPIError,
    AuthenticationError,
    ValidationError,
)
from hitown_reddit_bot.reddit.fetcher import (
    AuthFailure,
    ContentFetcher,
    FetchOutcome,
    NotFound,
    RateLimited,
    Success,
    TransportError,
    UpstreamError,
)
from hitown_reddit_bot.reddit.formatter import (
    FormattedPost,
    PostFormatter,
    formatter,
    format_listing,
    format_posts,
    relative_age,
)
from hitown_reddit_bot.reddit.rate_limiter import MinIntervalRateLimiter

__all__ = [
    # Credentials and fetching
    "CredentialCache",
    "ContentFetcher",
    "MinIntervalRateLimiter",
    # Fetch outcomes
    "FetchOutcome",
    "Success",
    "AuthFailure",
    "NotFound",
    "RateLimited",
    "UpstreamError",
    "TransportError",
    # Exceptions
    "RedditAPIError",
    "AuthenticationError",
    "ValidationError",
    # Formatting
    "FormattedPost",
    "PostFormatter",
    "formatter",
    "format_listing",
    "format_posts",
    "relative_age",
]
