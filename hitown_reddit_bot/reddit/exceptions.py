"""
Exceptions for Reddit credentials and install input.

Content requests never raise these: the fetcher reports upstream
answers as FetchOutcome values. What is left are failures to obtain an
application token and rejected install parameters.
"""

from typing import Optional


class RedditAPIError(Exception):
    """
    Base class for errors raised by this package.

    Attributes:
        message: Human-readable description, also the ``str()`` of the error
        status_code: HTTP status associated with the failure, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthenticationError(RedditAPIError):
    """
    No OAuth2 application token could be obtained.

    Raised by CredentialCache when:
    - REDDIT_CLIENT_ID or REDDIT_CLIENT_SECRET is not configured
    - the token endpoint answers with a non-2xx status
    - a 2xx answer carries no ``access_token``

    ``status_code`` is the token endpoint's status when there was one.

    Example:
        >>> raise AuthenticationError("Reddit OAuth2 error: invalid_grant", status_code=400)
    """

    def __init__(
        self,
        message: str = "Reddit authentication failed",
        status_code: int = 401,
    ) -> None:
        super().__init__(message, status_code=status_code)


class ValidationError(RedditAPIError):
    """
    An install request is missing a required value.

    The offending protocol field name (``groupId``, ``webhook``, ...) is
    kept in ``field`` and prefixed to the message.

    Example:
        >>> str(ValidationError("must not be empty", field="webhook"))
        'webhook: must not be empty'
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        if field:
            message = f"{field}: {message}"
        super().__init__(message, status_code=422)
