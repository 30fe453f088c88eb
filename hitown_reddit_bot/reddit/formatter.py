"""
Formatting of Reddit listing data into chat messages.

This module turns the raw ``data.children[].data`` items of a Reddit
listing into one bounded, human-readable text block. Parsing is
tolerant: an item missing a required field is dropped, an item that
fails while rendering degrades to a title and link, and the result is
never blank.
"""

import json
import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from hitown_reddit_bot.utils.logger import get_logger

logger = get_logger(__name__)

REDDIT_BASE_URL = "https://reddit.com"
DIVIDER = "=" * 30
PREVIEW_LENGTH = 200
RAW_EXCERPT_LENGTH = 1000


class FormattedPost(BaseModel):
    """
    One Reddit post reduced to the fields shown in chat.

    Attributes:
        title: Post title
        permalink: Path of the post on reddit.com (``/r/.../comments/...``)
        score: Net upvotes
        num_comments: Comment count
        author: Author name, ``deleted`` when missing
        age: Relative age label (``3h ago``, ``unknown time``)
        preview_text: Truncated self-text for self posts
        image_url: External link for link posts
    """

    title: str
    permalink: str
    score: int
    num_comments: int = 0
    author: str = "deleted"
    age: str = "unknown time"
    preview_text: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def url(self) -> str:
        """Absolute link to the post."""
        return f"{REDDIT_BASE_URL}{self.permalink}"

    def render(self) -> str:
        """Render the post as a multi-line chat block."""
        lines = [
            f"📌 {self.title}",
            (
                f"📊 Stats: ↑ {self.score} points | "
                f"💬 {self.num_comments} comments | "
                f"👤 {self.author} | "
                f"⏰ {self.age}"
            ),
        ]
        if self.preview_text:
            lines.append("📝 Content:")
            lines.append(self.preview_text)
        if self.image_url:
            lines.append(f"🖼️ Image: {self.image_url}")
        lines.append(f"🔗 {self.url}")
        return "\n".join(lines)


def relative_age(created_utc: Optional[float], now: Optional[float] = None) -> str:
    """
    Describe how long ago a post was created.

    Args:
        created_utc: Creation time as epoch seconds, or None
        now: Current epoch seconds (defaults to time.time())

    Returns:
        ``just now``, ``Nm ago``, ``Nh ago``, ``Nd ago`` or ``unknown time``

    Example:
        >>> relative_age(1000.0, now=1000.0 + 7200)
        '2h ago'
    """
    if created_utc is None:
        return "unknown time"
    if now is None:
        now = time.time()

    diff = int(now) - int(created_utc)
    if diff < 60:
        return "just now"
    if diff < 3600:
        return f"{diff // 60}m ago"
    if diff < 86400:
        return f"{diff // 3600}h ago"
    return f"{diff // 86400}d ago"


def truncate_preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Cut ``text`` to ``limit`` characters, marking the cut with ``...``."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _as_int(value: Any) -> Optional[int]:
    # Reddit sends ints; integer strings are tolerated, floats and bools are not
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


class PostFormatter:
    """
    Formatter for Reddit listing items.

    All methods are static and can be called without instantiation.

    Example:
        >>> text = PostFormatter.format_posts(items, "python")
        >>> text.splitlines()[0]
        '🔥 TOP POSTS FROM r/python 🔥'
    """

    @staticmethod
    def extract_post(
        item: Dict[str, Any], now: Optional[float] = None
    ) -> Optional[FormattedPost]:
        """
        Extract display fields from one listing item.

        Args:
            item: The ``data`` object of a listing child
            now: Current epoch seconds, used for the relative age

        Returns:
            FormattedPost, or None if title, permalink or a numeric score
            is missing
        """
        title = _as_text(item.get("title"))
        permalink = _as_text(item.get("permalink"))
        score = _as_int(item.get("score"))

        if title is None or permalink is None or score is None:
            logger.debug(
                "post_missing_required_fields",
                has_title=title is not None,
                has_permalink=permalink is not None,
                has_score=score is not None,
            )
            return None

        is_self = _as_bool(item.get("is_self"))
        selftext = _as_text(item.get("selftext"))
        external_url = _as_text(item.get("url_overridden_by_dest"))

        preview_text = None
        image_url = None
        if is_self and selftext and selftext.strip():
            preview_text = truncate_preview(selftext)
        elif not is_self and external_url:
            image_url = external_url

        return FormattedPost(
            title=title,
            permalink=permalink,
            score=score,
            num_comments=_as_int(item.get("num_comments")) or 0,
            author=_as_text(item.get("author")) or "deleted",
            age=relative_age(_as_float(item.get("created_utc")), now),
            preview_text=preview_text,
            image_url=image_url,
        )

    @staticmethod
    def render_item(item: Any, now: Optional[float] = None) -> Optional[str]:
        """
        Render one listing item, degrading instead of failing.

        Returns:
            Rendered post, a bare title and link if full rendering failed,
            or None if the item is unusable
        """
        if not isinstance(item, dict):
            return None
        try:
            post = PostFormatter.extract_post(item, now)
            return post.render() if post else None
        except Exception as e:
            logger.warning("post_render_failed", error=str(e), error_type=type(e).__name__)
            title = _as_text(item.get("title"))
            permalink = _as_text(item.get("permalink"))
            if title is not None and permalink is not None:
                return f"📌 {title}\n🔗 {REDDIT_BASE_URL}{permalink}"
            return None

    @staticmethod
    def format_posts(
        raw_items: List[Any],
        subreddit: str,
        now: Optional[float] = None,
        raw_text: Optional[str] = None,
    ) -> str:
        """
        Format listing items into a single chat message.

        Items keep Reddit's ranking order. Items without a title,
        permalink or numeric score are left out.

        Args:
            raw_items: ``data`` objects of the listing children
            subreddit: Subreddit name, shown in the header
            now: Current epoch seconds (defaults to time.time())
            raw_text: Original response body, quoted when nothing
                could be formatted

        Returns:
            Formatted text; never empty
        """
        if not raw_items:
            return f"No posts found in r/{subreddit}."

        if now is None:
            now = time.time()

        rendered = [
            text
            for text in (PostFormatter.render_item(item, now) for item in raw_items)
            if text
        ]

        if not rendered:
            logger.warning(
                "no_posts_formatted",
                subreddit=subreddit,
                items=len(raw_items),
            )
            excerpt = raw_text if raw_text is not None else _dump(raw_items)
            return (
                f"Error: Unable to format posts from r/{subreddit}. Raw response:\n"
                f"{excerpt[:RAW_EXCERPT_LENGTH]}..."
            )

        logger.debug(
            "posts_formatted",
            subreddit=subreddit,
            formatted=len(rendered),
            dropped=len(raw_items) - len(rendered),
        )

        header = f"🔥 TOP POSTS FROM r/{subreddit} 🔥\n📅 This Week's Best\n{DIVIDER}\n\n"
        return header + f"\n\n{DIVIDER}\n\n".join(rendered)

    @staticmethod
    def format_listing(
        body_text: str, subreddit: str, now: Optional[float] = None
    ) -> str:
        """
        Parse a Reddit listing response body and format its posts.

        Args:
            body_text: Raw JSON body of ``/r/{subreddit}/top.json``
            subreddit: Subreddit name
            now: Current epoch seconds

        Returns:
            Formatted text, or a diagnostic message if the body is not a
            listing
        """
        try:
            payload = json.loads(body_text)
        except ValueError as e:
            logger.warning("listing_parse_failed", subreddit=subreddit, error=str(e))
            return (
                "Error processing Reddit response. Raw data:\n"
                f"{body_text[:RAW_EXCERPT_LENGTH]}..."
            )

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            logger.warning("listing_data_missing", subreddit=subreddit)
            return "Error: Invalid response format from Reddit API"

        children = data.get("children")
        if not isinstance(children, list):
            children = []

        items = [
            child.get("data") if isinstance(child, dict) else None
            for child in children
        ]
        return PostFormatter.format_posts(items, subreddit, now=now, raw_text=body_text)


def _dump(items: List[Any]) -> str:
    try:
        return json.dumps(items)
    except (TypeError, ValueError):
        return repr(items)


# Create singleton instance for convenient import
formatter = PostFormatter()


def format_posts(
    raw_items: List[Any],
    subreddit: str,
    now: Optional[float] = None,
    raw_text: Optional[str] = None,
) -> str:
    """
    Format listing items.

    Convenience function that calls PostFormatter.format_posts().
    """
    return PostFormatter.format_posts(raw_items, subreddit, now=now, raw_text=raw_text)


def format_listing(body_text: str, subreddit: str, now: Optional[float] = None) -> str:
    """
    Format a raw listing body.

    Convenience function that calls PostFormatter.format_listing().
    """
    return PostFormatter.format_listing(body_text, subreddit, now=now)
