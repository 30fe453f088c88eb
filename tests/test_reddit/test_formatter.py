"""
Unit tests for the Reddit listing formatter.

Tests the PostFormatter class and formatting functions.
"""

import json

import pytest

from hitown_reddit_bot.reddit.formatter import (
    DIVIDER,
    FormattedPost,
    PostFormatter,
    format_listing,
    format_posts,
    formatter,
    relative_age,
    truncate_preview,
)

NOW = 1_700_000_000.0


def make_item(**kwargs):
    """Create a raw listing item."""
    defaults = {
        "title": "Test Post",
        "permalink": "/r/python/comments/test123/test_post/",
        "score": 100,
        "num_comments": 50,
        "author": "testuser",
        "created_utc": NOW - 7200,
        "is_self": True,
        "selftext": "This is a test post",
    }
    defaults.update(kwargs)
    return {key: value for key, value in defaults.items() if value is not ...}


class TestRelativeAge:
    """Test relative age buckets."""

    @pytest.mark.parametrize(
        "seconds_ago,expected",
        [
            (0, "just now"),
            (59, "just now"),
            (60, "1m ago"),
            (3599, "59m ago"),
            (3600, "1h ago"),
            (86399, "23h ago"),
            (86400, "1d ago"),
            (86400 * 9 + 5, "9d ago"),
        ],
    )
    def test_buckets(self, seconds_ago, expected):
        assert relative_age(NOW - seconds_ago, now=NOW) == expected

    def test_unknown_time(self):
        assert relative_age(None, now=NOW) == "unknown time"


class TestExtractPost:
    """Test extraction of a single item."""

    def test_singleton_instance(self):
        assert isinstance(formatter, PostFormatter)

    def test_basic_post(self):
        post = PostFormatter.extract_post(make_item(), now=NOW)

        assert post.title == "Test Post"
        assert post.score == 100
        assert post.num_comments == 50
        assert post.author == "testuser"
        assert post.age == "2h ago"
        assert post.preview_text == "This is a test post"
        assert post.image_url is None
        assert post.url == "https://reddit.com/r/python/comments/test123/test_post/"

    @pytest.mark.parametrize("missing", ["title", "permalink", "score"])
    def test_missing_required_field(self, missing):
        assert PostFormatter.extract_post(make_item(**{missing: ...}), now=NOW) is None

    def test_null_score_dropped(self):
        assert PostFormatter.extract_post(make_item(score=None), now=NOW) is None

    def test_non_numeric_score_dropped(self):
        assert PostFormatter.extract_post(make_item(score="lots"), now=NOW) is None
        assert PostFormatter.extract_post(make_item(score=True), now=NOW) is None

    def test_integer_string_score_accepted(self):
        post = PostFormatter.extract_post(make_item(score="42"), now=NOW)
        assert post.score == 42

    def test_missing_optional_fields(self):
        item = make_item(num_comments=..., author=..., created_utc=..., selftext=...)
        post = PostFormatter.extract_post(item, now=NOW)

        assert post.num_comments == 0
        assert post.author == "deleted"
        assert post.age == "unknown time"
        assert post.preview_text is None

    def test_long_selftext_truncated(self):
        post = PostFormatter.extract_post(make_item(selftext="a" * 500), now=NOW)

        assert post.preview_text == "a" * 200 + "..."

    def test_selftext_at_limit_not_marked(self):
        assert truncate_preview("b" * 200) == "b" * 200

    def test_blank_selftext_has_no_preview(self):
        post = PostFormatter.extract_post(make_item(selftext="   "), now=NOW)
        assert post.preview_text is None

    def test_link_post_image(self):
        item = make_item(
            is_self=False,
            selftext="",
            url_overridden_by_dest="https://i.redd.it/picture.png",
        )
        post = PostFormatter.extract_post(item, now=NOW)

        assert post.image_url == "https://i.redd.it/picture.png"
        assert post.preview_text is None

    def test_self_post_ignores_external_url(self):
        item = make_item(url_overridden_by_dest="https://example.com")
        post = PostFormatter.extract_post(item, now=NOW)

        assert post.image_url is None


class TestRender:
    """Test rendering of posts."""

    def test_render_contains_all_parts(self):
        text = FormattedPost(
            title="Hello",
            permalink="/r/x/comments/1/hello/",
            score=7,
            num_comments=3,
            author="alice",
            age="5m ago",
            preview_text="preview",
        ).render()

        assert text.splitlines()[0] == "📌 Hello"
        assert "↑ 7 points" in text
        assert "💬 3 comments" in text
        assert "👤 alice" in text
        assert "⏰ 5m ago" in text
        assert "📝 Content:\npreview" in text
        assert text.endswith("🔗 https://reddit.com/r/x/comments/1/hello/")

    def test_render_item_rejects_non_dict(self):
        assert PostFormatter.render_item("not a post", now=NOW) is None
        assert PostFormatter.render_item(None, now=NOW) is None

    def test_render_item_degrades_on_error(self, monkeypatch):
        """Test an unexpected failure falls back to title and link."""

        def explode(item, now=None):
            raise RuntimeError("boom")

        monkeypatch.setattr(PostFormatter, "extract_post", staticmethod(explode))

        text = PostFormatter.render_item(make_item(), now=NOW)

        assert text == (
            "📌 Test Post\n🔗 https://reddit.com/r/python/comments/test123/test_post/"
        )


class TestFormatPosts:
    """Test formatting of whole batches."""

    def test_empty_batch(self):
        assert format_posts([], "python") == "No posts found in r/python."

    def test_header_and_order(self):
        items = [make_item(title=f"Post {i}") for i in range(3)]
        text = format_posts(items, "python", now=NOW)

        assert text.startswith("🔥 TOP POSTS FROM r/python 🔥\n📅 This Week's Best\n")
        assert text.index("Post 0") < text.index("Post 1") < text.index("Post 2")
        assert text.count(DIVIDER) == 3

    def test_invalid_item_dropped(self):
        """Test an item without a score is left out and the rest kept."""
        items = [
            make_item(title="Good one"),
            make_item(title="No score", score=...),
            make_item(title="Good two"),
        ]
        text = format_posts(items, "python", now=NOW)

        assert "Good one" in text
        assert "Good two" in text
        assert "No score" not in text

    def test_all_items_invalid_returns_diagnostic(self):
        items = [make_item(score=...), make_item(title=...)]
        text = format_posts(items, "python", now=NOW, raw_text='{"raw": true}')

        assert text.startswith("Error: Unable to format posts from r/python.")
        assert '{"raw": true}' in text

    def test_diagnostic_without_raw_text(self):
        text = format_posts([{"nothing": 1}], "python", now=NOW)

        assert "Unable to format posts" in text
        assert "nothing" in text

    def test_never_blank(self):
        for items in ([], [None], [{}], [make_item()]):
            assert format_posts(items, "python", now=NOW).strip()


class TestFormatListing:
    """Test parsing of listing bodies."""

    def test_listing(self):
        body = json.dumps(
            {"data": {"children": [{"kind": "t3", "data": make_item(title="From JSON")}]}}
        )
        text = format_listing(body, "python", now=NOW)

        assert "From JSON" in text

    def test_invalid_json(self):
        text = format_listing("{not json", "python")

        assert text.startswith("Error processing Reddit response. Raw data:\n{not json")

    def test_missing_data(self):
        assert format_listing('{"kind": "Listing"}', "python") == (
            "Error: Invalid response format from Reddit API"
        )

    def test_missing_children(self):
        assert format_listing('{"data": {}}', "python") == "No posts found in r/python."

    def test_raw_excerpt_bounded(self):
        body = json.dumps({"data": {"children": [{"data": {"x": "y" * 5000}}]}})
        text = format_listing(body, "python")

        assert len(text) < 1200
        assert text.endswith("...")
