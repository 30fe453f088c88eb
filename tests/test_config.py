"""Tests for Settings.from_env()."""

import pytest
from pydantic import ValidationError

from hitown_reddit_bot.config import DEFAULT_USER_AGENT, Settings

ENV_VARS = [
    "REDDIT_CLIENT_ID",
    "REDDIT_CLIENT_SECRET",
    "REDDIT_USER_AGENT",
    "REDDIT_POST_LIMIT",
    "RATE_LIMIT_INTERVAL",
    "BOT_STATE_FILE",
    "DEFAULT_SUBREDDIT",
    "INSTALL_SECRET",
    "PORT",
    "LOG_LEVEL",
    "ENVIRONMENT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env()

    assert settings.reddit_client_id is None
    assert settings.reddit_user_agent == DEFAULT_USER_AGENT
    assert settings.post_limit == 10
    assert settings.time_filter == "week"
    assert settings.rate_limit_interval == 1.0
    assert settings.token_refresh_buffer == 300
    assert settings.state_file == "./bot_state.json"
    assert settings.default_subreddit == "programming"
    assert settings.port == 8080
    assert settings.environment == "production"


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("REDDIT_CLIENT_ID", "abc")
    monkeypatch.setenv("REDDIT_CLIENT_SECRET", "xyz")
    monkeypatch.setenv("REDDIT_POST_LIMIT", "25")
    monkeypatch.setenv("RATE_LIMIT_INTERVAL", "0.5")
    monkeypatch.setenv("BOT_STATE_FILE", "/data/state.json")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("ENVIRONMENT", "development")

    settings = Settings.from_env()

    assert settings.reddit_client_id == "abc"
    assert settings.reddit_client_secret == "xyz"
    assert settings.post_limit == 25
    assert settings.rate_limit_interval == 0.5
    assert settings.state_file == "/data/state.json"
    assert settings.port == 9000
    assert settings.environment == "development"


def test_empty_values_count_as_unset(monkeypatch):
    monkeypatch.setenv("REDDIT_CLIENT_ID", "")
    monkeypatch.setenv("DEFAULT_SUBREDDIT", "")

    settings = Settings.from_env()

    assert settings.reddit_client_id is None
    assert settings.default_subreddit == "programming"


def test_invalid_value_rejected(monkeypatch):
    monkeypatch.setenv("REDDIT_POST_LIMIT", "500")

    with pytest.raises(ValidationError):
        Settings.from_env()
