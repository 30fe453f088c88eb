"""
Runtime configuration loaded from environment variables.

All settings have defaults suitable for local development except the
Reddit client credentials, which must be provided for fetching to work.
"""
import os
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = "hitown-reddit-bot/1.0 (Hi Town weekly top posts)"


class Settings(BaseModel):
    """Bot settings. Build with ``Settings.from_env()``."""

    reddit_client_id: Optional[str] = None
    reddit_client_secret: Optional[str] = None
    reddit_user_agent: str = DEFAULT_USER_AGENT
    reddit_redirect_uri: str = "http://localhost:8080"
    reddit_token_url: str = "https://www.reddit.com/api/v1/access_token"
    reddit_api_url: str = "https://oauth.reddit.com"
    post_limit: int = Field(10, ge=1, le=100)
    time_filter: str = "week"

    rate_limit_interval: float = Field(1.0, ge=0)
    token_refresh_buffer: float = Field(300.0, ge=0)
    http_timeout: float = Field(30.0, gt=0)

    state_file: str = "./bot_state.json"
    default_subreddit: str = "programming"
    install_secret: Optional[str] = None

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    environment: str = "production"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Read settings from the process environment.

        Unset variables fall back to the field defaults.
        """
        env = {
            "reddit_client_id": os.getenv("REDDIT_CLIENT_ID"),
            "reddit_client_secret": os.getenv("REDDIT_CLIENT_SECRET"),
            "reddit_user_agent": os.getenv("REDDIT_USER_AGENT"),
            "reddit_redirect_uri": os.getenv("REDDIT_REDIRECT_URI"),
            "reddit_token_url": os.getenv("REDDIT_TOKEN_URL"),
            "reddit_api_url": os.getenv("REDDIT_API_URL"),
            "post_limit": os.getenv("REDDIT_POST_LIMIT"),
            "time_filter": os.getenv("REDDIT_TIME_FILTER"),
            "rate_limit_interval": os.getenv("RATE_LIMIT_INTERVAL"),
            "token_refresh_buffer": os.getenv("TOKEN_REFRESH_BUFFER"),
            "http_timeout": os.getenv("HTTP_TIMEOUT"),
            "state_file": os.getenv("BOT_STATE_FILE"),
            "default_subreddit": os.getenv("DEFAULT_SUBREDDIT"),
            "install_secret": os.getenv("INSTALL_SECRET"),
            "host": os.getenv("HOST"),
            "port": os.getenv("PORT"),
            "log_level": os.getenv("LOG_LEVEL"),
            "environment": os.getenv("ENVIRONMENT"),
        }
        # Empty strings count as unset
        return cls(**{key: value for key, value in env.items() if value})
