"""
Hi Town Reddit bot: command routing and install lifecycle.

Handles ``!reddit [subreddit]`` messages from installed groups by
fetching the subreddit's top posts of the week and answering with one
message action. Every failure on the message path becomes a
MessageBotResponse; nothing is raised to the HTTP layer.
"""
import uuid
from typing import Optional, Protocol

import aiohttp

from hitown_reddit_bot.config import Settings
from hitown_reddit_bot.installs import InstallRegistry
from hitown_reddit_bot.models.bot import (
    BotAction,
    BotConfigField,
    BotConfigValue,
    BotDetails,
    GroupInstall,
    InstallBotBody,
    MessageBotBody,
    MessageBotResponse,
)
from hitown_reddit_bot.reddit import (
    ContentFetcher,
    CredentialCache,
    FetchOutcome,
    MinIntervalRateLimiter,
    Success,
)
from hitown_reddit_bot.services import send_to_group_webhook
from hitown_reddit_bot.utils.logger import get_logger

logger = get_logger(__name__)

TRIGGER = "!reddit"
SUBREDDIT_CONFIG_KEY = "subreddit"
DEFAULT_SUBREDDIT = "programming"

NOT_INSTALLED_NOTE = "The bot is not installed in this group. Please install it first."
PAUSED_NOTE = "The bot is paused in this group."
NO_MESSAGE_NOTE = "No message provided"
NOT_A_COMMAND_NOTE = f"Not a Reddit command. Use {TRIGGER} to get posts."


class Fetcher(Protocol):
    async def fetch(self, subreddit: str) -> FetchOutcome: ...


def parse_command(text: Optional[str]) -> Optional[list[str]]:
    """
    Split a message into trigger arguments.

    The first whitespace-separated word must be the trigger, compared
    case-insensitively.

    Returns:
        Arguments after the trigger (possibly empty), or None if the
        message is not a command

    Example:
        >>> parse_command("  !reddit python extra")
        ['python', 'extra']
        >>> parse_command("hello") is None
        True
    """
    if text is None:
        return None
    words = text.split()
    if not words or words[0].lower() != TRIGGER:
        return None
    return words[1:]


def normalize_subreddit(name: str) -> str:
    """Strip a leading ``r/`` or ``/r/`` from a subreddit argument."""
    name = name.strip()
    lowered = name.lower()
    for prefix in ("/r/", "r/"):
        if lowered.startswith(prefix):
            return name[len(prefix):]
    return name


class RedditBot:
    """
    The bot as seen by the Hi Town platform.

    Attributes:
        registry: Group installations
        fetcher: Reddit content fetcher
        details: Bot details served on ``GET /``

    Example:
        >>> bot = RedditBot(registry, fetcher)
        >>> token = await bot.install(InstallBotBody(groupId="g", groupName="G",
        ...                                          webhook="https://hook"))
        >>> reply = await bot.message(token, MessageBotBody(message="!reddit python"))
    """

    def __init__(
        self,
        registry: InstallRegistry,
        fetcher: Fetcher,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        default_subreddit: str = DEFAULT_SUBREDDIT,
        install_secret: Optional[str] = None,
    ) -> None:
        self.registry = registry
        self.fetcher = fetcher
        self.session = session
        self.default_subreddit = default_subreddit
        self.install_secret = install_secret
        self.details = BotDetails(
            name="Hi-Town-Reddit-Bot",
            description=(
                "A bot that fetches top posts of the week from a Reddit subreddit. "
                f"Use commands like {TRIGGER} <subreddit> to get the latest posts."
            ),
            keywords=[TRIGGER],
            config=[
                BotConfigField(
                    key=SUBREDDIT_CONFIG_KEY,
                    label="Default Subreddit",
                    placeholder=default_subreddit,
                    type="string",
                    required=False,
                )
            ],
        )

    def validate_install(self, secret: Optional[str]) -> bool:
        """Check the install secret; everything is accepted when none is configured."""
        if not self.install_secret:
            return True
        return secret == self.install_secret

    async def install(self, body: InstallBotBody) -> str:
        """
        Install the bot into a group.

        Returns:
            The new install token

        Raises:
            ValidationError: If group id, group name or webhook is empty
        """
        token = str(uuid.uuid4())
        await self.registry.install(
            token,
            body.group_id,
            body.group_name,
            body.webhook,
            body.config or [],
        )
        return token

    async def reinstall(self, token: str, config: Optional[list[BotConfigValue]]) -> None:
        await self.registry.reinstall(token, config)

    async def uninstall(self, token: str) -> None:
        await self.registry.uninstall(token)

    async def pause(self, token: str) -> None:
        await self.registry.pause(token)

    async def resume(self, token: str) -> None:
        await self.registry.resume(token)

    def resolve_subreddit(self, install: GroupInstall, args: list[str]) -> str:
        """
        Pick the subreddit for a command.

        Order: explicit argument, the install's ``subreddit`` config,
        then the default.
        """
        if args:
            explicit = normalize_subreddit(args[0])
            if explicit:
                return explicit
        configured = install.config_value(SUBREDDIT_CONFIG_KEY)
        if configured and configured.strip():
            return normalize_subreddit(configured)
        return self.default_subreddit

    async def message(self, token: str, body: MessageBotBody) -> MessageBotResponse:
        """
        Handle a message forwarded from a Hi Town group.

        Args:
            token: Install token from the Authorization header
            body: Message body

        Returns:
            MessageBotResponse; never raises
        """
        try:
            install = self.registry.get(token)
            if install is None:
                logger.info("message_for_unknown_install")
                return MessageBotResponse(success=False, note=NOT_INSTALLED_NOTE)

            if install.is_paused:
                logger.info("message_while_paused", group_id=install.group_id)
                return MessageBotResponse(success=False, note=PAUSED_NOTE)

            if body.message is None or not body.message.strip():
                return MessageBotResponse(success=False, note=NO_MESSAGE_NOTE)

            args = parse_command(body.message)
            if args is None:
                logger.debug("message_not_a_command", group_id=install.group_id)
                return MessageBotResponse(success=False, note=NOT_A_COMMAND_NOTE)

            subreddit = self.resolve_subreddit(install, args)
            logger.info("reddit_command", group_id=install.group_id, subreddit=subreddit)

            outcome = await self.fetcher.fetch(subreddit)
            return self._reply(outcome, subreddit)

        except Exception as e:
            logger.error(
                "message_handler_error",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return MessageBotResponse(
                success=False,
                note=f"Error processing message: {e}",
            )

    @staticmethod
    def _reply(outcome: FetchOutcome, subreddit: str) -> MessageBotResponse:
        text = outcome.message(subreddit)
        actions = [BotAction(message=text)]
        if isinstance(outcome, Success):
            return MessageBotResponse(success=True, actions=actions)
        return MessageBotResponse(success=False, note=text, actions=actions)

    async def push(self, token: str, subreddit: Optional[str] = None) -> bool:
        """
        Fetch posts and post them to the group's webhook unprompted.

        Not reachable over HTTP: the platform protocol has no route for
        unsolicited delivery. Call it from a scheduler or script that
        holds the running bot.

        Args:
            token: Install token
            subreddit: Subreddit to fetch; defaults as for a bare command

        Returns:
            True if the webhook accepted the message
        """
        install = self.registry.get(token)
        if install is None or install.is_paused:
            logger.info("push_skipped", installed=install is not None)
            return False
        if self.session is None:
            raise RuntimeError("RedditBot.push needs an aiohttp session")

        target = self.resolve_subreddit(install, [subreddit] if subreddit else [])
        outcome = await self.fetcher.fetch(target)
        return await send_to_group_webhook(
            self.session, install.webhook, outcome.message(target)
        )


def build_bot(settings: Settings, session: aiohttp.ClientSession) -> RedditBot:
    """
    Wire the bot's components from settings.

    One rate limiter is shared by the credential cache and the fetcher,
    since token and content requests count against the same quota.
    """
    rate_limiter = MinIntervalRateLimiter(min_interval=settings.rate_limit_interval)
    credentials = CredentialCache(
        session,
        rate_limiter,
        client_id=settings.reddit_client_id,
        client_secret=settings.reddit_client_secret,
        user_agent=settings.reddit_user_agent,
        redirect_uri=settings.reddit_redirect_uri,
        token_url=settings.reddit_token_url,
        refresh_buffer=settings.token_refresh_buffer,
    )
    fetcher = ContentFetcher(
        session,
        credentials,
        rate_limiter,
        user_agent=settings.reddit_user_agent,
        api_url=settings.reddit_api_url,
        limit=settings.post_limit,
        time_filter=settings.time_filter,
    )
    return RedditBot(
        InstallRegistry(settings.state_file),
        fetcher,
        session=session,
        default_subreddit=settings.default_subreddit,
        install_secret=settings.install_secret,
    )
