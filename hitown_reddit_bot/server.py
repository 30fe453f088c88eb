"""
aiohttp application exposing the Hi Town bot protocol.

Routes:
    GET  /            bot details
    GET  /health      health check
    POST /install     install into a group, returns the install token
    POST /reinstall   replace the group's config        (Bearer token)
    POST /uninstall   remove the install                (Bearer token)
    POST /pause       stop answering commands           (Bearer token)
    POST /resume      start answering commands again    (Bearer token)
    POST /message     handle a group message            (Bearer token)
"""
import time
from typing import Any, Awaitable, Callable, Optional

import aiohttp
from aiohttp import web
from pydantic import ValidationError as PydanticValidationError

from hitown_reddit_bot.bot import RedditBot, build_bot
from hitown_reddit_bot.config import Settings
from hitown_reddit_bot.models.bot import (
    ErrorResponse,
    HealthCheckResponse,
    InstallBotBody,
    InstallBotResponse,
    MessageBotBody,
    ReinstallBotBody,
)
from hitown_reddit_bot.reddit.exceptions import ValidationError
from hitown_reddit_bot.utils.logger import (
    bind_request_context,
    clear_request_context,
    get_logger,
    log_request,
)

logger = get_logger(__name__)

SERVER_VERSION = "1.0.0"

BOT_KEY = web.AppKey("bot", RedditBot)

DEFAULT_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def error_json(message: str, error_type: str, status: int) -> web.Response:
    return web.json_response(
        ErrorResponse(error=message, type=error_type).to_json_dict(),
        status=status,
    )


@web.middleware
async def access_log_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Bind request context and log status and duration of every request."""
    request_id = bind_request_context(
        request.method, request.path, request.headers.get("X-Request-ID")
    )
    start_time = time.perf_counter()
    status = 500
    try:
        response = await handler(request)
        status = response.status
        response.headers["X-Request-ID"] = request_id
        return response
    except web.HTTPException as e:
        status = e.status
        e.headers["X-Request-ID"] = request_id
        raise
    finally:
        log_request(status, (time.perf_counter() - start_time) * 1000)
        clear_request_context()


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """
    Turn handler failures into JSON error responses.

    Error mapping:
        ValidationError (ours or pydantic's): 400
        Invalid JSON body: 400
        Anything else: 400, as the platform expects
    """
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except (ValidationError, PydanticValidationError) as e:
        logger.warning("request_validation_error", path=request.path, error=str(e))
        return error_json(str(e), type(e).__name__, 400)
    except Exception as e:
        logger.error(
            "request_handler_error",
            path=request.path,
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return error_json(str(e), type(e).__name__, 400)


@web.middleware
async def default_headers_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Add DEFAULT_HEADERS to every response, raised HTTP errors included."""
    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(DEFAULT_HEADERS)
        raise
    response.headers.update(DEFAULT_HEADERS)
    return response


def bearer_token(request: web.Request) -> Optional[str]:
    """Return the install token from ``Authorization: Bearer``, if any."""
    auth = request.headers.get("Authorization")
    if not auth:
        return None
    token = auth[7:] if auth.startswith("Bearer ") else auth
    token = token.strip()
    return token or None


def require_token(request: web.Request) -> str:
    token = bearer_token(request)
    if token is None:
        raise web.HTTPUnauthorized(
            text='{"error": "Missing authorization token"}',
            content_type="application/json",
        )
    return token


async def read_json(request: web.Request) -> Any:
    """Read the request body as JSON; an empty body reads as ``{}``."""
    if not request.can_read_body:
        return {}
    try:
        return await request.json()
    except ValueError as e:
        raise ValidationError(f"Invalid JSON body: {e}") from e


async def handle_details(request: web.Request) -> web.Response:
    bot = request.app[BOT_KEY]
    return web.json_response(bot.details.to_json_dict())


async def handle_health(request: web.Request) -> web.Response:
    """Report server state and the state of the Reddit credentials."""
    bot = request.app[BOT_KEY]
    components = {
        "server": "healthy",
        "installs": str(len(bot.registry)),
    }
    credentials = getattr(bot.fetcher, "credentials", None)
    if credentials is not None:
        components["reddit_token"] = credentials.state

    response = HealthCheckResponse(
        status="healthy",
        version=SERVER_VERSION,
        timestamp=int(time.time() * 1000),
        components=components,
    )
    return web.json_response(response.to_json_dict())


async def handle_install(request: web.Request) -> web.Response:
    bot = request.app[BOT_KEY]
    body = InstallBotBody.model_validate(await read_json(request))

    if not bot.validate_install(body.secret):
        logger.warning("install_rejected_bad_secret", group_id=body.group_id)
        return error_json("Invalid install secret", "Unauthorized", 401)

    token = await bot.install(body)
    return web.json_response(InstallBotResponse(token=token).to_json_dict())


async def handle_reinstall(request: web.Request) -> web.Response:
    bot = request.app[BOT_KEY]
    token = require_token(request)
    body = ReinstallBotBody.model_validate(await read_json(request))
    if body.config is not None:
        await bot.reinstall(token, body.config)
    return web.Response(status=200)


def lifecycle_handler(
    action: Callable[[RedditBot, str], Awaitable[None]],
) -> Handler:
    """Build a Bearer-authenticated handler that calls ``action`` and answers 200."""

    async def handler(request: web.Request) -> web.Response:
        token = require_token(request)
        await action(request.app[BOT_KEY], token)
        return web.Response(status=200)

    return handler


async def handle_message(request: web.Request) -> web.Response:
    bot = request.app[BOT_KEY]
    token = require_token(request)
    body = MessageBotBody.model_validate(await read_json(request))
    response = await bot.message(token, body)
    return web.json_response(response.to_json_dict())


def create_app(settings: Settings, bot: Optional[RedditBot] = None) -> web.Application:
    """
    Create the aiohttp application.

    Args:
        settings: Runtime settings
        bot: Pre-built bot; when omitted, one is built at startup with its
            own aiohttp session and its registry loaded from disk

    Returns:
        Configured web.Application
    """
    app = web.Application(
        middlewares=[
            access_log_middleware,
            default_headers_middleware,
            error_middleware,
        ]
    )

    if bot is not None:
        app[BOT_KEY] = bot
    else:
        async def bot_context(app: web.Application):
            session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=settings.http_timeout)
            )
            try:
                app[BOT_KEY] = build_bot(settings, session)
                await app[BOT_KEY].registry.load()
                logger.info(
                    "bot_ready",
                    installs=len(app[BOT_KEY].registry),
                    state_file=settings.state_file,
                )
                yield
            finally:
                await session.close()

        app.cleanup_ctx.append(bot_context)

    app.router.add_get("/", handle_details)
    app.router.add_get("/health", handle_health)
    app.router.add_post("/install", handle_install)
    app.router.add_post("/reinstall", handle_reinstall)
    app.router.add_post("/uninstall", lifecycle_handler(RedditBot.uninstall))
    app.router.add_post("/pause", lifecycle_handler(RedditBot.pause))
    app.router.add_post("/resume", lifecycle_handler(RedditBot.resume))
    app.router.add_post("/message", handle_message)

    logger.info("web_app_initialized", version=SERVER_VERSION)
    return app
