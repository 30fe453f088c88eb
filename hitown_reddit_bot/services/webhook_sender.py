"""Send bot messages to a Hi Town group webhook."""

import asyncio
from typing import Sequence

import aiohttp
import structlog

log = structlog.get_logger()

# Retry delays in seconds, used only for 5xx answers and network errors
WEBHOOK_RETRY_DELAYS = (1, 3, 5)


async def send_to_group_webhook(
    session: aiohttp.ClientSession,
    webhook_url: str,
    text: str,
    *,
    retry_delays: Sequence[float] = WEBHOOK_RETRY_DELAYS,
) -> bool:
    """
    Post ``text`` to a group webhook as a single bot action.

    The body is ``[{"message": text}]``. Retries on 5xx and network
    errors; 4xx answers are final. Delivery is at-most-once per attempt,
    so a retried request may be shown twice.

    Args:
        session: Shared aiohttp session.
        webhook_url: The install's webhook URL.
        text: Message to post.
        retry_delays: Pause before each attempt; its length is the number of attempts.

    Returns:
        True if a request succeeded (2xx), False otherwise.
    """
    payload = [{"message": text}]
    last_error: Exception | None = None
    for attempt, delay in enumerate(retry_delays or (0,)):
        if attempt > 0:
            log.info("webhook_retry", attempt=attempt + 1, delay=delay)
            await asyncio.sleep(delay)
        try:
            async with session.post(webhook_url, json=payload) as resp:
                if 200 <= resp.status < 300:
                    log.info("webhook_sent", status=resp.status, attempt=attempt + 1)
                    return True
                body = await resp.text(errors="replace")
                last_error = RuntimeError(f"HTTP {resp.status}: {body[:200]}")
                log.warning(
                    "webhook_failed",
                    status=resp.status,
                    body=body[:500],
                    attempt=attempt + 1,
                )
                if resp.status < 500:
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            last_error = e
            log.warning(
                "webhook_request_error",
                attempt=attempt + 1,
                error=str(e) or type(e).__name__,
            )
    log.error("webhook_all_retries_failed", error=str(last_error))
    return False
