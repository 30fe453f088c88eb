"""Outbound delivery to Hi Town groups."""

from hitown_reddit_bot.services.webhook_sender import send_to_group_webhook

__all__ = ["send_to_group_webhook"]
