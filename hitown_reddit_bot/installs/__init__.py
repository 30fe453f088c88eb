"""
Group installation registry.

Example:
    >>> from hitown_reddit_bot.installs import InstallRegistry
    >>> registry = InstallRegistry("./bot_state.json")
"""

from hitown_reddit_bot.installs.registry import InstallRegistry, PersistError

__all__ = [
    "InstallRegistry",
    "PersistError",
]
