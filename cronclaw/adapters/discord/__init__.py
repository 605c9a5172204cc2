"""Discord frontend."""

from cronclaw.adapters.discord.adapter import (
    DiscordBotAdapter,
    DiscordNotificationAdapter,
    split_message,
)

__all__ = [
    "DiscordBotAdapter",
    "DiscordNotificationAdapter",
    "split_message",
]
