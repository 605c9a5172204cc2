"""Discord adapter — bridges discord.Client to the Agent.

DiscordBotAdapter converts discord messages into IncomingMessage, asks the
Agent for a reply and posts it back. Scheduled replies go to the configured
cron channel, or to the channel of the last accepted message.
"""

import sys
from typing import List, Optional

import discord

from cronclaw.domain.action_parser import escape_mentions
from cronclaw.domain.agent import Agent
from cronclaw.ports.inbound import IncomingMessage

DISCORD_MESSAGE_LIMIT = 2000


def _log(msg: str):
    print(msg, file=sys.stderr)


def split_message(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    """Split a message into chunks that fit Discord's character limit."""
    if len(text) <= limit:
        return [text]
    chunks = []
    while text:
        chunks.append(text[:limit])
        text = text[limit:]
    return chunks


class DiscordNotificationAdapter:
    """NotificationPort implementation using discord.Client."""

    def __init__(self, client: discord.Client):
        self._client = client

    async def send(self, channel_id: int, text: str) -> None:
        channel = self._client.get_channel(channel_id)
        if not channel:
            _log(f"[discord] channel {channel_id} not found")
            return
        for chunk in split_message(text):
            await channel.send(chunk)

    async def send_typing(self, channel_id: int) -> None:
        channel = self._client.get_channel(channel_id)
        if channel:
            await channel.typing()


class DiscordBotAdapter(discord.Client):
    """Thin Discord adapter that delegates to Agent."""

    def __init__(
        self,
        agent: Agent,
        token: str,
        allowed_users: Optional[List[int]] = None,
        cron_channel_id: int = 0,
        **discord_kwargs,
    ):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents, **discord_kwargs)
        self._agent = agent
        self._token = token
        self._allowed_users = set(allowed_users or [])
        self._cron_channel_id = cron_channel_id
        self._last_channel_id = 0
        self.notification = DiscordNotificationAdapter(self)

    def _to_incoming(self, message: discord.Message) -> IncomingMessage:
        return IncomingMessage(
            content=message.content,
            channel_id=message.channel.id,
            author_name=str(message.author),
            author_id=message.author.id,
            is_bot=message.author.bot,
        )

    def is_allowed(self, msg: IncomingMessage) -> bool:
        if msg.is_bot:
            return False
        return not self._allowed_users or msg.author_id in self._allowed_users

    @property
    def delivery_channel_id(self) -> int:
        return self._cron_channel_id or self._last_channel_id

    async def deliver_scheduled(self, text: str) -> None:
        """Send a scheduled reply. Registered on the scheduler by the launcher."""
        channel_id = self.delivery_channel_id
        if not channel_id:
            _log("[discord] no channel known yet — scheduled reply not delivered")
            return
        await self.notification.send(channel_id, escape_mentions(text))

    async def on_ready(self):
        _log(f"[discord] logged in as {self.user}")

    async def on_message(self, message: discord.Message):
        """Convert Discord message and delegate to Agent."""
        if not self.user or message.author == self.user:
            return

        incoming = self._to_incoming(message)
        if not self.is_allowed(incoming):
            return
        await self.respond(incoming)

    async def respond(self, msg: IncomingMessage) -> None:
        self._last_channel_id = msg.channel_id
        await self.notification.send_typing(msg.channel_id)
        try:
            reply = await self._agent.handle_message(msg.content)
        except Exception as e:
            _log(f"[discord] error handling message: {e}")
            await self.notification.send(msg.channel_id, f"Error: {e}")
            return

        for notice in reply.notices:
            await self.notification.send(msg.channel_id, escape_mentions(notice))
        if reply.text:
            await self.notification.send(msg.channel_id, escape_mentions(reply.text))

    async def run_bot(self) -> None:
        """Connect and block until the client is closed."""
        await self.start(self._token)
