"""Inbound port — platform-agnostic message representation."""

from dataclasses import dataclass


@dataclass
class IncomingMessage:
    """Discord/HTTP-agnostic message representation."""

    content: str
    channel_id: int
    author_name: str
    author_id: int
    is_bot: bool = False
