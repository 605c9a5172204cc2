"""Ports — protocols the domain talks to."""

from cronclaw.ports.inbound import IncomingMessage
from cronclaw.ports.outbound import (
    ConversationPort,
    FileLogPort,
    JobStorePort,
    LLMPort,
    NotificationPort,
)

__all__ = [
    "IncomingMessage",
    "ConversationPort",
    "FileLogPort",
    "JobStorePort",
    "LLMPort",
    "NotificationPort",
]
