"""Outbound ports — interfaces for external system adapters."""

from typing import List, Optional, Protocol, runtime_checkable

from cronclaw.domain.models import ChatMessage, Job, WorkspaceFile


@runtime_checkable
class LLMPort(Protocol):
    """Interface for chat-completion backends."""

    async def chat(self, messages: List[ChatMessage]) -> str: ...


@runtime_checkable
class JobStorePort(Protocol):
    """Durable job records. Rows are disabled, never deleted."""

    def add(self, schedule: str, task: str, message: str) -> int: ...
    def list_enabled(self) -> List[Job]: ...
    def disable(self, job_id: int) -> bool: ...
    def get(self, job_id: int) -> Optional[Job]: ...


@runtime_checkable
class ConversationPort(Protocol):
    """Interface for the persisted chat history."""

    def add_message(self, role: str, content: str) -> None: ...
    def get_history(self, limit: int) -> List[ChatMessage]: ...
    def clear(self) -> None: ...


@runtime_checkable
class FileLogPort(Protocol):
    """Interface for recording files written to the workspace."""

    def log_file(self, filename: str, description: Optional[str] = None) -> None: ...
    def list_files(self) -> List[WorkspaceFile]: ...


@runtime_checkable
class NotificationPort(Protocol):
    """Interface for sending messages to channels."""

    async def send(self, channel_id: int, text: str) -> None: ...
    async def send_typing(self, channel_id: int) -> None: ...
