"""Domain data models — pure Python dataclasses."""

from dataclasses import dataclass, field
from typing import List, Union


@dataclass
class ScheduleRequest:
    """Parsed ```cron block: a recurring message the model asked for."""

    schedule: str  # 5-field cron expression
    task: str
    message: str


@dataclass
class SaveRequest:
    """Parsed ```save:<filename> block."""

    filename: str
    content: str


@dataclass
class MemoryFact:
    """Parsed ```memory block."""

    text: str


ActionBlock = Union[ScheduleRequest, SaveRequest, MemoryFact]


@dataclass
class Job:
    """Durable scheduled job as stored by the job store."""

    id: int
    schedule: str
    task: str
    message: str
    enabled: bool = True
    created_at: str = ""  # ISO datetime


@dataclass
class ChatMessage:
    role: str  # "system" | "user" | "assistant"
    content: str


@dataclass
class WorkspaceFile:
    """File log entry written whenever the workspace saves a file."""

    filename: str
    description: str = ""
    created_at: str = ""


@dataclass
class AgentReply:
    """What a frontend shows for one user turn."""

    text: str
    notices: List[str] = field(default_factory=list)

    def render(self) -> str:
        parts = [n for n in self.notices if n]
        if self.text:
            parts.append(self.text)
        return "\n\n".join(parts)
