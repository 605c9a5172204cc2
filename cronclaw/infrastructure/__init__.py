"""Infrastructure — file-backed state owned by the process."""

from cronclaw.infrastructure.memory import MemorySnapshot, PromptMemory
from cronclaw.infrastructure.workspace import FileInfo, Workspace

__all__ = [
    "FileInfo",
    "MemorySnapshot",
    "PromptMemory",
    "Workspace",
]
