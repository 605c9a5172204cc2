"""Conversation history and workspace file log on top of JsonStorage."""

from datetime import datetime, timezone
from typing import List, Optional

from cronclaw.adapters.storage.json_store import JsonStorage
from cronclaw.domain.models import ChatMessage, WorkspaceFile

CONVERSATIONS_KEY = "conversations"
FILES_KEY = "workspace_files"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConversationLog:
    """Persisted chat turns. Implements ConversationPort."""

    def __init__(self, storage: JsonStorage, max_entries: int = 1000):
        self._storage = storage
        self._max_entries = max_entries

    def add_message(self, role: str, content: str) -> None:
        def _append(rows: List[dict]) -> List[dict]:
            rows.append({"role": role, "content": content, "timestamp": _now_iso()})
            return rows[-self._max_entries:]

        self._storage.update(CONVERSATIONS_KEY, _append)

    def get_history(self, limit: int) -> List[ChatMessage]:
        """Last ``limit`` turns, oldest first."""
        if limit <= 0:
            return []
        rows = self._storage.load(CONVERSATIONS_KEY)[-limit:]
        return [
            ChatMessage(role=str(r.get("role", "user")), content=str(r.get("content", "")))
            for r in rows
        ]

    def clear(self) -> None:
        self._storage.save(CONVERSATIONS_KEY, [])


class FileLog:
    """Record of files written to the workspace. Implements FileLogPort."""

    def __init__(self, storage: JsonStorage):
        self._storage = storage

    def log_file(self, filename: str, description: Optional[str] = None) -> None:
        def _append(rows: List[dict]) -> List[dict]:
            rows.append({
                "filename": filename,
                "description": description or "",
                "created_at": _now_iso(),
            })
            return rows

        self._storage.update(FILES_KEY, _append)

    def list_files(self) -> List[WorkspaceFile]:
        """Logged files, newest first."""
        rows = self._storage.load(FILES_KEY)
        files = [
            WorkspaceFile(
                filename=str(r.get("filename", "")),
                description=str(r.get("description", "")),
                created_at=str(r.get("created_at", "")),
            )
            for r in rows
        ]
        return list(reversed(files))
