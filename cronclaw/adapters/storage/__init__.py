"""Storage adapters — JSON files under one data directory."""

from cronclaw.adapters.storage.history_store import ConversationLog, FileLog
from cronclaw.adapters.storage.job_store import JsonJobStore
from cronclaw.adapters.storage.json_store import JsonStorage, StoreError

__all__ = [
    "ConversationLog",
    "FileLog",
    "JsonJobStore",
    "JsonStorage",
    "StoreError",
]
