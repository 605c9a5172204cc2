"""Domain layer — action parsing, scheduling and orchestration."""

from cronclaw.domain.action_parser import (
    clean_response,
    extract_code_blocks,
    parse_memory_blocks,
    parse_save_blocks,
    parse_schedule_blocks,
)
from cronclaw.domain.callbacks import CallbackRegistry
from cronclaw.domain.models import (
    ActionBlock,
    AgentReply,
    ChatMessage,
    Job,
    MemoryFact,
    SaveRequest,
    ScheduleRequest,
)
from cronclaw.domain.scheduler import (
    CronScheduler,
    InvalidScheduleError,
    ScheduledTimer,
    next_fire_time,
    validate_cron,
)

__all__ = [
    "ActionBlock",
    "AgentReply",
    "CallbackRegistry",
    "ChatMessage",
    "CronScheduler",
    "InvalidScheduleError",
    "Job",
    "MemoryFact",
    "SaveRequest",
    "ScheduleRequest",
    "ScheduledTimer",
    "clean_response",
    "extract_code_blocks",
    "next_fire_time",
    "parse_memory_blocks",
    "parse_save_blocks",
    "parse_schedule_blocks",
    "validate_cron",
]
