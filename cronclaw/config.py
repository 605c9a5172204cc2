"""Configuration — environment (.env) into typed dataclasses."""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv()

_stderr_print = lambda *a, **kw: print(*a, **kw, file=sys.stderr)

SUPPORTED_RUN_MODES = ("discord", "web", "both")

DEFAULT_SYSTEM_PROMPT = """You are a helpful personal assistant.

You can trigger actions by writing fenced blocks in your reply:

To schedule a recurring message, write a cron block with a JSON object:
```cron
{"schedule": "0 9 * * *", "task": "morning greeting", "message": "Say good morning"}
```
The schedule is a standard 5-field cron expression (minute hour day month weekday).

To save a file to the workspace:
```save:example.py
print("hello")
```

To remember an important fact about the user:
```memory
The user's name is Alex.
```
"""


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default


def _env_int_list(name: str) -> List[int]:
    values = []
    for part in os.getenv(name, "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            values.append(int(part))
        except ValueError:
            _stderr_print(f"Ignoring non-numeric entry {part!r} in {name}")
    return values


@dataclass
class OllamaConfig:
    host: str = "http://localhost:11434"
    model: str = "tinyllama"
    keep_alive: int = -1
    context_length: int = 4096
    temperature: float = 0.7
    timeout_seconds: float = 120.0


@dataclass
class DiscordConfig:
    token: str = ""
    allowed_users: List[int] = field(default_factory=list)
    cron_channel_id: int = 0  # where scheduled replies are posted

    @property
    def is_configured(self) -> bool:
        return bool(self.token) and self.token != "your_token_here"


@dataclass
class WorkspaceConfig:
    path: str = "./workspace"


@dataclass
class SchedulerConfig:
    enabled: bool = True
    timezone: str = "UTC"


@dataclass
class MemoryConfig:
    data_dir: str = "./data"
    memory_file: str = "memory.md"
    max_history: int = 50
    watch_memory_file: bool = True


@dataclass
class WebConfig:
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class AppConfig:
    """Typed configuration for the whole process."""

    run_mode: str = "both"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    discord: DiscordConfig = field(default_factory=DiscordConfig)
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    web: WebConfig = field(default_factory=WebConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create AppConfig from environment variables."""
        run_mode = os.getenv("RUN_MODE", "both").strip().lower()
        if run_mode not in SUPPORTED_RUN_MODES:
            _stderr_print(f"Unsupported RUN_MODE={run_mode!r}, falling back to 'both'")
            run_mode = "both"

        return cls(
            run_mode=run_mode,
            system_prompt=load_system_prompt(),
            ollama=OllamaConfig(
                host=os.getenv("OLLAMA_HOST", "http://localhost:11434").rstrip("/"),
                model=os.getenv("OLLAMA_MODEL", "tinyllama"),
                keep_alive=_env_int("OLLAMA_KEEP_ALIVE", -1),
                context_length=_env_int("OLLAMA_CONTEXT_LENGTH", 4096),
                temperature=_env_float("OLLAMA_TEMPERATURE", 0.7),
                timeout_seconds=_env_float("OLLAMA_TIMEOUT", 120.0),
            ),
            discord=DiscordConfig(
                token=os.getenv("DISCORD_BOT_TOKEN", ""),
                allowed_users=_env_int_list("DISCORD_ALLOWED_USERS"),
                cron_channel_id=_env_int("DISCORD_CRON_CHANNEL_ID", 0),
            ),
            workspace=WorkspaceConfig(path=os.getenv("WORKSPACE_PATH", "./workspace")),
            scheduler=SchedulerConfig(
                enabled=_env_bool("SCHEDULER_ENABLED", True),
                timezone=os.getenv("SCHEDULER_TIMEZONE", "UTC"),
            ),
            memory=MemoryConfig(
                data_dir=os.getenv("DATA_DIR", "./data"),
                memory_file=os.getenv("MEMORY_FILE", "memory.md"),
                max_history=_env_int("MAX_HISTORY", 50),
                watch_memory_file=_env_bool("WATCH_MEMORY_FILE", True),
            ),
            web=WebConfig(
                host=os.getenv("HOST", "0.0.0.0"),
                port=_env_int("PORT", 3000),
            ),
        )


def load_system_prompt(soul_path: str = "soul.md") -> str:
    """SYSTEM_PROMPT env var, else soul.md, else the built-in prompt."""
    prompt = os.getenv("SYSTEM_PROMPT", "").strip()
    if prompt:
        return prompt
    path = Path(soul_path)
    if path.exists():
        content = path.read_text(encoding="utf-8").strip()
        if content:
            return content
    return DEFAULT_SYSTEM_PROMPT
