"""Long-term memory facts and the system prompt built from them."""

import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

MEMORY_HEADER = (
    "\n\n## Personal Memory\n"
    "These are important facts to remember about the user:\n"
)
MAX_MEMORY_LINES = 100


def _log(msg: str):
    print(msg, file=sys.stderr)


@dataclass(frozen=True)
class MemorySnapshot:
    """Fact blob and the prompt built from it, published together."""

    facts: str
    prompt: str


def build_full_prompt(base_prompt: str, facts: str) -> str:
    if not facts:
        return base_prompt
    return f"{base_prompt}{MEMORY_HEADER}{facts}"


def load_facts(path: Path) -> str:
    """Read the fact log. Missing or all-whitespace files count as empty."""
    if not path.exists():
        return ""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        _log(f"[memory] failed to load {path}: {e}")
        return ""
    if not content.strip():
        return ""
    return content


class PromptMemory:
    """Append-only fact store mirrored into an in-memory snapshot.

    Readers take the current snapshot without locking. Mutators build the
    next snapshot completely and then publish it with a single attribute
    assignment, so no reader ever sees new facts with an old prompt.
    """

    def __init__(self, base_prompt: str, memory_path: str = "memory.md",
                 max_lines: int = MAX_MEMORY_LINES):
        self._base_prompt = base_prompt
        self._path = Path(memory_path)
        self._max_lines = max_lines
        self._write_lock = threading.Lock()
        facts = load_facts(self._path)
        if facts:
            _log(f"[memory] loaded {len(facts.splitlines())} line(s) from {self._path}")
        self._snapshot = MemorySnapshot(facts, build_full_prompt(base_prompt, facts))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def base_prompt(self) -> str:
        return self._base_prompt

    def snapshot(self) -> MemorySnapshot:
        return self._snapshot

    def current_prompt(self) -> str:
        return self._snapshot.prompt

    def current_facts(self) -> str:
        return self._snapshot.facts

    def check_size(self) -> Tuple[bool, int]:
        """(exceeds threshold, line count). Advisory only."""
        facts = self._snapshot.facts
        lines = len(facts.splitlines()) if facts else 0
        return lines > self._max_lines, lines

    def save_fact(self, text: str) -> bool:
        """Append a fact. Returns False without writing if it is already contained."""
        fact = text.strip()
        if not fact:
            return False
        with self._write_lock:
            if fact in self._snapshot.facts:
                _log(f"[memory] fact already in memory: {fact[:80]!r}")
                return False

            has_content = self._path.exists() and self._path.stat().st_size > 0
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as f:
                if has_content:
                    f.write("\n")
                f.write(f"- {fact}\n")

            self._publish(load_facts(self._path))
        _log(f"[memory] saved: {fact[:80]!r}")
        return True

    def clear(self) -> None:
        """Delete the fact log and fall back to the base prompt."""
        with self._write_lock:
            self._path.unlink(missing_ok=True)
            self._snapshot = MemorySnapshot("", self._base_prompt)
        _log("[memory] cleared")

    def reload(self) -> bool:
        """Re-read the fact log from disk. Returns True if the facts changed."""
        with self._write_lock:
            facts = load_facts(self._path)
            if facts == self._snapshot.facts:
                return False
            self._publish(facts)
        _log(f"[memory] reloaded {len(facts.splitlines())} line(s) from {self._path}")
        return True

    def _publish(self, facts: str) -> None:
        self._snapshot = MemorySnapshot(facts, build_full_prompt(self._base_prompt, facts))
