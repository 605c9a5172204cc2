"""Action block parsing for model output.

Pure Python, no framework dependencies. Blocks are fenced with a tag on the
opening fence:

    ```cron            -> ScheduleRequest (JSON body)
    ```save:<name>     -> SaveRequest
    ```memory          -> memory fact
    ```<lang>          -> ordinary code, left in the displayed text
"""

from __future__ import annotations

import json
import re
from typing import List, Tuple

from cronclaw.domain.models import SaveRequest, ScheduleRequest

SCHEDULE_TAGS = ("cron", "schedule")
MEMORY_TAG = "memory"
REQUIRED_SCHEDULE_FIELDS = ("schedule", "task", "message")
CRON_FIELD_COUNT = 5

_FENCE_TAIL = r"\s*\n(.*?)\n\s*```"

SCHEDULE_RE = re.compile(
    r"```(?:" + "|".join(SCHEDULE_TAGS) + r")" + _FENCE_TAIL,
    re.DOTALL,
)
SAVE_RE = re.compile(r"```save:(\S+)" + _FENCE_TAIL, re.DOTALL)
MEMORY_RE = re.compile(r"```" + MEMORY_TAG + _FENCE_TAIL, re.DOTALL)
CODE_RE = re.compile(r"```(\w+)?" + _FENCE_TAIL, re.DOTALL)

# Directive blocks that are never shown to the user
_DIRECTIVE_RES = (SCHEDULE_RE, SAVE_RE, MEMORY_RE)


def _as_str(value) -> str:
    return value if isinstance(value, str) else ""


def parse_schedule_blocks(text: str) -> Tuple[List[ScheduleRequest], List[str]]:
    """Extract schedule requests from response text.

    Each malformed block adds one error string and is skipped; the other
    blocks in the same response are still parsed.
    """
    requests: List[ScheduleRequest] = []
    errors: List[str] = []

    for body in SCHEDULE_RE.findall(text):
        try:
            data = json.loads(body.strip())
        except ValueError:
            errors.append("Invalid JSON in cron block")
            continue

        if not isinstance(data, dict):
            data = {}
        missing = [k for k in REQUIRED_SCHEDULE_FIELDS if k not in data]
        if missing:
            errors.append(f"Missing required fields: {', '.join(missing)}")
            continue

        schedule = _as_str(data["schedule"])
        if len(schedule.split()) != CRON_FIELD_COUNT:
            errors.append(
                f"Invalid cron format '{schedule}' - needs 5 fields "
                f"(minute hour day month weekday)"
            )
            continue

        requests.append(ScheduleRequest(
            schedule=schedule,
            task=_as_str(data["task"]),
            message=_as_str(data["message"]),
        ))

    return requests, errors


def parse_save_blocks(text: str) -> List[SaveRequest]:
    """Extract ```save:<filename> blocks. Filename and body are taken verbatim."""
    return [
        SaveRequest(filename=filename, content=content)
        for filename, content in SAVE_RE.findall(text)
    ]


def parse_memory_blocks(text: str) -> List[str]:
    """Extract trimmed, non-empty ```memory block bodies."""
    facts = [body.strip() for body in MEMORY_RE.findall(text)]
    return [f for f in facts if f]


def extract_code_blocks(text: str) -> List[Tuple[str, str]]:
    """Return (language, body) for every fenced block; language defaults to "text"."""
    return [
        (lang or "text", body.strip())
        for lang, body in CODE_RE.findall(text)
    ]


def clean_response(text: str) -> str:
    """Remove cron/save/memory blocks, keeping prose and ordinary code fences."""
    for pattern in _DIRECTIVE_RES:
        text = pattern.sub("", text)
    return text.strip()


def escape_mentions(text: str) -> str:
    """Escape @mentions to prevent pinging other users or bots."""
    return re.sub(r"@(\w+)", r"`@\1`", text)
