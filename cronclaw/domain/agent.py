"""Agent — turns user text into model replies and applies action blocks.

No framework dependencies: the Discord and HTTP adapters both drive this
class through plain strings and get plain strings back.

Handles:
- Command dispatch (!jobs, !schedule, !cancel, !memory, ...)
- Chat-backend invocation via LLMPort (failures become an apology)
- Action block execution: cron -> scheduler, save -> workspace,
  memory -> PromptMemory
- Feeding fired cron messages back through the model
"""

import sys
from typing import Awaitable, Callable, List, Optional

from cronclaw.domain.action_parser import (
    clean_response,
    extract_code_blocks,
    parse_memory_blocks,
    parse_save_blocks,
    parse_schedule_blocks,
)
from cronclaw.domain.models import AgentReply, ChatMessage
from cronclaw.domain.scheduler import CronScheduler
from cronclaw.infrastructure.memory import PromptMemory
from cronclaw.infrastructure.workspace import Workspace
from cronclaw.ports.outbound import ConversationPort, LLMPort

COMMANDS = (
    "!help", "!status", "!jobs", "!schedule", "!cancel",
    "!workspace", "!save", "!memory", "!forget", "!clear",
)

HELP_TEXT = (
    "Commands\n\n"
    "!status — System status\n"
    "!jobs — List scheduled tasks\n"
    "!schedule <cron> <msg> — Create a cron job\n"
    "!cancel <id> — Cancel a task\n"
    "!workspace — List generated files\n"
    "!save <filename> — Save last code block\n"
    "!memory — View saved memories\n"
    "!forget — Clear all memories\n"
    "!clear — Clear chat history\n"
    "!help — This message"
)

SCHEDULE_USAGE = (
    "Usage: !schedule <cron> <message>\n\n"
    "The message will be sent to me when the job triggers.\n\n"
    "Cron format: minute hour day month weekday\n\n"
    "Examples:\n"
    "!schedule */3 * * * * Tell me a joke\n"
    "!schedule 0 9 * * * Give me a motivational quote"
)

_SAVE_LOOKBACK = 10


def _log(msg: str):
    print(msg, file=sys.stderr)


def _task_label(message: str, limit: int = 50) -> str:
    if len(message) > limit:
        return message[: limit - 3] + "..."
    return message


class Agent:
    """Orchestrates one assistant: chat, commands and side effects."""

    def __init__(
        self,
        llm: LLMPort,
        memory: PromptMemory,
        scheduler: CronScheduler,
        workspace: Workspace,
        history: ConversationPort,
        max_history: int = 50,
        model_name: str = "",
    ):
        self.llm = llm
        self.memory = memory
        self.scheduler = scheduler
        self.workspace = workspace
        self.history = history
        self.max_history = max_history
        self.model_name = model_name

    # -- chat --

    async def chat(self, messages: List[ChatMessage]) -> str:
        """Send the system prompt snapshot plus ``messages``; never raises."""
        full = [ChatMessage(role="system", content=self.memory.current_prompt())]
        full.extend(messages)
        try:
            return await self.llm.chat(full)
        except Exception as e:
            _log(f"[agent] chat error: {e}")
            return f"Sorry, I had trouble thinking about that. Error: {e}"

    @staticmethod
    def is_command(content: str) -> Optional[str]:
        """Check if content is a command. Returns command name or None."""
        stripped = content.strip()
        if not stripped:
            return None
        cmd = stripped.split()[0].lower()
        if cmd in COMMANDS:
            return cmd
        return None

    async def handle_message(self, text: str) -> AgentReply:
        """Answer one user turn: command, or chat plus action blocks."""
        cmd = self.is_command(text)
        if cmd:
            return AgentReply(text=await self.handle_command(cmd, text))

        _log(f"[agent] message received: {text[:80]}")
        self.history.add_message("user", text)
        response = await self.chat(self.history.get_history(self.max_history))
        notices = await self.apply_actions(response)
        self.history.add_message("assistant", response)
        return AgentReply(text=clean_response(response), notices=notices)

    async def respond_to_cron(self, message: str) -> str:
        """Run a fired cron message through the model as a user turn."""
        _log(f"[agent] cron message: {message[:80]}")
        self.history.add_message("user", message)
        response = await self.chat(self.history.get_history(self.max_history))
        notices = await self.apply_actions(response)
        self.history.add_message("assistant", response)
        return AgentReply(text=clean_response(response), notices=notices).render()

    def cron_responder(self, deliver: Callable[[str], Awaitable[None]]):
        """Build a scheduler callback that answers the message and delivers the reply."""

        async def _on_fire(message: str):
            reply = await self.respond_to_cron(message)
            if reply:
                await deliver(reply)

        return _on_fire

    # -- action blocks --

    async def apply_actions(self, response: str) -> List[str]:
        """Enact every cron/save/memory block in ``response``; returns notices."""
        notices: List[str] = []

        requests, errors = parse_schedule_blocks(response)
        for error in errors:
            notices.append(f"⚠️ Cron error: {error}")
        for req in requests:
            try:
                job_id = await self.scheduler.add_job(req.schedule, req.task, req.message)
                notices.append(f"✅ Scheduled job #{job_id}: {req.task}\nSchedule: {req.schedule}")
            except Exception as e:
                notices.append(f"❌ Error scheduling: {e}")

        for block in parse_save_blocks(response):
            try:
                path = self.workspace.save_file(block.filename, block.content)
                notices.append(f"💾 Saved {path.name} to workspace")
            except Exception as e:
                notices.append(f"❌ Error saving file: {e}")

        for fact in parse_memory_blocks(response):
            try:
                if self.memory.save_fact(fact):
                    notices.append(f"🧠 Remembered: {fact}")
            except Exception as e:
                _log(f"[agent] failed to save memory: {e}")

        return notices

    # -- commands --

    async def handle_command(self, cmd: str, text: str) -> str:
        args = text.strip().split()[1:]
        handler = getattr(self, f"_cmd_{cmd.lstrip('!')}")
        try:
            return await handler(args)
        except Exception as e:
            _log(f"[agent] {cmd} failed: {e}")
            return f"Error: {e}"

    async def _cmd_help(self, args: List[str]) -> str:
        return HELP_TEXT

    async def _cmd_status(self, args: List[str]) -> str:
        jobs = self.scheduler.list_jobs()
        files = self.workspace.list_files()
        _, memory_lines = self.memory.check_size()
        return (
            "Status\n\n"
            f"Model: {self.model_name or 'unknown'}\n"
            f"Scheduled jobs: {len(jobs)} ({len(self.scheduler.active_job_ids())} running)\n"
            f"Timezone: {self.scheduler.timezone}\n"
            f"Workspace files: {len(files)}\n"
            f"Memory lines: {memory_lines}"
        )

    async def _cmd_jobs(self, args: List[str]) -> str:
        jobs = self.scheduler.list_jobs()
        if not jobs:
            return "No scheduled jobs. Ask me to schedule something!"
        lines = ["🕐 Scheduled Jobs\n"]
        for job in jobs:
            lines.append(f"#{job.id} — {job.task}\n  Schedule: {job.schedule}")
        return "\n".join(lines)

    async def _cmd_schedule(self, args: List[str]) -> str:
        if len(args) < 6:
            return SCHEDULE_USAGE
        schedule = " ".join(args[:5])
        message = " ".join(args[5:])
        task = _task_label(message)
        try:
            job_id = await self.scheduler.add_job(schedule, task, message)
        except ValueError as e:
            return f"❌ Invalid cron expression: {e}"
        return f"✅ Scheduled job #{job_id}: {task}\nSchedule: {schedule}\nMessage: {message}"

    async def _cmd_cancel(self, args: List[str]) -> str:
        if not args:
            return "Usage: !cancel <job_id>"
        try:
            job_id = int(args[0].lstrip("#"))
        except ValueError:
            return f"Invalid job id: {args[0]}"
        if await self.scheduler.cancel_job(job_id):
            return f"✅ Cancelled job #{job_id}"
        return f"Job #{job_id} not found."

    async def _cmd_workspace(self, args: List[str]) -> str:
        files = self.workspace.list_files()
        if not files:
            return "Workspace is empty. Ask me to write some code!"
        lines = ["📁 Workspace Files\n"]
        for f in files:
            lines.append(f"{f.name} ({f.size / 1024:.1f} KB)")
        return "\n".join(lines)

    async def _cmd_save(self, args: List[str]) -> str:
        if not args:
            return "Usage: !save filename.py\n\nThis will save the last code block from my response."
        filename = args[0]
        for msg in reversed(self.history.get_history(_SAVE_LOOKBACK)):
            if msg.role != "assistant":
                continue
            blocks = extract_code_blocks(msg.content)
            if blocks:
                try:
                    path = self.workspace.save_file(filename, blocks[0][1])
                except Exception as e:
                    return f"❌ Error saving file: {e}"
                return f"💾 Saved {path.name} to workspace"
        return "❌ No code blocks found in recent conversation."

    async def _cmd_memory(self, args: List[str]) -> str:
        facts = self.memory.current_facts()
        if not facts:
            return "🧠 My Memory\n\nNo memories saved yet. Tell me something about yourself!"
        is_large, line_count = self.memory.check_size()
        header = f"🧠 My Memory ({line_count} lines)\n\n"
        if is_large:
            header += "⚠️ Memory is getting large!\n\n"
        return header + facts

    async def _cmd_forget(self, args: List[str]) -> str:
        try:
            self.memory.clear()
        except OSError as e:
            _log(f"[agent] failed to clear memory: {e}")
            return "❌ Failed to clear memory."
        return "🧹 All memories have been forgotten."

    async def _cmd_clear(self, args: List[str]) -> str:
        self.history.clear()
        return "🧹 Conversation history cleared."
