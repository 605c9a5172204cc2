"""Process entry point — builds the object graph and runs the frontends."""

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import uvicorn

from cronclaw import __version__
from cronclaw.adapters.discord import DiscordBotAdapter
from cronclaw.adapters.llm import OllamaAdapter
from cronclaw.adapters.storage import ConversationLog, FileLog, JsonJobStore, JsonStorage
from cronclaw.adapters.web import create_app
from cronclaw.config import AppConfig
from cronclaw.domain.agent import Agent
from cronclaw.domain.callbacks import CallbackRegistry
from cronclaw.domain.scheduler import CronScheduler
from cronclaw.infrastructure.memory import PromptMemory
from cronclaw.infrastructure.watcher import start_memory_watcher, stop_memory_watcher
from cronclaw.infrastructure.workspace import Workspace


def _log(msg: str):
    print(msg, file=sys.stderr)


@dataclass
class Runtime:
    config: AppConfig
    agent: Agent
    scheduler: CronScheduler
    llm: OllamaAdapter


def build_runtime(config: AppConfig) -> Runtime:
    """Wire stores, memory, scheduler and agent from configuration."""
    storage = JsonStorage(config.memory.data_dir)
    memory_path = Path(config.memory.memory_file)
    if not memory_path.is_absolute() and memory_path.parent == Path("."):
        memory_path = Path(config.memory.data_dir) / memory_path

    memory = PromptMemory(config.system_prompt, str(memory_path))
    scheduler = CronScheduler(
        JsonJobStore(storage),
        registry=CallbackRegistry(),
        tz=config.scheduler.timezone,
    )
    workspace = Workspace(config.workspace.path, FileLog(storage))
    llm = OllamaAdapter(config.ollama)
    agent = Agent(
        llm=llm,
        memory=memory,
        scheduler=scheduler,
        workspace=workspace,
        history=ConversationLog(storage),
        max_history=config.memory.max_history,
        model_name=config.ollama.model,
    )
    return Runtime(config=config, agent=agent, scheduler=scheduler, llm=llm)


async def _log_cron_reply(text: str):
    _log(f"[cron] reply: {text[:200]}")


async def run(config: AppConfig) -> None:
    runtime = build_runtime(config)
    agent, scheduler = runtime.agent, runtime.scheduler
    mode = config.run_mode
    _log(f"cronclaw v{__version__} | mode: {mode}")

    await runtime.llm.warm_up()
    if config.scheduler.enabled:
        await scheduler.load_jobs()

    bot: Optional[DiscordBotAdapter] = None
    if mode in ("discord", "both"):
        if not config.discord.is_configured:
            if mode == "discord":
                raise SystemExit("Discord mode requires DISCORD_BOT_TOKEN (set it in .env)")
            _log("Discord bot not configured (set DISCORD_BOT_TOKEN in .env)")
        else:
            bot = DiscordBotAdapter(
                agent,
                config.discord.token,
                allowed_users=config.discord.allowed_users,
                cron_channel_id=config.discord.cron_channel_id,
            )

    # Every fired message is answered once by the agent; frontends receive the reply
    if bot is not None:
        scheduler.set_send_callback(agent.cron_responder(bot.deliver_scheduled))
    else:
        scheduler.set_send_callback(agent.cron_responder(_log_cron_reply))

    observer = None
    if config.memory.watch_memory_file:
        observer = start_memory_watcher(agent.memory)

    tasks = []
    if bot is not None:
        tasks.append(asyncio.create_task(bot.run_bot(), name="discord"))
    if mode in ("web", "both"):
        server = uvicorn.Server(uvicorn.Config(
            create_app(agent),
            host=config.web.host,
            port=config.web.port,
            log_level="info",
        ))
        tasks.append(asyncio.create_task(server.serve(), name="web"))

    try:
        if not tasks:
            _log("No frontend to run — exiting")
            return
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception():
                _log(f"[{task.get_name()}] stopped with error: {task.exception()}")
    finally:
        for task in tasks:
            task.cancel()
        if bot is not None and not bot.is_closed():
            await bot.close()
        scheduler.stop()
        if observer is not None:
            stop_memory_watcher(observer)
        _log("Goodbye!")


def main() -> None:
    asyncio.run(run(AppConfig.from_env()))


if __name__ == "__main__":
    main()
