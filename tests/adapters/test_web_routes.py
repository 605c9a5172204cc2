"""Tests for the HTTP control surface."""

import os
import tempfile

import pytest
from httpx import AsyncClient, ASGITransport

from cronclaw.adapters.storage import ConversationLog, FileLog, JsonJobStore, JsonStorage
from cronclaw.adapters.web import create_app
from cronclaw.domain.agent import Agent
from cronclaw.domain.scheduler import CronScheduler
from cronclaw.infrastructure.memory import PromptMemory
from cronclaw.infrastructure.workspace import Workspace


class EchoLLM:
    async def chat(self, messages):
        return f"echo: {messages[-1].content}"


@pytest.fixture
def agent():
    with tempfile.TemporaryDirectory() as d:
        storage = JsonStorage(os.path.join(d, "data"))
        agent = Agent(
            llm=EchoLLM(),
            memory=PromptMemory("Base.", os.path.join(d, "memory.md")),
            scheduler=CronScheduler(JsonJobStore(storage)),
            workspace=Workspace(os.path.join(d, "ws"), FileLog(storage)),
            history=ConversationLog(storage),
            model_name="tinyllama",
        )
        yield agent
        agent.scheduler.stop()


@pytest.fixture
def transport(agent):
    return ASGITransport(app=create_app(agent))


class TestChatRoute:
    @pytest.mark.asyncio
    async def test_chat(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/chat", json={"message": "hello"})
        assert resp.status_code == 200
        assert resp.json() == {"response": "echo: hello", "notices": []}

    @pytest.mark.asyncio
    async def test_chat_command(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/chat", json={"message": "!jobs"})
        assert resp.json()["response"] == "No scheduled jobs. Ask me to schedule something!"


class TestJobRoutes:
    @pytest.mark.asyncio
    async def test_create_list_cancel(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            created = await ac.post("/jobs", json={"schedule": "0 9 * * *", "message": "Say hi"})
            assert created.status_code == 201
            job_id = created.json()["id"]

            listing = await ac.get("/jobs")
            jobs = listing.json()
            assert len(jobs) == 1
            assert jobs[0]["id"] == job_id
            assert jobs[0]["task"] == "Say hi"
            assert jobs[0]["running"] is True

            cancelled = await ac.delete(f"/jobs/{job_id}")
            assert cancelled.status_code == 200
            assert cancelled.json() == {"id": job_id, "cancelled": True}

            again = await ac.delete(f"/jobs/{job_id}")
            assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_schedule(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/jobs", json={"schedule": "every day", "message": "m"})
        assert resp.status_code == 422
        assert "needs 5 fields" in resp.json()["detail"]


class TestMemoryRoutes:
    @pytest.mark.asyncio
    async def test_get_and_clear(self, agent, transport):
        agent.memory.save_fact("User likes tea")
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            shown = await ac.get("/memory")
            assert shown.json()["facts"] == "- User likes tea\n"
            assert shown.json()["line_count"] == 1

            cleared = await ac.delete("/memory")
            assert cleared.json()["facts"] == ""
        assert agent.memory.current_prompt() == "Base."


class TestStatusAndWorkspace:
    @pytest.mark.asyncio
    async def test_status(self, transport):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/status")
        data = resp.json()
        assert data["model"] == "tinyllama"
        assert data["jobs"] == 0
        assert data["timezone"] == "UTC"

    @pytest.mark.asyncio
    async def test_workspace(self, agent, transport):
        agent.workspace.save_file("a.txt", "abc")
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/workspace")
        assert resp.json() == [{"name": "a.txt", "size": 3}]
