"""HTTP control surface — chat, jobs, memory and workspace routes."""

from typing import List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel

from cronclaw.domain.agent import Agent
from cronclaw.domain.scheduler import InvalidScheduleError

router = APIRouter()


class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    response: str
    notices: List[str] = []


class JobModel(BaseModel):
    id: int
    schedule: str
    task: str
    message: str
    enabled: bool
    running: bool = False


class JobCreateRequest(BaseModel):
    schedule: str
    message: str
    task: Optional[str] = None


class JobCreateResponse(BaseModel):
    id: int


class CancelResponse(BaseModel):
    id: int
    cancelled: bool


class MemoryResponse(BaseModel):
    facts: str
    line_count: int
    exceeds_threshold: bool


class WorkspaceFileModel(BaseModel):
    name: str
    size: int


class StatusResponse(BaseModel):
    model: str
    jobs: int
    running_jobs: int
    timezone: str
    workspace_files: int
    memory_lines: int


def _agent(request: Request) -> Agent:
    return request.app.state.agent


@router.get("/status", response_model=StatusResponse)
async def status(request: Request):
    agent = _agent(request)
    _, memory_lines = agent.memory.check_size()
    return StatusResponse(
        model=agent.model_name,
        jobs=len(agent.scheduler.list_jobs()),
        running_jobs=len(agent.scheduler.active_job_ids()),
        timezone=agent.scheduler.timezone,
        workspace_files=len(agent.workspace.list_files()),
        memory_lines=memory_lines,
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, request: Request):
    reply = await _agent(request).handle_message(req.message)
    return ChatResponse(response=reply.text, notices=reply.notices)


@router.get("/jobs", response_model=List[JobModel])
async def list_jobs(request: Request):
    scheduler = _agent(request).scheduler
    return [
        JobModel(
            id=j.id, schedule=j.schedule, task=j.task, message=j.message,
            enabled=j.enabled, running=scheduler.is_running(j.id),
        )
        for j in scheduler.list_jobs()
    ]


@router.post("/jobs", response_model=JobCreateResponse, status_code=201)
async def create_job(req: JobCreateRequest, request: Request):
    task = req.task or req.message[:50]
    try:
        job_id = await _agent(request).scheduler.add_job(req.schedule, task, req.message)
    except InvalidScheduleError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return JobCreateResponse(id=job_id)


@router.delete("/jobs/{job_id}", response_model=CancelResponse)
async def cancel_job(job_id: int, request: Request):
    cancelled = await _agent(request).scheduler.cancel_job(job_id)
    if not cancelled:
        raise HTTPException(status_code=404, detail=f"Job #{job_id} not found")
    return CancelResponse(id=job_id, cancelled=True)


@router.get("/memory", response_model=MemoryResponse)
async def get_memory(request: Request):
    memory = _agent(request).memory
    exceeds, lines = memory.check_size()
    return MemoryResponse(facts=memory.current_facts(), line_count=lines, exceeds_threshold=exceeds)


@router.delete("/memory", response_model=MemoryResponse)
async def clear_memory(request: Request):
    memory = _agent(request).memory
    memory.clear()
    return MemoryResponse(facts="", line_count=0, exceeds_threshold=False)


@router.get("/workspace", response_model=List[WorkspaceFileModel])
async def list_workspace(request: Request):
    return [
        WorkspaceFileModel(name=f.name, size=f.size)
        for f in _agent(request).workspace.list_files()
    ]


def create_app(agent: Agent) -> FastAPI:
    """FastAPI application bound to one Agent."""
    app = FastAPI(title="cronclaw")
    app.state.agent = agent
    app.include_router(router)
    return app
