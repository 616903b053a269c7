"""Task admission, lookup and health endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field, StrictInt, StrictStr

from prompt_relay import __version__
from prompt_relay.engine.admission import ITEM_ID_MAX, ITEM_ID_MIN
from prompt_relay.engine.runtime import RelayRuntime

tasks_router = APIRouter(tags=["Tasks"])
health_router = APIRouter(tags=["Health"])


class AddTaskRequest(BaseModel):
    item_id: Annotated[StrictInt, Field(ge=ITEM_ID_MIN, le=ITEM_ID_MAX)]
    prompt: StrictStr


class AddTaskResponse(BaseModel):
    id: int
    item_id: int


class TaskResponse(BaseModel):
    id: int
    item_id: int
    prompt: str
    response: str


class TaskCountsResponse(BaseModel):
    total: int
    processed: int
    unprocessed: int


class HealthResponse(BaseModel):
    status: str
    version: str
    workers: int
    queue_depth: int
    queue_capacity: int
    tasks: TaskCountsResponse


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _runtime(request: Request) -> RelayRuntime:
    return request.app.state.runtime


@tasks_router.get("/", response_class=PlainTextResponse)
def index() -> str:
    return "Hello!"


@tasks_router.post("/addTask", response_model=AddTaskResponse)
def add_task(payload: AddTaskRequest, request: Request) -> AddTaskResponse:
    """Admit a task; returns as soon as the ticket is queued."""

    admitted = _runtime(request).admission.admit(payload.item_id, payload.prompt)
    return AddTaskResponse(id=admitted.id, item_id=admitted.item_id)


@tasks_router.get("/getTask", response_model=TaskResponse)
def get_task(
    request: Request,
    item_id: str | None = Query(default=None, alias="id"),
) -> TaskResponse | JSONResponse:
    """Look up the task for an item id straight from the store."""

    if item_id is None or not item_id.strip():
        return error_response(400, "id parameter is required")
    try:
        parsed_item_id = int(item_id.strip())
    except ValueError:
        return error_response(400, f"id parameter must be an integer, got {item_id!r}")
    if not ITEM_ID_MIN <= parsed_item_id <= ITEM_ID_MAX:
        return error_response(400, f"id parameter is out of range: {parsed_item_id}")

    task = _runtime(request).repository.find_by_item_id(parsed_item_id)
    if task is None:
        return error_response(404, "Task not found")
    return TaskResponse(
        id=task.id,
        item_id=task.item_id,
        prompt=task.prompt,
        response=task.response,
    )


@health_router.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    runtime = _runtime(request)
    counts = runtime.repository.count_tasks()
    return HealthResponse(
        status="ok",
        version=__version__,
        workers=runtime.pool.size,
        queue_depth=runtime.task_queue.depth,
        queue_capacity=runtime.task_queue.capacity,
        tasks=TaskCountsResponse(
            total=counts.total,
            processed=counts.processed,
            unprocessed=counts.unprocessed,
        ),
    )
