"""
Batch execution and queue control endpoints.

POST /batches runs a batch to completion and returns the final counters
together with the recorded event timeline. The queue endpoints act on the
process-wide queue owned by the BatchService, so changes affect every
batch currently running.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from ..execution.events import EventRecorder
from ..jobs.models import TaskDescriptor
from ..service import BatchService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["batches"])


class BatchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tasks: List[TaskDescriptor]


class BatchResponse(BaseModel):
    aggregate: Dict[str, int]
    outcome: str
    tasks: List[Dict[str, Any]]
    events: List[Dict[str, Any]]


class QueueStatus(BaseModel):
    concurrency: int
    running: int
    queued: int
    stopped: bool


class ConcurrencyRequest(BaseModel):
    concurrency: int = Field(ge=1)


def _service(request: Request) -> BatchService:
    return request.app.state.batch_service


@router.post("/batches", response_model=BatchResponse)
async def run_batch_endpoint(body: BatchRequest, request: Request):
    """
    Run a batch and wait for it to settle.

    Individual task failures are reported in the response, never as an
    HTTP error.
    """
    if not body.tasks:
        raise HTTPException(status_code=400, detail="No tasks to run")

    recorder = EventRecorder()
    aggregate = await _service(request).run(body.tasks, recorder)
    logger.info(
        f"Batch settled via API: {aggregate.done} done, {aggregate.failed} failed"
    )
    return BatchResponse(
        aggregate=aggregate.to_dict(),
        outcome=aggregate.outcome.value,
        tasks=[t.to_wire() for t in body.tasks],
        events=[e.to_dict() for e in recorder.get_events()],
    )


@router.get("/queue", response_model=QueueStatus)
async def queue_status(request: Request):
    return QueueStatus(**_service(request).queue.snapshot())


@router.put("/queue/concurrency", response_model=QueueStatus)
async def set_queue_concurrency(body: ConcurrencyRequest, request: Request):
    """Change the concurrency limit; applies to future dequeues only."""
    queue = _service(request).queue
    queue.set_concurrency(body.concurrency)
    return QueueStatus(**queue.snapshot())


@router.post("/queue/stop", response_model=QueueStatus)
async def stop_queue(request: Request):
    """Stop dequeuing. Running jobs finish normally."""
    queue = _service(request).queue
    queue.stop()
    return QueueStatus(**queue.snapshot())


@router.post("/queue/start", response_model=QueueStatus)
async def start_queue(request: Request):
    queue = _service(request).queue
    queue.start()
    return QueueStatus(**queue.snapshot())
