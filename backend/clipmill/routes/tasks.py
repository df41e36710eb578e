"""
Task generation endpoints.

Pure planning: these endpoints build task descriptors from source lists
and return them. Nothing is executed; POST the returned tasks to
/batches to run them.
"""

import logging
from typing import Any, Dict, List, Literal

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from ..generation.tasks import (
    generate_merge_tasks,
    generate_paired_stitch_tasks,
    generate_resize_tasks,
    generate_stitch_tasks,
)
from ..jobs.models import TaskDescriptor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


# ============================================================================
# Request / response models
# ============================================================================


class _PlanRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    output_dir: str = Field(alias="outputDir")
    concurrency: int = Field(default=0, ge=0)


class StitchRequest(_PlanRequest):
    """A+B stitching. ``count`` is capped at len(A) * len(B)."""

    a_paths: List[str]
    b_paths: List[str]
    count: int
    orientation: Literal["landscape", "portrait"] = "landscape"


class PairedStitchRequest(_PlanRequest):
    """1:1 stitching; the shorter list cycles."""

    a_paths: List[str]
    b_paths: List[str]
    orientation: Literal["landscape", "portrait"] = "landscape"


class MergeRequest(_PlanRequest):
    b_videos: List[str]
    a_videos: List[str] = []
    covers: List[str] = []
    bg_images: List[str] = []
    count: int = 1
    orientation: Literal["horizontal", "vertical"] = "horizontal"


class ResizeRequest(_PlanRequest):
    videos: List[str]
    mode: str
    blur_amount: int = Field(default=20, ge=0)


class TaskListResponse(BaseModel):
    success: bool
    tasks: List[Dict[str, Any]]


def _respond(tasks: List[TaskDescriptor]) -> TaskListResponse:
    return TaskListResponse(success=True, tasks=[t.to_wire() for t in tasks])


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/stitch", response_model=TaskListResponse)
async def plan_stitch(body: StitchRequest):
    """Balanced A×B stitch tasks."""
    return _respond(generate_stitch_tasks(
        body.a_paths,
        body.b_paths,
        body.count,
        body.output_dir,
        concurrency=body.concurrency,
        orientation=body.orientation,
    ))


@router.post("/stitch/pairs", response_model=TaskListResponse)
async def plan_paired_stitch(body: PairedStitchRequest):
    return _respond(generate_paired_stitch_tasks(
        body.a_paths,
        body.b_paths,
        body.output_dir,
        concurrency=body.concurrency,
        orientation=body.orientation,
    ))


@router.post("/merge", response_model=TaskListResponse)
async def plan_merge(body: MergeRequest):
    """Composite merge tasks over cover × A × B combinations."""
    return _respond(generate_merge_tasks(
        body.b_videos,
        body.output_dir,
        a_videos=body.a_videos,
        covers=body.covers,
        bg_images=body.bg_images,
        count=body.count,
        orientation=body.orientation,
        concurrency=body.concurrency,
    ))


@router.post("/resize", response_model=TaskListResponse)
async def plan_resize(body: ResizeRequest):
    """
    Smart-resize tasks, one per video per target size.

    An unknown mode yields an empty task list, not an error.
    """
    return _respond(generate_resize_tasks(
        body.videos,
        body.mode,
        body.output_dir,
        blur_amount=body.blur_amount,
        concurrency=body.concurrency,
    ))
