"""
Task generation: turn source libraries into task descriptors.

Each generator combines the caller's source lists with the balanced
combination selector (or the 1:1 pair builder) and returns pending
TaskDescriptors ready for the batch runner.

Generators never raise on bad input: missing required sources or a
non-positive count yield an empty list.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..jobs.models import (
    MergeConfig,
    ResizeConfig,
    StitchConfig,
    TaskDescriptor,
    TaskFile,
)
from .combinations import SortSpec, max_combinations, select_combinations
from .pairs import build_pairs

logger = logging.getLogger(__name__)


# Target sizes produced by each resize mode
RESIZE_MODES: Dict[str, List[Dict[str, object]]] = {
    "siya": [
        {"width": 1920, "height": 1080, "suffix": "_1920x1080"},
        {"width": 1920, "height": 1920, "suffix": "_1920x1920"},
    ],
    "fishing": [
        {"width": 1080, "height": 1920, "suffix": "_1080x1920"},
        {"width": 1920, "height": 1920, "suffix": "_1920x1920"},
    ],
    "unify_h": [
        {"width": 1920, "height": 1080, "suffix": "_1920x1080"},
    ],
    "unify_v": [
        {"width": 1080, "height": 1920, "suffix": "_1080x1920"},
    ],
}


def _task_file(path: str, position: int, category: str, category_name: str) -> TaskFile:
    # Task files carry 1-based indices
    return TaskFile(
        path=path,
        index=position + 1,
        category=category,
        category_name=category_name,
    )


def generate_stitch_tasks(
    a_paths: Sequence[str],
    b_paths: Sequence[str],
    count: int,
    output_dir: str,
    concurrency: int = 0,
    orientation: str = "landscape",
) -> List[TaskDescriptor]:
    """
    Generate A+B stitch tasks from balanced A×B combinations.

    Args:
        a_paths: Intro videos (played first)
        b_paths: Main videos (played second)
        count: Number of tasks wanted (capped at len(A) * len(B))
        output_dir: Directory receiving the outputs
        concurrency: Concurrency hint carried by every descriptor
        orientation: "landscape" or "portrait"

    Returns:
        Pending stitch tasks sorted by A index, then B index
    """
    if not a_paths or not b_paths or count <= 0:
        return []

    combinations = select_combinations(
        [a_paths, b_paths], count, SortSpec(priority=[0, 1])
    )
    config = StitchConfig(orientation=orientation)

    tasks = [
        TaskDescriptor(
            files=[
                _task_file(a_paths[a_idx], a_idx, "A", "A"),
                _task_file(b_paths[b_idx], b_idx, "B", "B"),
            ],
            config=config.model_copy(),
            output_dir=output_dir,
            concurrency=concurrency,
        )
        for a_idx, b_idx in combinations
    ]
    logger.info(f"[TaskGenerator] Generated {len(tasks)} stitch tasks")
    return tasks


def generate_paired_stitch_tasks(
    a_paths: Sequence[str],
    b_paths: Sequence[str],
    output_dir: str,
    concurrency: int = 0,
    orientation: str = "landscape",
) -> List[TaskDescriptor]:
    """
    Generate 1:1 stitch tasks: every item of the longer list used once.

    The shorter list cycles, so ``max(len(A), len(B))`` tasks are produced.
    """
    pairs = build_pairs(list(range(len(a_paths))), list(range(len(b_paths))))
    config = StitchConfig(orientation=orientation)

    tasks = [
        TaskDescriptor(
            files=[
                _task_file(a_paths[pair.a], pair.a, "A", "A"),
                _task_file(b_paths[pair.b], pair.b, "B", "B"),
            ],
            config=config.model_copy(),
            output_dir=output_dir,
            concurrency=concurrency,
        )
        for pair in pairs
    ]
    logger.info(f"[TaskGenerator] Generated {len(tasks)} paired stitch tasks")
    return tasks


def generate_merge_tasks(
    b_videos: Sequence[str],
    output_dir: str,
    *,
    a_videos: Optional[Sequence[str]] = None,
    covers: Optional[Sequence[str]] = None,
    bg_images: Optional[Sequence[str]] = None,
    count: int = 1,
    orientation: str = "horizontal",
    concurrency: int = 0,
) -> List[TaskDescriptor]:
    """
    Generate composite merge tasks.

    Sources are combined in priority order cover → A → B; optional sources
    that are empty are left out of the combination. The first background
    image, when given, is attached to every task.

    Args:
        b_videos: Main videos (required)
        output_dir: Directory receiving the outputs
        a_videos: Optional intro videos
        covers: Optional cover stills
        bg_images: Optional background images (only the first is used)
        count: Number of tasks wanted (capped at the combination count)
        orientation: "horizontal" or "vertical"
        concurrency: Concurrency hint carried by every descriptor

    Returns:
        Pending merge tasks
    """
    if not b_videos or count <= 0:
        return []

    valid_covers = list(covers) if covers else None
    valid_a = list(a_videos) if a_videos else None
    valid_bg = list(bg_images) if bg_images else None

    sources: List[Sequence[str]] = []
    if valid_covers:
        sources.append(valid_covers)
    if valid_a:
        sources.append(valid_a)
    sources.append(b_videos)

    actual_count = min(count, max_combinations(sources))
    combinations = select_combinations(
        sources, actual_count, SortSpec(priority=list(range(len(sources))))
    )
    config = MergeConfig(orientation=orientation)

    tasks: List[TaskDescriptor] = []
    for indices in combinations:
        files: List[TaskFile] = []
        position = 0

        if valid_covers:
            files.append(_task_file(valid_covers[indices[position]], indices[position], "cover", "Cover"))
            position += 1

        if valid_a:
            files.append(_task_file(valid_a[indices[position]], indices[position], "A", "A"))
            position += 1

        files.append(_task_file(b_videos[indices[position]], indices[position], "B", "B"))

        if valid_bg:
            files.append(_task_file(valid_bg[0], 0, "bg", "Background"))

        tasks.append(
            TaskDescriptor(
                files=files,
                config=config.model_copy(),
                output_dir=output_dir,
                concurrency=concurrency,
            )
        )

    logger.info(f"[TaskGenerator] Generated {len(tasks)} merge tasks")
    return tasks


def generate_resize_tasks(
    videos: Sequence[str],
    mode: str,
    output_dir: str,
    blur_amount: int = 20,
    concurrency: int = 0,
) -> List[TaskDescriptor]:
    """
    Generate smart-resize tasks: one task per video per target size of ``mode``.

    Returns:
        Pending resize tasks, or ``[]`` for an unknown mode or no videos
    """
    targets = RESIZE_MODES.get(mode)
    if not videos or not targets:
        if videos and not targets:
            logger.warning(f"[TaskGenerator] Unknown resize mode: {mode}")
        return []

    tasks: List[TaskDescriptor] = []
    for position, path in enumerate(videos):
        for target in targets:
            tasks.append(
                TaskDescriptor(
                    files=[_task_file(path, position, "V", "Video")],
                    config=ResizeConfig(
                        mode=mode,
                        width=target["width"],
                        height=target["height"],
                        suffix=target["suffix"],
                        blur_amount=blur_amount,
                    ),
                    output_dir=output_dir,
                    concurrency=concurrency,
                )
            )

    logger.info(f"[TaskGenerator] Generated {len(tasks)} resize tasks ({mode})")
    return tasks
