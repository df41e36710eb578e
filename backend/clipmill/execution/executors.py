"""
Task executors: turn one TaskDescriptor into one committed output file.

TaskExecutor is the ``execute_one`` callable handed to the batch runner.
Each call:
1. Resolves the task's input files by category
2. Builds a safe output name
3. Renders into a hidden temp directory via the engine
4. Commits the result into the output directory
5. Removes the temp directory whatever happened

Output naming:
- stitch: ``{A}__{B}.mp4``
- merge:  ``{A}__{B}_{orientation}.mp4`` or ``{B}_{orientation}.mp4``
- resize: ``{name}{suffix}.mp4`` (suffix from the resize target)
"""

import logging
from typing import Callable, Optional

from ..jobs.errors import TaskConfigurationError
from ..jobs.models import (
    MergeConfig,
    ResizeConfig,
    StitchConfig,
    TaskDescriptor,
    TaskFile,
)
from .base import ExecutionEngine, LogCallback
from .commands import build_merge_command, build_resize_command, build_stitch_command
from .naming import display_name, generate_combined_file_name, generate_file_name
from .output import SafeOutput

logger = logging.getLogger(__name__)


class TaskExecutor:
    """
    Executes task descriptors against one engine.

    Holds no per-task state: the same instance serves every concurrently
    running task.
    """

    def __init__(self, engine: ExecutionEngine):
        self.engine = engine

    async def __call__(self, descriptor: TaskDescriptor, on_log: LogCallback) -> str:
        """
        Execute ``descriptor`` once.

        Returns:
            Final path of the committed output

        Raises:
            TaskConfigurationError: A required input file is missing
            ExecutionError: Engine failure or output commit failure
        """
        config = descriptor.config
        if isinstance(config, StitchConfig):
            return await self._stitch(descriptor, config, on_log)
        if isinstance(config, MergeConfig):
            return await self._merge(descriptor, config, on_log)
        if isinstance(config, ResizeConfig):
            return await self._resize(descriptor, config, on_log)
        raise TaskConfigurationError(descriptor.id, f"Unsupported task kind: {config.kind}")

    async def _stitch(self, descriptor: TaskDescriptor, config: StitchConfig, on_log: LogCallback) -> str:
        a_file = _require(descriptor, "A")
        b_file = _require(descriptor, "B")

        name_output = _combined_name(a_file, b_file, "")

        async def render(out_path: str) -> None:
            await self.engine.run(
                build_stitch_command(
                    a_file.path,
                    b_file.path,
                    out_path,
                    orientation=config.orientation,
                    quality=config.quality,
                ),
                on_log,
            )

        return await self._render_and_commit(descriptor, "stitch", name_output, render)

    async def _merge(self, descriptor: TaskDescriptor, config: MergeConfig, on_log: LogCallback) -> str:
        b_file = _require(descriptor, "B")
        a_file = descriptor.find_file("A")
        bg_file = descriptor.find_file("bg")
        cover_file = descriptor.find_file("cover")

        suffix = f"_{config.orientation}"
        if a_file:
            name_output = _combined_name(a_file, b_file, suffix)
        else:
            name_output = _single_name(b_file, suffix)

        async def render(out_path: str) -> None:
            await self.engine.run(
                build_merge_command(
                    b_file.path,
                    out_path,
                    a_path=_path_of(a_file),
                    bg_image=_path_of(bg_file),
                    cover_image=_path_of(cover_file),
                    orientation=config.orientation,
                    quality=config.quality,
                    a_position=config.a_position,
                    b_position=config.b_position,
                    bg_position=config.bg_position,
                    cover_position=config.cover_position,
                    cover_duration=config.cover_duration,
                ),
                on_log,
            )

        return await self._render_and_commit(descriptor, "merge", name_output, render)

    async def _resize(self, descriptor: TaskDescriptor, config: ResizeConfig, on_log: LogCallback) -> str:
        video = _require(descriptor, "V")

        async def render(out_path: str) -> None:
            await self.engine.run(
                build_resize_command(
                    video.path,
                    out_path,
                    config.width,
                    config.height,
                    blur_amount=config.blur_amount,
                ),
                on_log,
            )

        return await self._render_and_commit(
            descriptor, "resize", _single_name(video, config.suffix), render
        )

    async def _render_and_commit(self, descriptor, prefix, name_output, render) -> str:
        safe_output = SafeOutput(descriptor.output_dir, prefix=prefix)
        try:
            file_name = name_output(descriptor.output_dir)
            temp_path = safe_output.get_temp_output_path(file_name, descriptor.id)
            await render(temp_path)
            final_path = safe_output.commit(temp_path)
        finally:
            safe_output.cleanup(descriptor.id)

        logger.info(f"[TaskExecutor] {prefix} task {descriptor.id} -> {final_path}")
        return final_path


def _require(descriptor: TaskDescriptor, category: str) -> TaskFile:
    task_file = descriptor.find_file(category)
    if task_file is None:
        raise TaskConfigurationError(
            descriptor.id, f"{descriptor.config.kind} task has no '{category}' file"
        )
    return task_file


def _path_of(task_file: Optional[TaskFile]) -> Optional[str]:
    return task_file.path if task_file else None


# Output name builders take the output directory and return a unique file name
NameOutput = Callable[[str], str]


def _combined_name(a_file: TaskFile, b_file: TaskFile, suffix: str) -> NameOutput:
    def name(output_dir: str) -> str:
        return generate_combined_file_name(
            output_dir, display_name(a_file.path), display_name(b_file.path), suffix=suffix
        )
    return name


def _single_name(task_file: TaskFile, suffix: str) -> NameOutput:
    def name(output_dir: str) -> str:
        return generate_file_name(output_dir, display_name(task_file.path), suffix=suffix)
    return name
