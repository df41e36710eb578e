"""
Collision-safe output writing.

FFmpeg writes into a hidden per-task temp directory inside the output
directory; the finished file is then renamed into place under a name
that does not clash with anything already there. Concurrent tasks
producing the same base name therefore never overwrite each other and
a crashed run never leaves a half-written file under its final name.
"""

import logging
import os
import secrets
import shutil
from pathlib import Path
from typing import Dict, Optional

from .errors import OutputCommitError
from .naming import generate_unique_filename

logger = logging.getLogger(__name__)


class SafeOutput:
    """
    Temp-then-commit output manager for one output directory.

    Usage:
        safe = SafeOutput(output_dir, prefix="stitch")
        try:
            temp_path = safe.get_temp_output_path("a__b.mp4", task_id)
            await engine.run([... temp_path])
            final_path = safe.commit(temp_path)
        finally:
            safe.cleanup(task_id)
    """

    def __init__(self, output_dir: str, prefix: str = "task"):
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self._temp_dirs: Dict[str, Path] = {}

    def create_task_temp_dir(self, task_id: str) -> Path:
        """Create a hidden temp directory for ``task_id`` inside the output dir."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        temp_dir = self.output_dir / f".{self.prefix}_{task_id}_{secrets.token_hex(6)}"
        temp_dir.mkdir(parents=True, exist_ok=True)
        self._temp_dirs[task_id] = temp_dir
        return temp_dir

    def get_temp_output_path(self, filename: str, task_id: str) -> str:
        """Path ``filename`` would be written to inside the task's temp dir."""
        temp_dir = self._temp_dirs.get(task_id) or self.create_task_temp_dir(task_id)
        return str(temp_dir / filename)

    def commit(self, temp_path: str) -> str:
        """
        Move a finished temp file into the output directory.

        Returns:
            Final path of the committed file

        Raises:
            OutputCommitError: If the temp file is missing or cannot be moved
        """
        source = Path(temp_path)
        if not source.is_file():
            raise OutputCommitError(f"Temp output does not exist: {temp_path}")

        final_name = generate_unique_filename(str(self.output_dir), source.name)
        final_path = self.output_dir / final_name
        try:
            os.replace(source, final_path)
        except OSError as e:
            raise OutputCommitError(f"Failed to commit {source.name}: {e}") from e

        logger.debug(f"[SafeOutput] Committed {final_path}")
        return str(final_path)

    def cleanup(self, task_id: Optional[str] = None) -> None:
        """Remove the temp directory of ``task_id`` (all of them when omitted)."""
        if task_id is None:
            self.cleanup_all()
            return

        temp_dir = self._temp_dirs.pop(task_id, None)
        if temp_dir is None:
            return
        try:
            shutil.rmtree(temp_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[SafeOutput] Failed to remove temp dir {temp_dir}: {e}")

    def cleanup_all(self) -> None:
        for task_id in list(self._temp_dirs):
            self.cleanup(task_id)
