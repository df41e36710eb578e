"""
FFmpeg execution engine.

Real transcoding via asyncio subprocesses.

Design rules:
- One subprocess per run
- stderr is streamed to the log callback as it arrives
- Non-zero exit code = failure, carrying the stderr tail
- -nostdin is injected after a leading -y so FFmpeg never waits on stdin
- Binary discovery: explicit path, then PATH, then common install locations
  (an explicit path that does not exist is NOT silently replaced)
"""

import asyncio
import codecs
import logging
import os
import shlex
import shutil
from typing import List, Optional, Sequence

from .base import (
    EngineExecutionError,
    EngineNotAvailableError,
    EngineType,
    ExecutionEngine,
    LogCallback,
)

logger = logging.getLogger(__name__)

# Common install locations checked after PATH
COMMON_FFMPEG_PATHS = [
    "/usr/local/bin/ffmpeg",
    "/usr/bin/ffmpeg",
    "/opt/homebrew/bin/ffmpeg",
]

# Amount of stderr kept in EngineExecutionError
STDERR_TAIL_CHARS = 8000

READ_CHUNK_BYTES = 4096


class FFmpegEngine(ExecutionEngine):
    """
    FFmpeg-based execution engine.

    Stateless apart from the cached binary path, so one instance is shared
    by every concurrently running task.
    """

    def __init__(self, ffmpeg_path: Optional[str] = None):
        """
        Initialize FFmpeg engine.

        Args:
            ffmpeg_path: Explicit binary path; discovered when omitted
        """
        self._configured_path = ffmpeg_path
        self._ffmpeg_path: Optional[str] = None

    @property
    def engine_type(self) -> EngineType:
        return EngineType.FFMPEG

    @property
    def name(self) -> str:
        return "FFmpeg"

    @property
    def available(self) -> bool:
        """Check if ffmpeg is installed and accessible."""
        return self.find_ffmpeg() is not None

    def find_ffmpeg(self) -> Optional[str]:
        """Find the ffmpeg binary path."""
        if self._ffmpeg_path:
            return self._ffmpeg_path

        if self._configured_path:
            if os.path.isfile(self._configured_path) and os.access(self._configured_path, os.X_OK):
                self._ffmpeg_path = self._configured_path
            return self._ffmpeg_path

        ffmpeg_path = shutil.which("ffmpeg")
        if ffmpeg_path:
            self._ffmpeg_path = ffmpeg_path
            return ffmpeg_path

        for path in COMMON_FFMPEG_PATHS:
            if os.path.isfile(path) and os.access(path, os.X_OK):
                self._ffmpeg_path = path
                return path

        return None

    @staticmethod
    def prepare_args(args: Sequence[str]) -> List[str]:
        """Inject -nostdin after a leading -y."""
        final_args = list(args)
        if final_args[:1] == ["-y"]:
            final_args = ["-y", "-nostdin"] + final_args[1:]
        return final_args

    async def run(self, args: Sequence[str], on_log: Optional[LogCallback] = None) -> None:
        ffmpeg_path = self.find_ffmpeg()
        if not ffmpeg_path:
            where = self._configured_path or "PATH"
            raise EngineNotAvailableError(EngineType.FFMPEG, f"ffmpeg not found ({where})")

        final_args = self.prepare_args(args)
        command = shlex.join([ffmpeg_path] + final_args)
        logger.debug(f"[FFmpeg] {command}")
        if on_log:
            await on_log(f"$ {command}\n")

        try:
            process = await asyncio.create_subprocess_exec(
                ffmpeg_path,
                *final_args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"[FFmpeg] Failed to start {ffmpeg_path}: {e}")
            raise EngineNotAvailableError(EngineType.FFMPEG, str(e)) from e

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        stderr_parts: List[str] = []

        assert process.stderr is not None
        try:
            while True:
                chunk = await process.stderr.read(READ_CHUNK_BYTES)
                if not chunk:
                    break
                text = decoder.decode(chunk)
                if not text:
                    continue
                stderr_parts.append(text)
                if on_log:
                    await on_log(text)

            tail = decoder.decode(b"", final=True)
            if tail:
                stderr_parts.append(tail)
                if on_log:
                    await on_log(tail)

            exit_code = await process.wait()
        finally:
            if process.returncode is None:
                # Reader failed or was cancelled: never leave the process behind
                logger.warning(f"[FFmpeg] Killing pid {process.pid}")
                process.kill()
                await process.wait()

        if exit_code != 0:
            stderr = "".join(stderr_parts)[-STDERR_TAIL_CHARS:]
            logger.debug(f"[FFmpeg] Exit code {exit_code}")
            raise EngineExecutionError(EngineType.FFMPEG, exit_code=exit_code, stderr=stderr)
