"""
clipmill CLI - thin entrypoint for operator commands.

Commands:
- plan:  generate task descriptors and write them as JSON
- run:   execute a task file and print the result JSON
- serve: run the HTTP API

Design Principles:
==================
- CLI is a dispatcher only
- No execution logic inside CLI
- Surface errors verbatim from the execution layer
- Exit non-zero on failure
- No interactive prompts

Exit Codes:
===========
- 0: Success (every task done)
- 1: Validation error (bad task file, bad settings, nothing to do)
- 2: Execution error (every task failed)
- 3: Partial completion
- 4: System error (file not found, invalid JSON, ffmpeg missing)
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

import uvicorn
from pydantic import TypeAdapter, ValidationError

from .config import ConfigError, Settings
from .execution.events import BatchEvent, log_event
from .generation.tasks import (
    RESIZE_MODES,
    generate_merge_tasks,
    generate_paired_stitch_tasks,
    generate_resize_tasks,
    generate_stitch_tasks,
)
from .jobs.models import BatchOutcome, TaskDescriptor
from .main import create_app
from .service import BatchService

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VALIDATION = 1
EXIT_EXECUTION = 2
EXIT_PARTIAL = 3
EXIT_SYSTEM = 4

_OUTCOME_EXIT_CODES = {
    BatchOutcome.COMPLETE: EXIT_SUCCESS,
    BatchOutcome.FAILED: EXIT_EXECUTION,
    BatchOutcome.PARTIAL: EXIT_PARTIAL,
    BatchOutcome.EMPTY: EXIT_VALIDATION,
}

_task_list_adapter = TypeAdapter(List[TaskDescriptor])


# ============================================================================
# Task file I/O
# ============================================================================


def _write_tasks(tasks: List[TaskDescriptor], output: Optional[str]) -> None:
    payload = json.dumps([t.to_wire() for t in tasks], indent=2, ensure_ascii=False)
    if output:
        Path(output).write_text(payload + "\n", encoding="utf-8")
        print(f"Wrote {len(tasks)} task(s) to {output}", file=sys.stderr)
    else:
        print(payload)


def _load_tasks(tasks_path: Path) -> List[TaskDescriptor]:
    """
    Load task descriptors from a JSON file.

    Accepts a bare list or an object with a "tasks" list.

    Raises:
        SystemExit(4): File not found or invalid JSON
        SystemExit(1): Task schema error
    """
    if not tasks_path.exists():
        print(f"ERROR: Task file not found: {tasks_path}", file=sys.stderr)
        sys.exit(EXIT_SYSTEM)

    try:
        data = json.loads(tasks_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"ERROR: Invalid JSON in {tasks_path}: {e}", file=sys.stderr)
        sys.exit(EXIT_SYSTEM)

    if isinstance(data, dict):
        data = data.get("tasks", [])

    try:
        return _task_list_adapter.validate_python(data)
    except ValidationError as e:
        print(f"ERROR: Invalid task file {tasks_path}:\n{e}", file=sys.stderr)
        sys.exit(EXIT_VALIDATION)


# ============================================================================
# Commands
# ============================================================================


def cmd_plan(args: argparse.Namespace) -> NoReturn:
    """
    Generate tasks and write them as JSON.

    Exit codes:
        0: Tasks written
        1: No tasks could be generated from the given inputs
    """
    if args.kind == "stitch":
        tasks = generate_stitch_tasks(
            args.a, args.b, args.count, args.output_dir,
            concurrency=args.concurrency, orientation=args.orientation,
        )
    elif args.kind == "pairs":
        tasks = generate_paired_stitch_tasks(
            args.a, args.b, args.output_dir,
            concurrency=args.concurrency, orientation=args.orientation,
        )
    elif args.kind == "merge":
        tasks = generate_merge_tasks(
            args.b, args.output_dir,
            a_videos=args.a, covers=args.cover, bg_images=args.bg,
            count=args.count, orientation=args.orientation,
            concurrency=args.concurrency,
        )
    else:
        tasks = generate_resize_tasks(
            args.videos, args.mode, args.output_dir,
            blur_amount=args.blur, concurrency=args.concurrency,
        )

    if not tasks:
        print("ERROR: No tasks generated from the given inputs", file=sys.stderr)
        sys.exit(EXIT_VALIDATION)

    _write_tasks(tasks, args.output)
    sys.exit(EXIT_SUCCESS)


def cmd_run(args: argparse.Namespace) -> NoReturn:
    """
    Execute a task file, writing result JSON to stdout.

    Exit codes:
        0: Every task done
        1: Validation error (bad task file or empty task list)
        2: Every task failed
        3: Partial completion
        4: Task file missing/unreadable or ffmpeg not available
    """
    settings: Settings = args.settings
    try:
        settings = settings.with_overrides(
            default_concurrency=args.concurrency,
            max_attempts=args.max_attempts,
        )
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_VALIDATION)

    tasks = _load_tasks(Path(args.tasks).resolve())
    if not tasks:
        print("ERROR: Task file contains no tasks", file=sys.stderr)
        sys.exit(EXIT_VALIDATION)

    result = asyncio.run(_run_tasks(tasks, settings, args.events, args.concurrency))
    if result is None:
        sys.exit(EXIT_SYSTEM)

    print(json.dumps(result, indent=2, ensure_ascii=False))
    sys.exit(_OUTCOME_EXIT_CODES[BatchOutcome(result["outcome"])])


async def _run_tasks(
    tasks: List[TaskDescriptor],
    settings: Settings,
    events_path: Optional[str],
    concurrency: Optional[int] = None,
) -> Optional[Dict[str, Any]]:
    # An explicit --concurrency beats the hint stored in the task file
    service = BatchService(settings, concurrency=concurrency)
    if not service.engine.available:
        print("ERROR: ffmpeg not found (set CLIPMILL_FFMPEG_PATH or add it to PATH)", file=sys.stderr)
        return None

    events_file = open(events_path, "w", encoding="utf-8") if events_path else None

    def consume(event: BatchEvent) -> None:
        log_event(event)
        if events_file is not None:
            events_file.write(json.dumps(event.to_dict(), ensure_ascii=False) + "\n")

    try:
        aggregate = await service.run_with_channel(tasks, consume)
    finally:
        await service.shutdown()
        if events_file is not None:
            events_file.close()

    return {
        "aggregate": aggregate.to_dict(),
        "outcome": aggregate.outcome.value,
        "tasks": [t.to_wire() for t in tasks],
    }


def cmd_serve(args: argparse.Namespace) -> NoReturn:
    """Run the HTTP API until interrupted."""
    uvicorn.run(
        create_app(args.settings),
        host=args.host,
        port=args.port,
        log_level=args.settings.log_level.lower(),
    )
    sys.exit(EXIT_SUCCESS)


# ============================================================================
# Argument parsing
# ============================================================================


def _add_plan_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--output-dir', required=True, help='Directory receiving the rendered files')
    parser.add_argument('--concurrency', type=int, default=0, help='Concurrency hint stored in every task')
    parser.add_argument('-o', '--output', default=None, help='Write tasks here (default: stdout)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='clipmill',
        description='clipmill - batch media transcoding over FFmpeg',
    )
    subparsers = parser.add_subparsers(dest='command', required=True, help='Command to execute')

    # Plan command
    parser_plan = subparsers.add_parser('plan', help='Generate task descriptors as JSON')
    plan_kinds = parser_plan.add_subparsers(dest='kind', required=True, help='Task kind')

    plan_stitch = plan_kinds.add_parser('stitch', help='Balanced A+B stitching')
    plan_stitch.add_argument('--a', nargs='+', required=True, help='Intro videos')
    plan_stitch.add_argument('--b', nargs='+', required=True, help='Main videos')
    plan_stitch.add_argument('--count', type=int, required=True, help='Number of tasks wanted')
    plan_stitch.add_argument('--orientation', choices=['landscape', 'portrait'], default='landscape')
    _add_plan_common(plan_stitch)

    plan_pairs = plan_kinds.add_parser('pairs', help='1:1 A+B stitching')
    plan_pairs.add_argument('--a', nargs='+', required=True, help='Intro videos')
    plan_pairs.add_argument('--b', nargs='+', required=True, help='Main videos')
    plan_pairs.add_argument('--orientation', choices=['landscape', 'portrait'], default='landscape')
    _add_plan_common(plan_pairs)

    plan_merge = plan_kinds.add_parser('merge', help='Composite merge over a background')
    plan_merge.add_argument('--b', nargs='+', required=True, help='Main videos')
    plan_merge.add_argument('--a', nargs='*', default=[], help='Optional intro videos')
    plan_merge.add_argument('--cover', nargs='*', default=[], help='Optional cover stills')
    plan_merge.add_argument('--bg', nargs='*', default=[], help='Optional background image')
    plan_merge.add_argument('--count', type=int, default=1, help='Number of tasks wanted')
    plan_merge.add_argument('--orientation', choices=['horizontal', 'vertical'], default='horizontal')
    _add_plan_common(plan_merge)

    plan_resize = plan_kinds.add_parser('resize', help='Smart resize with blurred fill')
    plan_resize.add_argument('--videos', nargs='+', required=True, help='Videos to resize')
    plan_resize.add_argument('--mode', choices=sorted(RESIZE_MODES), required=True)
    plan_resize.add_argument('--blur', type=int, default=20, help='Background blur amount (0 = none)')
    _add_plan_common(plan_resize)

    parser_plan.set_defaults(func=cmd_plan)

    # Run command
    parser_run = subparsers.add_parser('run', help='Execute a task JSON file')
    parser_run.add_argument('tasks', help='Path to task JSON file')
    parser_run.add_argument('--concurrency', type=int, default=None, help='Queue concurrency (beats the task file hint)')
    parser_run.add_argument('--max-attempts', type=int, default=None, help='Override attempts per task')
    parser_run.add_argument('--events', default=None, help='Write events as JSON lines to this file')
    parser_run.set_defaults(func=cmd_run)

    # Serve command
    parser_serve = subparsers.add_parser('serve', help='Run the HTTP API')
    parser_serve.add_argument('--host', default='127.0.0.1')
    parser_serve.add_argument('--port', type=int, default=8085)
    parser_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entrypoint.

    Parses arguments, loads settings from the environment and dispatches
    to subcommands.
    """
    args = build_parser().parse_args(argv)

    try:
        args.settings = Settings.from_env()
    except ConfigError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(EXIT_VALIDATION)

    logging.basicConfig(
        level=args.settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    args.func(args)


if __name__ == '__main__':
    main()
