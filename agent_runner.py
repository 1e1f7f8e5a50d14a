#!/usr/bin/env python3
"""
Agent Runner
============

Drives one Claude agent session inside a tmux pane, streams its progress to
the pane, and writes a status record when the session ends so the
orchestrator can collect it.

Usage (normally launched by pane_orchestrator.py, one per pane):
    python agent_runner.py --task "fix the flaky login test" \\
        --pane-index 0 --total-panes 3 --status-dir /tmp/claude-tmux-claude-19a2f
"""

import argparse
import asyncio
import logging
import os
import sys
import time
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Callable

from claude_agent_sdk import AssistantMessage, ResultMessage, TextBlock, query

from auth import AUTH_ERROR_HELP, is_auth_failure
from client import create_options
from pane_config import DEFAULT_MODEL, configure_logging
from pane_format import bold_color, color, color_for_pane, dim, format_message, separator
from status_files import StatusRecord, write_marker, write_status

logger = logging.getLogger(__name__)

QueryFn = Callable[..., AsyncIterator[Any]]


@dataclass
class PaneRun:
    """Everything one runner needs to know about its pane."""

    task: str
    cwd: Path
    model: str = DEFAULT_MODEL
    pane_index: int = 0
    total_panes: int = 1
    status_dir: Path | None = None

    @property
    def pane_color(self) -> str:
        return color_for_pane(self.pane_index)


def print_banner(run: PaneRun) -> None:
    pane_color = run.pane_color
    print("")
    print(separator(pane_color))
    print(bold_color(pane_color, f"  Agent {run.pane_index + 1}/{run.total_panes}"))
    print(color(pane_color, f"  Task: {run.task}"))
    print(dim(f"  CWD: {run.cwd}"))
    print(dim(f"  Model: {run.model}"))
    print(separator(pane_color))
    print("", flush=True)


def report_status(run: PaneRun, record: StatusRecord) -> None:
    """Write the pane's status record; a failed write is only reported."""
    if not run.status_dir:
        return
    try:
        write_status(run.status_dir, run.pane_index, record)
    except OSError as e:
        print(dim(f"  Warning: could not write status file: {e}"), file=sys.stderr, flush=True)


async def drive_agent(run: PaneRun, query_fn: QueryFn = query) -> StatusRecord:
    """
    Run the agent session to completion, printing each event as it arrives.

    Returns:
        A "done" record summarizing the session.

    Raises:
        Exception: Whatever the agent engine raises; the caller turns it into
            an "error" record.
    """
    last_assistant_text = ""
    final_result = ""
    result_meta: dict[str, Any] = {}

    options = create_options(run.cwd, run.model)
    async for message in query_fn(prompt=run.task, options=options):
        for line in format_message(message, run.pane_color):
            print(line, flush=True)

        # Capture the last assistant text for the summary
        if isinstance(message, AssistantMessage):
            for block in message.content:
                if isinstance(block, TextBlock) and block.text:
                    last_assistant_text = block.text

        elif isinstance(message, ResultMessage):
            result_meta = {
                "duration_ms": message.duration_ms or 0,
                "cost_usd": message.total_cost_usd or 0,
                "num_turns": message.num_turns or 0,
            }
            final_result = message.result or ""

    return StatusRecord(
        task=run.task,
        status="done",
        summary=last_assistant_text or final_result,
        duration_ms=result_meta.get("duration_ms", 0),
        cost_usd=result_meta.get("cost_usd", 0),
        num_turns=result_meta.get("num_turns", 0),
    )


def report_failure(
    run: PaneRun,
    message: str,
    started: float,
    trace: str | None,
    needs_login: bool = False,
) -> StatusRecord:
    """Print the error banner and build the pane's error record."""
    print(bold_color("red", f"\n  Error: {message}"), file=sys.stderr)
    if trace:
        print(dim(trace), file=sys.stderr)
    if needs_login:
        print(AUTH_ERROR_HELP, file=sys.stderr)
    sys.stderr.flush()

    return StatusRecord(
        task=run.task,
        status="error",
        summary=f"Error: {message}",
        duration_ms=int((time.monotonic() - started) * 1000),
        cost_usd=0,
        num_turns=0,
    )


def run_pane(run: PaneRun, query_fn: QueryFn = query) -> int:
    """Run one pane end to end. Returns the process exit code."""
    print_banner(run)
    if run.status_dir:
        write_marker(run.status_dir, run.pane_index)

    started = time.monotonic()
    try:
        record = asyncio.run(drive_agent(run, query_fn))
    except KeyboardInterrupt:
        report_status(run, report_failure(run, "Interrupted", started, None))
        return 1
    except Exception as e:
        logger.debug("Agent session failed", exc_info=True)
        record = report_failure(
            run, str(e) or type(e).__name__, started, traceback.format_exc(), is_auth_failure(e)
        )
        report_status(run, record)
        return 1
    except BaseException as e:
        # Cancellation or exit from inside the engine: record it, then let it propagate
        record = report_failure(run, str(e) or type(e).__name__, started, traceback.format_exc())
        report_status(run, record)
        raise

    report_status(run, record)
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run one Claude agent task inside a tmux pane",
    )
    parser.add_argument("--task", type=str, default="", help="Task for the agent")
    parser.add_argument(
        "--cwd",
        type=str,
        default=os.getcwd(),
        help="Working directory for the agent (default: current directory)",
    )
    parser.add_argument("--pane-index", type=int, default=0, help="0-based pane index")
    parser.add_argument("--total-panes", type=int, default=1, help="Number of panes in the session")
    parser.add_argument(
        "--model",
        type=str,
        default=DEFAULT_MODEL,
        help=f"Claude model to use (default: {DEFAULT_MODEL})",
    )
    parser.add_argument(
        "--status-dir",
        type=str,
        default="",
        help="Directory for the completion status file (omit to skip status reporting)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Entry point for a single pane."""
    args = parse_args(argv)
    configure_logging()

    if not args.task:
        print("Error: --task is required", file=sys.stderr)
        sys.exit(1)

    run = PaneRun(
        task=args.task,
        cwd=Path(args.cwd),
        model=args.model,
        pane_index=args.pane_index,
        total_panes=args.total_panes,
        status_dir=Path(args.status_dir) if args.status_dir else None,
    )
    sys.exit(run_pane(run))


if __name__ == "__main__":
    main()
