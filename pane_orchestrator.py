#!/usr/bin/env python3
"""
Pane Orchestrator
=================

Runs several Claude agent tasks side by side, one tmux pane per task, then
waits for every pane to report and prints a summary.

Each pane runs agent_runner.py, which writes ``agent-<index>.json`` into the
session's status directory when its agent finishes. The orchestrator polls
for those files, aggregates them and deletes the directory. The tmux session
stays open afterwards so the panes can be inspected.

Usage:
    python pane_orchestrator.py "fix bug A" "fix bug B"
    python pane_orchestrator.py --cwd ~/src/app --layout even-horizontal \\
        "add tests for the parser" "update the README"

Limitations:
    There is no overall timeout. A runner that dies before it starts
    reporting leaves its pane pending forever; the orchestrator only notices
    runners that exit after they have registered their PID.
"""

import argparse
import logging
import shlex
import shutil
import sys
import time
from pathlib import Path
from typing import Callable

from pane_config import (
    DEFAULT_LAYOUT,
    DEFAULT_MODEL,
    POLL_INTERVAL,
    SESSION_HEIGHT,
    SESSION_WIDTH,
    TMUX_LAYOUTS,
    configure_logging,
    status_dir_for,
)
from status_files import (
    VANISHED_SUMMARY,
    StatusRecord,
    read_status,
    runner_vanished,
    status_path,
)
from temp_cleanup import cleanup_stale_status_dirs
from terminal_launcher import open_terminal_window
from tmux_session import (
    TmuxCommandError,
    TmuxNotFoundError,
    TmuxSession,
    find_tmux,
    is_valid_session_name,
    list_sessions,
)

logger = logging.getLogger(__name__)

# Runner script lives next to this module
AGENT_RUNNER = Path(__file__).parent.resolve() / "agent_runner.py"


def default_session_name() -> str:
    return f"claude-{int(time.time() * 1000):x}"


def format_result_lines(index: int, record: StatusRecord) -> list[str]:
    """Summary lines for one pane's record."""
    duration = f"{record.duration_ms / 1000:.1f}s" if record.duration_ms else "?"
    if record.ok:
        cost = f", ${record.cost_usd:.4f}" if record.cost_usd is not None else ""
        turns = f", {record.num_turns} turns" if record.num_turns else ""
        lines = [f"Agent {index + 1}: done ({duration}{cost}{turns})"]
    else:
        lines = [f"Agent {index + 1}: error ({duration})"]
    lines.append(f"  Task: {record.task}")
    if record.summary:
        lines.append(f"  Summary: {record.summary}")
    return lines


class PaneOrchestrator:
    """Launches one runner per task in a tmux session and collects the results."""

    def __init__(
        self,
        tasks: list[str],
        tmux: TmuxSession,
        cwd: Path,
        model: str = DEFAULT_MODEL,
        layout: str = DEFAULT_LAYOUT,
        status_dir: Path | None = None,
        poll_interval: float = POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the orchestrator.

        Args:
            tasks: Task strings, in pane order
            tmux: Session to create (must not exist yet)
            cwd: Working directory for every agent
            model: Claude model for every agent
            layout: tmux layout re-applied after each split
            status_dir: Where runners report (defaults to the session's temp dir)
            poll_interval: Seconds between completion checks
            sleep: Suspends between checks (injectable for tests)
        """
        self.tasks = list(tasks)
        self.tmux = tmux
        self.cwd = cwd
        self.model = model
        self.layout = layout
        self.status_dir = status_dir or status_dir_for(tmux.name)
        self.poll_interval = poll_interval
        self._sleep = sleep

    def build_runner_command(self, pane_index: int) -> str:
        """Shell command line that starts the runner for one pane.

        Every argument is quoted, so task text with quotes or other shell
        metacharacters reaches the runner as a single argument.
        """
        cmd = [
            sys.executable,
            "-u",  # Force unbuffered stdout/stderr
            str(AGENT_RUNNER),
            # "=" form keeps a task starting with "-" from parsing as a flag
            f"--task={self.tasks[pane_index]}",
            "--cwd", str(self.cwd),
            "--pane-index", str(pane_index),
            "--total-panes", str(len(self.tasks)),
            "--model", self.model,
            "--status-dir", str(self.status_dir),
        ]
        return shlex.join(cmd)

    def launch(self) -> None:
        """Create the status directory and the session with one runner per pane.

        Raises:
            TmuxCommandError: If any tmux command fails.
        """
        self.status_dir.mkdir(parents=True, exist_ok=True)

        pane_id = self.tmux.create(self.cwd, SESSION_WIDTH, SESSION_HEIGHT)
        self.tmux.send_command(pane_id, self.build_runner_command(0))
        logger.info(f"Started agent 1/{len(self.tasks)} in pane {pane_id}")

        for i in range(1, len(self.tasks)):
            pane_id = self.tmux.split(self.cwd)
            self.tmux.send_command(pane_id, self.build_runner_command(i))
            # Re-apply layout after each split to keep panes balanced
            self.tmux.select_layout(self.layout)
            logger.info(f"Started agent {i + 1}/{len(self.tasks)} in pane {pane_id}")

    def open_session(self) -> None:
        """Show the session to the user. Failures are not fatal."""
        if sys.stdin is not None and sys.stdin.isatty():
            returncode = self.tmux.attach()
            if returncode != 0:
                logger.warning(f"tmux attach exited with code {returncode}")
            return

        # Non-interactive (spawned by another tool): open a new terminal window
        if not open_terminal_window(self.tmux.attach_argv()):
            print(f"Attach with: tmux attach -t {shlex.quote(self.tmux.name)}", flush=True)

    def wait_for_completion(self) -> dict[int, StatusRecord]:
        """Block until every pane has reported or its runner is gone.

        Returns:
            Error records for panes whose runner exited without reporting,
            keyed by pane index.
        """
        pending = set(range(len(self.tasks)))
        vanished: dict[int, StatusRecord] = {}

        while True:
            for i in sorted(pending):
                if status_path(self.status_dir, i).exists():
                    pending.discard(i)
                elif runner_vanished(self.status_dir, i):
                    # The runner may have reported just before it exited
                    if status_path(self.status_dir, i).exists():
                        pending.discard(i)
                        continue
                    logger.warning(f"Runner for pane {i} exited without a status file")
                    print(f"Agent {i + 1} exited without reporting a status.", flush=True)
                    vanished[i] = StatusRecord(
                        task=self.tasks[i], status="error", summary=VANISHED_SUMMARY
                    )
                    pending.discard(i)

            if not pending:
                return vanished
            self._sleep(self.poll_interval)

    def collect_results(self, vanished: dict[int, StatusRecord] | None = None) -> list[StatusRecord]:
        vanished = vanished or {}
        return [
            vanished[i] if i in vanished else read_status(self.status_dir, i, task)
            for i, task in enumerate(self.tasks)
        ]

    def print_summary(self, results: list[StatusRecord]) -> None:
        count = len(results)
        print(f"\nAll {count} agent{'' if count == 1 else 's'} completed.\n")
        for i, record in enumerate(results):
            for line in format_result_lines(i, record):
                print(line)
            print("", flush=True)

    def cleanup(self) -> None:
        """Delete the status directory. The result is already reported, so errors are ignored."""
        try:
            shutil.rmtree(self.status_dir)
        except OSError as e:
            logger.debug(f"Could not remove status directory {self.status_dir}: {e}")

    def run(self, attach: bool = True) -> int:
        """Launch, wait, report and clean up. Returns the process exit code."""
        self.launch()

        # Print session info so the caller knows what was created
        print(self.tmux.name, flush=True)

        if attach:
            self.open_session()

        vanished = self.wait_for_completion()
        results = self.collect_results(vanished)
        self.print_summary(results)
        self.cleanup()
        return 0 if all(r.ok for r in results) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claude-panes",
        description="Run Claude agent tasks in parallel, one tmux pane per task",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  claude-panes "fix bug A" "fix bug B"
  claude-panes --cwd ~/src/app --session-name review "review api/" "review web/"
        """,
    )
    parser.add_argument("tasks", nargs="*", metavar="TASK", help="Task for one agent (one pane each)")
    parser.add_argument(
        "--cwd",
        type=str,
        default=str(Path.cwd()),
        help="Working directory for the agents (default: current directory)",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=DEFAULT_MODEL,
        help=f"Claude model to use (default: {DEFAULT_MODEL})",
    )
    parser.add_argument(
        "--session-name",
        type=str,
        default="",
        help="tmux session name (default: claude-<timestamp>)",
    )
    parser.add_argument(
        "--layout",
        type=str,
        default=DEFAULT_LAYOUT,
        help=f"tmux layout: {', '.join(TMUX_LAYOUTS)} (default: {DEFAULT_LAYOUT})",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=POLL_INTERVAL,
        help=f"Seconds between completion checks (default: {POLL_INTERVAL})",
    )
    parser.add_argument(
        "--no-attach",
        action="store_true",
        default=False,
        help="Do not attach or open a terminal window; only wait and print the summary",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the pane orchestrator."""
    parser = build_parser()
    args = parser.parse_intermixed_args(argv)
    configure_logging()

    if not args.tasks:
        parser.print_help(sys.stderr)
        sys.exit(1)

    session_name = args.session_name or default_session_name()
    if not is_valid_session_name(session_name):
        print(f"Error: invalid session name {session_name!r} (':' and '.' are not allowed)", file=sys.stderr)
        sys.exit(1)

    cwd = Path(args.cwd).expanduser().resolve()
    if not cwd.is_dir():
        print(f"Error: working directory does not exist: {cwd}", file=sys.stderr)
        sys.exit(1)

    if args.layout not in TMUX_LAYOUTS:
        print(f"Error: unknown layout {args.layout!r}. Choose from: {', '.join(TMUX_LAYOUTS)}", file=sys.stderr)
        sys.exit(1)

    if args.poll_interval <= 0:
        print("Error: --poll-interval must be positive", file=sys.stderr)
        sys.exit(1)

    try:
        tmux_path = find_tmux()
    except TmuxNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    tmux = TmuxSession(session_name, tmux_path)
    if tmux.exists():
        print(f'Error: tmux session "{session_name}" already exists.', file=sys.stderr)
        sys.exit(1)

    cleanup_stale_status_dirs(list_sessions(tmux_path))

    orchestrator = PaneOrchestrator(
        tasks=args.tasks,
        tmux=tmux,
        cwd=cwd,
        model=args.model,
        layout=args.layout,
        poll_interval=args.poll_interval,
    )

    try:
        exit_code = orchestrator.run(attach=not args.no_attach)
    except TmuxCommandError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print(f"\n\nInterrupted. Agents keep running in tmux session {session_name}.", flush=True)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
