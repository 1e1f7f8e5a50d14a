"""
Status File Handshake
=====================

Runners report completion by writing one JSON record per pane into a shared
status directory; the orchestrator polls for the files and reads them once
every pane has reported.

Layout of a status directory::

    <tmp>/claude-tmux-<session>/
        agent-0.json    StatusRecord written once by runner 0 on exit
        agent-0.pid     "<pid>:<create_time>" written by runner 0 on start
        agent-1.json
        ...

Each file has exactly one writer (its runner) and one reader (the
orchestrator). File existence is the completion signal, so records are
written to a temporary name and renamed into place.
"""

import logging
import os
from pathlib import Path
from typing import Literal

import psutil
from pydantic import BaseModel, ValidationError, field_validator

from pane_config import SUMMARY_MAX_CHARS

logger = logging.getLogger(__name__)

UNREADABLE_SUMMARY = "Could not read status file"
VANISHED_SUMMARY = "Runner exited without writing a status file"


class StatusRecord(BaseModel):
    """Completion record for one pane."""

    task: str
    status: Literal["done", "error"]
    summary: str = ""
    duration_ms: int | None = None
    cost_usd: float | None = None
    num_turns: int | None = None

    @field_validator("summary", mode="before")
    @classmethod
    def _truncate_summary(cls, value):
        if value is None:
            return ""
        return str(value)[:SUMMARY_MAX_CHARS]

    @property
    def ok(self) -> bool:
        return self.status == "done"


def status_path(status_dir: Path, pane_index: int) -> Path:
    return Path(status_dir) / f"agent-{pane_index}.json"


def marker_path(status_dir: Path, pane_index: int) -> Path:
    return Path(status_dir) / f"agent-{pane_index}.pid"


def write_status(status_dir: Path, pane_index: int, record: StatusRecord) -> Path:
    """Write a pane's record atomically.

    Creates the status directory when missing, since a runner can start
    before the orchestrator has finished creating it.

    Raises:
        OSError: If the directory or file cannot be written.
    """
    path = status_path(status_dir, pane_index)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(record.model_dump_json(indent=2) + "\n", encoding="utf-8")
    os.replace(tmp_path, path)
    return path


def read_status(status_dir: Path, pane_index: int, task: str) -> StatusRecord:
    """Read a pane's record, substituting an error record if it is unusable."""
    path = status_path(status_dir, pane_index)
    try:
        return StatusRecord.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValidationError) as e:
        logger.warning(f"Unreadable status file {path}: {e}")
        return StatusRecord(task=task, status="error", summary=UNREADABLE_SUMMARY)


# =============================================================================
# Runner liveness markers
# =============================================================================

def write_marker(status_dir: Path, pane_index: int) -> None:
    """Record this process's PID and creation time for liveness checks.

    Stores "PID:CREATE_TIME" so a reused PID is not mistaken for the runner.
    Best-effort: failures are logged and ignored.
    """
    try:
        pid = os.getpid()
        create_time = psutil.Process(pid).create_time()
        path = marker_path(status_dir, pane_index)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"{pid}:{create_time}", encoding="utf-8")
    except (psutil.Error, OSError) as e:
        logger.warning(f"Could not write runner marker: {e}")


def runner_vanished(status_dir: Path, pane_index: int) -> bool:
    """True if the pane's runner started and is no longer running.

    A pane without a marker has not started yet (or failed before it could
    write one) and is never reported as vanished.
    """
    path = marker_path(status_dir, pane_index)
    try:
        content = path.read_text(encoding="utf-8").strip()
    except OSError:
        return False

    try:
        pid_str, create_time_str = content.split(":", 1)
        pid = int(pid_str)
        stored_create_time = float(create_time_str)
    except ValueError:
        logger.debug(f"Malformed runner marker {path}: {content!r}")
        return False

    if not psutil.pid_exists(pid):
        return True
    try:
        proc = psutil.Process(pid)
        # Allow 1 second tolerance for creation time comparison
        return abs(proc.create_time() - stored_create_time) > 1.0
    except psutil.NoSuchProcess:
        return True
    except psutil.AccessDenied:
        return False
