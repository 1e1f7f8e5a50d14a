"""
Temp Cleanup Module
===================

Removes status directories left behind by earlier runs.

A status directory survives when its orchestrator was killed before
aggregation, or when a pane never reported. Called at orchestrator startup.
A directory is only deleted when it is older than the age limit AND its tmux
session is gone, so a long-running session elsewhere keeps its directory.
"""

import logging
import shutil
import time
from pathlib import Path

from pane_config import STATUS_DIR_PREFIX, get_status_root

logger = logging.getLogger(__name__)

# Max age in seconds before a status directory is considered stale (24 hours)
MAX_AGE_SECONDS = 24 * 60 * 60


def cleanup_stale_status_dirs(
    live_sessions: set[str],
    max_age_seconds: int = MAX_AGE_SECONDS,
    root: Path | None = None,
) -> int:
    """
    Delete stale status directories.

    Args:
        live_sessions: Names of tmux sessions that still exist.
        max_age_seconds: Minimum age before a directory may be deleted.
        root: Directory to scan (defaults to the shared temp area).

    Returns:
        Number of directories deleted. Failures are logged, not raised.
    """
    root = root or get_status_root()
    cutoff_time = time.time() - max_age_seconds
    deleted = 0

    for item in root.glob(f"{STATUS_DIR_PREFIX}*"):
        if not item.is_dir():
            continue
        session_name = item.name[len(STATUS_DIR_PREFIX):]
        if session_name in live_sessions:
            continue
        try:
            if item.stat().st_mtime >= cutoff_time:
                continue
            shutil.rmtree(item)
            deleted += 1
            logger.debug(f"Deleted stale status directory: {item}")
        except OSError as e:
            logger.debug(f"Failed to delete {item}: {e}")

    if deleted:
        logger.info(f"Temp cleanup: removed {deleted} stale status directories")
    return deleted
