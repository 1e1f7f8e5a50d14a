"""
Terminal Window Launcher
========================

Opens a new terminal window attached to a tmux session when the orchestrator
runs without an interactive terminal (for example when another tool spawned
it). Everything here is best-effort: failures are logged and reported as a
False return, never raised.
"""

import json
import logging
import os
import shlex
import shutil
import subprocess
import sys

logger = logging.getLogger(__name__)

# Linux terminal emulators and the flag that precedes the command to run
LINUX_TERMINALS: list[tuple[str, list[str]]] = [
    ("x-terminal-emulator", ["-e"]),
    ("gnome-terminal", ["--"]),
    ("konsole", ["-e"]),
    ("xterm", ["-e"]),
]


def _osascript(application: str, statement: str, attach_cmd: str) -> list[str]:
    # json.dumps yields a double-quoted string with the escaping AppleScript expects
    script = f'tell application "{application}" to {statement} {json.dumps(attach_cmd)}'
    return ["osascript", "-e", script]


def build_macos_command(attach_argv: list[str], term_program: str) -> list[str]:
    attach_cmd = shlex.join(attach_argv)
    if "iTerm" in term_program:
        return _osascript("iTerm2", "create window with default profile command", attach_cmd)
    return _osascript("Terminal", "do script", attach_cmd)


def open_terminal_window(attach_argv: list[str]) -> bool:
    """Open a terminal window running ``attach_argv``.

    Returns True if a window was launched.
    """
    if sys.platform == "darwin":
        cmd = build_macos_command(attach_argv, os.environ.get("TERM_PROGRAM", ""))
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True)
            return True
        except (OSError, subprocess.CalledProcessError) as e:
            logger.warning(f"Could not open a terminal window via osascript: {e}")
            return False

    for terminal, flag in LINUX_TERMINALS:
        if not shutil.which(terminal):
            continue
        try:
            subprocess.Popen(
                [terminal, *flag, *attach_argv],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
            return True
        except OSError as e:
            logger.warning(f"Could not launch {terminal}: {e}")
            return False

    logger.info("No supported terminal launcher found")
    return False
