"""
Tmux Session Control
====================

Thin synchronous wrapper around the tmux command line. Every call blocks
until tmux returns, because pane ids and layout depend on earlier commands
having taken effect.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

TMUX_INSTALL_HINT = "Install it with: brew install tmux (macOS) or apt install tmux (Debian/Ubuntu)"


class TmuxError(RuntimeError):
    """Base class for tmux failures."""


class TmuxNotFoundError(TmuxError):
    """The tmux executable is not on PATH."""


class TmuxCommandError(TmuxError):
    """A tmux command exited non-zero."""

    def __init__(self, args: list[str], returncode: int, stderr: str):
        self.command = args
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exit code {returncode}"
        super().__init__(f"tmux {' '.join(args)} failed: {detail}")


def find_tmux() -> Path:
    binary = shutil.which("tmux")
    if binary is None:
        raise TmuxNotFoundError(f"tmux is not installed. {TMUX_INSTALL_HINT}")
    return Path(binary)


def is_valid_session_name(name: str) -> bool:
    """tmux rewrites ':' and '.' in session names, so reject them up front."""
    return bool(name) and not any(ch in name for ch in ":.") and not name.isspace()


class TmuxSession:
    """A named tmux session whose panes are addressed by tmux pane id."""

    def __init__(self, name: str, executable: Path | None = None):
        self.name = name
        self.executable = Path(executable) if executable else find_tmux()
        self.pane_ids: list[str] = []

    @property
    def target(self) -> str:
        # "=" forces an exact session-name match instead of prefix matching
        return f"={self.name}"

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        cmd = [str(self.executable), *args]
        logger.debug(f"tmux {' '.join(args)}")
        result = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        if check and result.returncode != 0:
            raise TmuxCommandError(list(args), result.returncode, result.stderr)
        return result

    def exists(self) -> bool:
        return self._run("has-session", "-t", self.target, check=False).returncode == 0

    def create(self, cwd: Path, width: int, height: int) -> str:
        """Create the detached session and return its first pane id."""
        result = self._run(
            "new-session", "-d",
            "-s", self.name,
            "-x", str(width),
            "-y", str(height),
            "-c", str(cwd),
            "-P", "-F", "#{pane_id}",
        )
        pane_id = result.stdout.strip()
        self.pane_ids.append(pane_id)
        return pane_id

    def split(self, cwd: Path) -> str:
        """Split the most recent pane and return the new pane id."""
        result = self._run(
            "split-window",
            "-t", self.pane_ids[-1],
            "-c", str(cwd),
            "-P", "-F", "#{pane_id}",
        )
        pane_id = result.stdout.strip()
        self.pane_ids.append(pane_id)
        return pane_id

    def send_command(self, pane_id: str, command: str) -> None:
        self._run("send-keys", "-t", pane_id, command, "Enter")

    def select_layout(self, layout: str) -> None:
        self._run("select-layout", "-t", self.pane_ids[-1], layout)

    def attach(self) -> int:
        """Attach (or switch, when already inside tmux) the current terminal.

        Blocks until the user detaches. Returns tmux's exit code.
        """
        action = "switch-client" if os.environ.get("TMUX") else "attach-session"
        return subprocess.run([str(self.executable), action, "-t", self.target]).returncode

    def attach_argv(self) -> list[str]:
        return [str(self.executable), "attach-session", "-t", self.target]


def list_sessions(executable: Path) -> set[str]:
    """Names of all live sessions; empty when no tmux server is running."""
    result = subprocess.run(
        [str(executable), "list-sessions", "-F", "#{session_name}"],
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        return set()
    return {line.strip() for line in result.stdout.splitlines() if line.strip()}
