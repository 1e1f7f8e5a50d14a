"""
Pane Configuration
==================

Single source of truth for defaults shared by the orchestrator and the
per-pane agent runner. Values can be overridden through environment variables
or a ``.env`` file in the working directory.

Environment variables:
    CLAUDE_PANES_MODEL          Default model for every pane
    CLAUDE_PANES_LAYOUT         Default tmux layout (tiled, even-horizontal, ...)
    CLAUDE_PANES_POLL_INTERVAL  Seconds between completion checks
    CLAUDE_PANES_LOG_LEVEL      DEBUG, INFO, WARNING (default), ERROR
"""

import logging
import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file if present
load_dotenv()

logger = logging.getLogger(__name__)


# =============================================================================
# Model Configuration
# =============================================================================

FALLBACK_MODEL = "claude-sonnet-4-5-20250929"

# Guard against empty/whitespace values by trimming and falling back when blank
_env_default_model = os.getenv("CLAUDE_PANES_MODEL")
if _env_default_model is not None:
    _env_default_model = _env_default_model.strip()
DEFAULT_MODEL = _env_default_model or FALLBACK_MODEL

# Hard cap on conversation turns for each agent session
MAX_TURNS = 50

# Environment variables forwarded to the Claude CLI subprocess so panes can
# target alternative API endpoints without touching global Claude settings.
API_ENV_VARS: list[str] = [
    "ANTHROPIC_BASE_URL",              # Custom API endpoint
    "ANTHROPIC_AUTH_TOKEN",            # API authentication token
    "API_TIMEOUT_MS",                  # Request timeout in milliseconds
    "ANTHROPIC_DEFAULT_SONNET_MODEL",
    "ANTHROPIC_DEFAULT_OPUS_MODEL",
    "ANTHROPIC_DEFAULT_HAIKU_MODEL",
    "CLAUDE_CODE_USE_VERTEX",          # Enable Vertex AI mode (set to "1")
    "CLOUD_ML_REGION",
    "ANTHROPIC_VERTEX_PROJECT_ID",
]


# =============================================================================
# Session Layout
# =============================================================================

TMUX_LAYOUTS = [
    "tiled",
    "even-horizontal",
    "even-vertical",
    "main-horizontal",
    "main-vertical",
]

_env_layout = (os.getenv("CLAUDE_PANES_LAYOUT") or "").strip()
DEFAULT_LAYOUT = _env_layout if _env_layout in TMUX_LAYOUTS else "tiled"

# Viewport for detached session creation; tmux resizes on attach
SESSION_WIDTH = 200
SESSION_HEIGHT = 50


# =============================================================================
# Status Handshake
# =============================================================================

STATUS_DIR_PREFIX = "claude-tmux-"
SUMMARY_MAX_CHARS = 500
DEFAULT_POLL_INTERVAL = 2.0


def _read_poll_interval() -> float:
    raw = os.getenv("CLAUDE_PANES_POLL_INTERVAL")
    if not raw:
        return DEFAULT_POLL_INTERVAL
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid CLAUDE_PANES_POLL_INTERVAL={raw!r}")
        return DEFAULT_POLL_INTERVAL
    return value if value > 0 else DEFAULT_POLL_INTERVAL


POLL_INTERVAL = _read_poll_interval()


def get_status_root() -> Path:
    """Shared temporary-files area that holds every session's status directory."""
    return Path(tempfile.gettempdir())


def status_dir_for(session_name: str) -> Path:
    """Deterministic status directory for a tmux session."""
    return get_status_root() / f"{STATUS_DIR_PREFIX}{session_name}"


# =============================================================================
# Logging
# =============================================================================

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for an entry point.

    Diagnostics go to stderr so pane output and the final summary stay clean.
    """
    name = (level or os.getenv("CLAUDE_PANES_LOG_LEVEL") or "WARNING").strip().upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.WARNING),
        format=LOG_FORMAT,
    )
