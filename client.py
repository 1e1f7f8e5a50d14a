"""
Claude SDK Client Configuration
===============================

Builds the Claude Agent SDK options used by each pane's agent session.
"""

import logging
import os
import re
from pathlib import Path

from claude_agent_sdk import ClaudeAgentOptions

from pane_config import API_ENV_VARS, MAX_TURNS

logger = logging.getLogger(__name__)

# Full Claude Code tool set and system prompt
CLAUDE_CODE_PRESET = {"type": "preset", "preset": "claude_code"}


def convert_model_for_vertex(model: str) -> str:
    """
    Convert model name format for Vertex AI compatibility.

    Vertex AI uses @ to separate model name from version (e.g., claude-opus-4-5@20251101)
    while the Anthropic API uses - (e.g., claude-opus-4-5-20251101).

    Args:
        model: Model name in Anthropic format (with hyphens)

    Returns:
        Model name in Vertex AI format if Vertex AI is enabled,
        otherwise the model unchanged.
    """
    if os.getenv("CLAUDE_CODE_USE_VERTEX") != "1":
        return model

    # The date is always 8 digits at the end
    match = re.match(r'^(claude-.+)-(\d{8})$', model)
    if match:
        base_name, date = match.groups()
        return f"{base_name}@{date}"

    return model


def get_api_env() -> dict[str, str]:
    """API configuration overrides to pass to the CLI subprocess."""
    sdk_env = {}
    for var in API_ENV_VARS:
        value = os.getenv(var)
        if value:
            sdk_env[var] = value
    return sdk_env


def create_options(cwd: Path, model: str, max_turns: int = MAX_TURNS) -> ClaudeAgentOptions:
    """
    Options for one unattended pane session.

    Permission prompts are bypassed because nobody answers them inside a
    pane; the turn cap is the only bound on the run's length.
    """
    sdk_env = get_api_env()
    if sdk_env:
        logger.info(f"API overrides: {', '.join(sdk_env.keys())}")

    return ClaudeAgentOptions(
        model=convert_model_for_vertex(model),
        cwd=str(Path(cwd).resolve()),
        permission_mode="bypassPermissions",
        tools=CLAUDE_CODE_PRESET,
        system_prompt=CLAUDE_CODE_PRESET,
        setting_sources=["project"],  # Pick up CLAUDE.md and project settings
        max_turns=max_turns,
        env=sdk_env,
    )
