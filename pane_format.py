"""
Pane Output Formatting
======================

Pure functions that turn Claude Agent SDK messages into colored terminal
lines for a single pane. Nothing here holds state: every function receives
the message and the pane's color and returns text.
"""

import logging
from dataclasses import dataclass
from typing import Any

from claude_agent_sdk import (
    AssistantMessage,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ToolUseBlock,
    UserMessage,
)

logger = logging.getLogger(__name__)

RESET = "\x1b[0m"
BOLD = "\x1b[1m"
DIM = "\x1b[2m"

COLORS = {
    "cyan": "\x1b[36m",
    "green": "\x1b[32m",
    "magenta": "\x1b[35m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[34m",
    "red": "\x1b[31m",
    "white": "\x1b[37m",
}

PALETTE = ["cyan", "green", "magenta", "yellow", "blue", "red"]

SEPARATOR_WIDTH = 60
COMMAND_PREVIEW_LIMIT = 80


@dataclass
class ToolUseSummary:
    """Free-text progress note emitted between tool calls."""

    text: str = ""


def color_for_pane(index: int) -> str:
    return PALETTE[index % len(PALETTE)]


def bold(text: str) -> str:
    return f"{BOLD}{text}{RESET}"


def dim(text: str) -> str:
    return f"{DIM}{text}{RESET}"


def color(name: str, text: str) -> str:
    return f"{COLORS.get(name, '')}{text}{RESET}"


def bold_color(name: str, text: str) -> str:
    return f"{BOLD}{COLORS.get(name, '')}{text}{RESET}"


def separator(color_name: str, width: int = SEPARATOR_WIDTH) -> str:
    return color(color_name, "─" * width)


def truncate_command(command: str, limit: int = COMMAND_PREVIEW_LIMIT) -> str:
    """Shorten a shell command for display, keeping it at most ``limit`` chars."""
    if len(command) > limit:
        return command[: limit - 3] + "..."
    return command


# Tool name (lowercase) -> (label, input key shown after the label)
TOOL_LABELS: dict[str, tuple[str, str]] = {
    "read": ("Reading", "file_path"),
    "write": ("Writing", "file_path"),
    "edit": ("Editing", "file_path"),
    "multiedit": ("Editing", "file_path"),
    "notebookedit": ("Editing", "notebook_path"),
    "glob": ("Glob", "pattern"),
    "grep": ("Grep", "pattern"),
    "task": ("Task", "description"),
    "webfetch": ("Fetching", "url"),
    "websearch": ("Searching", "query"),
}


def format_tool_use(block: ToolUseBlock) -> str:
    """One dim line describing a tool invocation."""
    name = block.name or "unknown"
    tool_input: dict[str, Any] = block.input or {}
    key = name.lower()

    if key == "bash":
        command = str(tool_input.get("command") or "")
        return dim(f"  $ {truncate_command(command)}")

    if key in TOOL_LABELS:
        label, field = TOOL_LABELS[key]
        return dim(f"  {label}: {tool_input.get(field) or '?'}")

    return dim(f"  Tool: {name}")


def _format_system(message: SystemMessage) -> list[str]:
    if message.subtype != "init":
        return []
    data = message.data or {}
    return [
        dim(f"  Model: {data.get('model') or '?'}"),
        dim(f"  Tools: {len(data.get('tools') or [])} available"),
    ]


def _format_assistant(message: AssistantMessage, pane_color: str) -> list[str]:
    lines = []
    for block in message.content:
        if isinstance(block, TextBlock):
            if block.text:
                lines.append(color(pane_color, block.text))
        elif isinstance(block, ToolUseBlock):
            lines.append(format_tool_use(block))
    return lines


def _format_result(message: ResultMessage, pane_color: str) -> list[str]:
    lines = ["", separator(pane_color), bold_color(pane_color, "  Done!")]
    if message.duration_ms:
        lines.append(dim(f"  Duration: {message.duration_ms / 1000:.1f}s"))
    if message.total_cost_usd:
        lines.append(dim(f"  Cost: ${message.total_cost_usd:.4f}"))
    if message.num_turns:
        lines.append(dim(f"  Turns: {message.num_turns}"))
    lines.append(separator(pane_color))
    return lines


def format_message(message: object, pane_color: str) -> list[str]:
    """Render one agent event as zero or more display lines."""
    if isinstance(message, SystemMessage):
        return _format_system(message)
    if isinstance(message, AssistantMessage):
        return _format_assistant(message, pane_color)
    if isinstance(message, UserMessage):
        # Tool results are too verbose for the live view
        return []
    if isinstance(message, ResultMessage):
        return _format_result(message, pane_color)
    if isinstance(message, ToolUseSummary):
        return [dim(f"  {message.text}")] if message.text else []

    logger.debug(f"Unhandled agent event type: {type(message).__name__}")
    return []
