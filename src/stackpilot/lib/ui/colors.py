"""ANSI color utilities for stack activity output.

Maps CloudFormation resource statuses to colours, degrading to plain text
when output is not a terminal.
"""

from __future__ import annotations

from stackpilot.lib.ui.terminal import is_tty


class ANSIColors:
    """ANSI color escape codes for terminal output.

    Attributes:
        GREEN: Completed operations.
        RED: Failed operations and rollbacks.
        YELLOW: Operations in progress.
        BLUE: Informational lines.
        RESET: Restore default terminal color.
    """

    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    RESET = "\033[0m"


def colorize(text: str, color: str, force_tty: bool | None = None) -> str:
    """Apply ANSI color codes to text if in TTY mode.

    Args:
        text: Text to colorize.
        color: ANSI color code to apply (e.g., ANSIColors.GREEN).
        force_tty: Override TTY detection (for testing). None uses auto-detection.

    Returns:
        Colorized text if in TTY mode, plain text otherwise.
    """
    use_colors = force_tty if force_tty is not None else is_tty()
    if not use_colors:
        return text
    return f"{color}{text}{ANSIColors.RESET}"


def status_color(status: str) -> str:
    """Pick the colour for a resource or stack status name."""
    if status.endswith("FAILED") or "ROLLBACK" in status:
        return ANSIColors.RED
    if status.endswith("IN_PROGRESS"):
        return ANSIColors.YELLOW
    if status.endswith("COMPLETE"):
        return ANSIColors.GREEN
    return ANSIColors.BLUE
