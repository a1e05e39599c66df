"""Terminal helpers for the stack activity printer.

- TTY and CI detection for choosing live or append-only output
- ANSI status colouring with graceful degradation
"""

from stackpilot.lib.ui.colors import ANSIColors, colorize, status_color
from stackpilot.lib.ui.terminal import is_ci, is_tty

__all__ = [
    "ANSIColors",
    "colorize",
    "is_ci",
    "is_tty",
    "status_color",
]
