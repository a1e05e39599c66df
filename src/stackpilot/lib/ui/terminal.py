"""Terminal detection utilities.

Provides functions for detecting terminal capabilities and output modes.
"""

from __future__ import annotations

import os
import sys
from typing import TextIO


def is_tty(stream: TextIO | None = None) -> bool:
    """Check if the given stream (stdout by default) is a terminal.

    Used by the activity printer to choose between a live spinner line and
    plain, append-only output suitable for CI logs.

    Returns:
        True if the stream is a TTY, False otherwise.
    """
    target = stream if stream is not None else sys.stdout
    isatty = getattr(target, "isatty", None)
    return bool(isatty and isatty())


def is_ci() -> bool:
    """Return True when running under a CI system (the ``CI`` variable is set)."""
    return os.environ.get("CI", "").lower() in ("true", "1", "yes")
