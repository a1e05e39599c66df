"""Logging configuration for stackpilot.

Modules obtain loggers with ``get_logger(__name__)``; entry points call
``setup_logging`` once to attach a handler to the package logger.
"""

from __future__ import annotations

import logging
import sys

PACKAGE_LOGGER = "stackpilot"

_DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_VERBOSE_FORMAT = (
    "%(asctime)s %(levelname)-7s %(name)s [%(threadName)s]: %(message)s"
)


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the stackpilot package logger."""
    if name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure the package logger.

    Args:
        verbose: Emit DEBUG records, including every remote call and decision
        quiet: Only emit WARNING and above (takes precedence over verbose)
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Calling twice must not duplicate output
    for handler in list(logger.handlers):
        if getattr(handler, "_stackpilot_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(_VERBOSE_FORMAT if verbose else _DEFAULT_FORMAT)
    )
    handler._stackpilot_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False

    # boto is chatty at DEBUG
    for noisy in ("botocore", "boto3", "urllib3"):
        logging.getLogger(noisy).setLevel(
            logging.INFO if verbose else logging.WARNING
        )
