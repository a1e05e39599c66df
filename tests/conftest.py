"""Pytest configuration and shared fixtures for stackpilot tests."""

import os
from collections.abc import Generator

import pytest


@pytest.fixture(autouse=True)
def isolated_env() -> Generator[dict[str, str]]:
    """Provide an environment without stackpilot or CI settings.

    Saves current environment and restores after test.

    Yields:
        Dictionary of original environment variables

    Cleanup:
        Restores original environment after test
    """
    original_env = os.environ.copy()
    for name in list(os.environ):
        if name.startswith("STACKPILOT_") or name == "CI":
            del os.environ[name]
    yield original_env
    os.environ.clear()
    os.environ.update(original_env)
