"""Shared library code: errors, logging, serialization and terminal UI."""
