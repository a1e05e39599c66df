"""Progress reporting while a stack operation runs.

The orchestrator only depends on the ``ProgressSink`` / ``ProgressHandle``
protocols. ``StackActivityMonitor`` is the default sink: a background thread
that polls the stack's event history and prints each new resource event.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any, Protocol, TextIO

import click
from botocore.exceptions import BotoCoreError, ClientError

from stackpilot.config.defaults import DEFAULT_MONITOR_INTERVAL
from stackpilot.lib.logging_config import get_logger
from stackpilot.lib.ui import colorize, is_ci, is_tty, status_color

logger = get_logger(__name__)

_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
_CLEAR_LINE = "\r\033[K"


class ProgressHandle(Protocol):
    """A started progress report; ``stop`` is called exactly once."""

    def stop(self) -> None: ...


class ProgressSink(Protocol):
    """Something that can report progress of a stack operation."""

    def start(
        self, expected_changes: int | None, computed_at: datetime | None
    ) -> ProgressHandle: ...


class _NullHandle:
    def stop(self) -> None:
        return None


class NullProgressSink:
    """Sink that reports nothing."""

    def start(
        self, expected_changes: int | None, computed_at: datetime | None
    ) -> ProgressHandle:
        return _NullHandle()


class StackActivityMonitor:
    """Prints stack events as they happen, from a daemon thread.

    Events older than ``computed_at`` (the change-set computation time) are
    ignored, so only activity caused by the current operation is shown. On
    a terminal a spinner line shows completed/expected resource changes.
    """

    def __init__(
        self,
        cfn: Any,
        stack_name: str,
        interval_seconds: float = DEFAULT_MONITOR_INTERVAL,
        stream: TextIO | None = None,
    ) -> None:
        self.cfn = cfn
        self.stack_name = stack_name
        self.interval_seconds = interval_seconds
        self.stream = stream
        self._live = is_tty(stream) and not is_ci()
        self._frames: Iterator[str] = itertools.cycle(_FRAMES)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._seen: set[str] = set()
        self._since: datetime | None = None
        self._expected: int | None = None
        self._completed = 0
        self._lock = threading.Lock()

    def start(
        self, expected_changes: int | None, computed_at: datetime | None
    ) -> StackActivityMonitor:
        """Begin polling in the background and return self as the handle."""
        self._expected = expected_changes
        self._since = computed_at or datetime.now(timezone.utc)
        self._thread = threading.Thread(
            target=self._run, name=f"activity-{self.stack_name}", daemon=True
        )
        self._thread.start()
        logger.debug(f"Activity monitor started for {self.stack_name}")
        return self

    def stop(self) -> None:
        """Stop the polling thread and print any events still outstanding."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join()
        self._thread = None
        try:
            self.poll()
        except (ClientError, BotoCoreError) as exc:
            logger.debug(f"Final event poll for {self.stack_name} failed: {exc}")
        if self._live:
            click.echo(_CLEAR_LINE, nl=False, file=self.stream)
        logger.debug(f"Activity monitor stopped for {self.stack_name}")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.poll()
            except (ClientError, BotoCoreError) as exc:
                # The stack may not be visible yet right after execution starts
                logger.debug(f"Event poll for {self.stack_name} failed: {exc}")

    def poll(self) -> list[dict[str, Any]]:
        """Fetch, print and return events not shown before, oldest first."""
        with self._lock:
            events = self._new_events()
            for event in events:
                self._print_event(event)
            if self._live:
                self._print_spinner()
            return events

    def _new_events(self) -> list[dict[str, Any]]:
        fresh: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {"StackName": self.stack_name}
        while True:
            response = self.cfn.describe_stack_events(**kwargs)
            # Newest first: stop at the first event already seen or too old
            for event in response.get("StackEvents") or []:
                timestamp = event.get("Timestamp")
                if event["EventId"] in self._seen or (
                    self._since is not None
                    and timestamp is not None
                    and timestamp < self._since
                ):
                    return list(reversed(fresh))
                self._seen.add(event["EventId"])
                fresh.append(event)
            token = response.get("NextToken")
            if not token:
                return list(reversed(fresh))
            kwargs["NextToken"] = token

    def _print_event(self, event: dict[str, Any]) -> None:
        status = event.get("ResourceStatus", "")
        is_stack_event = event.get("LogicalResourceId") == self.stack_name
        if status.endswith("_COMPLETE") and not is_stack_event:
            self._completed += 1

        timestamp = event.get("Timestamp")
        when = timestamp.strftime("%H:%M:%S") if timestamp else "--:--:--"
        line = (
            f"{self.stack_name} | {when} | "
            f"{colorize(f'{status:<28}', status_color(status), self._live)} | "
            f"{event.get('ResourceType', ''):<32} | "
            f"{event.get('LogicalResourceId', '')}"
        )
        reason = event.get("ResourceStatusReason")
        if reason and (status.endswith("FAILED") or "ROLLBACK" in status):
            line += f" {colorize(reason, status_color(status), self._live)}"

        if self._live:
            click.echo(_CLEAR_LINE, nl=False, file=self.stream)
        click.echo(line, file=self.stream)

    def _print_spinner(self) -> None:
        expected = "?" if self._expected is None else str(self._expected)
        click.echo(
            f"{_CLEAR_LINE}{next(self._frames)} {self.stack_name} "
            f"{self._completed}/{expected}",
            nl=False,
            file=self.stream,
        )
