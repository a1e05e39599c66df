"""Bounded poll loops over change-set and stack status.

Every wait is driven by a ``PollPolicy``; the clock and sleep functions are
injectable so tests never sleep for real.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from stackpilot.config.defaults import NO_CHANGE_REASON_PREFIXES
from stackpilot.deploy.stack_state import CloudFormationStack
from stackpilot.lib.errors import (
    ChangeSetCreationFailedError,
    StackDeployFailedError,
    WaitTimeoutError,
)
from stackpilot.lib.logging_config import get_logger
from stackpilot.models.config import PollPolicy

logger = get_logger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], None]

_CHANGE_SET_COMPUTING = frozenset({"CREATE_PENDING", "CREATE_IN_PROGRESS"})


@dataclass(frozen=True)
class PollOutcome:
    """One observation made by a poll loop."""

    done: bool
    value: Any = None
    status: str | None = None


@dataclass
class Poller:
    """Runs a check function until it reports done or the policy runs out.

    Attributes:
        policy: Delay, backoff and deadline bounds
        clock: Monotonic clock in seconds
        sleep: Sleep function
    """

    policy: PollPolicy
    clock: Clock = field(default=time.monotonic)
    sleep: Sleep = field(default=time.sleep)

    def run(self, subject: str, check: Callable[[], PollOutcome]) -> Any:
        """Poll ``check`` until done.

        Raises:
            WaitTimeoutError: When the attempt cap or deadline is reached
        """
        started = self.clock()
        delay = self.policy.delay_seconds
        attempts = 0
        while True:
            attempts += 1
            outcome = check()
            if outcome.done:
                return outcome.value

            if (
                self.policy.max_attempts is not None
                and attempts >= self.policy.max_attempts
            ):
                raise WaitTimeoutError(subject, outcome.status)

            wait = delay
            if self.policy.timeout_seconds is not None:
                remaining = self.policy.timeout_seconds - (self.clock() - started)
                if remaining <= 0:
                    raise WaitTimeoutError(subject, outcome.status)
                wait = min(delay, remaining)

            logger.debug(
                f"Waiting {wait:.1f}s for {subject} (status: {outcome.status})"
            )
            self.sleep(wait)
            delay = self.policy.next_delay(delay)


@dataclass(frozen=True)
class ChangeSetDescription:
    """A fully paginated change-set description.

    Attributes:
        name: Change-set name
        change_set_id: Change-set ARN
        stack_id: ARN of the stack the change-set belongs to
        status: Change-set status
        status_reason: Reason given for the status
        changes: Every change across all result pages
        creation_time: When the change-set was computed
    """

    name: str
    change_set_id: str
    stack_id: str
    status: str
    status_reason: str
    changes: list[dict[str, Any]]
    creation_time: datetime | None = None

    @property
    def has_no_changes(self) -> bool:
        """Whether the change-set turned out to contain nothing to do."""
        if self.status == "FAILED":
            return self.status_reason.startswith(NO_CHANGE_REASON_PREFIXES)
        return self.status == "CREATE_COMPLETE" and not self.changes


def describe_change_set(
    cfn: Any, stack_name: str, change_set_name: str
) -> ChangeSetDescription:
    """Describe a change-set, following ``NextToken`` across every page."""
    kwargs: dict[str, Any] = {
        "StackName": stack_name,
        "ChangeSetName": change_set_name,
    }
    response = cfn.describe_change_set(**kwargs)
    changes = list(response.get("Changes") or [])
    while response.get("NextToken"):
        response = cfn.describe_change_set(**kwargs, NextToken=response["NextToken"])
        changes.extend(response.get("Changes") or [])

    return ChangeSetDescription(
        name=response.get("ChangeSetName", change_set_name),
        change_set_id=response.get("ChangeSetId", ""),
        stack_id=response.get("StackId", ""),
        status=response.get("Status", ""),
        status_reason=response.get("StatusReason", "") or "",
        changes=changes,
        creation_time=response.get("CreationTime"),
    )


def wait_for_change_set(
    cfn: Any,
    stack_name: str,
    change_set_name: str,
    poller: Poller,
) -> ChangeSetDescription:
    """Wait until a change-set has finished computing.

    Returns:
        The final description. A FAILED change-set whose reason says there
        was nothing to change is returned rather than raised.

    Raises:
        ChangeSetCreationFailedError: When computation failed for any other reason
        WaitTimeoutError: When the poll policy is exhausted
    """
    logger.debug(f"Waiting for changeset {change_set_name} on stack {stack_name}")

    def check() -> PollOutcome:
        description = describe_change_set(cfn, stack_name, change_set_name)
        if description.status in _CHANGE_SET_COMPUTING:
            logger.debug(f"Changeset {change_set_name} is {description.status}")
            return PollOutcome(done=False, status=description.status)
        if description.status == "CREATE_COMPLETE" or description.has_no_changes:
            return PollOutcome(
                done=True, value=description, status=description.status
            )
        raise ChangeSetCreationFailedError(
            stack_name,
            change_set_name,
            description.status,
            description.status_reason or "no reason provided",
        )

    return poller.run(f"changeset {change_set_name}", check)


def stabilize_stack(
    cfn: Any, stack_name: str, poller: Poller
) -> CloudFormationStack | None:
    """Wait for a stack to leave every in-progress state.

    ``REVIEW_IN_PROGRESS`` counts as stable: a stack waiting for its first
    change-set to execute will not progress on its own.

    Returns:
        The settled stack, or None if the stack does not exist
    """

    def check() -> PollOutcome:
        stack = CloudFormationStack.lookup(cfn, stack_name)
        if not stack.exists:
            logger.debug(f"Stack {stack_name} does not exist")
            return PollOutcome(done=True, value=None, status=stack.status.name)
        status = stack.status
        if status.is_in_progress:
            logger.debug(f"Stack {stack_name} has an ongoing operation: {status}")
            return PollOutcome(done=False, status=status.name)
        if status.is_review_in_progress:
            logger.debug(f"Stack {stack_name} is in REVIEW_IN_PROGRESS state")
        return PollOutcome(done=True, value=stack, status=status.name)

    return poller.run(f"stack {stack_name}", check)


def wait_for_stack_deploy(
    cfn: Any, stack_name: str, poller: Poller
) -> CloudFormationStack | None:
    """Wait for a stack deployment to settle and verify it succeeded.

    Returns:
        The deployed stack, or None if the stack no longer exists

    Raises:
        StackDeployFailedError: If the stack settled in a non-success state
    """
    stack = stabilize_stack(cfn, stack_name, poller)
    if stack is None:
        return None

    status = stack.status
    if status.is_creation_failure:
        raise StackDeployFailedError(stack_name, str(status), creation=True)
    if not status.is_deploy_success:
        raise StackDeployFailedError(stack_name, str(status))
    return stack


def wait_for_stack_delete(
    cfn: Any, stack_name: str, poller: Poller
) -> CloudFormationStack | None:
    """Wait for a stack deletion to settle.

    Returns:
        None when the stack is gone, otherwise the stack in whatever terminal
        state it ended up in. Callers decide which error to raise.
    """
    stack = stabilize_stack(cfn, stack_name, poller)
    if stack is None or stack.status.is_deleted:
        return None
    return stack
