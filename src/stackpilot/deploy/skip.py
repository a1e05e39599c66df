"""Decide whether a deployment can be skipped.

The checks run in a fixed order and the first one that finds a change wins,
so the reported reason always names the earliest difference.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from stackpilot.deploy.diff import classify_fast_path, diff_templates
from stackpilot.deploy.stack_state import CloudFormationStack
from stackpilot.lib.logging_config import get_logger
from stackpilot.models.stack import DeployOptions, Tag

logger = get_logger(__name__)


class SkipReason(str, Enum):
    """Which check determined the outcome."""

    FORCED = "forced"
    NO_EXISTING_STACK = "no_existing_stack"
    TEMPLATE_CHANGED = "template_changed"
    TAGS_CHANGED = "tags_changed"
    TERMINATION_PROTECTION_CHANGED = "termination_protection_changed"
    PARAMETERS_CHANGED = "parameters_changed"
    FAILED_STATE = "failed_state"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class SkipDecision:
    """Outcome of the skip check.

    Attributes:
        has_changes: A deployment is required
        reason: The check that decided the outcome
        fast_path_eligible: The template change is code-only
        modified_asset_paths: Asset path to logical id for each moved function
        fast_path_rejection: Why the change is not code-only, when it is not
    """

    has_changes: bool
    reason: SkipReason
    fast_path_eligible: bool = False
    modified_asset_paths: dict[str, str] = field(default_factory=dict)
    fast_path_rejection: str | None = None


def compare_tags(left: list[Tag], right: list[Tag]) -> bool:
    """Whether two tag lists hold the same key/value pairs, ignoring order."""
    if len(left) != len(right):
        return False
    return {(t.key, t.value) for t in left} == {(t.key, t.value) for t in right}


def decide(
    remote: CloudFormationStack,
    options: DeployOptions,
    parameter_changes: bool,
) -> SkipDecision:
    """Run the ordered skip checks for one deployment attempt.

    Args:
        remote: Current stack snapshot
        options: Deployment options, including the desired stack; the template
            diff is only classified for the fast path when it was requested
        parameter_changes: Whether the parameter plan differs from the remote

    Returns:
        SkipDecision; ``has_changes`` is False only when every check passes
    """
    name = options.deploy_name
    desired = options.stack

    if options.force:
        logger.debug(f"{name}: forced deployment")
        return SkipDecision(
            True, SkipReason.FORCED, fast_path_rejection="forced deployment"
        )

    if not remote.exists:
        logger.debug(f"{name}: no existing stack")
        return SkipDecision(
            True,
            SkipReason.NO_EXISTING_STACK,
            fast_path_rejection="the stack does not exist yet",
        )

    template_diff = diff_templates(remote.template(), desired.template)
    if not template_diff.is_empty:
        logger.debug(f"{name}: template has changed")
        if not options.fast_path:
            return SkipDecision(True, SkipReason.TEMPLATE_CHANGED)
        classification = classify_fast_path(template_diff)
        return SkipDecision(
            True,
            SkipReason.TEMPLATE_CHANGED,
            fast_path_eligible=classification.eligible,
            modified_asset_paths=classification.modified_asset_paths,
            fast_path_rejection=classification.rejection,
        )

    if not compare_tags(remote.tags, desired.tags):
        logger.debug(f"{name}: tags have changed")
        return SkipDecision(
            True, SkipReason.TAGS_CHANGED, fast_path_rejection="tags changed"
        )

    if bool(desired.termination_protection) != remote.termination_protection:
        logger.debug(f"{name}: termination protection has been updated")
        return SkipDecision(
            True,
            SkipReason.TERMINATION_PROTECTION_CHANGED,
            fast_path_rejection="termination protection changed",
        )

    if parameter_changes:
        logger.debug(f"{name}: parameters have changed")
        return SkipDecision(
            True,
            SkipReason.PARAMETERS_CHANGED,
            fast_path_rejection="parameters changed",
        )

    if remote.status.is_failure:
        logger.debug(f"{name}: stack is in a failure state")
        return SkipDecision(
            True,
            SkipReason.FAILED_STATE,
            fast_path_rejection=f"the stack is in state {remote.status.name}",
        )

    return SkipDecision(False, SkipReason.UNCHANGED)
