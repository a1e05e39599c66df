"""Read-only view of a stack as the control plane currently reports it.

A ``CloudFormationStack`` is a snapshot: it is produced by ``lookup`` and
never updated in place. After any mutating call (delete, execute) callers
must look the stack up again instead of reusing an old instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from botocore.exceptions import ClientError

from stackpilot.lib.errors import StackLookupFailedError
from stackpilot.lib.logging_config import get_logger
from stackpilot.lib.serialize import deserialize_structure
from stackpilot.models.stack import Tag

logger = get_logger(__name__)

NOT_FOUND_STATUS = "NOT_FOUND"


class StackStatusKind(str, Enum):
    """Coarse classification of a raw stack status."""

    NOT_FOUND = "not_found"
    CREATE_FAILED = "create_failed"
    REVIEW_IN_PROGRESS = "review_in_progress"
    CREATED = "created"
    UPDATE_FAILED = "update_failed"
    DELETING = "deleting"
    OTHER = "other"


_CREATION_FAILURES = frozenset(
    {"ROLLBACK_COMPLETE", "ROLLBACK_FAILED", "CREATE_FAILED"}
)
_DEPLOY_SUCCESSES = frozenset({"CREATE_COMPLETE", "UPDATE_COMPLETE", "IMPORT_COMPLETE"})


@dataclass(frozen=True)
class StackStatus:
    """A stack status name plus the control plane's reason for it."""

    name: str
    reason: str = ""

    @classmethod
    def from_description(cls, description: dict[str, Any] | None) -> StackStatus:
        """Build the status from a ``describe_stacks`` entry."""
        if description is None:
            return cls(NOT_FOUND_STATUS, "Stack not found during lookup")
        return cls(
            description.get("StackStatus", ""),
            description.get("StackStatusReason", "") or "",
        )

    @property
    def is_not_found(self) -> bool:
        return self.name == NOT_FOUND_STATUS

    @property
    def is_creation_failure(self) -> bool:
        """The stack never finished its first creation."""
        return self.name in _CREATION_FAILURES

    @property
    def is_failure(self) -> bool:
        return self.name.endswith("FAILED")

    @property
    def is_review_in_progress(self) -> bool:
        return self.name == "REVIEW_IN_PROGRESS"

    @property
    def is_in_progress(self) -> bool:
        return self.name.endswith("_IN_PROGRESS") and not self.is_review_in_progress

    @property
    def is_deleted(self) -> bool:
        return self.name == "DELETE_COMPLETE"

    @property
    def is_deploy_success(self) -> bool:
        return not self.is_not_found and self.name in _DEPLOY_SUCCESSES

    @property
    def kind(self) -> StackStatusKind:
        """The tagged classification used by callers that branch on status."""
        if self.is_not_found:
            return StackStatusKind.NOT_FOUND
        if self.is_creation_failure:
            return StackStatusKind.CREATE_FAILED
        if self.is_review_in_progress:
            return StackStatusKind.REVIEW_IN_PROGRESS
        if self.name.startswith("DELETE_"):
            return StackStatusKind.DELETING
        if self.is_failure:
            return StackStatusKind.UPDATE_FAILED
        if self.is_deploy_success:
            return StackStatusKind.CREATED
        return StackStatusKind.OTHER

    def __str__(self) -> str:
        return f"{self.name} ({self.reason})" if self.reason else self.name


def is_stack_not_found(exc: ClientError) -> bool:
    """Whether a ClientError means the named stack does not exist."""
    error = exc.response.get("Error", {})
    return error.get("Code") == "ValidationError" and "does not exist" in (
        error.get("Message") or ""
    )


class CloudFormationStack:
    """Snapshot of a named stack.

    Attributes are read lazily from the ``describe_stacks`` entry; the
    template body is fetched on first access to ``template()`` only.
    """

    def __init__(
        self, cfn: Any, stack_name: str, description: dict[str, Any] | None = None
    ) -> None:
        self._cfn = cfn
        self.stack_name = stack_name
        self._description = description
        self._template: dict[str, Any] | None = None

    @classmethod
    def lookup(cls, cfn: Any, stack_name: str) -> CloudFormationStack:
        """Read the current state of ``stack_name``.

        A missing stack is not an error: it yields a snapshot with
        ``exists == False``.

        Raises:
            StackLookupFailedError: For any other remote error
        """
        try:
            response = cfn.describe_stacks(StackName=stack_name)
        except ClientError as exc:
            if is_stack_not_found(exc):
                logger.debug(f"Stack {stack_name} does not exist")
                return cls.does_not_exist(cfn, stack_name)
            raise StackLookupFailedError(stack_name, exc) from exc

        stacks = response.get("Stacks") or []
        return cls(cfn, stack_name, stacks[0] if stacks else None)

    @classmethod
    def does_not_exist(cls, cfn: Any, stack_name: str) -> CloudFormationStack:
        """Sentinel snapshot for a stack that is known not to exist."""
        return cls(cfn, stack_name, None)

    @property
    def exists(self) -> bool:
        return self._description is not None

    @property
    def stack_id(self) -> str:
        """Stack ARN, or an empty string when the stack does not exist."""
        if self._description is None:
            return ""
        return self._description.get("StackId", "")

    @property
    def status(self) -> StackStatus:
        return StackStatus.from_description(self._description)

    @property
    def parameters(self) -> dict[str, str]:
        """Current parameter values keyed by parameter name."""
        if self._description is None:
            return {}
        return {
            param["ParameterKey"]: param.get("ParameterValue", "")
            for param in self._description.get("Parameters") or []
        }

    @property
    def tags(self) -> list[Tag]:
        if self._description is None:
            return []
        return [
            Tag(key=tag["Key"], value=tag.get("Value", ""))
            for tag in self._description.get("Tags") or []
        ]

    @property
    def outputs(self) -> dict[str, str]:
        if self._description is None:
            return {}
        return {
            output["OutputKey"]: output.get("OutputValue", "")
            for output in self._description.get("Outputs") or []
        }

    @property
    def termination_protection(self) -> bool:
        if self._description is None:
            return False
        return bool(self._description.get("EnableTerminationProtection", False))

    def template(self) -> dict[str, Any]:
        """Fetch (once) and return the deployed template document."""
        if not self.exists:
            return {}
        if self._template is None:
            logger.debug(f"Fetching deployed template of {self.stack_name}")
            try:
                response = self._cfn.get_template(
                    StackName=self.stack_name, TemplateStage="Original"
                )
            except ClientError as exc:
                raise StackLookupFailedError(self.stack_name, exc) from exc
            self._template = deserialize_structure(response.get("TemplateBody"))
        return self._template

    def __repr__(self) -> str:
        return f"CloudFormationStack({self.stack_name!r}, status={self.status.name})"
