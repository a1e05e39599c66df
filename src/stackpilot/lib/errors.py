"""Custom exception hierarchy for stackpilot configuration and deployments."""

from __future__ import annotations


class StackPilotError(Exception):
    """Base exception for all stackpilot errors.

    All stackpilot-specific exceptions inherit from this class, enabling
    centralized exception handling by callers.
    """

    pass


class ConfigError(StackPilotError):
    """Exception raised for configuration errors.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class DeploymentError(StackPilotError):
    """Base exception for failures while deploying or destroying a stack.

    Attributes:
        operation: The engine operation that failed (e.g. "deploy", "destroy")
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str) -> None:
        """Initialize DeploymentError.

        Args:
            operation: Name of the operation that failed
            message: Descriptive error message
        """
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class StackLookupFailedError(DeploymentError):
    """Raised when reading a stack fails for a reason other than not-found."""

    def __init__(self, stack_name: str, cause: Exception) -> None:
        """Create a lookup error wrapping the remote failure."""
        self.stack_name = stack_name
        super().__init__(
            operation="lookup",
            message=f"Could not read stack '{stack_name}': {cause}",
        )


class StackDeleteFailedError(DeploymentError):
    """Raised when a stack that previously failed creation cannot be removed."""

    def __init__(self, stack_name: str, status: str) -> None:
        """Create an error carrying the observed terminal status."""
        self.stack_name = stack_name
        self.status = status
        super().__init__(
            operation="cleanup",
            message=(
                f"Failed deleting stack '{stack_name}' that had previously failed "
                f"creation (current state: {status})"
            ),
        )


class StackDestroyFailedError(DeploymentError):
    """Raised when an explicit destroy ends in a non-deleted terminal state."""

    def __init__(self, stack_name: str, status: str) -> None:
        """Create an error carrying the observed terminal status."""
        self.stack_name = stack_name
        self.status = status
        super().__init__(
            operation="destroy",
            message=f"Failed to destroy '{stack_name}': {status}",
        )


class StackDeployFailedError(DeploymentError):
    """Raised when a stack settles in a state other than a successful deploy."""

    def __init__(self, stack_name: str, status: str, creation: bool = False) -> None:
        """Create an error for a stack that did not deploy cleanly."""
        self.stack_name = stack_name
        self.status = status
        if creation:
            message = (
                f"The stack named '{stack_name}' failed creation, it may need to be "
                f"manually deleted: {status}"
            )
        else:
            message = f"The stack named '{stack_name}' failed to deploy: {status}"
        super().__init__(operation="deploy", message=message)


class StackVanishedDuringDeployError(DeploymentError):
    """Raised when the stack disappears while a change-set is executing."""

    def __init__(self, stack_name: str) -> None:
        """Create the error for a vanished stack."""
        self.stack_name = stack_name
        super().__init__(
            operation="deploy",
            message=(
                f"Stack '{stack_name}' disappeared while it was being deployed"
            ),
        )


class ChangeSetCreationFailedError(DeploymentError):
    """Raised when the control plane fails to compute a change-set."""

    def __init__(
        self, stack_name: str, change_set_name: str, status: str, reason: str
    ) -> None:
        """Create an error carrying the change-set status and reason."""
        self.stack_name = stack_name
        self.change_set_name = change_set_name
        self.status = status
        self.reason = reason
        super().__init__(
            operation="changeset",
            message=(
                f"Failed to create ChangeSet {change_set_name} on {stack_name}: "
                f"{status}, {reason}"
            ),
        )


class TemplateTooLargeWithoutStagingError(DeploymentError):
    """Raised when a template exceeds the inline limit and no staging bucket exists.

    The message names the bootstrap step that provides a staging bucket.
    """

    def __init__(
        self, stack_name: str, size_kib: int, limit_kib: int, environment_name: str
    ) -> None:
        """Create the error with the remedial bootstrap step."""
        self.stack_name = stack_name
        self.size_kib = size_kib
        self.limit_kib = limit_kib
        self.environment_name = environment_name
        super().__init__(
            operation="template",
            message=(
                f"The template for stack '{stack_name}' is {size_kib}KiB. "
                f"Templates larger than {limit_kib}KiB must be uploaded to S3.\n"
                f"Bootstrap a staging bucket in {environment_name} and pass it as "
                "the deployment's toolkit (ToolkitInfo), then re-deploy."
            ),
        )


class UnsupportedPartitionSubstitutionError(DeploymentError):
    """Raised when a pre-uploaded template URL needs ${AWS::Partition}."""

    def __init__(self, url: str) -> None:
        """Create the error for the offending URL."""
        self.url = url
        super().__init__(
            operation="template",
            message=(
                "Cannot use '${AWS::Partition}' in the pre-uploaded template URL "
                f"({url})"
            ),
        )


class MissingParameterValueError(DeploymentError):
    """Raised when declared template parameters have no value from any source.

    Attributes:
        names: Parameter names that could not be resolved
    """

    def __init__(self, names: list[str]) -> None:
        """Create the error listing every unresolved parameter."""
        self.names = names
        super().__init__(
            operation="parameters",
            message=(
                "The following CloudFormation Parameters are missing a value: "
                f"{', '.join(names)}"
            ),
        )


class FastPathResolutionFailedError(DeploymentError):
    """Raised when a code-only change cannot be mapped to bucket, key or function."""

    def __init__(self, logical_id: str, detail: str) -> None:
        """Create the error for one unresolvable function update."""
        self.logical_id = logical_id
        self.detail = detail
        super().__init__(
            operation="fast-path",
            message=f"Cannot update function '{logical_id}' directly: {detail}",
        )


class AssetPublishError(DeploymentError):
    """Raised when one or more assets failed to publish."""

    def __init__(self, message: str) -> None:
        """Create the publish error."""
        super().__init__(operation="publish", message=message)


class WaitTimeoutError(DeploymentError):
    """Raised when a poll loop exceeds its policy bounds.

    Attributes:
        subject: What was being waited on
        last_status: The last status observed before giving up
    """

    def __init__(self, subject: str, last_status: str | None) -> None:
        """Create the timeout error with the last observed status."""
        self.subject = subject
        self.last_status = last_status
        super().__init__(
            operation="wait",
            message=(
                f"Timed out waiting for {subject} "
                f"(last observed status: {last_status or 'unknown'})"
            ),
        )
