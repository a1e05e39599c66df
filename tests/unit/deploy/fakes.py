"""Fakes of the remote collaborators used by the deployment engine tests.

``FakeCloudFormation`` replays scripted responses and records every call so
tests can assert which remote operations happened (and which did not).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from botocore.exceptions import ClientError

from stackpilot.deploy.clients import PublishOutcome
from stackpilot.models.assets import AssetManifest
from stackpilot.models.environment import Environment

STACK_NAME = "my-stack"
STACK_ID = f"arn:aws:cloudformation:us-east-1:123456789012:stack/{STACK_NAME}/abc"
COMPUTED_AT = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

MUTATING_CALLS = frozenset(
    {
        "create_change_set",
        "execute_change_set",
        "delete_change_set",
        "delete_stack",
        "update_termination_protection",
    }
)

SIMPLE_TEMPLATE: dict[str, Any] = {
    "Resources": {
        "Bucket": {"Type": "AWS::S3::Bucket", "Properties": {"BucketName": "data"}}
    }
}


def stack_not_found(stack_name: str = STACK_NAME) -> ClientError:
    """The error the control plane returns for a missing stack."""
    return ClientError(
        {
            "Error": {
                "Code": "ValidationError",
                "Message": f"Stack with id {stack_name} does not exist",
            }
        },
        "DescribeStacks",
    )


def stack_response(
    status: str,
    *,
    stack_name: str = STACK_NAME,
    parameters: dict[str, str] | None = None,
    tags: dict[str, str] | None = None,
    outputs: dict[str, str] | None = None,
    termination_protection: bool = False,
    reason: str | None = None,
) -> dict[str, Any]:
    """Build a ``describe_stacks`` response for one stack."""
    stack: dict[str, Any] = {
        "StackName": stack_name,
        "StackId": STACK_ID,
        "StackStatus": status,
        "Parameters": [
            {"ParameterKey": k, "ParameterValue": v}
            for k, v in (parameters or {}).items()
        ],
        "Tags": [{"Key": k, "Value": v} for k, v in (tags or {}).items()],
        "Outputs": [
            {"OutputKey": k, "OutputValue": v} for k, v in (outputs or {}).items()
        ],
        "EnableTerminationProtection": termination_protection,
    }
    if reason:
        stack["StackStatusReason"] = reason
    return {"Stacks": [stack]}


def change_set_response(
    status: str = "CREATE_COMPLETE",
    *,
    changes: list[dict[str, Any]] | None = None,
    reason: str = "",
    name: str | None = None,
    next_token: str | None = None,
) -> dict[str, Any]:
    """Build a ``describe_change_set`` response page.

    Without ``name`` the fake client echoes the requested change-set name.
    """
    response: dict[str, Any] = {
        "StackId": STACK_ID,
        "Status": status,
        "StatusReason": reason,
        "Changes": changes if changes is not None else [{"Type": "Resource"}],
        "CreationTime": COMPUTED_AT,
    }
    if name is not None:
        response["ChangeSetName"] = name
        response["ChangeSetId"] = f"{STACK_ID}:changeSet/{name}"
    if next_token:
        response["NextToken"] = next_token
    return response


class FakeCloudFormation:
    """Scripted CloudFormation client.

    Each ``*_responses`` list is consumed in order; its last entry repeats.
    Entries that are exceptions are raised instead of returned.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.stack_responses: list[Any] = [stack_not_found()]
        self.change_set_responses: list[Any] = [change_set_response()]
        self.template_body: str | None = None
        self.physical_ids: dict[str, str] = {}
        self.event_pages: list[dict[str, Any]] = [{"StackEvents": []}]

    @staticmethod
    def _next(queue: list[Any]) -> Any:
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def _record(self, name: str, kwargs: dict[str, Any]) -> None:
        self.calls.append((name, kwargs))

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def mutating_calls(self) -> list[str]:
        return [name for name in self.call_names() if name in MUTATING_CALLS]

    def kwargs_of(self, name: str) -> dict[str, Any]:
        """Arguments of the last call to ``name``."""
        matches = [kwargs for call, kwargs in self.calls if call == name]
        assert matches, f"{name} was never called"
        return matches[-1]

    def describe_stacks(self, **kwargs: Any) -> dict[str, Any]:
        self._record("describe_stacks", kwargs)
        return self._next(self.stack_responses)

    def get_template(self, **kwargs: Any) -> dict[str, Any]:
        self._record("get_template", kwargs)
        return {"TemplateBody": self.template_body}

    def create_change_set(self, **kwargs: Any) -> dict[str, Any]:
        self._record("create_change_set", kwargs)
        return {"Id": "cs-arn", "StackId": STACK_ID}

    def describe_change_set(self, **kwargs: Any) -> dict[str, Any]:
        self._record("describe_change_set", kwargs)
        response = dict(self._next(self.change_set_responses))
        requested = kwargs["ChangeSetName"]
        response.setdefault("ChangeSetName", requested)
        response.setdefault("ChangeSetId", f"{STACK_ID}:changeSet/{requested}")
        return response

    def execute_change_set(self, **kwargs: Any) -> dict[str, Any]:
        self._record("execute_change_set", kwargs)
        return {}

    def delete_change_set(self, **kwargs: Any) -> dict[str, Any]:
        self._record("delete_change_set", kwargs)
        return {}

    def delete_stack(self, **kwargs: Any) -> dict[str, Any]:
        self._record("delete_stack", kwargs)
        return {}

    def update_termination_protection(self, **kwargs: Any) -> dict[str, Any]:
        self._record("update_termination_protection", kwargs)
        return {"StackId": STACK_ID}

    def describe_stack_resource(self, **kwargs: Any) -> dict[str, Any]:
        self._record("describe_stack_resource", kwargs)
        logical_id = kwargs["LogicalResourceId"]
        if logical_id not in self.physical_ids:
            raise ClientError(
                {
                    "Error": {
                        "Code": "ValidationError",
                        "Message": f"Resource {logical_id} does not exist",
                    }
                },
                "DescribeStackResource",
            )
        return {
            "StackResourceDetail": {
                "LogicalResourceId": logical_id,
                "PhysicalResourceId": self.physical_ids[logical_id],
            }
        }

    def describe_stack_events(self, **kwargs: Any) -> dict[str, Any]:
        self._record("describe_stack_events", kwargs)
        return self._next(self.event_pages)


class FakeLambda:
    """Records direct function code updates."""

    def __init__(self) -> None:
        self.updates: list[dict[str, Any]] = []

    def update_function_code(self, **kwargs: Any) -> dict[str, Any]:
        self.updates.append(kwargs)
        return {"FunctionName": kwargs["FunctionName"]}


class FakePublisher:
    """Asset publisher that records each call and reports scripted failures."""

    def __init__(self, failures: dict[str, str] | None = None) -> None:
        self.failures = failures or {}
        self.calls: list[tuple[AssetManifest, Environment, list[str] | None]] = []

    def publish(
        self,
        manifest: AssetManifest,
        environment: Environment,
        asset_ids: list[str] | None = None,
    ) -> PublishOutcome:
        self.calls.append((manifest, environment, asset_ids))
        ids = list(manifest.files) if asset_ids is None else asset_ids
        return PublishOutcome(
            published=[a for a in ids if a not in self.failures],
            failures={a: m for a, m in self.failures.items() if a in ids},
        )


class RecordingHandle:
    def __init__(self) -> None:
        self.stop_count = 0

    def stop(self) -> None:
        self.stop_count += 1


class RecordingProgressSink:
    """Progress sink that remembers every start and its handle."""

    def __init__(self) -> None:
        self.starts: list[tuple[int | None, datetime | None]] = []
        self.handles: list[RecordingHandle] = []

    def start(
        self, expected_changes: int | None, computed_at: datetime | None
    ) -> RecordingHandle:
        self.starts.append((expected_changes, computed_at))
        handle = RecordingHandle()
        self.handles.append(handle)
        return handle


class FakeClock:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


