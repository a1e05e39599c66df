"""Tests for stack destruction."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from stackpilot.deploy.clients import DeployClients
from stackpilot.deploy.orchestrator import StackDeployer, destroy_stack
from stackpilot.deploy.waiters import Poller
from stackpilot.lib.errors import StackDestroyFailedError
from stackpilot.models.config import EngineConfig
from stackpilot.models.environment import Environment, StackIdentity
from stackpilot.models.stack import DesiredStack, DestroyOptions
from tests.unit.deploy.fakes import (
    STACK_NAME,
    FakeCloudFormation,
    FakeLambda,
    FakePublisher,
    RecordingProgressSink,
    stack_not_found,
    stack_response,
)


@pytest.fixture
def destroy_options(
    desired_stack: DesiredStack, identity: StackIdentity
) -> DestroyOptions:
    return DestroyOptions(stack=desired_stack, identity=identity)


@pytest.mark.unit
class TestDestroy:
    """Tests for StackDeployer.destroy."""

    def test_absent_stack_is_a_no_op(
        self,
        deployer: StackDeployer,
        cfn: FakeCloudFormation,
        progress: RecordingProgressSink,
        destroy_options: DestroyOptions,
    ) -> None:
        """Test that destroying a missing stack does nothing."""
        deployer.destroy(destroy_options)

        assert cfn.mutating_calls() == []
        assert progress.starts == []

    def test_deletes_and_waits(
        self,
        deployer: StackDeployer,
        cfn: FakeCloudFormation,
        progress: RecordingProgressSink,
        destroy_options: DestroyOptions,
    ) -> None:
        """Test that the stack is deleted and the wait ends when it is gone."""
        cfn.stack_responses = [
            stack_response("UPDATE_COMPLETE"),
            stack_response("DELETE_IN_PROGRESS"),
            stack_not_found(),
        ]

        deployer.destroy(destroy_options)

        assert cfn.kwargs_of("delete_stack") == {"StackName": STACK_NAME}
        assert cfn.call_names().count("describe_stacks") == 3
        ((expected, computed_at),) = progress.starts
        assert expected is None
        assert computed_at is not None
        assert progress.handles[0].stop_count == 1

    def test_delete_complete_counts_as_gone(
        self,
        deployer: StackDeployer,
        cfn: FakeCloudFormation,
        destroy_options: DestroyOptions,
    ) -> None:
        """Test that a DELETE_COMPLETE description ends the wait successfully."""
        cfn.stack_responses = [
            stack_response("UPDATE_COMPLETE"),
            stack_response("DELETE_COMPLETE"),
        ]

        deployer.destroy(destroy_options)

        assert cfn.mutating_calls() == ["delete_stack"]

    def test_delete_failed_raises(
        self,
        deployer: StackDeployer,
        cfn: FakeCloudFormation,
        progress: RecordingProgressSink,
        destroy_options: DestroyOptions,
    ) -> None:
        """Test that a stack stuck in DELETE_FAILED is reported."""
        cfn.stack_responses = [
            stack_response("UPDATE_COMPLETE"),
            stack_response("DELETE_FAILED", reason="bucket not empty"),
        ]

        with pytest.raises(StackDestroyFailedError) as exc_info:
            deployer.destroy(destroy_options)

        assert "DELETE_FAILED (bucket not empty)" in str(exc_info.value)
        assert progress.handles[0].stop_count == 1

    def test_role_arn_is_passed(
        self,
        deployer: StackDeployer,
        cfn: FakeCloudFormation,
        desired_stack: DesiredStack,
        environment: Environment,
    ) -> None:
        """Test that the execution role is used for the deletion."""
        cfn.stack_responses = [stack_response("UPDATE_COMPLETE"), stack_not_found()]
        identity = StackIdentity(
            deploy_name=STACK_NAME,
            environment=environment,
            role_arn="arn:aws:iam::123456789012:role/deployer",
        )

        deployer.destroy(DestroyOptions(stack=desired_stack, identity=identity))

        assert cfn.kwargs_of("delete_stack")["RoleARN"] == (
            "arn:aws:iam::123456789012:role/deployer"
        )

    def test_quiet_starts_no_progress(
        self,
        deployer: StackDeployer,
        cfn: FakeCloudFormation,
        progress: RecordingProgressSink,
        desired_stack: DesiredStack,
        identity: StackIdentity,
    ) -> None:
        """Test that quiet destroys report no progress."""
        cfn.stack_responses = [stack_response("UPDATE_COMPLETE"), stack_not_found()]

        deployer.destroy(
            DestroyOptions(stack=desired_stack, identity=identity, quiet=True)
        )

        assert progress.starts == []

    def test_destroy_stack_function(
        self,
        clients: DeployClients,
        cfn: FakeCloudFormation,
        destroy_options: DestroyOptions,
    ) -> None:
        """Test the module-level entry point with default poll policies."""
        cfn.stack_responses = [stack_response("UPDATE_COMPLETE"), stack_not_found()]

        destroy_stack(destroy_options, clients)

        assert cfn.mutating_calls() == ["delete_stack"]

    def test_activity_monitor_uses_configured_interval(
        self,
        cfn: FakeCloudFormation,
        lambda_client: FakeLambda,
        publisher: FakePublisher,
        poller: Poller,
        destroy_options: DestroyOptions,
    ) -> None:
        """Test that the default monitor polls at the configured cadence."""
        cfn.stack_responses = [stack_response("UPDATE_COMPLETE"), stack_not_found()]
        clients = DeployClients(
            cloudformation=cfn, lambda_client=lambda_client, publisher=publisher
        )
        deployer = StackDeployer(
            clients,
            EngineConfig(monitor_interval_seconds=30.0),
            change_set_poller=poller,
            stack_poller=poller,
        )

        with patch("stackpilot.deploy.clients.StackActivityMonitor") as monitor_cls:
            deployer.destroy(destroy_options)

        monitor_cls.assert_called_once_with(cfn, STACK_NAME, interval_seconds=30.0)
        monitor_cls.return_value.start.return_value.stop.assert_called_once_with()
