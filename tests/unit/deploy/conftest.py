"""Fixtures shared by the deployment engine tests."""

from __future__ import annotations

import pytest

from stackpilot.deploy.clients import DeployClients
from stackpilot.deploy.orchestrator import StackDeployer
from stackpilot.deploy.waiters import Poller
from stackpilot.models.config import EngineConfig, PollPolicy
from stackpilot.models.environment import Environment, StackIdentity
from stackpilot.models.stack import DesiredStack
from tests.unit.deploy.fakes import (
    SIMPLE_TEMPLATE,
    STACK_NAME,
    FakeClock,
    FakeCloudFormation,
    FakeLambda,
    FakePublisher,
    RecordingProgressSink,
)


@pytest.fixture
def environment() -> Environment:
    return Environment(account="123456789012", region="us-east-1")


@pytest.fixture
def identity(environment: Environment) -> StackIdentity:
    return StackIdentity(deploy_name=STACK_NAME, environment=environment)


@pytest.fixture
def desired_stack() -> DesiredStack:
    return DesiredStack(stack_name=STACK_NAME, template=SIMPLE_TEMPLATE)


@pytest.fixture
def cfn() -> FakeCloudFormation:
    return FakeCloudFormation()


@pytest.fixture
def lambda_client() -> FakeLambda:
    return FakeLambda()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def progress() -> RecordingProgressSink:
    return RecordingProgressSink()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def clients(
    cfn: FakeCloudFormation,
    lambda_client: FakeLambda,
    publisher: FakePublisher,
    progress: RecordingProgressSink,
) -> DeployClients:
    return DeployClients(
        cloudformation=cfn,
        lambda_client=lambda_client,
        publisher=publisher,
        progress_factory=lambda _cfn, _name: progress,
    )


@pytest.fixture
def poll_policy() -> PollPolicy:
    return PollPolicy(delay_seconds=1.0, max_delay_seconds=4.0, timeout_seconds=60)


@pytest.fixture
def poller(poll_policy: PollPolicy, clock: FakeClock) -> Poller:
    return Poller(poll_policy, clock=clock.time, sleep=clock.sleep)


@pytest.fixture
def deployer(clients: DeployClients, poller: Poller) -> StackDeployer:
    return StackDeployer(
        clients,
        EngineConfig(),
        change_set_poller=poller,
        stack_poller=poller,
    )
