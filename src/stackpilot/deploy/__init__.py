"""StackPilot deployment engine.

This package reads remote stack state, decides whether a deployment is
needed, and drives change-sets or direct function code updates to
completion.
"""

from stackpilot.deploy.clients import (
    AssetPublisher,
    DeployClients,
    PublishOutcome,
    publish_assets,
)
from stackpilot.deploy.monitor import (
    NullProgressSink,
    ProgressHandle,
    ProgressSink,
    StackActivityMonitor,
)
from stackpilot.deploy.orchestrator import StackDeployer, deploy_stack, destroy_stack
from stackpilot.deploy.stack_state import CloudFormationStack, StackStatus

__all__ = [
    "AssetPublisher",
    "CloudFormationStack",
    "DeployClients",
    "NullProgressSink",
    "ProgressHandle",
    "ProgressSink",
    "PublishOutcome",
    "StackActivityMonitor",
    "StackDeployer",
    "StackStatus",
    "deploy_stack",
    "destroy_stack",
    "publish_assets",
]
