"""StackPilot - change-set based stack deployment for CloudFormation.

StackPilot reconciles a deployed stack with a synthesized template:

- Skips deployments when template, tags, termination protection and
  parameters are all unchanged
- Deploys through change-sets, staging oversized templates first
- Updates function code directly when only code bundles moved
- Recovers stacks left behind by a failed first creation
"""

from stackpilot.deploy.clients import DeployClients
from stackpilot.deploy.orchestrator import deploy_stack, destroy_stack
from stackpilot.lib.errors import ConfigError, DeploymentError, StackPilotError
from stackpilot.models.stack import DeployOptions, DeployResult, DestroyOptions

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConfigError",
    "DeployClients",
    "DeployOptions",
    "DeployResult",
    "DeploymentError",
    "DestroyOptions",
    "StackPilotError",
    "deploy_stack",
    "destroy_stack",
]
