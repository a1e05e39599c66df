"""Deploy and destroy a single stack.

``deploy_stack`` reconciles the remote stack with the desired one:

1. look the stack up and plan parameters (missing values fail here, before
   anything remote is touched);
2. remove a stack left over from a failed first creation;
3. skip the deployment when nothing changed;
4. apply code-only changes directly when the fast path was requested;
5. otherwise create a change-set, wait for it, and execute it (or leave it
   for review).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from stackpilot.config.defaults import (
    CHANGE_SET_CAPABILITIES,
    CHANGE_SET_NAME_PREFIX,
)
from stackpilot.deploy.body import make_body_parameter
from stackpilot.deploy.clients import DeployClients, publish_assets
from stackpilot.deploy.fast_path import FastPathUpdater
from stackpilot.deploy.monitor import NullProgressSink, ProgressHandle
from stackpilot.deploy.parameters import ParameterPlan, TemplateParameters
from stackpilot.deploy.skip import decide
from stackpilot.deploy.stack_state import CloudFormationStack
from stackpilot.deploy.waiters import (
    ChangeSetDescription,
    Poller,
    wait_for_change_set,
    wait_for_stack_delete,
    wait_for_stack_deploy,
)
from stackpilot.lib.errors import (
    StackDeleteFailedError,
    StackDestroyFailedError,
    StackVanishedDuringDeployError,
)
from stackpilot.lib.logging_config import get_logger
from stackpilot.models.config import EngineConfig
from stackpilot.models.stack import DeployOptions, DeployResult, DestroyOptions

logger = get_logger(__name__)


def change_set_name() -> str:
    """Return a fresh, unique change-set name."""
    return f"{CHANGE_SET_NAME_PREFIX}-{uuid.uuid4()}"


class StackDeployer:
    """Runs deploy and destroy operations against one set of clients.

    Attributes:
        clients: Remote collaborators
        config: Poll policies and engine settings
    """

    def __init__(
        self,
        clients: DeployClients,
        config: EngineConfig | None = None,
        change_set_poller: Poller | None = None,
        stack_poller: Poller | None = None,
    ) -> None:
        self.clients = clients
        self.config = config or EngineConfig()
        self.change_set_poller = change_set_poller or Poller(
            self.config.change_set_poll
        )
        self.stack_poller = stack_poller or Poller(self.config.stack_poll)

    @property
    def cfn(self) -> Any:
        return self.clients.cloudformation

    def deploy(self, options: DeployOptions) -> DeployResult:
        """Deploy ``options.stack`` under ``options.deploy_name``.

        Returns:
            DeployResult; ``no_op`` is True when nothing was changed remotely

        Raises:
            MissingParameterValueError: Before any remote mutation
            StackDeleteFailedError: A failed first creation could not be removed
            TemplateTooLargeWithoutStagingError: Large template, no staging bucket
            AssetPublishError: Asset or template upload failed
            ChangeSetCreationFailedError: The change-set could not be computed
            StackDeployFailedError: Execution ended in a non-success state
            StackVanishedDuringDeployError: The stack disappeared during execution
            FastPathResolutionFailedError: A code-only change could not be mapped
            WaitTimeoutError: A wait exceeded its poll policy
        """
        name = options.deploy_name
        desired = options.stack
        environment = options.identity.environment

        remote = CloudFormationStack.lookup(self.cfn, name)
        recreate = remote.status.is_creation_failure

        plan = self._plan_parameters(
            options, {} if recreate else remote.parameters
        )

        if recreate:
            remote = self._remove_failed_creation(options, remote)

        decision = decide(remote, options, plan.has_changes)
        if not decision.has_changes:
            logger.debug(f"{name}: skipping deployment (nothing changed)")
            return DeployResult(
                no_op=True,
                outputs=remote.outputs,
                stack_arn=remote.stack_id,
                stack=desired,
            )
        logger.debug(f"{name}: deploying ({decision.reason.value})")

        if options.fast_path:
            if not decision.fast_path_eligible:
                logger.info(
                    f"{name}: not updating functions directly: "
                    f"{decision.fast_path_rejection}"
                )
                return DeployResult(
                    no_op=True,
                    outputs=remote.outputs,
                    stack_arn=remote.stack_id,
                    stack=desired,
                    fast_path_rejection=decision.fast_path_rejection,
                )
            updater = FastPathUpdater(
                self.clients,
                environment,
                name,
                desired,
                plan.values,
                publish_concurrency=self.config.publish_concurrency,
            )
            updated = updater.apply(decision.modified_asset_paths)
            logger.info(f"{name}: updated code of {len(updated)} function(s)")
            return DeployResult(
                no_op=False,
                outputs=remote.outputs,
                stack_arn=remote.stack_id,
                stack=desired,
                fast_path_updates=updated,
            )

        return self._deploy_change_set(options, remote, plan)

    def destroy(self, options: DestroyOptions) -> None:
        """Delete the stack and wait until it is gone.

        Raises:
            StackDestroyFailedError: The stack settled in a non-deleted state
        """
        name = options.deploy_name
        remote = CloudFormationStack.lookup(self.cfn, name)
        if not remote.exists:
            logger.debug(f"{name}: nothing to destroy")
            return

        handle = self._start_progress(
            name, options.quiet, None, datetime.now(timezone.utc)
        )
        try:
            logger.debug(f"{name}: deleting stack")
            self.cfn.delete_stack(
                **self._delete_kwargs(name, options.identity.role_arn)
            )
            remaining = wait_for_stack_delete(self.cfn, name, self.stack_poller)
            if remaining is not None:
                raise StackDestroyFailedError(name, str(remaining.status))
        finally:
            handle.stop()
        logger.info(f"{name}: destroyed")

    def _plan_parameters(
        self, options: DeployOptions, current: dict[str, str]
    ) -> ParameterPlan:
        template_parameters = TemplateParameters.from_template(options.stack.template)
        supplied = {**options.parameters, **options.stack.asset_parameters}
        if options.use_previous_parameters:
            return template_parameters.update_existing(supplied, current)
        return template_parameters.supply_all(supplied, current)

    def _remove_failed_creation(
        self, options: DeployOptions, remote: CloudFormationStack
    ) -> CloudFormationStack:
        name = options.deploy_name
        logger.debug(
            f"{name}: removing stack that failed creation ({remote.status})"
        )
        self.cfn.delete_stack(**self._delete_kwargs(name, options.identity.role_arn))
        remaining = wait_for_stack_delete(self.cfn, name, self.stack_poller)
        if remaining is not None:
            raise StackDeleteFailedError(name, str(remaining.status))
        return CloudFormationStack.does_not_exist(self.cfn, name)

    def _deploy_change_set(
        self,
        options: DeployOptions,
        remote: CloudFormationStack,
        plan: ParameterPlan,
    ) -> DeployResult:
        name = options.deploy_name
        desired = options.stack
        identity = options.identity
        execution_id = str(uuid.uuid4())

        manifest = desired.assets.copy_for_deploy()
        body = make_body_parameter(
            desired, identity.environment, manifest, options.toolkit
        )
        if not manifest.is_empty:
            publish_assets(self.clients.publisher, manifest, identity.environment)

        cs_name = change_set_name()
        update = remote.exists and not remote.status.is_review_in_progress
        request: dict[str, Any] = {
            "StackName": name,
            "ChangeSetName": cs_name,
            "ChangeSetType": "UPDATE" if update else "CREATE",
            "Description": f"StackPilot Changeset for execution {execution_id}",
            "Parameters": plan.api_parameters,
            "Capabilities": CHANGE_SET_CAPABILITIES,
            "Tags": [tag.to_api() for tag in desired.tags],
            **body.to_api(),
        }
        if identity.role_arn:
            request["RoleARN"] = identity.role_arn
        if identity.notification_arns:
            request["NotificationARNs"] = list(identity.notification_arns)

        logger.info(f"{desired.display_name}: creating CloudFormation changeset...")
        logger.debug(f"{name}: {request['ChangeSetType']} changeset {cs_name}")
        self.cfn.create_change_set(**request)
        change_set = wait_for_change_set(
            self.cfn, name, cs_name, self.change_set_poller
        )

        self._update_termination_protection(options, remote)

        if change_set.has_no_changes:
            logger.debug(f"{name}: no changes are to be performed")
            self.cfn.delete_change_set(StackName=name, ChangeSetName=cs_name)
            return DeployResult(
                no_op=True,
                outputs=remote.outputs,
                stack_arn=change_set.stack_id,
                stack=desired,
            )

        if not options.execute:
            logger.info(
                f"Changeset {cs_name} created and waiting in review for manual "
                "execution (execute disabled)"
            )
            return DeployResult(
                no_op=False,
                outputs=remote.outputs,
                stack_arn=change_set.stack_id,
                stack=desired,
                change_set_name=cs_name,
                execution_pending=True,
            )

        return self._execute(options, cs_name, change_set)

    def _execute(
        self,
        options: DeployOptions,
        cs_name: str,
        change_set: ChangeSetDescription,
    ) -> DeployResult:
        name = options.deploy_name
        logger.debug(f"{name}: executing changeset {cs_name}")
        self.cfn.execute_change_set(StackName=name, ChangeSetName=cs_name)

        handle = self._start_progress(
            name,
            options.quiet,
            len(change_set.changes),
            change_set.creation_time,
        )
        try:
            deployed = wait_for_stack_deploy(self.cfn, name, self.stack_poller)
            if deployed is None:
                raise StackVanishedDuringDeployError(name)
        finally:
            handle.stop()

        logger.debug(f"{name}: stack has finished deploying ({deployed.status})")
        return DeployResult(
            no_op=False,
            outputs=deployed.outputs,
            stack_arn=change_set.stack_id or deployed.stack_id,
            stack=options.stack,
            change_set_name=cs_name,
        )

    def _update_termination_protection(
        self, options: DeployOptions, remote: CloudFormationStack
    ) -> None:
        desired = bool(options.stack.termination_protection)
        if desired == remote.termination_protection:
            return
        logger.debug(
            f"{options.deploy_name}: "
            f"{'enabling' if desired else 'disabling'} termination protection"
        )
        self.cfn.update_termination_protection(
            StackName=options.deploy_name, EnableTerminationProtection=desired
        )

    def _start_progress(
        self,
        stack_name: str,
        quiet: bool,
        expected_changes: int | None,
        computed_at: datetime | None,
    ) -> ProgressHandle:
        if quiet or self.config.quiet:
            return NullProgressSink().start(expected_changes, computed_at)
        sink = self.clients.progress_sink(
            stack_name, self.config.monitor_interval_seconds
        )
        return sink.start(expected_changes, computed_at)

    @staticmethod
    def _delete_kwargs(stack_name: str, role_arn: str | None) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"StackName": stack_name}
        if role_arn:
            kwargs["RoleARN"] = role_arn
        return kwargs


def deploy_stack(
    options: DeployOptions,
    clients: DeployClients,
    config: EngineConfig | None = None,
) -> DeployResult:
    """Deploy one stack. See ``StackDeployer.deploy``."""
    return StackDeployer(clients, config).deploy(options)


def destroy_stack(
    options: DestroyOptions,
    clients: DeployClients,
    config: EngineConfig | None = None,
) -> None:
    """Destroy one stack. See ``StackDeployer.destroy``."""
    StackDeployer(clients, config).destroy(options)
