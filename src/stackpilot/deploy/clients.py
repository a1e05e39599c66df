"""Remote collaborators handed to every engine operation.

The engine never creates sessions or global clients of its own. Callers
build a ``DeployClients`` bundle (usually with ``from_session``) and pass it
explicitly to ``deploy_stack`` / ``destroy_stack``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from stackpilot.config.defaults import DEFAULT_MONITOR_INTERVAL
from stackpilot.deploy.monitor import ProgressSink, StackActivityMonitor
from stackpilot.lib.errors import AssetPublishError
from stackpilot.lib.logging_config import get_logger
from stackpilot.models.assets import AssetManifest
from stackpilot.models.environment import Environment

if TYPE_CHECKING:
    import boto3

logger = get_logger(__name__)


@dataclass
class PublishOutcome:
    """Aggregate result of one publish call.

    Attributes:
        published: Asset ids that were uploaded or already present
        failures: Asset id to failure message
    """

    published: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


class AssetPublisher(Protocol):
    """Uploads the entries of an asset manifest.

    Implementations must not raise part way through: every failure is
    collected into the returned outcome so the engine decides whether to
    abort.
    """

    def publish(
        self,
        manifest: AssetManifest,
        environment: Environment,
        asset_ids: list[str] | None = None,
    ) -> PublishOutcome: ...


ProgressSinkFactory = Callable[[Any, str], ProgressSink]


@dataclass
class DeployClients:
    """The remote clients one deployment talks to.

    Attributes:
        cloudformation: boto3 CloudFormation client for the target environment
        lambda_client: boto3 Lambda client for the target environment
        publisher: Asset publisher for the target environment
        progress_factory: Builds the progress sink for a stack name; without
            one a ``StackActivityMonitor`` is used
    """

    cloudformation: Any
    lambda_client: Any
    publisher: AssetPublisher
    progress_factory: ProgressSinkFactory | None = None

    @classmethod
    def from_session(
        cls,
        session: boto3.session.Session,
        environment: Environment,
        publisher: AssetPublisher,
        progress_factory: ProgressSinkFactory | None = None,
    ) -> DeployClients:
        """Build region-bound clients from a caller-owned boto3 session."""
        logger.debug(f"Creating clients for {environment.name}")
        return cls(
            cloudformation=session.client(
                "cloudformation", region_name=environment.region
            ),
            lambda_client=session.client("lambda", region_name=environment.region),
            publisher=publisher,
            progress_factory=progress_factory,
        )

    def progress_sink(
        self,
        stack_name: str,
        interval_seconds: float = DEFAULT_MONITOR_INTERVAL,
    ) -> ProgressSink:
        """Return the progress sink for ``stack_name``.

        ``interval_seconds`` only applies to the default activity monitor.
        """
        if self.progress_factory is not None:
            return self.progress_factory(self.cloudformation, stack_name)
        return StackActivityMonitor(
            self.cloudformation, stack_name, interval_seconds=interval_seconds
        )


def publish_assets(
    publisher: AssetPublisher,
    manifest: AssetManifest,
    environment: Environment,
    asset_ids: list[str] | None = None,
) -> PublishOutcome:
    """Publish ``manifest`` (optionally only ``asset_ids``) and check the outcome.

    Raises:
        AssetPublishError: If the environment is unresolved or any asset failed
    """
    if not environment.is_resolved:
        raise AssetPublishError(
            "Asset publishing requires a resolved account and region, "
            f"got {environment.name}"
        )

    logger.debug(
        f"Publishing {len(asset_ids) if asset_ids is not None else len(manifest.files)}"
        f" asset(s) to {environment.name}"
    )
    outcome = publisher.publish(manifest, environment, asset_ids)
    if outcome.has_failures:
        for asset_id, message in outcome.failures.items():
            logger.error(f"Failed to publish asset {asset_id}: {message}")
        raise AssetPublishError(
            "Failed to publish one or more assets: "
            + ", ".join(sorted(outcome.failures))
        )
    return outcome
