"""Apply code-only changes straight to the affected functions.

When every template difference is a function's code moving to a new object
storage location, the new code is published and each function's code is
replaced in place. No change-set is created.
"""

from __future__ import annotations

from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import ClientError

from stackpilot.config.defaults import (
    ACCOUNT_PLACEHOLDER,
    ASSET_BUCKET_PARAMETER_MARKER,
    ASSET_KEY_DELIMITER,
    ASSET_KEY_PARAMETER_MARKER,
    ASSET_PATH_PREFIX,
    CODE_PROPERTY,
    REGION_PLACEHOLDER,
)
from stackpilot.deploy.clients import DeployClients, PublishOutcome, publish_assets
from stackpilot.lib.errors import AssetPublishError, FastPathResolutionFailedError
from stackpilot.lib.logging_config import get_logger
from stackpilot.models.environment import Environment
from stackpilot.models.stack import DesiredStack

logger = get_logger(__name__)


@dataclass(frozen=True)
class CodeLocation:
    """Object storage coordinates of a function's code bundle."""

    bucket: str
    key: str


def asset_id_from_path(asset_path: str) -> str:
    """Strip the ``asset.`` prefix from an asset path annotation."""
    return asset_path.removeprefix(ASSET_PATH_PREFIX)


def _single(logical_id: str, what: str, candidates: set[str]) -> str | None:
    if len(candidates) > 1:
        raise FastPathResolutionFailedError(
            logical_id,
            f"conflicting {what} parameters: {', '.join(sorted(candidates))}",
        )
    return next(iter(candidates), None)


def _location_from_parameters(
    logical_id: str, asset_id: str, parameter_values: Mapping[str, str]
) -> tuple[str | None, str | None]:
    buckets: set[str] = set()
    keys: set[str] = set()
    for name, value in parameter_values.items():
        if asset_id not in name:
            continue
        if ASSET_BUCKET_PARAMETER_MARKER in name:
            buckets.add(value)
        elif ASSET_KEY_PARAMETER_MARKER in name:
            keys.add(value.replace(ASSET_KEY_DELIMITER, ""))
    return (
        _single(logical_id, "bucket", buckets),
        _single(logical_id, "key", keys),
    )


def _substitute_bucket(
    logical_id: str, expression: Any, environment: Environment
) -> str:
    if isinstance(expression, str):
        return expression
    if isinstance(expression, Mapping) and set(expression) == {"Fn::Sub"}:
        pattern = expression["Fn::Sub"]
        if isinstance(pattern, str):
            bucket = pattern.replace(ACCOUNT_PLACEHOLDER, environment.account).replace(
                REGION_PLACEHOLDER, environment.region
            )
            if "${" in bucket:
                raise FastPathResolutionFailedError(
                    logical_id, f"unresolved substitution in bucket '{bucket}'"
                )
            return bucket
    raise FastPathResolutionFailedError(
        logical_id, f"bucket expression {expression!r} cannot be resolved locally"
    )


def resolve_code_location(
    logical_id: str,
    asset_path: str,
    template: Mapping[str, Any],
    parameter_values: Mapping[str, str],
    environment: Environment,
) -> CodeLocation:
    """Find the bucket and key a changed function's code now lives at.

    Sources, in priority order: asset parameters in the resolved parameter
    plan, then the literal location in the function's ``Code`` property,
    with an account/region substitution when the bucket is an ``Fn::Sub``.

    Raises:
        FastPathResolutionFailedError: If bucket or key cannot be determined
    """
    bucket, key = _location_from_parameters(
        logical_id, asset_id_from_path(asset_path), parameter_values
    )
    if bucket is not None and key is not None:
        return CodeLocation(bucket=bucket, key=key)

    resource = (template.get("Resources") or {}).get(logical_id) or {}
    code = (resource.get("Properties") or {}).get(CODE_PROPERTY)
    if not isinstance(code, Mapping) or "S3Bucket" not in code or "S3Key" not in code:
        raise FastPathResolutionFailedError(
            logical_id, "no code location in parameters or template"
        )

    key_value = code["S3Key"]
    if not isinstance(key_value, str):
        raise FastPathResolutionFailedError(
            logical_id, f"key expression {key_value!r} cannot be resolved locally"
        )
    return CodeLocation(
        bucket=_substitute_bucket(logical_id, code["S3Bucket"], environment),
        key=key_value,
    )


class FastPathUpdater:
    """Publishes changed code bundles and swaps them into their functions."""

    def __init__(
        self,
        clients: DeployClients,
        environment: Environment,
        stack_name: str,
        desired: DesiredStack,
        parameter_values: Mapping[str, str],
        publish_concurrency: int = 4,
    ) -> None:
        self.clients = clients
        self.environment = environment
        self.stack_name = stack_name
        self.desired = desired
        self.parameter_values = dict(parameter_values)
        self.publish_concurrency = publish_concurrency

    def apply(self, modified_asset_paths: Mapping[str, str]) -> list[str]:
        """Update every function listed in ``modified_asset_paths``.

        Locations and physical ids are resolved for every function before
        anything is published, so an unresolvable function fails the whole
        update without touching remote state.

        Args:
            modified_asset_paths: Asset path to function logical id

        Returns:
            Physical ids of the updated functions, in input order

        Raises:
            FastPathResolutionFailedError: If any function cannot be resolved
            AssetPublishError: If any filtered publish failed
        """
        plan: list[tuple[str, CodeLocation]] = []
        for asset_path, logical_id in modified_asset_paths.items():
            location = resolve_code_location(
                logical_id,
                asset_path,
                self.desired.template,
                self.parameter_values,
                self.environment,
            )
            plan.append((self._physical_id(logical_id), location))

        self._publish([asset_id_from_path(p) for p in modified_asset_paths])

        updated = []
        for physical_id, location in plan:
            logger.debug(
                f"Updating code of {physical_id} to "
                f"s3://{location.bucket}/{location.key}"
            )
            self.clients.lambda_client.update_function_code(
                FunctionName=physical_id,
                S3Bucket=location.bucket,
                S3Key=location.key,
                Publish=True,
            )
            updated.append(physical_id)
        return updated

    def _physical_id(self, logical_id: str) -> str:
        try:
            response = self.clients.cloudformation.describe_stack_resource(
                StackName=self.stack_name, LogicalResourceId=logical_id
            )
        except ClientError as exc:
            raise FastPathResolutionFailedError(
                logical_id, f"physical id lookup failed: {exc}"
            ) from exc
        detail = response.get("StackResourceDetail") or {}
        physical_id = detail.get("PhysicalResourceId")
        if not physical_id:
            raise FastPathResolutionFailedError(logical_id, "no physical id")
        return physical_id

    def _publish(self, asset_ids: list[str]) -> None:
        manifest = self.desired.assets
        present = [a for a in asset_ids if a in manifest.files]
        if not present:
            logger.debug("No assets to publish for the direct code update")
            return

        def publish_one(asset_id: str) -> PublishOutcome:
            return publish_assets(
                self.clients.publisher,
                manifest.filtered([asset_id]),
                self.environment,
                [asset_id],
            )

        errors: list[str] = []
        with ThreadPoolExecutor(max_workers=self.publish_concurrency) as pool:
            futures = [pool.submit(publish_one, a) for a in present]
            for future in futures:
                try:
                    future.result()
                except AssetPublishError as exc:
                    errors.append(exc.message)
        if errors:
            raise AssetPublishError("; ".join(errors))
