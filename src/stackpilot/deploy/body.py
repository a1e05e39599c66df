"""Choose how a template is handed to the control plane.

Templates travel either inline in the request or as a URL pointing at an
object in the staging bucket.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Any

from stackpilot.config.defaults import (
    ACCOUNT_PLACEHOLDER,
    DO_NOT_USE_MARKER,
    LARGE_TEMPLATE_SIZE_KB,
    PARTITION_PLACEHOLDER,
    REGION_PLACEHOLDER,
)
from stackpilot.lib.errors import (
    TemplateTooLargeWithoutStagingError,
    UnsupportedPartitionSubstitutionError,
)
from stackpilot.lib.logging_config import get_logger
from stackpilot.lib.serialize import to_yaml
from stackpilot.models.assets import (
    AssetManifest,
    FileAssetDestination,
    FileAssetSource,
)
from stackpilot.models.environment import Environment
from stackpilot.models.stack import DesiredStack, ToolkitInfo

logger = get_logger(__name__)

STAGED_TEMPLATE_KEY_PREFIX = "cdk"

_S3_URL_PATTERN = re.compile(r"s3://([^/]+)/(.*)$")


@dataclass(frozen=True)
class TemplateBodyParameter:
    """Exactly one of an inline body or a template URL."""

    template_body: str | None = None
    template_url: str | None = None

    def to_api(self) -> dict[str, Any]:
        """Return the request keyword arguments for this body."""
        if self.template_url is not None:
            return {"TemplateURL": self.template_url}
        return {"TemplateBody": self.template_body}


def content_hash(text: str) -> str:
    """Return the hex SHA-256 of ``text``; equal text always hashes equal."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def endpoint_suffix(region: str) -> str:
    """DNS suffix of the object storage endpoints of ``region``."""
    return "amazonaws.com.cn" if region.startswith("cn-") else "amazonaws.com"


def rest_url_from_manifest(url: str, environment: Environment) -> str:
    """Turn a pre-uploaded template location into a REST URL.

    Account and region placeholders are substituted. ``s3://bucket/key``
    locations are rewritten to the regional HTTPS endpoint; any other URL
    is returned as is.

    Raises:
        UnsupportedPartitionSubstitutionError: If the URL needs a partition
    """
    resolved = (
        url.replace(ACCOUNT_PLACEHOLDER, environment.account)
        .replace(REGION_PLACEHOLDER, environment.region)
        .replace(PARTITION_PLACEHOLDER, DO_NOT_USE_MARKER)
    )
    if DO_NOT_USE_MARKER in resolved:
        raise UnsupportedPartitionSubstitutionError(url)

    match = _S3_URL_PATTERN.match(resolved)
    if not match:
        return resolved

    bucket_name, object_key = match.groups()
    suffix = endpoint_suffix(environment.region)
    return f"https://s3.{environment.region}.{suffix}/{bucket_name}/{object_key}"


def make_body_parameter(
    stack: DesiredStack,
    environment: Environment,
    manifest: AssetManifest,
    toolkit: ToolkitInfo | None,
) -> TemplateBodyParameter:
    """Pick the template submission form for ``stack``.

    Large templates are registered in ``manifest`` under their content hash
    so the caller's asset publisher uploads them before the change-set is
    created.

    Raises:
        TemplateTooLargeWithoutStagingError: Large template and no staging bucket
        UnsupportedPartitionSubstitutionError: Pre-uploaded URL needs a partition
    """
    if stack.template_asset_object_url:
        return TemplateBodyParameter(
            template_url=rest_url_from_manifest(
                stack.template_asset_object_url, environment
            )
        )

    body = to_yaml(stack.template)
    size = len(body.encode("utf-8"))
    if size <= LARGE_TEMPLATE_SIZE_KB * 1024:
        return TemplateBodyParameter(template_body=body)

    if toolkit is None:
        raise TemplateTooLargeWithoutStagingError(
            stack.display_name,
            round(size / 1024),
            LARGE_TEMPLATE_SIZE_KB,
            environment.name,
        )

    template_hash = content_hash(body)
    key = f"{STAGED_TEMPLATE_KEY_PREFIX}/{stack.stack_name}/{template_hash}.yml"
    manifest.add_file_asset(
        template_hash,
        FileAssetSource(content=body.encode("utf-8")),
        FileAssetDestination(bucket_name=toolkit.bucket_name, object_key=key),
    )

    template_url = f"{toolkit.bucket_url}/{key}"
    logger.debug(f"Storing template in S3 at: {template_url}")
    return TemplateBodyParameter(template_url=template_url)
