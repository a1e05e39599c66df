"""Pydantic models for stack deployments and engine settings."""

from stackpilot.models.assets import (
    AssetManifest,
    FileAsset,
    FileAssetDestination,
    FileAssetSource,
)
from stackpilot.models.config import EngineConfig, PollPolicy
from stackpilot.models.environment import Environment, StackIdentity
from stackpilot.models.stack import (
    DeployOptions,
    DeployResult,
    DesiredStack,
    DestroyOptions,
    Tag,
    ToolkitInfo,
)

__all__ = [
    "AssetManifest",
    "DeployOptions",
    "DeployResult",
    "DesiredStack",
    "DestroyOptions",
    "EngineConfig",
    "Environment",
    "FileAsset",
    "FileAssetDestination",
    "FileAssetSource",
    "PollPolicy",
    "StackIdentity",
    "Tag",
    "ToolkitInfo",
]
