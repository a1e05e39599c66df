"""Pydantic models for stack deployment inputs and results.

This module defines the desired stack handed over by template synthesis,
the options of a single deploy or destroy call, and their results.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stackpilot.models.assets import AssetManifest
from stackpilot.models.environment import StackIdentity


class Tag(BaseModel):
    """A stack tag, serialized with the control plane's ``Key``/``Value`` names."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    key: str = Field(..., alias="Key", min_length=1)
    value: str = Field(..., alias="Value")

    def to_api(self) -> dict[str, str]:
        """Return the tag in the shape the control plane expects."""
        return {"Key": self.key, "Value": self.value}


class DesiredStack(BaseModel):
    """The synthesized stack this engine reconciles remote state towards.

    Owned by the caller; the engine never mutates it.

    Attributes:
        stack_name: Name from the synthesized assembly
        template: Template document
        template_asset_object_url: Location of an already uploaded template
        termination_protection: Desired termination-protection flag
        tags: Desired stack tags
        assets: Caller-side assets to publish with the stack
        asset_parameters: Parameter values pointing at published assets
    """

    model_config = ConfigDict(extra="forbid")

    stack_name: str = Field(..., min_length=1, description="Synthesized stack name")
    template: dict[str, Any] = Field(..., description="Template document")
    template_asset_object_url: str | None = Field(
        default=None, description="Pre-uploaded template location"
    )
    termination_protection: bool | None = Field(
        default=None, description="Desired termination protection"
    )
    tags: list[Tag] = Field(default_factory=list, description="Desired stack tags")
    assets: AssetManifest = Field(
        default_factory=AssetManifest, description="Assets to publish"
    )
    asset_parameters: dict[str, str] = Field(
        default_factory=dict, description="Parameters pointing at published assets"
    )

    @property
    def display_name(self) -> str:
        """Name used in user-facing messages."""
        return self.stack_name


class ToolkitInfo(BaseModel):
    """Staging location for templates too large to submit inline.

    Attributes:
        bucket_name: Staging bucket name
        bucket_url: REST URL of the staging bucket
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    bucket_name: str = Field(..., min_length=1, description="Staging bucket")
    bucket_url: str = Field(..., min_length=1, description="Staging bucket URL")

    @field_validator("bucket_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise the URL so keys can be appended with one slash."""
        return v.rstrip("/")


class DeployOptions(BaseModel):
    """Options for a single deployment attempt.

    Attributes:
        stack: The desired stack
        identity: Target stack name, environment and execution role
        parameters: Explicit parameter values; empty or None values are ignored
        use_previous_parameters: Reuse remote values for unspecified parameters
        force: Deploy even if nothing appears to have changed
        execute: Execute the change-set, or leave it in review
        fast_path: Update function code directly when only code changed
        toolkit: Staging location for oversized templates
        quiet: Do not start progress reporting
    """

    model_config = ConfigDict(extra="forbid")

    stack: DesiredStack
    identity: StackIdentity
    parameters: dict[str, str | None] = Field(
        default_factory=dict, description="Explicit parameter values"
    )
    use_previous_parameters: bool = Field(
        default=False, description="Reuse previous values for unspecified parameters"
    )
    force: bool = Field(default=False, description="Skip the no-change check")
    execute: bool = Field(default=True, description="Execute the change-set")
    fast_path: bool = Field(default=False, description="Direct code updates")
    toolkit: ToolkitInfo | None = Field(
        default=None, description="Staging location for large templates"
    )
    quiet: bool = Field(default=False, description="Suppress progress reporting")

    @property
    def deploy_name(self) -> str:
        """Stack name in the control plane."""
        return self.identity.deploy_name


class DestroyOptions(BaseModel):
    """Options for destroying a stack."""

    model_config = ConfigDict(extra="forbid")

    stack: DesiredStack
    identity: StackIdentity
    quiet: bool = Field(default=False, description="Suppress progress reporting")

    @property
    def deploy_name(self) -> str:
        """Stack name in the control plane."""
        return self.identity.deploy_name


class DeployResult(BaseModel):
    """Result of a deployment attempt.

    Attributes:
        no_op: True when no remote change was made
        outputs: Stack outputs after the attempt
        stack_arn: Identifier of the stack
        stack: The desired stack that was deployed (echoed)
        change_set_name: Change-set created by this attempt, if any
        execution_pending: The change-set was left in review for manual execution
        fast_path_rejection: Why a requested fast path was not taken
        fast_path_updates: Function physical ids updated directly
    """

    model_config = ConfigDict(extra="forbid")

    no_op: bool = Field(..., description="True when nothing was changed")
    outputs: dict[str, str] = Field(default_factory=dict, description="Outputs")
    stack_arn: str = Field(default="", description="Stack identifier")
    stack: DesiredStack
    change_set_name: str | None = Field(default=None, description="Change-set name")
    execution_pending: bool = Field(
        default=False, description="Change-set awaits manual execution"
    )
    fast_path_rejection: str | None = Field(
        default=None, description="Why the fast path was not taken"
    )
    fast_path_updates: list[str] = Field(
        default_factory=list, description="Functions updated directly"
    )
