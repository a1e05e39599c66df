"""Target environment and stack identity models."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stackpilot.config.defaults import UNKNOWN_ACCOUNT, UNKNOWN_REGION

AWS_ENV_PATTERN = re.compile(r"aws://([a-z0-9A-Z\-@._]+)/([a-z\-0-9]+)")
ROLE_ARN_PATTERN = re.compile(r"^arn:aws[\w-]*:iam::\d{12}:role/[\w+=,.@/-]+$")


class Environment(BaseModel):
    """A resolved deployment environment (account + region).

    Attributes:
        account: AWS account id the stack deploys into
        region: AWS region name
        name: User-meaningful environment name, ``aws://account/region`` by default
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    account: str = Field(..., description="Target account id")
    region: str = Field(..., description="Target region")
    name: str = Field(default="", description="Environment display name")

    @model_validator(mode="before")
    @classmethod
    def default_name(cls, values: Any) -> Any:
        """Default the name to the canonical ``aws://`` form."""
        if isinstance(values, dict) and not values.get("name"):
            account = values.get("account", "")
            region = values.get("region", "")
            values = {**values, "name": format_environment(account, region)}
        return values

    @classmethod
    def parse(cls, spec: str) -> Environment:
        """Parse an ``aws://account/region`` environment specification."""
        match = AWS_ENV_PATTERN.fullmatch(spec)
        if not match:
            raise ValueError(
                f'Unable to parse environment specification "{spec}". '
                "Expected format: aws://account/region"
            )
        account, region = match.groups()
        return cls(account=account, region=region, name=spec)

    @property
    def is_resolved(self) -> bool:
        """Whether both account and region are concrete values."""
        return bool(
            self.account
            and self.region
            and self.account != UNKNOWN_ACCOUNT
            and self.region != UNKNOWN_REGION
        )


def format_environment(account: str, region: str) -> str:
    """Format an account/region pair as ``aws://account/region``."""
    return f"aws://{account}/{region}"


class StackIdentity(BaseModel):
    """Who and where a single deployment attempt targets.

    Immutable for the duration of one deployment.

    Attributes:
        deploy_name: Name of the stack in the control plane
        environment: Resolved target environment
        role_arn: Optional role the control plane assumes to apply changes
        notification_arns: Optional notification topics for stack events
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    deploy_name: str = Field(..., min_length=1, description="Stack name to deploy")
    environment: Environment = Field(..., description="Resolved target environment")
    role_arn: str | None = Field(
        default=None, description="Execution role passed to the control plane"
    )
    notification_arns: tuple[str, ...] = Field(
        default=(), description="Notification ARNs for stack events"
    )

    @field_validator("role_arn")
    @classmethod
    def validate_role_arn(cls, v: str | None) -> str | None:
        """Validate execution role ARN format."""
        if v is not None and not ROLE_ARN_PATTERN.match(v):
            raise ValueError(
                f"Invalid execution role ARN: {v}. "
                "Must match pattern: arn:aws:iam::<account-id>:role/<role-name>"
            )
        return v
