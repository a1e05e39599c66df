"""Tests for Environment and StackIdentity models."""

import pytest
from pydantic import ValidationError

from stackpilot.models.environment import Environment, StackIdentity


@pytest.mark.unit
class TestEnvironment:
    """Tests for Environment model."""

    def test_default_name(self) -> None:
        """Test that the name defaults to the aws:// form."""
        env = Environment(account="123456789012", region="eu-west-1")
        assert env.name == "aws://123456789012/eu-west-1"

    def test_explicit_name_is_kept(self) -> None:
        """Test that a display name can be supplied."""
        env = Environment(account="123456789012", region="eu-west-1", name="prod")
        assert env.name == "prod"

    def test_parse(self) -> None:
        """Test parsing an environment specification."""
        env = Environment.parse("aws://123456789012/us-west-2")
        assert env.account == "123456789012"
        assert env.region == "us-west-2"

    def test_parse_rejects_malformed_spec(self) -> None:
        """Test that anything but aws://account/region is rejected."""
        with pytest.raises(ValueError, match="aws://account/region"):
            Environment.parse("123456789012/us-west-2")

    @pytest.mark.parametrize(
        "account,region,resolved",
        [
            ("123456789012", "us-east-1", True),
            ("unknown-account", "us-east-1", False),
            ("123456789012", "unknown-region", False),
            ("", "us-east-1", False),
        ],
    )
    def test_is_resolved(self, account: str, region: str, resolved: bool) -> None:
        """Test that placeholders and blanks are unresolved."""
        assert Environment(account=account, region=region).is_resolved is resolved

    def test_frozen(self) -> None:
        """Test that environments are immutable."""
        env = Environment(account="123456789012", region="us-east-1")
        with pytest.raises(ValidationError):
            env.region = "eu-west-1"  # type: ignore[misc]


@pytest.mark.unit
class TestStackIdentity:
    """Tests for StackIdentity model."""

    @pytest.fixture
    def env(self) -> Environment:
        return Environment(account="123456789012", region="us-east-1")

    def test_valid_role_arn(self, env: Environment) -> None:
        """Test that IAM role ARNs are accepted, including other partitions."""
        for arn in (
            "arn:aws:iam::123456789012:role/deploy",
            "arn:aws-cn:iam::123456789012:role/path/deploy",
        ):
            identity = StackIdentity(deploy_name="s", environment=env, role_arn=arn)
            assert identity.role_arn == arn

    def test_invalid_role_arn(self, env: Environment) -> None:
        """Test that non-role ARNs are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            StackIdentity(
                deploy_name="s",
                environment=env,
                role_arn="arn:aws:iam::123456789012:user/someone",
            )
        assert "Invalid execution role ARN" in str(exc_info.value)

    def test_deploy_name_required(self, env: Environment) -> None:
        """Test that an empty stack name is rejected."""
        with pytest.raises(ValidationError):
            StackIdentity(deploy_name="", environment=env)
