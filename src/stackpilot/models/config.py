"""Engine configuration models.

Poll loops are driven by an explicit ``PollPolicy`` rather than ad hoc
sleeps, so tests can substitute a fake clock.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stackpilot.config.defaults import (
    DEFAULT_CHANGE_SET_TIMEOUT,
    DEFAULT_MONITOR_INTERVAL,
    DEFAULT_PUBLISH_CONCURRENCY,
    DEFAULT_STACK_TIMEOUT,
)


class PollPolicy(BaseModel):
    """Bounded poll/backoff policy for waiting on the control plane.

    Attributes:
        delay_seconds: Delay before the second poll
        max_delay_seconds: Upper bound the delay grows to
        backoff: Multiplier applied to the delay after each poll
        max_attempts: Optional cap on the number of polls
        timeout_seconds: Optional overall deadline for the wait
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    delay_seconds: float = Field(default=5.0, ge=0, description="Initial delay")
    max_delay_seconds: float = Field(default=20.0, ge=0, description="Delay cap")
    backoff: float = Field(default=1.5, ge=1.0, description="Delay multiplier")
    max_attempts: int | None = Field(
        default=None, ge=1, description="Maximum number of polls"
    )
    timeout_seconds: float | None = Field(
        default=None, gt=0, description="Overall deadline in seconds"
    )

    @model_validator(mode="after")
    def validate_delays(self) -> PollPolicy:
        """Validate that delay_seconds <= max_delay_seconds."""
        if self.delay_seconds > self.max_delay_seconds:
            raise ValueError(
                f"delay_seconds ({self.delay_seconds}) must be <= "
                f"max_delay_seconds ({self.max_delay_seconds})"
            )
        return self

    def next_delay(self, current: float) -> float:
        """Return the delay to use after ``current``."""
        return min(current * self.backoff, self.max_delay_seconds)


class EngineConfig(BaseModel):
    """Settings shared by every deploy and destroy call.

    Attributes:
        change_set_poll: Policy for waiting on change-set computation
        stack_poll: Policy for waiting on a stack to stabilise
        monitor_interval_seconds: Event polling cadence of the activity monitor
        publish_concurrency: Parallel filtered publishes on the fast path
        verbose: Debug logging
        quiet: Suppress progress reporting
    """

    model_config = ConfigDict(extra="forbid")

    change_set_poll: PollPolicy = Field(
        default_factory=lambda: PollPolicy(
            delay_seconds=2.0,
            max_delay_seconds=10.0,
            timeout_seconds=DEFAULT_CHANGE_SET_TIMEOUT,
        ),
        description="Change-set computation poll policy",
    )
    stack_poll: PollPolicy = Field(
        default_factory=lambda: PollPolicy(timeout_seconds=DEFAULT_STACK_TIMEOUT),
        description="Stack stabilisation poll policy",
    )
    monitor_interval_seconds: float = Field(
        default=DEFAULT_MONITOR_INTERVAL, gt=0, description="Event poll cadence"
    )
    publish_concurrency: int = Field(
        default=DEFAULT_PUBLISH_CONCURRENCY, ge=1, description="Parallel publishes"
    )
    verbose: bool = Field(default=False, description="Debug logging")
    quiet: bool = Field(default=False, description="Suppress progress output")
