"""Reconcile declared template parameters with supplied and remote values.

Resolution order for each declared parameter:

1. an explicitly supplied, non-empty value;
2. the stack's current value, submitted as "use previous value";
3. the template's own Default (not submitted at all);
4. otherwise the parameter is missing.

Supplied values for parameters the template does not declare are kept and
submitted unchanged, so the control plane reports them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from stackpilot.config.defaults import SSM_PARAMETER_TYPE_PREFIX
from stackpilot.lib.errors import MissingParameterValueError
from stackpilot.lib.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ParameterPlan:
    """The resolved parameter submission for one deployment.

    Attributes:
        values: Resolved value of every parameter, whatever its source
        api_parameters: Parameter list in the control plane's request shape
        has_changes: Whether the submission differs from the stack's current
            parameters
    """

    values: dict[str, str] = field(default_factory=dict)
    api_parameters: list[dict[str, Any]] = field(default_factory=list)
    has_changes: bool = False


def _has_ssm_parameter(declared: Mapping[str, Mapping[str, Any]]) -> bool:
    """SSM-typed parameters resolve remotely, so they may change on every deploy."""
    return any(
        str(definition.get("Type", "")).startswith(SSM_PARAMETER_TYPE_PREFIX)
        for definition in declared.values()
    )


def _compute_has_changes(
    declared: Mapping[str, Mapping[str, Any]],
    values: Mapping[str, str],
    current: Mapping[str, str],
) -> bool:
    if _has_ssm_parameter(declared):
        return True
    if set(current) - set(values):
        return True
    return any(current.get(key) != value for key, value in values.items())


def plan_parameters(
    declared: Mapping[str, Mapping[str, Any]],
    supplied: Mapping[str, str | None],
    current: Mapping[str, str] | None = None,
    use_previous_parameters: bool = False,
) -> ParameterPlan:
    """Resolve every declared parameter to a value or a use-previous marker.

    Args:
        declared: Parameter definitions from the template
        supplied: Caller values; None and empty strings count as not supplied
        current: The stack's current parameter values
        use_previous_parameters: Allow falling back to ``current``

    Returns:
        The resolved ParameterPlan

    Raises:
        MissingParameterValueError: Listing every parameter left without a value
    """
    current = dict(current or {})
    previous = current if use_previous_parameters else {}
    given = {k: v for k, v in supplied.items() if v is not None and v != ""}

    values: dict[str, str] = {}
    api_parameters: list[dict[str, Any]] = []
    missing: list[str] = []

    for name, definition in declared.items():
        if name in given:
            values[name] = given[name]
            api_parameters.append(
                {"ParameterKey": name, "ParameterValue": given[name]}
            )
        elif name in previous:
            values[name] = previous[name]
            api_parameters.append({"ParameterKey": name, "UsePreviousValue": True})
        elif "Default" in definition:
            values[name] = str(definition["Default"])
        else:
            missing.append(name)

    if missing:
        raise MissingParameterValueError(missing)

    for name, value in given.items():
        if name not in declared:
            logger.debug(f"Passing undeclared parameter {name} through unchanged")
            values[name] = value
            api_parameters.append({"ParameterKey": name, "ParameterValue": value})

    return ParameterPlan(
        values=values,
        api_parameters=api_parameters,
        has_changes=_compute_has_changes(declared, values, current),
    )


class TemplateParameters:
    """The parameters a template declares, ready to be supplied with values."""

    def __init__(self, declared: Mapping[str, Mapping[str, Any]]) -> None:
        self.declared = dict(declared)

    @classmethod
    def from_template(cls, template: Mapping[str, Any]) -> TemplateParameters:
        return cls(template.get("Parameters") or {})

    def supply_all(
        self,
        updates: Mapping[str, str | None],
        current: Mapping[str, str] | None = None,
    ) -> ParameterPlan:
        """Resolve parameters without reusing any previous values."""
        return plan_parameters(self.declared, updates, current, False)

    def update_existing(
        self,
        updates: Mapping[str, str | None],
        current: Mapping[str, str],
    ) -> ParameterPlan:
        """Resolve parameters, reusing ``current`` values where none are supplied."""
        return plan_parameters(self.declared, updates, current, True)
