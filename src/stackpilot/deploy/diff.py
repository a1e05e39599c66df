"""Template differencing and fast-path classification.

``diff_templates`` compares the deployed template with the desired one and
yields one typed difference per changed resource. ``classify_fast_path``
decides whether the whole difference consists of function code moves that
can be applied directly, without a change-set.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from stackpilot.config.defaults import (
    ASSET_PATH_METADATA_KEY,
    CODE_LOCATION_KEYS,
    CODE_PROPERTY,
    FUNCTION_RESOURCE_TYPE,
    TOOLING_METADATA_RESOURCE_TYPE,
)
from stackpilot.lib.logging_config import get_logger

logger = get_logger(__name__)

# Template sections whose changes never block a direct code update.
# Asset parameters change with every new code bundle.
FAST_PATH_NEUTRAL_SECTIONS = frozenset({"Resources", "Parameters", "Metadata"})


@dataclass(frozen=True)
class PropertyDifference:
    """A single changed key of a resource (a property or a top-level attribute)."""

    name: str
    old_value: Any = None
    new_value: Any = None

    @property
    def changed_keys(self) -> set[str] | None:
        """Sub-keys that differ when both sides are mappings, else None."""
        if not isinstance(self.old_value, Mapping) or not isinstance(
            self.new_value, Mapping
        ):
            return None
        keys = set(self.old_value) | set(self.new_value)
        return {k for k in keys if self.old_value.get(k) != self.new_value.get(k)}


@dataclass(frozen=True)
class ResourceDifference:
    """Base class of the per-resource differences."""

    logical_id: str

    @property
    def resource_type(self) -> str | None:
        raise NotImplementedError


@dataclass(frozen=True)
class ResourceAdded(ResourceDifference):
    """A resource present only in the desired template."""

    new_value: Mapping[str, Any] = field(default_factory=dict)

    @property
    def resource_type(self) -> str | None:
        return self.new_value.get("Type")


@dataclass(frozen=True)
class ResourceRemoved(ResourceDifference):
    """A resource present only in the deployed template."""

    old_value: Mapping[str, Any] = field(default_factory=dict)

    @property
    def resource_type(self) -> str | None:
        return self.old_value.get("Type")


@dataclass(frozen=True)
class ResourceModified(ResourceDifference):
    """A resource present in both templates with different content.

    Attributes:
        old_value: Deployed resource definition
        new_value: Desired resource definition
        property_diffs: Changed keys under ``Properties``
        other_diffs: Changed top-level keys other than ``Properties``
    """

    old_value: Mapping[str, Any] = field(default_factory=dict)
    new_value: Mapping[str, Any] = field(default_factory=dict)
    property_diffs: tuple[PropertyDifference, ...] = ()
    other_diffs: tuple[PropertyDifference, ...] = ()

    @property
    def resource_type(self) -> str | None:
        return self.new_value.get("Type")

    @property
    def type_changed(self) -> bool:
        return self.old_value.get("Type") != self.new_value.get("Type")


@dataclass(frozen=True)
class TemplateDiff:
    """All differences between two templates.

    Attributes:
        resources: Per-resource differences, ordered by logical id
        changed_sections: Top-level template sections other than
            ``Resources`` whose content differs
    """

    resources: tuple[ResourceDifference, ...] = ()
    changed_sections: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.resources and not self.changed_sections


def _diff_keys(
    old: Mapping[str, Any],
    new: Mapping[str, Any],
    exclude: frozenset[str] = frozenset(),
) -> tuple[PropertyDifference, ...]:
    names = sorted((set(old) | set(new)) - exclude)
    return tuple(
        PropertyDifference(name, old.get(name), new.get(name))
        for name in names
        if old.get(name) != new.get(name)
    )


def diff_templates(
    current: Mapping[str, Any], desired: Mapping[str, Any]
) -> TemplateDiff:
    """Compute the difference between the deployed and the desired template."""
    old_resources = current.get("Resources") or {}
    new_resources = desired.get("Resources") or {}

    differences: list[ResourceDifference] = []
    for logical_id in sorted(set(old_resources) | set(new_resources)):
        old = old_resources.get(logical_id)
        new = new_resources.get(logical_id)
        if old == new:
            continue
        if old is None:
            differences.append(ResourceAdded(logical_id, new_value=new))
        elif new is None:
            differences.append(ResourceRemoved(logical_id, old_value=old))
        else:
            differences.append(
                ResourceModified(
                    logical_id,
                    old_value=old,
                    new_value=new,
                    property_diffs=_diff_keys(
                        old.get("Properties") or {}, new.get("Properties") or {}
                    ),
                    other_diffs=_diff_keys(old, new, frozenset({"Properties"})),
                )
            )

    sections = sorted(
        name
        for name in (set(current) | set(desired)) - {"Resources"}
        if current.get(name) != desired.get(name)
    )
    return TemplateDiff(resources=tuple(differences), changed_sections=tuple(sections))


@dataclass(frozen=True)
class FastPathClassification:
    """Outcome of classifying a template diff for a direct code update.

    Attributes:
        eligible: Every difference is a function code move or tooling metadata
        modified_asset_paths: Asset path to function logical id, for each
            function whose code moved
        rejection: Why the diff is not eligible
    """

    eligible: bool
    modified_asset_paths: dict[str, str] = field(default_factory=dict)
    rejection: str | None = None


def _is_tooling_metadata(difference: ResourceDifference) -> bool:
    return (
        isinstance(difference, (ResourceAdded, ResourceModified))
        and difference.resource_type == TOOLING_METADATA_RESOURCE_TYPE
        and not (isinstance(difference, ResourceModified) and difference.type_changed)
    )


def _code_only_rejection(difference: ResourceModified) -> str | None:
    """Return why a modified function is not a pure code move, or None if it is."""
    if difference.type_changed:
        return "resource type changed"
    if not difference.property_diffs:
        return "no property changed"
    for prop in difference.property_diffs:
        if prop.name != CODE_PROPERTY:
            return f"property '{prop.name}' changed"
        if not isinstance(prop.new_value, Mapping):
            return "code location is not a mapping"
        if not set(prop.new_value) <= CODE_LOCATION_KEYS:
            return "code is not an object storage location"
        changed = prop.changed_keys
        if changed is None or not changed <= CODE_LOCATION_KEYS:
            return "code location changed beyond bucket and key"
    for other in difference.other_diffs:
        if other.name != "Metadata":
            return f"'{other.name}' changed"
    return None


def classify_fast_path(diff: TemplateDiff) -> FastPathClassification:
    """Decide whether ``diff`` can be applied by updating function code directly.

    Eligible differences are tooling-metadata resources and functions whose
    only change is the bucket and key of their code. Each changed function
    must carry an asset path annotation of its own.
    """
    blocking = [
        s for s in diff.changed_sections if s not in FAST_PATH_NEUTRAL_SECTIONS
    ]
    if blocking:
        return FastPathClassification(
            eligible=False,
            rejection=f"template section(s) changed: {', '.join(blocking)}",
        )

    asset_paths: dict[str, str] = {}
    for difference in diff.resources:
        if _is_tooling_metadata(difference):
            continue

        if not (
            isinstance(difference, ResourceModified)
            and difference.resource_type == FUNCTION_RESOURCE_TYPE
        ):
            kind = type(difference).__name__.removeprefix("Resource").lower()
            return FastPathClassification(
                eligible=False,
                rejection=(
                    f"{difference.logical_id} ({difference.resource_type}) {kind} "
                    "is not a function code change"
                ),
            )

        reason = _code_only_rejection(difference)
        if reason is not None:
            return FastPathClassification(
                eligible=False, rejection=f"{difference.logical_id}: {reason}"
            )

        metadata = difference.new_value.get("Metadata") or {}
        asset_path = metadata.get(ASSET_PATH_METADATA_KEY)
        if not isinstance(asset_path, str) or not asset_path:
            return FastPathClassification(
                eligible=False,
                rejection=(
                    f"{difference.logical_id}: no '{ASSET_PATH_METADATA_KEY}' "
                    "metadata annotation"
                ),
            )
        if asset_path in asset_paths:
            return FastPathClassification(
                eligible=False,
                rejection=(
                    f"{asset_paths[asset_path]} and {difference.logical_id} share "
                    f"asset path '{asset_path}'"
                ),
            )
        asset_paths[asset_path] = difference.logical_id

    # A metadata-only diff qualifies entry by entry but leaves no function to
    # update, so it is reported as ineligible rather than as an empty update.
    if not asset_paths:
        return FastPathClassification(
            eligible=False, rejection="no function code changed"
        )

    logger.debug(f"Fast path eligible for: {', '.join(asset_paths.values())}")
    return FastPathClassification(eligible=True, modified_asset_paths=asset_paths)
