"""Template serialization helpers.

Templates are submitted as YAML. Template bodies read back from the control
plane may be JSON, YAML, or YAML using CloudFormation short-form intrinsic
tags (``!Ref``, ``!Sub``, ``!GetAtt`` ...); all are loaded into plain
dictionaries using the long-form intrinsic names.
"""

from __future__ import annotations

from typing import Any

import yaml


class _TemplateLoader(yaml.SafeLoader):
    """Safe loader that understands CloudFormation short-form tags."""


def _construct_intrinsic(
    loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node
) -> dict[str, Any]:
    if isinstance(node, yaml.ScalarNode):
        value: Any = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)  # type: ignore[arg-type]

    if tag_suffix == "Ref":
        return {"Ref": value}
    if tag_suffix == "GetAtt" and isinstance(value, str):
        resource, _, attribute = value.partition(".")
        return {"Fn::GetAtt": [resource, attribute]}
    if tag_suffix == "Condition":
        return {"Condition": value}
    return {f"Fn::{tag_suffix}": value}


_TemplateLoader.add_multi_constructor("!", _construct_intrinsic)

# Dates such as AWSTemplateFormatVersion stay strings
_TemplateLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp)
        for tag, regexp in resolvers
        if tag != "tag:yaml.org,2002:timestamp"
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class _TemplateDumper(yaml.SafeDumper):
    """Safe dumper that keeps list items indented under their key."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        super().increase_indent(flow, False)


def to_yaml(template: Any) -> str:
    """Serialize a template document to YAML, preserving key order."""
    return yaml.dump(
        template,
        Dumper=_TemplateDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=2**16,
    )


def deserialize_structure(body: str | dict[str, Any] | None) -> dict[str, Any]:
    """Load a template body returned by the control plane.

    Args:
        body: A JSON or YAML string, or an already-parsed mapping

    Returns:
        The template as a dictionary (empty for an empty body)

    Raises:
        ValueError: If the body parses to something other than a mapping
    """
    if body is None:
        return {}
    if isinstance(body, dict):
        return body

    parsed = yaml.load(body, Loader=_TemplateLoader)  # noqa: S506  # nosec B506
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(
            f"Template body must be a mapping, got {type(parsed).__name__}"
        )
    return parsed
