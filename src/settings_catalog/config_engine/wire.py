"""JSON mapping for wire nodes.

Translates between the WireNode dataclasses and the service's JSON
setting envelopes:

    {
        "@odata.type": "#microsoft.graph.deviceManagementConfigurationSetting",
        "settingInstance": {
            "@odata.type": "...ChoiceSettingInstance",
            "settingDefinitionId": "...",
            "choiceSettingValue": {"value": "...", "children": [...]}
        }
    }
"""
import logging
from typing import Any, Optional

from .schema import (
    ChoiceSettingInstance,
    GroupSettingInstance,
    SimpleSettingCollectionInstance,
    SimpleSettingInstance,
    UnsupportedSettingInstance,
    WireNode,
    WireScalar,
)

logger = logging.getLogger(__name__)

ODATA_PREFIX = "#microsoft.graph.deviceManagementConfiguration"

SETTING_TYPE = f"{ODATA_PREFIX}Setting"

SIMPLE_INSTANCE_TYPE = f"{ODATA_PREFIX}SimpleSettingInstance"
CHOICE_INSTANCE_TYPE = f"{ODATA_PREFIX}ChoiceSettingInstance"
COLLECTION_INSTANCE_TYPE = f"{ODATA_PREFIX}SimpleSettingCollectionInstance"
GROUP_INSTANCE_TYPE = f"{ODATA_PREFIX}GroupSettingInstance"

STRING_VALUE_TYPE = f"{ODATA_PREFIX}StringSettingValue"
INTEGER_VALUE_TYPE = f"{ODATA_PREFIX}IntegerSettingValue"
BOOLEAN_VALUE_TYPE = f"{ODATA_PREFIX}BooleanSettingValue"
CHOICE_VALUE_TYPE = f"{ODATA_PREFIX}ChoiceSettingValue"
GROUP_VALUE_TYPE = f"{ODATA_PREFIX}GroupSettingValue"


def _scalar_to_graph(scalar: WireScalar) -> dict[str, Any]:
    return {"@odata.type": scalar.odata_type, "value": scalar.value}


def _scalar_from_graph(data: dict[str, Any]) -> WireScalar:
    return WireScalar(odata_type=data.get("@odata.type", ""), value=data.get("value"))


def instance_to_graph(node: WireNode) -> dict[str, Any]:
    """Build the ``settingInstance`` object for a node."""
    if isinstance(node, SimpleSettingInstance):
        return {
            "@odata.type": SIMPLE_INSTANCE_TYPE,
            "settingDefinitionId": node.definition_id,
            "simpleSettingValue": _scalar_to_graph(node.value),
        }

    if isinstance(node, ChoiceSettingInstance):
        choice_value: dict[str, Any] = {
            "@odata.type": CHOICE_VALUE_TYPE,
            "value": node.value,
        }
        if node.children:
            choice_value["children"] = [setting_to_graph(c) for c in node.children]
        return {
            "@odata.type": CHOICE_INSTANCE_TYPE,
            "settingDefinitionId": node.definition_id,
            "choiceSettingValue": choice_value,
        }

    if isinstance(node, SimpleSettingCollectionInstance):
        return {
            "@odata.type": COLLECTION_INSTANCE_TYPE,
            "settingDefinitionId": node.definition_id,
            "simpleSettingCollectionValue": [_scalar_to_graph(v) for v in node.values],
        }

    if isinstance(node, GroupSettingInstance):
        group_value: dict[str, Any] = {"@odata.type": GROUP_VALUE_TYPE}
        if node.children:
            group_value["children"] = [setting_to_graph(c) for c in node.children]
        return {
            "@odata.type": GROUP_INSTANCE_TYPE,
            "settingDefinitionId": node.definition_id,
            "groupSettingValue": group_value,
        }

    raise TypeError(f"Unsupported wire node: {type(node).__name__}")


def setting_to_graph(node: WireNode) -> dict[str, Any]:
    """Wrap a node in the setting envelope the service expects."""
    return {
        "@odata.type": SETTING_TYPE,
        "settingInstance": instance_to_graph(node),
    }


def settings_to_graph(nodes: list[WireNode]) -> list[dict[str, Any]]:
    return [setting_to_graph(node) for node in nodes]


def _children_from_graph(raw: Optional[list[dict[str, Any]]]) -> Optional[list[WireNode]]:
    if not raw:
        return None
    children = [setting_from_graph(c) for c in raw]
    parsed = [c for c in children if c is not None]
    return parsed or None


def instance_from_graph(instance: dict[str, Any]) -> WireNode:
    """Parse a ``settingInstance`` object.

    The variant is chosen by which value field is populated, not by the
    instance ``@odata.type``. Shapes outside the four supported variants
    come back as UnsupportedSettingInstance for the codec to reject.
    """
    definition_id = instance.get("settingDefinitionId", "")

    simple = instance.get("simpleSettingValue")
    if simple is not None:
        return SimpleSettingInstance(definition_id, _scalar_from_graph(simple))

    choice = instance.get("choiceSettingValue")
    if choice is not None:
        return ChoiceSettingInstance(
            definition_id,
            value=choice.get("value") or "",
            children=_children_from_graph(choice.get("children")),
        )

    collection = instance.get("simpleSettingCollectionValue")
    if collection is not None:
        return SimpleSettingCollectionInstance(
            definition_id,
            values=[_scalar_from_graph(v) for v in collection],
        )

    group = instance.get("groupSettingValue")
    if group is not None:
        return GroupSettingInstance(
            definition_id,
            children=_children_from_graph(group.get("children")),
        )

    odata_type = instance.get("@odata.type", "")
    logger.warning(
        f"Setting {definition_id or '<unknown>'} has unsupported instance type "
        f"{odata_type or '<none>'}"
    )
    return UnsupportedSettingInstance(definition_id, odata_type=odata_type)


def setting_from_graph(envelope: dict[str, Any]) -> Optional[WireNode]:
    """Parse a setting envelope, returning None if it carries no instance."""
    instance = envelope.get("settingInstance")
    if instance is None:
        logger.warning(f"Skipping setting {envelope.get('id', '<unknown>')}: no settingInstance")
        return None
    return instance_from_graph(instance)


def settings_from_graph(envelopes: list[dict[str, Any]]) -> list[WireNode]:
    """Parse a list of setting envelopes, preserving order."""
    nodes = [setting_from_graph(e) for e in envelopes]
    return [n for n in nodes if n is not None]
