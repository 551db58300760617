"""Scalar encoder/decoder.

Handles the three scalar kinds (string, integer, boolean) plus the bare
choice form used for child settings.
"""
import logging
from typing import Union

from .coercion import VALUE_TYPE_KINDS, from_wire_scalar, to_wire_scalar
from .schema import (
    BooleanPolicy,
    ChildSetting,
    ChoiceSettingInstance,
    DeclaredSetting,
    SCALAR_KINDS,
    SimpleSettingInstance,
    ValueKind,
)

logger = logging.getLogger(__name__)


def encode_scalar(
    setting: Union[DeclaredSetting, ChildSetting],
    boolean_policy: BooleanPolicy = BooleanPolicy.LITERAL_TRUE,
) -> Union[SimpleSettingInstance, ChoiceSettingInstance]:
    """Encode a scalar (or child choice) setting into its wire instance.

    Raises:
        CoercionError: If the value does not parse for its kind
    """
    value = setting.value

    if setting.value_kind == ValueKind.CHOICE:
        return ChoiceSettingInstance(setting.definition_id, value=value or "")

    if setting.value_kind not in SCALAR_KINDS:
        raise ValueError(f"{setting.value_kind.value} is not a scalar kind")

    return SimpleSettingInstance(
        setting.definition_id,
        to_wire_scalar(setting.value_kind, value, boolean_policy),
    )


def decode_scalar(node: Union[SimpleSettingInstance, ChoiceSettingInstance]) -> DeclaredSetting:
    """Decode a simple (or childless choice) instance.

    The target kind comes from the value's subtype tag. Unknown subtypes
    fall back to a string setting holding the stringified value.
    """
    if isinstance(node, ChoiceSettingInstance):
        return DeclaredSetting.of(node.definition_id, ValueKind.CHOICE, node.value)

    odata_type = node.value.odata_type
    kind = VALUE_TYPE_KINDS.get(odata_type)
    if kind is None:
        logger.warning(
            f"UnsupportedWireSubtype: {node.definition_id} has value type "
            f"{odata_type or '<none>'}, decoding as string"
        )
        kind = ValueKind.STRING

    return DeclaredSetting.of(
        node.definition_id,
        kind,
        from_wire_scalar(odata_type, node.value.value),
    )
