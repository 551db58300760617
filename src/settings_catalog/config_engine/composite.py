"""Choice/group node codec.

Composite settings carry an ordered list of children. Declared children
are restricted to scalars and choices, so encoding stops at depth one.
On decode, a child that is itself a collection, a group, a choice with
children or an unsupported instance type cannot be represented; what
happens then is governed by NestedChildPolicy.
"""
import logging
from typing import Optional, Union

from .scalar import decode_scalar, encode_scalar
from .schema import (
    BooleanPolicy,
    CHILD_KINDS,
    ChildSetting,
    ChoiceSettingInstance,
    DeclaredSetting,
    GroupSettingInstance,
    NestedChildPolicy,
    SimpleSettingInstance,
    ValueKind,
    WireNode,
)

logger = logging.getLogger(__name__)


class UnsupportedChildNestingError(Exception):
    """A child of a choice/group is itself a collection or group."""

    def __init__(self, parent_id: str, child_id: str, child_type: str):
        self.parent_id = parent_id
        self.child_id = child_id
        self.child_type = child_type
        super().__init__(
            f"Setting {parent_id} has nested {child_type} child {child_id}; "
            f"children may only be string, integer, boolean or choice"
        )


def encode_child(
    child: ChildSetting,
    boolean_policy: BooleanPolicy = BooleanPolicy.LITERAL_TRUE,
) -> WireNode:
    """Encode a single child setting."""
    if child.value_kind not in CHILD_KINDS:
        raise ValueError(f"{child.value_kind.value} is not allowed as a child kind")
    return encode_scalar(child, boolean_policy)


def _encode_children(
    children: list[ChildSetting],
    boolean_policy: BooleanPolicy,
) -> Optional[list[WireNode]]:
    # Zero children are omitted on the wire, never sent as []
    if not children:
        return None
    return [encode_child(c, boolean_policy) for c in children]


def encode_composite(
    setting: DeclaredSetting,
    boolean_policy: BooleanPolicy = BooleanPolicy.LITERAL_TRUE,
) -> Union[ChoiceSettingInstance, GroupSettingInstance]:
    """
    Encode a choice or group setting with its children.

    Raises:
        CoercionError: If a child's value does not parse for its kind
    """
    children = _encode_children(setting.children, boolean_policy)

    if setting.value_kind == ValueKind.CHOICE:
        return ChoiceSettingInstance(
            setting.definition_id,
            value=setting.choice_value or "",
            children=children,
        )
    if setting.value_kind == ValueKind.GROUP:
        return GroupSettingInstance(setting.definition_id, children=children)

    raise ValueError(f"{setting.value_kind.value} is not a composite kind")


def decode_child(
    parent_id: str,
    node: WireNode,
    nested_child_policy: NestedChildPolicy = NestedChildPolicy.ERROR,
) -> Optional[ChildSetting]:
    """
    Decode one child node.

    Returns None only when the child is a nested composite and the
    policy is DROP; the drop is always logged.

    Raises:
        UnsupportedChildNestingError: For nested composites under ERROR
    """
    nested = (
        not isinstance(node, (SimpleSettingInstance, ChoiceSettingInstance))
        or (isinstance(node, ChoiceSettingInstance) and bool(node.children))
    )
    if nested:
        child_type = getattr(node, "odata_type", "") or type(node).__name__
        if nested_child_policy == NestedChildPolicy.ERROR:
            raise UnsupportedChildNestingError(parent_id, node.definition_id, child_type)
        logger.warning(
            f"Dropping nested {child_type} child {node.definition_id} of {parent_id}"
        )
        return None

    decoded = decode_scalar(node)
    return ChildSetting(decoded.definition_id, decoded.value_kind, decoded.value or "")


def decode_composite(
    node: Union[ChoiceSettingInstance, GroupSettingInstance],
    nested_child_policy: NestedChildPolicy = NestedChildPolicy.ERROR,
) -> DeclaredSetting:
    """Decode a choice or group instance, children in wire order."""
    children: list[ChildSetting] = []
    for child_node in node.children or []:
        child = decode_child(node.definition_id, child_node, nested_child_policy)
        if child is not None:
            children.append(child)

    if isinstance(node, ChoiceSettingInstance):
        return DeclaredSetting.of(node.definition_id, ValueKind.CHOICE, node.value, children)
    return DeclaredSetting.of(node.definition_id, ValueKind.GROUP, children=children)
