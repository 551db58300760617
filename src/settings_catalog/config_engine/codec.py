"""Setting-list codec.

Orchestrates the scalar, collection and composite codecs over an ordered
list of top-level settings. Order is preserved in both directions and any
element failure aborts the whole call with a SettingListError that
pinpoints the offending element.
"""
import logging
from typing import Optional

from ..utils.logging_config import timed
from .coercion import CoercionError
from .collection import decode_collection, encode_collection
from .composite import UnsupportedChildNestingError, decode_composite, encode_composite
from .scalar import decode_scalar, encode_scalar
from .schema import (
    ChoiceSettingInstance,
    CodecOptions,
    DeclaredSetting,
    GroupSettingInstance,
    SCALAR_KINDS,
    SimpleSettingCollectionInstance,
    SimpleSettingInstance,
    UnsupportedSettingInstance,
    ValueKind,
    WireNode,
)

logger = logging.getLogger(__name__)


class SettingListError(Exception):
    """An element of a setting list failed to encode or decode."""

    def __init__(
        self,
        index: int,
        definition_id: str,
        value_kind: Optional[ValueKind],
        cause: Exception,
    ):
        self.index = index
        self.definition_id = definition_id
        self.value_kind = value_kind
        self.cause = cause
        kind = value_kind.value if value_kind else "unknown"
        super().__init__(f"Setting #{index} {definition_id} ({kind}): {cause}")


class UnsupportedInstanceError(Exception):
    """A read-back setting has an instance type the declared model cannot hold."""

    def __init__(self, definition_id: str, odata_type: str):
        self.definition_id = definition_id
        self.odata_type = odata_type
        super().__init__(
            f"Setting {definition_id} has unsupported instance type {odata_type or '<none>'}"
        )


def _node_kind(node: WireNode) -> Optional[ValueKind]:
    if isinstance(node, ChoiceSettingInstance):
        return ValueKind.CHOICE
    if isinstance(node, GroupSettingInstance):
        return ValueKind.GROUP
    if isinstance(node, SimpleSettingCollectionInstance):
        return ValueKind.COLLECTION
    return None


class SettingCodec:
    """Encode declared setting lists to wire nodes and back."""

    def __init__(self, options: Optional[CodecOptions] = None):
        self.options = options or CodecOptions()

    def encode_setting(self, setting: DeclaredSetting) -> WireNode:
        """Encode one top-level setting by dispatching on its kind."""
        if setting.value_kind in SCALAR_KINDS:
            return encode_scalar(setting, self.options.boolean_policy)
        if setting.value_kind == ValueKind.COLLECTION:
            return encode_collection(setting.definition_id, setting.collection_values or [])
        return encode_composite(setting, self.options.boolean_policy)

    def decode_setting(self, node: WireNode) -> DeclaredSetting:
        """Decode one top-level wire node."""
        if isinstance(node, SimpleSettingInstance):
            return decode_scalar(node)
        if isinstance(node, SimpleSettingCollectionInstance):
            return DeclaredSetting.of(
                node.definition_id, ValueKind.COLLECTION, decode_collection(node)
            )
        if isinstance(node, (ChoiceSettingInstance, GroupSettingInstance)):
            return decode_composite(node, self.options.nested_child_policy)
        if isinstance(node, UnsupportedSettingInstance):
            raise UnsupportedInstanceError(node.definition_id, node.odata_type)
        raise TypeError(f"Unsupported wire node: {type(node).__name__}")

    @timed("encode_all")
    def encode_all(self, settings: list[DeclaredSetting]) -> list[WireNode]:
        """
        Encode an ordered list of declared settings.

        Raises:
            SettingListError: Wrapping the first CoercionError (or kind
                mismatch) encountered
        """
        nodes = []
        for index, setting in enumerate(settings):
            try:
                nodes.append(self.encode_setting(setting))
            except (CoercionError, ValueError) as e:
                raise SettingListError(index, setting.definition_id, setting.value_kind, e) from e
        return nodes

    @timed("decode_all")
    def decode_all(self, nodes: list[WireNode]) -> list[DeclaredSetting]:
        """
        Decode an ordered list of wire nodes.

        Unknown scalar subtypes decode as strings and do not abort the call.

        Raises:
            SettingListError: Wrapping an UnsupportedChildNestingError or
                UnsupportedInstanceError
        """
        settings = []
        for index, node in enumerate(nodes):
            try:
                settings.append(self.decode_setting(node))
            except (UnsupportedChildNestingError, UnsupportedInstanceError, TypeError) as e:
                raise SettingListError(index, node.definition_id, _node_kind(node), e) from e
        return settings

    def canonicalize(self, settings: list[DeclaredSetting]) -> list[DeclaredSetting]:
        """Return settings as they read back after a write (encode then decode)."""
        return self.decode_all(self.encode_all(settings))
