"""Config Engine - declared settings codec and reconciliation.

The Config Engine turns a flat list of typed, declared settings into the
nested setting instances a Settings Catalog policy stores, and back:
- Encode declared settings, submit them as one bulk replace
- Decode read-back settings into the declared shape
- Detect drift between last-declared and remote settings

Usage:
    from settings_catalog.config_engine import SettingsReconciler

    reconciler = SettingsReconciler(backend)
    result = await reconciler.apply_config({
        "policy_id": "0f7c6a0e-...",
        "settings": [
            {
                "definition_id": "device_vendor_msft_defender_configuration_allowcloudprotection",
                "value_type": "choice",
                "value": "device_vendor_msft_defender_configuration_allowcloudprotection_1",
            }
        ],
    })
"""

from .engine import SettingsReconciler
from .schema import (
    ValueKind,
    BooleanPolicy,
    NestedChildPolicy,
    ResourceState,
    DriftType,
    ChildSetting,
    DeclaredSetting,
    DesiredSettings,
    WireScalar,
    WireNode,
    SimpleSettingInstance,
    ChoiceSettingInstance,
    SimpleSettingCollectionInstance,
    GroupSettingInstance,
    UnsupportedSettingInstance,
    CodecOptions,
    ValidationResult,
    DriftItem,
    DriftReport,
    ApplyOptions,
    ReconcileResult,
)
from .coercion import (
    CoercionError,
    CoercionReason,
    to_wire_scalar,
    from_wire_scalar,
)
from .scalar import encode_scalar, decode_scalar
from .collection import (
    CollectionParseError,
    encode_collection,
    decode_collection,
    parse_collection_source,
)
from .composite import (
    UnsupportedChildNestingError,
    encode_composite,
    decode_composite,
)
from .codec import SettingCodec, SettingListError, UnsupportedInstanceError
from .parser import SettingsParser, ParseError, settings_to_config, compute_checksum
from .validator import SettingsValidator
from .diff import DriftEngine, summarize_drift
from .wire import (
    setting_to_graph,
    settings_to_graph,
    setting_from_graph,
    settings_from_graph,
)

__all__ = [
    # Main engine
    "SettingsReconciler",
    # Schema classes
    "ValueKind",
    "BooleanPolicy",
    "NestedChildPolicy",
    "ResourceState",
    "DriftType",
    "ChildSetting",
    "DeclaredSetting",
    "DesiredSettings",
    "WireScalar",
    "WireNode",
    "SimpleSettingInstance",
    "ChoiceSettingInstance",
    "SimpleSettingCollectionInstance",
    "GroupSettingInstance",
    "UnsupportedSettingInstance",
    "CodecOptions",
    "ValidationResult",
    "DriftItem",
    "DriftReport",
    "ApplyOptions",
    "ReconcileResult",
    # Codec
    "CoercionError",
    "CoercionReason",
    "to_wire_scalar",
    "from_wire_scalar",
    "encode_scalar",
    "decode_scalar",
    "CollectionParseError",
    "encode_collection",
    "decode_collection",
    "parse_collection_source",
    "UnsupportedChildNestingError",
    "encode_composite",
    "decode_composite",
    "SettingCodec",
    "SettingListError",
    "UnsupportedInstanceError",
    # Parser
    "SettingsParser",
    "ParseError",
    "settings_to_config",
    "compute_checksum",
    # Components (for advanced use)
    "SettingsValidator",
    "DriftEngine",
    "summarize_drift",
    "setting_to_graph",
    "settings_to_graph",
    "setting_from_graph",
    "settings_from_graph",
]
