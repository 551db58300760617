"""Parser for declared settings configuration.

Converts dict/YAML input to strongly-typed DeclaredSetting objects, and
renders them back to the same user-facing shape:

    policy_id: 0f7c...
    settings:
      - definition_id: device_vendor_msft_defender_configuration_allowcloudprotection
        value_type: choice
        value: device_vendor_msft_defender_configuration_allowcloudprotection_1
        children:
          - definition_id: ...
            value_type: integer
            value: "50"
"""
import hashlib
import json
from typing import Any, Optional

from .coercion import stringify_wire_value
from .collection import CollectionParseError, format_collection_source, parse_collection_source
from .schema import (
    CHILD_KINDS,
    COMPOSITE_KINDS,
    ChildSetting,
    DeclaredSetting,
    DesiredSettings,
    ValueKind,
)


class ParseError(Exception):
    """Error parsing declared settings configuration."""

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        definition_id: Optional[str] = None,
    ):
        self.index = index
        self.definition_id = definition_id
        if index is not None:
            message = f"Setting #{index} {definition_id or '<no definition_id>'}: {message}"
        super().__init__(message)


def _declared_string(value: Any) -> Optional[str]:
    # YAML turns `value: 5` and `value: true` into int/bool
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return stringify_wire_value(value)


class SettingsParser:
    """Parse declared settings from dict/YAML format."""

    def parse(self, config: dict[str, Any]) -> DesiredSettings:
        """
        Parse a configuration dict into a DesiredSettings object.

        Args:
            config: Dict with policy_id, mode, settings

        Returns:
            DesiredSettings object

        Raises:
            ParseError: If config is invalid
        """
        policy_id = config.get("policy_id") or config.get("policy")
        if not policy_id:
            raise ParseError("Missing required field: policy_id or policy")

        version = config.get("version", 1)
        checksum = config.get("checksum")
        mode = config.get("mode", "replace")

        if mode != "replace":
            raise ParseError(
                f"Invalid mode: {mode}. Settings are always written as a full "
                f"replace; incremental patching is not supported"
            )

        raw_settings = config.get("settings")
        if raw_settings is None:
            raw_settings = config.get("setting", [])

        return DesiredSettings(
            policy_id=str(policy_id),
            mode=mode,
            version=version,
            checksum=checksum,
            settings=self.parse_settings(raw_settings),
        )

    def parse_settings(self, raw_settings: list[dict[str, Any]]) -> list[DeclaredSetting]:
        """Parse an ordered list of setting entries."""
        if not isinstance(raw_settings, list):
            raise ParseError(f"settings must be a list, got {type(raw_settings).__name__}")

        return [
            self._parse_single_setting(index, raw)
            for index, raw in enumerate(raw_settings)
        ]

    def _parse_single_setting(self, index: int, raw: dict[str, Any]) -> DeclaredSetting:
        """Parse a single top-level setting."""
        if not isinstance(raw, dict):
            raise ParseError("setting must be a mapping", index)

        definition_id = raw.get("definition_id")
        if not definition_id or not isinstance(definition_id, str):
            raise ParseError("Missing required field: definition_id", index)

        kind = self._parse_kind(raw.get("value_type"), index, definition_id)
        value = raw.get("value")
        raw_children = raw.get("children") or []

        if raw_children and kind not in COMPOSITE_KINDS:
            raise ParseError(
                f"children are only allowed on choice or group settings, not {kind.value}",
                index,
                definition_id,
            )

        if kind == ValueKind.COLLECTION:
            try:
                values = parse_collection_source(value)
            except CollectionParseError as e:
                raise ParseError(str(e), index, definition_id) from e
            return DeclaredSetting.of(definition_id, kind, values)

        children = [
            self._parse_child(index, definition_id, child)
            for child in raw_children
        ]

        if kind == ValueKind.GROUP:
            return DeclaredSetting.of(definition_id, kind, children=children)

        return DeclaredSetting.of(definition_id, kind, _declared_string(value), children)

    def _parse_child(self, index: int, parent_id: str, raw: dict[str, Any]) -> ChildSetting:
        """Parse a child of a choice/group setting."""
        if not isinstance(raw, dict):
            raise ParseError("child setting must be a mapping", index, parent_id)

        definition_id = raw.get("definition_id")
        if not definition_id or not isinstance(definition_id, str):
            raise ParseError("child is missing definition_id", index, parent_id)

        kind = self._parse_kind(raw.get("value_type"), index, parent_id)
        if kind not in CHILD_KINDS:
            raise ParseError(
                f"child {definition_id} has value_type {kind.value}; "
                f"children must be string, integer, boolean or choice",
                index,
                parent_id,
            )

        value = _declared_string(raw.get("value"))
        if value is None:
            raise ParseError(f"child {definition_id} is missing value", index, parent_id)

        return ChildSetting(definition_id, kind, value)

    def _parse_kind(self, value_type: Any, index: int, definition_id: str) -> ValueKind:
        try:
            return ValueKind(value_type)
        except ValueError:
            valid = ", ".join(k.value for k in ValueKind)
            raise ParseError(
                f"Invalid value_type: {value_type}. Must be one of {valid}",
                index,
                definition_id,
            )


def settings_to_config(settings: list[DeclaredSetting]) -> list[dict[str, Any]]:
    """Render declared settings back to the user-facing dict shape."""
    rendered = []
    for setting in settings:
        entry: dict[str, Any] = {
            "definition_id": setting.definition_id,
            "value_type": setting.value_kind.value,
        }

        if setting.value_kind == ValueKind.COLLECTION:
            entry["value"] = format_collection_source(setting.collection_values or [])
        elif setting.value_kind != ValueKind.GROUP:
            entry["value"] = setting.value

        if setting.children:
            entry["children"] = [
                {
                    "definition_id": child.definition_id,
                    "value_type": child.value_kind.value,
                    "value": child.value,
                }
                for child in setting.children
            ]

        rendered.append(entry)
    return rendered


def compute_checksum(config: Any) -> str:
    """
    Compute SHA256 checksum of a config dict or settings list.

    Useful for integrity verification.
    """
    if isinstance(config, dict):
        config = {k: v for k, v in config.items() if k != "checksum"}

    config_str = json.dumps(config, sort_keys=True, separators=(",", ":"))
    hash_bytes = hashlib.sha256(config_str.encode()).hexdigest()

    return f"sha256:{hash_bytes[:16]}"  # Short hash for readability
