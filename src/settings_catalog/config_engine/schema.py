"""Schema definitions for the Settings Catalog engine.

Defines the declared setting model, the wire node variants and all
result dataclasses used by the reconciler.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union


class ValueKind(str, Enum):
    """Kind of value a declared setting carries."""
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    CHOICE = "choice"
    COLLECTION = "collection"
    GROUP = "group"


SCALAR_KINDS = frozenset({ValueKind.STRING, ValueKind.INTEGER, ValueKind.BOOLEAN})
COMPOSITE_KINDS = frozenset({ValueKind.CHOICE, ValueKind.GROUP})
CHILD_KINDS = SCALAR_KINDS | {ValueKind.CHOICE}


class BooleanPolicy(str, Enum):
    """How declared boolean strings are coerced."""
    LITERAL_TRUE = "literal_true"  # only "true" is true, everything else false
    STRICT = "strict"              # only "true"/"false" accepted


class NestedChildPolicy(str, Enum):
    """What to do with a composite found below a choice/group child."""
    ERROR = "error"
    DROP = "drop"


class ResourceState(str, Enum):
    """Lifecycle state of a managed setting list."""
    ABSENT = "absent"
    DECLARED = "declared"
    APPLIED = "applied"
    DRIFTED = "drifted"


class DriftType(str, Enum):
    """Type of a single drift item."""
    MISSING = "missing"    # declared, not present remotely
    EXTRA = "extra"        # present remotely, not declared
    MODIFIED = "modified"  # same definition, different value


# --- Declared model ---

@dataclass
class ChildSetting:
    """A nested entry one level below a choice or group setting."""
    definition_id: str
    value_kind: ValueKind
    value: str = ""


@dataclass
class DeclaredSetting:
    """A single top-level configuration entry."""
    definition_id: str
    value_kind: ValueKind
    scalar_value: Optional[str] = None
    choice_value: Optional[str] = None
    collection_values: Optional[list[str]] = None
    children: list[ChildSetting] = field(default_factory=list)

    @classmethod
    def of(
        cls,
        definition_id: str,
        value_kind: Union[ValueKind, str],
        value: Any = None,
        children: Optional[list[ChildSetting]] = None,
    ) -> "DeclaredSetting":
        """Build a setting, placing ``value`` in the field its kind owns."""
        kind = ValueKind(value_kind)
        children = list(children or [])

        if kind in SCALAR_KINDS:
            return cls(definition_id, kind, scalar_value=value)
        if kind == ValueKind.CHOICE:
            return cls(definition_id, kind, choice_value=value, children=children)
        if kind == ValueKind.COLLECTION:
            # A str would split into characters; JSON sources go through the parser
            if value is not None and not isinstance(value, (list, tuple)):
                raise TypeError(
                    f"collection value for {definition_id} must be a list, "
                    f"got {type(value).__name__}"
                )
            return cls(definition_id, kind, collection_values=list(value or []))
        return cls(definition_id, kind, children=children)

    @property
    def value(self) -> Any:
        """The populated value field for this kind (None for groups)."""
        if self.value_kind in SCALAR_KINDS:
            return self.scalar_value
        if self.value_kind == ValueKind.CHOICE:
            return self.choice_value
        if self.value_kind == ValueKind.COLLECTION:
            return self.collection_values
        return None

    @property
    def is_composite(self) -> bool:
        return self.value_kind in COMPOSITE_KINDS


@dataclass
class DesiredSettings:
    """Complete declared setting list for one policy."""
    policy_id: str
    mode: Literal["replace"] = "replace"
    version: int = 1
    checksum: Optional[str] = None
    settings: list[DeclaredSetting] = field(default_factory=list)


# --- Wire model ---

@dataclass
class WireScalar:
    """A typed simple value as the service carries it."""
    odata_type: str
    value: Any


@dataclass
class WireNode:
    """Base for the setting instance variants."""
    definition_id: str


@dataclass
class SimpleSettingInstance(WireNode):
    value: WireScalar


@dataclass
class ChoiceSettingInstance(WireNode):
    value: str
    children: Optional[list[WireNode]] = None


@dataclass
class SimpleSettingCollectionInstance(WireNode):
    values: list[WireScalar] = field(default_factory=list)


@dataclass
class GroupSettingInstance(WireNode):
    children: Optional[list[WireNode]] = None


@dataclass
class UnsupportedSettingInstance(WireNode):
    """A read-back instance outside the four supported variants.

    Kept so the codec can refuse it instead of losing it unnoticed
    (e.g. a group setting collection). Never encoded.
    """
    odata_type: str = ""


# --- Options ---

@dataclass
class CodecOptions:
    """Knobs for the setting codec."""
    boolean_policy: BooleanPolicy = BooleanPolicy.LITERAL_TRUE
    nested_child_policy: NestedChildPolicy = NestedChildPolicy.ERROR


# --- Validation Results ---

@dataclass
class ValidationResult:
    """Result of declared settings validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# --- Drift Results ---

@dataclass
class DriftItem:
    """A single drift item between declared and remote state."""
    definition_id: str
    drift_type: DriftType
    position: int
    expected: Optional[DeclaredSetting] = None
    actual: Optional[DeclaredSetting] = None
    details: str = ""


@dataclass
class DriftReport:
    """Drift report comparing declared vs remote settings."""
    policy_id: str
    checked_at: datetime
    items: list[DriftItem] = field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        return len(self.items) == 0

    @property
    def drift_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict:
        """Convert to dictionary for YAML/JSON serialization."""
        return {
            "policy_id": self.policy_id,
            "checked_at": self.checked_at.isoformat(),
            "in_sync": self.in_sync,
            "items": [
                {
                    "definition_id": item.definition_id,
                    "drift_type": item.drift_type.value,
                    "position": item.position,
                    "details": item.details,
                }
                for item in self.items
            ],
        }


# --- Apply options and results ---

@dataclass
class ApplyOptions:
    """Options for a reconciliation write."""
    dry_run: bool = False
    record_state: bool = True
    user: Optional[str] = None


@dataclass
class ReconcileResult:
    """Result of a reconciliation operation."""
    policy_id: str
    state: ResourceState = ResourceState.ABSENT
    success: bool = False
    dry_run: bool = False
    settings: list[DeclaredSetting] = field(default_factory=list)
    settings_submitted: int = 0
    drift: Optional[DriftReport] = None
    warnings: list[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "policy_id": self.policy_id,
            "state": self.state.value,
            "success": self.success,
            "dry_run": self.dry_run,
            "settings_count": len(self.settings),
            "settings_submitted": self.settings_submitted,
            "in_sync": self.drift.in_sync if self.drift else None,
            "warnings": self.warnings,
            "error": self.error,
        }
