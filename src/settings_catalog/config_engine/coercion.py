"""Conversion between declared strings and typed wire scalars.

Declared settings carry every scalar as a string. The service wants typed
values, tagged with a ``@odata.type`` per value kind:

    string  -> StringSettingValue   (identity)
    integer -> IntegerSettingValue  (base-10, signed 64-bit)
    boolean -> BooleanSettingValue  (see BooleanPolicy)
"""
import re
from enum import Enum
from typing import Any, Optional

from .schema import BooleanPolicy, ValueKind, WireScalar
from .wire import (
    BOOLEAN_VALUE_TYPE,
    INTEGER_VALUE_TYPE,
    STRING_VALUE_TYPE,
)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")

SCALAR_VALUE_TYPES = {
    ValueKind.STRING: STRING_VALUE_TYPE,
    ValueKind.INTEGER: INTEGER_VALUE_TYPE,
    ValueKind.BOOLEAN: BOOLEAN_VALUE_TYPE,
}

VALUE_TYPE_KINDS = {odata: kind for kind, odata in SCALAR_VALUE_TYPES.items()}


class CoercionReason(str, Enum):
    """Why a declared scalar could not be coerced."""
    NOT_AN_INTEGER = "not_an_integer"
    OUT_OF_RANGE = "out_of_range"
    NOT_A_BOOLEAN = "not_a_boolean"
    UNSUPPORTED_KIND = "unsupported_kind"


class CoercionError(Exception):
    """A declared scalar does not parse for its kind."""

    def __init__(self, reason: CoercionReason, value: Any, kind: Optional[ValueKind] = None):
        self.reason = reason
        self.value = value
        self.kind = kind
        super().__init__(f"Could not coerce {value!r} to {kind.value if kind else 'scalar'}: {reason.value}")


def parse_integer(value: Optional[str]) -> int:
    """Parse a declared integer the way the service expects it.

    Only an optional sign followed by ASCII digits is accepted; no
    whitespace, underscores or other bases.
    """
    if value is None or not _INTEGER_RE.fullmatch(value):
        raise CoercionError(CoercionReason.NOT_AN_INTEGER, value, ValueKind.INTEGER)

    number = int(value, 10)
    if number < INT64_MIN or number > INT64_MAX:
        raise CoercionError(CoercionReason.OUT_OF_RANGE, value, ValueKind.INTEGER)
    return number


def parse_boolean(
    value: Optional[str],
    policy: BooleanPolicy = BooleanPolicy.LITERAL_TRUE,
) -> bool:
    """Parse a declared boolean.

    Under ``LITERAL_TRUE`` only the exact string ``"true"`` is true and any
    other value (including None) is false. ``STRICT`` rejects everything
    but ``"true"`` and ``"false"``.
    """
    if policy == BooleanPolicy.STRICT and value not in ("true", "false"):
        raise CoercionError(CoercionReason.NOT_A_BOOLEAN, value, ValueKind.BOOLEAN)
    return value == "true"


def to_wire_scalar(
    kind: ValueKind,
    value: Optional[str],
    boolean_policy: BooleanPolicy = BooleanPolicy.LITERAL_TRUE,
) -> WireScalar:
    """Coerce a declared string into a typed wire scalar."""
    if kind == ValueKind.STRING:
        return WireScalar(STRING_VALUE_TYPE, "" if value is None else value)
    if kind == ValueKind.INTEGER:
        return WireScalar(INTEGER_VALUE_TYPE, parse_integer(value))
    if kind == ValueKind.BOOLEAN:
        return WireScalar(BOOLEAN_VALUE_TYPE, parse_boolean(value, boolean_policy))
    raise CoercionError(CoercionReason.UNSUPPORTED_KIND, value, kind)


def stringify_wire_value(value: Any) -> str:
    """Render any JSON scalar as the declared string form."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def from_wire_scalar(odata_type: str, value: Any) -> str:
    """Format a wire scalar back into its declared string."""
    if odata_type == INTEGER_VALUE_TYPE:
        if isinstance(value, str) and _INTEGER_RE.fullmatch(value):
            return str(int(value, 10))
        return stringify_wire_value(value)
    if odata_type == BOOLEAN_VALUE_TYPE:
        if isinstance(value, bool):
            return "true" if value else "false"
        return stringify_wire_value(value)
    return stringify_wire_value(value)
