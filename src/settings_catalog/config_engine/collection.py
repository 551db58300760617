"""Collection encoder/decoder.

Collections are ordered lists of strings. Order is data: it is preserved
element for element in both directions.
"""
import json
from typing import Any

from .coercion import stringify_wire_value
from .schema import SimpleSettingCollectionInstance, WireScalar
from .wire import STRING_VALUE_TYPE


class CollectionParseError(Exception):
    """The declared collection source is not an array."""
    pass


def parse_collection_source(source: Any) -> list[str]:
    """
    Turn a declared collection value into an ordered list of strings.

    Accepts a list (as loaded from YAML) or a JSON array string such as
    ``'["a", "b"]'``. Elements are stringified the same way wire values are.
    A missing value is an error, so an empty collection is always explicit.

    Raises:
        CollectionParseError: If the source is not an array
    """
    if source is None:
        raise CollectionParseError("Collection value is missing; declare [] to clear it")

    if isinstance(source, str):
        try:
            source = json.loads(source)
        except json.JSONDecodeError as e:
            raise CollectionParseError(f"Could not parse {source!r} as JSON array: {e}") from e

    if not isinstance(source, (list, tuple)):
        raise CollectionParseError(f"Collection value must be an array, got {type(source).__name__}")

    return [stringify_wire_value(v) for v in source]


def format_collection_source(values: list[str]) -> str:
    """Render collection values as the JSON array string users declare."""
    return json.dumps(list(values))


def encode_collection(definition_id: str, values: list[str]) -> SimpleSettingCollectionInstance:
    """Encode ordered strings as a list of wire string scalars."""
    return SimpleSettingCollectionInstance(
        definition_id,
        values=[WireScalar(STRING_VALUE_TYPE, value) for value in values],
    )


def decode_collection(node: SimpleSettingCollectionInstance) -> list[str]:
    """Decode a collection, stringifying every element whatever its subtype."""
    return [stringify_wire_value(v.value) for v in node.values]
