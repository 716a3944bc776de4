"""
Static types used to request and convert values.

    STRING, NUMBER, BOOL   primitive types
    DYNAMIC                "any": no conversion is applied
    ListType(element)      ordered list of one element type
    MapType(element)       string-keyed map of one element type

Types can be written in the configuration language's type syntax and parsed
with ``parse_type``:

    >>> parse_type("map(list(number))")
    MapType(element=ListType(element=PrimitiveType(name='number')))
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class PrimitiveType:
    name: str

    def friendly_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class ListType:
    element: Type

    def friendly_name(self) -> str:
        return f"list of {self.element.friendly_name()}"


@dataclass(frozen=True)
class MapType:
    element: Type

    def friendly_name(self) -> str:
        return f"map of {self.element.friendly_name()}"


Type = PrimitiveType | ListType | MapType

STRING = PrimitiveType("string")
NUMBER = PrimitiveType("number")
BOOL = PrimitiveType("bool")
DYNAMIC = PrimitiveType("any")

_PRIMITIVES = {t.name: t for t in (STRING, NUMBER, BOOL, DYNAMIC)}
_COLLECTION_PATTERN = re.compile(r"^(list|set|map)\s*\((.*)\)$", re.DOTALL)


def list_of(element: Type) -> ListType:
    return ListType(element)


def map_of(element: Type) -> MapType:
    return MapType(element)


def parse_type(text: str) -> Type:
    """
    Parse a type constraint such as ``string`` or ``list(map(number))``.

    ``set(T)`` is accepted and treated as ``list(T)``; ordering of the
    elements is preserved as written.

    Args:
        text: Type expression

    Returns:
        Parsed type

    Raises:
        ValueError: If the expression is not a supported type
    """
    stripped = text.strip()
    if stripped in _PRIMITIVES:
        return _PRIMITIVES[stripped]

    match = _COLLECTION_PATTERN.match(stripped)
    if match is None:
        raise ValueError(f"Invalid type specification: {text!r}")

    kind, inner = match.groups()
    element = parse_type(inner)
    if kind == "map":
        return MapType(element)
    return ListType(element)
