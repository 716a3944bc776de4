"""
Coercing sanitized values into caller-requested shapes.

The set of destinations is closed:

    TargetShape       Python destination    value type requested
    STRING            str                   string
    NUMBER            int                   number
    LIST_OF_STRING    list[str]             list(string)
    LIST_OF_NUMBER    list[int]             list(number)
    MAP_OF_STRING     dict[str, str]        map(string)
    MAP_OF_NUMBER     dict[str, int]        map(number)

The shape is resolved once, at the call boundary, with
``TargetShape.for_destination``. Any other destination is a programming error
and raises ``UnsupportedDestinationError``.

Binding validates the plain Python form of the value with a strict pydantic
TypeAdapter, so a value is never silently reinterpreted (a number is not bound
into a str destination, 1.5 is not truncated into an int).
"""

from __future__ import annotations

import logging
import typing
from enum import Enum
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .convert import convert
from .exceptions import (
    ClassifiedError,
    ConversionError,
    ErrorCode,
    ErrorLevel,
    UnsupportedDestinationError,
)
from .syntax import SourceRange
from .types import NUMBER, STRING, Type, list_of, map_of
from .values import Value

logger = logging.getLogger(__name__)


class TargetShape(Enum):
    """Closed set of destination shapes."""

    STRING = "string"
    NUMBER = "number"
    LIST_OF_STRING = "list-of-string"
    LIST_OF_NUMBER = "list-of-number"
    MAP_OF_STRING = "map-of-string"
    MAP_OF_NUMBER = "map-of-number"

    @property
    def annotation(self) -> Any:
        return _ANNOTATIONS[self]

    @property
    def want_type(self) -> Type:
        return _WANT_TYPES[self]

    @property
    def is_map(self) -> bool:
        return self in (TargetShape.MAP_OF_STRING, TargetShape.MAP_OF_NUMBER)

    @classmethod
    def for_destination(cls, destination: Any) -> TargetShape:
        """
        Resolve the shape of a destination type.

        Accepts ``str``, ``int``, ``list[str]``, ``list[int]``,
        ``dict[str, str]``, ``dict[str, int]`` (``typing.List``/``typing.Dict``
        spellings too) or a TargetShape.

        Raises:
            UnsupportedDestinationError: For any other destination
        """
        if isinstance(destination, TargetShape):
            return destination

        origin = typing.get_origin(destination)
        args = typing.get_args(destination)

        if origin is None:
            shape = _SCALARS.get(destination) if isinstance(destination, type) else None
        elif origin is list and len(args) == 1:
            shape = _LISTS.get(args[0])
        elif origin is dict and len(args) == 2 and args[0] is str:
            shape = _MAPS.get(args[1])
        else:
            shape = None

        if shape is None:
            raise UnsupportedDestinationError(destination)
        return shape


_SCALARS = {str: TargetShape.STRING, int: TargetShape.NUMBER}
_LISTS = {str: TargetShape.LIST_OF_STRING, int: TargetShape.LIST_OF_NUMBER}
_MAPS = {str: TargetShape.MAP_OF_STRING, int: TargetShape.MAP_OF_NUMBER}

_ANNOTATIONS: dict[TargetShape, Any] = {
    TargetShape.STRING: str,
    TargetShape.NUMBER: int,
    TargetShape.LIST_OF_STRING: list[str],
    TargetShape.LIST_OF_NUMBER: list[int],
    TargetShape.MAP_OF_STRING: dict[str, str],
    TargetShape.MAP_OF_NUMBER: dict[str, int],
}

_WANT_TYPES: dict[TargetShape, Type] = {
    TargetShape.STRING: STRING,
    TargetShape.NUMBER: NUMBER,
    TargetShape.LIST_OF_STRING: list_of(STRING),
    TargetShape.LIST_OF_NUMBER: list_of(NUMBER),
    TargetShape.MAP_OF_STRING: map_of(STRING),
    TargetShape.MAP_OF_NUMBER: map_of(NUMBER),
}

_ADAPTERS: dict[TargetShape, TypeAdapter[Any]] = {
    shape: TypeAdapter(annotation) for shape, annotation in _ANNOTATIONS.items()
}


def bind(value: Value, shape: TargetShape, source_range: SourceRange, noun: str) -> Any:
    """
    Bind a value into the Python form of ``shape``.

    Args:
        value: Sanitized value
        shape: Destination shape
        source_range: Location for messages
        noun: "expression" or "block" (for messages)

    Returns:
        str, int, list or dict matching the shape

    Raises:
        ClassifiedError: TypeMismatchError (error level)
    """
    try:
        return _ADAPTERS[shape].validate_python(value.to_python(), strict=True)
    except ValidationError as e:
        err = ClassifiedError(
            code=ErrorCode.TYPE_MISMATCH_ERROR,
            level=ErrorLevel.ERROR,
            message=f"Invalid type {noun} in {source_range}",
            cause=e,
        )
        logger.error(str(err))
        raise err from e


def convert_block_value(value: Value, shape: TargetShape, source_range: SourceRange) -> Value:
    """
    Convert a block value into a homogeneous map for map destinations.

    Blocks evaluate to maps of mixed attribute types; map destinations need
    every attribute converted to the destination's element type. Other
    shapes pass through unchanged.

    Raises:
        ClassifiedError: TypeConversionError (error level)
    """
    if not shape.is_map:
        return value

    try:
        return convert(value, shape.want_type)
    except ConversionError as e:
        err = ClassifiedError(
            code=ErrorCode.TYPE_CONVERSION_ERROR,
            level=ErrorLevel.ERROR,
            message=f"Invalid type block in {source_range}",
            cause=e,
        )
        logger.error(str(err))
        raise err from e
