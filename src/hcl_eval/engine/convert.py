"""
Type-directed value conversion.

Conversion follows the configuration language's safe conversion rules:

    number -> string   canonical decimal text ("5", "1.5")
    bool   -> string   "true" / "false"
    string -> number   if the string is a decimal number literal
    string -> bool     if the string is exactly "true" or "false"
    list   -> list(T)  element-wise
    map    -> map(T)   element-wise

NULL and UNKNOWN convert to themselves for every target type. Anything else
raises ``ConversionError`` naming the offending element path.
"""

from __future__ import annotations

from decimal import Context, Decimal, InvalidOperation

from .exceptions import ConversionError
from .types import BOOL, DYNAMIC, NUMBER, STRING, ListType, MapType, Type
from .values import Path, Value, ValueKind

_NUMBER_LITERAL_CHARS = set("0123456789+-.eE")


def format_number(number: Decimal) -> str:
    """Render a number the way string conversion does, without rounding."""
    exact = Context(prec=max(len(number.as_tuple().digits), 1))
    text = format(number.normalize(exact), "f")
    return "0" if text == "-0" else text


def convert(value: Value, want: Type) -> Value:
    """
    Convert ``value`` to ``want``.

    Args:
        value: Value to convert
        want: Target type

    Returns:
        Converted value

    Raises:
        ConversionError: If the value cannot be represented as ``want``
    """
    return _convert(value, want, ())


def _convert(value: Value, want: Type, path: Path) -> Value:
    if want == DYNAMIC or value.kind in (ValueKind.NULL, ValueKind.UNKNOWN):
        return value

    if want == STRING:
        return _to_string(value, path)
    if want == NUMBER:
        return _to_number(value, path)
    if want == BOOL:
        return _to_bool(value, path)

    if isinstance(want, ListType):
        if value.kind is not ValueKind.LIST:
            raise ConversionError(f"{want.friendly_name()} required", path)
        return Value.list(
            _convert(item, want.element, (*path, idx)) for idx, item in value.children()
        )

    if isinstance(want, MapType):
        if value.kind is not ValueKind.MAP:
            raise ConversionError(f"{want.friendly_name()} required", path)
        return Value.map(
            {key: _convert(item, want.element, (*path, key)) for key, item in value.children()}
        )

    raise ConversionError(f"unsupported target type {want!r}", path)


def _to_string(value: Value, path: Path) -> Value:
    if value.kind is ValueKind.STRING:
        return value
    if value.kind is ValueKind.NUMBER:
        return Value.string(format_number(value.data))
    if value.kind is ValueKind.BOOL:
        return Value.string("true" if value.data else "false")
    raise ConversionError("string required", path)


def _to_number(value: Value, path: Path) -> Value:
    if value.kind is ValueKind.NUMBER:
        return value
    if value.kind is ValueKind.STRING:
        text = value.data
        if text and set(text) <= _NUMBER_LITERAL_CHARS:
            try:
                return Value.number(Decimal(text))
            except (InvalidOperation, TypeError):
                pass
        raise ConversionError(f"a number is required, got {text!r}", path)
    raise ConversionError("number required", path)


def _to_bool(value: Value, path: Path) -> Value:
    if value.kind is ValueKind.BOOL:
        return value
    if value.kind is ValueKind.STRING:
        if value.data == "true":
            return Value.bool(True)
        if value.data == "false":
            return Value.bool(False)
        raise ConversionError(f"a bool is required, got {value.data!r}", path)
    raise ConversionError("bool required", path)
