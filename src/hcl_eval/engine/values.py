"""
Generic runtime values of the configuration language.

A ``Value`` is a tagged union over the language data model:

    NULL     explicitly absent
    UNKNOWN  determined only after some external action (e.g. apply)
    STRING   str
    NUMBER   decimal.Decimal (integral numbers round-trip exactly)
    BOOL     bool
    LIST     ordered tuple of Values
    MAP      string-keyed dict of Values

NULL and UNKNOWN are distinct from each other and from empty or zero scalars.

Traversal:
    walk()       depth-first pre-order visit, stops on the first Abort
    transform()  same visit, rebuilding the tree where the visitor Replaces

Both are driven by a single primitive and a visitor returning one of
``CONTINUE``, ``Abort(reason)`` or ``Replace(value)``.

Example:
    >>> v = Value.from_python({"name": "web", "ports": [80, 443]})
    >>> v.to_python()
    {'name': 'web', 'ports': [80, 443]}
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

Path = tuple[str | int, ...]


class _UnknownSentinel:
    """Marker for not-yet-known values in plain Python bindings."""

    _instance: _UnknownSentinel | None = None

    def __new__(cls) -> _UnknownSentinel:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __reduce__(self) -> str:
        return "UNKNOWN"


UNKNOWN = _UnknownSentinel()


class ValueKind(str, Enum):
    """Discriminator of the Value tagged union."""

    NULL = "null"
    UNKNOWN = "unknown"
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    LIST = "list"
    MAP = "map"


@dataclass(frozen=True)
class Value:
    """
    Immutable runtime value.

    Use the classmethod constructors rather than building instances directly;
    they enforce the payload type for each kind.

    Attributes:
        kind: Which variant this value is
        data: Payload (None for NULL/UNKNOWN, tuple for LIST, dict for MAP)

    Values compare by content but are not hashable: MAP payloads are dicts.
    """

    kind: ValueKind
    data: Any = None

    __hash__ = None  # type: ignore[assignment]

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def null(cls) -> Value:
        return cls(ValueKind.NULL)

    @classmethod
    def unknown(cls) -> Value:
        return cls(ValueKind.UNKNOWN)

    @classmethod
    def string(cls, text: str) -> Value:
        if not isinstance(text, str):
            raise TypeError(f"string value requires str, got {type(text).__name__}")
        return cls(ValueKind.STRING, text)

    @classmethod
    def number(cls, number: int | float | Decimal | str) -> Value:
        if isinstance(number, bool):
            raise TypeError("number value cannot be built from bool")
        try:
            if isinstance(number, float):
                dec = Decimal(repr(number))
            else:
                dec = Decimal(number)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise TypeError(f"invalid number: {number!r}") from e
        if not dec.is_finite():
            raise TypeError(f"number value must be finite, got {number!r}")
        return cls(ValueKind.NUMBER, dec)

    @classmethod
    def bool(cls, flag: bool) -> Value:
        if not isinstance(flag, bool):
            raise TypeError(f"bool value requires bool, got {type(flag).__name__}")
        return cls(ValueKind.BOOL, flag)

    @classmethod
    def list(cls, items: Any) -> Value:
        elements = tuple(items)
        for element in elements:
            if not isinstance(element, Value):
                raise TypeError("list elements must be Value instances")
        return cls(ValueKind.LIST, elements)

    @classmethod
    def map(cls, items: Mapping[str, Value]) -> Value:
        entries = dict(items)
        for key, element in entries.items():
            if not isinstance(key, str):
                raise TypeError("map keys must be str")
            if not isinstance(element, Value):
                raise TypeError("map elements must be Value instances")
        return cls(ValueKind.MAP, entries)

    @classmethod
    def from_python(cls, obj: Any) -> Value:
        """
        Build a Value from plain Python data.

        None maps to NULL and the ``UNKNOWN`` sentinel maps to UNKNOWN.
        Lists and tuples become LIST, mappings become MAP.

        Raises:
            TypeError: If obj (or a nested element) has no Value equivalent
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.null()
        if obj is UNKNOWN:
            return cls.unknown()
        if isinstance(obj, bool):
            return cls.bool(obj)
        if isinstance(obj, (int, float, Decimal)):
            return cls.number(obj)
        if isinstance(obj, str):
            return cls.string(obj)
        if isinstance(obj, (list, tuple)):
            return cls.list(cls.from_python(item) for item in obj)
        if isinstance(obj, Mapping):
            return cls.map({str(key): cls.from_python(item) for key, item in obj.items()})
        raise TypeError(f"cannot represent {type(obj).__name__} as a value")

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def is_known(self) -> bool:
        return self.kind is not ValueKind.UNKNOWN

    def to_python(self) -> Any:
        """
        Convert to plain Python data.

        Integral numbers become int, other numbers float. UNKNOWN becomes the
        ``UNKNOWN`` sentinel.
        """
        if self.kind is ValueKind.NULL:
            return None
        if self.kind is ValueKind.UNKNOWN:
            return UNKNOWN
        if self.kind is ValueKind.NUMBER:
            if self.data == self.data.to_integral_value():
                return int(self.data)
            return float(self.data)
        if self.kind is ValueKind.LIST:
            return [element.to_python() for element in self.data]
        if self.kind is ValueKind.MAP:
            return {key: element.to_python() for key, element in self.data.items()}
        return self.data

    def children(self) -> list[tuple[str | int, Value]]:
        """Structural children in traversal order (maps in lexical key order)."""
        if self.kind is ValueKind.LIST:
            return list(enumerate(self.data))
        if self.kind is ValueKind.MAP:
            return [(key, self.data[key]) for key in sorted(self.data)]
        return []

    def __repr__(self) -> str:
        if self.kind in (ValueKind.NULL, ValueKind.UNKNOWN):
            return f"Value.{self.kind.value}()"
        return f"Value.{self.kind.value}({self.to_python()!r})"


# ----------------------------------------------------------------------
# Traversal
# ----------------------------------------------------------------------


class _Continue:
    def __repr__(self) -> str:
        return "CONTINUE"


CONTINUE = _Continue()


@dataclass(frozen=True)
class Abort:
    """Stop the traversal and raise ``reason``."""

    reason: Exception


@dataclass(frozen=True)
class Replace:
    """Substitute the visited node with ``value`` and skip its children."""

    value: Value


Visit = _Continue | Abort | Replace
Visitor = Callable[[Path, Value], Visit]


def _traverse(value: Value, visitor: Visitor, path: Path) -> Value:
    outcome = visitor(path, value)
    if isinstance(outcome, Abort):
        raise outcome.reason
    if isinstance(outcome, Replace):
        return outcome.value

    if value.kind is ValueKind.LIST:
        elements = tuple(
            _traverse(child, visitor, (*path, idx)) for idx, child in value.children()
        )
        if any(new is not old for new, old in zip(elements, value.data)):
            return Value.list(elements)
    elif value.kind is ValueKind.MAP:
        entries = {key: _traverse(child, visitor, (*path, key)) for key, child in value.children()}
        if any(entries[key] is not value.data[key] for key in entries):
            return Value.map(entries)
    return value


def walk(value: Value, visitor: Visitor) -> None:
    """
    Visit every node depth-first, pre-order.

    Args:
        value: Root of the tree
        visitor: Called with (path, node) for each node

    Raises:
        Exception: The reason of the first ``Abort`` returned by the visitor
    """
    _traverse(value, visitor, ())


def transform(value: Value, visitor: Visitor) -> Value:
    """
    Rebuild the tree, substituting every node the visitor ``Replace``s.

    Args:
        value: Root of the tree
        visitor: Called with (path, node) for each node

    Returns:
        The transformed tree (the original object if nothing was replaced)

    Raises:
        Exception: The reason of the first ``Abort`` returned by the visitor
    """
    return _traverse(value, visitor, ())
