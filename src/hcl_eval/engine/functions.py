"""
Built-in functions available to expressions.

This is a small subset of the configuration language's function library,
enough for the expressions static checks typically meet. Callers can register
more through ``EvalContext(functions=...)``.

Functions receive and return plain Python data (str, int, float, bool, None,
list, dict). Unknown arguments never reach them: the evaluation context
short-circuits any call with an unknown argument to an unknown result.
"""

from __future__ import annotations

import json
import math
import posixpath
from collections.abc import Callable, Mapping
from typing import Any

from .convert import convert
from .types import NUMBER, STRING
from .values import Value

_MISSING = object()


def tostring(value: Any) -> str | None:
    if value is None:
        return None
    return convert(Value.from_python(value), STRING).data


def tonumber(value: Any) -> int | float | None:
    if value is None:
        return None
    return convert(Value.from_python(value), NUMBER).to_python()


def hcl_format(spec: str, *args: Any) -> str:
    """printf-style formatting; ``%v`` formats any value like ``%s``."""
    rendered = tuple(tostring(arg) if isinstance(arg, (bool, float)) else arg for arg in args)
    return spec.replace("%v", "%s") % rendered


def join(separator: str, items: list[Any]) -> str:
    return separator.join(tostring(item) or "" for item in items)


def split(separator: str, text: str) -> list[str]:
    return text.split(separator)


def replace(text: str, substring: str, replacement: str) -> str:
    return text.replace(substring, replacement)


def length(value: Any) -> int:
    if isinstance(value, (str, list, tuple, Mapping)):
        return len(value)
    raise TypeError(f"length() requires a string, list or map, got {type(value).__name__}")


def concat(*lists: list[Any]) -> list[Any]:
    result: list[Any] = []
    for items in lists:
        result.extend(items)
    return result


def contains(items: list[Any], value: Any) -> bool:
    return value in items


def distinct(items: list[Any]) -> list[Any]:
    result: list[Any] = []
    for item in items:
        if item not in result:
            result.append(item)
    return result


def flatten(items: list[Any]) -> list[Any]:
    result: list[Any] = []
    for item in items:
        if isinstance(item, (list, tuple)):
            result.extend(flatten(list(item)))
        else:
            result.append(item)
    return result


def element(items: list[Any], index: int) -> Any:
    if not items:
        raise ValueError("cannot use element function with an empty list")
    return items[index % len(items)]


def keys(mapping: Mapping[str, Any]) -> list[str]:
    return sorted(mapping)


def values(mapping: Mapping[str, Any]) -> list[Any]:
    return [mapping[key] for key in sorted(mapping)]


def lookup(mapping: Mapping[str, Any], key: str, default: Any = _MISSING) -> Any:
    if key in mapping:
        return mapping[key]
    if default is _MISSING:
        raise KeyError(f"lookup failed to find key {key!r}")
    return default


def merge(*mappings: Mapping[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for mapping in mappings:
        if mapping is not None:
            result.update(mapping)
    return result


def coalesce(*args: Any) -> Any:
    for arg in args:
        if arg is not None and arg != "":
            return arg
    raise ValueError("no non-null, non-empty-string arguments")


def jsonencode(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


BUILTIN_FUNCTIONS: dict[str, Callable[..., Any]] = {
    # string
    "upper": lambda s: s.upper(),
    "lower": lambda s: s.lower(),
    "title": lambda s: s.title(),
    "trimspace": lambda s: s.strip(),
    "format": hcl_format,
    "join": join,
    "split": split,
    "replace": replace,
    # collection
    "length": length,
    "concat": concat,
    "contains": contains,
    "distinct": distinct,
    "flatten": flatten,
    "element": element,
    "keys": keys,
    "values": values,
    "lookup": lookup,
    "merge": merge,
    "coalesce": coalesce,
    # numeric
    "abs": abs,
    "ceil": math.ceil,
    "floor": math.floor,
    "max": lambda *n: max(n),
    "min": lambda *n: min(n),
    # conversion / encoding
    "tostring": tostring,
    "tonumber": tonumber,
    "jsonencode": jsonencode,
    # filesystem paths (pure string manipulation)
    "basename": posixpath.basename,
    "dirname": posixpath.dirname,
}


__all__ = ["BUILTIN_FUNCTIONS"]
