"""
Lexical scanning of expression source.

Two scanners are provided:

    scan_template()   Split a quoted template ("...") into literal text,
                      ${ interpolation } and %{ directive } parts.
    split_strings()   Split bare expression source into code and string
                      literal segments so rewrites never touch string content.

Template escapes handled in literal text:
    \\n \\r \\t \\" \\\\ \\uNNNN \\UNNNNNNNN    character escapes
    $${  %%{                              literal "${" and "%{"
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..exceptions import ExpressionSyntaxError

_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\"}


class PartKind(Enum):
    """Kinds of template parts."""

    LITERAL = "literal"
    INTERPOLATION = "interpolation"
    DIRECTIVE = "directive"


@dataclass(frozen=True)
class TemplatePart:
    """
    One piece of a quoted template.

    Attributes:
        kind: Literal text, interpolation or directive
        text: Literal text (escapes decoded) or the inner source of the sequence
        strip_left: ``~`` marker after the opening brace
        strip_right: ``~`` marker before the closing brace
    """

    kind: PartKind
    text: str
    strip_left: bool = False
    strip_right: bool = False


def is_quoted(source: str) -> bool:
    """True if source is a quoted template rather than a bare expression."""
    return source.strip().startswith('"')


def scan_template(source: str) -> list[TemplatePart]:
    """
    Scan a quoted template into parts.

    Args:
        source: Template source including the surrounding double quotes

    Returns:
        Parts in source order; adjacent literal text is merged

    Raises:
        ExpressionSyntaxError: On unterminated templates, bad escapes, or
            trailing characters after the closing quote
    """
    text = source.strip()
    if not text.startswith('"'):
        raise ExpressionSyntaxError("template must start with a double quote")

    parts: list[TemplatePart] = []
    literal: list[str] = []
    i = 1

    def flush() -> None:
        if literal:
            parts.append(TemplatePart(PartKind.LITERAL, "".join(literal)))
            literal.clear()

    while i < len(text):
        char = text[i]

        if char == '"':
            if text[i + 1 :].strip():
                raise ExpressionSyntaxError("extra characters after the end of the template")
            flush()
            return parts

        if char == "\\":
            decoded, i = _decode_escape(text, i)
            literal.append(decoded)
            continue

        if text.startswith("$${", i) or text.startswith("%%{", i):
            literal.append(text[i + 1 : i + 3])
            i += 3
            continue

        if text.startswith("${", i) or text.startswith("%{", i):
            kind = PartKind.INTERPOLATION if char == "$" else PartKind.DIRECTIVE
            end = find_closing_brace(text, i + 2)
            inner = text[i + 2 : end]
            strip_left = inner.startswith("~")
            strip_right = inner.endswith("~") and len(inner) > 1
            inner = inner[1 if strip_left else 0 : len(inner) - 1 if strip_right else None]
            if not inner.strip():
                raise ExpressionSyntaxError(f"empty {kind.value} sequence")
            flush()
            parts.append(TemplatePart(kind, inner.strip(), strip_left, strip_right))
            i = end + 1
            continue

        literal.append(char)
        i += 1

    raise ExpressionSyntaxError("unterminated template string")


def _decode_escape(text: str, i: int) -> tuple[str, int]:
    if i + 1 >= len(text):
        raise ExpressionSyntaxError("unterminated escape sequence")
    code = text[i + 1]
    if code in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[code], i + 2
    if code in ("u", "U"):
        width = 4 if code == "u" else 8
        digits = text[i + 2 : i + 2 + width]
        if len(digits) != width:
            raise ExpressionSyntaxError(f"invalid unicode escape \\{code}{digits}")
        try:
            return chr(int(digits, 16)), i + 2 + width
        except ValueError as e:
            raise ExpressionSyntaxError(f"invalid unicode escape \\{code}{digits}") from e
    raise ExpressionSyntaxError(f"invalid escape sequence \\{code}")


def find_closing_brace(text: str, start: int) -> int:
    """
    Find the brace closing a sequence whose body starts at ``start``.

    Nested braces and quoted strings inside the body are skipped.

    Raises:
        ExpressionSyntaxError: If the sequence is never closed
    """
    depth = 0
    quote: str | None = None
    i = start
    while i < len(text):
        char = text[i]
        if quote is not None:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                return i
            depth -= 1
        i += 1
    raise ExpressionSyntaxError("unclosed template sequence")


def split_strings(source: str) -> list[tuple[bool, str]]:
    """
    Split expression source into (is_string, segment) pairs.

    String segments keep their quotes. An unterminated string literal is
    returned as a string segment running to the end of the source; the jinja2
    parser reports it later.
    """
    segments: list[tuple[bool, str]] = []
    code_start = 0
    i = 0
    while i < len(source):
        char = source[i]
        if char in ("'", '"'):
            if i > code_start:
                segments.append((False, source[code_start:i]))
            end = i + 1
            while end < len(source) and source[end] != char:
                end += 2 if source[end] == "\\" else 1
            end = min(end + 1, len(source))
            segments.append((True, source[i:end]))
            i = code_start = end
            continue
        i += 1
    if code_start < len(source):
        segments.append((False, source[code_start:]))
    return segments
