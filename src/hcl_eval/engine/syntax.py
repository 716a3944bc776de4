"""
Expression and block handles consumed by the evaluation pipeline.

The pipeline never parses configuration files; callers hand it Expression and
Block objects. This module builds those handles from source fragments:

    expr = parse_expression('"web-${var.env}"', filename="main.tf", line=12)
    block = Block.from_dict("tags", {"Name": '"web"', "Env": "var.env"}, filename="main.tf")

Expression source uses the configuration language's template syntax for
quoted strings ("${...}" interpolation, "%{...}" directives) and jinja2
expression grammar for bare expressions (lists, dicts, arithmetic, filters,
``a if cond else b`` conditionals, function calls). ``&&``, ``||``, ``!`` and
``null`` are accepted as well.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from jinja2 import Environment, nodes
from jinja2.exceptions import TemplateSyntaxError
from jinja2.parser import Parser

from .exceptions import ExpressionSyntaxError
from .resolver import ExpressionKind, SecurityError, TransformRule, rewrite_expression


@dataclass(frozen=True)
class SourceRange:
    """
    Source location used in diagnostics.

    Attributes:
        filename: Path of the configuration file
        line: 1-based line number
        column: 1-based column number
    """

    filename: str = ""
    line: int = 1
    column: int = 1

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}"


@dataclass(frozen=True)
class Expression:
    """
    Immutable handle to a parsed expression.

    Attributes:
        source: Source as written in the configuration
        kind: Routing kind from the classifier
        jinja_source: Rewritten jinja2 source used for evaluation
        node: Parsed jinja2 AST (an expression node, or a Template node for
            LITERAL/TEMPLATE kinds)
        range: Location of the expression
    """

    source: str
    kind: ExpressionKind
    jinja_source: str
    node: nodes.Node = field(compare=False, repr=False)
    range: SourceRange = SourceRange()


@dataclass(frozen=True)
class Block:
    """
    Immutable handle to a block body.

    Attributes:
        type: Block type name (e.g. "resource", "tags", "ingress")
        labels: Block labels
        attributes: Attribute name -> Expression
        blocks: Nested blocks in source order
        def_range: Location of the block header
    """

    type: str
    labels: tuple[str, ...] = ()
    attributes: Mapping[str, Expression] = field(default_factory=dict)
    blocks: tuple[Block, ...] = ()
    def_range: SourceRange = SourceRange()

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "labels", tuple(self.labels))
        object.__setattr__(self, "blocks", tuple(self.blocks))

    @classmethod
    def from_dict(
        cls,
        block_type: str,
        body: Mapping[str, Any],
        labels: tuple[str, ...] = (),
        filename: str = "",
        line: int = 1,
    ) -> Block:
        """
        Build a block from a plain mapping.

        Body values are interpreted as:
        - str: attribute expression source
        - dict: a single nested block of that type
        - list of dicts: repeated nested blocks of that type

        A nested block dict may carry its labels under the ``__labels__`` key.

        Args:
            block_type: Type name of the block
            body: Attribute and nested block definitions
            labels: Block labels
            filename: File used for source ranges
            line: Line of the block header; attributes get following lines

        Returns:
            Block handle

        Raises:
            ExpressionSyntaxError: If an attribute source cannot be parsed
            TypeError: If a body value has an unsupported type
        """
        attributes: dict[str, Expression] = {}
        blocks: list[Block] = []
        next_line = line + 1

        for name, item in body.items():
            if name == "__labels__":
                continue
            if isinstance(item, str):
                attributes[name] = parse_expression(item, filename=filename, line=next_line)
                next_line += 1
            elif isinstance(item, Mapping):
                nested = cls._nested(name, item, filename, next_line)
                blocks.append(nested)
                next_line = _last_line(nested) + 2
            elif isinstance(item, list) and all(isinstance(entry, Mapping) for entry in item):
                for entry in item:
                    nested = cls._nested(name, entry, filename, next_line)
                    blocks.append(nested)
                    next_line = _last_line(nested) + 2
            else:
                raise TypeError(
                    f"Unsupported body value for {name!r}: {type(item).__name__}. "
                    "Use expression source strings for attributes."
                )

        return cls(
            type=block_type,
            labels=tuple(labels),
            attributes=attributes,
            blocks=tuple(blocks),
            def_range=SourceRange(filename, line, 1),
        )

    @classmethod
    def _nested(cls, name: str, body: Mapping[str, Any], filename: str, line: int) -> Block:
        labels = tuple(body.get("__labels__", ()))
        return cls.from_dict(name, body, labels=labels, filename=filename, line=line)


def _last_line(block: Block) -> int:
    lines = [block.def_range.line]
    lines.extend(expr.range.line for expr in block.attributes.values())
    lines.extend(_last_line(nested) for nested in block.blocks)
    return max(lines)


# Parsing only builds AST nodes; it never evaluates anything.
_PARSE_ENV = Environment(keep_trailing_newline=True)


def parse_expression(
    source: str,
    filename: str = "",
    line: int = 1,
    column: int = 1,
    rules: list[TransformRule] | None = None,
) -> Expression:
    """
    Parse expression source into an Expression handle.

    Args:
        source: Expression source (quoted template or bare expression)
        filename: File used for diagnostics
        line: Line of the expression
        column: Column of the expression
        rules: Extra rewriting rules

    Returns:
        Expression handle

    Raises:
        ExpressionSyntaxError: If the source is malformed or rejected
    """
    source_range = SourceRange(filename, line, column)

    try:
        kind, jinja_source = rewrite_expression(source, rules)
    except SecurityError as e:
        raise ExpressionSyntaxError(f"Security violation: {e}", source_range) from e
    except ExpressionSyntaxError as e:
        raise ExpressionSyntaxError(str(e), source_range) from e

    try:
        if kind.preserves_type:
            node = _parse_jinja_expression(jinja_source)
        else:
            node = _PARSE_ENV.parse(jinja_source)
    except TemplateSyntaxError as e:
        raise ExpressionSyntaxError(f"Invalid expression: {e.message}", source_range) from e

    return Expression(
        source=source,
        kind=kind,
        jinja_source=jinja_source,
        node=node,
        range=source_range,
    )


def _parse_jinja_expression(source: str) -> nodes.Expr:
    parser = Parser(_PARSE_ENV, source, state="variable")
    node = parser.parse_expression()
    if not parser.stream.eos:
        raise TemplateSyntaxError(
            f"unexpected {parser.stream.current.value!r} after expression",
            parser.stream.current.lineno,
        )
    return node
