"""
Reference extraction and classification.

A reference is a traversal rooted at one of the language's top-level names,
e.g. ``var.region``, ``path.module``, ``aws_instance.web.id`` or
``data.aws_ami.ubuntu.id``. References are extracted from the parsed jinja2
AST of an expression (or of every schema-declared attribute of a block) and
classified by subject kind.

Only three subject kinds can be evaluated from static information:

    INPUT_VARIABLE   var.NAME
    TERRAFORM_ATTR   terraform.NAME (built-in context attributes, e.g. workspace)
    PATH_ATTR        path.NAME (module / root / cwd paths)

Every other subject depends on live state and is never evaluable. This set is
closed on purpose; widening it is a policy change.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from jinja2 import nodes

from .exceptions import ReferenceParseError
from .schema import BlockSchema
from .syntax import Block, Expression, SourceRange


class SubjectKind(str, Enum):
    """What a reference points at."""

    INPUT_VARIABLE = "input_variable"
    TERRAFORM_ATTR = "terraform_attr"
    PATH_ATTR = "path_attr"
    LOCAL_VALUE = "local_value"
    RESOURCE = "resource"
    DATA_RESOURCE = "data_resource"
    MODULE_CALL = "module_call"
    COUNT_ATTR = "count_attr"
    FOREACH_ATTR = "foreach_attr"
    SELF = "self"


EVALUABLE_SUBJECT_KINDS = frozenset(
    {SubjectKind.INPUT_VARIABLE, SubjectKind.TERRAFORM_ATTR, SubjectKind.PATH_ATTR}
)

# Roots that must be followed by exactly one attribute naming the subject
_SINGLE_ATTR_ROOTS = {
    "var": SubjectKind.INPUT_VARIABLE,
    "terraform": SubjectKind.TERRAFORM_ATTR,
    "path": SubjectKind.PATH_ATTR,
    "local": SubjectKind.LOCAL_VALUE,
    "count": SubjectKind.COUNT_ATTR,
    "each": SubjectKind.FOREACH_ATTR,
    "module": SubjectKind.MODULE_CALL,
}

Step = tuple[str, str | int]  # ("attr", name) or ("index", key)

_NO_DIRECT_ACCESS = (
    'The "{name}" object cannot be accessed directly. Instead, access one of its attributes.'
)
_DATA_NEEDS_TWO_ATTRS = (
    'The "data" object must be followed by two attribute names: '
    "the data source type and the resource name."
)
_RESOURCE_NEEDS_NAME = (
    "A reference to a resource type must be followed by at least one "
    "attribute access, specifying the resource name."
)


@dataclass(frozen=True)
class Reference:
    """
    A classified reference.

    Attributes:
        kind: Subject kind
        subject: Canonical subject address (e.g. "var.region", "data.aws_ami.ubuntu")
        remaining: Traversal steps after the subject (attribute names / index keys)
        range: Location of the reference
    """

    kind: SubjectKind
    subject: str
    remaining: tuple[str | int, ...] = ()
    range: SourceRange = SourceRange()

    @property
    def is_evaluable(self) -> bool:
        return is_evaluable_ref(self)

    def __str__(self) -> str:
        return self.subject


def is_evaluable_ref(ref: Reference) -> bool:
    """True if ``ref`` can be resolved from static information only."""
    return ref.kind in EVALUABLE_SUBJECT_KINDS


def references_in_expr(expr: Expression) -> list[Reference]:
    """
    Extract the references an expression depends on.

    Args:
        expr: Parsed expression

    Returns:
        References in source order (duplicates kept)

    Raises:
        ReferenceParseError: If a traversal is malformed
    """
    return _ReferenceCollector(expr.range).collect(expr.node)


def references_in_block(block: Block, schema: BlockSchema) -> list[Reference]:
    """
    Extract the references of every attribute and nested block the schema
    declares. Undeclared content is ignored here; it is reported when the
    block is evaluated.

    Args:
        block: Block handle
        schema: Schema of the block body

    Returns:
        References in source order

    Raises:
        ReferenceParseError: If a traversal is malformed
    """
    refs: list[Reference] = []
    for name, expr in block.attributes.items():
        if name in schema.attributes:
            refs.extend(references_in_expr(expr))
    for nested in block.blocks:
        nested_schema = schema.block_types.get(nested.type)
        if nested_schema is not None:
            refs.extend(references_in_block(nested, nested_schema.block))
    return refs


class _ReferenceCollector:
    """Walk a jinja2 AST and turn root-name traversals into References."""

    def __init__(self, base: SourceRange) -> None:
        self.base = base
        self.local_names: set[str] = set()
        self.refs: list[Reference] = []

    def collect(self, root: nodes.Node) -> list[Reference]:
        # Names bound inside templates (loop targets, set) are locals.
        for name in root.find_all(nodes.Name):
            if name.ctx in ("store", "param"):
                self.local_names.add(name.name)
        if any(True for _ in root.find_all(nodes.For)):
            self.local_names.add("loop")

        self._visit(root)
        return self.refs

    def _visit(self, node: nodes.Node) -> None:
        if isinstance(node, (nodes.Getattr, nodes.Getitem, nodes.Name)):
            self._visit_traversal(node)
            return

        if isinstance(node, nodes.Call) and isinstance(node.node, nodes.Name):
            # Function name, not a reference
            for child in node.iter_child_nodes(exclude=("node",)):
                self._visit(child)
            return

        for child in node.iter_child_nodes():
            self._visit(child)

    def _visit_traversal(self, node: nodes.Node) -> None:
        steps: list[Step] = []
        dynamic_keys: list[nodes.Node] = []

        while isinstance(node, (nodes.Getattr, nodes.Getitem)):
            if isinstance(node, nodes.Getattr):
                steps.append(("attr", node.attr))
            elif isinstance(node.arg, nodes.Const) and isinstance(node.arg.value, (str, int)):
                steps.append(("index", node.arg.value))
            else:
                # Everything past a computed key is not part of the static traversal
                steps.clear()
                dynamic_keys.append(node.arg)
            node = node.node
        steps.reverse()

        if isinstance(node, nodes.Name):
            if node.ctx == "load" and node.name not in self.local_names:
                self.refs.append(self._parse_ref(node, steps))
        else:
            self._visit(node)

        for key in dynamic_keys:
            self._visit(key)

    def _parse_ref(self, root: nodes.Name, steps: list[Step]) -> Reference:
        source_range = SourceRange(
            self.base.filename,
            self.base.line + (root.lineno or 1) - 1,
            self.base.column,
        )
        name = root.name

        if name in _SINGLE_ATTR_ROOTS:
            attr = _require_attr(steps, 0, _NO_DIRECT_ACCESS.format(name=name), source_range)
            return Reference(
                kind=_SINGLE_ATTR_ROOTS[name],
                subject=f"{name}.{attr}",
                remaining=_values(steps[1:]),
                range=source_range,
            )

        if name == "self":
            return Reference(SubjectKind.SELF, "self", _values(steps), source_range)

        if name == "data":
            data_type = _require_attr(steps, 0, _DATA_NEEDS_TWO_ATTRS, source_range)
            data_name = _require_attr(steps, 1, _DATA_NEEDS_TWO_ATTRS, source_range)
            return Reference(
                SubjectKind.DATA_RESOURCE,
                f"data.{data_type}.{data_name}",
                _values(steps[2:]),
                source_range,
            )

        resource_name = _require_attr(steps, 0, _RESOURCE_NEEDS_NAME, source_range)
        return Reference(
            SubjectKind.RESOURCE, f"{name}.{resource_name}", _values(steps[1:]), source_range
        )


def _require_attr(
    steps: list[Step], position: int, message: str, source_range: SourceRange
) -> str:
    if len(steps) <= position or steps[position][0] != "attr":
        raise ReferenceParseError(f"Invalid reference: {message}", source_range)
    return str(steps[position][1])


def _values(steps: list[Step]) -> tuple[str | int, ...]:
    return tuple(value for _, value in steps)
