"""
Evaluation context backed by a sandboxed jinja2 environment.

The context is a read-only snapshot of everything an evaluable expression may
reference:

    var.NAME        input variables
    terraform.NAME  built-in context attributes (workspace)
    path.NAME       module / root / cwd paths

plus the function library. It exposes exactly two operations to the pipeline:

    evaluate_expr(expr, want_type)  -> (Value, Diagnostics)
    evaluate_block(block, schema)   -> (Value, Diagnostics)

Problems are reported as diagnostics, never raised. Unknown bindings propagate:
any expression that touches an unknown value evaluates to an unknown value.

Thread safety:
    Bindings are converted once at construction and never written afterwards.
    Evaluation runs in an ImmutableSandboxedEnvironment, so expressions cannot
    mutate shared lists or dicts either. One context can serve many threads.

Example:
    ctx = EvalContext({"region": "eu-west-1"}, workspace="prod")
    value, diags = ctx.evaluate_expr(parse_expression('"${var.region}"'), STRING)
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from jinja2 import StrictUndefined, Undefined
from jinja2.exceptions import UndefinedError
from jinja2.sandbox import ImmutableSandboxedEnvironment

from .convert import convert
from .diagnostics import Diagnostics
from .exceptions import ConversionError
from .functions import BUILTIN_FUNCTIONS
from .resolver.syntax_rules import PAIRS_FUNCTION, VALUES_FUNCTION
from .schema import BlockSchema, NestedBlockSchema, NestingMode
from .syntax import Block, Expression
from .types import DYNAMIC, STRING, Type
from .values import Value, ValueKind

logger = logging.getLogger(__name__)


class _UnknownResult(Exception):
    """Evaluation needed the content of an unknown value."""


class _UnknownOperand:
    """
    Stand-in for unknown values while jinja2 evaluates.

    Operators, attribute access, indexing and calls yield the operand itself.
    Anything that needs concrete content (truthiness, str(), iteration, len)
    aborts the evaluation with _UnknownResult, which the context turns into an
    unknown result.
    """

    _RESERVED = frozenset({"unsafe_callable", "alters_data", "jinja_pass_arg"})

    def _propagate(self, *args: Any, **kwargs: Any) -> _UnknownOperand:
        return self

    def _interrupt(self, *args: Any, **kwargs: Any) -> Any:
        raise _UnknownResult()

    __add__ = __radd__ = __sub__ = __rsub__ = __mul__ = __rmul__ = _propagate
    __truediv__ = __rtruediv__ = __floordiv__ = __rfloordiv__ = _propagate
    __mod__ = __rmod__ = __pow__ = __rpow__ = __neg__ = __pos__ = _propagate
    __eq__ = __ne__ = __lt__ = __le__ = __gt__ = __ge__ = _propagate  # type: ignore[assignment]
    __getitem__ = __call__ = _propagate
    __bool__ = __str__ = __iter__ = __len__ = __contains__ = _interrupt
    __hash__ = object.__hash__

    def __getattr__(self, name: str) -> _UnknownOperand:
        if name.startswith("_") or name in self._RESERVED:
            raise AttributeError(name)
        return self

    def __repr__(self) -> str:
        return "<unknown>"


_UNKNOWN_OPERAND = _UnknownOperand()


class _ContextEnvironment(ImmutableSandboxedEnvironment):
    """Sandbox where attribute access on maps always means key lookup."""

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping):
            if attribute in obj:
                return obj[attribute]
            return self.undefined(obj=obj, name=attribute)
        return super().getattr(obj, attribute)


def _template_string(obj: Any) -> Any:
    """Render an interpolated value the way string conversion does."""
    if obj is _UNKNOWN_OPERAND:
        raise _UnknownResult()
    if isinstance(obj, Undefined):
        return obj
    if obj is None:
        raise TypeError("Invalid template interpolation value: the expression result is null")
    if isinstance(obj, (list, tuple, Mapping)):
        raise TypeError("Cannot include the given value in a string template: string required")
    return convert(Value.from_python(obj), STRING).data


def _template_values(collection: Any) -> Any:
    """Element values of a list, or map values in key order."""
    if collection is _UNKNOWN_OPERAND or isinstance(collection, Undefined):
        return collection
    if isinstance(collection, Mapping):
        return [collection[key] for key in sorted(collection)]
    if isinstance(collection, (list, tuple)):
        return list(collection)
    raise TypeError(f"Cannot use a {_describe_type(collection)} value in for: list or map required")


def _template_pairs(collection: Any) -> Any:
    """(index, value) pairs of a list, or (key, value) pairs of a map in key order."""
    if collection is _UNKNOWN_OPERAND or isinstance(collection, Undefined):
        return collection
    if isinstance(collection, Mapping):
        return [(key, collection[key]) for key in sorted(collection)]
    if isinstance(collection, (list, tuple)):
        return list(enumerate(collection))
    raise TypeError(f"Cannot use a {_describe_type(collection)} value in for: list or map required")


def _describe_type(obj: Any) -> str:
    return "null" if obj is None else type(obj).__name__


def _propagate_unknown(func: Callable[..., Any]) -> Callable[..., Any]:
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if any(_contains_unknown(arg) for arg in (*args, *kwargs.values())):
            return _UNKNOWN_OPERAND
        return func(*args, **kwargs)

    return wrapper


def _contains_unknown(obj: Any) -> bool:
    if obj is _UNKNOWN_OPERAND:
        return True
    if isinstance(obj, (list, tuple)):
        return any(_contains_unknown(item) for item in obj)
    if isinstance(obj, Mapping):
        return any(_contains_unknown(item) for item in obj.values())
    return False


def _to_jinja(value: Value) -> Any:
    if value.kind is ValueKind.UNKNOWN:
        return _UNKNOWN_OPERAND
    if value.kind is ValueKind.LIST:
        return [_to_jinja(item) for item in value.data]
    if value.kind is ValueKind.MAP:
        return {key: _to_jinja(item) for key, item in value.data.items()}
    return value.to_python()


def _from_jinja(obj: Any) -> Value:
    if obj is _UNKNOWN_OPERAND:
        return Value.unknown()
    if isinstance(obj, Undefined):
        str(obj)  # StrictUndefined raises UndefinedError naming the missing variable
        raise UndefinedError("undefined value")
    if isinstance(obj, (list, tuple)):
        return Value.list(_from_jinja(item) for item in obj)
    if isinstance(obj, Mapping):
        return Value.map({str(key): _from_jinja(item) for key, item in obj.items()})
    if obj is None or isinstance(obj, (str, bool, int, float)):
        return Value.from_python(obj)
    raise TypeError(f"expression produced an unsupported {type(obj).__name__} value")


def _freeze(bindings: Mapping[str, Any] | None) -> MappingProxyType[str, Value]:
    return MappingProxyType({name: Value.from_python(v) for name, v in (bindings or {}).items()})


class EvalContext:
    """
    Read-only snapshot of statically known bindings.

    Attributes:
        variables: Input variable values (``var.NAME``)
        terraform_attrs: Built-in context attributes (``terraform.NAME``)
        path_attrs: Path attributes (``path.NAME``)
    """

    def __init__(
        self,
        variables: Mapping[str, Any] | None = None,
        *,
        workspace: str = "default",
        module_path: str = ".",
        root_path: str = ".",
        cwd: str | None = None,
        functions: Mapping[str, Callable[..., Any]] | None = None,
    ):
        """
        Initialize evaluation context.

        Args:
            variables: Variable name -> value (Value, plain Python data, or the
                UNKNOWN sentinel for values known only after apply)
            workspace: Value of ``terraform.workspace``
            module_path: Value of ``path.module``
            root_path: Value of ``path.root``
            cwd: Value of ``path.cwd`` (default: current working directory)
            functions: Extra functions, overriding built-ins of the same name
        """
        self.variables = _freeze(variables)
        self.terraform_attrs = _freeze({"workspace": workspace})
        self.path_attrs = _freeze(
            {
                "module": module_path,
                "root": root_path,
                "cwd": cwd if cwd is not None else str(Path.cwd()),
            }
        )

        self._env = _ContextEnvironment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            finalize=_template_string,
        )
        all_functions = {**BUILTIN_FUNCTIONS, **(functions or {})}
        self._env.globals.update(
            {name: _propagate_unknown(func) for name, func in all_functions.items()}
        )
        self._env.globals.update(
            {PAIRS_FUNCTION: _template_pairs, VALUES_FUNCTION: _template_values}
        )

        self._namespace = {
            "var": _to_jinja(Value.map(self.variables)),
            "terraform": _to_jinja(Value.map(self.terraform_attrs)),
            "path": _to_jinja(Value.map(self.path_attrs)),
        }

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def evaluate_expr(
        self, expr: Expression, want_type: Type = DYNAMIC
    ) -> tuple[Value, Diagnostics]:
        """
        Evaluate an expression and convert the result to ``want_type``.

        Args:
            expr: Parsed expression
            want_type: Type to convert the result to (DYNAMIC = no conversion)

        Returns:
            Tuple of (value, diagnostics). The value is null when the
            diagnostics contain errors.
        """
        diags = Diagnostics()

        try:
            value = _from_jinja(self._evaluate(expr))
        except _UnknownResult:
            value = Value.unknown()
        except Exception as e:
            logger.debug(f"Evaluation of {expr.source!r} failed: {e}")
            diags.error("Invalid expression", _describe(e), expr.range)
            return Value.null(), diags

        try:
            value = convert(value, want_type)
        except ConversionError as e:
            diags.error(
                "Incorrect value type",
                f"Invalid expression value: {e}; {want_type.friendly_name()} required",
                expr.range,
            )
            return Value.null(), diags

        return value, diags

    def _evaluate(self, expr: Expression) -> Any:
        if expr.kind.preserves_type:
            compiled = self._env.compile_expression(expr.jinja_source, undefined_to_none=False)
            return compiled(**self._namespace)

        template = self._env.from_string(expr.jinja_source)
        return template.render(**self._namespace)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def evaluate_block(self, block: Block, schema: BlockSchema) -> tuple[Value, Diagnostics]:
        """
        Evaluate a block body against its schema.

        Declared attributes are converted to their schema type; omitted
        optional attributes are null. Nested blocks are evaluated recursively
        according to their nesting mode.

        Returns:
            Tuple of (map value, diagnostics). The value is null when the
            diagnostics contain errors.
        """
        diags = Diagnostics()
        result: dict[str, Value] = {}

        for name, attr_schema in schema.attributes.items():
            expr = block.attributes.get(name)
            if expr is None:
                if attr_schema.required:
                    diags.error(
                        "Missing required argument",
                        f'The argument "{name}" is required, but no definition was found.',
                        block.def_range,
                    )
                result[name] = Value.null()
                continue

            value, attr_diags = self.evaluate_expr(expr, attr_schema.type)
            diags.extend(attr_diags)
            result[name] = value

        for name, expr in block.attributes.items():
            if name not in schema.attributes:
                diags.error(
                    "Unsupported argument",
                    f'An argument named "{name}" is not expected here.',
                    expr.range,
                )

        for type_name, nested_schema in schema.block_types.items():
            nested_blocks = [nested for nested in block.blocks if nested.type == type_name]
            result[type_name] = self._evaluate_nested(
                type_name, nested_blocks, nested_schema, block, diags
            )

        for nested in block.blocks:
            if nested.type not in schema.block_types:
                diags.error(
                    "Unsupported block type",
                    f'Blocks of type "{nested.type}" are not expected here.',
                    nested.def_range,
                )

        if diags.has_errors():
            return Value.null(), diags
        return Value.map(result), diags

    def _evaluate_nested(
        self,
        type_name: str,
        blocks: list[Block],
        nested_schema: NestedBlockSchema,
        parent: Block,
        diags: Diagnostics,
    ) -> Value:
        if nested_schema.nesting is NestingMode.SINGLE:
            if len(blocks) > 1:
                diags.error(
                    "Duplicate block",
                    f'Only one "{type_name}" block is allowed.',
                    blocks[1].def_range,
                )
            if not blocks:
                return Value.null()
            return self._evaluate_child(blocks[0], nested_schema.block, diags)

        if nested_schema.nesting is NestingMode.MAP:
            entries: dict[str, Value] = {}
            for nested in blocks:
                if not nested.labels:
                    diags.error(
                        "Missing block label",
                        f'Blocks of type "{type_name}" require a label.',
                        nested.def_range,
                    )
                    continue
                key = nested.labels[0]
                if key in entries:
                    diags.error(
                        "Duplicate block",
                        f'A "{type_name}" block labelled "{key}" was already defined.',
                        nested.def_range,
                    )
                    continue
                entries[key] = self._evaluate_child(nested, nested_schema.block, diags)
            return Value.map(entries)

        count = len(blocks)
        if count < nested_schema.min_items:
            diags.error(
                "Insufficient blocks",
                f'At least {nested_schema.min_items} "{type_name}" blocks are required.',
                parent.def_range,
            )
        if nested_schema.max_items and count > nested_schema.max_items:
            diags.error(
                "Too many blocks",
                f'No more than {nested_schema.max_items} "{type_name}" blocks are allowed.',
                blocks[nested_schema.max_items].def_range,
            )
        return Value.list(
            self._evaluate_child(nested, nested_schema.block, diags) for nested in blocks
        )

    def _evaluate_child(self, block: Block, schema: BlockSchema, diags: Diagnostics) -> Value:
        value, child_diags = self.evaluate_block(block, schema)
        diags.extend(child_diags)
        return value


def _describe(error: Exception) -> str:
    if isinstance(error, UndefinedError):
        return f"{error.message}; the referenced value is not defined in this context"
    return str(error) or type(error).__name__
