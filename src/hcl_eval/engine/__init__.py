"""Static evaluation engine.

Key Components:

- Runner: Drives the pipeline (gate, evaluator, sanitizer, binder)
- EvalContext: Read-only snapshot of known bindings, backed by a jinja2 sandbox
- Value: Tagged-union runtime value with walk/transform traversal
- Expression / Block: Immutable AST handles built by parse_expression / Block.from_dict
- BlockSchema: Pydantic schema describing block bodies
- TargetShape: Closed set of destination shapes
- ClassifiedError: Pipeline failure with stable code and level
- ConfigLoader: YAML + environment configuration for building contexts
"""

from .binding import TargetShape
from .config import ConfigLoader, EvalConfig
from .context import EvalContext
from .diagnostics import Diagnostic, Diagnostics, DiagnosticsError
from .evaluable import is_evaluable_block, is_evaluable_expr
from .exceptions import (
    ClassifiedError,
    ConfigError,
    ConversionError,
    ErrorCode,
    ErrorLevel,
    ExpressionSyntaxError,
    ReferenceParseError,
    UnsupportedDestinationError,
)
from .references import Reference, SubjectKind, references_in_block, references_in_expr
from .runner import Runner
from .schema import AttributeSchema, BlockSchema, NestedBlockSchema, NestingMode
from .syntax import Block, Expression, SourceRange, parse_expression
from .types import BOOL, DYNAMIC, NUMBER, STRING, Type, list_of, map_of, parse_type
from .values import UNKNOWN, Value, ValueKind, transform, walk

__all__ = [
    "AttributeSchema",
    "BOOL",
    "Block",
    "BlockSchema",
    "ClassifiedError",
    "ConfigError",
    "ConfigLoader",
    "ConversionError",
    "DYNAMIC",
    "Diagnostic",
    "Diagnostics",
    "DiagnosticsError",
    "ErrorCode",
    "ErrorLevel",
    "EvalConfig",
    "EvalContext",
    "Expression",
    "ExpressionSyntaxError",
    "NUMBER",
    "NestedBlockSchema",
    "NestingMode",
    "Reference",
    "ReferenceParseError",
    "Runner",
    "STRING",
    "SourceRange",
    "SubjectKind",
    "TargetShape",
    "Type",
    "UNKNOWN",
    "UnsupportedDestinationError",
    "Value",
    "ValueKind",
    "is_evaluable_block",
    "is_evaluable_expr",
    "list_of",
    "map_of",
    "parse_expression",
    "parse_type",
    "references_in_block",
    "references_in_expr",
    "transform",
    "walk",
]
