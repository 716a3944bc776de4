"""hcl-eval - static evaluation of HCL-style expressions and blocks for linters.

Example:
    >>> from hcl_eval import EvalContext, Runner, parse_expression
    >>> runner = Runner(EvalContext({"x": "ok"}))
    >>> runner.evaluate_expr(parse_expression('"${var.x}"'), str)
    'ok'
"""

from .engine import (
    UNKNOWN,
    AttributeSchema,
    Block,
    BlockSchema,
    ClassifiedError,
    ConfigLoader,
    ErrorCode,
    ErrorLevel,
    EvalContext,
    Expression,
    ExpressionSyntaxError,
    NestedBlockSchema,
    NestingMode,
    Runner,
    SourceRange,
    TargetShape,
    UnsupportedDestinationError,
    Value,
    is_evaluable_block,
    is_evaluable_expr,
    parse_expression,
)

__version__ = "0.1.0"

__all__ = [
    "AttributeSchema",
    "Block",
    "BlockSchema",
    "ClassifiedError",
    "ConfigLoader",
    "ErrorCode",
    "ErrorLevel",
    "EvalContext",
    "Expression",
    "ExpressionSyntaxError",
    "NestedBlockSchema",
    "NestingMode",
    "Runner",
    "SourceRange",
    "TargetShape",
    "UNKNOWN",
    "UnsupportedDestinationError",
    "Value",
    "is_evaluable_block",
    "is_evaluable_expr",
    "parse_expression",
]
