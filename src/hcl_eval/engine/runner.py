"""
Static evaluation runner.

The runner owns an evaluation context and drives the pipeline for rule
implementations:

    Evaluability Gate -> Evaluator -> Sanitizer -> Coercer/Binder

Every stage may stop the pipeline with a ClassifiedError:

    Stage        Code                 Level    Trigger
    gate         EvaluationError      error    reference extraction failed
    gate         UnevaluableError     warning  depends on live state
    evaluator    EvaluationError      error    context reported diagnostics
    sanitizer    UnknownValueError    warning  result not yet known
    sanitizer    NullValueError       warning  expression result has a null
    binder       TypeConversionError  error    block map conversion failed
    binder       TypeMismatchError    error    result does not fit destination

Warnings mean "skip this check for this node"; errors abort the current rule
for the current node. Asking for a destination outside the supported shapes
raises UnsupportedDestinationError, which callers must not catch.

Example:
    runner = Runner(EvalContext({"instance_type": "t2.micro"}))
    try:
        instance_type = runner.evaluate_expr(expr, str)
    except ClassifiedError as e:
        if e.is_warning:
            return
        raise
"""

from __future__ import annotations

import logging
from typing import Any

from .binding import TargetShape, bind, convert_block_value
from .context import EvalContext
from .exceptions import ClassifiedError, ErrorCode, ErrorLevel, ReferenceParseError
from .evaluable import is_evaluable_block, is_evaluable_expr
from .sanitize import check_expression_value, sanitize_block_value
from .schema import BlockSchema
from .syntax import Block, Expression
from .types import DYNAMIC, Type
from .values import Value

logger = logging.getLogger(__name__)


class Runner:
    """
    Evaluates expressions and blocks against one evaluation context.

    The runner holds no per-call state; one instance can be used from many
    threads as long as its context is shared read-only (EvalContext is).

    Attributes:
        ctx: Evaluation context
    """

    def __init__(self, ctx: EvalContext):
        """
        Initialize runner.

        Args:
            ctx: Evaluation context used for every call
        """
        self.ctx = ctx

    # ------------------------------------------------------------------
    # Public binding API
    # ------------------------------------------------------------------

    def evaluate_expr(self, expr: Expression, destination: Any) -> Any:
        """
        Evaluate an expression and bind the result into ``destination``'s shape.

        The requested value type is derived from the destination.

        Args:
            expr: Parsed expression
            destination: Destination type (``str``, ``int``, ``list[str]``,
                ``list[int]``, ``dict[str, str]``, ``dict[str, int]``)

        Returns:
            The bound Python value

        Raises:
            ClassifiedError: On any classified failure; nothing is returned
            UnsupportedDestinationError: If the destination is not supported
        """
        shape = TargetShape.for_destination(destination)
        val = self.eval_expr(expr, shape.want_type)
        return bind(val, shape, expr.range, "expression")

    def evaluate_expr_type(self, expr: Expression, destination: Any, want_type: Type) -> Any:
        """
        Like evaluate_expr, but with an explicit value type for evaluation.

        Raises:
            ClassifiedError: On any classified failure
            UnsupportedDestinationError: If the destination is not supported
        """
        shape = TargetShape.for_destination(destination)
        val = self.eval_expr(expr, want_type)
        return bind(val, shape, expr.range, "expression")

    def evaluate_block(self, block: Block, schema: BlockSchema, destination: Any) -> Any:
        """
        Evaluate a block and bind the result into ``destination``'s shape.

        Null attributes become empty strings. For map destinations every
        attribute is converted to the map's element type first.

        Args:
            block: Block handle
            schema: Schema of the block body
            destination: Destination type (typically ``dict[str, str]``)

        Returns:
            The bound Python value

        Raises:
            ClassifiedError: On any classified failure; nothing is returned
            UnsupportedDestinationError: If the destination is not supported
        """
        shape = TargetShape.for_destination(destination)
        val = self.eval_block(block, schema)
        val = convert_block_value(val, shape, block.def_range)
        return bind(val, shape, block.def_range, "block")

    # ------------------------------------------------------------------
    # Value-level API
    # ------------------------------------------------------------------

    def eval_expr(
        self,
        expr: Expression,
        want_type: Type | None = None,
        destination: Any = None,
    ) -> Value:
        """
        Gate, evaluate and sanitize an expression.

        Args:
            expr: Parsed expression
            want_type: Value type to request; derived from ``destination``
                when omitted, DYNAMIC when both are omitted
            destination: Destination type used to derive ``want_type``

        Returns:
            Fully known, null-free value

        Raises:
            ClassifiedError: EvaluationError, UnevaluableError,
                UnknownValueError or NullValueError
            UnsupportedDestinationError: If want_type is omitted and the
                destination is not supported
        """
        try:
            evaluable = is_evaluable_expr(expr)
        except ReferenceParseError as e:
            err = ClassifiedError(
                code=ErrorCode.EVALUATION_ERROR,
                level=ErrorLevel.ERROR,
                message=f"Failed to parse an expression in {expr.range}",
                cause=e,
            )
            logger.error(str(err))
            raise err from e

        if not evaluable:
            err = ClassifiedError(
                code=ErrorCode.UNEVALUABLE_ERROR,
                level=ErrorLevel.WARNING,
                message=f"Unevaluable expression found in {expr.range}",
            )
            logger.warning(f"{err}; an unevaluable expression is ignored.")
            raise err

        if want_type is None:
            want_type = DYNAMIC
            if destination is not None:
                want_type = TargetShape.for_destination(destination).want_type

        val, diags = self.ctx.evaluate_expr(expr, want_type)
        if diags.has_errors():
            cause = diags.err()
            err = ClassifiedError(
                code=ErrorCode.EVALUATION_ERROR,
                level=ErrorLevel.ERROR,
                message=f"Failed to eval an expression in {expr.range}",
                cause=cause,
            )
            logger.error(str(err))
            raise err from cause

        return check_expression_value(val, expr.range)

    def eval_block(self, block: Block, schema: BlockSchema) -> Value:
        """
        Gate, evaluate and sanitize a block.

        Returns:
            Fully known block value with null attributes replaced by ""

        Raises:
            ClassifiedError: EvaluationError, UnevaluableError or UnknownValueError
        """
        try:
            evaluable = is_evaluable_block(block, schema)
        except ReferenceParseError as e:
            err = ClassifiedError(
                code=ErrorCode.EVALUATION_ERROR,
                level=ErrorLevel.ERROR,
                message=f"Failed to parse a block in {block.def_range}",
                cause=e,
            )
            logger.error(str(err))
            raise err from e

        if not evaluable:
            err = ClassifiedError(
                code=ErrorCode.UNEVALUABLE_ERROR,
                level=ErrorLevel.WARNING,
                message=f"Unevaluable block found in {block.def_range}",
            )
            logger.warning(f"{err}; an unevaluable block is ignored.")
            raise err

        val, diags = self.ctx.evaluate_block(block, schema)
        if diags.has_errors():
            cause = diags.err()
            err = ClassifiedError(
                code=ErrorCode.EVALUATION_ERROR,
                level=ErrorLevel.ERROR,
                message=f"Failed to eval a block in {block.def_range}",
                cause=cause,
            )
            logger.error(str(err))
            raise err from cause

        return sanitize_block_value(val, block.def_range)
