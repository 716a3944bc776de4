"""
Sanitizing evaluated values against incomplete information.

Expression policy (check_expression_value):
    Walk the value pre-order; the first UNKNOWN raises UnknownValueError and
    the first NULL raises NullValueError. Both are warnings. Whichever comes
    first in traversal order wins; nothing is aggregated.

Block policy (sanitize_block_value):
    UNKNOWN is handled the same way. NULL is not an error: every NULL node is
    replaced by an empty string so blocks with omitted optional attributes can
    still be checked. This divergence from the expression policy is deliberate.
"""

import logging

from .exceptions import ClassifiedError, ErrorCode, ErrorLevel
from .syntax import SourceRange
from .values import CONTINUE, Abort, Path, Replace, Value, Visit, transform, walk

logger = logging.getLogger(__name__)


def _unknown_value_error(source_range: SourceRange) -> ClassifiedError:
    return ClassifiedError(
        code=ErrorCode.UNKNOWN_VALUE_ERROR,
        level=ErrorLevel.WARNING,
        message=(
            f"Unknown value found in {source_range}; "
            "Please use environment variables or tfvars to set the value"
        ),
    )


def check_expression_value(value: Value, source_range: SourceRange) -> Value:
    """
    Reject expression results that contain unknown or null values.

    Args:
        value: Evaluated value
        source_range: Location of the expression (for messages)

    Returns:
        The value, unchanged

    Raises:
        ClassifiedError: UnknownValueError or NullValueError (warning level)
    """

    def visit(path: Path, node: Value) -> Visit:
        if not node.is_known():
            err = _unknown_value_error(source_range)
            logger.warning(f"{err}; an expression including an unknown value is ignored.")
            return Abort(err)

        if node.is_null():
            err = ClassifiedError(
                code=ErrorCode.NULL_VALUE_ERROR,
                level=ErrorLevel.WARNING,
                message=f"Null value found in {source_range}",
            )
            logger.warning(f"{err}; an expression including a null value is ignored.")
            return Abort(err)

        return CONTINUE

    walk(value, visit)
    return value


def sanitize_block_value(value: Value, source_range: SourceRange) -> Value:
    """
    Reject block results with unknown values and blank out null values.

    Args:
        value: Evaluated block value
        source_range: Location of the block header (for messages)

    Returns:
        The value with every null node replaced by an empty string

    Raises:
        ClassifiedError: UnknownValueError (warning level)
    """

    def reject_unknown(path: Path, node: Value) -> Visit:
        if not node.is_known():
            err = _unknown_value_error(source_range)
            logger.warning(f"{err}; a block including an unknown value is ignored.")
            return Abort(err)
        return CONTINUE

    def blank_null(path: Path, node: Value) -> Visit:
        if node.is_null():
            logger.debug(
                f"Null value found in {source_range}, but it is treated as an empty value"
            )
            return Replace(Value.string(""))
        return CONTINUE

    walk(value, reject_unknown)
    return transform(value, blank_null)
