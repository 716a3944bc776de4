"""Exceptions for the static evaluation pipeline.

Two families live here:

Classified failures (recoverable, reported to the calling rule):
    ClassifiedError
        code  = EvaluationError | UnevaluableError | UnknownValueError |
                NullValueError | TypeConversionError | TypeMismatchError
        level = warning | error

Programming or input defects (raised at construction time, never classified):
    ExpressionSyntaxError (ValueError)
    ReferenceParseError (ValueError)
    ConversionError (ValueError)
    ConfigError (ValueError)
    UnsupportedDestinationError (TypeError)

Warning-level errors mean "skip this check for this node"; error-level errors
abort the current rule for the current node. UnsupportedDestinationError is a
contract violation by the caller and must never be caught as a diagnostic.

Example:
    >>> try:
    ...     name = runner.evaluate_expr(expr, str)
    ... except ClassifiedError as e:
    ...     if e.is_warning:
    ...         return  # expression cannot be checked statically
    ...     raise
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .syntax import SourceRange


class ErrorCode(str, Enum):
    """Stable codes for classified evaluation failures."""

    EVALUATION_ERROR = "EvaluationError"
    UNEVALUABLE_ERROR = "UnevaluableError"
    UNKNOWN_VALUE_ERROR = "UnknownValueError"
    NULL_VALUE_ERROR = "NullValueError"
    TYPE_CONVERSION_ERROR = "TypeConversionError"
    TYPE_MISMATCH_ERROR = "TypeMismatchError"


class ErrorLevel(str, Enum):
    """Severity of a classified failure."""

    WARNING = "warning"
    ERROR = "error"


class ClassifiedError(Exception):
    """
    A pipeline failure with a stable code and severity.

    Instances are created fresh for every failure and are not mutated after
    being raised. The optional cause is also chained through ``__cause__`` by
    the raising site (``raise ClassifiedError(...) from cause``).

    Attributes:
        code: Failure classification
        level: WARNING (skip the check) or ERROR (abort the rule for this node)
        message: Human-readable message embedding the source file and line
        cause: Underlying exception, if any
    """

    def __init__(
        self,
        code: ErrorCode,
        level: ErrorLevel,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        """
        Initialize classified error.

        Args:
            code: Failure classification
            level: Severity level
            message: Message embedding ``file:line``
            cause: Underlying exception
        """
        self.code = code
        self.level = level
        self.message = message
        self.cause = cause

        if cause is not None:
            super().__init__(f"{message}; {cause}")
        else:
            super().__init__(message)

    @property
    def is_warning(self) -> bool:
        """True when the failure only means the check should be skipped."""
        return self.level is ErrorLevel.WARNING

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"ClassifiedError(code={self.code.value}, level={self.level.value}, "
            f"message={self.message!r})"
        )


class ExpressionSyntaxError(ValueError):
    """Raised when expression or template source cannot be parsed."""

    def __init__(self, message: str, source_range: SourceRange | None = None) -> None:
        self.source_range = source_range
        if source_range is not None:
            message = f"{source_range}: {message}"
        super().__init__(message)


class ReferenceParseError(ValueError):
    """
    Raised when a traversal cannot be interpreted as a reference.

    Examples: ``var`` without an attribute, ``var[0]``, ``data.aws_ami``
    without a resource name. This is a structural inconsistency of the
    expression, not a semantic problem with bound values.
    """

    def __init__(self, message: str, source_range: SourceRange | None = None) -> None:
        self.source_range = source_range
        if source_range is not None:
            message = f"{source_range}: {message}"
        super().__init__(message)


class ConversionError(ValueError):
    """
    Raised when a value cannot be converted to the requested type.

    Attributes:
        path: Location of the offending element inside the value
    """

    def __init__(self, message: str, path: tuple[str | int, ...] = ()) -> None:
        self.path = path
        if path:
            rendered = "".join(f"[{step!r}]" for step in path)
            message = f"{rendered}: {message}"
        super().__init__(message)


class ConfigError(ValueError):
    """Raised when evaluation configuration or a variable file is invalid."""


class UnsupportedDestinationError(TypeError):
    """
    Raised when a caller asks to bind into a destination outside the closed
    set of target shapes.

    This is a programming defect in the caller, not a recoverable condition.
    """

    def __init__(self, destination: object) -> None:
        self.destination = destination
        super().__init__(f"Unexpected result type: {destination!r}")
