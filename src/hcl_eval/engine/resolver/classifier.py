"""
Expression classification for evaluation routing.

Expression Kinds:
    LITERAL: Quoted template without any ${...} or %{...} sequence
    INTERPOLATION: Quoted template holding exactly one ${...} and nothing else
    TEMPLATE: Any other quoted template (mixed text, several sequences, directives)
    EXPRESSION: Unquoted source

Routing:
    - INTERPOLATION and EXPRESSION are compiled as jinja2 expressions, so the
      result keeps its type ("${var.ports}" yields the list itself)
    - LITERAL and TEMPLATE are rendered as jinja2 templates and always yield
      a string
"""

from enum import Enum

from .scanner import PartKind, TemplatePart, is_quoted, scan_template


class ExpressionKind(Enum):
    """Kinds of expression source."""

    LITERAL = "literal"  # "plain text"
    INTERPOLATION = "interpolation"  # "${var.name}"
    TEMPLATE = "template"  # "web-${var.env}"
    EXPRESSION = "expression"  # var.name

    @property
    def preserves_type(self) -> bool:
        return self in (ExpressionKind.INTERPOLATION, ExpressionKind.EXPRESSION)


class ExpressionClassifier:
    """
    Classify expression source to route it to the right evaluation method.

    Example:
        classifier = ExpressionClassifier()
        kind = classifier.classify('"${var.region}"')
        # Returns: ExpressionKind.INTERPOLATION
    """

    def classify(self, source: str) -> ExpressionKind:
        """
        Classify expression source.

        Args:
            source: Expression source as written in the configuration

        Returns:
            ExpressionKind enum value

        Raises:
            ExpressionSyntaxError: If a quoted template is malformed
        """
        if not is_quoted(source):
            return ExpressionKind.EXPRESSION
        return self.classify_parts(scan_template(source))

    def classify_parts(self, parts: list[TemplatePart]) -> ExpressionKind:
        if all(part.kind is PartKind.LITERAL for part in parts):
            return ExpressionKind.LITERAL

        if len(parts) == 1 and parts[0].kind is PartKind.INTERPOLATION:
            return ExpressionKind.INTERPOLATION

        return ExpressionKind.TEMPLATE
