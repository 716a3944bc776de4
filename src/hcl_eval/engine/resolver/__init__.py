"""
Expression source rewriting package.

Configuration language source is rewritten into jinja2 source before it is
parsed and evaluated:
1. Expression classification (literal / interpolation / template / expression)
2. Security rules (forbidden names)
3. Syntax rules (template markers, operators)

Public API:
    - rewrite_expression: Classify and rewrite source in one call
    - ExpressionClassifier / ExpressionKind: Source classification
    - TransformRule / RuleContext / RuleType: Rule extension points
    - SecurityError: Raised by security rules
"""

from .classifier import ExpressionClassifier, ExpressionKind
from .rules import RuleContext, RuleType, TransformRule, apply_rules
from .security_rules import ForbiddenNameRule, SecurityError
from .syntax_rules import OperatorNormalizationRule, TemplateMarkerRule


def default_rules() -> list[TransformRule]:
    """Rules applied to every expression, in priority order."""
    return [
        ForbiddenNameRule(),  # Security first
        TemplateMarkerRule(),
        OperatorNormalizationRule(),
    ]


def rewrite_expression(
    source: str, rules: list[TransformRule] | None = None
) -> tuple[ExpressionKind, str]:
    """
    Classify ``source`` and rewrite it into jinja2 source.

    Args:
        source: Expression source as written in the configuration
        rules: Extra rules appended to the defaults

    Returns:
        Tuple of (kind, jinja2 source)

    Raises:
        ExpressionSyntaxError: If a quoted template is malformed
        SecurityError: If a security rule rejects the source
    """
    kind = ExpressionClassifier().classify(source)
    context = RuleContext(expression=source.strip(), kind=kind)
    context = apply_rules(default_rules() + (rules or []), context)
    return kind, context.expression


__all__ = [
    "ExpressionClassifier",
    "ExpressionKind",
    "ForbiddenNameRule",
    "OperatorNormalizationRule",
    "RuleContext",
    "RuleType",
    "SecurityError",
    "TemplateMarkerRule",
    "TransformRule",
    "apply_rules",
    "default_rules",
    "rewrite_expression",
]
