"""
Syntax transformation rules for expression rewriting.

These rules translate configuration language syntax into jinja2 syntax while
keeping the language's semantics.

Rules:
    - TemplateMarkerRule: "${...}" / "%{...}" templates into {{ ... }} / {% ... %}
    - OperatorNormalizationRule: &&, ||, ! and null in bare expressions
"""

import re

from .classifier import ExpressionKind
from .rules import RuleContext, RuleType, TransformRule
from .scanner import PartKind, scan_template, split_strings

PAIRS_FUNCTION = "_template_pairs"
VALUES_FUNCTION = "_template_values"

_FOR_DIRECTIVE = re.compile(r"for\s+(\w+)\s*(?:,\s*(\w+)\s*)?\bin\s+(.+)", re.DOTALL)

_OPERATOR_REWRITES = [
    (re.compile(r"&&"), " and "),
    (re.compile(r"\|\|"), " or "),
    (re.compile(r"!(?!=)"), " not "),
    (re.compile(r"(?<![.\w])null\b"), "none"),
]


def rewrite_for_directive(body: str) -> str:
    """
    Make a for directive iterate the way the configuration language does.

    One variable gets the element values (map values in key order); two
    variables get index and value for lists, key and value for maps.

    Example:
        >>> rewrite_for_directive("for k, v in var.tags")
        'for k, v in _template_pairs(var.tags)'
    """
    match = _FOR_DIRECTIVE.fullmatch(body)
    if not match:
        return body
    first, second, collection = match.groups()
    if second is None:
        return f"for {first} in {VALUES_FUNCTION}({collection})"
    return f"for {first}, {second} in {PAIRS_FUNCTION}({collection})"


def normalize_operators(source: str) -> str:
    """
    Rewrite logical operators and the null keyword outside string literals.

    Example:
        >>> normalize_operators('var.a && !var.b || var.c != null')
        'var.a  and   not var.b  or  var.c != none'
    """
    rewritten = []
    for is_string, segment in split_strings(source):
        if not is_string:
            for pattern, replacement in _OPERATOR_REWRITES:
                segment = pattern.sub(replacement, segment)
        rewritten.append(segment)
    return "".join(rewritten).strip()


class TemplateMarkerRule(TransformRule):
    """
    Translate quoted templates into jinja2 source.

    Transforms: "web-${var.env}"        -> web-{{ var.env }}
                "${var.ports}"          -> var.ports (single interpolation unwraps)
                "%{ if var.on }x%{ endif }" -> {% if var.on %}x{% endif %}

    Literal text containing braces is wrapped in a raw block so jinja2 never
    reads it as markup. ``~`` strip markers map onto jinja2's ``-``.
    """

    rule_type = RuleType.SYNTAX
    priority = 10

    def applies_to(self, context: RuleContext) -> bool:
        return context.kind is not ExpressionKind.EXPRESSION

    def transform(self, context: RuleContext) -> RuleContext:
        parts = scan_template(context.expression)

        if context.kind is ExpressionKind.INTERPOLATION:
            context.expression = normalize_operators(parts[0].text)
            return context

        rendered = []
        for part in parts:
            if part.kind is PartKind.LITERAL:
                if "{" in part.text:
                    rendered.append(f"{{% raw %}}{part.text}{{% endraw %}}")
                else:
                    rendered.append(part.text)
                continue

            open_marker, close_marker = ("{{", "}}")
            if part.kind is PartKind.DIRECTIVE:
                open_marker, close_marker = ("{%", "%}")
            left = "-" if part.strip_left else ""
            right = "-" if part.strip_right else ""
            body = normalize_operators(part.text)
            if part.kind is PartKind.DIRECTIVE:
                body = rewrite_for_directive(body)
            rendered.append(f"{open_marker}{left} {body} {right}{close_marker}")

        context.expression = "".join(rendered)
        return context

    @property
    def description(self) -> str:
        return "Convert template sequences into jinja2 markers"


class OperatorNormalizationRule(TransformRule):
    """
    Normalize operators in bare expressions.

    Transforms: var.a && !var.b -> var.a and not var.b
                var.x == null   -> var.x == none
    """

    rule_type = RuleType.SYNTAX
    priority = 20

    def applies_to(self, context: RuleContext) -> bool:
        return context.kind is ExpressionKind.EXPRESSION

    def transform(self, context: RuleContext) -> RuleContext:
        context.expression = normalize_operators(context.expression)
        return context

    @property
    def description(self) -> str:
        return "Convert logical operators and null into jinja2 syntax"
