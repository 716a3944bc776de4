"""
Rewriting rules turning configuration language source into jinja2 source.

A rule inspects a RuleContext and returns it with ``expression`` rewritten.
``apply_rules`` runs rules sorted by priority:

    1-9    SECURITY  reject the source before anything else sees it
    10+    SYNTAX    translate template markers, operators and keywords

Extra rules passed to ``rewrite_expression`` run after the defaults unless
they pick a lower priority:

    class LowercaseVarRule(TransformRule):
        rule_type = RuleType.SYNTAX
        priority = 30

        def applies_to(self, context):
            return context.kind is ExpressionKind.EXPRESSION

        def transform(self, context):
            context.expression = context.expression.replace("VAR.", "var.")
            return context

        @property
        def description(self):
            return "Accept upper-case VAR roots"
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from .classifier import ExpressionKind

logger = logging.getLogger(__name__)


class RuleType(Enum):
    SYNTAX = "syntax"
    SECURITY = "security"


@dataclass
class RuleContext:
    """
    Source under rewrite.

    Attributes:
        expression: Current source; language source before the first rule,
            jinja2 source after the last
        kind: Classification of the original source
        applied: Descriptions of the rules that changed the source, in order
    """

    expression: str
    kind: ExpressionKind
    applied: list[str] = field(default_factory=list)


class TransformRule(ABC):
    """A single source rewrite. Lower priority runs first."""

    rule_type: RuleType
    priority: int = 0

    @abstractmethod
    def applies_to(self, context: RuleContext) -> bool:
        """Whether the rule has anything to do for this source."""

    @abstractmethod
    def transform(self, context: RuleContext) -> RuleContext:
        """
        Rewrite the source.

        Raises:
            SecurityError: Security rules reject the source
            ExpressionSyntaxError: The source is malformed for this rule
        """

    @property
    @abstractmethod
    def description(self) -> str:
        """Short description used in debug logs."""


def apply_rules(rules: list[TransformRule], context: RuleContext) -> RuleContext:
    """Run ``rules`` over ``context`` by ascending priority."""
    for rule in sorted(rules, key=lambda r: r.priority):
        if not rule.applies_to(context):
            continue
        before = context.expression
        context = rule.transform(context)
        if context.expression != before:
            context.applied.append(rule.description)
            logger.debug(f"{rule.description}: {before!r} -> {context.expression!r}")
    return context
