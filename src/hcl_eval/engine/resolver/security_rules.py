"""
Security rules for expression rewriting.

Expressions come from the configuration under analysis, which is untrusted
input. Evaluation already runs in a sandboxed jinja2 environment; this rule
rejects the obvious escape attempts early with a clear message.

Rules:
    - ForbiddenNameRule: Block dunder access and code-execution builtins
"""

import re

from .classifier import ExpressionKind
from .rules import RuleContext, RuleType, TransformRule
from .scanner import PartKind, scan_template, split_strings


class SecurityError(Exception):
    """Raised when a security rule is violated."""


class ForbiddenNameRule(TransformRule):
    """
    Block access to forbidden names.

    Prevents access to:
    - Dunder attributes and names (__class__, __globals__, __import__, ...)
    - Code execution functions: exec, eval, compile, open, getattr

    Only code is inspected; string literals and template text may contain
    anything.
    """

    rule_type = RuleType.SECURITY
    priority = 1

    FORBIDDEN_PATTERNS = [
        re.compile(r"__\w*"),
        re.compile(r"\b(exec|eval|compile|open|getattr)\s*\("),
    ]

    def applies_to(self, context: RuleContext) -> bool:
        return True

    def transform(self, context: RuleContext) -> RuleContext:
        code = self._code_text(context)
        for pattern in self.FORBIDDEN_PATTERNS:
            match = pattern.search(code)
            if match:
                raise SecurityError(f"Access to '{match.group(0)}' is forbidden in expressions")
        return context

    @staticmethod
    def _code_text(context: RuleContext) -> str:
        if context.kind is ExpressionKind.EXPRESSION:
            sources = [context.expression]
        else:
            sources = [
                part.text
                for part in scan_template(context.expression)
                if part.kind is not PartKind.LITERAL
            ]
        return " ".join(
            segment
            for source in sources
            for is_string, segment in split_strings(source)
            if not is_string
        )

    @property
    def description(self) -> str:
        return "Prevent access to dunder names and code execution functions"
