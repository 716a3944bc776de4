"""Diagnostics reported by the evaluation context."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .syntax import SourceRange


class DiagnosticSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single problem found while evaluating.

    Attributes:
        severity: ERROR or WARNING
        summary: Short description
        detail: Longer explanation
        subject: Location the diagnostic refers to
    """

    severity: DiagnosticSeverity
    summary: str
    detail: str = ""
    subject: SourceRange | None = None

    def __str__(self) -> str:
        text = self.summary
        if self.detail:
            text = f"{text}: {self.detail}"
        if self.subject is not None:
            text = f"{self.subject}: {text}"
        return text


class DiagnosticsError(Exception):
    """Exception form of a set of error diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        super().__init__("; ".join(str(diag) for diag in diagnostics))


class Diagnostics(list[Diagnostic]):
    """List of diagnostics with error helpers."""

    def error(self, summary: str, detail: str = "", subject: SourceRange | None = None) -> None:
        self.append(Diagnostic(DiagnosticSeverity.ERROR, summary, detail, subject))

    def has_errors(self) -> bool:
        return any(diag.severity is DiagnosticSeverity.ERROR for diag in self)

    def err(self) -> DiagnosticsError | None:
        """Combined exception for the error diagnostics, or None if there are none."""
        errors = [diag for diag in self if diag.severity is DiagnosticSeverity.ERROR]
        if not errors:
            return None
        return DiagnosticsError(errors)
