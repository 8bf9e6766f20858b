"""Diagnostics and compiler exceptions.

Every problem found while compiling an app spec ends up as a
:class:`Diagnostic` value.  Exceptions in this module are raised inside a
phase and translated into diagnostics at the phase boundary, so callers of
:meth:`Compiler.compile` only ever see values unless they opt into
``throw_on_error``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DiagnosticKind(str, Enum):
    """Closed set of diagnostic categories."""
    VALIDATION = "validation"
    COMPONENT = "component"
    DEPENDENCY = "dependency"
    FILE = "file"
    TEMPLATE = "template"


KIND_LABELS: dict[DiagnosticKind, str] = {
    DiagnosticKind.VALIDATION: "Validation error",
    DiagnosticKind.COMPONENT: "Component error",
    DiagnosticKind.DEPENDENCY: "Dependency error",
    DiagnosticKind.FILE: "File error",
    DiagnosticKind.TEMPLATE: "Template error",
}


class ErrorLocation(BaseModel):
    """Where a diagnostic points to: a file position and/or a spec property path."""
    model_config = ConfigDict(frozen=True)

    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            position = self.file
            if self.line is not None:
                position += f":{self.line}"
                if self.column is not None:
                    position += f":{self.column}"
            parts.append(position)
        if self.path:
            parts.append(f"at {self.path}")
        return " ".join(parts)


class Diagnostic(BaseModel):
    """A structured compilation error.  Immutable once created."""
    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind
    message: str
    location: Optional[ErrorLocation] = None
    suggestions: list[str] = Field(default_factory=list)
    details: Optional[str] = None

    def with_file(self, file: str) -> "Diagnostic":
        """Return a copy whose location also names *file*."""
        location = self.location or ErrorLocation()
        return self.model_copy(update={"location": location.model_copy(update={"file": file})})


def format_diagnostic(diagnostic: Diagnostic) -> str:
    """Render a diagnostic as a single human-readable block."""
    label = KIND_LABELS[diagnostic.kind]
    text = f"{label}: {diagnostic.message}"
    if diagnostic.location is not None and str(diagnostic.location):
        text += f" ({diagnostic.location})"
    for suggestion in diagnostic.suggestions:
        text += f"\n  hint: {suggestion}"
    return text


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CompilerError(Exception):
    """Base exception for failures inside a compilation phase."""

    kind: DiagnosticKind = DiagnosticKind.DEPENDENCY

    def __init__(
        self,
        message: str,
        *,
        location: ErrorLocation | None = None,
        suggestions: list[str] | None = None,
    ) -> None:
        self.message = message
        self.location = location
        self.suggestions = suggestions or []
        super().__init__(message)

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            kind=self.kind,
            message=self.message,
            location=self.location,
            suggestions=list(self.suggestions),
        )


class SpecValidationError(CompilerError):
    kind = DiagnosticKind.VALIDATION


class ComponentError(CompilerError):
    kind = DiagnosticKind.COMPONENT


class DependencyError(CompilerError):
    kind = DiagnosticKind.DEPENDENCY


class FileError(CompilerError):
    kind = DiagnosticKind.FILE


class TemplateError(CompilerError):
    kind = DiagnosticKind.TEMPLATE


class ConfigParseError(SpecValidationError):
    """Raised by the spec parser when ``throw_on_error`` is requested."""

    def __init__(self, message: str, errors: list[Diagnostic]) -> None:
        super().__init__(message)
        self.errors = errors
