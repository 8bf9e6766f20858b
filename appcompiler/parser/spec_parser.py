"""App spec parser.

Turns JSON (or YAML) text into a validated :class:`AppSpec`.  Syntax errors
are reported with a line/column; structural errors are reported with a
dotted property path (``metadata.version``, ``routes.0.path``) and, for JSON
input, the line/column of the closest enclosing property.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from appcompiler.errors import ConfigParseError, Diagnostic, DiagnosticKind, ErrorLocation
from appcompiler.parser.models import AppSpec
from appcompiler.utils import get_logger

logger = get_logger("parser")

_YAML_SUFFIXES = {".yaml", ".yml"}

_EXPECTED_TYPES: dict[str, str] = {
    "string_type": "string",
    "list_type": "array",
    "dict_type": "object",
    "model_type": "object",
    "model_attributes_type": "object",
    "int_type": "integer",
    "int_parsing": "integer",
    "bool_type": "boolean",
    "bool_parsing": "boolean",
    "float_type": "number",
    "float_parsing": "number",
}

_PROPERTY_EXAMPLES: dict[str, str] = {
    "name": '"name": "my-app"',
    "version": '"version": "1.0.0"',
    "metadata": '"metadata": { "name": "my-app", "version": "1.0.0" }',
    "components": '"components": []',
    "routes": '"routes": [{ "path": "/", "component": "home" }]',
    "api": '"api": { "endpoints": [] }',
}


class ParseOptions(BaseModel):
    """Options for parsing an app spec."""

    throw_on_error: bool = False
    include_line_numbers: bool = True
    include_suggestions: bool = True


class ParseResult(BaseModel):
    """Outcome of parsing: the spec (when valid) and every diagnostic found."""

    spec: Optional[AppSpec] = None
    errors: list[Diagnostic] = Field(default_factory=list)
    success: bool = False


class SpecParser:
    """Parses and validates app spec documents."""

    def parse_string(
        self,
        text: str,
        options: ParseOptions | None = None,
        *,
        fmt: str = "json",
    ) -> ParseResult:
        """Parse *text* into an ``AppSpec``.

        Args:
            text: Raw document content.
            options: Parsing options.
            fmt: ``"json"`` or ``"yaml"``.

        Raises:
            ConfigParseError: If parsing fails and ``throw_on_error`` is set.
        """
        options = options or ParseOptions()

        try:
            raw = _load_document(text, fmt)
        except _SyntaxProblem as problem:
            errors = [
                Diagnostic(
                    kind=DiagnosticKind.VALIDATION,
                    message=f"{fmt.upper()} syntax error: {problem.message}",
                    details=problem.message,
                    location=ErrorLocation(line=problem.line, column=problem.column),
                )
            ]
            if options.throw_on_error:
                raise ConfigParseError("Configuration parsing failed", errors)
            return ParseResult(errors=errors)

        if not isinstance(raw, dict):
            errors = [
                Diagnostic(
                    kind=DiagnosticKind.VALIDATION,
                    message=f"Expected type object, got {_json_type_name(raw)}",
                    location=ErrorLocation(path="", line=1, column=1),
                    suggestions=["Use curly braces: {}"] if options.include_suggestions else [],
                )
            ]
            if options.throw_on_error:
                raise ConfigParseError("Configuration validation failed", errors)
            return ParseResult(errors=errors)

        try:
            spec = AppSpec.model_validate(raw)
        except PydanticValidationError as exc:
            errors = [
                self._diagnostic_from_error(err, text if fmt == "json" else None, options)
                for err in exc.errors()
            ]
            if options.throw_on_error:
                raise ConfigParseError("Configuration validation failed", errors) from exc
            return ParseResult(errors=errors)

        return ParseResult(spec=spec, success=True)

    async def parse_file(self, path: str | Path, options: ParseOptions | None = None) -> ParseResult:
        """Read and parse a spec file.  YAML is used for ``.yaml``/``.yml`` files."""
        options = options or ParseOptions()
        file_path = Path(path)

        try:
            text = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return ParseResult(
                errors=[
                    Diagnostic(
                        kind=DiagnosticKind.FILE,
                        message=f"Configuration file not found: {file_path}",
                        location=ErrorLocation(file=str(file_path)),
                        suggestions=self._file_suggestions(options),
                    )
                ]
            )
        except (OSError, UnicodeDecodeError) as exc:
            errors = [
                Diagnostic(
                    kind=DiagnosticKind.FILE,
                    message=f"Error reading configuration file: {exc}",
                    location=ErrorLocation(file=str(file_path)),
                )
            ]
            if options.throw_on_error:
                raise ConfigParseError("Configuration file reading failed", errors) from exc
            return ParseResult(errors=errors)

        fmt = "yaml" if file_path.suffix.lower() in _YAML_SUFFIXES else "json"
        try:
            result = self.parse_string(text, options, fmt=fmt)
        except ConfigParseError as exc:
            exc.errors = [error.with_file(str(file_path)) for error in exc.errors]
            raise

        result.errors = [error.with_file(str(file_path)) for error in result.errors]
        if not result.success:
            logger.debug("Spec %s has %d error(s)", file_path, len(result.errors))
        return result

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def generate_suggestions(self, diagnostic: Diagnostic) -> list[str]:
        """Suggest fixes for common spec mistakes."""
        if diagnostic.suggestions:
            return list(diagnostic.suggestions)

        suggestions: list[str] = []
        message = diagnostic.message
        path = diagnostic.location.path if diagnostic.location else None

        if diagnostic.kind is DiagnosticKind.VALIDATION:
            missing = re.match(r"Missing required property: (.+)", message)
            extra = re.match(r"Additional property not allowed: (.+)", message)
            expected = re.match(r"Expected type (\w+), got (\w+)", message)
            if missing:
                prop = missing.group(1)
                suggestions.append(f'Add the missing "{prop}" property')
                if prop in _PROPERTY_EXAMPLES:
                    suggestions.append(_PROPERTY_EXAMPLES[prop])
            elif extra:
                prop = extra.group(1)
                suggestions.append(f'Remove the "{prop}" property')
                suggestions.append(f'Check for typos in property name "{prop}"')
            elif expected:
                want, got = expected.groups()
                suggestions.append(f"Change the value to be of type {want} instead of {got}")
                if want == "string":
                    suggestions.append('Wrap the value in double quotes: "value"')
                elif want == "array":
                    suggestions.append("Use square brackets: []")
                elif want == "object":
                    suggestions.append("Use curly braces: {}")
            elif message.startswith("String does not match pattern"):
                suggestions.append("Check the format of the string value")
                if path and path.endswith("version"):
                    suggestions.append("Use semantic versioning format: e.g., 1.0.0")
                elif path and path.endswith("name"):
                    suggestions.append("Use lowercase letters, numbers, and hyphens only")
                elif path and path.endswith("path"):
                    suggestions.append("Route paths start with '/' and may use :param or * segments")
        return suggestions

    def _file_suggestions(self, options: ParseOptions) -> list[str]:
        if not options.include_suggestions:
            return []
        return [
            "Check that the file path is correct",
            "Create the configuration file if it doesn't exist",
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _diagnostic_from_error(
        self,
        err: dict[str, Any],
        text: str | None,
        options: ParseOptions,
    ) -> Diagnostic:
        loc = tuple(err.get("loc", ()))
        path = ".".join(str(part) for part in loc)
        leaf = str(loc[-1]) if loc else ""
        err_type = err.get("type", "")

        if err_type == "missing":
            message = f"Missing required property: {leaf}"
        elif err_type == "extra_forbidden":
            message = f"Additional property not allowed: {leaf}"
        elif err_type == "string_pattern_mismatch":
            message = f"String does not match pattern at {path}"
        elif err_type in _EXPECTED_TYPES:
            message = f"Expected type {_EXPECTED_TYPES[err_type]}, got {_json_type_name(err.get('input'))}"
        else:
            message = f"{err.get('msg', 'Invalid value')} at {path}"

        line = column = None
        if text is not None and options.include_line_numbers:
            position = _locate_path(text, list(loc))
            if position is not None:
                line, column = position

        diagnostic = Diagnostic(
            kind=DiagnosticKind.VALIDATION,
            message=message,
            location=ErrorLocation(path=path, line=line, column=column),
        )
        if options.include_suggestions:
            suggestions = self.generate_suggestions(diagnostic)
            if suggestions:
                diagnostic = diagnostic.model_copy(update={"suggestions": suggestions})
        return diagnostic


# ---------------------------------------------------------------------------
# Document loading
# ---------------------------------------------------------------------------

class _SyntaxProblem(Exception):
    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column


def _load_document(text: str, fmt: str) -> Any:
    if fmt == "yaml":
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            line = mark.line + 1 if mark is not None else 1
            column = mark.column + 1 if mark is not None else 1
            problem = getattr(exc, "problem", None) or str(exc)
            raise _SyntaxProblem(problem, line, column) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise _SyntaxProblem(exc.msg, exc.lineno, exc.colno) from exc


def _json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


# ---------------------------------------------------------------------------
# Line/column lookup for JSON property paths
# ---------------------------------------------------------------------------

def _locate_path(text: str, parts: list[Any]) -> tuple[int, int] | None:
    """Return the 1-based line/column of the deepest locatable prefix of *parts*."""
    while parts:
        offset = _offset_of(text, parts)
        if offset is not None:
            return _line_column(text, offset)
        parts = parts[:-1]
    return None


def _offset_of(text: str, parts: list[Any]) -> int | None:
    offset = 0
    for part in parts:
        if isinstance(part, int):
            found = _index_offset(text, offset, part)
        else:
            match = re.compile(rf'"{re.escape(str(part))}"\s*:').search(text, offset)
            found = match.start() if match else None
        if found is None:
            return None
        offset = found
    return offset


def _index_offset(text: str, start: int, index: int) -> int | None:
    pos = text.find("[", start)
    if pos == -1:
        return None

    depth = 0
    count = 0
    expecting_item = True
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if depth == 0 and expecting_item and not ch.isspace() and ch not in "],":
            if count == index:
                return i
            expecting_item = False
        if ch == '"':
            i = _skip_string(text, i)
            continue
        if ch in "[{":
            depth += 1
        elif ch in "]}":
            if depth == 0:
                return None
            depth -= 1
        elif ch == "," and depth == 0:
            count += 1
            expecting_item = True
        i += 1
    return None


def _skip_string(text: str, start: int) -> int:
    i = start + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == '"':
            return i + 1
        i += 1
    return i


def _line_column(text: str, offset: int) -> tuple[int, int]:
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column
