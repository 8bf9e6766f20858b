"""Component manifest, import and JSX generation."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from appcompiler.config import CompilationOptions
from appcompiler.errors import Diagnostic, DiagnosticKind, ErrorLocation, format_diagnostic
from appcompiler.filesystem import FileManager
from appcompiler.parser.models import ComponentNode, ConditionOperator
from appcompiler.registry import ComponentRegistry
from appcompiler.resolver import ComponentResolver, ResolutionOptions, ResolutionResult, walk
from appcompiler.utils import get_logger

logger = get_logger("generators.components")

MANIFEST_PATH = Path("data") / "components.json"

# Components that need client-side interactivity unless the registry says so.
INTERACTIVE_COMPONENTS = frozenset(
    {
        "Button",
        "Input",
        "Form",
        "Select",
        "Checkbox",
        "Radio",
        "Slider",
        "Toggle",
        "Dropdown",
        "Modal",
        "Tabs",
        "Accordion",
    }
)

_VARIABLE_REF = re.compile(r"^\$[a-zA-Z_][a-zA-Z0-9_]*$")


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------

class ComponentImport(BaseModel):
    name: str
    path: str
    is_default: bool = True
    is_island: bool = False


class ImportGenerator:
    """Builds import statements for the component types a file uses."""

    def __init__(self, registry: ComponentRegistry) -> None:
        self.registry = registry

    def is_island(self, component_type: str) -> bool:
        entry = self.registry.lookup(component_type)
        if entry is None:
            return False
        return entry.island or component_type in INTERACTIVE_COMPONENTS

    def import_path(self, component_type: str, depth: int = 1) -> str:
        """Import path for *component_type* from a file *depth* levels below the root."""
        entry = self.registry.lookup(component_type)
        if entry is not None and entry.import_path:
            return entry.import_path
        folder = "islands" if self.is_island(component_type) else "components"
        return f"{'../' * max(depth, 1)}{folder}/{component_type}.tsx"

    def generate_imports(self, component_types: Iterable[str], depth: int = 1) -> list[ComponentImport]:
        """Imports for *component_types* plus their registry dependencies.

        Unknown types are skipped; each name appears at most once.
        """
        requested = list(dict.fromkeys(component_types))
        imports: list[ComponentImport] = []
        seen: set[str] = set()

        def add(name: str) -> None:
            if name in seen or name not in self.registry:
                return
            seen.add(name)
            imports.append(
                ComponentImport(
                    name=name,
                    path=self.import_path(name, depth),
                    is_island=self.is_island(name),
                )
            )

        for component_type in requested:
            if component_type not in self.registry:
                continue
            add(component_type)
            for dependency in self.registry.lookup(component_type).dependencies:
                add(dependency)
        return imports

    def generate_import_statements(self, component_types: Iterable[str], depth: int = 1) -> list[str]:
        """Render ``import`` statements, one per import path."""
        by_path: dict[str, list[ComponentImport]] = {}
        for item in self.generate_imports(component_types, depth):
            by_path.setdefault(item.path, []).append(item)

        statements: list[str] = []
        for path, items in by_path.items():
            defaults = [item.name for item in items if item.is_default]
            named = [item.name for item in items if not item.is_default]
            clause = ""
            if len(defaults) == 1:
                clause = defaults[0]
            elif defaults:
                clause = "{ " + ", ".join(defaults) + " }"
            if named:
                clause = f"{clause}, {{ {', '.join(named)} }}" if clause else "{ " + ", ".join(named) + " }"
            statements.append(f'import {clause} from "{path}";')
        return statements


# ---------------------------------------------------------------------------
# JSX
# ---------------------------------------------------------------------------

def stringify_prop_value(value: Any) -> str:
    """Render a prop value as a JSX expression.

    Strings of the form ``$name`` become a bare variable reference.
    """
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        if _VARIABLE_REF.match(value):
            return value[1:]
        return json.dumps(value)
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return "[" + ", ".join(stringify_prop_value(item) for item in value) + "]"
    return json.dumps(value)


def render_jsx(node: ComponentNode, extra_attributes: Iterable[str] = ()) -> str:
    """Render *node* and its children as JSX."""
    attributes = [f"{key}={{{stringify_prop_value(value)}}}" for key, value in node.props.items()]
    attributes.extend(extra_attributes)
    opening = f"<{node.type}" + "".join(f" {attr}" for attr in attributes)

    if node.children:
        inner = "\n".join(render_jsx(child) for child in node.children)
        element = f"{opening}>\n{indent_lines(inner, 2)}\n</{node.type}>"
    else:
        element = f"{opening} />"

    if node.conditions:
        expression = " && ".join(_condition_expression(c.field, c.operator, c.value) for c in node.conditions)
        element = f"{{{expression} ? (\n{indent_lines(element, 2)}\n) : null}}"
    return element


def _condition_expression(field: str, operator: ConditionOperator, value: Any) -> str:
    if operator is ConditionOperator.EQUALS:
        return f"{field} === {stringify_prop_value(value)}"
    if operator is ConditionOperator.NOT_EQUALS:
        return f"{field} !== {stringify_prop_value(value)}"
    if operator is ConditionOperator.CONTAINS:
        return f"{field}?.includes({stringify_prop_value(value)})"
    return f"!!{field}"


def indent_lines(text: str, spaces: int) -> str:
    pad = " " * spaces
    return "\n".join(pad + line if line else line for line in text.split("\n"))


# ---------------------------------------------------------------------------
# ComponentGenerator
# ---------------------------------------------------------------------------

class ComponentGenerationResult(BaseModel):
    success: bool
    manifest_path: Optional[str] = None
    results: dict[str, ResolutionResult] = Field(default_factory=dict)
    errors: list[Diagnostic] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ComponentGenerator:
    """Resolves the full component tree and writes ``data/components.json``."""

    def __init__(
        self,
        resolver: ComponentResolver,
        import_generator: ImportGenerator,
        file_manager: FileManager,
    ) -> None:
        self.resolver = resolver
        self.import_generator = import_generator
        self.file_manager = file_manager

    async def generate(
        self,
        project_path: Path,
        nodes: list[ComponentNode],
        options: CompilationOptions,
    ) -> ComponentGenerationResult:
        resolution_options = ResolutionOptions(
            validate_props=options.validate_props,
            strict=options.strict,
        )
        results: dict[str, ResolutionResult] = {}
        errors: list[Diagnostic] = []
        warnings: list[str] = []
        manifest_entries: list[dict[str, Any]] = []

        for node in walk(nodes):
            result = self.resolver.resolve_component(node, resolution_options)
            results.setdefault(node.id, result)
            if not result.success:
                errors.extend(result.errors)
                continue
            warnings.extend(format_diagnostic(error) for error in result.errors)
            warnings.extend(result.warnings)
            manifest_entries.append(
                {
                    "id": node.id,
                    "type": result.component_type,
                    "props": result.props,
                    "dependencies": result.dependencies,
                    "island": self.import_generator.is_island(result.component_type),
                    "children": [child.id for child in node.children],
                }
            )

        types = [entry["type"] for entry in manifest_entries]
        manifest = {
            "components": manifest_entries,
            "imports": self.import_generator.generate_import_statements(types),
        }
        manifest_path = project_path / MANIFEST_PATH
        written = await self.file_manager.create_file(
            manifest_path,
            json.dumps(manifest, indent=2) + "\n",
            overwrite=options.overwrite,
            dry_run=options.dry_run,
        )
        if not written.success:
            errors.append(
                Diagnostic(
                    kind=DiagnosticKind.FILE,
                    message=written.error or f"Failed to write {manifest_path}",
                    location=ErrorLocation(file=str(manifest_path)),
                )
            )

        logger.debug("Resolved %d component(s), %d failed", len(results), len(errors))
        return ComponentGenerationResult(
            success=not errors,
            manifest_path=str(manifest_path) if written.success else None,
            results=results,
            errors=errors,
            warnings=warnings,
        )
