"""Consistency planner.

Cross-checks a parsed app spec before anything is generated: the template
directory must exist, every component type must be registered, every route
must point at existing components, and route paths and component ids must be
unique.  All checks after the template-directory probe run unconditionally so
a single pass reports every problem.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from appcompiler.config import CompilationOptions
from appcompiler.errors import Diagnostic, DiagnosticKind, ErrorLocation
from appcompiler.filesystem import FileManager
from appcompiler.parser.models import AppSpec
from appcompiler.registry import ComponentRegistry
from appcompiler.resolver import suggest_similar
from appcompiler.utils import get_logger

if TYPE_CHECKING:
    from appcompiler.pipeline import CompilationContext

logger = get_logger("planner")


class PlanResult(BaseModel):
    success: bool
    errors: list[Diagnostic] = Field(default_factory=list)
    dependency_graph: dict[str, list[str]] = Field(default_factory=dict)


class ConsistencyPlanner:
    """Validates references between components, routes and layouts."""

    def __init__(self, registry: ComponentRegistry, file_manager: FileManager) -> None:
        self.registry = registry
        self.file_manager = file_manager

    async def plan(self, context: "CompilationContext", options: CompilationOptions) -> PlanResult:
        """Run every consistency check over ``context.spec``."""
        if not await self.file_manager.directory_exists(options.template_dir):
            return PlanResult(
                success=False,
                errors=[
                    Diagnostic(
                        kind=DiagnosticKind.DEPENDENCY,
                        message=f"Template directory not found: {options.template_dir}",
                        location=ErrorLocation(file=str(options.template_dir)),
                        suggestions=[
                            "Check that the template directory path is correct",
                            "Pass --templates pointing at a directory with a base/ folder",
                        ],
                    )
                ],
            )

        spec = context.spec
        if spec is None:
            return PlanResult(
                success=False,
                errors=[Diagnostic(kind=DiagnosticKind.VALIDATION, message="No app spec loaded")],
            )

        errors = self.check_spec(spec)
        graph = self.build_dependency_graph(spec)
        if errors:
            logger.debug("Plan found %d problem(s)", len(errors))
        return PlanResult(success=not errors, errors=errors, dependency_graph=graph)

    def check_spec(self, spec: AppSpec) -> list[Diagnostic]:
        """Run the registry, reference and uniqueness checks over *spec*."""
        errors: list[Diagnostic] = []
        errors.extend(self._check_component_types(spec))
        errors.extend(self._check_route_references(spec))
        errors.extend(self._check_duplicate_paths(spec))
        errors.extend(self._check_duplicate_ids(spec))
        return errors

    def build_dependency_graph(self, spec: AppSpec) -> dict[str, list[str]]:
        """Map each component id to its child ids and registry dependencies.

        Routes appear as ``route:<path>`` keys pointing at their component and
        layout ids.  Duplicate ids keep the first occurrence.
        """
        graph: dict[str, list[str]] = {}
        for node in spec.iter_components():
            if node.id in graph:
                continue
            edges = [child.id for child in node.children]
            entry = self.registry.lookup(node.type)
            if entry is not None:
                edges.extend(dep for dep in entry.dependencies if dep not in edges)
            graph[node.id] = edges
        for route in spec.routes:
            targets = [route.component]
            if route.layout:
                targets.append(route.layout)
            graph.setdefault(f"route:{route.path}", targets)
        return graph

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_component_types(self, spec: AppSpec) -> list[Diagnostic]:
        errors: list[Diagnostic] = []
        for node in spec.iter_components():
            if node.type in self.registry:
                continue
            errors.append(
                Diagnostic(
                    kind=DiagnosticKind.COMPONENT,
                    message=f"Component type '{node.type}' not found in registry",
                    location=ErrorLocation(path=f"components[{node.id}].type"),
                    suggestions=suggest_similar(node.type, self.registry.names()),
                )
            )
        return errors

    def _check_route_references(self, spec: AppSpec) -> list[Diagnostic]:
        ids = spec.component_ids()
        errors: list[Diagnostic] = []
        for route in spec.routes:
            if route.component not in ids:
                errors.append(
                    Diagnostic(
                        kind=DiagnosticKind.COMPONENT,
                        message=f"Component '{route.component}' not found for route '{route.path}'",
                        location=ErrorLocation(path=f"routes[{route.path}].component"),
                        suggestions=suggest_similar(route.component, ids),
                    )
                )
            if route.layout and route.layout not in ids:
                errors.append(
                    Diagnostic(
                        kind=DiagnosticKind.COMPONENT,
                        message=f"Layout component '{route.layout}' not found for route '{route.path}'",
                        location=ErrorLocation(path=f"routes[{route.path}].layout"),
                        suggestions=suggest_similar(route.layout, ids),
                    )
                )
        return errors

    def _check_duplicate_paths(self, spec: AppSpec) -> list[Diagnostic]:
        seen: set[str] = set()
        errors: list[Diagnostic] = []
        for route in spec.routes:
            if route.path in seen:
                errors.append(
                    Diagnostic(
                        kind=DiagnosticKind.VALIDATION,
                        message=f"Duplicate route path: {route.path}",
                        location=ErrorLocation(path=f"routes[{route.path}]"),
                    )
                )
            seen.add(route.path)
        return errors

    def _check_duplicate_ids(self, spec: AppSpec) -> list[Diagnostic]:
        seen: set[str] = set()
        errors: list[Diagnostic] = []
        for node in spec.iter_components():
            if node.id in seen:
                errors.append(
                    Diagnostic(
                        kind=DiagnosticKind.VALIDATION,
                        message=f"Duplicate component ID: {node.id}",
                        location=ErrorLocation(path=f"components[{node.id}]"),
                    )
                )
            seen.add(node.id)
        return errors
