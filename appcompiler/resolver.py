"""Component resolution engine.

Maps :class:`ComponentNode` definitions onto registry entries: checks the
type exists, validates props through the registry, and extracts the entry's
declared dependencies.  Results are served from the performance cache when
one is attached.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from appcompiler.cache import PerformanceCache
from appcompiler.errors import Diagnostic, DiagnosticKind, ErrorLocation
from appcompiler.parser.models import ComponentNode
from appcompiler.registry import ComponentRegistry
from appcompiler.utils import get_logger

logger = get_logger("resolver")

SUGGESTION_THRESHOLD = 0.5
MAX_SUGGESTIONS = 3


class ResolutionOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    validate_props: bool = True
    strict: bool = Field(default=True, description="Fail on unknown types and invalid props")
    log_warnings: bool = True
    include_dependencies: bool = True


class ResolutionResult(BaseModel):
    """Outcome of resolving one component node."""

    success: bool
    component_type: str
    props: dict[str, Any] = Field(default_factory=dict)
    errors: list[Diagnostic] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------

def similarity(a: str, b: str) -> float:
    """Cheap name similarity in ``[0, 1]`` used for typo suggestions.

    Tiers, first match wins: case-insensitive equality (1.0), containment
    (0.8), a shared prefix longer than two characters (prefix length over the
    longer length), otherwise one minus the share of mismatching positions.
    """
    a_lower = a.lower()
    b_lower = b.lower()
    if a_lower == b_lower:
        return 1.0
    if a_lower in b_lower or b_lower in a_lower:
        return 0.8

    longest = max(len(a), len(b))
    prefix = 0
    for left, right in zip(a_lower, b_lower):
        if left != right:
            break
        prefix += 1
    if prefix > 2:
        return prefix / longest

    mismatches = sum(
        1
        for i in range(longest)
        if i >= len(a_lower) or i >= len(b_lower) or a_lower[i] != b_lower[i]
    )
    return 1 - mismatches / longest


def suggest_similar(name: str, candidates: Iterable[str]) -> list[str]:
    """Return up to three candidates that look like *name*, best first."""
    scored = [(candidate, similarity(candidate, name)) for candidate in candidates]
    kept = [pair for pair in scored if pair[1] >= SUGGESTION_THRESHOLD]
    kept.sort(key=lambda pair: pair[1], reverse=True)
    return [candidate for candidate, _ in kept[:MAX_SUGGESTIONS]]


def walk(nodes: Iterable[ComponentNode]) -> Iterator[ComponentNode]:
    """Yield every node of a component forest, depth first, parents first."""
    for node in nodes:
        yield node
        yield from walk(node.children)


# ---------------------------------------------------------------------------
# ComponentResolver
# ---------------------------------------------------------------------------

class ComponentResolver:
    """Resolves component definitions against a :class:`ComponentRegistry`."""

    def __init__(self, registry: ComponentRegistry, cache: PerformanceCache | None = None) -> None:
        self.registry = registry
        self.cache = cache

    def resolve_component(
        self,
        node: ComponentNode,
        options: ResolutionOptions | None = None,
    ) -> ResolutionResult:
        """Resolve *node* to its registry entry.

        Cache hits return a fresh copy of the stored result rebound to
        *node*'s id; the prop validator is not consulted.  Entries from a
        file-backed registry are only served while that file is unchanged.
        """
        options = options or ResolutionOptions()
        context = options.model_dump()

        if self.cache is not None and self._registry_unchanged():
            payload = self.cache.get_cached_component(node, context)
            if payload is not None:
                return self._rebind(ResolutionResult.model_validate(payload), node)

        result = self._resolve(node, options)

        if self.cache is not None and result.success:
            source = self.registry.source_path
            dependencies = [str(source)] if source else []
            self.cache.cache_component(node, result, dependencies, context)
            if source:
                self.cache.cache_file_info(source)
        return result

    def resolve_components(
        self,
        nodes: Iterable[ComponentNode],
        options: ResolutionOptions | None = None,
    ) -> dict[str, ResolutionResult]:
        """Resolve each node (not its children), keyed by node id."""
        return {node.id: self.resolve_component(node, options) for node in nodes}

    def suggest_similar(self, name: str) -> list[str]:
        return suggest_similar(name, self.registry.names())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _registry_unchanged(self) -> bool:
        """Check the registry file against its cached info.

        When the file changed (or was never recorded) every resolution
        derived from it is dropped.
        """
        source = self.registry.source_path
        if self.cache is None or source is None:
            return True
        if self.cache.get_cached_file_info(source) is not None:
            return True
        dropped = self.cache.invalidate_dependencies(source)
        if dropped:
            logger.debug("Registry %s changed; dropped %d cached resolution(s)", source, dropped)
        return False

    @staticmethod
    def _rebind(result: ResolutionResult, node: ComponentNode) -> ResolutionResult:
        result.props = {**result.props, "id": node.id}
        type_path = f"components[{node.id}].type"
        result.errors = [
            error.model_copy(update={"location": error.location.model_copy(update={"path": type_path})})
            if error.location is not None and (error.location.path or "").startswith("components[")
            else error
            for error in result.errors
        ]
        return result

    def _resolve(self, node: ComponentNode, options: ResolutionOptions) -> ResolutionResult:
        component_type = node.type
        errors: list[Diagnostic] = []
        warnings: list[str] = []

        entry = self.registry.lookup(component_type)
        if entry is None:
            errors.append(
                Diagnostic(
                    kind=DiagnosticKind.COMPONENT,
                    message=f"Component type '{component_type}' not found in registry",
                    location=ErrorLocation(path=f"components[{node.id}].type"),
                    suggestions=self.suggest_similar(component_type),
                )
            )
            if options.strict:
                return ResolutionResult(
                    success=False,
                    component_type=component_type,
                    props=dict(node.props),
                    errors=errors,
                )
            return ResolutionResult(
                success=True,
                component_type=component_type,
                props={**node.props, "id": node.id},
                errors=errors,
            )

        props = {**node.props, "id": node.id}
        dependencies = list(entry.dependencies) if options.include_dependencies else []

        if options.validate_props:
            try:
                validation = self.registry.validate_props(component_type, props)
            except Exception as exc:
                message = f"Failed to resolve component '{component_type}': {exc}"
                logger.error(message)
                errors.append(Diagnostic(kind=DiagnosticKind.COMPONENT, message=message))
                return ResolutionResult(
                    success=False,
                    component_type=component_type,
                    props=dict(node.props),
                    errors=errors,
                )

            for issue in validation.errors:
                errors.append(
                    Diagnostic(
                        kind=DiagnosticKind.COMPONENT,
                        message=(
                            f"Invalid prop '{issue.field}' for component "
                            f"'{component_type}': {issue.message}"
                        ),
                        location=ErrorLocation(path=f"props.{issue.field}"),
                    )
                )
            if errors and options.strict:
                return ResolutionResult(
                    success=False,
                    component_type=component_type,
                    props=props,
                    errors=errors,
                    warnings=warnings,
                    dependencies=dependencies,
                )

            if options.log_warnings:
                for issue in validation.warnings:
                    warnings.append(
                        f"Warning for component '{component_type}', prop '{issue.field}': {issue.message}"
                    )
                    if issue.suggestion:
                        warnings.append(f"  Suggestion: {issue.suggestion}")
                for warning in warnings:
                    logger.debug(warning)

        return ResolutionResult(
            success=True,
            component_type=component_type,
            props=props,
            errors=errors,
            warnings=warnings,
            dependencies=dependencies,
        )


def find_node(nodes: Iterable[ComponentNode], component_id: str) -> Optional[ComponentNode]:
    """Return the first node with *component_id* anywhere in the forest."""
    for node in walk(nodes):
        if node.id == component_id:
            return node
    return None
