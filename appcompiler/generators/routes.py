"""Route, layout and middleware file generation.

Each :class:`RouteNode` becomes ``routes/<path>.tsx`` in the generated
project, with ``:param`` segments mapped to ``[param]`` and a trailing ``*``
to ``[...path]``.  Routes carrying middleware get a ``_middleware.ts`` next
to the route file; routes with a layout get a ``_layout.tsx``.

A project may override the route file with its own template at
``<template_dir>/routes/route.tsx.j2``.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any, Optional

from jinja2 import TemplateError as JinjaTemplateError
from pydantic import BaseModel, Field

from appcompiler.config import CompilationOptions
from appcompiler.errors import Diagnostic, DiagnosticKind, ErrorLocation
from appcompiler.filesystem import FileManager
from appcompiler.generators.builtin import render_builtin
from appcompiler.generators.components import ImportGenerator, indent_lines, render_jsx
from appcompiler.parser.models import ComponentNode, RouteNode
from appcompiler.resolver import find_node, walk
from appcompiler.templates import TemplateEngine
from appcompiler.utils import get_logger, to_pascal

logger = get_logger("generators.routes")

ROUTES_DIR = "routes"
CUSTOM_ROUTE_TEMPLATE = Path("routes") / "route.tsx.j2"


class RouteGenerationResult(BaseModel):
    success: bool
    route_path: str = ""
    route: RouteNode
    errors: list[Diagnostic] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    skipped: bool = False


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

def normalize_route_path(path: str) -> str:
    """Map a URL pattern to a route file stem.

    Examples::

        normalize_route_path("/")            -> "index"
        normalize_route_path("/users/:id")   -> "users/[id]"
        normalize_route_path("/docs/*")      -> "docs/[...path]"
    """
    if path in ("/", ""):
        return "index"
    normalized = path.strip("/")
    normalized = re.sub(r":([a-zA-Z0-9_]+)", r"[\1]", normalized)
    normalized = re.sub(r"\*$", "[...path]", normalized)
    return normalized.rstrip("?") or "index"


def route_component_name(path: str) -> str:
    """``/`` -> ``HomePage``, ``/users/:id`` -> ``UsersIdPage``."""
    name = path.lstrip("/").replace("/", "_")
    name = re.sub(r":([a-zA-Z0-9_]+)", r"\1", name)
    name = re.sub(r"[^a-zA-Z0-9_]", "", name)
    return f"{to_pascal(name) or 'Home'}Page"


def sort_routes(routes: list[RouteNode]) -> list[RouteNode]:
    """Root first, then by number of segments, then alphabetically."""

    def key(route: RouteNode) -> tuple[int, int, str]:
        if route.path in ("/", ""):
            return (0, 0, "")
        return (1, len([segment for segment in route.path.split("/") if segment]), route.path)

    return sorted(routes, key=key)


# ---------------------------------------------------------------------------
# RouteGenerator
# ---------------------------------------------------------------------------

class RouteGenerator:
    """Writes route, layout and middleware files for the generated project."""

    def __init__(
        self,
        import_generator: ImportGenerator,
        file_manager: FileManager,
        engine: TemplateEngine | None = None,
    ) -> None:
        self.import_generator = import_generator
        self.file_manager = file_manager
        self.engine = engine or TemplateEngine()

    async def generate_routes(
        self,
        project_path: Path,
        routes: list[RouteNode],
        components: list[ComponentNode],
        options: CompilationOptions,
    ) -> list[RouteGenerationResult]:
        """Generate every route in hierarchical order.  All routes are attempted."""
        custom_template = await self._load_custom_template(options.template_dir)
        results = []
        for route in sort_routes(routes):
            results.append(
                await self.generate_route(project_path, route, components, options, custom_template)
            )
        return results

    async def generate_route(
        self,
        project_path: Path,
        route: RouteNode,
        components: list[ComponentNode],
        options: CompilationOptions,
        custom_template: Optional[str] = None,
    ) -> RouteGenerationResult:
        stem = normalize_route_path(route.path)
        extension = ".tsx" if options.use_typescript else ".jsx"
        route_file = project_path / ROUTES_DIR / f"{stem}{extension}"
        depth = len(stem.split("/"))
        errors: list[Diagnostic] = []
        warnings: list[str] = []

        main = find_node(components, route.component)
        if main is None:
            message = f"Main component '{route.component}' not found for route '{route.path}'"
            if not options.strict:
                logger.warning("Skipping route %s: %s", route.path, message)
                return RouteGenerationResult(
                    success=True, route_path=str(route_file), route=route, warnings=[message], skipped=True
                )
            errors.append(
                Diagnostic(
                    kind=DiagnosticKind.COMPONENT,
                    message=message,
                    location=ErrorLocation(path=route.path),
                )
            )
            return RouteGenerationResult(success=False, route_path=str(route_file), route=route, errors=errors)

        layout: Optional[ComponentNode] = None
        if route.layout:
            layout = find_node(components, route.layout)
            if layout is None and options.generate_layouts:
                message = f"Layout component '{route.layout}' not found for route '{route.path}'"
                if options.strict:
                    errors.append(
                        Diagnostic(
                            kind=DiagnosticKind.COMPONENT,
                            message=message,
                            location=ErrorLocation(path=route.path),
                        )
                    )
                else:
                    warnings.append(message)

        context = self._route_context(route, main, layout, depth)
        try:
            if custom_template is not None:
                content = self.engine.render(custom_template, context)
            else:
                content = render_builtin(self.engine, "route.tsx.j2", context)
        except JinjaTemplateError as exc:
            errors.append(
                Diagnostic(
                    kind=DiagnosticKind.TEMPLATE,
                    message=f"Failed to render route '{route.path}': {exc}",
                    location=ErrorLocation(file=str(options.template_dir / CUSTOM_ROUTE_TEMPLATE)),
                )
            )
            return RouteGenerationResult(success=False, route_path=str(route_file), route=route, errors=errors)

        written = await self.file_manager.create_file(
            route_file, content, overwrite=options.overwrite, dry_run=options.dry_run
        )
        if not written.success:
            errors.append(
                Diagnostic(
                    kind=DiagnosticKind.FILE,
                    message=written.error or f"Failed to write route file: {route_file}",
                    location=ErrorLocation(file=str(route_file)),
                )
            )

        if options.generate_middleware and route.middleware:
            errors.extend(await self._write_middleware(route_file.parent, route, depth, options))

        if options.generate_layouts and layout is not None:
            errors.extend(await self._write_layout(route_file.parent, route, layout, depth, options))

        return RouteGenerationResult(
            success=not errors,
            route_path=str(route_file),
            route=route,
            errors=errors,
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_custom_template(self, template_dir: Path) -> Optional[str]:
        path = template_dir / CUSTOM_ROUTE_TEMPLATE
        if not await self.file_manager.file_exists(path):
            return None
        logger.debug("Using custom route template %s", path)
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

    def _route_context(
        self,
        route: RouteNode,
        main: ComponentNode,
        layout: Optional[ComponentNode],
        depth: int,
    ) -> dict[str, Any]:
        meta = route.meta.model_dump(by_alias=True, exclude_none=True) if route.meta else {}
        data_handler = bool(route.meta and route.meta.data_handler) or ":" in route.path

        used_types = [main.type] + [node.type for node in walk(main.children)]
        if layout is not None:
            used_types.insert(0, layout.type)

        extra = []
        if route.props:
            extra.append("{...routeProps}")
        extra.append("{...props}")
        if data_handler:
            extra.append("data={data}")
        body = render_jsx(main, extra)
        if layout is not None:
            layout_attrs = "".join(
                f" {key}={{{json.dumps(value)}}}" for key, value in layout.props.items()
            )
            body = f"<{layout.type}{layout_attrs} {{...props}}>\n{indent_lines(body, 2)}\n</{layout.type}>"

        config: dict[str, str] = {}
        if route.meta and route.meta.requires_auth:
            config["authRequired"] = "true"
        if route.meta and route.meta.cache_control:
            config["cacheControl"] = json.dumps(route.meta.cache_control)

        return {
            "route": route.model_dump(mode="json", by_alias=True, exclude_none=True),
            "component": main.model_dump(mode="json", exclude_none=True),
            "layout": layout.model_dump(mode="json", exclude_none=True) if layout else None,
            "component_name": route_component_name(route.path),
            "imports": self.import_generator.generate_import_statements(used_types, depth),
            "middleware": bool(route.middleware),
            "props": route.props or {},
            "route_props": json.dumps(route.props, indent=2) if route.props else None,
            "meta": meta,
            "meta_json": json.dumps(meta, indent=2) if route.meta else None,
            "data_handler": data_handler,
            "custom_data_handler": bool(route.meta and route.meta.data_handler),
            "title": meta.get("title") or f"Route: {route.path}",
            "body": indent_lines(body, 6),
            "config": config,
        }

    async def _write_middleware(
        self,
        directory: Path,
        route: RouteNode,
        depth: int,
        options: CompilationOptions,
    ) -> list[Diagnostic]:
        extension = ".ts" if options.use_typescript else ".js"
        path = directory / f"_middleware{extension}"
        content = render_builtin(
            self.engine,
            "middleware.ts.j2",
            {"route": {"path": route.path}, "middleware": route.middleware, "prefix": "../" * depth},
        )
        written = await self.file_manager.create_file(
            path, content, overwrite=options.overwrite, dry_run=options.dry_run
        )
        if written.success:
            return []
        return [
            Diagnostic(
                kind=DiagnosticKind.FILE,
                message=f"Failed to generate middleware for route '{route.path}': {written.error}",
                location=ErrorLocation(file=str(path), path=route.path),
            )
        ]

    async def _write_layout(
        self,
        directory: Path,
        route: RouteNode,
        layout: ComponentNode,
        depth: int,
        options: CompilationOptions,
    ) -> list[Diagnostic]:
        extension = ".tsx" if options.use_typescript else ".jsx"
        path = directory / f"_layout{extension}"
        if not options.overwrite and await self.file_manager.file_exists(path):
            return []

        used_types = [layout.type] + [node.type for node in walk(layout.children)]
        content = render_builtin(
            self.engine,
            "layout.tsx.j2",
            {
                "route": {"path": route.path},
                "layout": layout.model_dump(mode="json"),
                "imports": self.import_generator.generate_import_statements(used_types, depth),
                "layout_props": json.dumps(layout.props, indent=2) if layout.props else None,
                "requires_auth": bool(route.meta and route.meta.requires_auth),
            },
        )
        written = await self.file_manager.create_file(
            path, content, overwrite=options.overwrite, dry_run=options.dry_run
        )
        if written.success:
            return []
        return [
            Diagnostic(
                kind=DiagnosticKind.FILE,
                message=f"Failed to generate layout file for route '{route.path}'",
                location=ErrorLocation(file=str(path), path=route.path),
            )
        ]

