"""Jinja2 template rendering for generated projects.

:class:`TemplateEngine` renders template text with a context dictionary and
reports syntax problems without raising.  :class:`TemplateProcessor` turns a
directory of ``*.j2`` files into project files, serving repeated renders from
the performance cache.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, meta, select_autoescape
from jinja2 import TemplateError as JinjaTemplateError
from pydantic import BaseModel, Field

from appcompiler.cache import PerformanceCache
from appcompiler.config import CompilationOptions
from appcompiler.filesystem import TEMPLATE_SUFFIX, FileManager
from appcompiler.parser.models import AppSpec
from appcompiler.utils import get_logger, sanitize_name, to_pascal

logger = get_logger("templates")


# ---------------------------------------------------------------------------
# TemplateEngine
# ---------------------------------------------------------------------------


class TemplateEngine:
    """Renders Jinja2 template text.

    With ``strict=True`` a reference to an undefined variable is a render
    error instead of an empty string.
    """

    def __init__(self, *, strict: bool = False) -> None:
        options: dict[str, Any] = {}
        if strict:
            options["undefined"] = StrictUndefined
        self.env = Environment(
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            **options,
        )
        self.env.filters["slugify"] = sanitize_name
        self.env.filters["pascal_case"] = to_pascal
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["camel_case"] = _camel_case_filter

    def render(self, text: str, context: dict[str, Any]) -> str:
        """Render template *text* with *context*.

        Raises:
            jinja2.TemplateError: On syntax errors or, in strict mode,
                undefined variables.
        """
        return self.env.from_string(text).render(**context)

    def render_file(self, path: str | Path, context: dict[str, Any]) -> str:
        return self.render(Path(path).read_text(encoding="utf-8"), context)

    def validate(self, text: str) -> list[str]:
        """Return a list of syntax problems in *text* (empty when valid)."""
        try:
            self.env.parse(text)
        except TemplateSyntaxError as exc:
            return [f"Line {exc.lineno}: {exc.message}"]
        return []

    def extract_variable_names(self, text: str) -> list[str]:
        """Return the sorted top-level variable names *text* reads."""
        try:
            ast = self.env.parse(text)
        except TemplateSyntaxError:
            return []
        return sorted(meta.find_undeclared_variables(ast))


# ---------------------------------------------------------------------------
# TemplateProcessor
# ---------------------------------------------------------------------------


class TemplateProcessingResult(BaseModel):
    success: bool
    source_path: str
    output_path: str
    errors: list[str] = Field(default_factory=list)


class TemplateProcessor:
    """Renders template files into the generated project."""

    def __init__(
        self,
        engine: TemplateEngine | None = None,
        file_manager: FileManager | None = None,
        cache: PerformanceCache | None = None,
    ) -> None:
        self.engine = engine or TemplateEngine()
        self.file_manager = file_manager or FileManager()
        self.cache = cache

    @staticmethod
    def create_context(spec: AppSpec) -> dict[str, Any]:
        """Build the render context exposed to project templates."""
        metadata = spec.metadata
        return {
            "app": {
                "name": metadata.name,
                "version": metadata.version,
                "description": metadata.description or "",
                "author": metadata.author or "",
                "license": metadata.license or "MIT",
            },
            "metadata": metadata.model_dump(mode="json", exclude_none=True),
            "routes": [
                route.model_dump(mode="json", by_alias=True, exclude_none=True) for route in spec.routes
            ],
            "components": [node.model_dump(mode="json", exclude_none=True) for node in spec.components],
            "api": {
                "endpoints": [
                    endpoint.model_dump(mode="json", exclude_none=True)
                    for endpoint in (spec.api.endpoints if spec.api else [])
                ]
            },
            "theme": spec.theme or {},
            "build": {"generator": "appcompiler"},
        }

    async def process_file(
        self,
        source: str | Path,
        destination: str | Path,
        context: dict[str, Any],
        options: CompilationOptions,
    ) -> TemplateProcessingResult:
        """Render *source* with *context* and write it to *destination*."""
        src = Path(source)
        dest = Path(destination)

        def failure(*errors: str) -> TemplateProcessingResult:
            return TemplateProcessingResult(
                success=False, source_path=str(src), output_path=str(dest), errors=list(errors)
            )

        rendered = self.cache.get_cached_template(src, context) if self.cache is not None else None
        if rendered is None:
            try:
                text = await asyncio.to_thread(src.read_text, encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                return failure(f"Failed to read template {src}: {exc}")

            if options.validate_templates:
                problems = self.engine.validate(text)
                if problems:
                    return failure(*(f"{src}: {problem}" for problem in problems))

            try:
                rendered = self.engine.render(text, context)
            except JinjaTemplateError as exc:
                return failure(f"Failed to render template {src}: {exc}")

            if self.cache is not None:
                self.cache.cache_template(src, context, rendered)

        written = await self.file_manager.create_file(
            dest, rendered, overwrite=options.overwrite, dry_run=options.dry_run
        )
        if not written.success:
            return failure(written.error or f"Failed to write {dest}")
        return TemplateProcessingResult(success=True, source_path=str(src), output_path=str(dest))

    async def process_directory(
        self,
        source_dir: str | Path,
        destination_dir: str | Path,
        context: dict[str, Any],
        options: CompilationOptions,
    ) -> list[TemplateProcessingResult]:
        """Render every ``*.j2`` file under *source_dir*, stripping the suffix.

        A template at ``static/app.css.j2`` is written to
        ``<destination_dir>/static/app.css``.
        """
        src_dir = Path(source_dir)
        dest_dir = Path(destination_dir)
        if not await asyncio.to_thread(src_dir.is_dir):
            return []

        templates = await asyncio.to_thread(lambda: sorted(src_dir.rglob(f"*{TEMPLATE_SUFFIX}")))
        results: list[TemplateProcessingResult] = []
        for template in templates:
            rel = str(template.relative_to(src_dir))[: -len(TEMPLATE_SUFFIX)]
            results.append(await self.process_file(template, dest_dir / rel, context, options))

        failed = sum(1 for result in results if not result.success)
        logger.debug("Processed %d template(s) from %s, %d failed", len(results), src_dir, failed)
        return results


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _snake_case_filter(value: str) -> str:
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", str(value))
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def _camel_case_filter(value: str) -> str:
    pascal = to_pascal(str(value))
    return pascal[:1].lower() + pascal[1:]
