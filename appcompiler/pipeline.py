"""appcompiler pipeline orchestrator.

Compiles an app spec into a project tree in seven ordered phases:

INIT      (0-5)    -- Placeholder; nothing to prepare yet.
PARSE     (5-15)   -- Read and validate the spec file.
PLAN      (15-25)  -- Cross-check components, routes and layouts.
GENERATE  (25-40)  -- Create the project root and directory skeleton.
INTEGRATE (40-80)  -- Components, routes, API handlers, then templates.
OPTIMIZE  (80-95)  -- Extension point, optional.
COMPLETE  (95-100) -- Write deno.json and README.md, check the output, optional.

A failing required phase stops the run with ``phase=FAILED``; a failing
optional phase only adds a warning.

Usage::

    python -m appcompiler compile app.json --templates ./templates -o ./output
    python -m appcompiler validate app.json
"""

from __future__ import annotations

import asyncio
import json
import sys
import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import yaml
from jinja2 import TemplateError as JinjaTemplateError
from pydantic import BaseModel, Field
from rich.markup import escape
from rich.panel import Panel

from appcompiler.cache import PerformanceCache
from appcompiler.config import CompilationOptions, CompilerConfig
from appcompiler.errors import (
    CompilerError,
    DependencyError,
    Diagnostic,
    DiagnosticKind,
    ErrorLocation,
    FileError,
    SpecValidationError,
    TemplateError,
    format_diagnostic,
)
from appcompiler.filesystem import FileManager
from appcompiler.generators.api import ApiRouteGenerator
from appcompiler.generators.builtin import render_builtin
from appcompiler.generators.components import ComponentGenerator, ImportGenerator
from appcompiler.generators.routes import RouteGenerator
from appcompiler.parser.models import AppSpec
from appcompiler.parser.spec_parser import ParseOptions, SpecParser
from appcompiler.planner import ConsistencyPlanner
from appcompiler.registry import ComponentRegistry
from appcompiler.resolver import ComponentResolver, ResolutionOptions, walk
from appcompiler.templates import TemplateEngine, TemplateProcessor
from appcompiler.utils import (
    configure_logging,
    console,
    create_progress,
    format_duration,
    get_logger,
    print_error,
    print_phase_header,
    print_success,
    print_summary_table,
    print_warning,
)

logger = get_logger("pipeline")

FRESH_IMPORTS: dict[str, str] = {
    "$fresh/": "https://deno.land/x/fresh@2.0.0-alpha.1/",
    "preact": "https://esm.sh/preact@10.15.1",
    "preact/": "https://esm.sh/preact@10.15.1/",
    "preact-render-to-string": "https://esm.sh/*preact-render-to-string@6.2.0",
}

FRESH_TASKS: dict[str, str] = {
    "start": "deno run -A --watch=static/,routes/ dev.ts",
    "build": "deno run -A dev.ts build",
    "preview": "deno run -A main.ts",
}


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class CompilationPhase(str, Enum):
    INIT = "init"
    PARSE = "parse"
    PLAN = "plan"
    GENERATE = "generate"
    INTEGRATE = "integrate"
    OPTIMIZE = "optimize"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class CompilationContext:
    """Per-run state shared by every phase.  Discarded when ``compile`` returns."""

    config_path: Path
    output_dir: Path
    template_dir: Path
    dry_run: bool = False
    spec: Optional[AppSpec] = None
    project_path: Optional[Path] = None
    dependency_graph: dict[str, list[str]] = field(default_factory=dict)
    generated_files: list[str] = field(default_factory=list)


PhaseExecutor = Callable[[CompilationContext, CompilationOptions], Awaitable[bool]]


@dataclass
class PipelinePhase:
    name: CompilationPhase
    description: str
    start_progress: int
    end_progress: int
    required: bool
    execute: PhaseExecutor


class ProgressEvent(BaseModel):
    """Snapshot handed to the progress callback."""

    phase: CompilationPhase
    progress: int = Field(ge=0, le=100)
    operation: str
    errors: list[Diagnostic] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class CompilationResult(BaseModel):
    success: bool
    output_path: Optional[str] = None
    errors: list[Diagnostic] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    phase: CompilationPhase
    failed_phase: Optional[CompilationPhase] = Field(
        default=None, description="Phase that was running when the run failed"
    )
    time_taken: float = Field(default=0.0, description="Wall-clock duration in milliseconds")
    generated_files: list[str] = Field(default_factory=list)


class DiagnosticReport(BaseModel):
    valid: bool
    errors: list[Diagnostic] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


ProgressCallback = Callable[[ProgressEvent], None]


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------


class Compiler:
    """Pipeline orchestrator.

    Holds no state between ``compile`` calls apart from the error and warning
    accumulators, which are reset at the start of every call.

    Attributes:
        pipeline: The ordered phase list.  Each phase's ``execute`` may be
            replaced to customise a step.
    """

    def __init__(
        self,
        registry: ComponentRegistry,
        *,
        cache: PerformanceCache | None = None,
        api_generator: ApiRouteGenerator | None = None,
        file_manager: FileManager | None = None,
        template_engine: TemplateEngine | None = None,
    ) -> None:
        self.registry = registry
        self.cache = cache
        self.api_generator = api_generator
        self.file_manager = file_manager or FileManager()
        self.template_engine = template_engine or TemplateEngine()

        self.parser = SpecParser()
        self.resolver = ComponentResolver(registry, cache)
        self.import_generator = ImportGenerator(registry)
        self.planner = ConsistencyPlanner(registry, self.file_manager)
        self.component_generator = ComponentGenerator(
            self.resolver, self.import_generator, self.file_manager
        )
        self.route_generator = RouteGenerator(
            self.import_generator, self.file_manager, self.template_engine
        )
        self.template_processor = TemplateProcessor(self.template_engine, self.file_manager, cache)

        self.pipeline: list[PipelinePhase] = self._build_pipeline()
        self._progress_callback: Optional[ProgressCallback] = None
        self._errors: list[Diagnostic] = []
        self._warnings: list[str] = []
        self._progress = 0

    def _build_pipeline(self) -> list[PipelinePhase]:
        return [
            PipelinePhase(CompilationPhase.INIT, "Initializing compilation", 0, 5, True, self._init),
            PipelinePhase(CompilationPhase.PARSE, "Parsing app spec", 5, 15, True, self._parse),
            PipelinePhase(CompilationPhase.PLAN, "Planning compilation", 15, 25, True, self._plan),
            PipelinePhase(
                CompilationPhase.GENERATE, "Generating project structure", 25, 40, True, self._generate
            ),
            PipelinePhase(
                CompilationPhase.INTEGRATE, "Integrating components and routes", 40, 80, True, self._integrate
            ),
            PipelinePhase(CompilationPhase.OPTIMIZE, "Optimizing output", 80, 95, False, self._optimize),
            PipelinePhase(CompilationPhase.COMPLETE, "Finalizing project", 95, 100, False, self._complete),
        ]

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        self._progress_callback = callback

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def compile(self, spec_path: str | Path, options: CompilationOptions) -> CompilationResult:
        """Run every phase in order and report how far the run got.

        Raises:
            Exception: Only when ``options.throw_on_error`` is set; the
                exception is recorded as a diagnostic first.
        """
        self._errors = []
        self._warnings = []
        self._progress = 0
        started = time.monotonic()
        context = CompilationContext(
            config_path=Path(spec_path),
            output_dir=Path(options.output_dir),
            template_dir=Path(options.template_dir),
            dry_run=options.dry_run,
        )
        current: CompilationPhase = CompilationPhase.INIT

        try:
            await self._ensure_cache()
            for phase in self.pipeline:
                current = phase.name
                if options.verbose:
                    print_phase_header(phase.name.value)
                self._emit(phase.name, phase.start_progress, phase.description)
                ok = await self._run_phase(phase, context, options)
                status = "completed" if ok else "failed"
                self._emit(phase.name, phase.end_progress, f"{phase.description} {status}")

                if ok:
                    continue
                if phase.required:
                    logger.error("Required phase %s failed", phase.name.value)
                    self._emit(
                        CompilationPhase.FAILED,
                        self._progress,
                        f"Compilation failed during {phase.name.value}",
                    )
                    return self._result(context, started, CompilationPhase.FAILED, failed_phase=phase.name)
                message = f"Optional phase '{phase.name.value}' failed; continuing"
                logger.warning(message)
                self._warnings.append(message)

            self._emit(CompilationPhase.COMPLETE, 100, "Compilation completed")
            return self._result(context, started, CompilationPhase.COMPLETE)

        except Exception as exc:
            logger.error("Compilation failed during %s: %s", current.value, exc)
            self._errors.append(
                Diagnostic(
                    kind=DiagnosticKind.DEPENDENCY,
                    message=f"Compilation failed: {exc}",
                    location=ErrorLocation(file=str(context.config_path)),
                    details=traceback.format_exc(),
                )
            )
            self._emit(CompilationPhase.FAILED, self._progress, f"Compilation failed: {exc}")
            if options.throw_on_error:
                raise
            return self._result(context, started, CompilationPhase.FAILED, failed_phase=current)

        finally:
            if self.cache is not None:
                await self.cache.save_to_disk()

    async def run_diagnostics(
        self,
        spec_path: str | Path,
        template_dir: str | Path | None = None,
    ) -> DiagnosticReport:
        """Parse, plan and resolve *spec_path* without writing anything."""
        try:
            parsed = await self.parser.parse_file(spec_path, ParseOptions())
            if not parsed.success or parsed.spec is None:
                return DiagnosticReport(
                    valid=False,
                    errors=parsed.errors,
                    suggestions=["Fix configuration validation errors before running diagnostics"],
                )
            spec = parsed.spec

            errors: list[Diagnostic] = []
            warnings: list[str] = []
            if template_dir is not None and not await self.file_manager.directory_exists(template_dir):
                errors.append(
                    Diagnostic(
                        kind=DiagnosticKind.DEPENDENCY,
                        message=f"Template directory not found: {template_dir}",
                        location=ErrorLocation(file=str(template_dir)),
                    )
                )
            errors.extend(self.planner.check_spec(spec))

            # Unknown types were already reported by the planner.
            resolution_options = ResolutionOptions(strict=False, log_warnings=False)
            for node in walk(spec.components):
                if node.type not in self.registry:
                    continue
                result = self.resolver.resolve_component(node, resolution_options)
                errors.extend(result.errors)
                warnings.extend(result.warnings)

            suggestions = list(dict.fromkeys(s for error in errors for s in error.suggestions))
            return DiagnosticReport(
                valid=not errors, errors=errors, warnings=warnings, suggestions=suggestions
            )
        except Exception as exc:
            logger.error("Diagnostics failed for %s: %s", spec_path, exc)
            return DiagnosticReport(
                valid=False,
                errors=[
                    Diagnostic(
                        kind=DiagnosticKind.DEPENDENCY,
                        message=f"Diagnostics failed: {exc}",
                        location=ErrorLocation(file=str(spec_path)),
                    )
                ],
                suggestions=["Check configuration file syntax and try again"],
            )

    # ------------------------------------------------------------------
    # Phase execution
    # ------------------------------------------------------------------

    async def _run_phase(
        self,
        phase: PipelinePhase,
        context: CompilationContext,
        options: CompilationOptions,
    ) -> bool:
        phase_start = time.monotonic()
        try:
            ok = await phase.execute(context, options)
        except CompilerError as exc:
            if phase.required:
                self._errors.append(exc.to_diagnostic())
            else:
                self._warnings.append(format_diagnostic(exc.to_diagnostic()))
            ok = False
        logger.debug(
            "Phase %s %s in %s",
            phase.name.value,
            "completed" if ok else "failed",
            format_duration(time.monotonic() - phase_start),
        )
        return ok

    async def _init(self, context: CompilationContext, options: CompilationOptions) -> bool:
        logger.debug("Compiling %s into %s", context.config_path, context.output_dir)
        return True

    async def _parse(self, context: CompilationContext, options: CompilationOptions) -> bool:
        result = await self.parser.parse_file(context.config_path, ParseOptions())
        if not result.success or result.spec is None:
            self._errors.extend(result.errors)
            return False
        context.spec = result.spec
        logger.info(
            "Parsed %s: %d component(s), %d route(s)",
            result.spec.metadata.name,
            len(result.spec.components),
            len(result.spec.routes),
        )
        return True

    async def _plan(self, context: CompilationContext, options: CompilationOptions) -> bool:
        result = await self.planner.plan(context, options)
        context.dependency_graph = result.dependency_graph
        if result.success:
            return True

        if options.strict:
            self._errors.extend(result.errors)
            return False

        fatal = [error for error in result.errors if error.kind is not DiagnosticKind.COMPONENT]
        for error in result.errors:
            if error.kind is DiagnosticKind.COMPONENT:
                self._warnings.append(format_diagnostic(error))
        self._errors.extend(fatal)
        return not fatal

    async def _generate(self, context: CompilationContext, options: CompilationOptions) -> bool:
        spec = self._require_spec(context)
        result = await self.file_manager.generate_project_structure(
            context.output_dir, spec, context.template_dir, options
        )
        context.project_path = result.root_path
        for message in result.errors:
            self._errors.append(
                Diagnostic(
                    kind=DiagnosticKind.FILE,
                    message=message,
                    location=ErrorLocation(file=str(result.root_path)),
                )
            )
        return result.success

    async def _integrate(self, context: CompilationContext, options: CompilationOptions) -> bool:
        spec = self._require_spec(context)
        project_path = self._require_project_path(context)
        ok = True

        components = await self.component_generator.generate(project_path, spec.components, options)
        self._errors.extend(components.errors)
        self._warnings.extend(components.warnings)
        if components.manifest_path:
            context.generated_files.append(components.manifest_path)
        ok = ok and components.success

        routes = await self.route_generator.generate_routes(
            project_path, spec.routes, spec.components, options
        )
        for route in routes:
            self._errors.extend(route.errors)
            self._warnings.extend(route.warnings)
            if route.success and not route.skipped:
                context.generated_files.append(route.route_path)
        ok = ok and all(route.success for route in routes)

        if spec.has_api and spec.api is not None:
            if self.api_generator is None:
                self._warnings.append("API endpoints defined but no API generator is configured; skipped")
            else:
                for endpoint in await self.api_generator.generate(project_path, spec.api, options):
                    if endpoint.success:
                        context.generated_files.append(endpoint.output_path)
                        continue
                    self._warnings.extend(format_diagnostic(error) for error in endpoint.errors)

        rendered = await self.template_processor.process_directory(
            context.template_dir / "base",
            project_path,
            TemplateProcessor.create_context(spec),
            options,
        )
        for result in rendered:
            if result.success:
                context.generated_files.append(result.output_path)
                continue
            self._errors.extend(
                Diagnostic(
                    kind=DiagnosticKind.TEMPLATE,
                    message=message,
                    location=ErrorLocation(file=result.source_path),
                )
                for message in result.errors
            )
        ok = ok and all(result.success for result in rendered)

        logger.info("Integrated %d file(s) into %s", len(context.generated_files), project_path)
        return ok

    async def _optimize(self, context: CompilationContext, options: CompilationOptions) -> bool:
        if not options.optimize:
            logger.debug("Optimization disabled")
            return True
        logger.debug("No optimizations registered")
        return True

    async def _complete(self, context: CompilationContext, options: CompilationOptions) -> bool:
        spec = context.spec
        project_path = context.project_path
        if spec is None or project_path is None:
            logger.warning("Project path not available, skipping final configuration")
            return True

        deno_json = {
            "name": spec.metadata.name,
            "version": spec.metadata.version,
            "description": spec.metadata.description or "Generated Fresh application",
            "imports": FRESH_IMPORTS,
            "tasks": FRESH_TASKS,
        }
        try:
            readme = render_builtin(
                self.template_engine, "readme.md.j2", TemplateProcessor.create_context(spec)
            )
        except JinjaTemplateError as exc:
            raise TemplateError(f"Failed to render README.md: {exc}") from exc

        ok = True
        for name, content in (
            ("deno.json", json.dumps(deno_json, indent=2) + "\n"),
            ("README.md", readme),
        ):
            written = await self.file_manager.create_file(
                project_path / name, content, overwrite=True, dry_run=options.dry_run
            )
            if written.success:
                context.generated_files.append(written.path)
            else:
                self._warnings.append(written.error or f"Failed to write {name}")
                ok = False

        if not await self._validate_output(context, options):
            self._warnings.append("Final validation found issues but compilation will complete")
        return ok

    async def _validate_output(self, context: CompilationContext, options: CompilationOptions) -> bool:
        """Check that the files this run claims to have written exist."""
        if options.dry_run or context.project_path is None:
            return True
        required = [context.project_path / "deno.json", context.project_path / "README.md"]
        required.extend(Path(path) for path in context.generated_files)

        valid = True
        for path in dict.fromkeys(required):
            if not await self.file_manager.file_exists(path):
                self._warnings.append(f"Required file missing: {path}")
                valid = False
        return valid

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _ensure_cache(self) -> None:
        if self.cache is not None and not self.cache.initialized:
            await self.cache.initialize()

    def _emit(self, phase: CompilationPhase, progress: int, operation: str) -> None:
        self._progress = max(self._progress, progress)
        if self._progress_callback is None:
            return
        event = ProgressEvent(
            phase=phase,
            progress=progress,
            operation=operation,
            errors=list(self._errors),
            warnings=list(self._warnings),
        )
        try:
            self._progress_callback(event)
        except Exception as exc:
            logger.warning("Progress callback raised %s: %s", type(exc).__name__, exc)

    def _result(
        self,
        context: CompilationContext,
        started: float,
        phase: CompilationPhase,
        *,
        failed_phase: Optional[CompilationPhase] = None,
    ) -> CompilationResult:
        return CompilationResult(
            success=phase is CompilationPhase.COMPLETE,
            output_path=str(context.project_path) if context.project_path is not None else None,
            errors=list(self._errors),
            warnings=list(self._warnings),
            phase=phase,
            failed_phase=failed_phase,
            time_taken=(time.monotonic() - started) * 1000,
            generated_files=list(context.generated_files),
        )

    @staticmethod
    def _require_spec(context: CompilationContext) -> AppSpec:
        if context.spec is None:
            raise SpecValidationError("No parsed app spec in compilation context")
        return context.spec

    @staticmethod
    def _require_project_path(context: CompilationContext) -> Path:
        if context.project_path is None:
            raise FileError("Project structure has not been generated")
        return context.project_path


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _load_registry(path: Optional[Path]) -> ComponentRegistry:
    if path is None:
        return ComponentRegistry.default()
    try:
        return ComponentRegistry.from_file(path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise DependencyError(
            f"Failed to load component registry: {exc}",
            location=ErrorLocation(file=str(path)),
        ) from exc


async def _compile_with_progress(
    compiler: Compiler, spec_path: Path, options: CompilationOptions
) -> CompilationResult:
    with create_progress() as progress:
        task = progress.add_task("Compiling", total=100)

        def on_progress(event: ProgressEvent) -> None:
            progress.update(task, completed=event.progress, description=event.operation)

        compiler.set_progress_callback(on_progress)
        return await compiler.compile(spec_path, options)


def _print_diagnostics(errors: list[Diagnostic], warnings: list[str]) -> None:
    for error in errors:
        print_error(escape(format_diagnostic(error)))
    for warning in warnings:
        print_warning(escape(f"warning: {warning}"))


def _print_compilation_summary(result: CompilationResult) -> None:
    """Print the final compilation panel and summary table."""
    if result.success:
        border_style = "bold green"
        status_text = "[bold green]COMPILATION SUCCEEDED[/bold green]"
    else:
        border_style = "bold red"
        status_text = "[bold red]COMPILATION FAILED[/bold red]"

    print_summary_table(
        {
            "Phase": result.phase.value,
            "Stopped at": result.failed_phase.value if result.failed_phase else "-",
            "Output": result.output_path or "-",
            "Files written": str(len(result.generated_files)),
            "Errors": str(len(result.errors)),
            "Warnings": str(len(result.warnings)),
        },
        title="Compilation Summary",
    )
    console.print(
        Panel(
            f"{status_text}\n\nDuration : {format_duration(result.time_taken / 1000)}",
            title="[bold]appcompiler[/bold]",
            border_style=border_style,
        )
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``appcompiler`` and ``python -m appcompiler``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="appcompiler",
        description="appcompiler -- compile a declarative app spec into a Fresh project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  appcompiler compile app.json -t ./templates -o ./output\n"
            "  appcompiler compile app.yaml --no-strict --dry-run\n"
            "  appcompiler validate app.json --templates ./templates\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    compile_parser = subparsers.add_parser("compile", help="Compile an app spec into a project")
    compile_parser.add_argument("spec", help="Path to the app spec (JSON or YAML)")
    compile_parser.add_argument("--templates", "-t", default=None, help="Template directory")
    compile_parser.add_argument("--output", "-o", default=None, help="Output directory")
    compile_parser.add_argument("--registry", default=None, help="Component registry file (JSON or YAML)")
    compile_parser.add_argument(
        "--no-strict", action="store_true", help="Downgrade unknown components to warnings"
    )
    compile_parser.add_argument("--dry-run", action="store_true", help="Report without writing files")
    compile_parser.add_argument(
        "--no-overwrite", action="store_true", help="Refuse to replace existing files"
    )
    compile_parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    compile_parser.add_argument("--log-file", default=None, help="Also write logs to this file")

    validate_parser = subparsers.add_parser("validate", help="Check an app spec without writing files")
    validate_parser.add_argument("spec", help="Path to the app spec (JSON or YAML)")
    validate_parser.add_argument("--templates", "-t", default=None, help="Template directory to check")
    validate_parser.add_argument("--registry", default=None, help="Component registry file (JSON or YAML)")
    validate_parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    spec_path = Path(args.spec)
    if not spec_path.exists():
        console.print(f"[bold red]Error:[/bold red] Spec file not found: {spec_path}")
        sys.exit(1)

    overrides: dict[str, Any] = {"verbose": args.verbose}
    if args.registry:
        overrides["registry_path"] = Path(args.registry)
    if args.command == "compile":
        if args.templates:
            overrides["template_dir"] = Path(args.templates)
        if args.output:
            overrides["output_dir"] = Path(args.output)
        if args.no_strict:
            overrides["strict"] = False
        if args.dry_run:
            overrides["dry_run"] = True
        if args.no_overwrite:
            overrides["overwrite"] = False
    config = CompilerConfig.from_env().model_copy(update=overrides)

    log_file = Path(args.log_file) if getattr(args, "log_file", None) else None
    configure_logging(verbose=config.verbose, log_file=log_file)

    try:
        registry = _load_registry(config.registry_path)
    except DependencyError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(exc.message)}")
        sys.exit(1)

    compiler = Compiler(
        registry,
        cache=PerformanceCache(config.cache),
        api_generator=ApiRouteGenerator(),
    )

    if args.command == "validate":
        template_dir = Path(args.templates) if args.templates else None
        report = asyncio.run(compiler.run_diagnostics(spec_path, template_dir))
        _print_diagnostics(report.errors, report.warnings)
        for suggestion in report.suggestions:
            console.print(f"  [cyan]hint:[/cyan] {escape(suggestion)}")
        if report.valid:
            print_success(f"{spec_path} is valid")
            return
        print_error(f"{spec_path} has {len(report.errors)} problem(s)")
        sys.exit(1)

    result = asyncio.run(_compile_with_progress(compiler, spec_path, config.to_options()))
    _print_diagnostics(result.errors, result.warnings)
    _print_compilation_summary(result)

    if result.success:
        console.print("[bold green]Compilation completed successfully![/bold green]")
    else:
        console.print("[bold red]Compilation failed.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
