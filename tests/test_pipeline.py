"""Unit tests for the pipeline orchestrator (appcompiler.pipeline).

Tests cover:
- Compiler.compile on the demo spec (phases, progress events, result)
- Parse and plan failures stopping the run at the right phase
- Strict vs lenient handling of dangling component references
- Phase exceptions, CompilerError and throw_on_error
- Optional phase failures, progress callback failures
- Accumulator reset between runs, dry runs
- Persistent cache: snapshot writes, registry edits, unreadable snapshots
- Compiler.run_diagnostics
- CLI entry point (compile / validate)
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

from appcompiler.cache import PerformanceCache
from appcompiler.config import CacheConfig, CompilationOptions
from appcompiler.errors import CompilerError, DiagnosticKind
from appcompiler.generators import ApiRouteGenerator
from appcompiler.pipeline import (
    CompilationPhase,
    Compiler,
    ProgressEvent,
    main,
)
from appcompiler.registry import ComponentRegistry


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def compiler(registry: ComponentRegistry) -> Compiler:
    return Compiler(registry, api_generator=ApiRouteGenerator())


@pytest.fixture
def events(compiler: Compiler) -> list[ProgressEvent]:
    """Progress events recorded from ``compiler``."""
    recorded: list[ProgressEvent] = []
    compiler.set_progress_callback(recorded.append)
    return recorded


def _with_dangling_route(data: dict[str, Any]) -> dict[str, Any]:
    data["routes"][1]["component"] = "ghost"
    return data


def _write_home_registry(path: Path, title_spec: dict[str, Any]) -> None:
    registry = {"components": {"HomePage": {"propSchema": {"title": title_spec}}}}
    path.write_text(json.dumps(registry), encoding="utf-8")


# ---------------------------------------------------------------------------
# Pipeline shape
# ---------------------------------------------------------------------------

class TestPipelineDefinition:
    @pytest.mark.unit
    def test_phase_order_and_ranges(self, compiler: Compiler):
        shape = [(p.name, p.start_progress, p.end_progress, p.required) for p in compiler.pipeline]
        assert shape == [
            (CompilationPhase.INIT, 0, 5, True),
            (CompilationPhase.PARSE, 5, 15, True),
            (CompilationPhase.PLAN, 15, 25, True),
            (CompilationPhase.GENERATE, 25, 40, True),
            (CompilationPhase.INTEGRATE, 40, 80, True),
            (CompilationPhase.OPTIMIZE, 80, 95, False),
            (CompilationPhase.COMPLETE, 95, 100, False),
        ]


# ---------------------------------------------------------------------------
# Successful compilation
# ---------------------------------------------------------------------------

class TestCompileSuccess:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_demo_compiles(
        self,
        compiler: Compiler,
        events: list[ProgressEvent],
        demo_spec_path: Path,
        options: CompilationOptions,
        output_dir: Path,
    ):
        result = await compiler.compile(demo_spec_path, options)

        assert result.success is True
        assert result.phase is CompilationPhase.COMPLETE
        assert result.failed_phase is None
        assert result.errors == []
        assert result.output_path == str(output_dir / "demo")
        assert result.time_taken >= 0
        assert str(output_dir / "demo" / "deno.json") in result.generated_files
        assert str(output_dir / "demo" / "routes" / "api" / "hello.ts") in result.generated_files

        last = events[-1]
        assert (last.phase, last.progress, last.operation) == (
            CompilationPhase.COMPLETE,
            100,
            "Compilation completed",
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_progress_never_decreases(
        self, compiler: Compiler, events: list[ProgressEvent], demo_spec_path: Path, options: CompilationOptions
    ):
        await compiler.compile(demo_spec_path, options)

        progress = [event.progress for event in events]
        assert progress == sorted(progress)
        assert events[0].operation == "Initializing compilation"
        assert "Parsing app spec completed" in [event.operation for event in events]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_api_generator_warns(
        self, registry: ComponentRegistry, demo_spec_path: Path, options: CompilationOptions, output_dir: Path
    ):
        result = await Compiler(registry).compile(demo_spec_path, options)

        assert result.success is True
        assert "API endpoints defined but no API generator is configured; skipped" in result.warnings
        assert not (output_dir / "demo" / "routes" / "api" / "hello.ts").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(
        self, compiler: Compiler, demo_spec_path: Path, options: CompilationOptions, output_dir: Path
    ):
        options = options.model_copy(update={"dry_run": True})

        result = await compiler.compile(demo_spec_path, options)

        assert result.success is True
        assert not output_dir.exists()


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestCompileFailures:
    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "section, key, message",
        [
            ("metadata", "version", "Missing required property: version"),
            (None, "routes", "Missing required property: routes"),
        ],
    )
    async def test_parse_failure(
        self,
        compiler: Compiler,
        events: list[ProgressEvent],
        write_spec: Callable[..., Path],
        demo_spec_dict: dict[str, Any],
        options: CompilationOptions,
        section: str | None,
        key: str,
        message: str,
    ):
        target = demo_spec_dict[section] if section else demo_spec_dict
        del target[key]

        result = await compiler.compile(write_spec(demo_spec_dict), options)

        assert result.success is False
        assert result.phase is CompilationPhase.FAILED
        assert result.failed_phase is CompilationPhase.PARSE
        assert result.output_path is None
        assert result.errors[0].kind is DiagnosticKind.VALIDATION
        assert result.errors[0].message == message
        assert events[-1].phase is CompilationPhase.FAILED
        assert events[-1].progress == 15
        assert events[-1].operation == "Compilation failed during parse"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_spec_file(self, compiler: Compiler, options: CompilationOptions, tmp_path: Path):
        result = await compiler.compile(tmp_path / "absent.json", options)

        assert result.failed_phase is CompilationPhase.PARSE
        assert result.errors[0].kind is DiagnosticKind.FILE

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dangling_component_strict(
        self,
        compiler: Compiler,
        write_spec: Callable[..., Path],
        demo_spec_dict: dict[str, Any],
        options: CompilationOptions,
    ):
        result = await compiler.compile(write_spec(_with_dangling_route(demo_spec_dict)), options)

        assert result.success is False
        assert result.failed_phase is CompilationPhase.PLAN
        assert result.errors[0].kind is DiagnosticKind.COMPONENT
        assert "not found" in result.errors[0].message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dangling_component_lenient(
        self,
        compiler: Compiler,
        write_spec: Callable[..., Path],
        demo_spec_dict: dict[str, Any],
        options: CompilationOptions,
        output_dir: Path,
    ):
        options = options.model_copy(update={"strict": False})

        result = await compiler.compile(write_spec(_with_dangling_route(demo_spec_dict)), options)

        assert result.success is True
        assert any("Component 'ghost' not found for route '/about'" in w for w in result.warnings)
        assert not (output_dir / "demo" / "routes" / "about.tsx").exists()
        assert (output_dir / "demo" / "routes" / "index.tsx").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_template_directory(
        self, compiler: Compiler, demo_spec_path: Path, output_dir: Path, tmp_path: Path
    ):
        options = CompilationOptions(template_dir=tmp_path / "nowhere", output_dir=output_dir)

        result = await compiler.compile(demo_spec_path, options)

        assert result.failed_phase is CompilationPhase.PLAN
        assert result.errors[0].kind is DiagnosticKind.DEPENDENCY

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_diagnostic(
        self, compiler: Compiler, events: list[ProgressEvent], demo_spec_path: Path, options: CompilationOptions
    ):
        compiler.pipeline[2].execute = AsyncMock(side_effect=RuntimeError("boom"))

        result = await compiler.compile(demo_spec_path, options)

        assert result.phase is CompilationPhase.FAILED
        assert result.failed_phase is CompilationPhase.PLAN
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.kind is DiagnosticKind.DEPENDENCY
        assert error.message == "Compilation failed: boom"
        assert error.location.file == str(demo_spec_path)
        assert "RuntimeError" in error.details
        assert events[-1].phase is CompilationPhase.FAILED
        assert events[-1].progress == 15

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_throw_on_error_reraises(
        self, compiler: Compiler, demo_spec_path: Path, options: CompilationOptions
    ):
        compiler.pipeline[3].execute = AsyncMock(side_effect=RuntimeError("boom"))
        options = options.model_copy(update={"throw_on_error": True})

        with pytest.raises(RuntimeError, match="boom"):
            await compiler.compile(demo_spec_path, options)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_compiler_error_fails_phase(
        self, compiler: Compiler, events: list[ProgressEvent], demo_spec_path: Path, options: CompilationOptions
    ):
        compiler.pipeline[3].execute = AsyncMock(side_effect=CompilerError("disk full"))

        result = await compiler.compile(demo_spec_path, options)

        assert result.failed_phase is CompilationPhase.GENERATE
        assert [e.message for e in result.errors] == ["disk full"]
        assert events[-1].progress == 40

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_optional_phase_failure_is_warning(
        self, compiler: Compiler, demo_spec_path: Path, options: CompilationOptions
    ):
        compiler.pipeline[5].execute = AsyncMock(return_value=False)

        result = await compiler.compile(demo_spec_path, options)

        assert result.success is True
        assert "Optional phase 'optimize' failed; continuing" in result.warnings

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_optional_phase_compiler_error_is_warning(
        self, compiler: Compiler, demo_spec_path: Path, options: CompilationOptions
    ):
        compiler.pipeline[5].execute = AsyncMock(side_effect=CompilerError("minifier missing"))

        result = await compiler.compile(demo_spec_path, options)

        assert result.success is True
        assert result.errors == []
        assert any("minifier missing" in warning for warning in result.warnings)
        assert "Optional phase 'optimize' failed; continuing" in result.warnings

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_callback_errors_are_ignored(
        self, compiler: Compiler, demo_spec_path: Path, options: CompilationOptions
    ):
        def explode(event: ProgressEvent) -> None:
            raise ValueError("bad callback")

        compiler.set_progress_callback(explode)
        result = await compiler.compile(demo_spec_path, options)

        assert result.success is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_accumulators_reset_between_runs(
        self,
        compiler: Compiler,
        write_spec: Callable[..., Path],
        demo_spec_dict: dict[str, Any],
        demo_spec_path: Path,
        options: CompilationOptions,
    ):
        bad = {"metadata": {"name": "demo"}, "routes": []}
        failed = await compiler.compile(write_spec(bad, "bad.json"), options)
        passed = await compiler.compile(demo_spec_path, options)

        assert failed.errors
        assert passed.success is True
        assert passed.errors == []


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class TestCompileCache:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_persistent_cache_saved(
        self, registry: ComponentRegistry, demo_spec_path: Path, options: CompilationOptions, tmp_path: Path
    ):
        cache = PerformanceCache(CacheConfig(persist_to_disk=True, cache_dir=tmp_path / "cache"))
        compiler = Compiler(registry, cache=cache)

        result = await compiler.compile(demo_spec_path, options)

        assert result.success is True
        assert cache.initialized is True
        assert (tmp_path / "cache" / "cache.json").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_second_run_hits_cache(
        self, registry: ComponentRegistry, cache: PerformanceCache, demo_spec_path: Path, options: CompilationOptions
    ):
        compiler = Compiler(registry, cache=cache)

        await compiler.compile(demo_spec_path, options)
        hits_after_first = cache.hits
        await compiler.compile(demo_spec_path, options)

        assert cache.hits > hits_after_first

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_registry_edit_invalidates_persisted_resolutions(
        self, write_spec: Callable[..., Path], options: CompilationOptions, tmp_path: Path
    ):
        registry_path = tmp_path / "registry.json"
        spec_path = write_spec(
            {
                "metadata": {"name": "cached", "version": "1.0.0"},
                "components": [{"id": "home", "type": "HomePage"}],
                "routes": [{"path": "/", "component": "home"}],
            }
        )
        config = CacheConfig(persist_to_disk=True, cache_dir=tmp_path / "cache")

        _write_home_registry(registry_path, {"type": "string"})
        compiler = Compiler(ComponentRegistry.from_file(registry_path), cache=PerformanceCache(config))
        first = await compiler.compile(spec_path, options)
        assert first.success is True

        _write_home_registry(registry_path, {"type": "string", "required": True})
        stat = registry_path.stat()
        os.utime(registry_path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))

        compiler = Compiler(ComponentRegistry.from_file(registry_path), cache=PerformanceCache(config))
        second = await compiler.compile(spec_path, options)

        assert second.success is False
        assert second.failed_phase is CompilationPhase.INTEGRATE
        assert any("Required prop 'title' is missing" in error.message for error in second.errors)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_undecodable_snapshot_does_not_fail_compile(
        self, registry: ComponentRegistry, demo_spec_path: Path, options: CompilationOptions, tmp_path: Path
    ):
        config = CacheConfig(persist_to_disk=True, cache_dir=tmp_path / "cache")
        config.snapshot_path.parent.mkdir(parents=True)
        config.snapshot_path.write_bytes(b"\xff\xfe\x00garbage")

        result = await Compiler(registry, cache=PerformanceCache(config)).compile(demo_spec_path, options)

        assert result.success is True
        assert result.phase is CompilationPhase.COMPLETE


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

class TestRunDiagnostics:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_valid_spec(self, compiler: Compiler, demo_spec_path: Path, template_dir: Path):
        report = await compiler.run_diagnostics(demo_spec_path, template_dir)

        assert report.valid is True
        assert report.errors == []
        assert report.suggestions == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_parse_errors(self, compiler: Compiler, write_spec: Callable[..., Path]):
        report = await compiler.run_diagnostics(write_spec({"routes": []}))

        assert report.valid is False
        assert report.suggestions == ["Fix configuration validation errors before running diagnostics"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_type_reported_once_with_suggestion(
        self, compiler: Compiler, write_spec: Callable[..., Path], demo_spec_dict: dict[str, Any]
    ):
        demo_spec_dict["components"][1]["children"][0]["type"] = "Buton"

        report = await compiler.run_diagnostics(write_spec(demo_spec_dict))

        messages = [error.message for error in report.errors]
        assert messages == ["Component type 'Buton' not found in registry"]
        assert "Button" in report.suggestions

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_props_and_missing_templates(
        self, compiler: Compiler, write_spec: Callable[..., Path], demo_spec_dict: dict[str, Any], tmp_path: Path
    ):
        demo_spec_dict["components"][1]["children"][0]["props"]["size"] = "xl"

        report = await compiler.run_diagnostics(write_spec(demo_spec_dict), tmp_path / "missing")

        kinds = [error.kind for error in report.errors]
        assert kinds == [DiagnosticKind.DEPENDENCY, DiagnosticKind.COMPONENT]
        assert report.errors[1].message.startswith("Invalid prop 'size' for component 'Button'")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

class TestMain:
    @pytest.mark.unit
    def test_compile_command(self, demo_spec_path: Path, template_dir: Path, output_dir: Path):
        main(["compile", str(demo_spec_path), "-t", str(template_dir), "-o", str(output_dir)])

        assert (output_dir / "demo" / "deno.json").exists()

    @pytest.mark.unit
    def test_compile_failure_exits(
        self, write_spec: Callable[..., Path], template_dir: Path, output_dir: Path
    ):
        path = write_spec({"metadata": {"name": "demo"}, "routes": []})

        with pytest.raises(SystemExit) as excinfo:
            main(["compile", str(path), "-t", str(template_dir), "-o", str(output_dir)])
        assert excinfo.value.code == 1

    @pytest.mark.unit
    def test_missing_spec_exits(self, tmp_path: Path):
        with pytest.raises(SystemExit) as excinfo:
            main(["validate", str(tmp_path / "absent.json")])
        assert excinfo.value.code == 1

    @pytest.mark.unit
    def test_validate_command(self, demo_spec_path: Path, template_dir: Path):
        main(["validate", str(demo_spec_path), "--templates", str(template_dir)])

    @pytest.mark.unit
    def test_validate_reports_problems(self, write_spec: Callable[..., Path], demo_spec_dict: dict[str, Any]):
        path = write_spec(_with_dangling_route(demo_spec_dict))

        with pytest.raises(SystemExit) as excinfo:
            main(["validate", str(path)])
        assert excinfo.value.code == 1

    @pytest.mark.unit
    def test_bad_registry_exits(self, demo_spec_path: Path, tmp_path: Path):
        registry = tmp_path / "registry.json"
        registry.write_text("{not json", encoding="utf-8")

        with pytest.raises(SystemExit) as excinfo:
            main(["validate", str(demo_spec_path), "--registry", str(registry)])
        assert excinfo.value.code == 1
