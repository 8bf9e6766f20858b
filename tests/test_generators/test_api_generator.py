"""Tests for API handler generation (appcompiler.generators.api)."""

from __future__ import annotations

from pathlib import Path

import pytest

from appcompiler.config import CompilationOptions
from appcompiler.filesystem import FileManager
from appcompiler.generators import ApiRouteGenerator
from appcompiler.parser.models import ApiSpec, AppSpec


class TestApiRouteGenerator:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_demo_endpoint(self, demo_spec: AppSpec, options: CompilationOptions, tmp_path: Path):
        results = await ApiRouteGenerator().generate(tmp_path, demo_spec.api, options)

        assert len(results) == 1
        assert results[0].success is True
        assert results[0].endpoint_path == "/hello"
        output = tmp_path / "routes" / "api" / "hello.ts"
        assert results[0].output_path == str(output)

        text = output.read_text(encoding="utf-8")
        assert "API route: /api/hello" in text
        assert " * Greeting" in text
        assert "async GET(_req: Request, ctx: FreshContext)" in text
        assert 'handler: "hello",' in text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_methods_deduplicated_and_params_mapped(self, options: CompilationOptions, tmp_path: Path):
        api = ApiSpec.model_validate(
            {"endpoints": [{"path": "/users/:id", "methods": ["GET", "PUT", "GET"], "handler": "users"}]}
        )

        results = await ApiRouteGenerator().generate(tmp_path, api, options)

        text = (tmp_path / "routes" / "api" / "users" / "[id].ts").read_text(encoding="utf-8")
        assert results[0].success is True
        assert "Methods: GET, PUT" in text
        assert text.count("async GET(") == 1
        assert "async PUT(" in text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_file_not_overwritten(self, demo_spec: AppSpec, options: CompilationOptions, tmp_path: Path):
        target = tmp_path / "routes" / "api" / "hello.ts"
        target.parent.mkdir(parents=True)
        target.write_text("// mine\n", encoding="utf-8")
        options = options.model_copy(update={"overwrite": False})

        results = await ApiRouteGenerator(FileManager()).generate(tmp_path, demo_spec.api, options)

        assert results[0].success is False
        assert results[0].errors[0].message == f"File already exists: {target}"
        assert target.read_text(encoding="utf-8") == "// mine\n"
