"""API route generation: one handler module per endpoint under ``routes/api``."""

from __future__ import annotations

from pathlib import Path

from jinja2 import TemplateError as JinjaTemplateError
from pydantic import BaseModel, Field

from appcompiler.config import CompilationOptions
from appcompiler.errors import Diagnostic, DiagnosticKind, ErrorLocation
from appcompiler.filesystem import FileManager
from appcompiler.generators.builtin import render_builtin
from appcompiler.generators.routes import normalize_route_path
from appcompiler.parser.models import ApiSpec
from appcompiler.templates import TemplateEngine
from appcompiler.utils import get_logger

logger = get_logger("generators.api")

API_DIR = Path("routes") / "api"


class ApiGenerationResult(BaseModel):
    success: bool
    endpoint_path: str
    output_path: str = ""
    errors: list[Diagnostic] = Field(default_factory=list)


class ApiRouteGenerator:
    def __init__(self, file_manager: FileManager | None = None, engine: TemplateEngine | None = None) -> None:
        self.file_manager = file_manager or FileManager()
        self.engine = engine or TemplateEngine()

    async def generate(
        self,
        project_path: Path,
        api: ApiSpec,
        options: CompilationOptions,
    ) -> list[ApiGenerationResult]:
        """Write a handler module for every endpoint in *api*."""
        extension = ".ts" if options.use_typescript else ".js"
        results: list[ApiGenerationResult] = []

        for endpoint in api.endpoints:
            output = project_path / API_DIR / f"{normalize_route_path(endpoint.path)}{extension}"
            methods = [method.value for method in dict.fromkeys(endpoint.methods)]
            try:
                content = render_builtin(
                    self.engine,
                    "api_handler.ts.j2",
                    {"endpoint": endpoint.model_dump(mode="json"), "methods": methods},
                )
            except JinjaTemplateError as exc:
                results.append(
                    ApiGenerationResult(
                        success=False,
                        endpoint_path=endpoint.path,
                        errors=[
                            Diagnostic(
                                kind=DiagnosticKind.TEMPLATE,
                                message=f"Failed to render API handler for '{endpoint.path}': {exc}",
                            )
                        ],
                    )
                )
                continue

            written = await self.file_manager.create_file(
                output, content, overwrite=options.overwrite, dry_run=options.dry_run
            )
            errors = []
            if not written.success:
                errors.append(
                    Diagnostic(
                        kind=DiagnosticKind.FILE,
                        message=written.error or f"Failed to write API route: {output}",
                        location=ErrorLocation(file=str(output), path=endpoint.path),
                    )
                )
            results.append(
                ApiGenerationResult(
                    success=not errors,
                    endpoint_path=endpoint.path,
                    output_path=str(output),
                    errors=errors,
                )
            )

        logger.debug("Generated %d API route(s)", sum(1 for r in results if r.success))
        return results
