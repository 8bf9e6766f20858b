"""File-system facade used by every compiler phase.

All operations report a :class:`FileOperationResult` instead of raising, and
honour two switches: ``dry_run`` (report success without touching the disk)
and ``overwrite`` (refuse to replace an existing destination when false).
Blocking work runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from appcompiler.config import CompilationOptions
from appcompiler.parser.models import AppSpec
from appcompiler.utils import get_logger

logger = get_logger("filesystem")

STANDARD_DIRECTORIES = (
    "routes",
    "islands",
    "components",
    "static",
    "static/styles",
    "static/images",
    "utils",
    "data",
)

TEMPLATE_SUFFIX = ".j2"


class FileOperationResult(BaseModel):
    success: bool
    path: str
    error: Optional[str] = None
    size: Optional[int] = None


class ProjectStructureResult(BaseModel):
    success: bool
    root_path: Path
    results: list[FileOperationResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class FileManager:
    """Creates, copies and deletes files for the generated project."""

    def __init__(self, *, dry_run: bool = False, overwrite: bool = True) -> None:
        self.dry_run = dry_run
        self.overwrite = overwrite

    # -- Queries -----------------------------------------------------------

    async def exists(self, path: str | Path) -> bool:
        return await asyncio.to_thread(Path(path).exists)

    async def file_exists(self, path: str | Path) -> bool:
        return await asyncio.to_thread(Path(path).is_file)

    async def directory_exists(self, path: str | Path) -> bool:
        return await asyncio.to_thread(Path(path).is_dir)

    # -- Creation ----------------------------------------------------------

    async def create_directory(
        self,
        path: str | Path,
        *,
        dry_run: bool | None = None,
    ) -> FileOperationResult:
        target = Path(path)
        dry = self.dry_run if dry_run is None else dry_run
        try:
            if not dry:
                await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            message = f"Failed to create directory {target}: {exc}"
            logger.error(message)
            return FileOperationResult(success=False, path=str(target), error=message)
        return FileOperationResult(success=True, path=str(target))

    async def create_file(
        self,
        path: str | Path,
        content: str | bytes,
        *,
        overwrite: bool | None = None,
        dry_run: bool | None = None,
    ) -> FileOperationResult:
        """Write *content* to *path*, creating parent directories."""
        target = Path(path)
        dry = self.dry_run if dry_run is None else dry_run
        allow_overwrite = self.overwrite if overwrite is None else overwrite
        data = content.encode("utf-8") if isinstance(content, str) else content

        if await self.file_exists(target) and not allow_overwrite:
            return FileOperationResult(
                success=False, path=str(target), error=f"File already exists: {target}"
            )

        try:
            if not dry:
                await asyncio.to_thread(_write_bytes, target, data)
        except OSError as exc:
            message = f"Failed to create file {target}: {exc}"
            logger.error(message)
            return FileOperationResult(success=False, path=str(target), error=message)

        logger.debug("%s file: %s (%d bytes)", "Would create" if dry else "Created", target, len(data))
        return FileOperationResult(success=True, path=str(target), size=len(data))

    # -- Copying -----------------------------------------------------------

    async def copy_file(
        self,
        source: str | Path,
        destination: str | Path,
        *,
        overwrite: bool | None = None,
        dry_run: bool | None = None,
    ) -> FileOperationResult:
        src = Path(source)
        dest = Path(destination)
        dry = self.dry_run if dry_run is None else dry_run
        allow_overwrite = self.overwrite if overwrite is None else overwrite

        if not await self.file_exists(src):
            return FileOperationResult(success=False, path=str(dest), error=f"Source file not found: {src}")
        if await self.exists(dest) and not allow_overwrite:
            return FileOperationResult(
                success=False, path=str(dest), error=f"Destination file already exists: {dest}"
            )

        try:
            if not dry:
                await asyncio.to_thread(_copy, src, dest)
        except OSError as exc:
            message = f"Failed to copy file {src} to {dest}: {exc}"
            logger.error(message)
            return FileOperationResult(success=False, path=str(dest), error=message)
        return FileOperationResult(success=True, path=str(dest))

    async def copy_directory(
        self,
        source: str | Path,
        destination: str | Path,
        *,
        overwrite: bool | None = None,
        dry_run: bool | None = None,
        exclude_suffixes: tuple[str, ...] = (),
    ) -> list[FileOperationResult]:
        """Copy every file under *source* into *destination*, keeping layout.

        Files whose name ends with one of *exclude_suffixes* are skipped.
        """
        src = Path(source)
        dest = Path(destination)
        if not await self.directory_exists(src):
            reason = "Source is not a directory" if await self.exists(src) else "Source directory not found"
            return [FileOperationResult(success=False, path=str(src), error=f"{reason}: {src}")]

        files = await asyncio.to_thread(lambda: sorted(p for p in src.rglob("*") if p.is_file()))
        results: list[FileOperationResult] = []
        for file in files:
            if exclude_suffixes and file.name.endswith(exclude_suffixes):
                continue
            target = dest / file.relative_to(src)
            results.append(
                await self.copy_file(file, target, overwrite=overwrite, dry_run=dry_run)
            )
        return results

    # -- Deletion ----------------------------------------------------------

    async def delete_file(self, path: str | Path, *, dry_run: bool | None = None) -> FileOperationResult:
        target = Path(path)
        dry = self.dry_run if dry_run is None else dry_run
        if not await self.exists(target):
            return FileOperationResult(success=False, path=str(target), error=f"File not found: {target}")
        if not await self.file_exists(target):
            return FileOperationResult(success=False, path=str(target), error=f"Not a file: {target}")
        try:
            if not dry:
                await asyncio.to_thread(target.unlink)
        except OSError as exc:
            return FileOperationResult(
                success=False, path=str(target), error=f"Failed to delete file {target}: {exc}"
            )
        return FileOperationResult(success=True, path=str(target))

    async def delete_directory(self, path: str | Path, *, dry_run: bool | None = None) -> FileOperationResult:
        target = Path(path)
        dry = self.dry_run if dry_run is None else dry_run
        if not await self.exists(target):
            return FileOperationResult(success=False, path=str(target), error=f"Directory not found: {target}")
        if not await self.directory_exists(target):
            return FileOperationResult(success=False, path=str(target), error=f"Not a directory: {target}")
        try:
            if not dry:
                await asyncio.to_thread(shutil.rmtree, target)
        except OSError as exc:
            return FileOperationResult(
                success=False, path=str(target), error=f"Failed to delete directory {target}: {exc}"
            )
        return FileOperationResult(success=True, path=str(target))

    # -- Project skeleton --------------------------------------------------

    async def generate_project_structure(
        self,
        output_dir: str | Path,
        spec: AppSpec,
        template_dir: str | Path,
        options: CompilationOptions,
    ) -> ProjectStructureResult:
        """Create ``<output_dir>/<app name>`` with the standard layout.

        Non-template files from ``<template_dir>/base`` are copied into the
        project root; ``*.j2`` files are left for the template processor.
        """
        project_dir = Path(output_dir) / spec.metadata.name
        results: list[FileOperationResult] = []
        errors: list[str] = []

        root = await self.create_directory(project_dir, dry_run=options.dry_run)
        results.append(root)
        if not root.success:
            errors.append(root.error or f"Failed to create project directory: {project_dir}")
            return ProjectStructureResult(success=False, root_path=project_dir, results=results, errors=errors)

        directories = list(STANDARD_DIRECTORIES)
        if spec.has_api:
            directories.append("routes/api")
        for component_type in dict.fromkeys(node.type.split("/")[0] for node in spec.iter_components()):
            directories.append(f"components/{component_type}")

        for directory in directories:
            result = await self.create_directory(project_dir / directory, dry_run=options.dry_run)
            results.append(result)
            if not result.success:
                errors.append(result.error or f"Failed to create directory: {project_dir / directory}")

        base_dir = Path(template_dir) / "base"
        if await self.directory_exists(base_dir):
            copies = await self.copy_directory(
                base_dir,
                project_dir,
                overwrite=True,
                dry_run=options.dry_run,
                exclude_suffixes=(TEMPLATE_SUFFIX,),
            )
            results.extend(copies)
            errors.extend(r.error or f"Failed to copy template file: {r.path}" for r in copies if not r.success)
        else:
            errors.append(f"Base template directory not found: {base_dir}")

        return ProjectStructureResult(
            success=not errors, root_path=project_dir, results=results, errors=errors
        )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _write_bytes(path: Path, data: bytes) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def _copy(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
