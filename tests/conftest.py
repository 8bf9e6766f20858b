"""Shared pytest fixtures for the appcompiler test suite.

Provides reusable fixtures for:
- The built-in component registry
- A template directory with a ``base/`` folder (static file + template)
- Demo app specs, as dicts and written to disk
- Compilation options pointing at temporary directories
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable

import pytest

from appcompiler.config import CacheConfig, CompilationOptions
from appcompiler.cache import PerformanceCache
from appcompiler.filesystem import FileManager
from appcompiler.parser.models import AppSpec
from appcompiler.registry import ComponentRegistry


# ---------------------------------------------------------------------------
# Spec data
# ---------------------------------------------------------------------------

DEMO_SPEC: dict[str, Any] = {
    "metadata": {
        "name": "demo",
        "version": "1.0.0",
        "description": "Demo application",
        "author": "Test Author",
    },
    "components": [
        {
            "id": "layout",
            "type": "Layout",
            "props": {"title": "Demo"},
            "children": [
                {"id": "header", "type": "Header", "props": {"title": "Demo"}},
                {"id": "footer", "type": "Footer", "props": {"text": "(c) Demo"}},
            ],
        },
        {
            "id": "home",
            "type": "HomePage",
            "props": {"title": "Welcome"},
            "children": [
                {"id": "cta", "type": "Button", "props": {"text": "Start", "variant": "primary"}},
            ],
        },
        {"id": "about", "type": "AboutPage", "props": {"title": "About us"}},
    ],
    "routes": [
        {"path": "/", "component": "home", "layout": "layout", "meta": {"title": "Home"}},
        {"path": "/about", "component": "about", "layout": "layout"},
    ],
    "api": {
        "endpoints": [
            {"path": "/hello", "methods": ["GET"], "handler": "hello", "description": "Greeting"},
        ]
    },
}


@pytest.fixture
def demo_spec_dict() -> dict[str, Any]:
    """A deep copy of the demo spec, safe to mutate."""
    return copy.deepcopy(DEMO_SPEC)


@pytest.fixture
def demo_spec(demo_spec_dict: dict[str, Any]) -> AppSpec:
    return AppSpec.model_validate(demo_spec_dict)


@pytest.fixture
def write_spec(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Return a helper that writes a spec dict to ``tmp_path/app.json``."""

    def _write(data: dict[str, Any], name: str = "app.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def demo_spec_path(write_spec: Callable[..., Path], demo_spec_dict: dict[str, Any]) -> Path:
    return write_spec(demo_spec_dict)


# ---------------------------------------------------------------------------
# Directories & collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Template directory with a ``base/`` folder.

    ``base/static/styles/app.css`` is copied verbatim; ``base/main.ts.j2``
    is rendered to ``main.ts``.
    """
    root = tmp_path / "templates"
    styles = root / "base" / "static" / "styles"
    styles.mkdir(parents=True)
    (styles / "app.css").write_text("body { margin: 0; }\n", encoding="utf-8")
    (root / "base" / "main.ts.j2").write_text(
        "// {{ app.name }} v{{ app.version }}\nexport const routes = {{ routes | length }};\n",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "output"


@pytest.fixture
def registry() -> ComponentRegistry:
    return ComponentRegistry.default()


@pytest.fixture
def file_manager() -> FileManager:
    return FileManager()


@pytest.fixture
def cache() -> PerformanceCache:
    return PerformanceCache(CacheConfig())


@pytest.fixture
def options(template_dir: Path, output_dir: Path) -> CompilationOptions:
    return CompilationOptions(template_dir=template_dir, output_dir=output_dir)
