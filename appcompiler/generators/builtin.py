"""Access to the templates shipped inside the package."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from appcompiler.templates import TemplateEngine

BUILTIN_TEMPLATE_DIR = Path(__file__).parent / "templates"


@lru_cache(maxsize=None)
def builtin_template(name: str) -> str:
    """Return the source of the built-in template *name* (e.g. ``"route.tsx.j2"``)."""
    return (BUILTIN_TEMPLATE_DIR / name).read_text(encoding="utf-8")


def render_builtin(engine: TemplateEngine, name: str, context: dict[str, Any]) -> str:
    return engine.render(builtin_template(name), context)
