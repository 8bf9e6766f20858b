"""appcompiler configuration.

Centralised, typed configuration for the compiler.  All settings use Pydantic
v2 models so they are validated at construction time and can be serialised
to/from JSON or environment variables without boiler-plate.

``CompilerConfig`` is the long-lived, user-facing configuration (CLI, env,
config files).  ``CompilationOptions`` is the immutable per-run record handed
to every pipeline phase.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class CacheConfig(BaseModel):
    """Sizing, expiry and persistence for the performance cache."""

    max_component_entries: int = Field(default=1000, ge=1)
    max_template_entries: int = Field(default=500, ge=1)
    max_file_entries: int = Field(default=2000, ge=1)
    ttl_seconds: float = Field(default=3600.0, gt=0, description="Entry lifetime in seconds")
    persist_to_disk: bool = Field(default=False)
    cache_dir: Path = Field(default=Path(".cache"))

    @property
    def snapshot_path(self) -> Path:
        """File holding the serialised cache snapshot."""
        return self.cache_dir / "cache.json"


class CompilationOptions(BaseModel):
    """Options for a single ``Compiler.compile`` run.  Frozen."""
    model_config = ConfigDict(frozen=True)

    template_dir: Path
    output_dir: Path
    validate_props: bool = True
    validate_templates: bool = True
    generate_layouts: bool = True
    generate_middleware: bool = True
    use_typescript: bool = True
    optimize: bool = True
    strict: bool = Field(
        default=True,
        description="Fail on unknown component types and dangling references",
    )
    throw_on_error: bool = False
    overwrite: bool = True
    dry_run: bool = False
    verbose: bool = False


class CompilerConfig(BaseModel):
    """Global compiler configuration.

    Instances are typically created once by the CLI entry point and turned
    into ``CompilationOptions`` for each run.
    """

    output_dir: Path = Field(default=Path("./output"))
    template_dir: Path = Field(default=Path("./templates"))
    registry_path: Optional[Path] = Field(
        default=None, description="JSON/YAML component registry; built-in set when omitted"
    )
    strict: bool = True
    validate_props: bool = True
    validate_templates: bool = True
    generate_layouts: bool = True
    generate_middleware: bool = True
    use_typescript: bool = True
    optimize: bool = True
    overwrite: bool = True
    dry_run: bool = False
    verbose: bool = False
    cache: CacheConfig = Field(default_factory=CacheConfig)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def base_template_dir(self) -> Path:
        """Directory whose contents seed every generated project."""
        return self.template_dir / "base"

    @property
    def route_template_path(self) -> Path:
        """Optional user-supplied route template."""
        return self.template_dir / "routes" / "route.tsx.j2"

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def to_options(self, **overrides: Any) -> CompilationOptions:
        """Build the immutable per-run options from this configuration."""
        values: dict[str, Any] = {
            "template_dir": self.template_dir,
            "output_dir": self.output_dir,
            "validate_props": self.validate_props,
            "validate_templates": self.validate_templates,
            "generate_layouts": self.generate_layouts,
            "generate_middleware": self.generate_middleware,
            "use_typescript": self.use_typescript,
            "optimize": self.optimize,
            "strict": self.strict,
            "overwrite": self.overwrite,
            "dry_run": self.dry_run,
            "verbose": self.verbose,
        }
        values.update(overrides)
        return CompilationOptions(**values)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "CompilerConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "CompilerConfig":
        """Build a ``CompilerConfig`` from environment variables.

        Recognised variables (all optional):
            APPC_OUTPUT_DIR, APPC_TEMPLATE_DIR, APPC_REGISTRY, APPC_STRICT,
            APPC_DRY_RUN, APPC_VERBOSE, APPC_CACHE_DIR, APPC_CACHE_TTL,
            APPC_CACHE_PERSIST.
        """
        cache_kwargs: dict[str, Any] = {}
        if os.environ.get("APPC_CACHE_DIR"):
            cache_kwargs["cache_dir"] = Path(os.environ["APPC_CACHE_DIR"])
        if os.environ.get("APPC_CACHE_TTL"):
            cache_kwargs["ttl_seconds"] = float(os.environ["APPC_CACHE_TTL"])
        if os.environ.get("APPC_CACHE_PERSIST"):
            cache_kwargs["persist_to_disk"] = _env_flag("APPC_CACHE_PERSIST")

        kwargs: dict[str, Any] = {
            "output_dir": Path(os.environ.get("APPC_OUTPUT_DIR", "./output")),
            "template_dir": Path(os.environ.get("APPC_TEMPLATE_DIR", "./templates")),
            "cache": CacheConfig(**cache_kwargs),
        }
        if os.environ.get("APPC_REGISTRY"):
            kwargs["registry_path"] = Path(os.environ["APPC_REGISTRY"])
        for flag in ("strict", "dry_run", "verbose"):
            env_name = f"APPC_{flag.upper()}"
            if os.environ.get(env_name):
                kwargs[flag] = _env_flag(env_name)

        return cls(**kwargs)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}
