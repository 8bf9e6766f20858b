"""Unit tests for configuration models (appcompiler.config).

Tests cover:
- CacheConfig defaults, validation, snapshot path
- CompilationOptions defaults and immutability
- CompilerConfig derived paths, to_options, save/load, from_env
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from appcompiler.config import CacheConfig, CompilationOptions, CompilerConfig


# ---------------------------------------------------------------------------
# CacheConfig
# ---------------------------------------------------------------------------


class TestCacheConfig:
    @pytest.mark.unit
    def test_defaults(self):
        config = CacheConfig()
        assert config.max_component_entries == 1000
        assert config.max_template_entries == 500
        assert config.max_file_entries == 2000
        assert config.ttl_seconds == 3600.0
        assert config.persist_to_disk is False
        assert config.snapshot_path == Path(".cache") / "cache.json"

    @pytest.mark.unit
    def test_zero_capacity_rejected(self):
        with pytest.raises(ValidationError):
            CacheConfig(max_component_entries=0)

    @pytest.mark.unit
    def test_non_positive_ttl_rejected(self):
        with pytest.raises(ValidationError):
            CacheConfig(ttl_seconds=0)


# ---------------------------------------------------------------------------
# CompilationOptions
# ---------------------------------------------------------------------------


class TestCompilationOptions:
    @pytest.mark.unit
    def test_defaults(self, tmp_path: Path):
        options = CompilationOptions(template_dir=tmp_path, output_dir=tmp_path / "out")
        assert options.strict is True
        assert options.overwrite is True
        assert options.dry_run is False
        assert options.throw_on_error is False
        assert options.use_typescript is True

    @pytest.mark.unit
    def test_frozen(self, tmp_path: Path):
        options = CompilationOptions(template_dir=tmp_path, output_dir=tmp_path)
        with pytest.raises(ValidationError):
            options.strict = False

    @pytest.mark.unit
    def test_directories_required(self):
        with pytest.raises(ValidationError):
            CompilationOptions()


# ---------------------------------------------------------------------------
# CompilerConfig
# ---------------------------------------------------------------------------


class TestCompilerConfig:
    @pytest.mark.unit
    def test_derived_paths(self, tmp_path: Path):
        config = CompilerConfig(template_dir=tmp_path)
        assert config.base_template_dir == tmp_path / "base"
        assert config.route_template_path == tmp_path / "routes" / "route.tsx.j2"

    @pytest.mark.unit
    def test_to_options(self, tmp_path: Path):
        config = CompilerConfig(output_dir=tmp_path / "out", template_dir=tmp_path, strict=False)

        options = config.to_options(dry_run=True)

        assert options.output_dir == tmp_path / "out"
        assert options.template_dir == tmp_path
        assert options.strict is False
        assert options.dry_run is True

    @pytest.mark.unit
    def test_save_and_load(self, tmp_path: Path):
        config = CompilerConfig(
            output_dir=tmp_path / "out",
            registry_path=tmp_path / "registry.yaml",
            cache=CacheConfig(ttl_seconds=60, persist_to_disk=True),
        )

        path = config.save(tmp_path / "nested" / "config.json")
        loaded = CompilerConfig.load(path)

        assert loaded == config
        assert loaded.cache.ttl_seconds == 60

    @pytest.mark.unit
    def test_from_env_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = CompilerConfig.from_env()
        assert config.output_dir == Path("./output")
        assert config.template_dir == Path("./templates")
        assert config.registry_path is None
        assert config.strict is True

    @pytest.mark.unit
    def test_from_env_overrides(self, tmp_path: Path):
        env = {
            "APPC_OUTPUT_DIR": str(tmp_path / "out"),
            "APPC_TEMPLATE_DIR": str(tmp_path / "tpl"),
            "APPC_REGISTRY": str(tmp_path / "registry.json"),
            "APPC_STRICT": "false",
            "APPC_DRY_RUN": "yes",
            "APPC_CACHE_DIR": str(tmp_path / "cache"),
            "APPC_CACHE_TTL": "120",
            "APPC_CACHE_PERSIST": "1",
        }
        with patch.dict(os.environ, env, clear=True):
            config = CompilerConfig.from_env()

        assert config.output_dir == tmp_path / "out"
        assert config.template_dir == tmp_path / "tpl"
        assert config.registry_path == tmp_path / "registry.json"
        assert config.strict is False
        assert config.dry_run is True
        assert config.cache.cache_dir == tmp_path / "cache"
        assert config.cache.ttl_seconds == 120.0
        assert config.cache.persist_to_disk is True
