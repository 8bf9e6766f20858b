"""Performance cache for component resolutions, rendered templates and file info.

Three independent stores, each bounded in size and expiring entries after a
TTL.  Component entries are keyed by a content hash of the component node;
template entries by source path plus a hash of the render context and are
only served while the source file's mtime is unchanged; file entries by
path.  Entries can be dropped explicitly with
:meth:`PerformanceCache.invalidate_dependencies` when a source changes.

The cache is not thread-safe: use one instance per in-flight compilation.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import time
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, Field, ValidationError

from appcompiler.config import CacheConfig
from appcompiler.parser.models import ComponentNode
from appcompiler.utils import get_logger, save_json

logger = get_logger("cache")

_SNAPSHOT_VERSION = 1
_MAX_HASHED_FILE_SIZE = 1024 * 1024


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------

class ComponentCacheEntry(BaseModel):
    hash: str
    result: dict[str, Any]
    timestamp: float
    dependencies: list[str] = Field(default_factory=list)


class TemplateCacheEntry(BaseModel):
    hash: str
    context_hash: str
    content: str
    timestamp: float
    source_path: str
    source_mod_time: int


class FileCacheEntry(BaseModel):
    path: str
    hash: str = ""
    size: int = 0
    mod_time: int = 0
    exists: bool = True
    timestamp: float


_Entry = TypeVar("_Entry", ComponentCacheEntry, TemplateCacheEntry, FileCacheEntry)


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

def hash_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def component_key(node: ComponentNode, context: dict[str, Any] | None = None) -> str:
    """Content hash of a component node, optionally scoped by *context*.

    Key order of ``props`` matters: two nodes whose props differ only in
    insertion order hash differently.
    """
    projection: dict[str, Any] = {
        "type": node.type,
        "props": node.props,
        "children": [child.model_dump(mode="json") for child in node.children],
        "conditions": (
            [condition.model_dump(mode="json") for condition in node.conditions]
            if node.conditions is not None
            else None
        ),
    }
    if context is not None:
        projection["context"] = context
    return hash_text(json.dumps(projection, default=str))


def context_hash(context: dict[str, Any]) -> str:
    return hash_text(json.dumps(context, default=str))


def _mtime(path: str | Path) -> Optional[int]:
    try:
        return os.stat(path).st_mtime_ns
    except OSError:
        return None


# ---------------------------------------------------------------------------
# PerformanceCache
# ---------------------------------------------------------------------------

class PerformanceCache:
    """Size-bounded, TTL-expiring cache shared by the compiler's phases."""

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._components: dict[str, ComponentCacheEntry] = {}
        self._templates: dict[str, TemplateCacheEntry] = {}
        self._files: dict[str, FileCacheEntry] = {}
        self.hits = 0
        self.misses = 0
        self.initialized = False

    # -- Components --------------------------------------------------------

    def get_cached_component(
        self,
        node: ComponentNode,
        context: dict[str, Any] | None = None,
    ) -> Optional[dict[str, Any]]:
        """Return the cached resolution payload for *node*, or ``None``."""
        key = component_key(node, context)
        entry = self._components.get(key)
        if entry is None:
            return self._miss()
        if not self._is_fresh(entry.timestamp):
            del self._components[key]
            return self._miss()
        logger.debug("Cache hit for component: %s", node.type)
        self.hits += 1
        return dict(entry.result)

    def cache_component(
        self,
        node: ComponentNode,
        result: BaseModel | dict[str, Any],
        dependencies: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        key = component_key(node, context)
        payload = result.model_dump(mode="json") if isinstance(result, BaseModel) else dict(result)
        self._make_room(self._components, self.config.max_component_entries, key)
        self._components[key] = ComponentCacheEntry(
            hash=key,
            result=payload,
            timestamp=self._clock(),
            dependencies=[str(dep) for dep in dependencies or []],
        )
        logger.debug("Cached component resolution: %s", node.type)

    # -- Templates ---------------------------------------------------------

    def get_cached_template(self, template_path: str | Path, context: dict[str, Any]) -> Optional[str]:
        """Return rendered content for *template_path* with *context*, or ``None``.

        A hit requires the entry to be within its TTL and the source file's
        mtime to equal the one recorded when the entry was written.
        """
        key = f"{template_path}:{context_hash(context)}"
        entry = self._templates.get(key)
        if entry is None:
            return self._miss()
        mod_time = _mtime(template_path)
        if not self._is_fresh(entry.timestamp) or mod_time != entry.source_mod_time:
            del self._templates[key]
            return self._miss()
        logger.debug("Cache hit for template: %s", template_path)
        self.hits += 1
        return entry.content

    def cache_template(self, template_path: str | Path, context: dict[str, Any], content: str) -> None:
        mod_time = _mtime(template_path)
        if mod_time is None:
            logger.warning("Not caching template %s: source file is not readable", template_path)
            return
        digest = context_hash(context)
        key = f"{template_path}:{digest}"
        self._make_room(self._templates, self.config.max_template_entries, key)
        self._templates[key] = TemplateCacheEntry(
            hash=hash_text(content),
            context_hash=digest,
            content=content,
            timestamp=self._clock(),
            source_path=str(template_path),
            source_mod_time=mod_time,
        )

    # -- Files -------------------------------------------------------------

    def get_cached_file_info(self, path: str | Path) -> Optional[FileCacheEntry]:
        """Return cached info for *path* while it still describes the file."""
        key = str(path)
        entry = self._files.get(key)
        if entry is None:
            return self._miss()
        mod_time = _mtime(path)
        if self._is_fresh(entry.timestamp):
            if entry.exists and mod_time is not None and mod_time == entry.mod_time:
                self.hits += 1
                return entry
            if not entry.exists and mod_time is None:
                self.hits += 1
                return entry
        del self._files[key]
        return self._miss()

    def cache_file_info(self, path: str | Path) -> FileCacheEntry:
        """Stat *path* (hashing small files) and record the result."""
        key = str(path)
        try:
            stat = os.stat(path)
        except FileNotFoundError:
            entry = FileCacheEntry(path=key, exists=False, timestamp=self._clock())
        else:
            digest = ""
            if stat.st_size < _MAX_HASHED_FILE_SIZE and Path(path).is_file():
                digest = hashlib.sha256(Path(path).read_bytes()).hexdigest()
            entry = FileCacheEntry(
                path=key,
                hash=digest,
                size=stat.st_size,
                mod_time=stat.st_mtime_ns,
                exists=True,
                timestamp=self._clock(),
            )
        self._make_room(self._files, self.config.max_file_entries, key)
        self._files[key] = entry
        return entry

    # -- Maintenance -------------------------------------------------------

    def invalidate_dependencies(self, path: str | Path) -> int:
        """Drop every entry derived from *path*.  Returns the number removed."""
        target = str(path)
        stale_components = [k for k, e in self._components.items() if target in e.dependencies]
        stale_templates = [k for k, e in self._templates.items() if e.source_path == target]
        stale_files = [k for k, e in self._files.items() if e.path == target]

        for key in stale_components:
            del self._components[key]
        for key in stale_templates:
            del self._templates[key]
        for key in stale_files:
            del self._files[key]

        removed = len(stale_components) + len(stale_templates) + len(stale_files)
        if removed:
            logger.debug("Invalidated %d cache entries depending on %s", removed, target)
        return removed

    def clear(self) -> None:
        self._components.clear()
        self._templates.clear()
        self._files.clear()
        self.hits = 0
        self.misses = 0

    def get_stats(self) -> dict[str, Any]:
        return {
            "components": {"size": len(self._components), "max": self.config.max_component_entries},
            "templates": {"size": len(self._templates), "max": self.config.max_template_entries},
            "files": {"size": len(self._files), "max": self.config.max_file_entries},
            "hits": self.hits,
            "misses": self.misses,
        }

    # -- Persistence -------------------------------------------------------

    async def initialize(self) -> None:
        """Load the on-disk snapshot when persistence is enabled.

        Expired or malformed entries are skipped.  Failures are logged and
        leave the cache empty.
        """
        self.initialized = True
        if not self.config.persist_to_disk:
            return
        snapshot_path = self.config.snapshot_path
        try:
            await asyncio.to_thread(snapshot_path.parent.mkdir, parents=True, exist_ok=True)
            if not snapshot_path.exists():
                return
            raw = await asyncio.to_thread(snapshot_path.read_text, encoding="utf-8")
            data = json.loads(raw)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load cache from %s: %s", snapshot_path, exc)
            return

        if not isinstance(data, dict) or data.get("version") != _SNAPSHOT_VERSION:
            logger.warning("Ignoring cache snapshot with unsupported version at %s", snapshot_path)
            return

        self._components = self._load_store(data.get("components"), ComponentCacheEntry)
        self._templates = self._load_store(data.get("templates"), TemplateCacheEntry)
        self._files = self._load_store(data.get("files"), FileCacheEntry)
        logger.info(
            "Performance cache loaded from %s (%d components, %d templates, %d files)",
            snapshot_path,
            len(self._components),
            len(self._templates),
            len(self._files),
        )

    async def save_to_disk(self) -> None:
        if not self.config.persist_to_disk:
            return
        payload = {
            "version": _SNAPSHOT_VERSION,
            "components": {k: e.model_dump(mode="json") for k, e in self._components.items()},
            "templates": {k: e.model_dump(mode="json") for k, e in self._templates.items()},
            "files": {k: e.model_dump(mode="json") for k, e in self._files.items()},
        }
        try:
            await save_json(payload, self.config.snapshot_path)
        except OSError as exc:
            logger.warning("Failed to save cache to %s: %s", self.config.snapshot_path, exc)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _miss(self) -> None:
        self.misses += 1
        return None

    def _is_fresh(self, timestamp: float) -> bool:
        return self._clock() - timestamp < self.config.ttl_seconds

    def _make_room(self, store: dict[str, _Entry], capacity: int, key: str) -> None:
        if key in store or len(store) < capacity:
            return
        count = max(1, capacity // 10, len(store) - capacity + 1)
        oldest = sorted(store, key=lambda k: store[k].timestamp)[:count]
        for stale in oldest:
            del store[stale]
        logger.debug("Evicted %d cache entries", len(oldest))

    def _load_store(self, raw: Any, model: type[_Entry]) -> dict[str, _Entry]:
        if not isinstance(raw, dict):
            return {}
        store: dict[str, _Entry] = {}
        for key, value in raw.items():
            try:
                entry = model.model_validate(value)
            except ValidationError:
                continue
            if self._is_fresh(entry.timestamp):
                store[key] = entry
        return store
