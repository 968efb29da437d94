# buckreg/registry.py
"""
Private patch registry.

Maps package names to override records. Users keep a private registry file
(gitignored, e.g. patches/registry.yaml) to apply custom patches without
modifying the shared recipe set:

    musl:
      patches: ["//patches/core/musl:fix-locale.patch"]
    curl:
      patches: ["//patches/network/curl:internal-ca.patch"]
      env: {CFLAGS: "-DCUSTOM_FLAG"}
      extra_configure_args: "--with-custom-ca-bundle=/etc/ssl/certs/ca.pem"
      pre_configure: "sed -i 's/old/new/' configure.ac"

A missing registry file is the committed default: an empty registry.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from types import MappingProxyType
from collections.abc import Mapping
from typing import Any, Iterator, Optional, Union

import toml
import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from buckreg.config import Config, get_config, parse_structured
from buckreg.logging import get_logger
from buckreg.recipe import OverrideRecord
from buckreg.schema import RegistryError, validate_table

logger = get_logger("registry")


class OverrideRegistry(Mapping[str, OverrideRecord]):
    """Read-only package name -> OverrideRecord mapping."""

    __slots__ = ("_entries", "source")

    def __init__(self, entries: Optional[Mapping[str, OverrideRecord]] = None, source: Optional[str] = None):
        self._entries = MappingProxyType(dict(entries or {}))
        self.source = source

    @classmethod
    def from_table(cls, table: Any, source: Optional[str] = None) -> "OverrideRegistry":
        """Validate a raw operator table and build a registry from it."""
        return cls(validate_table(table, source=source), source=source)

    @classmethod
    def empty(cls) -> "OverrideRegistry":
        return cls()

    def __getitem__(self, name: str) -> OverrideRecord:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self):
        return f"OverrideRegistry({len(self)} entries, source={self.source!r})"


def load_registry(path: Union[str, Path], missing_ok: bool = True) -> OverrideRegistry:
    """
    Read and validate a registry file (YAML, TOML or JSON by suffix).
    A missing file yields an empty registry unless missing_ok is False.
    """
    p = Path(path)
    if not p.exists():
        if missing_ok:
            logger.debug("registry: %s not found, using empty registry", p)
            return OverrideRegistry(source=str(p))
        raise RegistryError(f"registry file not found: {p}")
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise RegistryError(f"cannot read registry {p}: {e}") from e
    try:
        table = parse_structured(text, p.suffix)
    except (yaml.YAMLError, toml.TomlDecodeError, json.JSONDecodeError) as e:
        raise RegistryError(f"cannot parse registry {p}: {e}") from e
    registry = OverrideRegistry.from_table(table, source=str(p))
    logger.info("registry: loaded %d entries from %s", len(registry), p)
    return registry


# ---------------------------------------------------------------------
# snapshot holder with optional hot reload
# ---------------------------------------------------------------------
class _RegistryFileHandler(FileSystemEventHandler):
    def __init__(self, store: "RegistryStore"):
        super().__init__()
        self._store = store

    def _maybe_reload(self, event) -> None:
        paths = [getattr(event, "src_path", None), getattr(event, "dest_path", None)]
        if any(p and Path(p) == self._store.path for p in paths):
            logger.info("registry: detected change in %s, reloading", self._store.path)
            self._store.reload()

    def on_modified(self, event):
        self._maybe_reload(event)

    def on_created(self, event):
        self._maybe_reload(event)

    def on_moved(self, event):
        self._maybe_reload(event)


class RegistryStore:
    """
    Holds the current registry snapshot for a registry file.

    Callers take snapshot() once per build invocation and resolve every
    package against that object. reload() swaps in a new registry; if the
    file is broken the previous snapshot stays in place.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).absolute()
        self._lock = threading.RLock()
        self._current = load_registry(self.path)
        self._observer: Optional[Observer] = None

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None) -> "RegistryStore":
        """Store for registry.path; starts watching when registry.watch is set."""
        cfg = cfg if cfg is not None else get_config()
        store = cls(cfg.get("registry.path"))
        if cfg.get("registry.watch", False):
            store.watch()
        return store

    def snapshot(self) -> OverrideRegistry:
        with self._lock:
            return self._current

    def reload(self) -> bool:
        try:
            fresh = load_registry(self.path)
        except RegistryError as e:
            logger.error("registry: keeping previous snapshot, %s", e)
            return False
        with self._lock:
            self._current = fresh
        return True

    def watch(self) -> None:
        """Start a watchdog observer on the registry's directory."""
        with self._lock:
            if self._observer is not None:
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            observer = Observer()
            observer.schedule(_RegistryFileHandler(self), str(self.path.parent), recursive=False)
            observer.daemon = True
            observer.start()
            self._observer = observer
            logger.info("registry: watching %s", self.path)

    def stop(self) -> None:
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.stop()
