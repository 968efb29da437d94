# buckreg/config.py
# -*- coding: utf-8 -*-
"""
buckreg central configuration loader

Features:
- Read YAML/TOML/JSON config from multiple locations (explicit, env override, cwd, user, system)
- Merge with authoritative DEFAULTS, normalize/coerce types (human sizes, registry path)
- Layer Buck-style INI files (.buckconfig, then .buckconfig.local) over the [buckos] section
- Layer command-line "section.key=value" overrides last
- Validate structure and types, warn or error (fatal optional)
- Provide typed access via Config dataclass (get_config(), read_config())
- Thread-safe load/reload and watcher notification
"""

from __future__ import annotations
import os
import json
import logging
import threading
import configparser
from pathlib import Path
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import toml
import yaml

# logger (plain stdlib: buckreg.logging is configured from this module)
logger = logging.getLogger("buckreg.config")

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Any] = {
    "buckos": {
        # any value other than the literal "false" keeps the registry active
        "patch_registry_enabled": "",
    },
    "registry": {
        "path": "patches/registry.yaml",
        "watch": False,
    },
    "logging": {
        "level": "INFO",
        "color": True,
        "file": None,
        "max_size": "10M",  # human readable
        "backups": 5,
        "jsonl": None,
        "module_levels": {},
    },
}

# Buck-style INI files layered over the file config, later wins
BUCKCONFIG_FILES = (".buckconfig", ".buckconfig.local")
# only these INI sections are read from .buckconfig
BUCKCONFIG_SECTIONS = ("buckos",)

# ----------------------------
# Dataclass to hold config
# ----------------------------
@dataclass
class Config:
    raw: Dict[str, Any] = field(default_factory=dict)     # values loaded from file (if any)
    merged: Dict[str, Any] = field(default_factory=dict)  # merged with DEFAULTS and layers
    root: Path = field(default_factory=Path.cwd)          # project root used for relative paths
    source: Optional[Path] = None                         # config file that was read, if any

    def get(self, path: str, default: Any = None) -> Any:
        """Dot-separated getter for merged config."""
        parts = path.split(".") if path else []
        cur: Any = self.merged
        for p in parts:
            if isinstance(cur, dict) and p in cur:
                cur = cur[p]
            else:
                return default
        return cur

    def read(self, section: str, key: str, default: str = "") -> str:
        """Buck-style read_config: always a string, default when unset."""
        val = self.get(f"{section}.{key}")
        if val is None:
            return default
        return str(val)

    def as_dict(self) -> Dict[str, Any]:
        return deepcopy(self.merged)

# ----------------------------
# Module state
# ----------------------------
_CONFIG: Optional[Config] = None
_CONFIG_LOCK = threading.RLock()
_WATCH_CALLBACKS: List[Callable[[Config], None]] = []
_LAST_LOAD_ARGS: Dict[str, Any] = {}

# ----------------------------
# Utilities
# ----------------------------
def _human_size_to_bytes(val: Union[str, int, None]) -> Optional[int]:
    if val is None:
        return None
    if isinstance(val, int):
        return val
    s = str(val).strip().upper()
    units = {"KB": 1024, "MB": 1024**2, "GB": 1024**3, "K": 1024, "M": 1024**2, "G": 1024**3}
    try:
        for suffix, mul in units.items():
            if s.endswith(suffix):
                num = float(s[: -len(suffix)].strip())
                return int(num * mul)
        return int(float(s))
    except ValueError:
        logger.warning("config: cannot parse human size '%s'", val)
        return None

def _expand_path(val: Optional[str], root: Path) -> Optional[str]:
    if val is None:
        return None
    p = Path(os.path.expanduser(os.path.expandvars(str(val))))
    if not p.is_absolute():
        p = root / p
    return str(p)

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    res = deepcopy(a)
    for k, v in b.items():
        if k in res and isinstance(res[k], dict) and isinstance(v, dict):
            res[k] = _deep_merge(res[k], v)
        else:
            res[k] = deepcopy(v)
    return res

def _find_candidates(explicit: Optional[str], root: Path) -> List[Path]:
    candidates: List[Path] = []
    env = os.environ.get("BUCKREG_CONFIG")
    if explicit:
        candidates.append(Path(explicit))
    if env:
        candidates.append(Path(env))
    candidates.extend([
        root / "buckreg.yaml",
        root / "buckreg.yml",
        root / "buckreg.toml",
        root / "buckreg.json",
        Path.home() / ".config" / "buckreg" / "config.yaml",
        Path("/etc") / "buckreg" / "config.yaml",
    ])
    return candidates

def parse_structured(text: str, suffix: str) -> Any:
    """Parse YAML/TOML/JSON text by file suffix; unknown suffixes are read as YAML."""
    suffix = suffix.lower()
    if suffix == ".toml":
        return toml.loads(text)
    if suffix == ".json":
        return json.loads(text)
    return yaml.safe_load(text)

def _load_file(path: Path) -> Optional[Dict[str, Any]]:
    if not path.exists():
        return None
    try:
        txt = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("config: failed reading %s: %s", path, e)
        return None
    try:
        data = parse_structured(txt, path.suffix)
    except (yaml.YAMLError, toml.TomlDecodeError, json.JSONDecodeError) as e:
        logger.error("config: failed parsing %s: %s", path, e)
        return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error("config: %s does not contain a mapping", path)
        return None
    return data

def _load_buckconfig(path: Path) -> Dict[str, Dict[str, str]]:
    """Read the sections we care about from a Buck INI file."""
    if not path.is_file():
        return {}
    parser = configparser.ConfigParser(interpolation=None, strict=False, inline_comment_prefixes=("#", ";"))
    try:
        parser.read(path, encoding="utf-8")
    except configparser.Error as e:
        logger.warning("config: cannot parse %s: %s", path, e)
        return {}
    out: Dict[str, Dict[str, str]] = {}
    for section in BUCKCONFIG_SECTIONS:
        if parser.has_section(section):
            out[section] = dict(parser.items(section))
    return out

def parse_overrides(items: Iterable[str]) -> Dict[str, Any]:
    """Turn ["section.key=value", ...] into a nested dict."""
    out: Dict[str, Any] = {}
    for item in items:
        if "=" not in item:
            raise ValueError(f"config override must be section.key=value, got {item!r}")
        path, value = item.split("=", 1)
        parts = [p for p in path.strip().split(".") if p]
        if len(parts) < 2:
            raise ValueError(f"config override must name a section and a key, got {item!r}")
        ref = out
        for p in parts[:-1]:
            ref = ref.setdefault(p, {})
        ref[parts[-1]] = value.strip()
    return out

def _coerce_setting(val: Any) -> str:
    # YAML/TOML hand us real booleans; Buck only ever sees their lowercase spelling
    if val is None:
        return ""
    if isinstance(val, bool):
        return "true" if val else "false"
    return str(val)

def _normalize_and_coerce(cfg: Dict[str, Any], root: Path) -> Dict[str, Any]:
    """Normalize the registry path, convert human sizes and coerce basic types."""
    out = deepcopy(cfg)
    buckos = out.get("buckos")
    if isinstance(buckos, dict):
        buckos["patch_registry_enabled"] = _coerce_setting(buckos.get("patch_registry_enabled"))

    registry = out.get("registry")
    if isinstance(registry, dict):
        if isinstance(registry.get("path"), str) and registry["path"]:
            registry["path"] = _expand_path(registry["path"], root)
        w = registry.get("watch")
        if isinstance(w, str):
            registry["watch"] = w.strip().lower() in ("1", "true", "yes", "on")

    log_cfg = out.get("logging")
    if isinstance(log_cfg, dict):
        if "max_size" in log_cfg:
            ms = _human_size_to_bytes(log_cfg["max_size"])
            if ms is not None:
                log_cfg["max_size_bytes"] = ms
        for key in ("file", "jsonl"):
            if isinstance(log_cfg.get(key), str) and log_cfg[key]:
                log_cfg[key] = _expand_path(log_cfg[key], root)
    return out

def _validate_structure(cfg: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Return (ok, issues_list). Non-fatal warnings unless called with fatal=True in load."""
    issues: List[str] = []
    for k in cfg.keys():
        if k not in DEFAULTS:
            issues.append(f"Unknown top-level config key: {k}")
    for section in DEFAULTS:
        if section in cfg and not isinstance(cfg[section], dict):
            issues.append(f"{section} must be a mapping")
    registry = cfg.get("registry")
    if isinstance(registry, dict):
        p = registry.get("path")
        if p is not None and not isinstance(p, str):
            issues.append("registry.path must be a string")
        if not isinstance(registry.get("watch", False), bool):
            issues.append("registry.watch must be a boolean")
    log_cfg = cfg.get("logging")
    if isinstance(log_cfg, dict):
        levels = log_cfg.get("module_levels")
        if levels is not None and not isinstance(levels, dict):
            issues.append("logging.module_levels must be a mapping")
        try:
            int(log_cfg.get("backups", 0))
        except (TypeError, ValueError):
            issues.append("logging.backups must be an integer")
    return (len(issues) == 0, issues)

# ----------------------------
# Loading / reloading
# ----------------------------
def _find_path(explicit: Optional[str], root: Path) -> Optional[Path]:
    for p in _find_candidates(explicit, root):
        if p and p.exists():
            return p
    return None

def load(explicit_path: Optional[str] = None,
         *,
         root: Optional[Union[str, Path]] = None,
         overrides: Optional[Iterable[str]] = None,
         fatal: bool = False) -> Config:
    """
    Load and merge config. If fatal=True then structural validation failures raise.
    Layering order: DEFAULTS < config file < .buckconfig < .buckconfig.local < overrides.
    Returns Config object.
    """
    global _CONFIG, _LAST_LOAD_ARGS
    with _CONFIG_LOCK:
        root_path = Path(root) if root is not None else Path.cwd()
        override_items = list(overrides or [])
        cfg_path = _find_path(explicit_path, root_path)
        raw: Dict[str, Any] = {}
        if cfg_path:
            data = _load_file(cfg_path)
            if data is None:
                logger.warning("config: file found but could not be parsed: %s", cfg_path)
                if fatal:
                    raise ValueError(f"config: cannot parse {cfg_path}")
            else:
                raw = data
        merged = _deep_merge(DEFAULTS, raw)
        for name in BUCKCONFIG_FILES:
            layer = _load_buckconfig(root_path / name)
            if layer:
                logger.debug("config: layering %s", root_path / name)
                merged = _deep_merge(merged, layer)
        if override_items:
            merged = _deep_merge(merged, parse_overrides(override_items))
        normalized = _normalize_and_coerce(merged, root_path)
        ok, issues = _validate_structure(normalized)
        if not ok:
            msg = f"config: validation issues: {issues}"
            if fatal:
                logger.error(msg)
                raise ValueError(msg)
            logger.warning(msg)
        cfg_obj = Config(raw=raw, merged=normalized, root=root_path, source=cfg_path)
        _CONFIG = cfg_obj
        _LAST_LOAD_ARGS = {"explicit_path": explicit_path, "root": root_path, "overrides": override_items}
        logger.debug("config: loaded merged config (from=%s)", str(cfg_path) if cfg_path else "<defaults>")
        return cfg_obj

def get_config() -> Config:
    global _CONFIG
    with _CONFIG_LOCK:
        if _CONFIG is None:
            _CONFIG = load()
        return _CONFIG

def reload() -> Config:
    """Re-run load() with the arguments of the previous load and notify watchers."""
    with _CONFIG_LOCK:
        args = dict(_LAST_LOAD_ARGS)
    cfg = load(args.get("explicit_path"), root=args.get("root"), overrides=args.get("overrides"))
    _notify_watchers(cfg)
    return cfg

def reset() -> None:
    """Drop the cached config; the next get_config() loads again."""
    global _CONFIG, _LAST_LOAD_ARGS
    with _CONFIG_LOCK:
        _CONFIG = None
        _LAST_LOAD_ARGS = {}

def read_config(section: str, key: str, default: str = "") -> str:
    return get_config().read(section, key, default)

# ----------------------------
# Watcher API
# ----------------------------
def register_watch_callback(cb: Callable[[Config], None]) -> None:
    with _CONFIG_LOCK:
        if cb not in _WATCH_CALLBACKS:
            _WATCH_CALLBACKS.append(cb)

def unregister_watch_callback(cb: Callable[[Config], None]) -> None:
    with _CONFIG_LOCK:
        if cb in _WATCH_CALLBACKS:
            _WATCH_CALLBACKS.remove(cb)

def _notify_watchers(cfg: Config) -> None:
    with _CONFIG_LOCK:
        cbs = list(_WATCH_CALLBACKS)
    for cb in cbs:
        try:
            cb(cfg)
        except Exception:
            logger.exception("config: watcher callback error")
