# buckreg/logging.py
# -*- coding: utf-8 -*-
"""
buckreg logging

Features:
 - Configured from buckreg.config (re-applied on config reload)
 - Console color formatter (stderr, so command output on stdout stays clean)
 - Rotating file handler
 - JSONL log handler
 - Module-level configurable log levels (module_levels)
"""

from __future__ import annotations
import sys
import json
import time
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from buckreg.config import Config, get_config, register_watch_callback

_logger = logging.getLogger("buckreg.logging")

ROOT_LOGGER_NAME = "buckreg.engine"
DEFAULT_FORMAT = "[%(asctime)s] [%(levelname)s] [%(buckreg_module)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(buckreg_module)s] %(message)s"

# ----------------------
# Color formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[37m",    # light gray
        logging.INFO: "\033[36m",     # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[41;37m", # white on red
    }
    RESET = "\033[0m"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record):
        msg = super().format(record)
        if self.color:
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{msg}{self.RESET}"
        return msg

# ----------------------
# JSONL formatter
# ----------------------
class JSONLineFormatter(logging.Formatter):
    def format(self, record):
        obj = {
            "timestamp": time.time(),
            "level": record.levelname,
            "module": getattr(record, "buckreg_module", record.name),
            "message": record.getMessage(),
        }
        if record.exc_info:
            obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False)

# ----------------------
# Module-level filter for per-module levels
# ----------------------
class ModuleLevelFilter(logging.Filter):
    def __init__(self, module_levels: Optional[Dict[str, str]] = None):
        super().__init__()
        self.module_levels = {m: getattr(logging, str(lvl).upper(), logging.INFO) for m, lvl in (module_levels or {}).items()}

    def filter(self, record):
        mod = getattr(record, "buckreg_module", None)
        if mod and mod in self.module_levels:
            return record.levelno >= self.module_levels[mod]
        return True

# ----------------------
# Console handler
# ----------------------
class StderrHandler(logging.StreamHandler):
    """StreamHandler that writes to whatever sys.stderr is at emit time."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass

# ----------------------
# BuckregLogger (singleton)
# ----------------------
class BuckregLogger:
    _instance = None
    _singleton_lock = threading.Lock()

    def __new__(cls):
        with cls._singleton_lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._inited = False
        return cls._instance

    def __init__(self):
        if self._inited:
            return
        self._lock = threading.RLock()
        self._root = logging.getLogger(ROOT_LOGGER_NAME)
        self._root.propagate = False
        self._handlers: List[logging.Handler] = []
        self._module_filter: Optional[ModuleLevelFilter] = None
        self._configured = False
        register_watch_callback(self._on_config_reload)
        self._inited = True

    def _on_config_reload(self, cfg: Config) -> None:
        self._apply_config(cfg.get("logging", {}) or {})

    def _ensure_configured(self) -> None:
        if self._configured:
            return
        with self._lock:
            if not self._configured:
                self._apply_config(get_config().get("logging", {}) or {})

    # ----------------------
    # Configuration (apply/reload)
    # ----------------------
    def _apply_config(self, cfg: Dict[str, Any]) -> None:
        with self._lock:
            for h in self._handlers:
                self._root.removeHandler(h)
                h.close()
            self._handlers.clear()
            if self._module_filter is not None:
                self._root.removeFilter(self._module_filter)

            self._module_filter = ModuleLevelFilter(cfg.get("module_levels") or {})
            self._root.addFilter(self._module_filter)

            level = getattr(logging, str(cfg.get("level", "INFO")).upper(), logging.INFO)
            fmt = cfg.get("format") or DEFAULT_FORMAT
            datefmt = cfg.get("datefmt", "%H:%M:%S")

            ch = StderrHandler()
            ch.setLevel(level)
            ch.setFormatter(ColorFormatter(fmt, datefmt=datefmt, color=bool(cfg.get("color", True)) and sys.stderr.isatty()))
            self._root.addHandler(ch)
            self._handlers.append(ch)

            if cfg.get("file"):
                try:
                    file_path = Path(cfg["file"]).expanduser()
                    file_path.parent.mkdir(parents=True, exist_ok=True)
                    max_bytes = cfg.get("max_size_bytes") or 10 * 1024 * 1024
                    fh = logging.handlers.RotatingFileHandler(str(file_path), maxBytes=max_bytes, backupCount=int(cfg.get("backups", 5)), encoding="utf-8")
                    fh.setLevel(getattr(logging, str(cfg.get("file_level", "DEBUG")).upper(), logging.DEBUG))
                    fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=datefmt))
                    self._root.addHandler(fh)
                    self._handlers.append(fh)
                except OSError:
                    _logger.exception("logging: failed to configure file handler")

            if cfg.get("jsonl"):
                try:
                    path = Path(cfg["jsonl"]).expanduser()
                    path.parent.mkdir(parents=True, exist_ok=True)
                    jh = logging.FileHandler(str(path), encoding="utf-8")
                    jh.setLevel(logging.DEBUG)
                    jh.setFormatter(JSONLineFormatter())
                    self._root.addHandler(jh)
                    self._handlers.append(jh)
                except OSError:
                    _logger.exception("logging: failed to configure jsonl handler")

            # root passes everything; handlers filter
            self._root.setLevel(logging.DEBUG)
            self._configured = True

    def reload_config(self) -> None:
        """Re-read logging settings from the current central config."""
        self._apply_config(get_config().get("logging", {}) or {})

    # ----------------------
    # Public API
    # ----------------------
    def get_logger(self, module_name: str) -> logging.LoggerAdapter:
        """Return a LoggerAdapter that injects 'buckreg_module' into records."""
        self._ensure_configured()
        return logging.LoggerAdapter(self._root, {"buckreg_module": module_name})

# ----------------------
# Public factory
# ----------------------
_GLOBAL_LOGGER = BuckregLogger()

def get_logger(module: str) -> logging.LoggerAdapter:
    return _GLOBAL_LOGGER.get_logger(module)

def reload_config() -> None:
    _GLOBAL_LOGGER.reload_config()
