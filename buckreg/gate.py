# buckreg/gate.py
"""
On/off switch for the patch registry.

Usage in .buckconfig (optional):
    [buckos]
    patch_registry_enabled = false   # To disable all registry patches

Only the exact, lowercase string "false" disables the registry. Anything
else, including an unset key, "FALSE" or "0", leaves it active.
"""

from __future__ import annotations

from typing import Optional

from buckreg.config import Config, get_config

SECTION = "buckos"
KEY = "patch_registry_enabled"
DISABLE_SENTINEL = "false"


class ConfigGate:
    """Holds the setting value seen at construction, so one build run gets one answer."""

    __slots__ = ("_value",)

    def __init__(self, value: Optional[str] = ""):
        self._value = "" if value is None else value

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None) -> "ConfigGate":
        cfg = cfg if cfg is not None else get_config()
        return cls(cfg.read(SECTION, KEY, ""))

    @property
    def value(self) -> str:
        return self._value

    def is_active(self) -> bool:
        return self._value != DISABLE_SENTINEL

    def __repr__(self):
        return f"ConfigGate(value={self._value!r}, active={self.is_active()})"
