# buckreg/resolver.py
"""
Registry lookups filtered through the on/off gate.

An unregistered package is the normal case, not an error: resolve() simply
returns None.
"""

from __future__ import annotations

from typing import Optional

from buckreg.gate import ConfigGate
from buckreg.logging import get_logger
from buckreg.recipe import OverrideRecord
from buckreg.registry import OverrideRegistry

logger = get_logger("resolver")


class OverrideResolver:
    def __init__(self, registry: OverrideRegistry, gate: Optional[ConfigGate] = None):
        self.registry = registry
        self.gate = gate if gate is not None else ConfigGate.from_config()

    def effective_registry(self) -> OverrideRegistry:
        """The registry itself when active, an empty one when the gate is off."""
        if not self.gate.is_active():
            return OverrideRegistry.empty()
        return self.registry

    def resolve(self, name: str) -> Optional[OverrideRecord]:
        """
        Look up registry overrides for a package by name.

        Args:
            name: Package name as given to the package macro (e.g. "musl", "curl")

        Returns:
            The OverrideRecord, or None if the package is not registered or the
            registry is disabled. Matching is exact and case-sensitive.
        """
        if not self.gate.is_active():
            logger.debug("resolve %s: registry disabled", name)
            return None
        record = self.registry.get(name)
        if record is None:
            logger.debug("resolve %s: not registered", name)
        else:
            logger.debug("resolve %s: fields=%s", name, ",".join(record.supplied_fields()) or "-")
        return record


def resolve(registry: OverrideRegistry, name: str, gate: Optional[ConfigGate] = None) -> Optional[OverrideRecord]:
    return OverrideResolver(registry, gate).resolve(name)
