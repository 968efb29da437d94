"""Private patch registry and override merge engine for BuckOS package recipes."""

from .gate import ConfigGate
from .merge import EXTRA_ECONF, apply_registry_overrides, merge
from .recipe import BuildRecipe, OverrideRecord
from .registry import OverrideRegistry, RegistryStore, load_registry
from .resolver import OverrideResolver, resolve
from .schema import RegistryError, RegistrySchemaError
from .toolchain import ToolchainDescriptor, go_toolchain, rust_toolchain

__all__ = [
    "BuildRecipe",
    "ConfigGate",
    "EXTRA_ECONF",
    "OverrideRecord",
    "OverrideRegistry",
    "OverrideResolver",
    "RegistryError",
    "RegistrySchemaError",
    "RegistryStore",
    "ToolchainDescriptor",
    "apply_registry_overrides",
    "go_toolchain",
    "load_registry",
    "merge",
    "resolve",
    "rust_toolchain",
]
