# buckreg/recipe.py
"""
Recipe and override records.

BuildRecipe is the per-package set of build parameters the build engine
consumes (patches, environment, phase scripts). OverrideRecord is one entry of
the private patch registry: every field is optional, and None means "not
supplied". An empty string or empty list is a supplied value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

RECIPE_FIELDS = ("patches", "env", "src_prepare", "pre_configure", "src_configure")
OVERRIDE_FIELDS = ("patches", "env", "extra_configure_args", "pre_configure", "src_prepare")


@dataclass(frozen=True)
class BuildRecipe:
    patches: Tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    src_prepare: Optional[str] = None
    pre_configure: Optional[str] = None
    src_configure: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.patches, str):
            raise ValueError("patches must be a sequence of patch references, not a string")
        object.__setattr__(self, "patches", tuple(self.patches))
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    def __hash__(self):
        return hash((self.patches, tuple(sorted(self.env.items())),
                     self.src_prepare, self.pre_configure, self.src_configure))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BuildRecipe":
        data = data or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"recipe must be a mapping, got {type(data).__name__}")
        unknown = sorted(set(data) - set(RECIPE_FIELDS))
        if unknown:
            raise ValueError(f"unknown recipe fields: {', '.join(unknown)}")
        patches = data.get("patches") or ()
        if not isinstance(patches, (list, tuple)):
            raise ValueError("recipe patches must be a list of patch references")
        env = data.get("env") or {}
        if not isinstance(env, Mapping):
            raise ValueError("recipe env must be a mapping")
        return cls(
            patches=tuple(patches),
            env=dict(env),
            src_prepare=data.get("src_prepare"),
            pre_configure=data.get("pre_configure"),
            src_configure=data.get("src_configure"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patches": list(self.patches),
            "env": dict(self.env),
            "src_prepare": self.src_prepare,
            "pre_configure": self.pre_configure,
            "src_configure": self.src_configure,
        }


@dataclass(frozen=True)
class OverrideRecord:
    patches: Optional[Tuple[str, ...]] = None
    env: Optional[Mapping[str, str]] = None
    extra_configure_args: Optional[str] = None
    pre_configure: Optional[str] = None
    src_prepare: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.patches, str):
            raise ValueError("patches must be a sequence of patch references, not a string")
        if self.patches is not None:
            object.__setattr__(self, "patches", tuple(self.patches))
        if self.env is not None:
            object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    def __hash__(self):
        env = None if self.env is None else tuple(sorted(self.env.items()))
        return hash((self.patches, env, self.extra_configure_args, self.pre_configure, self.src_prepare))

    def is_empty(self) -> bool:
        """True when no field is supplied; such a record is the same as no override."""
        return all(getattr(self, name) is None for name in OVERRIDE_FIELDS)

    def supplied_fields(self) -> Tuple[str, ...]:
        return tuple(name for name in OVERRIDE_FIELDS if getattr(self, name) is not None)

    def to_dict(self) -> Dict[str, Any]:
        """Only the supplied fields, in registry-table form."""
        out: Dict[str, Any] = {}
        for name in self.supplied_fields():
            val = getattr(self, name)
            if name == "patches":
                val = list(val)
            elif name == "env":
                val = dict(val)
            out[name] = val
        return out
