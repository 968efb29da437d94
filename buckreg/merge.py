# buckreg/merge.py
"""
Merge a registry override into a package recipe.

Each recipe field has its own policy, implemented as a small pure function:

    patches        append override patches after the existing ones
    env            override wins on key collision
    pre_configure  append, newline separated
    src_prepare    replace
    src_configure  append extra_configure_args, space separated; when the
                   recipe has no configure args, inject them into the
                   EXTRA_ECONF environment variable instead

merge() applies them in that fixed order. Only the configure rule looks at the
result of another rule: it writes EXTRA_ECONF into the already-merged env.
Inputs are never mutated.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence, Tuple

from buckreg.logging import get_logger
from buckreg.recipe import BuildRecipe, OverrideRecord
from buckreg.resolver import OverrideResolver

logger = get_logger("merge")

EXTRA_ECONF = "EXTRA_ECONF"


def merge_patches(existing: Sequence[str], extra: Optional[Sequence[str]]) -> Tuple[str, ...]:
    if extra is None:
        return tuple(existing)
    return tuple(existing) + tuple(extra)


def merge_env(existing: Mapping[str, str], extra: Optional[Mapping[str, str]]) -> Dict[str, str]:
    merged = dict(existing)
    if extra is not None:
        merged.update(extra)
    return merged


def merge_pre_configure(existing: Optional[str], extra: Optional[str]) -> Optional[str]:
    if extra is None:
        return existing
    if existing:
        return existing + "\n" + extra
    return extra


def merge_src_prepare(existing: Optional[str], replacement: Optional[str]) -> Optional[str]:
    if replacement is None:
        return existing
    return replacement


def merge_configure_args(src_configure: Optional[str],
                         env: Mapping[str, str],
                         extra: Optional[str]) -> Tuple[Optional[str], Dict[str, str]]:
    """
    Returns (src_configure, env). `env` must already be the merged env.
    """
    merged_env = dict(env)
    if extra is None:
        return src_configure, merged_env
    if src_configure:
        return src_configure + " " + extra, merged_env
    # no configure-arg channel in the recipe: hand the flags to econf
    existing_econf = merged_env.get(EXTRA_ECONF, "")
    if existing_econf:
        merged_env[EXTRA_ECONF] = existing_econf + " " + extra
    else:
        merged_env[EXTRA_ECONF] = extra
    return src_configure, merged_env


def merge(recipe: BuildRecipe, override: Optional[OverrideRecord]) -> BuildRecipe:
    """Combine recipe and override; a None or empty override returns recipe itself."""
    if override is None or override.is_empty():
        return recipe

    patches = merge_patches(recipe.patches, override.patches)
    env = merge_env(recipe.env, override.env)
    pre_configure = merge_pre_configure(recipe.pre_configure, override.pre_configure)
    src_prepare = merge_src_prepare(recipe.src_prepare, override.src_prepare)
    src_configure, env = merge_configure_args(recipe.src_configure, env, override.extra_configure_args)

    return BuildRecipe(
        patches=patches,
        env=env,
        src_prepare=src_prepare,
        pre_configure=pre_configure,
        src_configure=src_configure,
    )


def apply_registry_overrides(name: str, recipe: BuildRecipe, resolver: OverrideResolver) -> BuildRecipe:
    """Resolve `name` and merge its override, if any, into recipe."""
    override = resolver.resolve(name)
    if override is None:
        return recipe
    merged = merge(recipe, override)
    logger.debug("merged registry override for %s (%s)", name, ",".join(override.supplied_fields()))
    return merged
