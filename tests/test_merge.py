from buckreg.gate import ConfigGate
from buckreg.merge import (
    EXTRA_ECONF,
    apply_registry_overrides,
    merge,
    merge_configure_args,
    merge_env,
    merge_patches,
    merge_pre_configure,
    merge_src_prepare,
)
from buckreg.recipe import BuildRecipe, OverrideRecord
from buckreg.registry import OverrideRegistry
from buckreg.resolver import OverrideResolver


# per-field policies


def test_patches_are_appended_in_order() -> None:
    assert merge_patches(("A", "B"), ("C", "D")) == ("A", "B", "C", "D")


def test_patches_untouched_without_override() -> None:
    assert merge_patches(("A", "B"), None) == ("A", "B")


def test_empty_patch_list_is_a_noop_append() -> None:
    assert merge_patches(("A",), ()) == ("A",)


def test_env_override_wins_on_collision() -> None:
    existing = {"X": "1", "Y": "2"}
    merged = merge_env(existing, {"X": "9", "Z": "3"})
    assert merged == {"X": "9", "Y": "2", "Z": "3"}
    assert existing == {"X": "1", "Y": "2"}


def test_env_without_override_is_a_copy() -> None:
    existing = {"X": "1"}
    merged = merge_env(existing, None)
    assert merged == existing
    assert merged is not existing


def test_pre_configure_concatenates_with_newline() -> None:
    assert merge_pre_configure("step1", "step2") == "step1\nstep2"


def test_pre_configure_empty_existing_takes_override() -> None:
    assert merge_pre_configure("", "step2") == "step2"
    assert merge_pre_configure(None, "step2") == "step2"


def test_pre_configure_kept_without_override() -> None:
    assert merge_pre_configure("step1", None) == "step1"
    assert merge_pre_configure(None, None) is None


def test_src_prepare_is_replaced() -> None:
    assert merge_src_prepare("old", "new") == "new"
    assert merge_src_prepare(None, "new") == "new"


def test_src_prepare_kept_without_override() -> None:
    assert merge_src_prepare("old", None) == "old"


def test_src_prepare_empty_override_still_replaces() -> None:
    assert merge_src_prepare("old", "") == ""


def test_configure_args_append_to_existing_blob() -> None:
    src_configure, env = merge_configure_args("--base", {"A": "1"}, "--with-x")
    assert src_configure == "--base --with-x"
    assert env == {"A": "1"}


def test_configure_args_fall_back_to_extra_econf() -> None:
    src_configure, env = merge_configure_args("", {}, "--with-x")
    assert src_configure == ""
    assert env == {EXTRA_ECONF: "--with-x"}


def test_configure_args_fallback_when_blob_unset() -> None:
    src_configure, env = merge_configure_args(None, {}, "--with-x")
    assert src_configure is None
    assert env[EXTRA_ECONF] == "--with-x"


def test_configure_args_append_to_existing_extra_econf() -> None:
    _, env = merge_configure_args("", {EXTRA_ECONF: "--foo"}, "--with-x")
    assert env[EXTRA_ECONF] == "--foo --with-x"


def test_configure_args_empty_extra_econf_is_replaced() -> None:
    _, env = merge_configure_args("", {EXTRA_ECONF: ""}, "--with-x")
    assert env[EXTRA_ECONF] == "--with-x"


def test_configure_args_absent_changes_nothing() -> None:
    src_configure, env = merge_configure_args("", {"A": "1"}, None)
    assert src_configure == ""
    assert env == {"A": "1"}


# full record merges


def test_merge_without_override_is_identity() -> None:
    recipe = BuildRecipe(patches=("a.patch",), env={"X": "1"}, src_prepare="p", pre_configure="c", src_configure="--x")
    assert merge(recipe, None) == recipe
    assert merge(recipe, None) is recipe


def test_merge_with_empty_record_is_identity() -> None:
    recipe = BuildRecipe(patches=("a.patch",), env={"X": "1"})
    assert merge(recipe, OverrideRecord()) == recipe


def test_merge_of_default_recipe_with_nothing() -> None:
    assert merge(BuildRecipe(), None) == BuildRecipe()


def test_merge_applies_every_field() -> None:
    recipe = BuildRecipe(
        patches=("A", "B"),
        env={"X": "1", "Y": "2"},
        src_prepare="old",
        pre_configure="step1",
        src_configure="--base",
    )
    override = OverrideRecord(
        patches=("C", "D"),
        env={"X": "9", "Z": "3"},
        extra_configure_args="--with-x",
        pre_configure="step2",
        src_prepare="new",
    )

    merged = merge(recipe, override)

    assert merged == BuildRecipe(
        patches=("A", "B", "C", "D"),
        env={"X": "9", "Y": "2", "Z": "3"},
        src_prepare="new",
        pre_configure="step1\nstep2",
        src_configure="--base --with-x",
    )


def test_extra_econf_from_override_env_is_extended_by_configure_args() -> None:
    recipe = BuildRecipe(env={EXTRA_ECONF: "--old"})
    override = OverrideRecord(env={EXTRA_ECONF: "--foo"}, extra_configure_args="--with-x")

    merged = merge(recipe, override)

    assert merged.env[EXTRA_ECONF] == "--foo --with-x"
    assert merged.src_configure is None


def test_merge_does_not_mutate_inputs() -> None:
    recipe = BuildRecipe(patches=("A",), env={"X": "1"})
    override = OverrideRecord(patches=("B",), env={"Y": "2"}, extra_configure_args="--z")

    merge(recipe, override)

    assert recipe == BuildRecipe(patches=("A",), env={"X": "1"})
    assert override.env == {"Y": "2"}


def test_merge_is_deterministic() -> None:
    recipe = BuildRecipe(patches=("A",), env={"X": "1"}, src_configure="")
    override = OverrideRecord(patches=("B",), extra_configure_args="--z")
    assert merge(recipe, override) == merge(recipe, override)


def test_merge_leaves_unsupplied_fields_alone() -> None:
    recipe = BuildRecipe(patches=("A",), env={"X": "1"}, src_prepare="p", pre_configure="c", src_configure="--x")
    merged = merge(recipe, OverrideRecord(patches=("B",)))
    assert merged == BuildRecipe(patches=("A", "B"), env={"X": "1"}, src_prepare="p", pre_configure="c", src_configure="--x")


def test_apply_registry_overrides_uses_resolver() -> None:
    registry = OverrideRegistry({"curl": OverrideRecord(patches=("//patches:ca.patch",))})
    resolver = OverrideResolver(registry, ConfigGate(""))
    recipe = BuildRecipe(patches=("//curl:base.patch",))

    merged = apply_registry_overrides("curl", recipe, resolver)

    assert merged.patches == ("//curl:base.patch", "//patches:ca.patch")
    assert apply_registry_overrides("wget", recipe, resolver) is recipe


def test_apply_registry_overrides_respects_disabled_gate() -> None:
    registry = OverrideRegistry({"curl": OverrideRecord(patches=("//patches:ca.patch",))})
    resolver = OverrideResolver(registry, ConfigGate("false"))
    recipe = BuildRecipe(patches=("//curl:base.patch",))

    assert apply_registry_overrides("curl", recipe, resolver) is recipe
