from pathlib import Path

import pytest

from buckreg import config as config_mod


def test_defaults_without_any_file(tmp_path: Path) -> None:
    cfg = config_mod.load(root=tmp_path)
    assert cfg.source is None
    assert cfg.read("buckos", "patch_registry_enabled") == ""
    assert cfg.get("registry.path") == str(tmp_path / "patches" / "registry.yaml")
    assert cfg.get("registry.watch") is False


def test_yaml_config_file_in_root(tmp_path: Path) -> None:
    (tmp_path / "buckreg.yaml").write_text("registry:\n  path: private/overrides.yaml\n", encoding="utf-8")
    cfg = config_mod.load(root=tmp_path)
    assert cfg.source == tmp_path / "buckreg.yaml"
    assert cfg.get("registry.path") == str(tmp_path / "private" / "overrides.yaml")


def test_yaml_boolean_is_spelled_like_buck(tmp_path: Path) -> None:
    (tmp_path / "buckreg.yaml").write_text("buckos:\n  patch_registry_enabled: false\n", encoding="utf-8")
    cfg = config_mod.load(root=tmp_path)
    assert cfg.read("buckos", "patch_registry_enabled") == "false"


def test_toml_config_via_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "elsewhere.toml"
    path.write_text("[buckos]\npatch_registry_enabled = \"0\"\n", encoding="utf-8")
    monkeypatch.setenv("BUCKREG_CONFIG", str(path))
    cfg = config_mod.load(root=tmp_path)
    assert cfg.source == path
    assert cfg.read("buckos", "patch_registry_enabled") == "0"


def test_buckconfig_sets_the_gate(tmp_path: Path) -> None:
    (tmp_path / ".buckconfig").write_text(
        "[repositories]\nroot = .\n\n[buckos]\npatch_registry_enabled = false   # To disable all registry patches\n",
        encoding="utf-8",
    )
    cfg = config_mod.load(root=tmp_path)
    assert cfg.read("buckos", "patch_registry_enabled") == "false"
    assert cfg.get("repositories") is None


def test_buckconfig_local_wins_over_buckconfig(tmp_path: Path) -> None:
    (tmp_path / ".buckconfig").write_text("[buckos]\npatch_registry_enabled = false\n", encoding="utf-8")
    (tmp_path / ".buckconfig.local").write_text("[buckos]\npatch_registry_enabled = true\n", encoding="utf-8")
    cfg = config_mod.load(root=tmp_path)
    assert cfg.read("buckos", "patch_registry_enabled") == "true"


def test_buckconfig_wins_over_config_file(tmp_path: Path) -> None:
    (tmp_path / "buckreg.yaml").write_text("buckos:\n  patch_registry_enabled: \"false\"\n", encoding="utf-8")
    (tmp_path / ".buckconfig.local").write_text("[buckos]\npatch_registry_enabled = yes\n", encoding="utf-8")
    cfg = config_mod.load(root=tmp_path)
    assert cfg.read("buckos", "patch_registry_enabled") == "yes"


def test_command_line_overrides_win(tmp_path: Path) -> None:
    (tmp_path / ".buckconfig.local").write_text("[buckos]\npatch_registry_enabled = true\n", encoding="utf-8")
    cfg = config_mod.load(root=tmp_path, overrides=["buckos.patch_registry_enabled=false", "registry.watch=true"])
    assert cfg.read("buckos", "patch_registry_enabled") == "false"
    assert cfg.get("registry.watch") is True


@pytest.mark.parametrize("item", ["no-equals-sign", "nosection=1", "=1"])
def test_malformed_overrides(item: str) -> None:
    with pytest.raises(ValueError):
        config_mod.parse_overrides([item])


def test_unknown_keys_warn_or_raise(tmp_path: Path) -> None:
    (tmp_path / "buckreg.yaml").write_text("bogus: 1\n", encoding="utf-8")
    cfg = config_mod.load(root=tmp_path)
    assert cfg.get("bogus") == 1
    with pytest.raises(ValueError):
        config_mod.load(root=tmp_path, fatal=True)


def test_unparsable_config_falls_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / "buckreg.yaml").write_text("buckos: [unclosed\n", encoding="utf-8")
    cfg = config_mod.load(root=tmp_path)
    assert cfg.raw == {}
    assert cfg.read("buckos", "patch_registry_enabled") == ""


def test_human_sizes() -> None:
    assert config_mod._human_size_to_bytes("10M") == 10 * 1024 * 1024
    assert config_mod._human_size_to_bytes("512KB") == 512 * 1024
    assert config_mod._human_size_to_bytes(42) == 42
    assert config_mod._human_size_to_bytes("lots") is None


def test_reload_reuses_load_arguments_and_notifies(tmp_path: Path) -> None:
    seen = []
    config_mod.load(root=tmp_path)
    config_mod.register_watch_callback(seen.append)
    try:
        (tmp_path / ".buckconfig").write_text("[buckos]\npatch_registry_enabled = false\n", encoding="utf-8")
        cfg = config_mod.reload()
    finally:
        config_mod.unregister_watch_callback(seen.append)
    assert cfg.read("buckos", "patch_registry_enabled") == "false"
    assert seen == [cfg]


def test_read_config_uses_current_config(tmp_path: Path) -> None:
    config_mod.load(root=tmp_path, overrides=["buckos.patch_registry_enabled=off"])
    assert config_mod.read_config("buckos", "patch_registry_enabled") == "off"
    assert config_mod.read_config("buckos", "missing", "dflt") == "dflt"
