from pathlib import Path

import pytest

from buckreg import config as config_mod


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("BUCKREG_CONFIG", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    config_mod.reset()
    yield
    config_mod.reset()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    (root / "patches").mkdir(parents=True)
    return root


def write_registry(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
