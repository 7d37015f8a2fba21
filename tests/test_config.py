from __future__ import annotations

from pathlib import Path

import pytest

from mcp_homefs.config import HomeFsConfig, load_config

ENV_VARS = ("HOMEFS_ROOT", "HOMEFS_CHECK_SYMLINKS", "HOMEFS_ZIP_LEVEL", "HOMEFS_RECENT_LIMIT", "HOMEFS_LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_use_home_directory() -> None:
    config = load_config()
    assert config == HomeFsConfig(root=Path.home())


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOMEFS_ROOT", str(tmp_path))
    monkeypatch.setenv("HOMEFS_CHECK_SYMLINKS", "off")
    monkeypatch.setenv("HOMEFS_ZIP_LEVEL", "3")
    monkeypatch.setenv("HOMEFS_RECENT_LIMIT", "25")
    monkeypatch.setenv("HOMEFS_LOG_LEVEL", "debug")

    config = load_config()

    assert config.root == tmp_path
    assert config.check_symlinks is False
    assert config.zip_level == 3
    assert config.recent_limit == 25
    assert config.log_level == "DEBUG"


def test_explicit_arguments_win(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOMEFS_ROOT", "/somewhere/else")
    monkeypatch.setenv("HOMEFS_CHECK_SYMLINKS", "true")

    config = load_config(root=str(tmp_path), check_symlinks=False)

    assert config.root == tmp_path
    assert config.check_symlinks is False


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("HOMEFS_CHECK_SYMLINKS", "maybe"),
        ("HOMEFS_ZIP_LEVEL", "fast"),
        ("HOMEFS_ZIP_LEVEL", "12"),
        ("HOMEFS_RECENT_LIMIT", "0"),
    ],
)
def test_invalid_values_name_the_variable(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=name):
        load_config()
