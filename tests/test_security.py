from __future__ import annotations

import os
from pathlib import Path

import pytest

from mcp_homefs.errors import PathRestricted
from mcp_homefs.security import PathSandbox, is_within

ESCAPES = [
    "..",
    "../secret.txt",
    "notes/../../secret.txt",
    "notes/..",
    "notes/../inside.txt",
    "..\\secret.txt",
    "notes\\..\\..\\secret.txt",
    "/etc/passwd",
    "\\Windows\\system.ini",
    "C:\\Windows\\system.ini",
    "c:relative.txt",
    "\\\\server\\share\\file.txt",
    "//server/share/file.txt",
    "bad\x00name.txt",
]


@pytest.mark.parametrize("user_path", ESCAPES)
def test_escape_attempts_rejected(sandbox: PathSandbox, user_path: str) -> None:
    with pytest.raises(PathRestricted):
        sandbox.resolve(user_path)


@pytest.mark.parametrize("user_path", ESCAPES)
def test_rejection_does_not_touch_filesystem(
    sandbox: PathSandbox, user_path: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []

    def spy(name, original):
        def wrapper(*args, **kwargs):
            calls.append(name)
            return original(*args, **kwargs)

        return wrapper

    monkeypatch.setattr(os, "stat", spy("stat", os.stat))
    monkeypatch.setattr(os, "lstat", spy("lstat", os.lstat))
    monkeypatch.setattr(os.path, "realpath", spy("realpath", os.path.realpath))
    monkeypatch.setattr(os, "listdir", spy("listdir", os.listdir))

    with pytest.raises(PathRestricted):
        sandbox.resolve(user_path)
    assert calls == []


def test_non_string_rejected(sandbox: PathSandbox) -> None:
    with pytest.raises(PathRestricted):
        sandbox.resolve(123)  # type: ignore[arg-type]


def test_path_restricted_is_permission_error(sandbox: PathSandbox) -> None:
    with pytest.raises(PermissionError):
        sandbox.resolve("../outside")


@pytest.mark.parametrize("user_path", ["", ".", "notes", "notes/today.txt", "./notes//deep/", "a/./b/c.txt"])
def test_valid_paths_stay_under_root(sandbox: PathSandbox, root: Path, user_path: str) -> None:
    resolved = sandbox.resolve(user_path)
    assert resolved.is_absolute()
    assert (str(resolved) + os.sep).startswith(str(root) + os.sep)


def test_empty_path_is_root(sandbox: PathSandbox, root: Path) -> None:
    assert sandbox.resolve("") == root


def test_nested_directory_allowed(sandbox: PathSandbox, root: Path) -> None:
    assert sandbox.resolve("nested/child") == root / "nested" / "child"


def test_dot_dot_inside_a_name_is_allowed(sandbox: PathSandbox, root: Path) -> None:
    assert sandbox.resolve("notes..txt") == root / "notes..txt"
    assert sandbox.resolve("..hidden/file") == root / "..hidden" / "file"


def test_sibling_directory_with_shared_prefix_is_not_within() -> None:
    assert is_within("/home/user", "/home/user") is True
    assert is_within("/home/user", "/home/user/docs/a.txt") is True
    assert is_within("/home/user", "/home/user2") is False
    assert is_within("/home/user", "/home/user2/a.txt") is False
    assert is_within("/home/user/", "/home/user/docs") is True
    assert is_within("/", "/etc") is True


def test_relative_root_rejected() -> None:
    with pytest.raises(ValueError):
        PathSandbox("relative/root")


def test_symlink_escape_denied(tmp_path: Path) -> None:
    allowed_root = tmp_path / "root"
    allowed_root.mkdir()
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "data.txt").write_text("secret", encoding="utf-8")
    (allowed_root / "link_out").symlink_to(outside)

    sandbox = PathSandbox(allowed_root)
    with pytest.raises(PathRestricted):
        sandbox.resolve("link_out/data.txt")


def test_symlink_check_can_be_disabled(tmp_path: Path) -> None:
    allowed_root = tmp_path / "root"
    allowed_root.mkdir()
    outside = tmp_path / "outside"
    outside.mkdir()
    (allowed_root / "link_out").symlink_to(outside)

    sandbox = PathSandbox(allowed_root, check_symlinks=False)
    assert sandbox.resolve("link_out/data.txt") == allowed_root / "link_out" / "data.txt"


def test_symlink_inside_root_allowed(tmp_path: Path) -> None:
    allowed_root = tmp_path / "root"
    (allowed_root / "real").mkdir(parents=True)
    (allowed_root / "alias").symlink_to(allowed_root / "real")

    sandbox = PathSandbox(allowed_root)
    assert sandbox.resolve("alias/file.txt") == allowed_root / "alias" / "file.txt"


def test_relative_uses_forward_slashes(sandbox: PathSandbox, root: Path) -> None:
    assert sandbox.relative(root / "a" / "b.txt") == "a/b.txt"
    assert sandbox.relative(root) == ""
