from __future__ import annotations

from pathlib import Path

import pytest

from mcp_homefs.dispatcher import OPERATIONS, OperationDispatcher, resolve_tool_name
from mcp_homefs.errors import InvalidArgument, PathRestricted


def test_invoke_success(dispatcher: OperationDispatcher, root: Path) -> None:
    (root / "a.txt").write_text("hello", encoding="utf-8")
    outcome = dispatcher.invoke("read_file", {"file_path": "a.txt"})
    assert outcome == {"ok": True, "result": {"path": str(root / "a.txt"), "content": "hello"}}


def test_camel_case_arguments_accepted(dispatcher: OperationDispatcher, root: Path) -> None:
    dispatcher.dispatch("create_file", {"filePath": "camel.txt", "content": "x"})
    assert (root / "camel.txt").read_text(encoding="utf-8") == "x"

    dispatcher.dispatch("edit_file", {"filePath": "camel.txt", "oldContent": "x", "newContent": "y"})
    assert (root / "camel.txt").read_text(encoding="utf-8") == "y"


def test_unknown_tool(dispatcher: OperationDispatcher) -> None:
    outcome = dispatcher.invoke("format_disk", {})
    assert outcome["ok"] is False
    assert outcome["error"]["kind"] == "invalid_argument"
    assert "Unknown tool" in outcome["error"]["message"]


def test_missing_required_argument(dispatcher: OperationDispatcher) -> None:
    with pytest.raises(InvalidArgument, match="Invalid arguments for read_file"):
        dispatcher.dispatch("read_file", {})


def test_unexpected_argument(dispatcher: OperationDispatcher) -> None:
    with pytest.raises(InvalidArgument):
        dispatcher.dispatch("read_file", {"file_path": "a.txt", "encoding": "latin-1"})


def test_restricted_path_is_structured_failure(dispatcher: OperationDispatcher, root: Path) -> None:
    outcome = dispatcher.invoke("create_file", {"file_path": "../escape.txt", "content": "x"})
    assert outcome["ok"] is False
    assert outcome["error"]["kind"] == "path_restricted"
    assert outcome["error"]["path"] == "../escape.txt"
    assert not (root.parent / "escape.txt").exists()


def test_rename_fails_when_either_path_escapes(dispatcher: OperationDispatcher, root: Path) -> None:
    (root / "a.txt").write_text("a", encoding="utf-8")
    with pytest.raises(PathRestricted):
        dispatcher.dispatch("rename_file", {"oldPath": "a.txt", "newPath": "/tmp/a.txt"})
    assert (root / "a.txt").exists()


def test_not_unique_failure_carries_count(dispatcher: OperationDispatcher, root: Path) -> None:
    (root / "dup.txt").write_text("x x x", encoding="utf-8")
    outcome = dispatcher.invoke("edit_file", {"file_path": "dup.txt", "old_content": "x", "new_content": "y"})
    assert outcome["error"]["kind"] == "not_unique"
    assert outcome["error"]["count"] == 3


def test_chmod_mode_validation(dispatcher: OperationDispatcher, root: Path) -> None:
    (root / "f.txt").write_text("x", encoding="utf-8")
    with pytest.raises(InvalidArgument):
        dispatcher.dispatch("change_permissions", {"file_path": "f.txt", "mode": "rwx"})
    with pytest.raises(InvalidArgument):
        dispatcher.dispatch("change_permissions", {"file_path": "f.txt", "mode": 0o17777})


def test_zip_and_unzip_through_dispatch(dispatcher: OperationDispatcher, root: Path) -> None:
    (root / "src").mkdir()
    (root / "src" / "a.txt").write_text("a", encoding="utf-8")

    zipped = dispatcher.invoke("zip_directory", {"directoryPath": "src", "outputPath": "src.zip"})
    assert zipped["ok"] is True
    unzipped = dispatcher.invoke("unzip_file", {"filePath": "src.zip", "destinationPath": "copy"})
    assert unzipped["ok"] is True
    assert (root / "copy" / "a.txt").read_text(encoding="utf-8") == "a"


def test_describe_lists_every_operation(dispatcher: OperationDispatcher) -> None:
    definition = dispatcher.describe()
    names = [tool["name"] for tool in definition["tools"]]
    assert names == list(OPERATIONS)

    by_name = {tool["name"]: tool for tool in definition["tools"]}
    create = by_name["create_file"]["schema"]
    assert set(create["properties"]) == {"filePath", "content"}
    assert set(create["required"]) == {"filePath", "content"}
    assert by_name["create_file"]["description"]


def test_every_operation_has_a_handler(dispatcher: OperationDispatcher) -> None:
    for name in OPERATIONS:
        assert callable(getattr(dispatcher.operations, name))


def test_camel_case_tool_names_accepted(dispatcher: OperationDispatcher, root: Path) -> None:
    (root / "a.txt").write_text("hello", encoding="utf-8")

    assert dispatcher.invoke("readFile", {"filePath": "a.txt"})["result"]["content"] == "hello"
    assert dispatcher.dispatch("listFiles", {})["files"] == ["a.txt"]


def test_resolve_tool_name() -> None:
    assert resolve_tool_name("get_file_info") == "get_file_info"
    assert resolve_tool_name("getFileInfo") == "get_file_info"
    assert resolve_tool_name("zipDirectory") == "zip_directory"
    with pytest.raises(InvalidArgument, match="Unknown tool"):
        resolve_tool_name("GetFileInfo")
