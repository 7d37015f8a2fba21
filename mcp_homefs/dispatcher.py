"""Name-based dispatch over FileOperations.

Maps each tool name to its argument model and the FileOperations method that
implements it, validates raw argument dicts, and turns failures into the
structured ``{"ok": false, "error": {...}}`` shape used at the invocation
boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Type

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from . import models
from .archive import ArchiveEngine
from .config import HomeFsConfig
from .errors import FsToolError, InvalidArgument
from .export import Exporter
from .operations import FileOperations
from .security import PathSandbox

logger = logging.getLogger(__name__)

TOOLSET_NAME = "homefs"
TOOLSET_DESCRIPTION = "File system operations confined to a single trusted root directory."


@dataclass(frozen=True)
class OperationSpec:
    name: str
    args_model: Type[models.ToolArgs]
    description: str


OPERATIONS: dict[str, OperationSpec] = {
    spec.name: spec
    for spec in (
        OperationSpec(
            "list_files",
            models.DirectoryArgs,
            "Lists files and folders in a directory relative to the root. Defaults to the root.",
        ),
        OperationSpec("read_file", models.FileArgs, "Reads the contents of a text file."),
        OperationSpec(
            "create_file",
            models.FileContentArgs,
            "Creates a new file with content. Fails if the file already exists.",
        ),
        OperationSpec(
            "edit_file",
            models.EditFileArgs,
            "Replaces a unique occurrence of old content. Fails if it is missing or not unique.",
        ),
        OperationSpec("replace_string", models.ReplaceStringArgs, "Replaces every occurrence of a string in a file."),
        OperationSpec("delete_file", models.FileArgs, "Deletes a file."),
        OperationSpec(
            "delete_directory",
            models.RequiredDirectoryArgs,
            "Deletes a directory and its contents recursively.",
        ),
        OperationSpec("rename_file", models.RenameArgs, "Renames a file."),
        OperationSpec("rename_directory", models.RenameArgs, "Renames a directory."),
        OperationSpec("move_file", models.MoveArgs, "Moves a file to a destination path."),
        OperationSpec("move_directory", models.MoveArgs, "Moves a directory to a destination path."),
        OperationSpec("create_directory", models.RequiredDirectoryArgs, "Creates a directory and any missing parents."),
        OperationSpec("get_file_info", models.FileArgs, "Gets size, timestamps and permissions of a path."),
        OperationSpec(
            "get_directory_info",
            models.RequiredDirectoryArgs,
            "Counts the files and directories directly inside a directory.",
        ),
        OperationSpec("append_to_file", models.FileContentArgs, "Appends content to the end of a file."),
        OperationSpec("prepend_to_file", models.FileContentArgs, "Prepends content to the beginning of a file."),
        OperationSpec(
            "search_in_file",
            models.SearchInFileArgs,
            "Returns the lines of a file that contain a string (or match a regex when regex is set).",
        ),
        OperationSpec(
            "list_recent_files",
            models.ListRecentArgs,
            "Lists the most recently modified files in a directory.",
        ),
        OperationSpec(
            "search_files",
            models.SearchFilesArgs,
            "Searches for files by name, size and modification time.",
        ),
        OperationSpec(
            "save_content_to_file",
            models.SaveContentArgs,
            "Saves content to a file, creating parent directories. Overwrites only when asked.",
        ),
        OperationSpec(
            "export_content",
            models.ExportArgs,
            "Exports text or a file as Markdown or PDF.",
        ),
        OperationSpec("zip_directory", models.ZipArgs, "Compresses a directory into a zip file."),
        OperationSpec("unzip_file", models.UnzipArgs, "Extracts a zip file into a directory."),
        OperationSpec(
            "change_permissions",
            models.ChmodArgs,
            "Changes the POSIX permission bits of a file or directory.",
        ),
    )
}


# Tool names are also accepted in camelCase (listFiles, getFileInfo).
_CAMEL_CASE_NAMES = {to_camel(name): name for name in OPERATIONS}


def resolve_tool_name(name: str) -> str:
    """Return the canonical snake_case tool name, or raise InvalidArgument."""
    if name in OPERATIONS:
        return name
    try:
        return _CAMEL_CASE_NAMES[name]
    except KeyError:
        raise InvalidArgument(f"Unknown tool: {name}") from None


def _format_validation_error(name: str, exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "arguments"
        problems.append(f"{location}: {err.get('msg')}")
    return f"Invalid arguments for {name}: " + "; ".join(problems)


class OperationDispatcher:
    def __init__(self, operations: FileOperations) -> None:
        self._operations = operations

    @property
    def operations(self) -> FileOperations:
        return self._operations

    def parse(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> models.ToolArgs:
        name = resolve_tool_name(name)
        spec = OPERATIONS[name]
        try:
            return spec.args_model.model_validate(dict(arguments or {}))
        except ValidationError as exc:
            raise InvalidArgument(_format_validation_error(name, exc)) from exc

    def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> dict:
        """Run a tool and return its payload; failures raise FsToolError."""
        name = resolve_tool_name(name)
        args = self.parse(name, arguments)
        handler = getattr(self._operations, name)
        logger.debug("Dispatching %s", name)
        return handler(args)

    def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> dict:
        """Run a tool and wrap the outcome as a structured success or failure."""
        try:
            return {"ok": True, "result": self.dispatch(name, arguments)}
        except FsToolError as exc:
            logger.info("%s failed (%s): %s", name, exc.kind, exc.message)
            return {"ok": False, "error": exc.to_dict()}

    @staticmethod
    def describe() -> dict:
        tools = []
        for spec in OPERATIONS.values():
            schema = spec.args_model.model_json_schema()
            schema.pop("title", None)
            tools.append({"name": spec.name, "description": spec.description, "schema": schema})
        return {"name": TOOLSET_NAME, "description": TOOLSET_DESCRIPTION, "tools": tools}


def build_dispatcher(config: HomeFsConfig, exporter: Optional[Exporter] = None) -> OperationDispatcher:
    sandbox = PathSandbox(config.root, check_symlinks=config.check_symlinks)
    operations = FileOperations(
        sandbox,
        archive=ArchiveEngine(sandbox, compresslevel=config.zip_level),
        exporter=exporter,
        recent_limit=config.recent_limit,
    )
    return OperationDispatcher(operations)
