"""
Sandboxed filesystem tools: MCP server and one-shot CLI.
"""

from .archive import ArchiveEngine, ArchiveEntry
from .dispatcher import OperationDispatcher, build_dispatcher
from .errors import (
    AlreadyExists,
    FsIOError,
    FsToolError,
    InvalidArgument,
    NotFound,
    NotUnique,
    PathRestricted,
)
from .operations import FileOperations
from .security import PathSandbox, is_within

__all__ = [
    "AlreadyExists",
    "ArchiveEngine",
    "ArchiveEntry",
    "FileOperations",
    "FsIOError",
    "FsToolError",
    "InvalidArgument",
    "NotFound",
    "NotUnique",
    "OperationDispatcher",
    "PathRestricted",
    "PathSandbox",
    "build_dispatcher",
    "is_within",
]
