from __future__ import annotations

import argparse
import logging
from typing import Optional, Union

from mcp.server.fastmcp import FastMCP

from .config import HomeFsConfig, configure_logging, load_config
from .dispatcher import OperationDispatcher, build_dispatcher

logger = logging.getLogger(__name__)


def build_server(config: HomeFsConfig, dispatcher: Optional[OperationDispatcher] = None) -> FastMCP:
    """Create the FastMCP server with one tool per filesystem operation."""
    dispatcher = dispatcher or build_dispatcher(config)
    server = FastMCP("homefs")
    call = dispatcher.dispatch

    @server.tool()
    async def list_allowed_directories() -> list[str]:
        """Return the sandbox root every path is resolved against."""
        return [str(dispatcher.operations.sandbox.root)]

    @server.tool()
    async def list_files(directory_path: str = "") -> dict:
        """List files and folders in a directory relative to the root (default: the root)."""
        return call("list_files", {"directory_path": directory_path})

    @server.tool()
    async def read_file(file_path: str) -> dict:
        """Read a UTF-8 text file."""
        return call("read_file", {"file_path": file_path})

    @server.tool()
    async def create_file(file_path: str, content: str) -> dict:
        """Create a new file; fails if anything already exists at the path."""
        return call("create_file", {"file_path": file_path, "content": content})

    @server.tool()
    async def edit_file(file_path: str, old_content: str, new_content: str, regex: bool = False) -> dict:
        """
        Replace the single occurrence of old_content with new_content.
        Fails when old_content is missing or occurs more than once.
        """
        return call(
            "edit_file",
            {"file_path": file_path, "old_content": old_content, "new_content": new_content, "regex": regex},
        )

    @server.tool()
    async def replace_string(file_path: str, old_string: str, new_string: str, regex: bool = False) -> dict:
        """Replace every occurrence of old_string; no occurrences is not an error."""
        return call(
            "replace_string",
            {"file_path": file_path, "old_string": old_string, "new_string": new_string, "regex": regex},
        )

    @server.tool()
    async def delete_file(file_path: str) -> dict:
        """Delete a file."""
        return call("delete_file", {"file_path": file_path})

    @server.tool()
    async def delete_directory(directory_path: str) -> dict:
        """Delete a directory recursively; a missing directory is not an error."""
        return call("delete_directory", {"directory_path": directory_path})

    @server.tool()
    async def rename_file(old_path: str, new_path: str) -> dict:
        """Rename a file; the new path must not exist."""
        return call("rename_file", {"old_path": old_path, "new_path": new_path})

    @server.tool()
    async def rename_directory(old_path: str, new_path: str) -> dict:
        """Rename a directory; the new path must not exist."""
        return call("rename_directory", {"old_path": old_path, "new_path": new_path})

    @server.tool()
    async def move_file(source_path: str, destination_path: str) -> dict:
        """Move a file; destination must not exist."""
        return call("move_file", {"source_path": source_path, "destination_path": destination_path})

    @server.tool()
    async def move_directory(source_path: str, destination_path: str) -> dict:
        """Move a directory; destination must not exist."""
        return call("move_directory", {"source_path": source_path, "destination_path": destination_path})

    @server.tool()
    async def create_directory(directory_path: str) -> dict:
        """mkdir -p equivalent; succeeds if already exists."""
        return call("create_directory", {"directory_path": directory_path})

    @server.tool()
    async def get_file_info(file_path: str) -> dict:
        """Return size, timestamps, type and permission bits."""
        return call("get_file_info", {"file_path": file_path})

    @server.tool()
    async def get_directory_info(directory_path: str) -> dict:
        """Count files and subdirectories directly inside a directory."""
        return call("get_directory_info", {"directory_path": directory_path})

    @server.tool()
    async def append_to_file(file_path: str, content: str) -> dict:
        """Append content to the end of a file."""
        return call("append_to_file", {"file_path": file_path, "content": content})

    @server.tool()
    async def prepend_to_file(file_path: str, content: str) -> dict:
        """Prepend content to the beginning of an existing file."""
        return call("prepend_to_file", {"file_path": file_path, "content": content})

    @server.tool()
    async def search_in_file(file_path: str, pattern: str, regex: bool = False, ignore_case: bool = False) -> dict:
        """Return matching lines with 1-based line numbers."""
        return call(
            "search_in_file",
            {"file_path": file_path, "pattern": pattern, "regex": regex, "ignore_case": ignore_case},
        )

    @server.tool()
    async def list_recent_files(directory_path: str = "", limit: Optional[int] = None) -> dict:
        """List the most recently modified files in a directory, newest first."""
        return call("list_recent_files", {"directory_path": directory_path, "limit": limit})

    @server.tool()
    async def search_files(
        directory_path: str = "",
        file_name_pattern: Optional[str] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        modified_since: Optional[float] = None,
        regex: bool = False,
        recursive: bool = False,
    ) -> dict:
        """
        Search files by name, size and modification time (epoch milliseconds).
        All given filters must match.
        """
        return call(
            "search_files",
            {
                "directory_path": directory_path,
                "file_name_pattern": file_name_pattern,
                "min_size": min_size,
                "max_size": max_size,
                "modified_since": modified_since,
                "regex": regex,
                "recursive": recursive,
            },
        )

    @server.tool()
    async def save_content_to_file(file_path: str, content: str, overwrite: bool = False) -> dict:
        """Save content, creating parent directories; overwrite only when asked."""
        return call("save_content_to_file", {"file_path": file_path, "content": content, "overwrite": overwrite})

    @server.tool()
    async def export_content(
        source_type: str, source: str, format: str, output_path: str, overwrite: bool = False
    ) -> dict:
        """Export text (source_type="text") or a file (source_type="file") as "md" or "pdf"."""
        return call(
            "export_content",
            {
                "source_type": source_type,
                "source": source,
                "format": format,
                "output_path": output_path,
                "overwrite": overwrite,
            },
        )

    @server.tool()
    async def zip_directory(directory_path: str, output_path: str) -> dict:
        """Compress a directory into a zip file."""
        return call("zip_directory", {"directory_path": directory_path, "output_path": output_path})

    @server.tool()
    async def unzip_file(file_path: str, destination_path: str) -> dict:
        """Extract a zip file; entries that would land outside the destination abort the extraction."""
        return call("unzip_file", {"file_path": file_path, "destination_path": destination_path})

    @server.tool()
    async def change_permissions(file_path: str, mode: Union[int, str]) -> dict:
        """Change POSIX permission bits, e.g. 493 or "755"."""
        return call("change_permissions", {"file_path": file_path, "mode": mode})

    return server


def main() -> None:
    parser = argparse.ArgumentParser(description="Sandboxed filesystem MCP server (stdio).")
    parser.add_argument("--root", help="Directory all paths are confined to (default: HOMEFS_ROOT or home).")
    parser.add_argument(
        "--no-symlink-check",
        action="store_true",
        help="Skip the symlink-resolved confinement check.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v (INFO), -vv (DEBUG)")
    args = parser.parse_args()

    config = load_config(root=args.root, check_symlinks=False if args.no_symlink_check else None)
    configure_logging(args.verbose, config.log_level)
    logger.info("Serving %s over stdio", config.root)
    build_server(config).run("stdio")


if __name__ == "__main__":
    main()
