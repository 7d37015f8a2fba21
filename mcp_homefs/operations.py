"""Filesystem operations confined to a PathSandbox.

Every method resolves its path arguments through the sandbox before touching
the filesystem, and reports failures as FsToolError subclasses.
"""

from __future__ import annotations

import errno
import logging
import os
import re
import shutil
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .archive import ArchiveEngine
from .errors import AlreadyExists, InvalidArgument, NotFound, NotUnique, os_errors
from .export import Exporter
from .models import (
    ChmodArgs,
    DirectoryArgs,
    EditFileArgs,
    ExportArgs,
    FileArgs,
    FileContentArgs,
    ListRecentArgs,
    MoveArgs,
    RenameArgs,
    ReplaceStringArgs,
    RequiredDirectoryArgs,
    SaveContentArgs,
    SearchFilesArgs,
    SearchInFileArgs,
    UnzipArgs,
    ZipArgs,
)
from .security import PathSandbox

logger = logging.getLogger(__name__)

_UNSUPPORTED_CHMOD = {errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENOSYS}


def _compile(pattern: str, regex: bool, ignore_case: bool = False) -> re.Pattern[str]:
    flags = re.IGNORECASE if ignore_case else 0
    if not regex:
        return re.compile(re.escape(pattern), flags)
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise InvalidArgument(f"Invalid regular expression {pattern!r}: {exc}") from exc


def _isoformat(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _ok(path: Path, message: str, **extra: object) -> dict:
    return {"status": "ok", "path": str(path), "message": message, **extra}


class FileOperations:
    def __init__(
        self,
        sandbox: PathSandbox,
        archive: Optional[ArchiveEngine] = None,
        exporter: Optional[Exporter] = None,
        recent_limit: int = 10,
    ) -> None:
        self.sandbox = sandbox
        self.archive = archive or ArchiveEngine(sandbox)
        self.exporter = exporter or Exporter()
        self.recent_limit = recent_limit

    # Reading

    def list_files(self, args: DirectoryArgs) -> dict:
        target = self.sandbox.resolve(args.directory_path)
        with os_errors(target):
            names = sorted(os.listdir(target))
        return {"path": str(target), "files": names}

    def read_file(self, args: FileArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        with os_errors(target):
            with target.open("r", encoding="utf-8", errors="replace") as f:
                content = f.read()
        return {"path": str(target), "content": content}

    def get_file_info(self, args: FileArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        with os_errors(target):
            stats = target.stat()
        info = {
            "path": str(target),
            "size": stats.st_size,
            "modified_at": _isoformat(stats.st_mtime),
            # Inode change time, not creation time.
            "changed_at": _isoformat(stats.st_ctime),
            "is_directory": stat.S_ISDIR(stats.st_mode),
            "is_file": stat.S_ISREG(stats.st_mode),
            "permissions": oct(stat.S_IMODE(stats.st_mode)),
        }
        # Only some platforms (macOS, BSD, Windows) record a birth time.
        birthtime = getattr(stats, "st_birthtime", None)
        if birthtime is not None:
            info["created_at"] = _isoformat(birthtime)
        return info

    def get_directory_info(self, args: RequiredDirectoryArgs) -> dict:
        target = self.sandbox.resolve(args.directory_path)
        file_count = 0
        directory_count = 0
        with os_errors(target):
            with os.scandir(target) as it:
                for entry in it:
                    try:
                        if entry.is_file():
                            file_count += 1
                        elif entry.is_dir():
                            directory_count += 1
                    except FileNotFoundError:
                        # Removed between listing and stat.
                        continue
        return {"path": str(target), "file_count": file_count, "directory_count": directory_count}

    def search_in_file(self, args: SearchInFileArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        pattern = _compile(args.pattern, args.regex, args.ignore_case)
        matches: list[dict] = []
        with os_errors(target):
            with target.open("r", encoding="utf-8", errors="replace") as f:
                for idx, line in enumerate(f, start=1):
                    line = line.rstrip("\r\n")
                    if pattern.search(line):
                        matches.append({"line_number": idx, "line_content": line})
        return {"path": str(target), "matches": matches}

    def list_recent_files(self, args: ListRecentArgs) -> dict:
        target = self.sandbox.resolve(args.directory_path)
        limit = args.limit or self.recent_limit
        found: list[tuple[float, str]] = []
        with os_errors(target):
            with os.scandir(target) as it:
                for entry in it:
                    try:
                        if entry.is_file():
                            found.append((entry.stat().st_mtime, entry.name))
                    except FileNotFoundError:
                        continue
        found.sort(reverse=True)
        files = [{"name": name, "modified_at": _isoformat(mtime)} for mtime, name in found[:limit]]
        return {"path": str(target), "files": files}

    def search_files(self, args: SearchFilesArgs) -> dict:
        base = self.sandbox.resolve(args.directory_path)
        name_pattern = None
        if args.file_name_pattern:
            name_pattern = _compile(args.file_name_pattern, args.regex, ignore_case=True)
        if args.min_size is not None and args.max_size is not None and args.min_size > args.max_size:
            raise InvalidArgument("min_size must not exceed max_size")
        since = args.modified_since / 1000.0 if args.modified_since is not None else None

        if not base.exists():
            raise NotFound(f"Directory not found: {base}", path=base)
        if not base.is_dir():
            raise InvalidArgument(f"Search root must be a directory: {base}", path=base)

        matches: list[dict] = []
        with os_errors(base):
            for root, dirs, filenames in os.walk(base, followlinks=False):
                if not args.recursive:
                    dirs[:] = []
                dirs.sort()
                for name in sorted(filenames):
                    if name_pattern is not None and not name_pattern.search(name):
                        continue
                    candidate = Path(root) / name
                    try:
                        stats = candidate.stat()
                    except FileNotFoundError:
                        continue
                    if not stat.S_ISREG(stats.st_mode):
                        continue
                    if args.min_size is not None and stats.st_size < args.min_size:
                        continue
                    if args.max_size is not None and stats.st_size > args.max_size:
                        continue
                    if since is not None and stats.st_mtime < since:
                        continue
                    if not self.sandbox.is_canonically_within(self.sandbox.root, candidate):
                        # Skip anything that would escape via symlink.
                        continue
                    matches.append(
                        {
                            "name": name,
                            "path": self.sandbox.relative(candidate),
                            "size": stats.st_size,
                            "modified_at": _isoformat(stats.st_mtime),
                        }
                    )
        return {"path": str(base), "matches": matches}

    # Writing

    def create_file(self, args: FileContentArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        with os_errors(target):
            try:
                f = target.open("x", encoding="utf-8")
            except FileExistsError as exc:
                raise AlreadyExists(f"File already exists: {target}", path=target) from exc
            with f:
                f.write(args.content)
        logger.info("Created %s", target)
        return _ok(target, f"Successfully created file at: {target}")

    def save_content_to_file(self, args: SaveContentArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        mode = "w" if args.overwrite else "x"
        with os_errors(target):
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                f = target.open(mode, encoding="utf-8")
            except FileExistsError as exc:
                raise AlreadyExists(
                    f"File already exists: {target}. Pass overwrite=true to replace it.", path=target
                ) from exc
            with f:
                f.write(args.content)
        logger.info("Saved %s (overwrite=%s)", target, args.overwrite)
        return _ok(target, f"Successfully saved content to: {target}")

    def edit_file(self, args: EditFileArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        pattern = _compile(args.old_content, args.regex)
        with os_errors(target):
            content = target.read_text(encoding="utf-8")

        count = len(pattern.findall(content))
        if count == 0:
            raise NotFound(
                f"The old content was not found (no match). No changes made to file at: {target}",
                path=target,
            )
        if count > 1:
            raise NotUnique(
                f"The old content is not unique in the file. Found {count} occurrences.",
                count=count,
                path=target,
            )

        updated = pattern.sub(lambda _m: args.new_content, content, count=1)
        with os_errors(target):
            target.write_text(updated, encoding="utf-8")
        logger.info("Edited %s", target)
        return _ok(target, f"Successfully edited file at: {target}")

    def replace_string(self, args: ReplaceStringArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        pattern = _compile(args.old_string, args.regex)
        with os_errors(target):
            content = target.read_text(encoding="utf-8")
        updated, count = pattern.subn(lambda _m: args.new_string, content)
        if count:
            with os_errors(target):
                target.write_text(updated, encoding="utf-8")
            logger.info("Replaced %s occurrence(s) in %s", count, target)
        return _ok(target, f"Successfully replaced string in file at: {target}", replacements=count)

    def append_to_file(self, args: FileContentArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        with os_errors(target):
            with target.open("a", encoding="utf-8") as f:
                f.write(args.content)
        return _ok(target, f"Successfully appended to file at: {target}")

    def prepend_to_file(self, args: FileContentArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        with os_errors(target):
            current = target.read_text(encoding="utf-8")
            target.write_text(args.content + current, encoding="utf-8")
        return _ok(target, f"Successfully prepended to file at: {target}")

    def change_permissions(self, args: ChmodArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        mode = args.mode
        applied = True
        with os_errors(target):
            try:
                os.chmod(target, mode)
            except OSError as exc:
                if exc.errno not in _UNSUPPORTED_CHMOD:
                    raise
                applied = False
                logger.info("Filesystem at %s ignores permission bits", target)
            if applied:
                applied = stat.S_IMODE(target.stat().st_mode) == mode
        return _ok(
            target,
            f"Successfully changed permissions for {target} to {mode:o}",
            mode=oct(mode),
            applied=applied,
        )

    # Structure

    def create_directory(self, args: RequiredDirectoryArgs) -> dict:
        target = self.sandbox.resolve(args.directory_path)
        with os_errors(target):
            target.mkdir(parents=True, exist_ok=True)
        return _ok(target, f"Successfully created directory at: {target}")

    def delete_file(self, args: FileArgs) -> dict:
        target = self.sandbox.resolve(args.file_path)
        with os_errors(target):
            target.unlink()
        logger.info("Deleted %s", target)
        return _ok(target, f"Successfully deleted file at: {target}")

    def delete_directory(self, args: RequiredDirectoryArgs) -> dict:
        target = self.sandbox.resolve(args.directory_path)
        if target == self.sandbox.root:
            raise InvalidArgument("Refusing to delete the sandbox root.", path=target)
        with os_errors(target):
            if target.is_symlink() or (target.exists() and not target.is_dir()):
                raise InvalidArgument(f"Not a directory: {target}", path=target)
            # A missing directory counts as already deleted.
            if target.exists():
                shutil.rmtree(target)
        logger.info("Deleted directory %s", target)
        return _ok(target, f"Successfully deleted directory at: {target}")

    def rename_file(self, args: RenameArgs) -> dict:
        return self._relocate(args.old_path, args.new_path, want_dir=False, verb="renamed", make_parents=False)

    def rename_directory(self, args: RenameArgs) -> dict:
        return self._relocate(args.old_path, args.new_path, want_dir=True, verb="renamed", make_parents=False)

    def move_file(self, args: MoveArgs) -> dict:
        return self._relocate(
            args.source_path, args.destination_path, want_dir=False, verb="moved", make_parents=True
        )

    def move_directory(self, args: MoveArgs) -> dict:
        return self._relocate(
            args.source_path, args.destination_path, want_dir=True, verb="moved", make_parents=True
        )

    def _relocate(self, source: str, destination: str, want_dir: bool, verb: str, make_parents: bool) -> dict:
        src_path = self.sandbox.resolve(source)
        dst_path = self.sandbox.resolve(destination)
        kind = "directory" if want_dir else "file"

        if not src_path.exists():
            raise NotFound(f"Source not found: {src_path}", path=src_path)
        if src_path.is_dir() != want_dir:
            raise InvalidArgument(f"Source is not a {kind}: {src_path}", path=src_path)
        if src_path == self.sandbox.root:
            raise InvalidArgument(f"Refusing to {verb[:-1]} the sandbox root.", path=src_path)
        if dst_path.exists():
            raise AlreadyExists(f"Destination already exists: {dst_path}", path=dst_path)

        with os_errors(dst_path):
            if make_parents:
                dst_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(src_path), str(dst_path))
            else:
                os.rename(src_path, dst_path)
        logger.info("%s %s %s to %s", verb.capitalize(), kind, src_path, dst_path)
        return {
            "status": "ok",
            "source": str(src_path),
            "destination": str(dst_path),
            "message": f"Successfully {verb} {kind} {src_path} to {dst_path}",
        }

    # Archives and export

    def zip_directory(self, args: ZipArgs) -> dict:
        return self.archive.compress(args.directory_path, args.output_path)

    def unzip_file(self, args: UnzipArgs) -> dict:
        return self.archive.extract(args.file_path, args.destination_path)

    def export_content(self, args: ExportArgs) -> dict:
        output = self.sandbox.resolve(args.output_path)
        if args.source_type == "file":
            source = self.sandbox.resolve(args.source)
            with os_errors(source):
                text = source.read_text(encoding="utf-8")
        else:
            text = args.source
        self.exporter.export(text, args.format, output, overwrite=args.overwrite)
        return _ok(output, f"Successfully exported content to: {output}", format=args.format)
