"""Zip compression and extraction confined to the sandbox."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from .errors import FsIOError, InvalidArgument, NotFound, PathRestricted, os_errors
from .security import PathSandbox, is_within

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveEntry:
    """One member of an archive, consumed before the next one is produced."""

    name: str
    is_dir: bool
    size: int = 0
    info: Optional[zipfile.ZipInfo] = None


class ArchiveEngine:
    def __init__(self, sandbox: PathSandbox, compresslevel: int = 9) -> None:
        self._sandbox = sandbox
        self._compresslevel = compresslevel

    def compress(self, directory_path: str, output_path: str) -> dict:
        """Write every file and directory under directory_path into a zip archive."""
        source = self._sandbox.resolve(directory_path)
        output = self._sandbox.resolve(output_path)
        if not source.exists():
            raise NotFound(f"Directory not found: {source}", path=source)
        if not source.is_dir():
            raise InvalidArgument(f"Not a directory: {source}", path=source)

        files = 0
        directories = 0
        total_bytes = 0
        with os_errors(output):
            output.parent.mkdir(parents=True, exist_ok=True)
            # Written beside the output and swapped in only once the archive is complete.
            fd, tmp_name = tempfile.mkstemp(prefix=f".{output.name}.", suffix=".tmp", dir=output.parent)
            os.close(fd)
            staging = Path(tmp_name)
            try:
                with zipfile.ZipFile(
                    staging,
                    "w",
                    compression=zipfile.ZIP_DEFLATED,
                    compresslevel=self._compresslevel,
                ) as zf:
                    for entry, path in self._iter_source(source, skip={output, staging}):
                        # ZipFile.write copies file data in chunks.
                        zf.write(path, entry.name)
                        if entry.is_dir:
                            directories += 1
                        else:
                            files += 1
                            total_bytes += entry.size
                        logger.debug("Archived %s", entry.name)
                os.replace(staging, output)
            finally:
                if staging.exists():
                    staging.unlink()
            archive_size = output.stat().st_size

        logger.info("Zipped %s to %s (%s files, %s bytes)", source, output, files, total_bytes)
        return {
            "status": "ok",
            "source": str(source),
            "output": str(output),
            "files": files,
            "directories": directories,
            "total_bytes": total_bytes,
            "archive_size": archive_size,
            "message": f"Successfully zipped {source} to {output}. Total bytes: {total_bytes}",
        }

    def extract(self, file_path: str, destination_path: str) -> dict:
        """Extract an archive entry by entry, refusing entries that leave the destination."""
        archive = self._sandbox.resolve(file_path)
        destination = self._sandbox.resolve(destination_path)
        if not archive.is_file():
            raise NotFound(f"Archive not found: {archive}", path=archive)

        files = 0
        directories = 0
        total_bytes = 0
        with os_errors(destination):
            destination.mkdir(parents=True, exist_ok=True)
            try:
                zf = zipfile.ZipFile(archive, "r")
            except zipfile.BadZipFile as exc:
                raise FsIOError(f"Not a valid zip archive: {archive}", path=archive) from exc

            with zf:
                for entry in self.iter_entries(zf):
                    target = self._entry_target(destination, entry)
                    if entry.is_dir:
                        target.mkdir(parents=True, exist_ok=True)
                        directories += 1
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    try:
                        with zf.open(entry.info, "r") as src, open(target, "wb") as dst:
                            shutil.copyfileobj(src, dst)
                    except (zipfile.BadZipFile, RuntimeError, NotImplementedError) as exc:
                        raise FsIOError(
                            f"Cannot read archive entry '{entry.name}': {exc}", path=archive
                        ) from exc
                    files += 1
                    total_bytes += entry.size
                    logger.debug("Extracted %s", entry.name)

        logger.info("Unzipped %s to %s (%s files)", archive, destination, files)
        return {
            "status": "ok",
            "archive": str(archive),
            "destination": str(destination),
            "files": files,
            "directories": directories,
            "total_bytes": total_bytes,
            "message": f"Successfully unzipped {archive} to {destination}",
        }

    @staticmethod
    def iter_entries(zf: zipfile.ZipFile) -> Iterator[ArchiveEntry]:
        # ZipFile has already read the whole central directory; entries are handed out one at a time.
        for info in zf.infolist():
            yield ArchiveEntry(
                name=info.filename,
                is_dir=info.is_dir(),
                size=0 if info.is_dir() else info.file_size,
                info=info,
            )

    def _entry_target(self, destination: Path, entry: ArchiveEntry) -> Path:
        name = entry.name.replace("\\", "/")
        target = os.path.normpath(os.path.join(destination, name))
        escapes = not is_within(destination, target)
        if not escapes and self._sandbox.check_symlinks:
            escapes = not self._sandbox.is_canonically_within(destination, target)
        if escapes:
            logger.warning("Archive entry %r escapes %s; aborting extraction", entry.name, destination)
            raise PathRestricted(
                f"Archive entry '{entry.name}' would be extracted outside {destination}",
                path=entry.name,
            )
        return Path(target)

    def _iter_source(self, source: Path, skip: set[Path]) -> Iterator[tuple[ArchiveEntry, Path]]:
        for root, dirs, filenames in os.walk(source, followlinks=False):
            root_path = Path(root)
            dirs.sort()
            for name in list(dirs):
                path = root_path / name
                if path.is_symlink():
                    logger.debug("Skipping symlinked directory %s", path)
                    dirs.remove(name)
                    continue
                yield ArchiveEntry(name=self._arcname(source, path) + "/", is_dir=True), path
            for name in sorted(filenames):
                path = root_path / name
                if path in skip:
                    continue
                if path.is_symlink():
                    if not os.path.exists(path):
                        logger.warning("Skipping %s: dangling symbolic link", path)
                        continue
                    if not self._link_stays_inside(path):
                        continue
                with os_errors(path):
                    try:
                        stats = path.stat()
                    except FileNotFoundError:
                        # Removed while walking.
                        continue
                if not stat.S_ISREG(stats.st_mode):
                    logger.debug("Skipping %s: not a regular file", path)
                    continue
                yield ArchiveEntry(name=self._arcname(source, path), is_dir=False, size=stats.st_size), path

    def _link_stays_inside(self, path: Path) -> bool:
        if self._sandbox.is_canonically_within(self._sandbox.root, path):
            return True
        logger.warning("Skipping %s: symbolic link points outside the sandbox root", path)
        return False

    @staticmethod
    def _arcname(source: Path, path: Path) -> str:
        return path.relative_to(source).as_posix()
