from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Union

PathLike = Union[str, Path]


class FsToolError(Exception):
    """Base class for every structured failure an operation can report."""

    kind = "io_error"

    def __init__(self, message: str, *, path: Optional[PathLike] = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.path is not None:
            payload["path"] = self.path
        return payload


class PathRestricted(FsToolError, PermissionError):
    """Raised when a path escapes the trusted root or an extraction destination."""

    kind = "path_restricted"


class NotFound(FsToolError):
    kind = "not_found"


class AlreadyExists(FsToolError):
    kind = "already_exists"


class NotUnique(FsToolError):
    kind = "not_unique"

    def __init__(self, message: str, *, count: int, path: Optional[PathLike] = None) -> None:
        super().__init__(message, path=path)
        self.count = count

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["count"] = self.count
        return payload


class InvalidArgument(FsToolError):
    kind = "invalid_argument"


class FsIOError(FsToolError):
    kind = "io_error"


@contextmanager
def os_errors(path: PathLike) -> Iterator[None]:
    """Translate OSError subclasses raised in the block into FsToolError kinds."""
    try:
        yield
    except FsToolError:
        raise
    except FileNotFoundError as exc:
        raise NotFound(f"Path not found: {path}", path=path) from exc
    except FileExistsError as exc:
        raise AlreadyExists(f"Path already exists: {path}", path=path) from exc
    except UnicodeDecodeError as exc:
        raise FsIOError(f"File is not valid UTF-8 text: {path}", path=path) from exc
    except OSError as exc:
        raise FsIOError(f"Filesystem error at {path}: {exc}", path=path) from exc
