from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Union

from .errors import PathRestricted

logger = logging.getLogger(__name__)

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")
_SEPARATORS = re.compile(r"[\\/]")


def is_within(root: Union[str, Path], candidate: Union[str, Path]) -> bool:
    """
    Return True when candidate is root itself or one of its descendants.

    Both sides get a trailing separator before the prefix comparison so that a
    sibling sharing a name prefix (``/home/user2`` vs ``/home/user``) is not
    mistaken for a descendant.
    """
    root_str = str(root)
    candidate_str = str(candidate)
    if not root_str.endswith(os.sep):
        root_str += os.sep
    if not candidate_str.endswith(os.sep):
        candidate_str += os.sep
    return candidate_str.startswith(root_str)


class PathSandbox:
    """Resolve caller-supplied relative paths inside a single trusted root."""

    def __init__(self, root: Union[str, Path], check_symlinks: bool = True) -> None:
        root_path = Path(root).expanduser()
        if not root_path.is_absolute():
            raise ValueError(f"Sandbox root must be an absolute path: {root}")
        self._root = Path(os.path.normpath(root_path))
        self._check_symlinks = check_symlinks

    @property
    def root(self) -> Path:
        return self._root

    @property
    def check_symlinks(self) -> bool:
        return self._check_symlinks

    def resolve(self, user_path: str) -> Path:
        """
        Validate user_path and return it as an absolute path under the root.

        All lexical checks run before anything touches the filesystem. The empty
        string denotes the root itself.
        """
        self._validate(user_path)
        candidate = os.path.normpath(os.path.join(self._root, user_path))
        if not is_within(self._root, candidate):
            self._reject(user_path, "path resolves outside the sandbox root")
        if self._check_symlinks and not self.is_canonically_within(self._root, candidate):
            self._reject(user_path, "path leaves the sandbox root through a symbolic link")
        return Path(candidate)

    def is_canonically_within(self, root: Union[str, Path], candidate: Union[str, Path]) -> bool:
        """Confinement check on symlink-resolved forms of both paths."""
        return is_within(os.path.realpath(root), os.path.realpath(candidate))

    def relative(self, path: Union[str, Path]) -> str:
        """Return path relative to the root with forward slashes."""
        rel = os.path.relpath(path, self._root)
        return "" if rel == os.curdir else rel.replace(os.sep, "/")

    def _validate(self, user_path: str) -> None:
        if not isinstance(user_path, str):
            self._reject(user_path, "path must be a string")
        if "\x00" in user_path:
            self._reject(user_path, "path contains a NUL byte")
        if user_path.startswith(("\\\\", "//")):
            self._reject(user_path, "network share paths are not allowed")
        if user_path.startswith(("/", "\\")) or _DRIVE_PREFIX.match(user_path):
            self._reject(user_path, "absolute paths are not allowed")
        if ".." in _SEPARATORS.split(user_path):
            self._reject(user_path, "parent directory segments are not allowed")

    def _reject(self, user_path: object, reason: str) -> None:
        logger.warning("Rejected path %r: %s", user_path, reason)
        raise PathRestricted(
            f"Access is restricted to the sandbox root '{self._root}': {reason}.",
            path=user_path if isinstance(user_path, str) else None,
        )
