"""Real filesystem access rooted at a host directory.

Provides DirFS, the host-directory counterpart of VirtualFS, so a tree
on disk can be compared against a declared fixture or another tree.
"""

from __future__ import annotations

import errno
import logging
import os
from functools import partial
from pathlib import Path
from typing import Any

from .base import DirEntry, FileInfo, FileType, normalize_mode, valid_path
from .errors import path_error
from .virtualfile import BaseHandle, RecordDir

logger = logging.getLogger(__name__)


def _info(name: str, st: os.stat_result) -> FileInfo:
    return FileInfo(
        name=name,
        mode=normalize_mode(st.st_mode),
        size=st.st_size,
        mod_time=st.st_mtime,
        access_time=st.st_atime,
        change_time=st.st_ctime,
    )


class DirFile(BaseHandle):
    """Handle on a host file.

    Regular files are read through an unbuffered ``FileIO``; other
    non-directory nodes (devices, sockets, FIFOs) are never opened and
    only support ``stat()``.
    """

    def __init__(self, name: str, info: FileInfo, fileobj: Any = None):
        super().__init__(name, info)
        self._fileobj = fileobj

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        if self._fileobj is None:
            raise path_error("read", self._name, errno.EINVAL)
        return self._fileobj.read(size)

    def readinto(self, buffer: Any) -> int:
        self._check_open()
        if self._fileobj is None:
            raise path_error("read", self._name, errno.EINVAL)
        return self._fileobj.readinto(buffer)

    def readdir(self, n: int = -1) -> list[DirEntry]:
        self._check_open()
        raise path_error("readdir", self._name, errno.ENOTDIR)

    def close(self) -> None:
        if not self._closed and self._fileobj is not None:
            self._fileobj.close()
        super().close()


class DirFS:
    """Read-only filesystem over a host directory.

    Names follow the same rules as VirtualFS (slash-separated, relative,
    no "." or ".." elements), so they never leave the root except by
    following a symbolic link. Host ``OSError`` failures are re-raised as
    ``PathError`` with the same errno, chained to the OS error.
    """

    def __init__(self, root: str | Path):
        """Initialize the filesystem.

        Args:
            root: Existing host directory.

        Raises:
            ValueError: If root is not a directory.
        """
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise ValueError(f"Root must be a directory: {root}")
        logger.debug("DirFS rooted at %s", self.root)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.root)!r})"

    def _real(self, op: str, name: str) -> Path:
        if not valid_path(name):
            raise path_error(op, name, errno.ENOENT)
        if name == ".":
            return self.root
        return self.root / name

    def _os_stat(self, op: str, name: str, follow_symlinks: bool = True) -> os.stat_result:
        real = self._real(op, name)
        try:
            return os.stat(real, follow_symlinks=follow_symlinks)
        except OSError as exc:
            raise path_error(op, name, exc.errno or errno.EIO) from exc

    def open(self, name: str) -> Any:
        """Open a host file or directory for reading.

        Raises:
            PathError: With the errno of the host failure.
        """
        st = self._os_stat("open", name)
        info = _info(os.path.basename(name), st)
        if info.type is FileType.DIRECTORY:
            return RecordDir(name, info, self.readdir(name))
        if info.type is not FileType.REGULAR:
            return DirFile(name, info)
        try:
            fileobj = open(self._real("open", name), "rb", buffering=0)
        except OSError as exc:
            raise path_error("open", name, exc.errno or errno.EIO) from exc
        return DirFile(name, info, fileobj)

    def stat(self, name: str) -> FileInfo:
        """Get metadata for a path, following symbolic links."""
        return _info(os.path.basename(name), self._os_stat("stat", name))

    def lstat(self, name: str) -> FileInfo:
        """Get metadata for a path without following a final symbolic link."""
        st = self._os_stat("lstat", name, follow_symlinks=False)
        return _info(os.path.basename(name), st)

    def readdir(self, name: str) -> list[DirEntry]:
        """List a host directory sorted by name.

        Entry types are those of the entries themselves, so symbolic
        links are reported as links.
        """
        real = self._real("readdir", name)
        entries = []
        try:
            with os.scandir(real) as it:
                for entry in it:
                    mode = entry.stat(follow_symlinks=False).st_mode
                    child = entry.name if name == "." else f"{name}/{entry.name}"
                    entries.append(
                        DirEntry(entry.name, FileType.from_mode(mode), partial(self.lstat, child))
                    )
        except OSError as exc:
            raise path_error("readdir", name, exc.errno or errno.EIO) from exc
        return sorted(entries, key=lambda entry: entry.name)

    def readlink(self, name: str) -> str:
        """Return the target of a host symbolic link."""
        real = self._real("readlink", name)
        try:
            return os.readlink(real)
        except OSError as exc:
            raise path_error("readlink", name, exc.errno or errno.EIO) from exc

    def read_file(self, name: str) -> bytes:
        with self.open(name) as f:
            return f.read()

    def sub(self, name: str) -> "DirFS":
        """Return a DirFS rooted at the directory ``name``."""
        if name == ".":
            return self
        if not self.stat(name).is_dir:
            raise path_error("sub", name, errno.ENOTDIR)
        return DirFS(self._real("sub", name))
