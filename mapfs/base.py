"""Base filesystem interface and dataclasses.

Defines the capability set shared by every filesystem the package can
wrap or compare (VirtualFS, DirFS, or any third-party implementation),
plus the helpers that fall back to ``open()`` when an optional method
is missing.
"""

from __future__ import annotations

import errno
import stat as stat_mod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol, runtime_checkable

from .errors import path_error


class FileType(Enum):
    """Closed set of file types a mode can describe."""

    REGULAR = stat_mod.S_IFREG
    DIRECTORY = stat_mod.S_IFDIR
    SYMLINK = stat_mod.S_IFLNK
    FIFO = stat_mod.S_IFIFO
    SOCKET = stat_mod.S_IFSOCK
    CHAR_DEVICE = stat_mod.S_IFCHR
    BLOCK_DEVICE = stat_mod.S_IFBLK

    @classmethod
    def from_mode(cls, mode: int) -> "FileType":
        """Return the type encoded in ``mode``.

        A mode without type bits (e.g. a bare ``0o644``) is a regular file.
        """
        fmt = stat_mod.S_IFMT(mode)
        if fmt == 0:
            return cls.REGULAR
        return cls(fmt)

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")


def normalize_mode(mode: int) -> int:
    """Return ``mode`` with explicit type bits and permission bits only."""
    return FileType.from_mode(mode).value | (mode & 0o777)


def format_mode(mode: int) -> str:
    """Render a mode the way ``ls -l`` does (``drwxr-xr-x``)."""
    return stat_mod.filemode(normalize_mode(mode))


@dataclass(frozen=True)
class FileInfo:
    """Metadata for a single file, directory or special node.

    Attributes:
        name: Base name of the entry ("." for the root).
        mode: Type bits and permission bits (``stat.S_IF*`` | perm).
        size: Size in bytes. Meaningless for directories.
        mod_time: Modification time in seconds since the epoch, 0.0 if
            the filesystem does not report it.
        access_time: Access time, 0.0 if not reported.
        change_time: Status change time, 0.0 if not reported.
    """

    name: str
    mode: int
    size: int = 0
    mod_time: float = 0.0
    access_time: float = 0.0
    change_time: float = 0.0

    @property
    def type(self) -> FileType:
        return FileType.from_mode(self.mode)

    @property
    def perm(self) -> int:
        return self.mode & 0o777

    @property
    def is_dir(self) -> bool:
        return self.type is FileType.DIRECTORY

    # os.stat_result-compatible properties

    @property
    def st_mode(self) -> int:
        return normalize_mode(self.mode)

    @property
    def st_size(self) -> int:
        return self.size

    @property
    def st_mtime(self) -> float:
        return self.mod_time

    @property
    def st_atime(self) -> float:
        return self.access_time

    @property
    def st_ctime(self) -> float:
        return self.change_time


@dataclass(frozen=True)
class DirEntry:
    """One entry returned by ``readdir()``.

    Attributes:
        name: Base name of the entry.
        type: Type of the entry, as reported by the listing itself
            (symlinks are not followed).
    """

    name: str
    type: FileType
    _info: Callable[[], FileInfo] | None = field(
        default=None, compare=False, repr=False
    )

    def info(self) -> FileInfo:
        """Return the entry's metadata."""
        if self._info is None:
            raise ValueError(f"no metadata available for {self.name!r}")
        return self._info()

    @property
    def is_dir(self) -> bool:
        return self.type is FileType.DIRECTORY


@runtime_checkable
class File(Protocol):
    """Handle returned by ``FileSystem.open()``."""

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes; ``b""`` at end of file."""
        ...

    def readinto(self, buffer: Any) -> int:
        """Read into a writable buffer, returning the byte count."""
        ...

    def readdir(self, n: int = -1) -> list[DirEntry]:
        """List directory entries (directories only)."""
        ...

    def stat(self) -> FileInfo:
        """Get metadata for the open file."""
        ...

    def close(self) -> None:
        """Release the handle."""
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Minimal capability set.

    Only ``open()`` is required. Implementations may also provide
    ``stat()``, ``readdir()``, ``readlink()``, ``read_file()``, ``glob()``
    and ``sub()``; the module-level helpers use them when present.
    """

    def open(self, name: str) -> File:
        """Open a file or directory for reading."""
        ...


def valid_path(name: str) -> bool:
    """Check whether ``name`` is a valid path for a FileSystem.

    Valid paths are "." or unrooted, slash-separated sequences of
    elements that are neither empty, "." nor "..".
    """
    if name == ".":
        return True
    if not name:
        return False
    for element in name.split("/"):
        if element in ("", ".", ".."):
            return False
    return True


def join(directory: str, name: str) -> str:
    """Join a directory path and an entry name, keeping "." out of results."""
    if directory == ".":
        return name
    return f"{directory}/{name}"


def stat(fsys: Any, name: str) -> FileInfo:
    """Return metadata for ``name``, via ``fsys.stat`` or an open handle."""
    if hasattr(fsys, "stat"):
        return fsys.stat(name)
    with fsys.open(name) as f:
        return f.stat()


def readdir(fsys: Any, name: str) -> list[DirEntry]:
    """List ``name`` sorted by entry name."""
    if hasattr(fsys, "readdir"):
        return fsys.readdir(name)
    with fsys.open(name) as f:
        if not hasattr(f, "readdir"):
            raise path_error("readdir", name, errno.ENOTDIR)
        entries = f.readdir(-1)
    return sorted(entries, key=lambda entry: entry.name)


def readlink(fsys: Any, name: str) -> str:
    """Return the target of the symbolic link ``name``.

    Filesystems without a ``readlink`` method cannot hold links, so the
    call fails as it would on a non-link.
    """
    if hasattr(fsys, "readlink"):
        return fsys.readlink(name)
    raise path_error("readlink", name, errno.EINVAL)


def read_file(fsys: Any, name: str) -> bytes:
    """Return the whole content of ``name``."""
    if hasattr(fsys, "read_file"):
        return fsys.read_file(name)
    with fsys.open(name) as f:
        return f.read()
