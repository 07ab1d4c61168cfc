"""Declarative in-memory filesystem for test fixtures.

Provides VirtualFS, a read-only filesystem built from a mapping of
slash-separated paths to FileRecord values, and SubFS, a view of one of
its subtrees.
"""

from __future__ import annotations

import errno
import fnmatch
import posixpath
import stat as stat_mod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from functools import partial
from glob import escape, has_magic
from typing import Any

from .base import DirEntry, FileInfo, FileType, join, normalize_mode, valid_path
from .errors import path_error
from .virtualfile import GuardedFile, RecordDir, RecordFile


@dataclass(frozen=True)
class FileRecord:
    """One declared entry of a VirtualFS.

    Attributes:
        mode: Type bits and permission bits, e.g. ``stat.S_IFDIR | 0o755``,
            ``stat.S_IFLNK | 0o777`` or a bare ``0o644`` for a regular file.
        data: File content, or the link target for symbolic links.
        mod_time: Modification time in seconds since the epoch (0.0 if unset).
    """

    mode: int = 0
    data: bytes = b""
    mod_time: float = 0.0

    @property
    def type(self) -> FileType:
        return FileType.from_mode(self.mode)


class VirtualFS(Mapping[str, FileRecord]):
    """In-memory filesystem declared as a mapping of paths to records.

    Directories may be declared explicitly or implied by the paths of
    their descendants, like S3 prefixes. Implied directories report
    ``S_IFDIR | 0o700``. Records whose mode lacks the owner read bit can
    be opened, but reading or listing the handle fails with
    ``PermissionDeniedError``.

    Paths are validated on every call; a key that is not a valid path is
    never reachable.

    Example:
        >>> fsys = VirtualFS({
        ...     "dir": FileRecord(mode=stat.S_IFDIR | 0o755),
        ...     "dir/file": FileRecord(mode=0o644, data=b"Hello World!"),
        ... })
        >>> fsys.read_file("dir/file")
        b'Hello World!'
        >>> [entry.name for entry in fsys.readdir(".")]
        ['dir']
    """

    def __init__(self, files: Mapping[str, FileRecord] | None = None):
        """Initialize the filesystem.

        Args:
            files: Mapping of path to FileRecord. Copied; later changes
                to the argument are not seen.
        """
        self._files: dict[str, FileRecord] = dict(files or {})

    # -------------------------------------------------------------------------
    # Mapping protocol
    # -------------------------------------------------------------------------

    def __getitem__(self, name: str) -> FileRecord:
        return self._files[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._files!r})"

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def _record_info(self, name: str, record: FileRecord) -> FileInfo:
        return FileInfo(
            name=posixpath.basename(name) or name,
            mode=normalize_mode(record.mode),
            size=len(record.data),
            mod_time=record.mod_time,
        )

    def _children(self, name: str) -> list[DirEntry]:
        """List the entries directly under ``name``, sorted by name."""
        prefix = "" if name == "." else name + "/"
        explicit: dict[str, FileRecord] = {}
        implied: set[str] = set()
        for key, record in self._files.items():
            if key == "." or not key.startswith(prefix) or not valid_path(key):
                continue
            child, sep, _ = key[len(prefix) :].partition("/")
            if sep:
                implied.add(child)
            else:
                explicit[child] = record

        entries = []
        for child in sorted(explicit.keys() | implied):
            record = explicit.get(child)
            ftype = FileType.DIRECTORY if record is None else record.type
            entries.append(DirEntry(child, ftype, partial(self.stat, join(name, child))))
        return entries

    def _open(self, op: str, name: str) -> Any:
        if not valid_path(name):
            raise path_error(op, name, errno.ENOENT)

        record = self._files.get(name)
        if record is not None and record.type is not FileType.DIRECTORY:
            handle: Any = RecordFile(name, self._record_info(name, record), record.data)
        else:
            entries = self._children(name)
            if record is None and not entries and name != ".":
                raise path_error(op, name, errno.ENOENT)
            if record is None:
                info = FileInfo(name=posixpath.basename(name), mode=stat_mod.S_IFDIR | 0o700)
                return RecordDir(name, info, entries)
            handle = RecordDir(name, self._record_info(name, record), entries)

        if record.mode & 0o400 == 0:
            return GuardedFile(handle, deny_reads=True)
        return handle

    # -------------------------------------------------------------------------
    # Capability set
    # -------------------------------------------------------------------------

    def open(self, name: str) -> Any:
        """Open a file or directory for reading.

        Args:
            name: Path to open ("." for the root).

        Returns:
            A handle with ``read()``, ``readinto()``, ``readdir()``,
            ``stat()`` and ``close()``.

        Raises:
            NotExistError: If the path is invalid or absent.
        """
        return self._open("open", name)

    def stat(self, name: str) -> FileInfo:
        """Get metadata for a path without reading it.

        Raises:
            NotExistError: If the path is invalid or absent.
        """
        with self._open("stat", name) as f:
            return f.stat()

    def readdir(self, name: str) -> list[DirEntry]:
        """List a directory, sorted by entry name.

        The listing comes from the declared paths, so it is not subject
        to the read-permission check applied to open handles.

        Raises:
            NotExistError: If the path is invalid or absent.
            NotDirectoryError: If the path is not a directory.
        """
        if not valid_path(name):
            raise path_error("readdir", name, errno.ENOENT)
        record = self._files.get(name)
        if record is not None and record.type is not FileType.DIRECTORY:
            raise path_error("readdir", name, errno.ENOTDIR)
        entries = self._children(name)
        if record is None and not entries and name != ".":
            raise path_error("readdir", name, errno.ENOENT)
        return entries

    def readlink(self, name: str) -> str:
        """Return the target of a symbolic link.

        Raises:
            NotExistError: If the path is invalid or not in the mapping
                (implied directories included).
            InvalidError: If the record is not a symbolic link.
        """
        record = self._files.get(name) if valid_path(name) else None
        if record is None:
            raise path_error("readlink", name, errno.ENOENT)
        if record.type is not FileType.SYMLINK:
            raise path_error("readlink", name, errno.EINVAL)
        return record.data.decode("utf-8", errors="surrogateescape")

    def read_file(self, name: str) -> bytes:
        """Read a whole file through ``open()``.

        Raises:
            NotExistError: If the path is invalid or absent.
            PermissionDeniedError: If the record is not readable.
            InvalidError: If the path is a directory.
        """
        with self.open(name) as f:
            return f.read()

    def exists(self, name: str) -> bool:
        """Check if a path is declared or implied."""
        if not valid_path(name):
            return False
        if name == "." or name in self._files:
            return True
        prefix = name + "/"
        return any(key.startswith(prefix) and valid_path(key) for key in self._files)

    def isdir(self, name: str) -> bool:
        """Check if a path is an explicit or implied directory."""
        if not self.exists(name):
            return False
        record = self._files.get(name)
        return record is None or record.type is FileType.DIRECTORY

    def glob(self, pattern: str) -> list[str]:
        """Return the sorted paths matching a glob pattern.

        The pattern is matched one path element at a time, so ``*`` never
        matches a slash.
        """
        if not pattern:
            return []
        matches = ["."]
        for element in pattern.split("/"):
            found = []
            for base in matches:
                if not has_magic(element):
                    candidate = join(base, element)
                    if self.exists(candidate):
                        found.append(candidate)
                    continue
                if not self.isdir(base):
                    continue
                for entry in self._children(base):
                    if fnmatch.fnmatchcase(entry.name, element):
                        found.append(join(base, entry.name))
            matches = found
        return sorted(matches)

    def sub(self, name: str) -> Any:
        """Return a view of the subtree rooted at ``name``.

        Existence is checked once, here.

        Raises:
            NotExistError: If the path is invalid or absent.
        """
        if name == ".":
            return self
        self.stat(name)
        return SubFS(self, name)


class SubFS:
    """View of a VirtualFS subtree.

    Every name is validated, then rebased onto ``prefix`` and forwarded
    to the parent. Records are shared, not copied.
    """

    def __init__(self, fsys: VirtualFS, prefix: str):
        self._fsys = fsys
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def _full_name(self, op: str, name: str) -> str:
        if not valid_path(name):
            raise path_error(op, name, errno.ENOENT)
        if name == ".":
            return self._prefix
        return f"{self._prefix}/{name}"

    def open(self, name: str) -> Any:
        return self._fsys.open(self._full_name("open", name))

    def stat(self, name: str) -> FileInfo:
        return self._fsys.stat(self._full_name("stat", name))

    def readdir(self, name: str) -> list[DirEntry]:
        return self._fsys.readdir(self._full_name("readdir", name))

    def readlink(self, name: str) -> str:
        return self._fsys.readlink(self._full_name("readlink", name))

    def read_file(self, name: str) -> bytes:
        return self._fsys.read_file(self._full_name("open", name))

    def glob(self, pattern: str) -> list[str]:
        """Glob within the subtree; results are relative to it."""
        if not pattern:
            return []
        start = len(self._prefix) + 1
        return [
            match[start:]
            for match in self._fsys.glob(f"{escape(self._prefix)}/{pattern}")
        ]

    def sub(self, name: str) -> Any:
        if name == ".":
            return self
        full = self._full_name("sub", name)
        self._fsys.stat(full)
        return SubFS(self._fsys, full)
