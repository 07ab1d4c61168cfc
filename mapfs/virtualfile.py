"""Read-only handles returned by VirtualFS.open() and DirFS.open()."""

from __future__ import annotations

import errno
import io
from typing import Any

from .base import DirEntry, FileInfo
from .errors import path_error


class BaseHandle:
    """Shared close/context-manager behaviour for handles."""

    def __init__(self, name: str, info: FileInfo):
        self._name = name
        self._info = info
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        """Return True if the handle is closed."""
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError(f"I/O operation on closed file: {self._name}")

    def stat(self) -> FileInfo:
        """Get metadata for the open entry."""
        self._check_open()
        return self._info

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> Any:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class RecordFile(BaseHandle):
    """Handle on the content of a regular file (or a link target).

    Attributes:
        name: The path the handle was opened with.
    """

    def __init__(self, name: str, info: FileInfo, data: bytes):
        super().__init__(name, info)
        self._buffer = io.BytesIO(data)

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, ``b""`` once the end is reached."""
        self._check_open()
        return self._buffer.read(size)

    def readinto(self, buffer: Any) -> int:
        """Read into ``buffer``, returning the number of bytes copied."""
        self._check_open()
        return self._buffer.readinto(buffer)

    def seek(self, offset: int, whence: int = 0) -> int:
        self._check_open()
        return self._buffer.seek(offset, whence)

    def tell(self) -> int:
        self._check_open()
        return self._buffer.tell()

    def readdir(self, n: int = -1) -> list[DirEntry]:
        self._check_open()
        raise path_error("readdir", self._name, errno.ENOTDIR)

    def close(self) -> None:
        if not self._closed:
            self._buffer.close()
        super().close()


class RecordDir(BaseHandle):
    """Handle on a directory listing.

    Entries are served in the order given (sorted by name), and
    ``readdir(n)`` with a positive ``n`` pages through them.
    """

    def __init__(self, name: str, info: FileInfo, entries: list[DirEntry]):
        super().__init__(name, info)
        self._entries = entries
        self._offset = 0

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        raise path_error("read", self._name, errno.EINVAL)

    def readinto(self, buffer: Any) -> int:
        self._check_open()
        raise path_error("read", self._name, errno.EINVAL)

    def readdir(self, n: int = -1) -> list[DirEntry]:
        """Return the next ``n`` entries, or all remaining ones if ``n <= 0``.

        Returns an empty list once every entry has been returned.
        """
        self._check_open()
        remaining = len(self._entries) - self._offset
        count = remaining if n <= 0 else min(n, remaining)
        batch = self._entries[self._offset : self._offset + count]
        self._offset += count
        return batch


class GuardedFile:
    """Handle denying reads on top of another handle.

    Attributes:
        deny_reads: Reads and directory listings fail with
            ``PermissionDeniedError``; ``stat()`` still works.
    """

    def __init__(self, inner: Any, deny_reads: bool = True):
        self._inner = inner
        self.deny_reads = deny_reads

    @property
    def name(self) -> str:
        return self._inner.name

    @property
    def closed(self) -> bool:
        return self._inner.closed

    def _deny(self, op: str) -> None:
        if self.deny_reads:
            raise path_error(op, self._inner.name, errno.EACCES)

    def read(self, size: int = -1) -> bytes:
        self._deny("read")
        return self._inner.read(size)

    def readinto(self, buffer: Any) -> int:
        self._deny("read")
        return self._inner.readinto(buffer)

    def readdir(self, n: int = -1) -> list[DirEntry]:
        self._deny("readdir")
        return self._inner.readdir(n)

    def stat(self) -> FileInfo:
        return self._inner.stat()

    def close(self) -> None:
        self._inner.close()

    def __enter__(self) -> "GuardedFile":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
