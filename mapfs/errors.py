"""Error types for filesystem operations and comparisons.

Filesystem failures are ``OSError`` subclasses carrying the operation
name and the failing path, and each also derives from the matching
builtin (``FileNotFoundError``, ``PermissionError``...) so callers can
catch them the usual way.
"""

from __future__ import annotations

import errno
import os
from enum import Enum
from typing import Any


class PathError(OSError):
    """An error tied to one operation on one path.

    Attributes:
        op: Operation that failed ("open", "readdir", "readlink"...).
        path: Path the operation was applied to (same as ``filename``).
    """

    def __init__(self, op: str, path: str, code: int, reason: str | None = None):
        super().__init__(code, reason or os.strerror(code), path)
        self.op = op

    @property
    def path(self) -> str:
        return self.filename

    def __str__(self) -> str:
        return f"{self.op} {self.filename}: {self.strerror}"


class NotExistError(PathError, FileNotFoundError):
    """The path is absent or not a valid path."""


class PermissionDeniedError(PathError, PermissionError):
    """The entry does not grant the access the operation needs."""


class InvalidError(PathError):
    """The operation does not apply to this kind of entry."""


class NotDirectoryError(PathError, NotADirectoryError):
    """A directory operation was applied to a non-directory."""


_ERROR_CLASSES: dict[int, type[PathError]] = {
    errno.ENOENT: NotExistError,
    errno.EACCES: PermissionDeniedError,
    errno.EPERM: PermissionDeniedError,
    errno.EINVAL: InvalidError,
    errno.ENOTDIR: NotDirectoryError,
}


def path_error(op: str, path: str, code: int) -> PathError:
    """Build the ``PathError`` subclass matching ``code``.

    Args:
        op: Operation name.
        path: Failing path.
        code: ``errno`` value describing the failure.

    Returns:
        The error, ready to be raised.
    """
    cls = _ERROR_CLASSES.get(code, PathError)
    return cls(op, path, code)


def root_cause(exc: BaseException | None) -> BaseException | None:
    """Return the innermost error of an explicitly chained exception."""
    if exc is None:
        return None
    seen = {id(exc)}
    while exc.__cause__ is not None and id(exc.__cause__) not in seen:
        exc = exc.__cause__
        seen.add(id(exc))
    return exc


def same_error(a: BaseException | None, b: BaseException | None) -> bool:
    """Check whether two errors have equivalent root causes.

    Root causes are equivalent when they are the same object, when they
    carry the same ``errno``, or (neither carrying one) when they have
    the same type. ``None`` is only equivalent to ``None``.
    """
    a, b = root_cause(a), root_cause(b)
    if a is None or b is None:
        return a is b
    if a is b:
        return True
    code_a = getattr(a, "errno", None)
    code_b = getattr(b, "errno", None)
    if code_a is not None or code_b is not None:
        return code_a == code_b
    return type(a) is type(b)


class MismatchKind(Enum):
    """What differed between two compared trees."""

    COUNT = "count"
    NAME = "name"
    TYPE = "type"
    CONTENT = "content"
    METADATA = "metadata"
    OPEN_ERROR = "open-error"


class ComparisonError(Exception):
    """First divergence found while comparing two filesystems.

    Attributes:
        op: Always "equal".
        path: Path at which the divergence was detected.
        kind: Category of the divergence.
        reason: Human-readable description, including both values.
        want: Value found in the source filesystem.
        got: Value found in the target filesystem.
    """

    op = "equal"

    def __init__(
        self,
        path: str,
        kind: MismatchKind,
        reason: str,
        want: Any = None,
        got: Any = None,
    ):
        super().__init__(path, kind, reason)
        self.path = path
        self.kind = kind
        self.reason = reason
        self.want = want
        self.got = got

    def __str__(self) -> str:
        return f"{self.op} {self.path}: {self.reason}"
