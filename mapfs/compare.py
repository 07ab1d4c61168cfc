"""Deep equality of two filesystems.

Walks two filesystems from "." in lockstep, depth-first, and reports the
first difference found: directory listings, entry types, symbolic link
targets, file metadata and file content. Differences that depend on the
platform rather than the tree (unreported times or permissions,
directory sizes) are ignored.

Example:
    >>> err = equal_fs(expected, DirFS(tmp_path))
    >>> assert err is None, err
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Any

from .base import FileType, format_mode, join, readdir, readlink, stat
from .config import CompareConfig
from .errors import ComparisonError, MismatchKind, same_error

logger = logging.getLogger(__name__)

# Longest excerpt of differing content quoted in an error message.
EXCERPT_SIZE = 64


def equal_fs(source: Any, target: Any) -> ComparisonError | None:
    """Compare two filesystems.

    Returns:
        None if they are equal, otherwise the first difference found.
    """
    return equal_fs_buffer(source, target, None)


def equal_fs_buffer(
    source: Any,
    target: Any,
    buffer: bytearray | memoryview | None = None,
    config: CompareConfig | None = None,
) -> ComparisonError | None:
    """Compare two filesystems, reading files through ``buffer``.

    Passing the same buffer to many comparisons avoids reallocating it.
    The buffer is overwritten, so concurrent comparisons need their own.

    Args:
        source: Filesystem holding the expected tree.
        target: Filesystem under test.
        buffer: Writable buffer. None, or one shorter than
            ``config.min_buffer_size``, is replaced by a fresh buffer of
            ``config.buffer_size`` bytes.
        config: Comparison options. Defaults to ``CompareConfig()``.

    Returns:
        None if the filesystems are equal, otherwise a ComparisonError
        naming the path where they diverge.

    Raises:
        OSError: If listing a directory, reading a link or getting
            metadata fails on either side.
        TypeError: If ``buffer`` is read-only.
    """
    if config is None:
        config = CompareConfig()
    if buffer is None or len(buffer) < config.min_buffer_size:
        buffer = bytearray(config.buffer_size)

    view = memoryview(buffer).cast("B")
    if view.readonly:
        raise TypeError("comparison buffer must be writable")
    half = len(view) // 2
    try:
        _equal_dir(source, target, ".", (view[:half], view[half : 2 * half]), config)
    except ComparisonError as exc:
        logger.debug("filesystems differ: %s", exc)
        return exc
    return None


def assert_equal_fs(
    source: Any,
    target: Any,
    buffer: bytearray | memoryview | None = None,
    config: CompareConfig | None = None,
) -> None:
    """Like equal_fs_buffer, but raise the ComparisonError instead."""
    err = equal_fs_buffer(source, target, buffer, config)
    if err is not None:
        raise err


def _equal_dir(
    source: Any,
    target: Any,
    name: str,
    halves: tuple[memoryview, memoryview],
    config: CompareConfig,
) -> None:
    logger.debug("comparing directory %s", name)
    source_entries = readdir(source, name)
    target_entries = readdir(target, name)
    if len(source_entries) != len(target_entries):
        raise ComparisonError(
            name,
            MismatchKind.COUNT,
            f"number of directory entries mismatch: "
            f"want={len(source_entries)} got={len(target_entries)}",
            len(source_entries),
            len(target_entries),
        )

    for i, (source_entry, target_entry) in enumerate(zip(source_entries, target_entries)):
        if source_entry.name != target_entry.name:
            raise ComparisonError(
                name,
                MismatchKind.NAME,
                f"name of directory entry {i} mismatch: "
                f"want={source_entry.name!r} got={target_entry.name!r}",
                source_entry.name,
                target_entry.name,
            )
        if source_entry.type is not target_entry.type:
            raise ComparisonError(
                name,
                MismatchKind.TYPE,
                f"type of directory entry {source_entry.name!r} mismatch: "
                f"want={source_entry.type} got={target_entry.type}",
                source_entry.type,
                target_entry.type,
            )

        path = join(name, source_entry.name)
        if source_entry.type is FileType.DIRECTORY:
            _equal_dir(source, target, path, halves, config)
        elif source_entry.type is FileType.SYMLINK:
            _equal_symlink(source, target, path)
        elif source_entry.type is FileType.REGULAR:
            _equal_file(source, target, path, halves, config)
        else:
            _equal_stat(source, target, path, config)


def _equal_symlink(source: Any, target: Any, name: str) -> None:
    source_link = readlink(source, name)
    target_link = readlink(target, name)
    if source_link != target_link:
        raise ComparisonError(
            name,
            MismatchKind.CONTENT,
            f"symbolic links mismatch: want={source_link!r} got={target_link!r}",
            source_link,
            target_link,
        )


def _equal_file(
    source: Any,
    target: Any,
    name: str,
    halves: tuple[memoryview, memoryview],
    config: CompareConfig,
) -> None:
    _equal_stat(source, target, name, config)

    with ExitStack() as stack:
        source_file, source_err = _open(source, name)
        if source_file is not None:
            stack.callback(source_file.close)
        target_file, target_err = _open(target, name)
        if target_file is not None:
            stack.callback(target_file.close)

        if source_err is not None or target_err is not None:
            if not same_error(source_err, target_err):
                raise ComparisonError(
                    name,
                    MismatchKind.OPEN_ERROR,
                    f"file open error mismatch: want={source_err} got={target_err}",
                    source_err,
                    target_err,
                )
            return

        _equal_data(name, source_file, target_file, halves)


def _open(fsys: Any, name: str) -> tuple[Any, OSError | None]:
    try:
        return fsys.open(name), None
    except OSError as exc:
        return None, exc


def _read(f: Any, buf: memoryview) -> tuple[int, OSError | None]:
    try:
        return f.readinto(buf) or 0, None
    except OSError as exc:
        return 0, exc


def _excerpt(data: memoryview) -> bytes:
    return bytes(data[:EXCERPT_SIZE])


def _equal_data(
    name: str, source_file: Any, target_file: Any, halves: tuple[memoryview, memoryview]
) -> None:
    source_buf, target_buf = halves
    offset = 0
    while True:
        n1, err1 = _read(source_file, source_buf)
        n2, err2 = _read(target_file, target_buf)
        if n1 != n2:
            raise ComparisonError(
                name,
                MismatchKind.CONTENT,
                f"file read size mismatch at offset {offset}: want={n1} got={n2}",
                n1,
                n2,
            )
        chunk1 = source_buf[:n1]
        chunk2 = target_buf[:n2]
        if chunk1 != chunk2:
            raise ComparisonError(
                name,
                MismatchKind.CONTENT,
                f"file content mismatch at offset {offset}: "
                f"want={_excerpt(chunk1)!r} got={_excerpt(chunk2)!r}",
                bytes(chunk1),
                bytes(chunk2),
            )
        if not same_error(err1, err2):
            raise ComparisonError(
                name,
                MismatchKind.CONTENT,
                f"file read error mismatch: want={err1} got={err2}",
                err1,
                err2,
            )
        if err1 is not None or n1 == 0:
            return
        offset += n1


def _equal_stat(source: Any, target: Any, name: str, config: CompareConfig) -> None:
    source_info = stat(source, name)
    target_info = stat(target, name)

    def mismatch(reason: str) -> ComparisonError:
        return ComparisonError(name, MismatchKind.METADATA, reason, source_info, target_info)

    if source_info.type is not target_info.type:
        raise mismatch(f"file types mismatch: want={source_info.type} got={target_info.type}")

    # Zero permissions mean "not reported" (e.g. implied directories).
    source_perm = source_info.perm
    target_perm = target_info.perm
    if config.check_permissions and source_perm and target_perm and source_perm != target_perm:
        raise mismatch(
            f"file modes mismatch: want={format_mode(source_info.mode)} "
            f"got={format_mode(target_info.mode)}"
        )

    if config.check_times:
        for label, source_time, target_time in (
            ("modification", source_info.mod_time, target_info.mod_time),
            ("access", source_info.access_time, target_info.access_time),
            ("change", source_info.change_time, target_info.change_time),
        ):
            # A zero time means the filesystem does not support it.
            if source_time and target_time and source_time != target_time:
                raise mismatch(
                    f"file {label} times mismatch: want={source_time} got={target_time}"
                )

    # Directory sizes are platform-dependent.
    if not source_info.is_dir and source_info.size != target_info.size:
        raise mismatch(f"file sizes mismatch: want={source_info.size} got={target_info.size}")
