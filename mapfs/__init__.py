"""mapfs: Declarative in-memory filesystems and deep filesystem equality."""

from .base import DirEntry, FileInfo, FileSystem, FileType, valid_path
from .compare import assert_equal_fs, equal_fs, equal_fs_buffer
from .config import CompareConfig, DirFSConfig, FSConfig, VirtualFSConfig, build_fs, connect_fs
from .dirfs import DirFS
from .errors import (
    ComparisonError,
    InvalidError,
    MismatchKind,
    NotDirectoryError,
    NotExistError,
    PathError,
    PermissionDeniedError,
    root_cause,
    same_error,
)
from .virtual import FileRecord, SubFS, VirtualFS

__all__ = [
    "assert_equal_fs",
    "build_fs",
    "CompareConfig",
    "ComparisonError",
    "connect_fs",
    "DirEntry",
    "DirFS",
    "DirFSConfig",
    "equal_fs",
    "equal_fs_buffer",
    "FileInfo",
    "FileRecord",
    "FileSystem",
    "FileType",
    "FSConfig",
    "InvalidError",
    "MismatchKind",
    "NotDirectoryError",
    "NotExistError",
    "PathError",
    "PermissionDeniedError",
    "root_cause",
    "same_error",
    "SubFS",
    "valid_path",
    "VirtualFS",
    "VirtualFSConfig",
]
