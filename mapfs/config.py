"""Configuration for filesystems and comparisons.

Provides configuration dataclasses, the connect_fs factory for
describing a filesystem (virtual or host directory) and build_fs for
instantiating one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from .dirfs import DirFS
from .virtual import FileRecord, VirtualFS


@dataclass
class CompareConfig:
    """Configuration for filesystem comparisons.

    Attributes:
        buffer_size: Size of the read buffer allocated when the caller
            does not supply a usable one. Split in two halves, one per side.
        min_buffer_size: Caller buffers shorter than this are replaced.
        check_times: Compare modification/access/change times when both
            sides report them.
        check_permissions: Compare permission bits when both sides
            report them.
    """

    buffer_size: int = 32768
    min_buffer_size: int = 1024
    check_times: bool = True
    check_permissions: bool = True

    def __post_init__(self) -> None:
        if self.min_buffer_size < 2:
            raise ValueError("min_buffer_size must be at least 2")
        if self.buffer_size < self.min_buffer_size:
            raise ValueError(
                f"buffer_size ({self.buffer_size}) is smaller than "
                f"min_buffer_size ({self.min_buffer_size})"
            )


@dataclass
class VirtualFSConfig:
    """Configuration for a declared in-memory filesystem.

    Attributes:
        type: Always "virtual".
        files: Mapping of path to FileRecord.
    """

    type: Literal["virtual"] = "virtual"
    files: dict[str, FileRecord] = field(default_factory=dict)


@dataclass
class DirFSConfig:
    """Configuration for a host directory.

    Attributes:
        type: Always "dir".
        root: Path of the host directory.
    """

    type: Literal["dir"] = "dir"
    root: str = ""


# Type alias for all filesystem configs
FSConfig = VirtualFSConfig | DirFSConfig


def connect_fs(
    type: Literal["virtual", "dir"] = "virtual",
    **kwargs: Any,
) -> FSConfig:
    """Describe a filesystem.

    Args:
        type: FileSystem type.
            - "virtual": In-memory filesystem declared from records.
                         Accepts 'files'.
            - "dir": Host directory. Requires 'root'.
        **kwargs: Additional configuration for the filesystem type.

    Returns:
        FSConfig for build_fs().

    Examples:
        >>> connect_fs(type="virtual")
        VirtualFSConfig(type='virtual', files={})

        >>> connect_fs(type="dir", root="/path/to/tree")
        DirFSConfig(type='dir', root='/path/to/tree')
    """
    if type == "virtual":
        files = kwargs.pop("files", None)
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for virtual fs: {list(kwargs.keys())}"
            )
        return VirtualFSConfig(files=dict(files or {}))

    elif type == "dir":
        root = kwargs.pop("root", "")
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for dir fs: {list(kwargs.keys())}"
            )
        if not root:
            raise ValueError("Dir filesystem requires 'root' parameter")
        return DirFSConfig(root=str(root))

    else:
        raise ValueError(
            f"Unsupported filesystem type: {type}. Use 'virtual' or 'dir'."
        )


def build_fs(config: FSConfig) -> Any:
    """Instantiate the filesystem described by ``config``."""
    if isinstance(config, VirtualFSConfig):
        return VirtualFS(config.files)
    if isinstance(config, DirFSConfig):
        return DirFS(config.root)
    raise TypeError(f"Unsupported config: {config!r}")
