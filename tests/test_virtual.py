"""Tests for VirtualFS core functionality."""

import stat

import pytest

from mapfs import (
    FileRecord,
    FileType,
    InvalidError,
    NotDirectoryError,
    NotExistError,
    PermissionDeniedError,
    VirtualFS,
)


def make_tree() -> VirtualFS:
    return VirtualFS({
        "dir": FileRecord(mode=stat.S_IFDIR | 0o755),
        "dir/file": FileRecord(mode=0o644, data=b"Hello World!", mod_time=1700000000.0),
        "dir/symlink": FileRecord(mode=stat.S_IFLNK | 0o666, data=b"../file"),
    })


class TestVirtualFSBasics:
    """Test opening and reading declared files."""

    def test_read_file(self):
        """Test reading a declared file's content."""
        fsys = make_tree()
        assert fsys.read_file("dir/file") == b"Hello World!"

    def test_open_and_read_in_chunks(self):
        """Test reading a handle in bounded chunks until end of file."""
        fsys = make_tree()
        with fsys.open("dir/file") as f:
            assert f.read(5) == b"Hello"
            assert f.read(100) == b" World!"
            assert f.read(100) == b""

    def test_readinto(self):
        """Test readinto fills the caller's buffer."""
        fsys = make_tree()
        buf = bytearray(4)
        with fsys.open("dir/file") as f:
            assert f.readinto(buf) == 4
        assert bytes(buf) == b"Hell"

    def test_handle_closed_after_context(self):
        """Test the handle is closed when the with block exits."""
        fsys = make_tree()
        with fsys.open("dir/file") as f:
            pass
        assert f.closed
        with pytest.raises(ValueError):
            f.read()

    def test_open_missing_raises(self):
        """Test opening an absent path raises NotExistError."""
        fsys = make_tree()
        with pytest.raises(NotExistError) as excinfo:
            fsys.open("dir/missing")
        assert excinfo.value.op == "open"
        assert excinfo.value.path == "dir/missing"

    def test_missing_is_file_not_found(self):
        """Test NotExistError can be caught as FileNotFoundError."""
        fsys = make_tree()
        with pytest.raises(FileNotFoundError):
            fsys.read_file("nope")

    def test_read_directory_handle_is_invalid(self):
        """Test reading bytes from a directory handle fails."""
        fsys = make_tree()
        with fsys.open("dir") as f:
            with pytest.raises(InvalidError):
                f.read()

    def test_empty_filesystem_has_root(self):
        """Test "." exists and is empty in an empty filesystem."""
        fsys = VirtualFS()
        assert fsys.readdir(".") == []
        assert fsys.stat(".").is_dir

    def test_mapping_protocol(self):
        """Test VirtualFS behaves as a read-only mapping of records."""
        fsys = make_tree()
        assert len(fsys) == 3
        assert "dir/file" in fsys
        assert "dir/other" not in fsys
        assert fsys["dir/file"].data == b"Hello World!"
        assert sorted(fsys) == ["dir", "dir/file", "dir/symlink"]

    def test_records_are_copied(self):
        """Test later changes to the source dict are not seen."""
        files = {"a": FileRecord(mode=0o644, data=b"a")}
        fsys = VirtualFS(files)
        files["b"] = FileRecord(mode=0o644, data=b"b")
        assert "b" not in fsys


class TestVirtualFSPaths:
    """Test path validation."""

    def test_invalid_paths_do_not_exist(self):
        """Test every malformed path fails as not found."""
        fsys = VirtualFS({"a/b": FileRecord(mode=0o644, data=b"x")})
        for name in ("", "/a/b", "a/b/", "a//b", "./a/b", "a/./b", "a/../a/b"):
            with pytest.raises(NotExistError):
                fsys.open(name)
            with pytest.raises(NotExistError):
                fsys.stat(name)
            assert not fsys.exists(name)

    def test_invalid_keys_are_unreachable(self):
        """Test records declared under invalid keys never show up."""
        fsys = VirtualFS({
            "/abs": FileRecord(mode=0o644, data=b"x"),
            "ok": FileRecord(mode=0o644, data=b"y"),
        })
        assert [entry.name for entry in fsys.readdir(".")] == ["ok"]
        with pytest.raises(NotExistError):
            fsys.open("/abs")


class TestVirtualFSStat:
    """Test metadata reporting."""

    def test_stat_regular_file(self):
        """Test a regular file's metadata comes from its record."""
        info = make_tree().stat("dir/file")
        assert info.name == "file"
        assert info.type is FileType.REGULAR
        assert info.perm == 0o644
        assert info.size == 12
        assert info.mod_time == 1700000000.0
        assert info.access_time == 0.0
        assert info.change_time == 0.0

    def test_bare_mode_is_regular(self):
        """Test a mode without type bits gains the regular-file type."""
        info = make_tree().stat("dir/file")
        assert info.mode == stat.S_IFREG | 0o644
        assert stat.S_ISREG(info.st_mode)

    def test_stat_explicit_directory(self):
        """Test an explicit directory keeps its declared permissions."""
        info = make_tree().stat("dir")
        assert info.is_dir
        assert info.perm == 0o755

    def test_stat_symlink_does_not_follow(self):
        """Test stat on a link reports the link itself."""
        info = make_tree().stat("dir/symlink")
        assert info.type is FileType.SYMLINK
        assert info.size == len(b"../file")

    def test_handle_stat_matches_stat(self):
        """Test the open handle reports the same metadata as stat()."""
        fsys = make_tree()
        with fsys.open("dir/file") as f:
            assert f.stat() == fsys.stat("dir/file")

    def test_stat_missing_raises(self):
        """Test stat on an absent path raises NotExistError."""
        with pytest.raises(NotExistError):
            make_tree().stat("missing")


class TestVirtualFSReadDir:
    """Test directory listings."""

    def test_readdir_sorted_with_types(self):
        """Test entries are sorted by name and typed from their records."""
        fsys = VirtualFS({
            "z": FileRecord(mode=0o644),
            "a/nested": FileRecord(mode=0o644),
            "m": FileRecord(mode=stat.S_IFLNK | 0o777, data=b"z"),
            "dev": FileRecord(mode=stat.S_IFCHR | 0o600),
        })
        entries = fsys.readdir(".")
        assert [(e.name, e.type) for e in entries] == [
            ("a", FileType.DIRECTORY),
            ("dev", FileType.CHAR_DEVICE),
            ("m", FileType.SYMLINK),
            ("z", FileType.REGULAR),
        ]

    def test_readdir_entry_info(self):
        """Test DirEntry.info() returns the entry's metadata."""
        fsys = make_tree()
        entries = fsys.readdir("dir")
        assert entries[0].name == "file"
        assert entries[0].info() == fsys.stat("dir/file")

    def test_readdir_merges_explicit_and_implied(self):
        """Test a child both declared and implied is listed once."""
        fsys = VirtualFS({
            "a": FileRecord(mode=stat.S_IFDIR | 0o750),
            "a/b": FileRecord(mode=0o644),
        })
        assert [entry.name for entry in fsys.readdir(".")] == ["a"]
        assert fsys.stat("a").perm == 0o750

    def test_readdir_on_file_raises(self):
        """Test listing a regular file raises NotDirectoryError."""
        with pytest.raises(NotDirectoryError):
            make_tree().readdir("dir/file")

    def test_readdir_on_file_is_not_a_directory_error(self):
        """Test NotDirectoryError can be caught as NotADirectoryError."""
        with pytest.raises(NotADirectoryError):
            make_tree().readdir("dir/file")

    def test_readdir_missing_raises(self):
        """Test listing an absent directory raises NotExistError."""
        with pytest.raises(NotExistError):
            make_tree().readdir("nope")

    def test_handle_readdir_pages(self):
        """Test readdir(n) on a handle pages through the entries."""
        fsys = make_tree()
        with fsys.open("dir") as d:
            assert [e.name for e in d.readdir(1)] == ["file"]
            assert [e.name for e in d.readdir(1)] == ["symlink"]
            assert d.readdir(1) == []

    def test_handle_readdir_all(self):
        """Test readdir() with no count returns every remaining entry."""
        fsys = make_tree()
        with fsys.open("dir") as d:
            assert [e.name for e in d.readdir()] == ["file", "symlink"]
            assert d.readdir() == []

    def test_file_handle_readdir_raises(self):
        """Test listing through a regular file's handle fails."""
        with make_tree().open("dir/file") as f:
            with pytest.raises(NotDirectoryError):
                f.readdir()


class TestVirtualFSReadLink:
    """Test symbolic link targets."""

    def test_readlink(self):
        """Test readlink returns the declared target."""
        assert make_tree().readlink("dir/symlink") == "../file"

    def test_readlink_empty_target(self):
        """Test a link without data has an empty target."""
        fsys = VirtualFS({"broken": FileRecord(mode=stat.S_IFLNK | 0o666)})
        assert fsys.readlink("broken") == ""

    def test_readlink_regular_file_invalid(self):
        """Test readlink on a non-link raises InvalidError."""
        with pytest.raises(InvalidError) as excinfo:
            make_tree().readlink("dir/file")
        assert excinfo.value.op == "readlink"

    def test_readlink_implied_directory_not_found(self):
        """Test readlink on an implied directory raises NotExistError."""
        fsys = VirtualFS({"a/b": FileRecord(mode=0o644)})
        with pytest.raises(FileNotFoundError) as excinfo:
            fsys.readlink("a")
        assert isinstance(excinfo.value, NotExistError)
        assert excinfo.value.op == "readlink"

    def test_readlink_declared_directory_invalid(self):
        """Test readlink on a declared directory raises InvalidError."""
        with pytest.raises(InvalidError):
            make_tree().readlink("dir")

    def test_readlink_missing(self):
        """Test readlink on an absent path raises NotExistError."""
        with pytest.raises(NotExistError):
            make_tree().readlink("dir/missing")

    def test_readlink_invalid_path(self):
        """Test readlink on a malformed path raises NotExistError."""
        with pytest.raises(NotExistError):
            make_tree().readlink("dir/../dir/symlink")


class TestVirtualFSPermissions:
    """Test simulated permission denial."""

    def test_unreadable_file_opens_but_read_fails(self):
        """Test a record without the owner read bit denies reads."""
        fsys = VirtualFS({"secret": FileRecord(mode=0o200, data=b"hidden")})
        with fsys.open("secret") as f:
            with pytest.raises(PermissionDeniedError) as excinfo:
                f.read()
            assert excinfo.value.op == "read"
            with pytest.raises(PermissionError):
                f.readinto(bytearray(8))

    def test_unreadable_file_stat_still_works(self):
        """Test stat() on a denied handle still reports metadata."""
        fsys = VirtualFS({"secret": FileRecord(mode=0o200, data=b"hidden")})
        with fsys.open("secret") as f:
            assert f.stat().perm == 0o200
            assert f.stat().size == 6

    def test_read_file_denied(self):
        """Test read_file() goes through the permission check."""
        fsys = VirtualFS({"secret": FileRecord(mode=0o044, data=b"hidden")})
        with pytest.raises(PermissionDeniedError):
            fsys.read_file("secret")

    def test_unreadable_directory_listing_denied(self):
        """Test listing through a denied directory handle fails."""
        fsys = VirtualFS({
            "locked": FileRecord(mode=stat.S_IFDIR | 0o300),
            "locked/file": FileRecord(mode=0o644),
        })
        with fsys.open("locked") as d:
            with pytest.raises(PermissionDeniedError):
                d.readdir()

    def test_group_read_bit_is_not_enough(self):
        """Test only the owner read bit grants reads."""
        fsys = VirtualFS({"f": FileRecord(mode=0o044, data=b"x")})
        with fsys.open("f") as f:
            with pytest.raises(PermissionDeniedError):
                f.read()


class TestVirtualFSImpliedDirectories:
    """Test directories inferred from descendant paths."""

    def test_implied_directory_stat(self):
        """Test an implied directory reports owner rwx."""
        fsys = VirtualFS({"a/b/c.txt": FileRecord(mode=0o644, data=b"x")})
        for name in ("a", "a/b"):
            info = fsys.stat(name)
            assert info.is_dir
            assert info.perm == 0o700
            assert info.mode == stat.S_IFDIR | 0o700

    def test_implied_directory_handle_stat(self):
        """Test the open handle of an implied directory agrees with stat()."""
        fsys = VirtualFS({"a/b/c.txt": FileRecord(mode=0o644, data=b"x")})
        with fsys.open("a") as d:
            assert d.stat().mode == stat.S_IFDIR | 0o700
            assert [e.name for e in d.readdir()] == ["b"]

    def test_implied_root(self):
        """Test an undeclared root is an implied directory."""
        fsys = VirtualFS({"a": FileRecord(mode=0o644)})
        assert fsys.stat(".").mode == stat.S_IFDIR | 0o700

    def test_exists_and_isdir(self):
        """Test existence checks cover implied directories."""
        fsys = VirtualFS({"a/b/c.txt": FileRecord(mode=0o644)})
        assert fsys.exists("a")
        assert fsys.isdir("a/b")
        assert not fsys.isdir("a/b/c.txt")
        assert not fsys.exists("a/c")
        assert not fsys.exists("a/b/c")
