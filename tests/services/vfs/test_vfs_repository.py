from __future__ import annotations

import errno
import uuid

import pytest

from designer_repository.filesystems import MemoryFileSystem, register_provider, unmount_filesystem
from designer_repository.vfs import (
    AssetNotFoundError,
    AssetWriteError,
    ContentKind,
    DirectoryNotFoundError,
    FilesOnly,
    FilterByExtension,
    FilterByFileName,
    RepositoryProfile,
    VFSRepository,
    decode_unique_id,
)


@pytest.fixture(params=["file", "mem"])
def repository(request, tmp_path):
    if request.param == "file":
        root = (tmp_path / "designer-repo").as_uri()
        yield VFSRepository(RepositoryProfile(repository_root=root))
        return
    root = f"mem://repo-{uuid.uuid4().hex}"
    yield VFSRepository(RepositoryProfile(repository_root=root))
    unmount_filesystem(root)


def _put(repository: VFSRepository, location: str, file_name: str, content) -> str:
    return repository.create_asset(repository.new_asset(file_name, location, content))


def _relative_paths(assets, base: str) -> set[str]:
    paths = set()
    for asset in assets:
        full = f"{asset.asset_location.rstrip('/')}/{asset.full_name}"
        assert full.startswith(base + "/")
        paths.add(full[len(base):])
    return paths


def test_text_asset_lifecycle(repository) -> None:
    directory = repository.create_directory("/processes")
    assert directory is not None
    assert directory.name == "processes"
    assert directory.location == "/"

    asset_id = _put(repository, "/processes", "a.bpmn", "<xml/>")
    assert decode_unique_id(asset_id) == f"{repository.repository_root}/processes/a.bpmn"

    loaded = repository.load_asset(asset_id)
    assert loaded.content == "<xml/>"
    assert loaded.content_kind == ContentKind.TEXT
    assert loaded.name == "a"
    assert loaded.asset_type == "bpmn"
    assert loaded.full_name == "a.bpmn"
    assert loaded.asset_location == "/processes"
    assert loaded.unique_id == asset_id
    assert loaded.last_modification_date
    assert loaded.owner == ""
    assert loaded.description == ""

    deleted = repository.delete_asset(asset_id)
    assert deleted.ok
    assert deleted.cause is None
    assert repository.asset_exists(asset_id) is False


def test_local_scenario_identifier_matches_file_uri(tmp_path) -> None:
    root = (tmp_path / "designer-repo").as_uri()
    repository = VFSRepository(RepositoryProfile(repository_root=root))
    repository.create_directory("/processes")
    asset_id = repository.create_asset(repository.new_asset("a.bpmn", "/processes", "<xml/>"))

    assert decode_unique_id(asset_id) == f"{root}/processes/a.bpmn"
    assert (tmp_path / "designer-repo" / "processes" / "a.bpmn").read_text(encoding="utf-8") == "<xml/>"


def test_binary_asset_round_trip(repository) -> None:
    payload = bytes(range(256))
    asset = repository.new_asset("logo.png", "/images", payload)
    assert asset.content_kind == ContentKind.BINARY

    asset_id = repository.create_asset(asset)
    loaded = repository.load_asset(asset_id)

    assert loaded.content == payload
    assert loaded.asset_location == "/images"


def test_text_content_is_line_joined(repository) -> None:
    asset_id = _put(repository, "/", "notes.txt", "first\r\nsecond\nthird\n")
    assert repository.load_asset(asset_id).content == "first\nsecond\nthird"


def test_create_asset_at_root_location(repository) -> None:
    asset_id = _put(repository, "/", "root.json", "{}")
    loaded = repository.load_asset(asset_id)
    assert loaded.asset_location == "/"
    assert decode_unique_id(asset_id) == f"{repository.repository_root}/root.json"


def test_create_asset_overwrites_existing(repository) -> None:
    first = _put(repository, "/processes", "a.bpmn", "<first/>")
    second = _put(repository, "/processes", "a.bpmn", "<x/>")
    assert first == second
    assert repository.load_asset(second).content == "<x/>"


def test_create_asset_write_failure_is_fatal(repository) -> None:
    _put(repository, "/", "blocker.txt", "file, not a folder")
    with pytest.raises(AssetWriteError) as excinfo:
        _put(repository, "/blocker.txt", "child.txt", "nope")
    assert excinfo.value.code == "ASSET_WRITE_FAILED"


def test_directory_create_exists_delete(repository) -> None:
    created = repository.create_directory("/a/b/c")
    assert created is not None
    assert created.name == "c"
    assert created.location == "/a/b"
    assert decode_unique_id(created.unique_id) == f"{repository.repository_root}/a/b/c"
    assert repository.directory_exists("/a/b/c")

    _put(repository, "/a/b/c", "x.bpmn", "<x/>")
    _put(repository, "/a", "y.bpmn", "<y/>")

    result = repository.delete_directory("/a")
    assert result.ok
    assert not repository.directory_exists("/a")
    assert not repository.directory_exists("/a/b/c")


def test_delete_directory_requires_directory(repository) -> None:
    asset_id = _put(repository, "/", "file.txt", "x")

    missing = repository.delete_directory("/missing")
    assert not missing
    assert isinstance(missing.cause, DirectoryNotFoundError)

    not_dir = repository.delete_directory("/file.txt")
    assert not not_dir.ok
    assert repository.asset_exists(asset_id)


def test_delete_directory_fail_if_not_empty(repository) -> None:
    _put(repository, "/keep", "a.txt", "a")
    result = repository.delete_directory("/keep", fail_if_not_empty=True)
    assert not result.ok
    assert isinstance(result.cause, OSError)
    assert repository.directory_exists("/keep")

    repository.create_directory("/empty")
    assert repository.delete_directory("/empty", fail_if_not_empty=True).ok


def test_list_directories_returns_immediate_children(repository) -> None:
    repository.create_directory("/processes/sub")
    repository.create_directory("/forms")
    _put(repository, "/", "top.txt", "t")

    directories = repository.list_directories("/")
    assert directories is not None
    assert sorted(d.name for d in directories) == ["forms", "processes"]
    assert {d.location for d in directories} == {"/"}

    nested = repository.list_directories("/processes")
    assert [d.name for d in nested] == ["sub"]
    assert nested[0].location == "/processes"


def test_listing_missing_location_returns_none(repository) -> None:
    assert repository.list_directories("/nowhere") is None
    assert repository.list_assets("/nowhere") is None
    assert repository.list_assets_recursively("/nowhere", FilesOnly()) is None


def test_list_assets_skips_directories_and_content(repository) -> None:
    _put(repository, "/processes", "a.bpmn", "<a/>")
    _put(repository, "/processes", "b.json", "{}")
    repository.create_directory("/processes/sub")

    assets = repository.list_assets("/processes")
    assert assets is not None
    assert sorted(a.full_name for a in assets) == ["a.bpmn", "b.json"]
    assert all(a.content is None for a in assets)
    assert all(a.asset_location == "/processes" for a in assets)


def test_list_assets_with_filter(repository) -> None:
    _put(repository, "/processes", "a.bpmn", "<a/>")
    _put(repository, "/processes", "b.json", "{}")

    by_extension = repository.list_assets("/processes", FilterByExtension("bpmn"))
    assert [a.full_name for a in by_extension] == ["a.bpmn"]

    by_name = repository.list_assets("/processes", FilterByFileName("b.json"))
    assert [a.full_name for a in by_name] == ["b.json"]


def test_list_assets_recursively_applies_filter(repository) -> None:
    _put(repository, "/processes", "a.bpmn", "<a/>")
    _put(repository, "/processes/sub", "b.bpmn", "<b/>")
    _put(repository, "/processes/sub/deeper", "c.json", "{}")

    assets = repository.list_assets_recursively("/processes", FilterByExtension("bpmn"))
    assert assets is not None
    assert _relative_paths(assets, "/processes") == {"/a.bpmn", "/sub/b.bpmn"}

    everything = repository.list_assets_recursively("/", FilesOnly())
    assert len(everything) == 3


def test_copy_directory_mirrors_tree_without_gitignore(repository) -> None:
    _put(repository, "/processes", "a.bpmn", "<a/>")
    _put(repository, "/processes", ".gitignore", "*.tmp")
    _put(repository, "/processes/sub", "b.bpmn", "<b/>")
    _put(repository, "/processes/sub", ".gitignore", "*.bak")
    repository.create_directory("/processes/empty")

    result = repository.copy_directory("/processes", "/archive")
    assert result.ok

    source = repository.list_assets_recursively("/processes", FilesOnly())
    copied = repository.list_assets_recursively("/archive/processes", FilesOnly())
    expected = {path for path in _relative_paths(source, "/processes") if not path.endswith("/.gitignore")}
    assert _relative_paths(copied, "/archive/processes") == expected
    assert repository.directory_exists("/archive/processes/empty")
    assert repository.directory_exists("/processes/sub")
    assert repository.load_asset_from_path("/archive/processes/sub/b.bpmn").content == "<b/>"


def test_copy_directory_missing_source_raises(repository) -> None:
    with pytest.raises(DirectoryNotFoundError):
        repository.copy_directory("/missing", "/archive")


def test_move_directory_relocates_tree(repository) -> None:
    _put(repository, "/processes", "a.bpmn", "<a/>")
    _put(repository, "/processes/sub", "b.bpmn", "<b/>")
    repository.create_directory("/processes/empty")

    result = repository.move_directory("/processes", "/archive", "renamed")
    assert result.ok

    assert not repository.directory_exists("/processes")
    assert repository.directory_exists("/archive/renamed/empty")
    moved = repository.list_assets_recursively("/archive/renamed", FilesOnly())
    assert _relative_paths(moved, "/archive/renamed") == {"/a.bpmn", "/sub/b.bpmn"}


def test_move_directory_merges_into_existing_destination(repository) -> None:
    _put(repository, "/processes", "a.bpmn", "<new/>")
    _put(repository, "/archive/processes", "a.bpmn", "<old/>")
    _put(repository, "/archive/processes", "other.bpmn", "<other/>")

    result = repository.move_directory("/processes", "/archive")
    assert result.ok

    assert not repository.directory_exists("/processes")
    assert repository.load_asset_from_path("/archive/processes/a.bpmn").content == "<new/>"
    assert repository.load_asset_from_path("/archive/processes/other.bpmn").content == "<other/>"


def test_move_directory_missing_source_raises(repository) -> None:
    with pytest.raises(DirectoryNotFoundError):
        repository.move_directory("/missing", "/archive")


def test_directory_cannot_be_copied_or_moved_into_itself(repository) -> None:
    _put(repository, "/p", "a.bpmn", "<a/>")
    repository.create_directory("/p/sub")

    copied = repository.copy_directory("/p", "/p")
    assert not copied.ok
    assert isinstance(copied.cause, ValueError)
    assert not repository.copy_directory("/p", "/p/sub").ok
    moved = repository.move_directory("/p", "/p/sub")
    assert not moved.ok
    assert isinstance(moved.cause, ValueError)

    assert [d.name for d in repository.list_directories("/p")] == ["sub"]
    assert repository.list_directories("/p/sub") == []
    assert repository.load_asset_from_path("/p/a.bpmn").content == "<a/>"


class _DirectoryMoveFails(MemoryFileSystem):
    """Memory tree whose directory renames fail, optionally after a late write."""

    scheme = "flakymem"

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.late_writes: list[str] = []

    def move(self, source: str, target: str, *, replace_existing: bool = False) -> None:
        if self.is_dir(source):
            for uri in self.late_writes:
                self.write_bytes(uri, b"<late/>")
            raise OSError(errno.EXDEV, "cannot relocate directory", source)
        super().move(source, target, replace_existing=replace_existing)


@pytest.fixture
def flaky_repository():
    register_provider(_DirectoryMoveFails.scheme, _DirectoryMoveFails.from_uri)
    root = f"{_DirectoryMoveFails.scheme}://repo-{uuid.uuid4().hex}"
    yield VFSRepository(RepositoryProfile(repository_root=root))
    unmount_filesystem(root)


def test_move_directory_drops_empty_source_when_relocation_fails(flaky_repository) -> None:
    _put(flaky_repository, "/processes", "a.bpmn", "<a/>")
    flaky_repository.create_directory("/processes/empty")

    result = flaky_repository.move_directory("/processes", "/archive")
    assert result.ok

    assert not flaky_repository.directory_exists("/processes")
    assert not flaky_repository.directory_exists("/archive/processes/empty")
    assert flaky_repository.load_asset_from_path("/archive/processes/a.bpmn").content == "<a/>"


def test_move_directory_keeps_non_empty_source_when_relocation_fails(flaky_repository) -> None:
    _put(flaky_repository, "/processes", "a.bpmn", "<a/>")
    flaky_repository.create_directory("/processes/empty")
    flaky_repository.fs.late_writes.append(f"{flaky_repository.repository_root}/processes/empty/late.bpmn")

    result = flaky_repository.move_directory("/processes", "/archive")
    assert result.ok is False
    assert isinstance(result.cause, OSError)
    assert result.cause.errno == errno.ENOTEMPTY

    assert flaky_repository.load_asset_from_path("/processes/empty/late.bpmn").content == "<late/>"
    assert flaky_repository.load_asset_from_path("/archive/processes/a.bpmn").content == "<a/>"


def test_asset_names_keep_reserved_uri_characters(repository) -> None:
    names = ["keep.bpmn", "keep?.bpmn", "v#2.bpmn", "50%20off.bpmn"]
    ids = {name: _put(repository, "/p", name, f"<{index}/>") for index, name in enumerate(names)}
    assert len(set(ids.values())) == len(names)

    for index, name in enumerate(names):
        loaded = repository.load_asset(ids[name])
        assert loaded.full_name == name
        assert loaded.content == f"<{index}/>"
        assert loaded.asset_location == "/p"
    assert sorted(asset.full_name for asset in repository.list_assets("/p")) == sorted(names)
    assert repository.asset_exists("/p/keep?.bpmn")

    assert repository.move_asset(ids["keep.bpmn"], "/r", "renamed#1.bpmn").ok
    assert repository.load_asset_from_path("/r/renamed#1.bpmn").content == "<0/>"

    nested = _put(repository, "/q#1/50%", "a.bpmn", "<a/>")
    assert repository.load_asset(nested).asset_location == "/q#1/50%"
    assert "q#1" in {directory.name for directory in repository.list_directories("/")}


def test_update_asset(repository) -> None:
    asset_id = _put(repository, "/processes", "a.bpmn", "<a/>")
    asset = repository.load_asset(asset_id)
    updated = asset.model_copy(update={"content": "<b/>"})

    assert repository.update_asset(updated) == asset_id
    assert repository.load_asset(asset_id).content == "<b/>"


def test_update_asset_missing_raises(repository) -> None:
    asset_id = _put(repository, "/processes", "a.bpmn", "<a/>")
    asset = repository.load_asset(asset_id)
    assert repository.delete_asset(asset_id).ok

    with pytest.raises(AssetNotFoundError):
        repository.update_asset(asset)
    with pytest.raises(AssetNotFoundError):
        repository.update_asset(repository.new_asset("fresh.bpmn", "/", "<x/>"))


def test_load_asset_not_found(repository) -> None:
    with pytest.raises(AssetNotFoundError) as excinfo:
        repository.load_asset(f"{repository.repository_root}/missing.bpmn")
    assert excinfo.value.code == "ASSET_NOT_FOUND"

    with pytest.raises(AssetNotFoundError):
        repository.load_asset_from_path("/missing.bpmn")


def test_load_asset_from_path(repository) -> None:
    asset_id = _put(repository, "/processes", "a.bpmn", "<a/>")
    loaded = repository.load_asset_from_path("/processes/a.bpmn")
    assert loaded.unique_id == asset_id
    assert loaded.content == "<a/>"


def test_load_asset_accepts_raw_uri(repository) -> None:
    asset_id = _put(repository, "/processes", "a.bpmn", "<a/>")
    loaded = repository.load_asset(decode_unique_id(asset_id))
    assert loaded.unique_id == asset_id


def test_delete_missing_asset_is_a_plain_failure(repository) -> None:
    asset_id = _put(repository, "/", "gone.txt", "x")
    assert repository.delete_asset(asset_id).ok

    again = repository.delete_asset(asset_id)
    assert not again
    assert again.cause is None


def test_delete_asset_from_path(repository) -> None:
    asset_id = _put(repository, "/processes", "a.bpmn", "<a/>")
    assert repository.delete_asset_from_path("/processes/a.bpmn").ok
    assert not repository.asset_exists(asset_id)


def test_asset_exists_falls_back_to_location(repository) -> None:
    _put(repository, "/processes", "a.bpmn", "<a/>")
    assert repository.asset_exists("/processes/a.bpmn")
    assert not repository.asset_exists("/processes/b.bpmn")


def test_move_asset(repository) -> None:
    asset_id = _put(repository, "/processes", "a.bpmn", "<a/>")

    result = repository.move_asset(asset_id, "/archive/2026", "b.bpmn")
    assert result.ok

    assert repository.asset_exists(asset_id) is False
    assert repository.asset_exists("/archive/2026/b.bpmn")
    assert repository.load_asset_from_path("/archive/2026/b.bpmn").content == "<a/>"


def test_move_asset_replaces_existing(repository) -> None:
    asset_id = _put(repository, "/processes", "a.bpmn", "<new/>")
    _put(repository, "/archive", "a.bpmn", "<old/>")

    assert repository.move_asset(asset_id, "/archive").ok
    assert repository.load_asset_from_path("/archive/a.bpmn").content == "<new/>"


def test_copy_asset_keeps_source(repository) -> None:
    asset_id = _put(repository, "/processes", "a.bpmn", "<a/>")

    assert repository.copy_asset(asset_id, "/backup").ok
    assert repository.copy_asset(asset_id, "/backup", "renamed.bpmn").ok

    assert repository.asset_exists(asset_id)
    assert repository.load_asset_from_path("/backup/a.bpmn").content == "<a/>"
    assert repository.load_asset_from_path("/backup/renamed.bpmn").content == "<a/>"


def test_copy_and_move_missing_asset_raise(repository) -> None:
    missing = f"{repository.repository_root}/missing.bpmn"
    with pytest.raises(AssetNotFoundError):
        repository.copy_asset(missing, "/backup")
    with pytest.raises(AssetNotFoundError):
        repository.move_asset(missing, "/backup")
