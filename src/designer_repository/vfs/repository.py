"""Filesystem-backed asset repository."""

from __future__ import annotations

import errno
import logging
import re
from datetime import datetime
from typing import Any, Mapping
from urllib.parse import quote, unquote, urlparse

from designer_repository.filesystems import (
    FileEntry,
    FileSystemProvider,
    get_filesystem,
    resolve_filesystem,
    uri_join,
    uri_name,
    uri_parent,
    uri_relative,
    walk_tree,
)

from .assets import AssetBuilderRegistry
from .config import FETCH_COMMAND_OPTION, RepositoryProfile
from .errors import (
    AssetNotFoundError,
    AssetWriteError,
    DirectoryNotFoundError,
    RepositoryInvariantError,
)
from .filters import Filter
from .ids import decode_unique_id, encode_unique_id
from .models import Asset, ContentKind, Directory, OperationResult

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_GITIGNORE = ".gitignore"


class VFSRepository:
    """Directories and assets on one filesystem root, addressed by encoded URIs."""

    def __init__(
        self,
        profile: RepositoryProfile,
        env: Mapping[str, str] | None = None,
        *,
        asset_builders: AssetBuilderRegistry | None = None,
    ) -> None:
        self.profile = profile
        self.env: dict[str, str] = {**profile.env, **dict(env or {})}
        self.asset_builders = asset_builders or AssetBuilderRegistry(profile.binary_extensions)
        root = profile.repository_root
        try:
            fs = resolve_filesystem(root, self.env)
        except (ValueError, OSError, ImportError) as exc:
            raise RepositoryInvariantError(detail=f"cannot open filesystem for {root}: {exc}") from exc
        # remote providers may need to fetch state before any file operation
        fetch_command = self.env.get(FETCH_COMMAND_OPTION)
        if fetch_command:
            fs = get_filesystem(root + fetch_command)
            if fs is None:
                raise RepositoryInvariantError(detail=f"no filesystem mounted for {root + fetch_command}")
        self._fs: FileSystemProvider = fs
        self._root_uri = fs.normalize_uri(root)

    @property
    def fs(self) -> FileSystemProvider:
        return self._fs

    @property
    def repository_root(self) -> str:
        root = self._root_uri
        if root.endswith(self._fs.separator):
            return root[: -len(self._fs.separator)]
        return root

    def new_asset(self, file_name: str, location: str = "/", content: Any = None) -> Asset:
        return self.asset_builders.build(file_name, asset_location=location, content=content)

    # directories

    def list_directories(self, start_at: str) -> list[Directory] | None:
        path = self._resolve(start_at)
        try:
            entries = self._fs.list_dir(path)
        except (OSError, ValueError) as exc:
            logger.warning("VFS: cannot list directories at %s (%s)", start_at, exc)
            return None
        return [self._directory(entry.uri) for entry in entries if entry.is_dir]

    def create_directory(self, location: str) -> Directory | None:
        path = self._resolve(location)
        try:
            self._fs.create_directories(path)
        except (OSError, ValueError) as exc:
            logger.warning("VFS: cannot create directory %s (%s)", location, exc)
            return None
        return self._directory(self._fs.normalize_uri(path))

    def directory_exists(self, location: str) -> bool:
        path = self._resolve(location)
        return self._fs.exists(path) and self._fs.is_dir(path)

    def delete_directory(self, location: str, fail_if_not_empty: bool = False) -> OperationResult:
        try:
            path = self._resolve(location)
            if not self._fs.is_dir(path):
                return OperationResult.failure(DirectoryNotFoundError(detail=location))
            if fail_if_not_empty and self._fs.list_dir(path):
                return OperationResult.failure(OSError(errno.ENOTEMPTY, "directory not empty", location))

            def visit_file(entry: FileEntry) -> None:
                self._fs.delete(entry.uri)

            def post_visit_directory(directory: str, error: Exception | None) -> None:
                if error is not None:
                    raise error
                self._fs.delete_if_exists(directory)

            walk_tree(self._fs, path, visit_file=visit_file, post_visit_directory=post_visit_directory)
        except Exception as exc:
            logger.warning("VFS: delete directory %s failed (%s)", location, exc)
            return OperationResult.failure(exc)
        return OperationResult.success()

    def copy_directory(self, source_directory: str, location: str) -> OperationResult:
        if not self.directory_exists(source_directory):
            raise DirectoryNotFoundError(detail=f"Directory does not exist {source_directory}")
        try:
            source_path = self._fs.normalize_uri(self._resolve(source_directory))
            if not self._fs.is_dir(source_path):
                return OperationResult.failure(DirectoryNotFoundError(detail=source_directory))
            target_root = self._fs.normalize_uri(uri_join(self._resolve(location), uri_name(source_path)))
            if _contains(source_path, target_root):
                return OperationResult.failure(ValueError(f"cannot copy {source_directory} into itself"))

            def pre_visit_directory(directory: str) -> None:
                self._fs.create_directories(uri_join(target_root, uri_relative(source_path, directory)))

            def visit_file(entry: FileEntry) -> None:
                if entry.name == _GITIGNORE:
                    return
                target = uri_join(target_root, uri_relative(source_path, entry.uri))
                self._create_if_not_exists(target)
                self._fs.copy(entry.uri, target, replace_existing=True)

            walk_tree(
                self._fs,
                source_path,
                pre_visit_directory=pre_visit_directory,
                visit_file=visit_file,
            )
        except RepositoryInvariantError:
            raise
        except Exception as exc:
            logger.warning("VFS: copy directory %s -> %s failed (%s)", source_directory, location, exc)
            return OperationResult.failure(exc)
        return OperationResult.success()

    def move_directory(self, source_directory: str, location: str, name: str | None = None) -> OperationResult:
        if not self.directory_exists(source_directory):
            raise DirectoryNotFoundError(detail=f"Directory does not exist {source_directory}")
        try:
            source_path = self._fs.normalize_uri(self._resolve(source_directory))
            if not self._fs.is_dir(source_path):
                return OperationResult.failure(DirectoryNotFoundError(detail=source_directory))
            target_root = self._fs.normalize_uri(
                uri_join(self._resolve(location), quote(name, safe="") if name else uri_name(source_path))
            )
            if _contains(source_path, target_root):
                return OperationResult.failure(ValueError(f"cannot move {source_directory} into itself"))

            def visit_file(entry: FileEntry) -> None:
                target = uri_join(target_root, uri_relative(source_path, entry.uri))
                self._create_if_not_exists(target)
                self._fs.move(entry.uri, target, replace_existing=True)

            def post_visit_directory(directory: str, error: Exception | None) -> None:
                if error is not None:
                    raise error
                target = uri_join(target_root, uri_relative(source_path, directory))
                self._create_if_not_exists(target)
                if self._fs.exists(target):
                    # contents already relocated; only an empty source may go
                    self._fs.delete(directory)
                    return
                try:
                    self._fs.move(directory, target, replace_existing=True)
                except OSError as exc:
                    logger.warning("VFS: relocating %s failed (%s); removing empty source", directory, exc)
                    self._fs.delete(directory)

            walk_tree(self._fs, source_path, visit_file=visit_file, post_visit_directory=post_visit_directory)
        except RepositoryInvariantError:
            raise
        except Exception as exc:
            logger.warning("VFS: move directory %s -> %s failed (%s)", source_directory, location, exc)
            return OperationResult.failure(exc)
        return OperationResult.success()

    # assets

    def list_assets(self, location: str, filter: Filter | None = None) -> list[Asset] | None:
        path = self._resolve(location)
        try:
            entries = self._fs.list_dir(path)
        except (OSError, ValueError) as exc:
            logger.warning("VFS: cannot list assets at %s (%s)", location, exc)
            return None
        found: list[Asset] = []
        for entry in entries:
            accepted = filter.accept(entry) if filter is not None else not entry.is_dir
            if not accepted:
                continue
            asset = self._build_asset(entry.uri, load_content=False)
            if asset is not None:
                found.append(asset)
        return found

    def list_assets_recursively(self, start_at: str, filter: Filter) -> list[Asset] | None:
        path = self._resolve(start_at)
        found: list[Asset] = []

        def visit_file(entry: FileEntry) -> None:
            if filter.accept(entry):
                asset = self._build_asset(entry.uri, load_content=False)
                if asset is not None:
                    found.append(asset)

        try:
            walk_tree(self._fs, path, visit_file=visit_file)
        except (OSError, ValueError) as exc:
            logger.warning("VFS: cannot walk %s (%s)", start_at, exc)
            return None
        return found

    def load_asset(self, unique_id: str) -> Asset:
        uri = decode_unique_id(unique_id)
        asset = self._build_asset(uri, load_content=True)
        if asset is None:
            raise AssetNotFoundError(detail=unique_id)
        return asset

    def load_asset_from_path(self, location: str) -> Asset:
        path = self._resolve(location)
        if not self._fs.exists(path):
            raise AssetNotFoundError(detail=location)
        return self.load_asset(encode_unique_id(self._fs.normalize_uri(path)))

    def create_asset(self, asset: Asset) -> str:
        location = "" if asset.asset_location == self._fs.separator else asset.asset_location
        file_name = quote(asset.full_name, safe="")
        path = f"{self._resolve(location)}{self._fs.separator}{file_name}"
        self._create_if_not_exists(path)
        try:
            self._fs.write_bytes(path, _content_bytes(asset))
        except (OSError, ValueError) as exc:
            raise AssetWriteError(detail=f"Error when creating asset {asset.full_name}: {exc}") from exc
        return encode_unique_id(self._fs.normalize_uri(path))

    def update_asset(self, asset: Asset) -> str | None:
        if not asset.unique_id:
            raise AssetNotFoundError(detail=f"asset {asset.full_name} has no unique id")
        uri = decode_unique_id(asset.unique_id)
        try:
            present = self._fs.exists(uri)
        except ValueError:
            present = False
        if not present:
            raise AssetNotFoundError(detail=asset.unique_id)
        try:
            self._fs.write_bytes(uri, _content_bytes(asset))
        except (OSError, ValueError) as exc:
            logger.warning("VFS: update of %s failed (%s)", uri, exc)
            return None
        return asset.unique_id

    def delete_asset(self, unique_id: str) -> OperationResult:
        uri = decode_unique_id(unique_id)
        try:
            deleted = self._fs.delete_if_exists(uri)
        except Exception as exc:
            logger.warning("VFS: delete of %s failed (%s)", uri, exc)
            return OperationResult.failure(exc)
        if not deleted:
            return OperationResult.failure()
        return OperationResult.success()

    def delete_asset_from_path(self, location: str) -> OperationResult:
        path = self._fs.normalize_uri(self._resolve(location))
        return self.delete_asset(encode_unique_id(path))

    def asset_exists(self, unique_id: str) -> bool:
        return self._fs.exists(self._asset_uri(unique_id))

    def copy_asset(self, unique_id: str, location: str, name: str | None = None) -> OperationResult:
        source, target = self._transfer_paths(unique_id, location, name)
        try:
            self._create_if_not_exists(target)
            self._fs.copy(source, target, replace_existing=True)
        except RepositoryInvariantError:
            raise
        except Exception as exc:
            logger.warning("VFS: copy of %s -> %s failed (%s)", source, target, exc)
            return OperationResult.failure(exc)
        return OperationResult.success()

    def move_asset(self, unique_id: str, location: str, name: str | None = None) -> OperationResult:
        source, target = self._transfer_paths(unique_id, location, name)
        try:
            self._create_if_not_exists(target)
            self._fs.move(source, target, replace_existing=True)
        except RepositoryInvariantError:
            raise
        except Exception as exc:
            logger.warning("VFS: move of %s -> %s failed (%s)", source, target, exc)
            return OperationResult.failure(exc)
        return OperationResult.success()

    # helpers

    def _resolve(self, location: str | None) -> str:
        location = location or ""
        if location and not location.startswith(self._fs.separator):
            location = self._fs.separator + location
        # locations are plain paths; "?", "#" and "%" must not reach the URI parser raw
        return self.repository_root + quote(location)

    def _asset_uri(self, unique_id: str) -> str:
        uri = decode_unique_id(unique_id)
        try:
            return self._fs.normalize_uri(uri)
        except ValueError:
            return self._fs.normalize_uri(self._resolve(unique_id))

    def _transfer_paths(self, unique_id: str, location: str, name: str | None) -> tuple[str, str]:
        source = self._asset_uri(unique_id)
        if not self._fs.exists(source):
            raise AssetNotFoundError(detail="Asset does not exist")
        target_name = quote(name, safe="") if name else uri_name(source)
        target = self._fs.normalize_uri(uri_join(self._resolve(location), target_name))
        return source, target

    def _directory(self, uri: str) -> Directory:
        return Directory(
            unique_id=encode_unique_id(uri),
            name=unquote(uri_name(uri)),
            location=self._trim_location(uri),
        )

    def _build_asset(self, uri: str, load_content: bool) -> Asset | None:
        try:
            uri = self._fs.normalize_uri(uri)
            attrs = self._fs.read_attributes(uri)
        except (OSError, ValueError) as exc:
            logger.warning("VFS: cannot read attributes of %s (%s)", uri, exc)
            return None
        file_name = unquote(uri_name(uri))
        fields: dict[str, Any] = {
            "unique_id": encode_unique_id(uri),
            "asset_location": self._trim_location(uri),
            "creation_date": _format_date(attrs.created),
            "last_modification_date": _format_date(attrs.modified),
            "description": "",
            "owner": "",
        }
        if load_content:
            try:
                data = self._fs.read_bytes(uri)
                if self.asset_builders.content_kind_for(file_name) == ContentKind.BINARY:
                    fields["content"] = data
                else:
                    fields["content"] = _join_lines(data.decode("utf-8"))
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("VFS: cannot read content of %s (%s)", uri, exc)
                return None
        return self.asset_builders.build(file_name, **fields)

    def _trim_location(self, uri: str) -> str:
        separator = self._fs.separator
        parent = uri_parent(uri)
        root = self.repository_root
        if parent == root or parent.startswith(root + separator):
            location = parent[len(root):]
        else:
            location = urlparse(parent).path
            root_path = urlparse(root).path
            if root_path and location.startswith(root_path):
                location = location[len(root_path):]
        location = unquote(location)
        if not location.startswith(separator):
            location = separator + location
        return location

    def _create_if_not_exists(self, uri: str) -> None:
        parent = uri_parent(uri)
        if self._fs.exists(parent):
            return
        try:
            self._fs.create_directories(parent)
        except FileExistsError:
            # another writer created it first
            return
        except OSError as exc:
            raise RepositoryInvariantError(code="PARENT_CREATE_FAILED", detail=f"{parent}: {exc}") from exc


def _contains(directory: str, uri: str) -> bool:
    try:
        uri_relative(directory, uri)
    except ValueError:
        return False
    return True

def _content_bytes(asset: Asset) -> bytes:
    if asset.content is None:
        return b""
    if asset.accepts_bytes:
        return bytes(asset.content)  # type: ignore[arg-type]
    return str(asset.content).encode("utf-8")


def _join_lines(text: str) -> str:
    lines = _LINE_BREAK.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return "\n".join(lines)


def _format_date(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.isoformat()
