"""Filesystem providers, selected by URI scheme."""

from __future__ import annotations

import threading
from typing import Callable, Mapping
from urllib.parse import urlparse

from .base import FileAttributes, FileEntry, FileSystemProvider, uri_join, uri_name, uri_parent, uri_relative
from .local import LocalFileSystem
from .memory import MemoryFileSystem
from .s3 import S3FileSystem
from .walker import walk_tree

ProviderFactory = Callable[[str, Mapping[str, str]], FileSystemProvider]

_FACTORIES: dict[str, ProviderFactory] = {
    "file": LocalFileSystem.from_uri,
    "mem": MemoryFileSystem.from_uri,
    "s3": S3FileSystem.from_uri,
}
_MOUNTED: dict[tuple[str, str], FileSystemProvider] = {}
_LOCK = threading.Lock()


def _mount_key(uri: str) -> tuple[str, str]:
    parsed = urlparse(uri)
    if not parsed.scheme:
        raise ValueError(f"URI has no scheme: {uri!r}")
    netloc = parsed.netloc
    if parsed.scheme == "file" and netloc == "localhost":
        netloc = ""
    return parsed.scheme, netloc


def register_provider(scheme: str, factory: ProviderFactory) -> None:
    with _LOCK:
        _FACTORIES[scheme] = factory


def get_filesystem(uri: str) -> FileSystemProvider | None:
    with _LOCK:
        return _MOUNTED.get(_mount_key(uri))


def new_filesystem(uri: str, env: Mapping[str, str] | None = None) -> FileSystemProvider:
    key = _mount_key(uri)
    with _LOCK:
        if key in _MOUNTED:
            raise FileExistsError(f"filesystem already mounted for {key[0]}://{key[1]}")
        factory = _FACTORIES.get(key[0])
        if factory is None:
            raise ValueError(f"no filesystem provider for scheme {key[0]!r}")
        fs = factory(uri, dict(env or {}))
        _MOUNTED[key] = fs
        return fs


def resolve_filesystem(uri: str, env: Mapping[str, str] | None = None) -> FileSystemProvider:
    fs = get_filesystem(uri)
    if fs is not None:
        return fs
    try:
        return new_filesystem(uri, env)
    except FileExistsError:
        fs = get_filesystem(uri)
        if fs is None:
            raise
        return fs


def unmount_filesystem(uri: str) -> FileSystemProvider | None:
    with _LOCK:
        return _MOUNTED.pop(_mount_key(uri), None)


__all__ = [
    "FileAttributes",
    "FileEntry",
    "FileSystemProvider",
    "LocalFileSystem",
    "MemoryFileSystem",
    "S3FileSystem",
    "get_filesystem",
    "new_filesystem",
    "register_provider",
    "resolve_filesystem",
    "unmount_filesystem",
    "uri_join",
    "uri_name",
    "uri_parent",
    "uri_relative",
    "walk_tree",
]
