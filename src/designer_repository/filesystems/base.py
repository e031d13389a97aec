"""Provider contract shared by the hierarchical filesystem backends."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from urllib.parse import urlparse, urlunparse

SEPARATOR = "/"


@dataclass(frozen=True)
class FileEntry:
    uri: str
    name: str
    is_dir: bool


@dataclass(frozen=True)
class FileAttributes:
    created: datetime | None
    modified: datetime | None
    is_dir: bool
    size: int = 0


class FileSystemProvider(Protocol):
    scheme: str
    separator: str

    def normalize_uri(self, uri: str) -> str:
        ...

    def exists(self, uri: str) -> bool:
        ...

    def is_dir(self, uri: str) -> bool:
        ...

    def list_dir(self, uri: str) -> list[FileEntry]:
        ...

    def create_directory(self, uri: str) -> None:
        ...

    def create_directories(self, uri: str) -> None:
        ...

    def delete(self, uri: str) -> None:
        ...

    def delete_if_exists(self, uri: str) -> bool:
        ...

    def copy(self, source: str, target: str, *, replace_existing: bool = False) -> None:
        ...

    def move(self, source: str, target: str, *, replace_existing: bool = False) -> None:
        ...

    def read_bytes(self, uri: str) -> bytes:
        ...

    def write_bytes(self, uri: str, data: bytes) -> None:
        ...

    def read_attributes(self, uri: str) -> FileAttributes:
        ...


def uri_name(uri: str) -> str:
    """Last path segment of ``uri`` (empty for a root)."""
    path = urlparse(uri).path.rstrip(SEPARATOR)
    return posixpath.basename(path)


def uri_parent(uri: str) -> str:
    parsed = urlparse(uri)
    path = parsed.path.rstrip(SEPARATOR)
    parent = posixpath.dirname(path) or SEPARATOR
    return urlunparse(parsed._replace(path=parent, query="", fragment=""))


def uri_join(base: str, *parts: str) -> str:
    """Append already percent-quoted path ``parts`` to ``base``."""
    parsed = urlparse(base)
    path = parsed.path.rstrip(SEPARATOR)
    for part in parts:
        part = part.strip(SEPARATOR)
        if part:
            path = f"{path}{SEPARATOR}{part}"
    return urlunparse(parsed._replace(path=path or SEPARATOR, query="", fragment=""))


def uri_relative(base: str, uri: str) -> str:
    """Path of ``uri`` relative to ``base`` ("" when they are the same)."""
    base_path = urlparse(base).path.rstrip(SEPARATOR)
    path = urlparse(uri).path.rstrip(SEPARATOR)
    if path == base_path:
        return ""
    prefix = base_path + SEPARATOR
    if not path.startswith(prefix):
        raise ValueError(f"{uri} is not under {base}")
    return path[len(prefix):]
