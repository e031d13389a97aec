"""Virtual in-process provider for ``mem://<name>`` URIs."""

from __future__ import annotations

import errno
import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping
from urllib.parse import quote, unquote, urlparse

from .base import SEPARATOR, FileAttributes, FileEntry


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class _Node:
    data: bytes | None
    created: datetime = field(default_factory=_now)
    modified: datetime = field(default_factory=_now)

    @property
    def is_dir(self) -> bool:
        return self.data is None


class MemoryFileSystem:
    """Keeps a whole tree in a dict keyed by absolute posix path."""

    scheme = "mem"
    separator = SEPARATOR

    def __init__(self, name: str) -> None:
        self.name = name
        self._nodes: dict[str, _Node] = {SEPARATOR: _Node(data=None)}

    @classmethod
    def from_uri(cls, uri: str, env: Mapping[str, str] | None = None) -> "MemoryFileSystem":
        return cls(urlparse(uri).netloc)

    def _key(self, uri: str) -> str:
        parsed = urlparse(uri)
        if parsed.scheme != self.scheme or parsed.netloc != self.name:
            raise ValueError(f"URI {uri!r} does not belong to {self.scheme}://{self.name}")
        path = posixpath.normpath(unquote(parsed.path) or SEPARATOR)
        if not path.startswith(SEPARATOR):
            path = SEPARATOR + path
        # normpath keeps a leading "//"
        if path.startswith("//"):
            path = SEPARATOR + path.lstrip(SEPARATOR)
        return path

    def _uri(self, key: str) -> str:
        return f"{self.scheme}://{self.name}{quote(key)}"

    def _node(self, key: str) -> _Node:
        node = self._nodes.get(key)
        if node is None:
            raise FileNotFoundError(self._uri(key))
        return node

    def _require_parent_dir(self, key: str) -> None:
        parent = self._nodes.get(posixpath.dirname(key))
        if parent is None:
            raise FileNotFoundError(self._uri(posixpath.dirname(key)))
        if not parent.is_dir:
            raise NotADirectoryError(self._uri(posixpath.dirname(key)))

    def _children(self, key: str) -> list[str]:
        prefix = key.rstrip(SEPARATOR) + SEPARATOR
        return [
            child
            for child in self._nodes
            if child != key and child.startswith(prefix) and SEPARATOR not in child[len(prefix):]
        ]

    def normalize_uri(self, uri: str) -> str:
        return self._uri(self._key(uri))

    def exists(self, uri: str) -> bool:
        return self._key(uri) in self._nodes

    def is_dir(self, uri: str) -> bool:
        node = self._nodes.get(self._key(uri))
        return node is not None and node.is_dir

    def list_dir(self, uri: str) -> list[FileEntry]:
        key = self._key(uri)
        if not self._node(key).is_dir:
            raise NotADirectoryError(self._uri(key))
        return [
            FileEntry(uri=self._uri(child), name=posixpath.basename(child), is_dir=self._nodes[child].is_dir)
            for child in sorted(self._children(key))
        ]

    def create_directory(self, uri: str) -> None:
        key = self._key(uri)
        if key in self._nodes:
            raise FileExistsError(self._uri(key))
        self._require_parent_dir(key)
        self._nodes[key] = _Node(data=None)

    def create_directories(self, uri: str) -> None:
        key = self._key(uri)
        current = ""
        for part in key.strip(SEPARATOR).split(SEPARATOR):
            if not part:
                continue
            current = f"{current}{SEPARATOR}{part}"
            node = self._nodes.get(current)
            if node is None:
                self._nodes[current] = _Node(data=None)
            elif not node.is_dir:
                raise FileExistsError(self._uri(current))

    def delete(self, uri: str) -> None:
        key = self._key(uri)
        node = self._node(key)
        if key == SEPARATOR:
            raise PermissionError("cannot delete the root directory")
        if node.is_dir and self._children(key):
            raise OSError(errno.ENOTEMPTY, "directory not empty", self._uri(key))
        del self._nodes[key]

    def delete_if_exists(self, uri: str) -> bool:
        try:
            self.delete(uri)
        except FileNotFoundError:
            return False
        return True

    def copy(self, source: str, target: str, *, replace_existing: bool = False) -> None:
        src_key = self._key(source)
        dst_key = self._key(target)
        node = self._node(src_key)
        existing = self._nodes.get(dst_key)
        if existing is not None:
            if not replace_existing:
                raise FileExistsError(self._uri(dst_key))
            if existing.is_dir and self._children(dst_key):
                raise OSError(errno.ENOTEMPTY, "directory not empty", self._uri(dst_key))
        self._require_parent_dir(dst_key)
        self._nodes[dst_key] = _Node(data=node.data)

    def move(self, source: str, target: str, *, replace_existing: bool = False) -> None:
        src_key = self._key(source)
        dst_key = self._key(target)
        node = self._node(src_key)
        if src_key == dst_key:
            return
        existing = self._nodes.get(dst_key)
        if existing is not None:
            if not replace_existing:
                raise FileExistsError(self._uri(dst_key))
            if existing.is_dir and self._children(dst_key):
                raise OSError(errno.ENOTEMPTY, "directory not empty", self._uri(dst_key))
        self._require_parent_dir(dst_key)
        prefix = src_key + SEPARATOR
        moved = {
            dst_key + key[len(src_key):]: self._nodes.pop(key)
            for key in list(self._nodes)
            if key.startswith(prefix)
        }
        self._nodes.pop(src_key)
        self._nodes[dst_key] = node
        self._nodes.update(moved)

    def read_bytes(self, uri: str) -> bytes:
        key = self._key(uri)
        node = self._node(key)
        if node.is_dir:
            raise IsADirectoryError(self._uri(key))
        return bytes(node.data or b"")

    def write_bytes(self, uri: str, data: bytes) -> None:
        key = self._key(uri)
        node = self._nodes.get(key)
        if node is not None:
            if node.is_dir:
                raise IsADirectoryError(self._uri(key))
            node.data = bytes(data)
            node.modified = _now()
            return
        self._require_parent_dir(key)
        self._nodes[key] = _Node(data=bytes(data))

    def read_attributes(self, uri: str) -> FileAttributes:
        node = self._node(self._key(uri))
        return FileAttributes(
            created=node.created,
            modified=node.modified,
            is_dir=node.is_dir,
            size=len(node.data or b""),
        )
