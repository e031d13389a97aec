"""Local-disk provider for ``file://`` URIs."""

from __future__ import annotations

import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping
from urllib.parse import unquote, urlparse

from .base import SEPARATOR, FileAttributes, FileEntry


class LocalFileSystem:
    scheme = "file"
    separator = SEPARATOR

    @classmethod
    def from_uri(cls, uri: str, env: Mapping[str, str] | None = None) -> "LocalFileSystem":
        return cls()

    def _path(self, uri: str) -> Path:
        parsed = urlparse(uri)
        if parsed.scheme != self.scheme:
            raise ValueError(f"not a {self.scheme} URI: {uri!r}")
        if parsed.netloc not in {"", "localhost"}:
            raise ValueError(f"remote host not supported: {uri!r}")
        raw = unquote(parsed.path) or SEPARATOR
        return Path(raw)

    @staticmethod
    def _uri(path: Path) -> str:
        return path.as_uri()

    def normalize_uri(self, uri: str) -> str:
        return self._uri(self._path(uri))

    def exists(self, uri: str) -> bool:
        return self._path(uri).exists()

    def is_dir(self, uri: str) -> bool:
        return self._path(uri).is_dir()

    def list_dir(self, uri: str) -> list[FileEntry]:
        entries: list[FileEntry] = []
        with os.scandir(self._path(uri)) as scan:
            for item in scan:
                entries.append(
                    FileEntry(
                        uri=self._uri(Path(item.path)),
                        name=item.name,
                        is_dir=item.is_dir(),
                    )
                )
        return entries

    def create_directory(self, uri: str) -> None:
        self._path(uri).mkdir()

    def create_directories(self, uri: str) -> None:
        self._path(uri).mkdir(parents=True, exist_ok=True)

    def delete(self, uri: str) -> None:
        path = self._path(uri)
        if path.is_dir() and not path.is_symlink():
            path.rmdir()
        else:
            path.unlink()

    def delete_if_exists(self, uri: str) -> bool:
        try:
            self.delete(uri)
        except FileNotFoundError:
            return False
        return True

    def copy(self, source: str, target: str, *, replace_existing: bool = False) -> None:
        src = self._path(source)
        dst = self._path(target)
        if dst.exists() and not replace_existing:
            raise FileExistsError(str(dst))
        if src.is_dir():
            dst.mkdir(exist_ok=True)
            return
        shutil.copy2(src, dst)

    def move(self, source: str, target: str, *, replace_existing: bool = False) -> None:
        src = self._path(source)
        dst = self._path(target)
        if not src.exists():
            raise FileNotFoundError(str(src))
        if dst.exists() and not replace_existing:
            raise FileExistsError(str(dst))
        os.replace(src, dst)

    def read_bytes(self, uri: str) -> bytes:
        return self._path(uri).read_bytes()

    def write_bytes(self, uri: str, data: bytes) -> None:
        with self._path(uri).open("wb") as handle:
            handle.write(data)

    def read_attributes(self, uri: str) -> FileAttributes:
        path = self._path(uri)
        stat = path.stat()
        birth = getattr(stat, "st_birthtime", None)
        return FileAttributes(
            created=_from_timestamp(birth),
            modified=_from_timestamp(stat.st_mtime),
            is_dir=path.is_dir(),
            size=stat.st_size,
        )


def _from_timestamp(value: float | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)
