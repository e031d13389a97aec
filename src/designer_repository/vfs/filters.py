"""Entry filters for asset listings."""

from __future__ import annotations

from typing import Protocol

from designer_repository.filesystems import FileEntry

from .assets import split_file_name


class Filter(Protocol):
    def accept(self, entry: FileEntry) -> bool:
        ...


class FilesOnly:
    def accept(self, entry: FileEntry) -> bool:
        return not entry.is_dir


class FilterByExtension:
    def __init__(self, extension: str) -> None:
        self.extension = extension.lower().lstrip(".")

    def accept(self, entry: FileEntry) -> bool:
        if entry.is_dir:
            return False
        _, extension = split_file_name(entry.name)
        return extension.lower() == self.extension


class FilterByFileName:
    def __init__(self, file_name: str) -> None:
        self.file_name = file_name

    def accept(self, entry: FileEntry) -> bool:
        return not entry.is_dir and entry.name == self.file_name
