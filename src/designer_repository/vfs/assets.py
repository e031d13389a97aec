"""Asset-builder registry keyed on file extension."""

from __future__ import annotations

from typing import Any, Iterable

from .models import Asset, ContentKind

DEFAULT_BINARY_EXTENSIONS = frozenset(
    {
        "png",
        "gif",
        "jpg",
        "jpeg",
        "bmp",
        "ico",
        "pdf",
        "doc",
        "docx",
        "xls",
        "xlsx",
        "zip",
        "jar",
        "gz",
        "bin",
    }
)


def split_file_name(file_name: str) -> tuple[str, str]:
    """Split ``file_name`` into (name, extension); dotfiles have no extension."""
    if "." not in file_name.lstrip("."):
        return file_name, ""
    name, _, extension = file_name.rpartition(".")
    return name, extension


class AssetBuilderRegistry:
    def __init__(self, binary_extensions: Iterable[str] | None = None) -> None:
        source = DEFAULT_BINARY_EXTENSIONS if binary_extensions is None else binary_extensions
        self._kinds: dict[str, ContentKind] = {
            ext.lower().lstrip("."): ContentKind.BINARY for ext in source
        }

    def register(self, extension: str, kind: ContentKind) -> None:
        self._kinds[extension.lower().lstrip(".")] = kind

    def content_kind_for(self, file_name: str) -> ContentKind:
        _, extension = split_file_name(file_name)
        return self._kinds.get(extension.lower(), ContentKind.TEXT)

    def build(self, file_name: str, **fields: Any) -> Asset:
        name, extension = split_file_name(file_name)
        return Asset(
            name=name,
            asset_type=extension,
            content_kind=self.content_kind_for(file_name),
            **fields,
        )
