"""Filesystem-backed asset repository."""

from .assets import AssetBuilderRegistry
from .config import RepositoryProfile, load_profile
from .errors import (
    AssetNotFoundError,
    AssetWriteError,
    DirectoryNotFoundError,
    RepositoryError,
    RepositoryInvariantError,
)
from .filters import FilesOnly, Filter, FilterByExtension, FilterByFileName
from .ids import decode_unique_id, encode_unique_id
from .models import Asset, ContentKind, Directory, OperationResult
from .repository import VFSRepository

__all__ = [
    "Asset",
    "AssetBuilderRegistry",
    "AssetNotFoundError",
    "AssetWriteError",
    "ContentKind",
    "Directory",
    "DirectoryNotFoundError",
    "FilesOnly",
    "Filter",
    "FilterByExtension",
    "FilterByFileName",
    "OperationResult",
    "RepositoryError",
    "RepositoryInvariantError",
    "RepositoryProfile",
    "VFSRepository",
    "decode_unique_id",
    "encode_unique_id",
    "load_profile",
]
