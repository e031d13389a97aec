"""Depth-first tree walk driven by pre-visit / visit / post-visit callbacks."""

from __future__ import annotations

from typing import Callable, Optional
from urllib.parse import unquote

from .base import FileEntry, FileSystemProvider, uri_name

DirectoryCallback = Callable[[str], None]
FileCallback = Callable[[FileEntry], None]
PostVisitCallback = Callable[[str, Optional[Exception]], None]


def walk_tree(
    fs: FileSystemProvider,
    start: str,
    *,
    pre_visit_directory: DirectoryCallback | None = None,
    visit_file: FileCallback | None = None,
    post_visit_directory: PostVisitCallback | None = None,
) -> None:
    """Walk ``start`` depth-first.

    ``pre_visit_directory`` runs before a directory's children, ``visit_file``
    once per non-directory entry and ``post_visit_directory`` after all
    children, receiving the listing error if the directory could not be read.
    Without a post-visit callback such errors are raised. Exceptions from
    callbacks stop the walk and propagate.
    """
    if not fs.exists(start):
        raise FileNotFoundError(start)
    if not fs.is_dir(start):
        if visit_file is not None:
            visit_file(FileEntry(uri=fs.normalize_uri(start), name=unquote(uri_name(start)), is_dir=False))
        return
    _walk_directory(
        fs,
        fs.normalize_uri(start),
        pre_visit_directory=pre_visit_directory,
        visit_file=visit_file,
        post_visit_directory=post_visit_directory,
    )


def _walk_directory(
    fs: FileSystemProvider,
    directory: str,
    *,
    pre_visit_directory: DirectoryCallback | None,
    visit_file: FileCallback | None,
    post_visit_directory: PostVisitCallback | None,
) -> None:
    if pre_visit_directory is not None:
        pre_visit_directory(directory)
    error: Exception | None = None
    try:
        entries = fs.list_dir(directory)
    except OSError as exc:
        error = exc
        entries = []
    for entry in entries:
        if entry.is_dir:
            _walk_directory(
                fs,
                entry.uri,
                pre_visit_directory=pre_visit_directory,
                visit_file=visit_file,
                post_visit_directory=post_visit_directory,
            )
        elif visit_file is not None:
            visit_file(entry)
    if post_visit_directory is not None:
        post_visit_directory(directory, error)
    elif error is not None:
        raise error
