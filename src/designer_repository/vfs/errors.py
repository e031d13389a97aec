"""Repository error taxonomy and helpers."""

from __future__ import annotations

import errno


class RepositoryError(RuntimeError):
    """Stable error surfaced with a reason code."""

    default_code = "REPOSITORY_ERROR"

    def __init__(self, code: str | None = None, detail: str | None = None) -> None:
        self.code = code or self.default_code
        self.detail = detail
        message = f"{self.code}:{detail}" if detail else self.code
        super().__init__(message)


class AssetNotFoundError(RepositoryError):
    default_code = "ASSET_NOT_FOUND"


class DirectoryNotFoundError(RepositoryError):
    default_code = "DIRECTORY_NOT_FOUND"


class RepositoryInvariantError(RepositoryError):
    """Environment is broken (filesystem unavailable, parents not creatable)."""

    default_code = "FILESYSTEM_UNAVAILABLE"


class AssetWriteError(RepositoryInvariantError):
    default_code = "ASSET_WRITE_FAILED"


_ERRNO_CODES = {
    errno.ENOTEMPTY: "NOT_EMPTY",
    errno.ENOTDIR: "NOT_A_DIRECTORY",
    errno.EISDIR: "IS_A_DIRECTORY",
}


def reason_code(exc: BaseException | None) -> str:
    if exc is None:
        return "OK"
    if isinstance(exc, RepositoryError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return "NOT_FOUND"
    if isinstance(exc, FileExistsError):
        return "ALREADY_EXISTS"
    if isinstance(exc, OSError):
        return _ERRNO_CODES.get(exc.errno, "IO_ERROR")
    if isinstance(exc, ValueError):
        return "INVALID_LOCATION"
    return "INTERNAL_ERROR"
