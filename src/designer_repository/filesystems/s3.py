"""S3-compatible provider for ``s3://bucket/prefix`` URIs."""

from __future__ import annotations

import errno
from typing import Any, Mapping
from urllib.parse import quote, unquote, urlparse

from .base import SEPARATOR, FileAttributes, FileEntry

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


class S3FileSystem:
    """Maps directories onto key prefixes; empty ones carry a ``<key>/`` marker."""

    scheme = "s3"
    separator = SEPARATOR

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        region_name: str | None = None,
        path_style: bool | None = None,
    ) -> None:
        import boto3
        from botocore.config import Config

        if not bucket:
            raise ValueError("S3 repository root missing bucket")
        self.bucket = bucket
        config = None
        if path_style:
            config = Config(s3={"addressing_style": "path"})
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region_name,
            config=config,
        )

    @classmethod
    def from_uri(cls, uri: str, env: Mapping[str, str] | None = None) -> "S3FileSystem":
        env = env or {}
        path_style = str(env.get("s3.path_style", "")).strip().lower() in {"1", "true", "yes"}
        return cls(
            bucket=urlparse(uri).netloc,
            endpoint_url=env.get("s3.endpoint_url") or None,
            region_name=env.get("s3.region") or None,
            path_style=path_style,
        )

    def _key(self, uri: str) -> str:
        parsed = urlparse(uri)
        if parsed.scheme != self.scheme or parsed.netloc != self.bucket:
            raise ValueError(f"URI {uri!r} does not belong to s3://{self.bucket}")
        return unquote(parsed.path).strip(SEPARATOR)

    def _uri(self, key: str) -> str:
        return f"s3://{self.bucket}/{quote(key.strip(SEPARATOR))}"

    @staticmethod
    def _prefix(key: str) -> str:
        return f"{key}{SEPARATOR}" if key else ""

    def _head(self, key: str) -> dict[str, Any] | None:
        from botocore.exceptions import ClientError

        if not key:
            return None
        try:
            return self._client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            error_code = exc.response.get("Error", {}).get("Code")
            if error_code in _MISSING_CODES:
                return None
            raise

    def _is_file(self, key: str) -> bool:
        return self._head(key) is not None

    def _has_prefix(self, key: str) -> bool:
        if not key:
            return True
        response = self._client.list_objects_v2(Bucket=self.bucket, Prefix=self._prefix(key), MaxKeys=1)
        return int(response.get("KeyCount", len(response.get("Contents", [])))) > 0

    def _iter_keys(self, prefix: str, delimiter: str | None = None):
        paginator = self._client.get_paginator("list_objects_v2")
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Prefix": prefix}
        if delimiter:
            kwargs["Delimiter"] = delimiter
        for page in paginator.paginate(**kwargs):
            yield page

    def normalize_uri(self, uri: str) -> str:
        return self._uri(self._key(uri))

    def exists(self, uri: str) -> bool:
        key = self._key(uri)
        return self._is_file(key) or self._has_prefix(key)

    def is_dir(self, uri: str) -> bool:
        key = self._key(uri)
        return self._has_prefix(key)

    def list_dir(self, uri: str) -> list[FileEntry]:
        key = self._key(uri)
        prefix = self._prefix(key)
        entries: list[FileEntry] = []
        seen = False
        for page in self._iter_keys(prefix, delimiter=SEPARATOR):
            for common in page.get("CommonPrefixes", []):
                seen = True
                child = common["Prefix"].rstrip(SEPARATOR)
                entries.append(FileEntry(uri=self._uri(child), name=child.rsplit(SEPARATOR, 1)[-1], is_dir=True))
            for item in page.get("Contents", []):
                seen = True
                if item["Key"] == prefix:
                    continue
                child = item["Key"]
                entries.append(FileEntry(uri=self._uri(child), name=child.rsplit(SEPARATOR, 1)[-1], is_dir=False))
        if not seen and key:
            if self._is_file(key):
                raise NotADirectoryError(self._uri(key))
            raise FileNotFoundError(self._uri(key))
        return entries

    def create_directory(self, uri: str) -> None:
        key = self._key(uri)
        if self._is_file(key) or self._has_prefix(key):
            raise FileExistsError(self._uri(key))
        self._client.put_object(Bucket=self.bucket, Key=self._prefix(key), Body=b"")

    def create_directories(self, uri: str) -> None:
        key = self._key(uri)
        if not key or self._has_prefix(key):
            return
        if self._is_file(key):
            raise FileExistsError(self._uri(key))
        self._client.put_object(Bucket=self.bucket, Key=self._prefix(key), Body=b"")

    def delete(self, uri: str) -> None:
        key = self._key(uri)
        if self._is_file(key):
            self._client.delete_object(Bucket=self.bucket, Key=key)
            return
        if not key or not self._has_prefix(key):
            raise FileNotFoundError(self._uri(key))
        if self.list_dir(uri):
            raise OSError(errno.ENOTEMPTY, "directory not empty", self._uri(key))
        self._client.delete_object(Bucket=self.bucket, Key=self._prefix(key))

    def delete_if_exists(self, uri: str) -> bool:
        try:
            self.delete(uri)
        except FileNotFoundError:
            return False
        return True

    def copy(self, source: str, target: str, *, replace_existing: bool = False) -> None:
        src_key = self._key(source)
        dst_key = self._key(target)
        if not replace_existing and self.exists(target):
            raise FileExistsError(self._uri(dst_key))
        if self._is_file(src_key):
            self._client.copy_object(
                Bucket=self.bucket,
                Key=dst_key,
                CopySource={"Bucket": self.bucket, "Key": src_key},
            )
            return
        if not self._has_prefix(src_key):
            raise FileNotFoundError(self._uri(src_key))
        self.create_directories(target)

    def move(self, source: str, target: str, *, replace_existing: bool = False) -> None:
        src_key = self._key(source)
        if self._is_file(src_key):
            self.copy(source, target, replace_existing=replace_existing)
            self._client.delete_object(Bucket=self.bucket, Key=src_key)
            return
        if self.list_dir(source):
            raise OSError(errno.ENOTEMPTY, "directory not empty", self._uri(src_key))
        self.copy(source, target, replace_existing=replace_existing)
        self._client.delete_object(Bucket=self.bucket, Key=self._prefix(src_key))

    def read_bytes(self, uri: str) -> bytes:
        from botocore.exceptions import ClientError

        key = self._key(uri)
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            error_code = exc.response.get("Error", {}).get("Code")
            if error_code in _MISSING_CODES:
                raise FileNotFoundError(self._uri(key)) from exc
            raise
        return response["Body"].read()

    def write_bytes(self, uri: str, data: bytes) -> None:
        self._client.put_object(Bucket=self.bucket, Key=self._key(uri), Body=bytes(data))

    def read_attributes(self, uri: str) -> FileAttributes:
        key = self._key(uri)
        head = self._head(key)
        if head is not None:
            return FileAttributes(
                created=None,
                modified=head.get("LastModified"),
                is_dir=False,
                size=int(head.get("ContentLength", 0)),
            )
        if self._has_prefix(key):
            return FileAttributes(created=None, modified=None, is_dir=True)
        raise FileNotFoundError(self._uri(key))
