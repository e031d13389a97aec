"""Repository domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, model_validator


class ContentKind(str, Enum):
    BINARY = "BINARY"
    TEXT = "TEXT"


class Directory(BaseModel):
    unique_id: str
    name: str
    location: str


class Asset(BaseModel):
    unique_id: Optional[str] = None
    name: str
    asset_type: str = ""
    asset_location: str = "/"
    content: Optional[Union[bytes, str]] = None
    content_kind: ContentKind = ContentKind.TEXT
    creation_date: str = ""
    last_modification_date: str = ""
    description: str = ""
    owner: str = ""

    @model_validator(mode="after")
    def _check_content(self) -> "Asset":
        if self.content is None:
            return self
        if self.content_kind == ContentKind.BINARY and isinstance(self.content, str):
            raise ValueError("binary asset content must be bytes")
        if self.content_kind == ContentKind.TEXT and isinstance(self.content, bytes):
            raise ValueError("text asset content must be str")
        return self

    @property
    def full_name(self) -> str:
        if not self.asset_type:
            return self.name
        return f"{self.name}.{self.asset_type}"

    @property
    def accepts_bytes(self) -> bool:
        return self.content_kind == ContentKind.BINARY


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    cause: Optional[BaseException] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, cause: BaseException | None = None) -> "OperationResult":
        return cls(ok=False, cause=cause)


class ListingPage(BaseModel):
    """Serialisable listing used by the CLI."""

    location: str
    directories: list[Directory] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
