"""Repository profile loader."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, field_validator

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

FETCH_COMMAND_OPTION = "fetch.cmd"


class RepositoryProfile(BaseModel):
    profile_id: str = "local"
    repository_root: str
    env: dict[str, str] = {}
    binary_extensions: list[str] | None = None

    @field_validator("repository_root")
    @classmethod
    def _require_scheme(cls, value: str) -> str:
        value = value.strip()
        if "://" not in value:
            raise ValueError("repository_root must be an absolute URI (e.g. file:///srv/repo)")
        return value

    @field_validator("env", mode="before")
    @classmethod
    def _stringify_env(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key): "" if item is None else str(item) for key, item in value.items()}
        return value


def _substitute(match: re.Match[str]) -> str:
    name, has_default, default = match.group(1).partition(":-")
    value = os.getenv(name, "").strip()
    if value:
        return value
    if has_default:
        return default
    raise ValueError(f"missing environment variable: {name}")


def _expand(node: Any) -> Any:
    """Substitute ``${VAR}`` and ``${VAR:-default}`` in every string of a loaded profile."""
    if isinstance(node, dict):
        return {str(key): _expand(item) for key, item in node.items()}
    if isinstance(node, list):
        return [_expand(item) for item in node]
    if isinstance(node, str):
        return _VAR_PATTERN.sub(_substitute, node)
    return node


def load_profile(path: Path) -> RepositoryProfile:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return RepositoryProfile(**_expand(data))
