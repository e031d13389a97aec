"""
Top-level package for the designer content repository.

`designer_repository.vfs` holds the repository adapter and its domain types;
`designer_repository.filesystems` holds the pluggable filesystem providers it
is bound to.
"""

__all__: list[str] = []
