"""In-memory staging index for gitdocs.

The index starts from a base commit (or nothing), accumulates staged
blobs and removals, and materializes them as a tree.  It never touches
the repository's own on-disk index, so a flush cannot leave a non-bare
repository with a dangling staged index.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .tree import _normalize_path, rebuild_tree

if TYPE_CHECKING:
    from .repo import Repository


class StagingIndex:
    """Accumulates writes and removes on top of a base commit."""

    def __init__(self, repo: Repository, base: str | None = None):
        self._repo = repo
        self._base: str | None = None
        self._writes: dict[str, bytes] = {}
        self._removes: set[str] = set()
        self.load(base)

    def __repr__(self) -> str:
        base = self._base[:7] if self._base else None
        return f"StagingIndex(base={base!r}, staged={len(self)})"

    def __len__(self) -> int:
        return len(self._writes) + len(self._removes)

    @property
    def base(self) -> str | None:
        """The commit the index was loaded from."""
        return self._base

    @property
    def paths(self) -> list[str]:
        """Staged paths, writes first in staging order, then removals."""
        return list(self._writes) + sorted(self._removes)

    def load(self, commit: str | None) -> None:
        """Reset the index to *commit* (None for an empty tree), dropping staged changes."""
        self._base = self._repo.resolve_ref(commit) if commit else None
        self._writes.clear()
        self._removes.clear()

    def add(self, path: str | os.PathLike[str], data: bytes) -> str:
        """Stage *data* at *path*; a later add to the same path wins."""
        path = _normalize_path(path)
        self._removes.discard(path)
        self._writes[path] = bytes(data)
        return path

    def remove(self, path: str | os.PathLike[str]) -> str:
        """Stage the removal of *path* (a no-op if it is absent at commit time)."""
        path = _normalize_path(path)
        self._writes.pop(path, None)
        self._removes.add(path)
        return path

    def staged(self, path: str | os.PathLike[str]) -> bytes | None:
        """Return the bytes staged at *path*, or None."""
        return self._writes.get(_normalize_path(path))

    def write_tree(self) -> str:
        """Write blobs and trees for the staged state and return the root tree SHA."""
        base_tree = self._repo.tree_id(self._base) if self._base else None
        tree_id = rebuild_tree(self._repo.object_store, base_tree, self._writes, self._removes)
        return tree_id.decode()
