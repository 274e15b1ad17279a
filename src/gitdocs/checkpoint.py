"""Checkpoint storages: where the last processed commit is remembered.

Any object with ``get() -> str | None`` and ``set(commit: str)`` can be
passed as ``storage`` to the incremental finders.  Three are provided:

* :class:`MemoryCheckpoint` keeps the commit in an attribute;
* :class:`FileCheckpoint` keeps it in a one-line text file;
* :class:`RefCheckpoint` keeps it as a ref under ``refs/checkpoints/``,
  which also keeps the commit reachable.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from .repo import Repository, _validate_ref_name, check_repository, opened_repository

__all__ = ["CheckpointStorage", "MemoryCheckpoint", "FileCheckpoint", "RefCheckpoint"]

CHECKPOINT_REF_PREFIX = "refs/checkpoints/"


@runtime_checkable
class CheckpointStorage(Protocol):
    def get(self) -> str | None: ...

    def set(self, commit: str) -> None: ...


class MemoryCheckpoint:
    """In-process checkpoint, mostly for tests and one-shot pipelines."""

    def __init__(self, commit: str | None = None):
        self.commit = commit

    def __repr__(self) -> str:
        return f"MemoryCheckpoint({self.commit!r})"

    def get(self) -> str | None:
        return self.commit

    def set(self, commit: str) -> None:
        self.commit = commit


class FileCheckpoint:
    """Checkpoint stored as the only line of a text file.

    A missing or empty file means "no checkpoint".  Writes go through a
    temporary file and :func:`os.replace`.
    """

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"FileCheckpoint({str(self.path)!r})"

    def get(self) -> str | None:
        try:
            text = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return text or None

    def set(self, commit: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(commit + "\n", encoding="utf-8")
        os.replace(tmp, self.path)


class RefCheckpoint:
    """Checkpoint stored as ``refs/checkpoints/<name>`` in the repository.

    A repository given as a path is opened for each ``get`` and ``set``.
    """

    def __init__(self, repository: Repository | str | os.PathLike[str], name: str):
        check_repository(repository)
        _validate_ref_name(name)
        self._repository = repository
        self.name = name
        self.ref = f"{CHECKPOINT_REF_PREFIX}{name}"

    def __repr__(self) -> str:
        return f"RefCheckpoint({self.name!r})"

    def get(self) -> str | None:
        with opened_repository(self._repository) as repo:
            return repo.ref_target(self.ref)

    def set(self, commit: str) -> None:
        with opened_repository(self._repository) as repo:
            repo.set_ref(self.ref, commit, message=f"checkpoint: {self.name}")
