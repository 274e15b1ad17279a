"""Path selection: tree listings, diffs and glob filtering.

All public finders return lazy iterators of paths relative to *cwd*,
always slash-separated.  Arguments are validated eagerly, so a bad
option raises before the first path is requested.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Iterable, Iterator

from .exceptions import ConfigurationError
from .glob import PatternSet
from .repo import Repository, check_repository, opened_repository
from .tree import normalize_prefix, relative_to

logger = logging.getLogger(__name__)

Predicate = Callable[[str], bool]

__all__ = [
    "list_tree", "list_changed", "filter_paths", "find_all", "find_by_glob",
]


def _check_str(value, name: str) -> None:
    if not isinstance(value, str):
        raise ConfigurationError(f"'{name}' expects a string, got {type(value).__name__}")


def _check_predicate(predicate) -> None:
    if predicate is not None and not callable(predicate):
        raise ConfigurationError("'predicate' expects a function")


def _check_common(repository, branch, cwd, predicate) -> None:
    check_repository(repository)
    _check_str(branch, "branch")
    if not isinstance(cwd, (str, os.PathLike)):
        raise ConfigurationError(f"'cwd' expects a string, got {type(cwd).__name__}")
    _check_predicate(predicate)


def list_tree(
    repository: Repository | str | os.PathLike[str],
    branch: str = "main",
    root: str | os.PathLike[str] = ".",
) -> list[str]:
    """Every file under *root* on *branch*, repo-root relative, in tree order.

    Raises:
        GitError: If *branch* does not resolve.
    """
    with opened_repository(repository) as repo:
        return repo.list_tree(branch, os.fspath(root))


def list_changed(
    repository: Repository | str | os.PathLike[str],
    since: str,
    root: str | os.PathLike[str] = ".",
    branch: str = "main",
) -> list[str]:
    """Every path under *root* that differs between *since* and *branch*.

    Deleted paths are included.

    Raises:
        GitError: If *since* or *branch* does not resolve.
    """
    with opened_repository(repository) as repo:
        return repo.list_changed(since, branch, os.fspath(root))


def filter_paths(
    paths: Iterable[str],
    pattern: str | Iterable[str] | PatternSet | None = None,
    ignore: str | Iterable[str] | PatternSet | None = None,
    predicate: Predicate | None = None,
) -> Iterator[str]:
    """Lazily keep paths matching *pattern*, not *ignore*, and *predicate*.

    An unset *pattern* matches everything.
    """
    _check_predicate(predicate)
    include = pattern if isinstance(pattern, PatternSet) else (
        PatternSet(pattern) if pattern is not None else None
    )
    exclude = ignore if isinstance(ignore, PatternSet) else PatternSet(ignore, name="ignore")
    return _iter_filtered(paths, include, exclude, predicate)


def _primary_match(path: str, include: PatternSet | None, exclude: PatternSet) -> bool:
    if include is not None and not include.match(path):
        return False
    return not exclude.match(path)


def _iter_filtered(
    paths: Iterable[str],
    include: PatternSet | None,
    exclude: PatternSet,
    predicate: Predicate | None,
) -> Iterator[str]:
    for path in paths:
        if not _primary_match(path, include, exclude):
            continue
        if predicate is not None and not predicate(path):
            continue
        yield path


def find_all(
    *,
    repository: Repository | str | os.PathLike[str] = ".",
    branch: str = "main",
    cwd: str | os.PathLike[str] = ".",
    predicate: Predicate | None = None,
) -> Iterator[str]:
    """Every file under *cwd* on *branch*, relative to *cwd*."""
    _check_common(repository, branch, cwd, predicate)
    prefix = normalize_prefix(cwd)
    return _iter_all(repository, branch, prefix, predicate)


def _iter_all(repository, branch, prefix, predicate) -> Iterator[str]:
    with opened_repository(repository) as repo:
        files = [relative_to(p, prefix) for p in repo.list_tree(branch, prefix)]
    logger.debug("Listed %d files under %r on %s", len(files), prefix or ".", branch)
    for file in files:
        if predicate is None or predicate(file):
            yield file


def find_by_glob(
    *,
    repository: Repository | str | os.PathLike[str] = ".",
    branch: str = "main",
    cwd: str | os.PathLike[str] = ".",
    pattern: str | Iterable[str] | None = None,
    ignore: str | Iterable[str] | None = None,
    predicate: Predicate | None = None,
) -> Iterator[str]:
    """Files under *cwd* on *branch* matching *pattern* and not *ignore*."""
    _check_common(repository, branch, cwd, predicate)
    prefix = normalize_prefix(cwd)
    include = PatternSet(pattern) if pattern is not None else None
    exclude = PatternSet(ignore, name="ignore")
    return _iter_by_glob(repository, branch, prefix, include, exclude, predicate)


def _iter_by_glob(repository, branch, prefix, include, exclude, predicate) -> Iterator[str]:
    with opened_repository(repository) as repo:
        files = [relative_to(p, prefix) for p in repo.list_tree(branch, prefix)]
    yield from _iter_filtered(files, include, exclude, predicate)
