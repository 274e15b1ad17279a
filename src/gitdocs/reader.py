"""Read documents from a branch: select paths, read blobs, parse them."""

from __future__ import annotations

import logging
import os
import posixpath
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from .exceptions import ConfigurationError
from .repo import Repository, check_repository, opened_repository
from .select import find_by_glob
from .tree import normalize_prefix

logger = logging.getLogger(__name__)

Parser = Callable[[bytes, str, dict], Any]

__all__ = ["read_documents"]


def _log_error(error: BaseException) -> None:
    logger.error("Failed to read document: %s", error, exc_info=error)


def read_documents(
    parser: Parser,
    *,
    repository: Repository | str | os.PathLike[str] = ".",
    branch: str = "main",
    cwd: str | os.PathLike[str] = "pages",
    mode: Callable[..., Iterable[str]] | None = None,
    on_error: Callable[[BaseException], None] | None = None,
    **options,
) -> Iterator[Any]:
    """Yield ``parser(body, path, options)`` for every path *mode* selects.

    *mode* is a finder such as :func:`~gitdocs.select.find_by_glob`
    (default) or :func:`~gitdocs.incremental.find_changed_or_triggered_by_glob`;
    it is called with ``repository``, ``branch``, ``cwd`` and the extra
    *options* (``pattern``, ``storage``, ``triggers``...).  Paths are
    relative to *cwd*; the blob read is ``cwd/path`` on *branch*.

    A parser or read failure for one path goes to *on_error* (default:
    log it) and the path is skipped.  *options* passed to the parser
    include ``repository``, ``branch`` and ``cwd``.
    """
    if mode is None:
        mode = find_by_glob
    if not callable(mode):
        raise ConfigurationError("'mode' expects a function")
    if not callable(parser):
        raise ConfigurationError("'parser' expects a function")
    if on_error is not None and not callable(on_error):
        raise ConfigurationError("'on_error' expects a function")
    if not isinstance(cwd, (str, os.PathLike)):
        raise ConfigurationError(f"'cwd' expects a string, got {type(cwd).__name__}")
    check_repository(repository)
    if not isinstance(branch, str):
        raise ConfigurationError(f"'branch' expects a string, got {type(branch).__name__}")

    merged = {"repository": repository, "branch": branch, "cwd": cwd, **options}
    files = mode(**merged)
    if not isinstance(files, Iterable):
        raise ConfigurationError("'mode' expects a function that returns an iterable of paths")
    return _iter_documents(parser, files, merged, on_error or _log_error)


def _iter_documents(parser, files, options, on_error) -> Iterator[Any]:
    prefix = normalize_prefix(options["cwd"])
    branch = options["branch"]
    with opened_repository(options["repository"]) as repo:
        for file in files:
            try:
                path = posixpath.join(prefix, file) if prefix else file
                body = repo.read_blob(branch, path)
                document = parser(body, file, options)
            except Exception as exc:
                on_error(exc)
                continue
            yield document
