"""Header parser: wrap a body parser with path and commit metadata."""

from __future__ import annotations

import posixpath
from collections.abc import Callable, Mapping

from .exceptions import ConfigurationError
from .repo import CommitInfo, opened_repository, repository_path

__all__ = ["parse_header"]


def _default_body_parser(body: bytes, path: str, options: Mapping) -> dict:
    return {"body": body}


def _repository_path(repository) -> str:
    return repository_path(repository).replace("\\", "/")


def parse_header(
    body_parser: Callable[[bytes, str, Mapping], Mapping] | None = None,
) -> Callable[[bytes, str, Mapping], dict]:
    """Build a parser whose documents carry a ``header`` describing their source.

    The header holds ``repository``, ``branch``, ``cwd``, ``path``,
    ``dirname``, ``basename`` (no extension), ``extname`` and
    ``latest_commit`` (a :class:`~gitdocs.repo.CommitInfo` of the branch
    tip, looked up once per repository and branch).  The rest of the
    document comes from *body_parser* (default: ``{"body": body}``); a
    ``header`` key it returns is replaced.
    """
    if body_parser is None:
        body_parser = _default_body_parser
    if not callable(body_parser):
        raise ConfigurationError("'body_parser' expects a function")

    commits: dict[tuple[str, str], CommitInfo] = {}

    def latest_commit(options: Mapping) -> CommitInfo:
        repository = options.get("repository", ".")
        branch = options.get("branch", "main")
        key = (_repository_path(repository), branch)
        if key not in commits:
            with opened_repository(repository) as repo:
                commits[key] = repo.commit_info(branch)
        return commits[key]

    def parser(body: bytes, path: str, options: Mapping) -> dict:
        payload = dict(body_parser(body, path, options))
        payload.pop("header", None)
        basename = posixpath.basename(path)
        stem, ext = posixpath.splitext(basename)
        header = {
            "repository": _repository_path(options.get("repository", ".")),
            "branch": options.get("branch"),
            "cwd": options.get("cwd"),
            "latest_commit": latest_commit(options),
            "path": path,
            "dirname": posixpath.dirname(path) or ".",
            "basename": stem,
            "extname": ext,
        }
        return {"header": header, **payload}

    return parser
