"""Commit-batching writer for gitdocs.

Documents are named, rendered and staged into a :class:`CommitGroup`;
nothing reaches the branch until the group is flushed, at which point
all staged writes become exactly one commit and the branch ref moves
once.

Groups live in a :class:`WriteSession`.  Writers that share a session
and a group key share a group:

* **single-writer style** -- no explicit key; the key is derived from
  repository, branch, author, committer and message, so writers created
  with the same settings in one run land in one commit;
* **grouped style** -- an explicit ``group=`` key; any writer holding it
  can flush the group for everyone.

Usage::

    from gitdocs import writer

    write = writer(render, repository="site.git", message="Build site")
    for doc in docs:
        write(doc)
    write.flush()
"""

from __future__ import annotations

import logging
import os
import posixpath
from collections.abc import Callable, Hashable, Iterator
from dataclasses import dataclass
from typing import Any

from .exceptions import ConfigurationError
from .index import StagingIndex
from .naming import Namer, as_namers, resolve_name
from .repo import Repository, Signature, check_repository, open_repository, repository_path
from .tree import _normalize_path, normalize_prefix

logger = logging.getLogger(__name__)

Renderer = Callable[[Any], Any]

__all__ = [
    "GroupKey", "CommitGroup", "WriteSession", "Writer",
    "writer", "default_session", "discard_all",
]


def _log_error(error: BaseException) -> None:
    logger.error("Failed to write document: %s", error, exc_info=error)


@dataclass(frozen=True)
class GroupKey:
    """Derived key of a commit group."""
    repository: str
    branch: str
    author: str
    committer: str
    message: str


class CommitGroup:
    """Staged writes destined for one commit on one branch.

    The parent commit is snapshotted when the group opens; flushing
    commits on top of that snapshot even if the branch moved meanwhile.
    A repository given as a path is opened here and held until
    :meth:`close`.
    """

    def __init__(
        self,
        repository: Repository | str | os.PathLike[str],
        branch: str,
        message: str,
        author: Signature,
        committer: Signature,
    ):
        self._owns_repo = not isinstance(repository, Repository)
        self.repo = open_repository(repository)
        self.branch = branch
        self.message = message
        self.author = author
        self.committer = committer
        try:
            self.parent = self.repo.resolve_ref(branch)
        except Exception:
            self.close()
            raise
        self.index = StagingIndex(self.repo, self.parent)
        logger.debug("Opened commit group on %s at %s", branch, self.parent[:7])

    def __repr__(self) -> str:
        return f"CommitGroup(branch={self.branch!r}, parent={self.parent[:7]!r}, staged={len(self)})"

    def __len__(self) -> int:
        return len(self.index)

    @property
    def paths(self) -> list[str]:
        return self.index.paths

    def close(self) -> None:
        """Release the repository handle if this group opened it."""
        if self._owns_repo:
            self.repo.close()

    def stage(self, path: str, data: bytes) -> str:
        return self.index.add(path, data)

    def unstage(self, path: str) -> str:
        return self.index.remove(path)

    def commit(self) -> str | None:
        """Write tree and commit, then move the branch.

        Returns the new commit SHA, or None if nothing is staged.  Any
        failure propagates before the ref moves, leaving the branch and
        the staged changes as they were.
        """
        if not len(self.index):
            return None
        tree = self.index.write_tree()
        commit = self.repo.create_commit(
            tree, [self.parent], self.message,
            author=self.author, committer=self.committer,
        )
        summary = self.message.splitlines()[0] if self.message else ""
        self.repo.move_branch(self.branch, commit, message=f"commit: {summary}")
        logger.info("Committed %d change(s) to %s as %s", len(self.index), self.branch, commit[:7])
        self.parent = commit
        self.index.load(commit)
        return commit


class WriteSession:
    """Owns the pending commit groups of a set of writers."""

    def __init__(self):
        self._groups: dict[Hashable, CommitGroup] = {}

    def __repr__(self) -> str:
        return f"WriteSession(pending={len(self._groups)})"

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._groups

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._groups))

    def get(self, key: Hashable) -> CommitGroup | None:
        return self._groups.get(key)

    def open_group(
        self,
        key: Hashable,
        repository: Repository | str | os.PathLike[str],
        branch: str,
        message: str,
        author: Signature,
        committer: Signature,
    ) -> CommitGroup:
        """Return the group for *key*, opening it against the current tip if needed."""
        group = self._groups.get(key)
        if group is None:
            group = CommitGroup(repository, branch, message, author, committer)
            self._groups[key] = group
        return group

    def flush_group(self, key: Hashable) -> str | None:
        """Commit the group for *key*, close it and forget it.

        Returns the new commit SHA, or None when there was nothing to commit.
        On failure the group stays pending and open.
        """
        group = self._groups.get(key)
        if group is None:
            return None
        commit = group.commit()
        del self._groups[key]
        group.close()
        return commit

    def flush(self) -> dict[Hashable, str]:
        """Flush every pending group; return ``{key: commit}`` for groups that committed."""
        commits: dict[Hashable, str] = {}
        for key in list(self._groups):
            commit = self.flush_group(key)
            if commit is not None:
                commits[key] = commit
        return commits

    def discard(self, key: Hashable) -> None:
        group = self._groups.pop(key, None)
        if group is not None:
            group.close()

    def discard_all(self) -> None:
        """Drop every pending group without committing."""
        if self._groups:
            logger.debug("Discarding %d pending commit group(s)", len(self._groups))
        for key in list(self._groups):
            self.discard(key)

    def writer(self, renderer: Renderer, **options) -> Writer:
        """Create a :class:`Writer` bound to this session."""
        return Writer(renderer, session=self, **options)


_default_session = WriteSession()


def default_session() -> WriteSession:
    """The process-wide session used by writers created without one."""
    return _default_session


def discard_all() -> None:
    """Drop every pending group of the process-wide session."""
    _default_session.discard_all()


class Writer:
    """Names, renders and stages documents; flushes them as one commit.

    Args:
        renderer: ``document -> str | bytes | None``.  ``str`` is UTF-8
            encoded; ``None`` or empty output skips the document.
        repository: Repository path or :class:`Repository`.
        branch: Branch to commit to (must exist).
        author_name, author_email: Author identity.
        committer_name, committer_email: Committer identity (default: author).
        message: Commit message.
        cwd: Directory, inside the branch, that output paths are joined to.
        namer: A namer, a function, or a list of them (default:
            :class:`~gitdocs.naming.UrlNamer` then
            :class:`~gitdocs.naming.HeaderPathNamer`).
        on_error: Called with the exception when naming or rendering one
            document fails (default: log it).
        group: Explicit group key; writers sharing it share a commit.
        session: Session owning the group (default: the process-wide one).
    """

    def __init__(
        self,
        renderer: Renderer,
        *,
        repository: Repository | str | os.PathLike[str] = ".",
        branch: str = "main",
        author_name: str = "anonymous",
        author_email: str = "anonymous@example.com",
        committer_name: str | None = None,
        committer_email: str | None = None,
        message: str = "No commit message.",
        cwd: str | os.PathLike[str] = "dist",
        namer: Namer | Callable | list | None = None,
        on_error: Callable[[BaseException], None] | None = None,
        group: Hashable | None = None,
        session: WriteSession | None = None,
    ):
        if committer_name is None:
            committer_name = author_name
        if committer_email is None:
            committer_email = author_email
        for name, value in (
            ("branch", branch),
            ("author_name", author_name),
            ("author_email", author_email),
            ("committer_name", committer_name),
            ("committer_email", committer_email),
            ("message", message),
        ):
            if not isinstance(value, str):
                raise ConfigurationError(f"'{name}' expects a string, got {type(value).__name__}")
        if not isinstance(cwd, (str, os.PathLike)):
            raise ConfigurationError(f"'cwd' expects a string, got {type(cwd).__name__}")
        if not callable(renderer):
            raise ConfigurationError("'renderer' expects a function")
        if on_error is not None and not callable(on_error):
            raise ConfigurationError("'on_error' expects a function")
        if session is not None and not isinstance(session, WriteSession):
            raise ConfigurationError("'session' expects a WriteSession")
        if group is not None and not isinstance(group, Hashable):
            raise ConfigurationError("'group' expects a hashable key")

        self._namers = as_namers(namer)
        self._renderer = renderer
        self._on_error = on_error or _log_error
        self._session = session if session is not None else _default_session
        self._prefix = normalize_prefix(cwd)
        self._branch = branch
        self._message = message
        self._author = Signature(author_name, author_email)
        self._committer = Signature(committer_name, committer_email)
        check_repository(repository)
        self._repository = repository
        if group is None:
            group = GroupKey(
                repository=repository_path(repository),
                branch=branch,
                author=self._author.identity.decode(),
                committer=self._committer.identity.decode(),
                message=message,
            )
        self.key = group

    def __repr__(self) -> str:
        return f"Writer(branch={self._branch!r}, key={self.key!r})"

    @property
    def session(self) -> WriteSession:
        return self._session

    @property
    def group(self) -> CommitGroup | None:
        """The pending group this writer stages into, if open."""
        return self._session.get(self.key)

    def _open(self) -> CommitGroup:
        return self._session.open_group(
            self.key, self._repository, self._branch, self._message,
            self._author, self._committer,
        )

    def _output_path(self, name: str) -> str:
        path = posixpath.join(self._prefix, name) if self._prefix else name
        return _normalize_path(path)

    def write(self, document: Any) -> str | None:
        """Stage one document; return its output path, or None if skipped or failed."""
        group = self._open()
        try:
            name = resolve_name(self._namers, document)
            rendered = self._renderer(document)
            if not rendered:
                return None
            if isinstance(rendered, str):
                rendered = rendered.encode("utf-8")
            path = group.stage(self._output_path(name), bytes(rendered))
        except Exception as exc:
            self._on_error(exc)
            return None
        return path

    __call__ = write

    def remove(self, name: str) -> str:
        """Stage removal of *name* (joined under ``cwd``) from the branch."""
        return self._open().unstage(self._output_path(name))

    def flush(self) -> str | None:
        """Commit this writer's group; return the new commit SHA or None."""
        return self._session.flush_group(self.key)

    teardown = flush


def writer(renderer: Renderer, **options) -> Writer:
    """Create a :class:`Writer`; see its docstring for options."""
    return Writer(renderer, **options)
