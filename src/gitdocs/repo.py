"""Repository: the git capability gitdocs reads from and commits to.

Everything goes through dulwich's object store and refs container; no
``git`` binary is required.
"""

from __future__ import annotations

import logging
import os
import re
import time as _time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from dulwich.errors import NotGitRepository
from dulwich.objects import Commit, Tag, Tree
from dulwich.repo import Repo

from .exceptions import ConfigurationError, GitError
from .tree import changed_paths, list_paths_under, normalize_prefix, read_blob_at_path

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^[0-9a-f]{4,40}$")


def _validate_ref_name(name: str) -> None:
    """Reject ref names containing ':', space, tab, or newline."""
    if not name:
        raise ValueError("Ref name must not be empty")
    for ch, label in ((":", "colon"), (" ", "space"), ("\t", "tab"), ("\n", "newline")):
        if ch in name:
            raise ValueError(f"Invalid ref name {name!r}: contains {label}")


def _split_identity(ident: bytes) -> tuple[str, str]:
    name, _, email_part = ident.decode("utf-8", "replace").partition(" <")
    return name, email_part.rstrip(">")


def _iso_time(seconds: int, offset: int) -> str:
    tz = timezone(timedelta(seconds=offset))
    return datetime.fromtimestamp(seconds, tz=tz).isoformat()


class Signature:
    """A git identity (name and email)."""

    def __init__(self, name: str, email: str):
        self.name = name
        self.email = email
        self._identity = f"{name} <{email}>".encode()

    def __repr__(self) -> str:
        return f"Signature({self.name!r}, {self.email!r})"

    def __eq__(self, other):
        if isinstance(other, Signature):
            return self._identity == other._identity
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._identity)

    @property
    def identity(self) -> bytes:
        """``b"Name <email>"`` as stored in commit objects."""
        return self._identity


@dataclass(frozen=True)
class CommitInfo:
    """Metadata of a single commit."""
    hash: str
    abbrev: str
    author_name: str
    author_email: str
    author_date: str
    committer_name: str
    committer_email: str
    committer_date: str
    message: str


class Repository:
    """A git repository (bare or not) used as a document store."""

    def __init__(self, dulwich_repo: Repo, author: Signature | None = None, committer: Signature | None = None):
        self._repo = dulwich_repo
        self._author = author or Signature("gitdocs", "gitdocs@localhost")
        self._committer = committer or self._author

    def __repr__(self) -> str:
        return f"Repository({self.path!r})"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @classmethod
    def open(
        cls,
        path: str | os.PathLike[str],
        *,
        author: Signature | None = None,
        committer: Signature | None = None,
    ) -> Repository:
        """Open an existing repository (bare directory or working tree).

        Raises:
            FileNotFoundError: If *path* is not a git repository.
        """
        try:
            repo = Repo(os.fspath(path))
        except NotGitRepository:
            raise FileNotFoundError(f"Repository not found: {path}")
        return cls(repo, author, committer)

    @classmethod
    def init(
        cls,
        path: str | os.PathLike[str],
        *,
        bare: bool = True,
        branch: str | None = "main",
        author: Signature | None = None,
        committer: Signature | None = None,
    ) -> Repository:
        """Create a new repository, with an empty initial commit on *branch*.

        Args:
            path: Directory to create.
            bare: Create a bare repository (default) or one with a working tree.
            branch: Initial branch name, or None for no branch.
        """
        path = Path(path)
        if path.exists() and any(path.iterdir()):
            raise FileExistsError(f"Repository already exists: {path}")
        if bare:
            repo = Repo.init_bare(str(path), mkdir=not path.exists())
        else:
            repo = Repo.init(str(path), mkdir=not path.exists())
        store = cls(repo, author, committer)

        if branch is not None:
            _validate_ref_name(branch)
            tree = Tree()
            repo.object_store.add_object(tree)
            commit = store.create_commit(tree.id.decode(), [], f"Initialize {branch}")
            store.move_branch(branch, commit)
            repo.refs.set_symbolic_ref(b"HEAD", f"refs/heads/{branch}".encode())
        return store

    def close(self) -> None:
        self._repo.close()

    @property
    def path(self) -> str:
        """Absolute path of the repository (the working tree for non-bare repos)."""
        return os.path.abspath(self._repo.path)

    @property
    def bare(self) -> bool:
        return self._repo.bare

    @property
    def author(self) -> Signature:
        return self._author

    @property
    def committer(self) -> Signature:
        return self._committer

    @property
    def object_store(self):
        return self._repo.object_store

    # -- refs ---------------------------------------------------------------

    def _peel_commit(self, sha: bytes, ref: str) -> bytes:
        obj = self._repo.object_store[sha]
        while isinstance(obj, Tag):
            obj = self._repo.object_store[obj.object[1]]
        if not isinstance(obj, Commit):
            raise GitError(f"fatal: {ref!r} does not name a commit")
        return obj.id

    def resolve_ref(self, ref: str) -> str:
        """Resolve a branch, tag, full ref, ``HEAD`` or (short) SHA to a commit SHA.

        Raises:
            GitError: If *ref* does not resolve to a commit.
        """
        if not isinstance(ref, str) or not ref:
            raise GitError(f"fatal: invalid ref {ref!r}")
        refs = self._repo.refs
        store = self._repo.object_store

        if len(ref) == 40 and _HEX_RE.match(ref) and ref.encode() in store:
            return self._peel_commit(ref.encode(), ref).decode()

        if ref == "HEAD":
            candidates = [b"HEAD"]
        elif ref.startswith("refs/"):
            candidates = [ref.encode()]
        else:
            candidates = [f"refs/heads/{ref}".encode(), f"refs/tags/{ref}".encode()]
        for name in candidates:
            try:
                sha = refs[name]
            except KeyError:
                continue
            return self._peel_commit(sha, ref).decode()

        if _HEX_RE.match(ref) and len(ref) < 40:
            prefix = ref.encode()
            matches = [sha for sha in store if sha.startswith(prefix)]
            if len(matches) == 1:
                return self._peel_commit(matches[0], ref).decode()
            if len(matches) > 1:
                raise GitError(f"fatal: ambiguous argument {ref!r}")

        raise GitError(f"fatal: ambiguous argument {ref!r}: unknown revision")

    def ref_target(self, name: str) -> str | None:
        """Return the SHA a full ref name points to, or None if it is missing."""
        try:
            return self._repo.refs[name.encode()].decode()
        except KeyError:
            return None

    def set_ref(self, name: str, commit: str, message: str | None = None) -> None:
        """Point the full ref *name* at *commit*, unconditionally."""
        _validate_ref_name(name)
        sha = self.resolve_ref(commit).encode()
        msg = message.encode() if message is not None else None
        ok = self._repo.refs.set_if_equals(
            name.encode(), None, sha,
            committer=self._committer.identity, message=msg,
        )
        if ok is False:
            raise GitError(f"fatal: could not update ref {name!r}")

    def move_branch(self, branch: str, commit: str, message: str | None = None) -> None:
        """Move ``refs/heads/<branch>`` to *commit* (last writer wins)."""
        _validate_ref_name(branch)
        self.set_ref(f"refs/heads/{branch}", commit, message or "update-ref")
        logger.debug("Moved %s to %s", branch, commit[:7])

    # -- reads --------------------------------------------------------------

    def tree_id(self, ref: str) -> bytes:
        """Return the root tree SHA of the commit *ref* resolves to."""
        sha = self.resolve_ref(ref)
        return self._repo.object_store[sha.encode()].tree

    def list_tree(self, ref: str, path: str | None = None) -> list[str]:
        """List every file under *path* at *ref*, repo-root relative, in tree order."""
        return list_paths_under(self._repo.object_store, self.tree_id(ref), normalize_prefix(path))

    def list_changed(self, since: str, ref: str, path: str | None = None) -> list[str]:
        """List paths under *path* that differ between commit *since* and *ref*."""
        old_tree = self.tree_id(since)
        new_tree = self.tree_id(ref)
        return changed_paths(self._repo.object_store, old_tree, new_tree, normalize_prefix(path))

    def read_blob(self, ref: str, path: str) -> bytes:
        """Read the blob at *path* as of *ref*.

        Raises:
            GitError: If *ref* does not resolve or *path* is not a file there.
        """
        tree = self.tree_id(ref)
        try:
            return read_blob_at_path(self._repo.object_store, tree, path)
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            raise GitError(f"fatal: path {path!r} does not exist in {ref!r}")

    def commit_info(self, ref: str = "HEAD") -> CommitInfo:
        """Return :class:`CommitInfo` for the commit *ref* resolves to."""
        sha = self.resolve_ref(ref)
        c = self._repo.object_store[sha.encode()]
        author_name, author_email = _split_identity(c.author)
        committer_name, committer_email = _split_identity(c.committer)
        return CommitInfo(
            hash=sha,
            abbrev=sha[:7],
            author_name=author_name,
            author_email=author_email,
            author_date=_iso_time(c.author_time, c.author_timezone),
            committer_name=committer_name,
            committer_email=committer_email,
            committer_date=_iso_time(c.commit_time, c.commit_timezone),
            message=c.message.decode("utf-8", "replace").rstrip("\n"),
        )

    # -- writes -------------------------------------------------------------

    def create_commit(
        self,
        tree: str,
        parents: list[str],
        message: str | bytes,
        *,
        author: Signature | None = None,
        committer: Signature | None = None,
    ) -> str:
        """Create a commit object (no ref is moved) and return its SHA."""
        author = author or self._author
        committer = committer or self._committer
        c = Commit()
        c.tree = tree.encode()
        c.parents = [p.encode() for p in parents]
        c.author = author.identity
        c.committer = committer.identity
        now = int(_time.time())
        c.author_time = c.commit_time = now
        c.author_timezone = c.commit_timezone = 0
        msg = message.encode() if isinstance(message, str) else message
        if not msg.endswith(b"\n"):
            msg += b"\n"
        c.message = msg
        c.encoding = b"UTF-8"
        self._repo.object_store.add_object(c)
        return c.id.decode()


def check_repository(repository) -> None:
    if not isinstance(repository, (Repository, str, os.PathLike)):
        raise ConfigurationError(
            f"'repository' expects a path or Repository, got {type(repository).__name__}"
        )


def repository_path(repository: Repository | str | os.PathLike[str]) -> str:
    """Absolute path of *repository* without opening it."""
    if isinstance(repository, Repository):
        return repository.path
    return os.path.abspath(os.fspath(repository))


def open_repository(repository: Repository | str | os.PathLike[str]) -> Repository:
    """Return *repository* itself, or open the repository at that path.

    A repository opened here belongs to the caller, who must close it;
    prefer :func:`opened_repository`.
    """
    if isinstance(repository, Repository):
        return repository
    check_repository(repository)
    return Repository.open(repository)


@contextmanager
def opened_repository(repository: Repository | str | os.PathLike[str]) -> Iterator[Repository]:
    """Context manager yielding a :class:`Repository`.

    A path is opened and closed again on exit; an instance is passed
    through and left open for its owner.
    """
    if isinstance(repository, Repository):
        yield repository
        return
    repo = open_repository(repository)
    try:
        yield repo
    finally:
        repo.close()
