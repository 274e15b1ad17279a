"""Shared fixtures for gitdocs tests."""

import pytest
from click.testing import CliRunner

from gitdocs import CommitGroup, Repository, discard_all


def commit_files(repo, files=None, *, remove=(), branch="main", message="update"):
    """Commit *files* ({path: bytes}) and *remove* on *branch*; return the SHA."""
    group = CommitGroup(repo, branch, message, repo.author, repo.committer)
    for path, data in (files or {}).items():
        group.stage(path, data)
    for path in remove:
        group.unstage(path)
    return group.commit()


@pytest.fixture(autouse=True)
def _clean_default_session():
    yield
    discard_all()


@pytest.fixture
def repo(tmp_path):
    """A bare repository with an empty initial commit on 'main'."""
    return Repository.init(tmp_path / "test.git")


@pytest.fixture
def commit():
    return commit_files


@pytest.fixture
def closed_repos(monkeypatch):
    """Record every Repository.close() call made during the test."""
    closed = []
    close = Repository.close

    def recording_close(self):
        closed.append(self)
        close(self)

    monkeypatch.setattr(Repository, "close", recording_close)
    return closed


@pytest.fixture
def docs_repo(repo):
    """Repository whose 'main' holds file1.txt, file2.txt, skip.txt, folder/file3.txt."""
    commit_files(repo, {
        "file1.txt": b"one",
        "file2.txt": b"two",
        "skip.txt": b"skip",
        "folder/file3.txt": b"three",
    }, message="Add files")
    return repo


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def repo_path(tmp_path):
    """Return a path to a not-yet-created repo."""
    return str(tmp_path / "test.git")
