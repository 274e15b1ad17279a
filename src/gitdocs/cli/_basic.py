"""Basic commands: init, ls, cat, write, info."""

from __future__ import annotations

import dataclasses
import json
import sys

import click

from ..exceptions import ConfigurationError, GitError
from ..repo import Repository
from ..select import find_by_glob
from ..writer import WriteSession
from ._helpers import (
    main,
    _repo_option,
    _branch_option,
    _selection_options,
    _require_repo,
    _open_repo,
    _echo_paths,
    _status,
)


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.option("--branch", "-b", default="main", show_default=True, help="Initial branch name.")
@click.option("--bare/--no-bare", default=True, show_default=True,
              help="Create a bare repository or one with a working tree.")
@click.pass_context
def init(ctx, branch, bare):
    """Create a repository with an empty initial commit on BRANCH."""
    repo_path = _require_repo(ctx)
    try:
        repo = Repository.init(repo_path, bare=bare, branch=branch)
    except (FileExistsError, ValueError) as exc:
        raise click.ClickException(str(exc))
    _status(ctx, f"Initialized {repo.path} on {branch}")


# ---------------------------------------------------------------------------
# ls
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@_branch_option
@_selection_options
@click.pass_context
def ls(ctx, branch, cwd, pattern, ignore):
    """List files under --cwd on the branch, relative to --cwd.

    \b
    Examples:
        gitdocs ls                              # every file
        gitdocs ls --cwd pages -p '**/*.md'     # markdown under pages/
        gitdocs ls -p '*.txt' -x skip.txt       # top-level .txt but one
    """
    repo = _open_repo(_require_repo(ctx))
    try:
        paths = find_by_glob(
            repository=repo, branch=branch, cwd=cwd,
            pattern=list(pattern) or None, ignore=list(ignore),
        )
    except (ConfigurationError, ValueError) as exc:
        raise click.ClickException(str(exc))
    count = _echo_paths(paths)
    _status(ctx, f"{count} file(s)")


# ---------------------------------------------------------------------------
# cat
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.argument("path")
@_branch_option
@click.pass_context
def cat(ctx, path, branch):
    """Write the contents of PATH on the branch to stdout."""
    repo = _open_repo(_require_repo(ctx))
    try:
        data = repo.read_blob(branch, path)
    except (GitError, ValueError) as exc:
        raise click.ClickException(str(exc))
    sys.stdout.buffer.write(data)


# ---------------------------------------------------------------------------
# write
# ---------------------------------------------------------------------------

def _reraise(exc: BaseException):
    raise exc


@main.command()
@_repo_option
@click.argument("path")
@_branch_option
@click.option("-m", "--message", default="No commit message.", show_default=True,
              help="Commit message.")
@click.option("--author-name", default="anonymous", envvar="GITDOCS_AUTHOR_NAME",
              show_default=True, help="Author name (or set GITDOCS_AUTHOR_NAME).")
@click.option("--author-email", default="anonymous@example.com", envvar="GITDOCS_AUTHOR_EMAIL",
              show_default=True, help="Author email (or set GITDOCS_AUTHOR_EMAIL).")
@click.option("--committer-name", default=None, envvar="GITDOCS_COMMITTER_NAME",
              help="Committer name (default: author).")
@click.option("--committer-email", default=None, envvar="GITDOCS_COMMITTER_EMAIL",
              help="Committer email (default: author).")
@click.pass_context
def write(ctx, path, branch, message, author_name, author_email, committer_name, committer_email):
    """Commit stdin as PATH on the branch.

    Empty input commits nothing.  The new commit SHA is printed.
    """
    repo = _open_repo(_require_repo(ctx))
    data = sys.stdin.buffer.read()
    session = WriteSession()
    try:
        w = session.writer(
            lambda document: document["body"],
            repository=repo, branch=branch, cwd=".", message=message,
            author_name=author_name, author_email=author_email,
            committer_name=committer_name, committer_email=committer_email,
            namer=lambda document: document["path"],
            on_error=_reraise,
        )
        staged = w.write({"path": path, "body": data})
        commit = w.flush()
    except (GitError, ValueError) as exc:
        session.discard_all()
        raise click.ClickException(str(exc))
    if commit is None:
        _status(ctx, "Nothing to commit")
        return
    _status(ctx, f"Wrote {staged} to {branch}")
    click.echo(commit)


# ---------------------------------------------------------------------------
# info
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@click.argument("ref", default="HEAD")
@click.pass_context
def info(ctx, ref):
    """Print metadata of the commit REF resolves to, as JSON."""
    repo = _open_repo(_require_repo(ctx))
    try:
        commit = repo.commit_info(ref)
    except GitError as exc:
        raise click.ClickException(str(exc))
    click.echo(json.dumps(dataclasses.asdict(commit), indent=2))
