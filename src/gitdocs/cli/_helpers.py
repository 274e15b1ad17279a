"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import logging

import click

from ..exceptions import ConfigurationError, GitError
from ..repo import Repository


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _store_repo(ctx, param, value):
    """Click callback: store --repo value in the context."""
    ctx.ensure_object(dict)
    if value is not None:
        ctx.obj["repo_path"] = value
    return value


def _repo_option(f):
    """Shared --repo/-r option decorator for all commands."""
    return click.option(
        "--repo", "-r", type=click.Path(), envvar="GITDOCS_REPO",
        help="Path to the git repository (or set GITDOCS_REPO).",
        expose_value=False, callback=_store_repo, is_eager=True,
    )(f)


def _branch_option(f):
    return click.option(
        "--branch", "-b", default="main", envvar="GITDOCS_BRANCH", show_default=True,
        help="Branch to operate on (or set GITDOCS_BRANCH).",
    )(f)


def _selection_options(f):
    """Shared --cwd / --pattern / --ignore options for selection commands."""
    f = click.option("--ignore", "-x", "ignore", multiple=True,
                     help="Glob of paths to leave out (repeatable).")(f)
    f = click.option("--pattern", "-p", "pattern", multiple=True,
                     help="Glob of paths to select (repeatable, default: all).")(f)
    f = click.option("--cwd", default=".", show_default=True,
                     help="Directory inside the branch to select under.")(f)
    return f


def _require_repo(ctx) -> str:
    """Get the repo path from context, raising a clear error if missing."""
    repo = ctx.obj.get("repo_path")
    if not repo:
        raise click.ClickException(
            "No repository specified. Use --repo or set GITDOCS_REPO."
        )
    return repo


def _open_repo(repo_path: str) -> Repository:
    try:
        return Repository.open(repo_path)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc))


def _echo_paths(paths) -> int:
    """Print one path per line; return how many were printed."""
    count = 0
    try:
        for path in paths:
            click.echo(path)
            count += 1
    except (GitError, ConfigurationError, ValueError) as exc:
        raise click.ClickException(str(exc))
    return count


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--repo", "-r", type=click.Path(), envvar="GITDOCS_REPO",
              help="Path to the git repository (or set GITDOCS_REPO).",
              expose_value=False, callback=_store_repo, is_eager=True)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, verbose):
    """gitdocs: select, read and commit documents in a git branch.

    \b
    Quick start:
      gitdocs init -r site.git
      echo '# Hi' | gitdocs write -r site.git pages/index.md -m "Add index"
      gitdocs ls -r site.git --cwd pages -p '**/*.md'
      gitdocs changed -r site.git --cwd pages --checkpoint-file .last

    \b
    Set GITDOCS_REPO to avoid passing --repo on every call.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
